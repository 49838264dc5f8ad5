"""Phase decomposition of time-to-offer.

Time to offer is split into applied -> first interview and first interview ->
offer. Applications lacking any of the three timestamps are excluded outright;
a missing interview date means the breakdown cannot be computed, not that the
first phase took zero days.
"""

import logging
from dataclasses import dataclass, field

from ats_pipeline.canonical.dates import days_between
from ats_pipeline.canonical.metrics import median
from ats_pipeline.canonical.models import ApplicationCanonical

logger = logging.getLogger(__name__)

PHASE_SUM_TOLERANCE_DAYS = 1
TOP_DELAY_CONTRIBUTORS = 5


@dataclass(frozen=True)
class InvariantError:
    application_id: str
    total_days: int
    phase_sum: int
    deviation_days: int


@dataclass(frozen=True)
class PhaseBreakdown:
    application_id: str
    candidate_id: str
    req_id: str
    total_days: int
    applied_to_first_interview_days: int
    first_interview_to_offer_days: int


@dataclass(frozen=True)
class TimeToOfferBreakdown:
    total_days: float | None
    applied_to_first_interview_days: float | None
    first_interview_to_offer_days: float | None
    math_invariant_valid: bool
    math_invariant_errors: list[InvariantError]
    top_delay_contributors: list[PhaseBreakdown]
    included_count: int
    excluded_count: int
    exclusion_reasons: list[str] = field(default_factory=list)


def _exclusion_reasons(applications: list[ApplicationCanonical]) -> list[str]:
    missing_applied = sum(1 for a in applications if a.applied_at is None)
    missing_interview = sum(
        1 for a in applications if a.applied_at is not None and a.first_contacted_at is None
    )
    missing_offer = sum(
        1 for a in applications
        if a.applied_at is not None and a.first_contacted_at is not None and a.offer_sent_at is None
    )
    reasons = []
    if missing_applied:
        reasons.append(f"{missing_applied} applications missing applied_at")
    if missing_interview:
        reasons.append(
            f"{missing_interview} applications missing first_contacted_at "
            "(interview date) - cannot compute breakdown"
        )
    if missing_offer:
        reasons.append(f"{missing_offer} applications missing offer_sent_at")
    return reasons


def explain_time_to_offer(
    applications: list[ApplicationCanonical],
    tolerance_days: int = PHASE_SUM_TOLERANCE_DAYS,
) -> TimeToOfferBreakdown:
    """Break time to offer into phases and check that the phases add up.

    A phase sum that deviates from the total by more than ``tolerance_days``
    is recorded in ``math_invariant_errors`` but the application still counts
    toward the medians. Applications with a negative phase or total are left
    out of the medians since their source dates are out of order.
    """
    reasons = _exclusion_reasons(applications)
    complete = [
        a for a in applications
        if a.applied_at is not None and a.first_contacted_at is not None and a.offer_sent_at is not None
    ]

    invariant_errors: list[InvariantError] = []
    breakdowns: list[PhaseBreakdown] = []
    for app in complete:
        total = days_between(app.applied_at, app.offer_sent_at)
        phase1 = days_between(app.applied_at, app.first_contacted_at)
        phase2 = days_between(app.first_contacted_at, app.offer_sent_at)

        deviation = abs(phase1 + phase2 - total)
        if deviation > tolerance_days:
            invariant_errors.append(InvariantError(app.application_id, total, phase1 + phase2, deviation))

        if min(total, phase1, phase2) < 0:
            reasons.append(f"Application {app.application_id} has negative duration (dates out of order)")
            continue

        breakdowns.append(PhaseBreakdown(
            application_id=app.application_id,
            candidate_id=app.candidate_id,
            req_id=app.req_id,
            total_days=total,
            applied_to_first_interview_days=phase1,
            first_interview_to_offer_days=phase2,
        ))

    if invariant_errors:
        logger.warning("%d applications violate the phase-sum invariant", len(invariant_errors))

    if not breakdowns:
        if complete:
            reasons.append("All calculated durations were negative or invalid")
        return TimeToOfferBreakdown(
            total_days=None,
            applied_to_first_interview_days=None,
            first_interview_to_offer_days=None,
            math_invariant_valid=not invariant_errors,
            math_invariant_errors=invariant_errors,
            top_delay_contributors=[],
            included_count=0,
            excluded_count=len(applications),
            exclusion_reasons=reasons,
        )

    top = sorted(breakdowns, key=lambda b: b.total_days, reverse=True)[:TOP_DELAY_CONTRIBUTORS]
    return TimeToOfferBreakdown(
        total_days=median([b.total_days for b in breakdowns]),
        applied_to_first_interview_days=median([b.applied_to_first_interview_days for b in breakdowns]),
        first_interview_to_offer_days=median([b.first_interview_to_offer_days for b in breakdowns]),
        math_invariant_valid=not invariant_errors,
        math_invariant_errors=invariant_errors,
        top_delay_contributors=top,
        included_count=len(breakdowns),
        excluded_count=len(applications) - len(breakdowns),
        exclusion_reasons=reasons,
    )
