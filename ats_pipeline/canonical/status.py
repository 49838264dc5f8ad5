"""Status, stage-order, and source lookup tables."""

import logging
from dataclasses import dataclass
from types import MappingProxyType

from ats_pipeline.utils.types import ConfidenceGrade, Disposition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusMapping:
    raw_status: str
    canonical_stage: str
    is_terminal: bool
    disposition: Disposition
    confidence: ConfidenceGrade = ConfidenceGrade.HIGH
    is_unmapped: bool = False


def _active(raw: str, stage: str) -> StatusMapping:
    return StatusMapping(raw, stage, False, Disposition.ACTIVE)


def _terminal(raw: str, stage: str, disposition: Disposition) -> StatusMapping:
    return StatusMapping(raw, stage, True, disposition)


STATUS_MAPPINGS: MappingProxyType[str, StatusMapping] = MappingProxyType({
    m.raw_status: m
    for m in (
        _active("New Submission", "APPLIED"),
        _active("Application Received", "APPLIED"),
        _active("Phone Screen Scheduled", "SCREEN"),
        _active("Phone Screen Staffing", "SCREEN"),
        _active("Phone Screen Hiring Manager", "HM_SCREEN"),
        _active("1st Round Interview", "HM_SCREEN"),
        _active("2nd Round Interview", "ONSITE"),
        _active("Final Interview", "FINAL"),
        _active("Offer", "OFFER"),
        _active("Offer Extended", "OFFER"),
        _terminal("Offer Accepted", "HIRED", Disposition.HIRED),
        _terminal("Hired", "HIRED", Disposition.HIRED),
        _terminal("Rejected", "REJECTED", Disposition.REJECTED),
        _terminal("Not Selected", "REJECTED", Disposition.REJECTED),
        _terminal("Candidate Withdrew", "WITHDREW", Disposition.WITHDRAWN),
    )
})

_FOLDED_MAPPINGS = MappingProxyType({key.lower(): m for key, m in STATUS_MAPPINGS.items()})

STAGE_ORDER: MappingProxyType[str, int] = MappingProxyType({
    "LEAD": 1,
    "APPLIED": 2,
    "SCREEN": 3,
    "HM_SCREEN": 4,
    "ONSITE": 5,
    "FINAL": 6,
    "OFFER": 7,
    "HIRED": 8,
    "REJECTED": 99,
    "WITHDREW": 99,
})
UNRANKED_STAGE_ORDER = 50

SOURCE_CATEGORIES: MappingProxyType[str, str] = MappingProxyType({
    "linkedin": "LinkedIn",
    "indeed": "Indeed",
    "referral": "Referral",
    "employee referral": "Referral",
    "sourced": "Sourced",
    "agency": "Agency",
    "internal": "Internal",
    "career site": "Inbound",
})


def map_status(raw_status: str) -> StatusMapping:
    """Map a raw ATS status onto a canonical stage and disposition.

    Unknown statuses come back as an active APPLIED application flagged
    ``is_unmapped`` with low confidence; an unrecognized value is never read
    as a terminal outcome.
    """
    normalized = raw_status.strip()
    if (mapping := STATUS_MAPPINGS.get(normalized)) is not None:
        return mapping
    if (mapping := _FOLDED_MAPPINGS.get(normalized.lower())) is not None:
        return mapping

    logger.debug("Unmapped status: %r", raw_status)
    return StatusMapping(
        raw_status=normalized,
        canonical_stage="APPLIED",
        is_terminal=False,
        disposition=Disposition.ACTIVE,
        confidence=ConfidenceGrade.LOW,
        is_unmapped=True,
    )


def stage_rank(canonical_stage: str) -> int:
    return STAGE_ORDER.get(canonical_stage, UNRANKED_STAGE_ORDER)


def classify_source(raw_source: str | None) -> tuple[str, str]:
    """Return ``(source, source_category)`` for a raw source cell.

    Known names normalize through :data:`SOURCE_CATEGORIES`; anything else
    passes through literally.
    """
    if not raw_source:
        return "Unknown", "Unknown"
    category = SOURCE_CATEGORIES.get(raw_source.strip().lower(), raw_source.strip())
    return category, category
