"""Builders that turn one export row into canonical records.

Rows without a requisition or candidate identity are dropped and audited,
never patched. Application state is a reduction over the row's sorted event
list in which the first terminal event freezes stage and disposition.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime

from ats_pipeline.canonical.columns import cell, resolve_field
from ats_pipeline.canonical.context import IngestionContext
from ats_pipeline.canonical.dates import parse_date
from ats_pipeline.canonical.events import ExtractedStageEvent
from ats_pipeline.canonical.models import (
    ApplicationCanonical,
    CandidateCanonical,
    ConfidenceMetadata,
    EventCanonical,
    ReqCanonical,
)
from ats_pipeline.canonical.status import classify_source, map_status
from ats_pipeline.utils.types import (
    AuditAction,
    ConfidenceGrade,
    Disposition,
    EntityType,
    EventType,
    Headers,
    RawRow,
    grade_from_flags,
)

logger = logging.getLogger(__name__)

MISSING_REQ_ID = "MISSING_REQ_ID"
MISSING_CANDIDATE_ID = "MISSING_CANDIDATE_ID"
MISSING_TERMINAL_TIMESTAMP = "MISSING_TERMINAL_TIMESTAMP"

_CONTACT_EXCLUSIONS = ("apply", "submission")

# disposition -> the terminal timestamp field that corroborates it
TERMINAL_TIMESTAMP_FIELDS = {
    Disposition.HIRED: "hired_at",
    Disposition.REJECTED: "rejected_at",
    Disposition.WITHDRAWN: "withdrawn_at",
}

_TERMINAL_DISPOSITIONS = {
    EventType.HIRED: Disposition.HIRED,
    EventType.REJECTED: Disposition.REJECTED,
    EventType.WITHDRAWN: Disposition.WITHDRAWN,
}


def _person_slug(prefix: str, name: str | None) -> str | None:
    if not name:
        return None
    slug = re.sub(r"\s+", "-", name.lower())
    return f"{prefix}-{slug}"


def _literal_date(row: RawRow, headers: Headers, field: str) -> datetime | None:
    column = resolve_field(headers, field)
    return parse_date(row.get(column)).date if column else None


def build_requisition(row: RawRow, headers: Headers, ctx: IngestionContext) -> ReqCanonical | None:
    """Build (or re-find) the requisition a row belongs to.

    The first row naming a requisition defines it; later rows are audited as
    merges and return the stored record unchanged.
    """
    req_id = cell(row, resolve_field(headers, "req_id"))
    if not req_id:
        ctx.audit.log(
            AuditAction.DROP_ROW, EntityType.REQ, None,
            rows_in=1, rows_dropped=1,
            reason_code=MISSING_REQ_ID,
            source_trace=ctx.trace(),
        )
        return None

    if (existing := ctx.reqs.get(req_id)) is not None:
        ctx.audit.log(AuditAction.MERGE, EntityType.REQ, req_id, rows_in=1, rows_merged=1)
        return existing

    hm_name = cell(row, resolve_field(headers, "hiring_manager"))
    recruiter_name = cell(row, resolve_field(headers, "recruiter"))
    opened_at = _literal_date(row, headers, "opened_at")
    closed_at = _literal_date(row, headers, "closed_at")

    req = ReqCanonical(
        req_id=req_id,
        req_title=cell(row, resolve_field(headers, "req_title")),
        department=cell(row, resolve_field(headers, "department")),
        location=cell(row, resolve_field(headers, "location")),
        hiring_manager_id=_person_slug("hm", hm_name),
        hiring_manager_name=hm_name,
        recruiter_id=_person_slug("rec", recruiter_name),
        recruiter_name=recruiter_name,
        status="Closed" if closed_at else "Open",
        opened_at=opened_at,
        closed_at=closed_at,
        source_trace=ctx.trace(),
        confidence=ConfidenceMetadata(ConfidenceGrade.HIGH),
    )
    ctx.reqs[req_id] = req
    ctx.audit.log(AuditAction.BUILD_REQ, EntityType.REQ, req_id, rows_in=1, rows_out=1)
    return req


def build_candidate(row: RawRow, headers: Headers, ctx: IngestionContext) -> CandidateCanonical | None:
    candidate_id = cell(row, resolve_field(headers, "candidate_id"))
    if not candidate_id:
        ctx.audit.log(
            AuditAction.DROP_ROW, EntityType.CANDIDATE, None,
            rows_in=1, rows_dropped=1,
            reason_code=MISSING_CANDIDATE_ID,
            source_trace=ctx.trace(),
        )
        return None

    if (existing := ctx.candidates.get(candidate_id)) is not None:
        ctx.audit.log(AuditAction.MERGE, EntityType.CANDIDATE, candidate_id, rows_in=1, rows_merged=1)
        return existing

    raw_source = cell(row, resolve_field(headers, "source"))
    source, source_category = classify_source(raw_source)
    if raw_source:
        confidence = ConfidenceMetadata(ConfidenceGrade.HIGH)
    else:
        confidence = ConfidenceMetadata(ConfidenceGrade.MEDIUM, ["Source inferred"], ["source"])

    candidate = CandidateCanonical(
        candidate_id=candidate_id,
        name=cell(row, resolve_field(headers, "candidate_name")),
        email=None,
        source=source,
        source_category=source_category,
        source_trace=ctx.trace(),
        confidence=confidence,
    )
    ctx.candidates[candidate_id] = candidate
    ctx.audit.log(AuditAction.BUILD_CANDIDATE, EntityType.CANDIDATE, candidate_id, rows_in=1, rows_out=1)
    return candidate


@dataclass(frozen=True)
class StageState:
    """Application state while folding over its events."""

    current_stage: str = "Applied"
    current_stage_canonical: str = "APPLIED"
    current_stage_entered_at: datetime | None = None
    disposition: Disposition = Disposition.ACTIVE
    hired_at: datetime | None = None
    offer_sent_at: datetime | None = None
    rejected_at: datetime | None = None
    withdrawn_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.disposition is not Disposition.ACTIVE


def advance_state(state: StageState, event: ExtractedStageEvent) -> StageState:
    """Apply one event. Terminal dispositions are absorbing: once set, later
    events still fill their own timestamp field but never move the stage."""
    match event.event_type:
        case EventType.HIRED | EventType.REJECTED | EventType.WITHDRAWN:
            disposition = _TERMINAL_DISPOSITIONS[event.event_type]
            field = TERMINAL_TIMESTAMP_FIELDS[disposition]
            if getattr(state, field) is None:
                state = replace(state, **{field: event.event_at})
            if state.is_terminal:
                return state
            return replace(
                state,
                disposition=disposition,
                current_stage=event.stage,
                current_stage_canonical=event.stage_canonical,
                current_stage_entered_at=event.event_at,
            )
        case EventType.OFFER_SENT:
            if state.offer_sent_at is None:
                state = replace(state, offer_sent_at=event.event_at)
            if state.is_terminal:
                return state
            return replace(
                state,
                current_stage="Offer",
                current_stage_canonical="OFFER",
                current_stage_entered_at=event.event_at,
            )
        case EventType.STAGE_ENTERED:
            if state.is_terminal:
                return state
            return replace(
                state,
                current_stage=event.stage,
                current_stage_canonical=event.stage_canonical,
                current_stage_entered_at=event.event_at,
            )
        case other:
            raise ValueError(f"Unknown event type: {other}")


def _first_contacted_at(events: list[ExtractedStageEvent]) -> datetime | None:
    for event in events:
        if event.event_type is not EventType.STAGE_ENTERED:
            continue
        stage = event.stage.lower()
        if not any(marker in stage for marker in _CONTACT_EXCLUSIONS):
            return event.event_at
    return None


def build_application(
    row: RawRow,
    headers: Headers,
    ctx: IngestionContext,
    candidate: CandidateCanonical,
    req: ReqCanonical,
    stage_events: list[ExtractedStageEvent],
) -> ApplicationCanonical:
    """Build the candidate-on-requisition fact from a row and its events.

    ``stage_events`` must already be sorted (see
    :func:`~ats_pipeline.canonical.events.extract_stage_events`).
    """
    application_id = f"{candidate.candidate_id}-{req.req_id}"
    reasons: list[str] = []

    applied_at = _literal_date(row, headers, "applied_at")
    if applied_at is None and stage_events:
        applied_at = stage_events[0].event_at
        reasons.append("applied_at taken from earliest stage event")

    state = StageState()
    for event in stage_events:
        state = advance_state(state, event)

    status_column = resolve_field(headers, "status")
    raw_status = cell(row, status_column)
    if raw_status:
        mapping = map_status(raw_status)
        if mapping.is_unmapped:
            ctx.note_unmapped_status(raw_status, ctx.trace(status_column, raw_status))
        elif mapping.is_terminal and not state.is_terminal:
            # Outcome is known from the status cell, its timing is not.
            state = replace(
                state,
                disposition=mapping.disposition,
                current_stage=raw_status,
                current_stage_canonical=mapping.canonical_stage,
                current_stage_entered_at=None,
            )
            ctx.audit.log(
                AuditAction.FLAG_MISSING_TIMESTAMP, EntityType.APPLICATION, application_id,
                reason_code=MISSING_TERMINAL_TIMESTAMP,
                details={
                    "disposition": str(mapping.disposition),
                    "status": raw_status,
                    "message": "Terminal disposition detected but no timestamp column found in CSV",
                },
                source_trace=ctx.trace(status_column, raw_status),
            )

    missing_timestamps = [
        field
        for disposition, field in TERMINAL_TIMESTAMP_FIELDS.items()
        if state.disposition is disposition and getattr(state, field) is None
    ]

    grade = grade_from_flags(bool(stage_events), bool(missing_timestamps))
    match grade:
        case ConfidenceGrade.MEDIUM:
            reasons.insert(0, f"Terminal disposition without timestamp: {', '.join(missing_timestamps)}")
        case ConfidenceGrade.LOW:
            reasons.insert(0, "No event history from CSV")
        case ConfidenceGrade.HIGH:
            reasons.insert(0, "All timestamps from real CSV data")

    stage_timestamps: dict[str, datetime] = {}
    for event in stage_events:
        stage_timestamps.setdefault(event.stage, event.event_at)

    application = ApplicationCanonical(
        application_id=application_id,
        candidate_id=candidate.candidate_id,
        req_id=req.req_id,
        current_stage=state.current_stage,
        current_stage_canonical=state.current_stage_canonical,
        disposition=state.disposition,
        is_terminal=state.is_terminal,
        applied_at=applied_at,
        first_contacted_at=_first_contacted_at(stage_events),
        current_stage_entered_at=state.current_stage_entered_at,
        hired_at=state.hired_at,
        offer_sent_at=state.offer_sent_at,
        rejected_at=state.rejected_at,
        withdrawn_at=state.withdrawn_at,
        stage_timestamps=stage_timestamps,
        source_trace=ctx.trace(),
        confidence=ConfidenceMetadata(grade, reasons, list(missing_timestamps)),
        has_event_history=bool(stage_events),
        event_count=len(stage_events),
        missing_timestamps=missing_timestamps,
    )
    ctx.audit.log(AuditAction.BUILD_APPLICATION, EntityType.APPLICATION, application_id, rows_in=1, rows_out=1)
    return application


def build_events(
    application: ApplicationCanonical,
    stage_events: list[ExtractedStageEvent],
    ctx: IngestionContext,
) -> list[EventCanonical]:
    """One canonical event per extracted event, each tracing its source cell."""
    events = []
    for ordinal, extracted in enumerate(stage_events, start=1):
        event = EventCanonical(
            event_id=f"{application.application_id}-evt-{ordinal}",
            application_id=application.application_id,
            candidate_id=application.candidate_id,
            req_id=application.req_id,
            event_type=extracted.event_type,
            stage=extracted.stage,
            stage_canonical=extracted.stage_canonical,
            event_at=extracted.event_at,
            source_trace=ctx.trace(extracted.source_column, extracted.raw_value),
            confidence=ConfidenceMetadata(ConfidenceGrade.HIGH, ["first_occurrence_timestamp"]),
        )
        action = (
            AuditAction.EMIT_TERMINAL_EVENT
            if extracted.event_type.is_terminal
            else AuditAction.EMIT_STAGE_ENTERED
        )
        ctx.audit.log(
            action, EntityType.EVENT, event.event_id,
            rows_out=1,
            details={
                "stage": extracted.stage,
                "event_type": str(extracted.event_type),
                "source_column": extracted.source_column,
            },
        )
        events.append(event)
    return events
