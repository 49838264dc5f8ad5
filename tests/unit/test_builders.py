"""Tests for the requisition, candidate, application and event builders."""

from datetime import datetime

import pytest

from ats_pipeline.canonical.builders import (
    MISSING_CANDIDATE_ID,
    MISSING_REQ_ID,
    MISSING_TERMINAL_TIMESTAMP,
    StageState,
    advance_state,
    build_application,
    build_candidate,
    build_events,
    build_requisition,
)
from ats_pipeline.canonical.context import IngestionContext
from ats_pipeline.canonical.events import ExtractedStageEvent, extract_stage_events
from ats_pipeline.utils.types import AuditAction, ConfidenceGrade, Disposition, EventType


@pytest.fixture
def ctx(ingested_at) -> IngestionContext:
    context = IngestionContext(filename="export.csv", ingested_at=ingested_at)
    context.row_index = 1
    return context


def _event(event_type: EventType, stage: str, canonical: str, at: datetime) -> ExtractedStageEvent:
    return ExtractedStageEvent(stage, canonical, at, f"col:{stage}", at.isoformat(), event_type)


def _build(row: dict[str, str], ctx: IngestionContext):
    headers = list(row)
    events = extract_stage_events(row, headers)
    req = build_requisition(row, headers, ctx)
    candidate = build_candidate(row, headers, ctx)
    return build_application(row, headers, ctx, candidate, req, events), events


def test_missing_req_id_drops_row(icims_row, ctx) -> None:
    row = icims_row({"Job : Requisition ID": "  "})

    assert build_requisition(row, list(row), ctx) is None

    [entry] = ctx.audit.entries
    assert entry.action is AuditAction.DROP_ROW
    assert entry.reason_code == MISSING_REQ_ID
    assert entry.rows_dropped == 1
    assert entry.source_trace.source_row_id == 1
    assert ctx.reqs == {}


def test_missing_candidate_id_drops_row(icims_row, ctx) -> None:
    row = icims_row({"Person : System ID": ""})

    assert build_candidate(row, list(row), ctx) is None
    assert [e.reason_code for e in ctx.audit.entries] == [MISSING_CANDIDATE_ID]


def test_requisition_fields_come_from_cells(icims_row, ctx) -> None:
    row = icims_row()

    req = build_requisition(row, list(row), ctx)

    assert req.req_id == "REQ-100"
    assert req.req_title == "Data Engineer (DE-2)"
    assert req.hiring_manager_id == "hm-jane-doe"
    assert req.recruiter_id == "rec-sam-lee"
    assert req.status == "Open"
    assert req.opened_at is None
    assert req.source_trace.source_file == "export.csv"


def test_closed_date_closes_requisition(icims_row, ctx) -> None:
    row = icims_row({"Date Closed": "3/1/2024"})
    req = build_requisition(row, list(row), ctx)
    assert req.status == "Closed"
    assert req.closed_at == datetime(2024, 3, 1)


def test_missing_title_stays_null(icims_row, ctx) -> None:
    row = icims_row({"Job : Job Title and Job Code": ""})
    assert build_requisition(row, list(row), ctx).req_title is None


def test_repeat_requisition_is_merged(icims_row, ctx) -> None:
    row = icims_row()
    first = build_requisition(row, list(row), ctx)
    ctx.row_index = 2
    second = build_requisition(icims_row({"Job : Job Title and Job Code": "Other"}), list(row), ctx)

    assert second is first
    assert second.req_title == "Data Engineer (DE-2)"
    assert [e.action for e in ctx.audit.entries] == [AuditAction.BUILD_REQ, AuditAction.MERGE]
    assert ctx.audit.entries[-1].rows_merged == 1


def test_candidate_without_source_is_medium(icims_row, ctx) -> None:
    row = icims_row({"Source": ""})

    candidate = build_candidate(row, list(row), ctx)

    assert candidate.source == "Unknown"
    assert candidate.confidence.grade is ConfidenceGrade.MEDIUM
    assert candidate.confidence.inferred_fields == ["source"]


def test_terminal_state_is_absorbing() -> None:
    state = StageState()
    state = advance_state(state, _event(EventType.REJECTED, "Rejected", "REJECTED", datetime(2024, 3, 1)))
    state = advance_state(state, _event(EventType.STAGE_ENTERED, "Onsite", "ONSITE", datetime(2024, 3, 5)))
    state = advance_state(state, _event(EventType.HIRED, "Hired", "HIRED", datetime(2024, 4, 1)))

    assert state.disposition is Disposition.REJECTED
    assert state.current_stage == "Rejected"
    assert state.current_stage_entered_at == datetime(2024, 3, 1)
    assert state.rejected_at == datetime(2024, 3, 1)
    assert state.hired_at == datetime(2024, 4, 1)


def test_offer_moves_stage_without_terminating() -> None:
    state = advance_state(StageState(), _event(EventType.OFFER_SENT, "Offer Letter", "OFFER", datetime(2024, 3, 1)))
    assert state.current_stage_canonical == "OFFER"
    assert state.offer_sent_at == datetime(2024, 3, 1)
    assert not state.is_terminal


def test_hired_application_from_events(icims_row, ctx) -> None:
    row = icims_row({
        "Date First Interviewed: Phone Screen": "1/5/2024 9:00 AM",
        "Hire/Rehire Date": "2/1/2024",
        "Status": "Hired",
    })

    application, events = _build(row, ctx)

    assert len(events) == 2
    assert application.application_id == "P-1-REQ-100"
    assert application.disposition is Disposition.HIRED
    assert application.is_terminal
    assert application.hired_at == datetime(2024, 2, 1)
    assert application.applied_at == datetime(2024, 1, 5, 9, 0)
    assert application.first_contacted_at == datetime(2024, 1, 5, 9, 0)
    assert application.current_stage_entered_at == datetime(2024, 2, 1)
    assert application.missing_timestamps == []
    assert application.confidence.grade is ConfidenceGrade.HIGH
    assert application.stage_timestamps == {
        "Phone Screen": datetime(2024, 1, 5, 9, 0),
        "Hired": datetime(2024, 2, 1),
    }


def test_status_only_rejection_is_flagged(icims_row, ctx) -> None:
    application, events = _build(icims_row({"Status": "Rejected"}), ctx)

    assert events == []
    assert application.disposition is Disposition.REJECTED
    assert application.is_terminal
    assert application.rejected_at is None
    assert application.current_stage_entered_at is None
    assert application.missing_timestamps == ["rejected_at"]
    assert application.confidence.grade is ConfidenceGrade.MEDIUM

    flags = [e for e in ctx.audit.entries if e.reason_code == MISSING_TERMINAL_TIMESTAMP]
    assert len(flags) == 1
    assert flags[0].action is AuditAction.FLAG_MISSING_TIMESTAMP
    assert flags[0].entity_id == "P-1-REQ-100"
    assert flags[0].rows_dropped == 0


def test_status_after_events_without_terminal_event(icims_row, ctx) -> None:
    row = icims_row({"Date First Interviewed: Onsite": "2/10/2024", "Status": "Candidate Withdrew"})

    application, _ = _build(row, ctx)

    assert application.disposition is Disposition.WITHDRAWN
    assert application.missing_timestamps == ["withdrawn_at"]
    assert application.confidence.grade is ConfidenceGrade.MEDIUM


def test_no_events_is_low_confidence(icims_row, ctx) -> None:
    application, _ = _build(icims_row({"Status": "2nd Round Interview"}), ctx)

    assert application.disposition is Disposition.ACTIVE
    assert application.applied_at is None
    assert not application.has_event_history
    assert application.confidence.grade is ConfidenceGrade.LOW


def test_unmapped_status_is_recorded(icims_row, ctx) -> None:
    application, _ = _build(icims_row({"Status": "On Ice"}), ctx)

    assert application.disposition is Disposition.ACTIVE
    [unmapped] = ctx.unmapped_status_report()
    assert unmapped.raw_value == "On Ice"
    assert unmapped.count == 1
    assert unmapped.sample_source_traces[0].source_column == "Status"


def test_explicit_applied_date_wins(icims_row, ctx) -> None:
    row = icims_row({"Applied Date": "12/28/2023", "Date First Interviewed: Phone Screen": "1/5/2024"})
    application, _ = _build(row, ctx)
    assert application.applied_at == datetime(2023, 12, 28)


def test_submission_stage_is_not_first_contact(icims_row, ctx) -> None:
    row = icims_row({
        "Date First Interviewed: Application Submission": "1/2/2024",
        "Date First Interviewed: Phone Screen": "1/9/2024",
    })
    application, _ = _build(row, ctx)
    assert application.applied_at == datetime(2024, 1, 2)
    assert application.first_contacted_at == datetime(2024, 1, 9)


def test_events_trace_their_cells(icims_row, ctx) -> None:
    row = icims_row({
        "Date First Interviewed: Phone Screen": "1/5/2024 9:00 AM",
        "Hire/Rehire Date": "2/1/2024",
    })
    application, extracted = _build(row, ctx)

    events = build_events(application, extracted, ctx)

    assert [e.event_id for e in events] == ["P-1-REQ-100-evt-1", "P-1-REQ-100-evt-2"]
    assert events[1].source_trace.source_column == "Hire/Rehire Date"
    assert events[1].source_trace.raw_value == "2/1/2024"
    assert all(e.confidence.grade is ConfidenceGrade.HIGH for e in events)
    actions = [e.action for e in ctx.audit.entries][-2:]
    assert actions == [AuditAction.EMIT_STAGE_ENTERED, AuditAction.EMIT_TERMINAL_EVENT]
