"""Canonical record types with source traceability.

Every record and event carries a :class:`SourceTrace` back to the literal
file, row, and (for events) column and cell it came from. Timestamps are
``None`` whenever the export did not contain them.
"""

from dataclasses import dataclass, field
from datetime import datetime

from ats_pipeline.utils.types import (
    AuditAction,
    ConfidenceGrade,
    Details,
    Disposition,
    EntityType,
    EventKind,
    EventProvenance,
    EventType,
    ReportType,
)


@dataclass(frozen=True)
class SourceTrace:
    source_file: str
    source_row_id: int
    ingested_at: datetime
    source_column: str | None = None
    raw_value: str | None = None


@dataclass(frozen=True)
class ConfidenceMetadata:
    grade: ConfidenceGrade
    reasons: list[str] = field(default_factory=list)
    inferred_fields: list[str] = field(default_factory=list)


@dataclass
class ReqCanonical:
    """A requisition. ``last_activity_at`` is advanced by the orchestrator as
    later rows for the same requisition reveal later events; nothing else
    changes after construction."""

    req_id: str
    req_title: str | None
    department: str | None
    location: str | None
    hiring_manager_id: str | None
    hiring_manager_name: str | None
    recruiter_id: str | None
    recruiter_name: str | None
    status: str
    opened_at: datetime | None
    closed_at: datetime | None
    source_trace: SourceTrace
    confidence: ConfidenceMetadata
    function: str | None = None
    level: str | None = None
    job_family: str | None = None
    location_type: str | None = None
    is_reopened: bool = False
    reopen_count: int = 0
    last_activity_at: datetime | None = None


@dataclass(frozen=True)
class CandidateCanonical:
    candidate_id: str
    name: str | None
    email: str | None
    source: str
    source_category: str
    source_trace: SourceTrace
    confidence: ConfidenceMetadata


@dataclass(frozen=True)
class ApplicationCanonical:
    application_id: str
    candidate_id: str
    req_id: str
    current_stage: str
    current_stage_canonical: str
    disposition: Disposition
    is_terminal: bool
    applied_at: datetime | None
    first_contacted_at: datetime | None
    current_stage_entered_at: datetime | None
    hired_at: datetime | None
    offer_sent_at: datetime | None
    rejected_at: datetime | None
    withdrawn_at: datetime | None
    stage_timestamps: dict[str, datetime]
    source_trace: SourceTrace
    confidence: ConfidenceMetadata
    has_event_history: bool
    event_count: int
    missing_timestamps: list[str]


@dataclass(frozen=True)
class EventCanonical:
    event_id: str
    application_id: str
    candidate_id: str
    req_id: str
    event_type: EventType
    stage: str
    stage_canonical: str
    event_at: datetime
    source_trace: SourceTrace
    confidence: ConfidenceMetadata
    actor_user_id: str | None = None
    event_kind: EventKind = EventKind.POINT_IN_TIME
    event_provenance: EventProvenance = EventProvenance.HISTORICAL_EXPORT
    as_of_date: datetime | None = None


@dataclass(frozen=True)
class AuditLogEntry:
    entry_id: str
    timestamp: datetime
    action: AuditAction
    entity_type: EntityType
    entity_id: str | None
    rows_in: int = 0
    rows_out: int = 0
    rows_dropped: int = 0
    rows_merged: int = 0
    reason_code: str | None = None
    details: Details | None = None
    source_trace: SourceTrace | None = None


@dataclass(frozen=True)
class UnavailableMetric:
    metric: str
    reason: str


@dataclass(frozen=True)
class DataCapabilities:
    has_point_in_time_events: bool
    has_snapshot_diff_events: bool
    can_compute_stage_velocity: bool
    can_compute_days_in_stage: bool
    can_compute_stage_regression: bool
    can_compute_sla_timing: bool
    can_compute_friction_heatmap: bool
    can_compute_forecasting: bool
    available_metrics: list[str]
    unavailable_metrics: list[UnavailableMetric]


@dataclass(frozen=True)
class MissingnessStats:
    field: str
    total_records: int
    missing_count: int
    missing_percent: float
    sample_ids: list[str]


@dataclass(frozen=True)
class DuplicateStats:
    entity_type: str
    duplicate_count: int
    unique_count: int
    duplicate_keys: list[str]
    resolution: str


@dataclass(frozen=True)
class OrphanStats:
    entity_type: str
    orphan_count: int
    total_count: int
    orphan_percent: float
    orphan_ids: list[str]
    missing_parent_type: str


@dataclass(frozen=True)
class UnmappedStatus:
    raw_value: str
    count: int
    sample_source_traces: list[SourceTrace]


@dataclass(frozen=True)
class ConfidenceRuleResult:
    rule_name: str
    rule_description: str
    passed: bool
    affected_count: int
    total_count: int
    sample_ids: list[str]


@dataclass(frozen=True)
class CanonicalQualityReport:
    generated_at: datetime
    total_files_processed: int
    total_rows_processed: int
    total_rows_accepted: int
    total_rows_dropped: int
    reqs_count: int
    candidates_count: int
    applications_count: int
    events_count: int
    overall_quality_score: int
    missingness: list[MissingnessStats]
    duplicates: list[DuplicateStats]
    orphans: list[OrphanStats]
    unmapped_statuses: list[UnmappedStatus]
    unmapped_columns: list[str]
    confidence_rules: list[ConfidenceRuleResult]
    low_confidence_count: int
    inferred_values_count: int
    capabilities: DataCapabilities
    warnings: list[str]
    errors: list[str]


@dataclass(frozen=True)
class IngestionStats:
    files_processed: int
    total_rows: int
    processing_time_ms: float
    report_types_detected: list[ReportType]
    events_emitted: int
    point_in_time_events: int
    snapshot_diff_events: int


@dataclass(frozen=True)
class CanonicalIngestionResult:
    success: bool
    reqs: list[ReqCanonical]
    candidates: list[CandidateCanonical]
    applications: list[ApplicationCanonical]
    events: list[EventCanonical]
    capabilities: DataCapabilities
    audit_log: list[AuditLogEntry]
    quality_report: CanonicalQualityReport
    stats: IngestionStats
    errors: list[str]
    warnings: list[str]
