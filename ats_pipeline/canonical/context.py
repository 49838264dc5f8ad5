"""Per-run accumulator threaded through the row loop."""

from dataclasses import dataclass, field
from datetime import datetime

from ats_pipeline.canonical.audit import AuditLogger
from ats_pipeline.canonical.models import (
    ApplicationCanonical,
    CandidateCanonical,
    EventCanonical,
    ReqCanonical,
    SourceTrace,
    UnmappedStatus,
)

MAX_UNMAPPED_TRACES = 3


@dataclass
class IngestionContext:
    """Everything one ingestion run mutates.

    Each run owns its own context; sharing one across runs would interleave
    audit numbering and identity deduplication.
    """

    filename: str
    ingested_at: datetime
    audit: AuditLogger = field(default_factory=AuditLogger)
    row_index: int = 0
    reqs: dict[str, ReqCanonical] = field(default_factory=dict)
    candidates: dict[str, CandidateCanonical] = field(default_factory=dict)
    applications: list[ApplicationCanonical] = field(default_factory=list)
    events: list[EventCanonical] = field(default_factory=list)
    unmapped_statuses: dict[str, list[SourceTrace]] = field(default_factory=dict)
    unmapped_counts: dict[str, int] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def trace(self, column: str | None = None, raw_value: str | None = None) -> SourceTrace:
        return SourceTrace(
            source_file=self.filename,
            source_row_id=self.row_index,
            ingested_at=self.ingested_at,
            source_column=column,
            raw_value=raw_value,
        )

    def note_unmapped_status(self, raw_status: str, trace: SourceTrace) -> None:
        self.unmapped_counts[raw_status] = self.unmapped_counts.get(raw_status, 0) + 1
        traces = self.unmapped_statuses.setdefault(raw_status, [])
        if len(traces) < MAX_UNMAPPED_TRACES:
            traces.append(trace)

    def unmapped_status_report(self) -> list[UnmappedStatus]:
        return [
            UnmappedStatus(raw_value=raw, count=self.unmapped_counts[raw], sample_source_traces=list(traces))
            for raw, traces in self.unmapped_statuses.items()
        ]
