"""Append-only audit ledger for one ingestion run."""

import logging
from datetime import datetime

from ats_pipeline.canonical.models import AuditLogEntry, SourceTrace
from ats_pipeline.utils.types import AuditAction, Details, EntityType

logger = logging.getLogger(__name__)


class AuditLogger:
    """Records every build, drop, merge, and emit decision of a run.

    Entry ids are a counter local to this instance, so concurrent runs each
    need their own logger. Entries are frozen and never removed.
    """

    def __init__(self) -> None:
        self._entries: list[AuditLogEntry] = []
        self._next_id = 0

    def log(
        self,
        action: AuditAction,
        entity_type: EntityType,
        entity_id: str | None,
        *,
        rows_in: int = 0,
        rows_out: int = 0,
        rows_dropped: int = 0,
        rows_merged: int = 0,
        reason_code: str | None = None,
        details: Details | None = None,
        source_trace: SourceTrace | None = None,
    ) -> AuditLogEntry:
        self._next_id += 1
        entry = AuditLogEntry(
            entry_id=f"audit-{self._next_id}",
            timestamp=datetime.now(),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            rows_in=rows_in,
            rows_out=rows_out,
            rows_dropped=rows_dropped,
            rows_merged=rows_merged,
            reason_code=reason_code,
            details=dict(details) if details else None,
            source_trace=source_trace,
        )
        self._entries.append(entry)
        if reason_code:
            logger.debug("%s %s %s: %s", action, entity_type, entity_id, reason_code)
        return entry

    @property
    def entries(self) -> list[AuditLogEntry]:
        """A copy of the ledger; appending to it does not touch the log."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
