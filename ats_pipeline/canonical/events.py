"""Extraction of first-occurrence stage events from one export row.

iCIMS submittal exports carry one ``Date First Interviewed: <Stage>`` column
per workflow stage, holding the first time the candidate entered that stage,
plus terminal date columns. Only cells that parse to a real timestamp become
events.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from ats_pipeline.canonical.columns import HIRE_DATE_COLUMN, STAGE_COLUMN_PREFIX
from ats_pipeline.canonical.dates import parse_date
from ats_pipeline.canonical.status import map_status, stage_rank
from ats_pipeline.utils.types import EventType, Headers, RawRow

logger = logging.getLogger(__name__)

_TERMINAL_STAGES = {
    EventType.HIRED: ("Hired", "HIRED"),
    EventType.REJECTED: ("Rejected", "REJECTED"),
    EventType.WITHDRAWN: ("Withdrawn", "WITHDREW"),
}


@dataclass(frozen=True)
class ExtractedStageEvent:
    stage: str
    stage_canonical: str
    event_at: datetime
    source_column: str
    raw_value: str
    event_type: EventType


def _classify_column(column: str) -> tuple[EventType, str, str] | None:
    """Map a header to ``(event_type, stage, canonical_stage)``, or None."""
    lowered = column.lower()
    if column.startswith(STAGE_COLUMN_PREFIX):
        stage = column.removeprefix(STAGE_COLUMN_PREFIX).strip()
        if "offer letter" in stage.lower():
            return EventType.OFFER_SENT, "Offer Letter", "OFFER"
        return EventType.STAGE_ENTERED, stage, map_status(stage).canonical_stage
    if column == HIRE_DATE_COLUMN:
        event_type = EventType.HIRED
    elif "reject" in lowered and "date" in lowered:
        event_type = EventType.REJECTED
    elif ("withdraw" in lowered or "withdrew" in lowered) and "date" in lowered:
        event_type = EventType.WITHDRAWN
    else:
        return None
    stage, canonical = _TERMINAL_STAGES[event_type]
    return event_type, stage, canonical


def _sort_key(event: ExtractedStageEvent) -> tuple[datetime, int, str]:
    return event.event_at, stage_rank(event.stage_canonical), event.source_column


def extract_stage_events(row: RawRow, headers: Headers) -> list[ExtractedStageEvent]:
    """Emit the row's dated events in chronological order.

    Ties on the exact timestamp are broken by canonical stage order (terminal
    rejections and withdrawals last) and then by column name, so the result
    does not depend on the export's column order. The same event reported by
    two columns (e.g. ``Rejection Date`` and ``Date Rejected``) is kept once.
    """
    events: list[ExtractedStageEvent] = []
    for column in headers:
        if (classified := _classify_column(column)) is None:
            continue
        raw_value = row.get(column) or ""
        if not raw_value.strip():
            continue
        parsed = parse_date(raw_value)
        if parsed.date is None:
            logger.debug("Skipping unparseable %r in column %r", raw_value, column)
            continue
        event_type, stage, canonical = classified
        events.append(ExtractedStageEvent(
            stage=stage,
            stage_canonical=canonical,
            event_at=parsed.date,
            source_column=column,
            raw_value=raw_value,
            event_type=event_type,
        ))

    events.sort(key=_sort_key)

    seen: set[tuple[EventType, str, datetime]] = set()
    unique = []
    for event in events:
        key = (event.event_type, event.stage, event.event_at)
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)
    return unique
