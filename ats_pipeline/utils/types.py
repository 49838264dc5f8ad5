"""Shared type definitions for the canonical ATS pipeline."""

from enum import StrEnum


type RawRow = dict[str, str]
type Headers = list[str]
type Details = dict[str, str | int | float | bool | None | list[str]]
type Filters = dict[str, str | int | bool | None]


class ConfidenceGrade(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Disposition(StrEnum):
    ACTIVE = "Active"
    HIRED = "Hired"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"


class EventType(StrEnum):
    STAGE_ENTERED = "STAGE_ENTERED"
    OFFER_SENT = "OFFER_SENT"
    HIRED = "HIRED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"

    @property
    def is_terminal(self) -> bool:
        return self in (EventType.HIRED, EventType.REJECTED, EventType.WITHDRAWN)


class EventKind(StrEnum):
    POINT_IN_TIME = "POINT_IN_TIME"
    SNAPSHOT_DIFF = "SNAPSHOT_DIFF"


class EventProvenance(StrEnum):
    HISTORICAL_EXPORT = "historical_export"


class ReportType(StrEnum):
    ICIMS_SUBMITTAL = "icims_submittal"
    UNKNOWN = "unknown"


class AuditAction(StrEnum):
    INGEST_FILE = "INGEST_FILE"
    DETECT_REPORT_TYPE = "DETECT_REPORT_TYPE"
    BUILD_REQ = "BUILD_REQ"
    BUILD_CANDIDATE = "BUILD_CANDIDATE"
    BUILD_APPLICATION = "BUILD_APPLICATION"
    MERGE = "MERGE"
    DROP_ROW = "DROP_ROW"
    EMIT_STAGE_ENTERED = "EMIT_STAGE_ENTERED"
    EMIT_TERMINAL_EVENT = "EMIT_TERMINAL_EVENT"
    FLAG_MISSING_TIMESTAMP = "FLAG_MISSING_TIMESTAMP"


class EntityType(StrEnum):
    REQ = "req"
    CANDIDATE = "candidate"
    APPLICATION = "application"
    EVENT = "event"
    FILE = "file"


def grade_from_flags(has_events: bool, missing_terminal: bool) -> ConfidenceGrade:
    """Grade an application from its event coverage."""
    match (has_events, missing_terminal):
        case (_, True):
            return ConfidenceGrade.MEDIUM
        case (False, False):
            return ConfidenceGrade.LOW
        case _:
            return ConfidenceGrade.HIGH
