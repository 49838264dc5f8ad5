"""Pandera schemas for the exported canonical tables."""

import pandas as pd
import pandera as pa
from pandera import Check, Column

from ats_pipeline.utils.types import ConfidenceGrade, Disposition, EventKind, EventType
from ats_pipeline.utils.validators import ValidationResult, validate_dataframe, validate_required_values

GRADES = [g.value for g in ConfidenceGrade]


requisition_schema = pa.DataFrameSchema(
    {
        "req_id": Column(str, Check.str_length(min_value=1)),
        "req_title": Column(str, nullable=True),
        "status": Column(str, Check.isin(["Open", "Closed", "On Hold", "Cancelled"])),
        "opened_at": Column(pa.DateTime, nullable=True),
        "closed_at": Column(pa.DateTime, nullable=True),
        "last_activity_at": Column(pa.DateTime, nullable=True),
        "source_row_id": Column(int, Check.greater_than_or_equal_to(1)),
        "confidence_grade": Column(str, Check.isin(GRADES)),
    },
    strict=False,
    coerce=True,
)


candidate_schema = pa.DataFrameSchema(
    {
        "candidate_id": Column(str, Check.str_length(min_value=1)),
        "source": Column(str),
        "source_category": Column(str),
        "source_row_id": Column(int, Check.greater_than_or_equal_to(1)),
        "confidence_grade": Column(str, Check.isin(GRADES)),
    },
    strict=False,
    coerce=True,
)


application_schema = pa.DataFrameSchema(
    {
        "application_id": Column(str),
        "candidate_id": Column(str),
        "req_id": Column(str),
        "disposition": Column(str, Check.isin([d.value for d in Disposition])),
        "is_terminal": Column(bool),
        "applied_at": Column(pa.DateTime, nullable=True),
        "first_contacted_at": Column(pa.DateTime, nullable=True),
        "hired_at": Column(pa.DateTime, nullable=True),
        "offer_sent_at": Column(pa.DateTime, nullable=True),
        "rejected_at": Column(pa.DateTime, nullable=True),
        "withdrawn_at": Column(pa.DateTime, nullable=True),
        "event_count": Column(int, Check.greater_than_or_equal_to(0)),
        "confidence_grade": Column(str, Check.isin(GRADES)),
    },
    strict=False,
    coerce=True,
)


event_schema = pa.DataFrameSchema(
    {
        "event_id": Column(str),
        "application_id": Column(str),
        "event_type": Column(str, Check.isin([t.value for t in EventType])),
        "event_kind": Column(str, Check.isin([k.value for k in EventKind])),
        "event_at": Column(pa.DateTime, nullable=False),
        "confidence_grade": Column(str, Check.isin([ConfidenceGrade.HIGH.value])),
    },
    strict=False,
    coerce=True,
)


TABLE_SCHEMAS = {
    "requisitions": requisition_schema,
    "candidates": candidate_schema,
    "applications": application_schema,
    "events": event_schema,
}

# Every event must point at the literal cell it came from.
EVENT_LINEAGE_COLUMNS = ["source_column", "raw_value"]


def validate_frames(frames: dict[str, pd.DataFrame]) -> dict[str, ValidationResult]:
    """Validate each exported table against its schema."""
    results: dict[str, ValidationResult] = {}
    for name, frame in frames.items():
        match name:
            case name if name in TABLE_SCHEMAS:
                outcome = validate_dataframe(frame, TABLE_SCHEMAS[name])
            case other:
                raise ValueError(f"No schema registered for: {other}")
        if name == "events" and outcome["valid"]:
            outcome = validate_required_values(frame, EVENT_LINEAGE_COLUMNS)
        results[name] = outcome
    return results
