"""Flatten canonical tables into DataFrames for validation and output."""

import logging
from dataclasses import asdict, fields
from enum import Enum
from pathlib import Path

import pandas as pd

from ats_pipeline.canonical.models import (
    ApplicationCanonical,
    CandidateCanonical,
    CanonicalIngestionResult,
    EventCanonical,
    ReqCanonical,
)
from ats_pipeline.utils.io import write_output

logger = logging.getLogger(__name__)

TABLES = {
    "requisitions": ReqCanonical,
    "candidates": CandidateCanonical,
    "applications": ApplicationCanonical,
    "events": EventCanonical,
}
_NESTED = ("source_trace", "confidence", "stage_timestamps")
_TRACE_COLUMNS = ["source_file", "source_row_id", "source_column", "raw_value", "ingested_at"]
_CONFIDENCE_COLUMNS = ["confidence_grade", "confidence_reasons"]


def _columns(record_type: type) -> list[str]:
    own = [f.name for f in fields(record_type) if f.name not in _NESTED]
    return own + _TRACE_COLUMNS + _CONFIDENCE_COLUMNS


def _flatten(record) -> dict:
    data = asdict(record)
    trace = data.pop("source_trace")
    confidence = data.pop("confidence")
    data.pop("stage_timestamps", None)
    for key, value in data.items():
        if isinstance(value, Enum):
            data[key] = value.value
        elif isinstance(value, list):
            data[key] = "; ".join(str(v) for v in value)
    data.update({column: trace[column] for column in _TRACE_COLUMNS})
    data["confidence_grade"] = str(confidence["grade"])
    data["confidence_reasons"] = "; ".join(confidence["reasons"])
    return data


def build_frames(result: CanonicalIngestionResult) -> dict[str, pd.DataFrame]:
    """One DataFrame per canonical table, trace and confidence as flat columns."""
    records = {
        "requisitions": result.reqs,
        "candidates": result.candidates,
        "applications": result.applications,
        "events": result.events,
    }
    return {
        name: pd.DataFrame([_flatten(r) for r in records[name]], columns=_columns(record_type))
        for name, record_type in TABLES.items()
    }


def write_canonical_tables(
    result: CanonicalIngestionResult,
    output_dir: str | Path,
    fmt: str = "csv",
) -> list[Path]:
    output_dir = Path(output_dir)
    suffix = {"csv": "csv", "json": "json", "parquet": "parquet"}.get(fmt)
    if suffix is None:
        raise ValueError(f"Unsupported output format: {fmt}")

    written = []
    for name, frame in build_frames(result).items():
        written.append(write_output(frame, output_dir / f"{name}.{suffix}", fmt=fmt))
    logger.info("Wrote %d canonical tables to %s", len(written), output_dir)
    return written
