"""Tests for canonical table export and schema validation."""

import pandas as pd
import pytest

from ats_pipeline.canonical import ingest_csv_to_canonical
from ats_pipeline.canonical.export import build_frames, write_canonical_tables
from ats_pipeline.validation import validate_frames


@pytest.fixture
def result(icims_row, make_csv, options):
    rows = [
        icims_row({
            "Date First Interviewed: Phone Screen": "1/5/2024 9:00 AM",
            "Hire/Rehire Date": "2/1/2024",
        }),
        icims_row({"Person : System ID": "P-2", "Status": "Rejected", "Source": ""}),
    ]
    return ingest_csv_to_canonical(make_csv(rows), "export.csv", options)


def test_frames_flatten_trace_and_confidence(result) -> None:
    frames = build_frames(result)

    assert set(frames) == {"requisitions", "candidates", "applications", "events"}
    events = frames["events"]
    assert len(events) == 2
    assert events["source_column"].tolist() == ["Date First Interviewed: Phone Screen", "Hire/Rehire Date"]
    assert events["raw_value"].tolist() == ["1/5/2024 9:00 AM", "2/1/2024"]
    applications = frames["applications"].set_index("application_id")
    assert applications.loc["P-2-REQ-100", "missing_timestamps"] == "rejected_at"
    assert applications.loc["P-2-REQ-100", "confidence_grade"] == "medium"
    assert "stage_timestamps" not in applications.columns


def test_frames_for_empty_result_keep_columns(make_csv, options) -> None:
    frames = build_frames(ingest_csv_to_canonical(make_csv([]), "empty.csv", options))

    assert frames["events"].empty
    assert "event_at" in frames["events"].columns
    assert all(outcome["valid"] for outcome in validate_frames(frames).values())


def test_exported_tables_pass_schemas(result) -> None:
    outcomes = validate_frames(build_frames(result))
    assert {name: o["valid"] for name, o in outcomes.items()} == {
        "requisitions": True,
        "candidates": True,
        "applications": True,
        "events": True,
    }


def test_schema_catches_bad_disposition(result) -> None:
    frames = build_frames(result)
    frames["applications"].loc[0, "disposition"] = "Ghosted"

    outcome = validate_frames(frames)["applications"]

    assert not outcome["valid"]
    assert any("disposition" in error for error in outcome["errors"])


def test_event_lineage_is_required(result) -> None:
    frames = build_frames(result)
    frames["events"].loc[0, "raw_value"] = None

    outcome = validate_frames(frames)["events"]

    assert not outcome["valid"]
    assert outcome["errors"] == [f"raw_value: 1 of {len(frames['events'])} rows lack a value"]


def test_unregistered_table_rejected(result) -> None:
    with pytest.raises(ValueError, match="offers"):
        validate_frames({"offers": pd.DataFrame()})


def test_write_tables(result, tmp_path) -> None:
    written = write_canonical_tables(result, tmp_path, "csv")

    assert sorted(p.name for p in written) == [
        "applications.csv", "candidates.csv", "events.csv", "requisitions.csv",
    ]
    assert len(pd.read_csv(tmp_path / "applications.csv")) == 2


def test_write_tables_unknown_format(result, tmp_path) -> None:
    with pytest.raises(ValueError):
        write_canonical_tables(result, tmp_path, "xml")
