"""Tests for the command-line runner."""

import sys

import pandas as pd
import pytest

from ats_pipeline import run


@pytest.fixture
def export_path(icims_row, make_csv, tmp_path):
    rows = [
        icims_row({
            "Date First Interviewed: Phone Screen": "1/5/2024 9:00 AM",
            "Date First Interviewed: Offer Letter": "1/20/2024",
            "Hire/Rehire Date": "2/1/2024",
        }),
        icims_row({"Person : System ID": "P-2", "Status": "Rejected"}),
    ]
    path = tmp_path / "export.csv"
    path.write_text(make_csv(rows))
    return path


def _run(monkeypatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["ats-pipeline", *map(str, args)])
    run.main()


def test_full_run_writes_tables(monkeypatch, export_path, tmp_path) -> None:
    out = tmp_path / "out"

    _run(monkeypatch, export_path, "--metric", "time_to_hire", "--metric", "days_in_stage",
         "--explain", "--output-dir", out, "--format", "json", "--report", "summary")

    assert sorted(p.name for p in out.glob("*.json") if not p.name.startswith("quality_report")) == [
        "applications.json", "candidates.json", "events.json", "requisitions.json",
    ]
    assert len(list(out.glob("quality_report_*.json"))) == 1


def test_detect_only(monkeypatch, export_path, capsys) -> None:
    _run(monkeypatch, export_path, "--detect-only")
    assert "icims_submittal" in capsys.readouterr().out


def test_missing_file_exits_nonzero(monkeypatch, tmp_path) -> None:
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, tmp_path / "missing.csv")
    assert exc.value.code == 1


def test_headerless_file_exits_nonzero(monkeypatch, tmp_path) -> None:
    path = tmp_path / "blank.csv"
    path.write_text("")
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, path, "--report", "json")
    assert exc.value.code == 1


def test_max_rows_zero_is_honored(monkeypatch, export_path, tmp_path, capsys) -> None:
    out = tmp_path / "out"

    _run(monkeypatch, export_path, "--max-rows", "0", "--output-dir", out)

    assert pd.read_csv(out / "applications.csv").empty
    assert "Processing first 0 of 2 rows" in capsys.readouterr().out
