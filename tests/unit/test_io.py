"""Tests for the CSV tokenizer boundary and table output."""

import json

import pandas as pd
import pytest

from ats_pipeline.utils.io import read_ats_export, tokenize_csv, write_output


def test_cells_stay_literal_strings() -> None:
    document = tokenize_csv("Person : System ID,Status,Source\n007,NA,\n")

    assert document.headers == ["Person : System ID", "Status", "Source"]
    assert document.rows == [{"Person : System ID": "007", "Status": "NA", "Source": ""}]


def test_short_rows_pad_with_empty_strings() -> None:
    document = tokenize_csv("A,B,C\nx\n")
    assert document.rows == [{"A": "x", "B": "", "C": ""}]


def test_headers_are_trimmed() -> None:
    document = tokenize_csv(" Status , Source\nHired,LinkedIn\n")
    assert document.headers == ["Status", "Source"]
    assert document.rows[0]["Status"] == "Hired"


def test_headers_kept_verbatim_when_asked() -> None:
    assert tokenize_csv(" Status \nHired\n", trim_headers=False).headers == [" Status "]


def test_blank_lines_skipped_and_quotes_honored() -> None:
    content = 'Job Title,Status\n"Engineer, Data",Hired\n\n"QA ""Lead""",Rejected\n'
    document = tokenize_csv(content)
    assert [r["Job Title"] for r in document.rows] == ["Engineer, Data", 'QA "Lead"']


def test_empty_document() -> None:
    document = tokenize_csv("")
    assert document.headers == []
    assert document.rows == []


def test_read_export_strips_bom(tmp_path) -> None:
    path = tmp_path / "export.csv"
    path.write_bytes("\ufeffStatus\nHired\n".encode("utf-8"))
    assert tokenize_csv(read_ats_export(path)).headers == ["Status"]


def test_read_export_falls_back_to_latin1(tmp_path) -> None:
    path = tmp_path / "export.csv"
    path.write_bytes("Name\nJosé\n".encode("latin-1"))
    assert "José" in read_ats_export(path)


def test_read_missing_export(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        read_ats_export(tmp_path / "nope.csv")


def test_write_output_formats(tmp_path) -> None:
    df = pd.DataFrame({"req_id": ["REQ-1", "REQ-2"], "events": [1, 0]})

    csv_path = write_output(df, tmp_path / "nested" / "reqs.csv")
    json_path = write_output(df, tmp_path / "reqs.json", fmt="json")

    assert pd.read_csv(csv_path)["req_id"].tolist() == ["REQ-1", "REQ-2"]
    assert json.loads(json_path.read_text())[1] == {"req_id": "REQ-2", "events": 0}


def test_write_output_rejects_unknown_format(tmp_path) -> None:
    with pytest.raises(ValueError, match="xlsx"):
        write_output(pd.DataFrame(), tmp_path / "x.xlsx", fmt="xlsx")
