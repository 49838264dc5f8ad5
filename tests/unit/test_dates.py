"""Tests for cell date parsing."""

from datetime import datetime

import pytest

from ats_pipeline.canonical.dates import ParsedDate, days_between, parse_date


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1/5/2024 9:00 AM", datetime(2024, 1, 5, 9, 0)),
        ("1/5/2024 12:30 PM", datetime(2024, 1, 5, 12, 30)),
        ("1/5/2024 12:15 AM", datetime(2024, 1, 5, 0, 15)),
        ("1/5/2024 9:00:30 pm", datetime(2024, 1, 5, 21, 0, 30)),
        ("1/5/2024 14:05", datetime(2024, 1, 5, 14, 5)),
        ("2/1/2024", datetime(2024, 2, 1)),
        ("1/5/24", datetime(2024, 1, 5)),
        ("1/5/24 9:00 AM", datetime(2024, 1, 5, 9, 0)),
        ("12/31/99", datetime(1999, 12, 31)),
        ("2024-01-05", datetime(2024, 1, 5)),
        ("2024-01-05T09:30:00", datetime(2024, 1, 5, 9, 30)),
        ("2024-01-05T09:30:00Z", datetime(2024, 1, 5, 9, 30)),
        ("2024-01-05T09:30:00+02:00", datetime(2024, 1, 5, 7, 30)),
    ],
)
def test_recognized_formats(raw, expected) -> None:
    """Each supported layout parses to the literal timestamp it names."""
    assert parse_date(raw) == ParsedDate(date=expected, raw=raw)


def test_surrounding_whitespace_is_trimmed() -> None:
    parsed = parse_date("  2/1/2024 ")
    assert parsed.date == datetime(2024, 2, 1)
    assert parsed.raw == "2/1/2024"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_blank_cells_have_no_raw_value(raw) -> None:
    assert parse_date(raw) == ParsedDate(date=None, raw=None)


@pytest.mark.parametrize("raw", ["N/A", "pending", "2/30/2024", "2024", "13/45/2024 10:00"])
def test_unparseable_cells_keep_raw_string(raw) -> None:
    """Anything that is not a real calendar date stays null with its text preserved."""
    parsed = parse_date(raw)
    assert parsed.date is None
    assert parsed.raw == raw


def test_fallback_handles_spelled_out_dates() -> None:
    assert parse_date("January 5, 2024").date == datetime(2024, 1, 5)


@pytest.mark.parametrize("raw", ["March 2024 9am", "March 2024", "2024 10:30 AM", "5 2024"])
def test_fallback_rejects_dates_missing_a_component(raw) -> None:
    """A cell without a year, month and day never gets one filled in."""
    assert parse_date(raw) == ParsedDate(date=None, raw=raw)


def test_days_between_floors_partial_days() -> None:
    start = datetime(2024, 1, 1, 9, 0)
    assert days_between(start, datetime(2024, 1, 2, 8, 0)) == 0
    assert days_between(start, datetime(2024, 1, 3, 9, 0)) == 2
    assert days_between(start, datetime(2024, 1, 1, 8, 0)) == -1
