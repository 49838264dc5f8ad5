"""Date parsing for ATS export cells.

This is the only place a timestamp is allowed to enter the pipeline. A cell
either parses to a real calendar timestamp or stays null with its raw string
preserved; no default or estimated date is ever produced.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime

import pandas as pd

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400

_US_DATETIME = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})\s+(\d{1,2}):(\d{2})(?::(\d{2}))?\s*(AM|PM)?$",
    re.IGNORECASE,
)
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})$")
_ISO_DATETIME = re.compile(r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

# The fallback parser fills absent components from today's date, so it only
# sees cells that spell out a four-digit year, a month and a day.
_TIME = re.compile(
    r"\d{1,2}(?::\d{2}){1,2}(?:\s*[ap]\.?m\.?)?"
    r"|\d{1,2}\s*[ap]\.?m\.?",
    re.IGNORECASE,
)
_TOKEN = re.compile(r"[A-Za-z]+|\d+")
_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")

# Two-digit years pivot the way strptime's %y does.
TWO_DIGIT_YEAR_PIVOT = 69


@dataclass(frozen=True)
class ParsedDate:
    date: datetime | None
    raw: str | None


def _naive(ts: pd.Timestamp) -> datetime:
    """Drop zone info after normalizing to UTC so all timestamps compare."""
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


def _year(text: str) -> int:
    if len(text) == 4:
        return int(text)
    short = int(text)
    return short + (1900 if short >= TWO_DIGIT_YEAR_PIVOT else 2000)


def _names_full_date(raw: str) -> bool:
    """True when the cell holds a four-digit year, a month and a day."""
    tokens = _TOKEN.findall(_TIME.sub(" ", raw))
    years = [t for t in tokens if t.isdigit() and len(t) == 4]
    months = [t for t in tokens if t.isalpha() and t[:3].lower() in _MONTHS]
    numbers = [t for t in tokens if t.isdigit() and len(t) <= 2]
    if len(years) != 1:
        return False
    return len(numbers) >= (1 if months else 2)


def _from_us_datetime(match: re.Match) -> datetime:
    month, day, year, hours, minutes, seconds, meridiem = match.groups()
    hour = int(hours)
    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"hour {hour} out of range for 12-hour clock")
        match meridiem.upper():
            case "PM" if hour != 12:
                hour += 12
            case "AM" if hour == 12:
                hour = 0
    return datetime(_year(year), int(month), int(day), hour, int(minutes), int(seconds or 0))


def _from_us_date(match: re.Match) -> datetime:
    month, day, year = match.groups()
    return datetime(_year(year), int(month), int(day))


def _from_iso(match: re.Match) -> datetime:
    return _naive(pd.Timestamp(match.string))


_FORMATS = (
    (_US_DATETIME, _from_us_datetime),
    (_US_DATE, _from_us_date),
    (_ISO_DATETIME, _from_iso),
    (_ISO_DATE, _from_iso),
)


def parse_date(value: str | None) -> ParsedDate:
    """Parse a raw cell into a timestamp, or null with the raw text kept.

    Patterns are tried in order. A pattern that matches structurally but does
    not describe a real calendar date (``2/30/2024``) falls through to the next
    pattern instead of failing the whole parse.
    """
    if not isinstance(value, str) or not value.strip():
        return ParsedDate(date=None, raw=None)

    raw = value.strip()
    for pattern, build in _FORMATS:
        match = pattern.match(raw)
        if not match:
            continue
        try:
            return ParsedDate(date=build(match), raw=raw)
        except ValueError:
            logger.debug("Pattern %s matched %r but is not a real date", pattern.pattern, raw)

    if _names_full_date(raw):
        try:
            parsed = pd.to_datetime(raw, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            parsed = pd.NaT
        if not pd.isna(parsed):
            return ParsedDate(date=_naive(parsed), raw=raw)

    logger.debug("Unparseable date cell: %r", raw)
    return ParsedDate(date=None, raw=raw)


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end``, floored (negative when out of order)."""
    return math.floor((end - start).total_seconds() / SECONDS_PER_DAY)
