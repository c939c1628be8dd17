"""
normalize.py — cell-level number and date normalisation.

Workbooks uploaded to the fluctuation page use Indonesian number formatting:
``.`` groups thousands and ``,`` marks the decimal part ("1.234,56").
Dates arrive as Excel serials, native datetimes, or one of a handful of text
layouts; all of them collapse into a ``YYYY.MM`` period key.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time
from typing import Any

import pandas as pd

EXCEL_EPOCH = "1899-12-30"
EXCEL_SERIAL_MAX = 2958465
SERIAL_DATE_RANGE = (40000, 60000)

NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
PERIOD_KEY_RE = re.compile(r"^\d{4}\.\d{2}$")

# (pattern, group order): order names which regex group holds day/month/year
TEXT_DATE_PATTERNS = [
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), "dmy"),
    (re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$"), "dmy"),
    (re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$"), "ymd"),
    (re.compile(r"^(\d{4})(\d{2})(\d{2})$"), "ymd"),
]


def normalize_scalar(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        if value.tzinfo is not None:
            value = value.tz_convert(None)
        return value.to_pydatetime()
    if isinstance(value, float) and math.isnan(value):
        return None
    if not isinstance(value, (str, int, float, datetime, date, time)) and pd.isna(value):
        return None
    if isinstance(value, str):
        return value.replace("\x00", "")
    return value


def is_blank(value: Any) -> bool:
    normalized = normalize_scalar(value)
    if normalized is None:
        return True
    return isinstance(normalized, str) and normalized.strip() == ""


def cell_text(value: Any) -> str:
    normalized = normalize_scalar(value)
    if normalized is None:
        return ""
    if isinstance(normalized, bool):
        return str(normalized)
    if isinstance(normalized, float) and normalized.is_integer():
        return str(int(normalized))
    if isinstance(normalized, datetime):
        if normalized.time() == time(0, 0):
            return normalized.strftime("%Y-%m-%d")
        return normalized.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(normalized, date):
        return normalized.strftime("%Y-%m-%d")
    if isinstance(normalized, time):
        return normalized.strftime("%H:%M:%S")
    return str(normalized).strip()


def maybe_parse_number(value: Any) -> float | int | None:
    if isinstance(value, bool):
        return None
    normalized = normalize_scalar(value)
    if normalized is None:
        return None
    if isinstance(normalized, (int, float)):
        return normalized
    if isinstance(normalized, (datetime, date, time)):
        return None
    text = str(normalized).strip()
    if not text:
        return None
    cleaned = text.replace(".", "").replace(",", ".")
    if not NUMBER_RE.fullmatch(cleaned):
        return None
    return float(cleaned)


def parse_number(value: Any) -> float | int:
    """Amount-context parse: empty and unparseable cells count as 0."""
    number = maybe_parse_number(value)
    return 0 if number is None else number


def period_key(year: int, month: int) -> str:
    return f"{year:04d}.{month:02d}"


def is_period_key(text: Any) -> bool:
    return isinstance(text, str) and bool(PERIOD_KEY_RE.fullmatch(text))


def _valid_ymd(year: int, month: int, day: int) -> bool:
    return 1 <= month <= 12 and 1 <= day <= 31 and year >= 1900


def _period_from_text(text: str) -> str | None:
    for pattern, order in TEXT_DATE_PATTERNS:
        match = pattern.fullmatch(text)
        if not match:
            continue
        first, second, third = (int(group) for group in match.groups())
        if order == "dmy":
            day, month, year = first, second, third
        else:
            year, month, day = first, second, third
        if _valid_ymd(year, month, day):
            return period_key(year, month)
    return None


def _period_from_number(number: float) -> str | None:
    if float(number).is_integer() and 19000101 <= number <= 29991231:
        from_compact = _period_from_text(str(int(number)))
        if from_compact:
            return from_compact
    if not 0 < number <= EXCEL_SERIAL_MAX:
        return None
    try:
        parsed = pd.to_datetime(number, unit="D", origin=EXCEL_EPOCH, errors="coerce")
    except (ValueError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return period_key(parsed.year, parsed.month)


def parse_date_to_period(value: Any) -> str:
    """Return the ``YYYY.MM`` period for a date-ish cell.

    Unparseable input comes back as its original string form; callers treat a
    result that fails :func:`is_period_key` as an unknown period.
    """
    normalized = normalize_scalar(value)
    if normalized is None:
        return ""
    if isinstance(normalized, (datetime, date)):
        return period_key(normalized.year, normalized.month)
    if isinstance(normalized, (int, float)) and not isinstance(normalized, bool):
        return _period_from_number(normalized) or str(value)
    text = str(normalized).strip()
    return _period_from_text(text) or str(value)


def looks_like_date(value: Any) -> bool:
    normalized = normalize_scalar(value)
    if normalized is None or isinstance(normalized, bool):
        return False
    if isinstance(normalized, (datetime, date)):
        return True
    if isinstance(normalized, (int, float)):
        low, high = SERIAL_DATE_RANGE
        return low <= normalized <= high
    return _period_from_text(str(normalized).strip()) is not None
