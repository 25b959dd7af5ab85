"""
Per-type format checks for declared columns.

Each checker takes a non-empty cell value and returns (status, value, reason):
    VALID  : value already conforms; returned unchanged
    FIXED  : a deterministic correction exists; the corrected value is returned
    INVALID: value does not conform and cannot be fixed; returned unchanged
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable

VALID = "valid"
FIXED = "fixed"
INVALID = "invalid"

MONTH_NAMES = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
ISO_DATETIME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$")
SLASH_YMD_RE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")
DMY_RE = re.compile(r"^(\d{1,2})([/.-])(\d{1,2})\2(\d{4}|\d{2})$")
MONTH_FIRST_RE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})$")
DAY_FIRST_RE = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]+)\.?,?\s+(\d{4})$")

CANONICAL_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
CANONICAL_INTEGER_RE = re.compile(r"^-?\d+$")
EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+'-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")

BOOLEAN_MAP = {
    "true": "true", "t": "true", "yes": "true", "y": "true", "1": "true", "on": "true",
    "false": "false", "f": "false", "no": "false", "n": "false", "0": "false", "off": "false",
}


def _build_date(year: int, month: int, day: int) -> datetime | None:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def _expand_year(year: int) -> int:
    # Two-digit years: 00-49 -> 2000s, 50-99 -> 1900s
    if year >= 100:
        return year
    return 2000 + year if year < 50 else 1900 + year


def _parse_date(value: str, dayfirst: bool) -> tuple[datetime | None, str]:
    m = ISO_DATETIME_RE.match(value)
    if m:
        y, mo, d = (int(part) for part in m.group(1).split("-"))
        return _build_date(y, mo, d), "ISO 8601 datetime truncated to date"

    m = ISO_DATE_RE.match(value)
    if m:
        return _build_date(int(m.group(1)), int(m.group(2)), int(m.group(3))), "ISO date reformatted"

    m = SLASH_YMD_RE.match(value)
    if m:
        return _build_date(int(m.group(1)), int(m.group(2)), int(m.group(3))), "YYYY/MM/DD date reformatted"

    m = DMY_RE.match(value)
    if m:
        a, b, year = int(m.group(1)), int(m.group(3)), _expand_year(int(m.group(4)))
        day_first = _build_date(year, b, a)
        month_first = _build_date(year, a, b)
        if day_first and month_first and day_first != month_first:
            if dayfirst:
                return day_first, "Ambiguous date read day-first as configured"
            return month_first, "Ambiguous date read month-first as configured"
        if day_first:
            return day_first, "DD/MM/YYYY date reformatted"
        if month_first:
            return month_first, "MM/DD/YYYY date reformatted"
        return None, ""

    m = MONTH_FIRST_RE.match(value)
    if m and m.group(1).lower() in MONTH_NAMES:
        return (
            _build_date(int(m.group(3)), MONTH_NAMES[m.group(1).lower()], int(m.group(2))),
            "Written-out month name reformatted",
        )

    m = DAY_FIRST_RE.match(value)
    if m and m.group(2).lower() in MONTH_NAMES:
        return (
            _build_date(int(m.group(3)), MONTH_NAMES[m.group(2).lower()], int(m.group(1))),
            "Written-out month name reformatted",
        )

    return None, ""


def format_date(dt: datetime, output_format: str) -> str:
    """strftime with %Y always rendered as four digits (glibc leaves years below 1000 unpadded)."""
    year = f"{dt.year:04d}"
    return dt.strftime(re.sub(r"%[%Y]", lambda m: year if m.group(0) == "%Y" else "%%", output_format))


def check_date(value: str, *, output_format: str = "%Y-%m-%d", dayfirst: bool = False) -> tuple[str, str, str]:
    v = value.strip()
    try:
        if format_date(datetime.strptime(v, output_format), output_format) == v:
            return VALID, value, ""
    except ValueError:
        pass

    parsed, reason = _parse_date(v, dayfirst)
    if parsed is None:
        return INVALID, value, f"'{value}' is not a valid date"
    return FIXED, format_date(parsed, output_format), reason


def _normalise_number_text(value: str) -> str | None:
    v = value.strip().replace("\u00a0", " ")
    v = re.sub(r"[€£¥₹$]", "", v)
    v = re.sub(r"\s*\b(USD|EUR|GBP|INR|CAD|AUD|JPY|BRL)\b\s*", "", v, flags=re.IGNORECASE).strip()

    # Accounting negatives: (500) -> -500
    m = re.match(r"^\(([0-9,. ]+)\)$", v)
    if m:
        v = "-" + m.group(1)
    if v.startswith("+"):
        v = v[1:]
    v = v.replace(" ", "")

    if "," in v and "." in v:
        if v.rindex(".") < v.rindex(","):
            v = v.replace(".", "").replace(",", ".")
        else:
            v = v.replace(",", "")
    elif "," in v:
        if re.search(r",\d{1,2}$", v) and v.count(",") == 1:
            v = v.replace(",", ".")
        elif re.fullmatch(r"-?\d{1,3}(,\d{3})+", v):
            v = v.replace(",", "")
        else:
            return None
    elif v.count(".") > 1 and re.fullmatch(r"-?\d{1,3}(\.\d{3})+", v):
        v = v.replace(".", "")

    return v if CANONICAL_NUMBER_RE.match(v) else None


def check_numeric(value: str) -> tuple[str, str, str]:
    if CANONICAL_NUMBER_RE.match(value):
        return VALID, value, ""
    fixed = _normalise_number_text(value)
    if fixed is None:
        return INVALID, value, f"'{value}' is not a number"
    return FIXED, fixed, "Currency symbols, signs and separators normalised"


def check_integer(value: str) -> tuple[str, str, str]:
    if CANONICAL_INTEGER_RE.match(value):
        return VALID, value, ""
    fixed = _normalise_number_text(value)
    if fixed is not None and re.fullmatch(r"-?\d+\.0+", fixed):
        fixed = fixed.split(".")[0]
    if fixed is None or not CANONICAL_INTEGER_RE.match(fixed):
        return INVALID, value, f"'{value}' is not an integer"
    return FIXED, fixed, "Integer separators and zero decimals removed"


def check_email(value: str) -> tuple[str, str, str]:
    if EMAIL_RE.match(value):
        return VALID, value, ""
    v = value.strip()
    if v.lower().startswith("mailto:"):
        v = v[len("mailto:"):]
    v = v.strip("<>").replace(" ", "")
    if "@" in v:
        local, _, domain = v.rpartition("@")
        v = f"{local}@{domain.lower()}"
    if EMAIL_RE.match(v):
        return FIXED, v, "Email address cleaned up"
    return INVALID, value, f"'{value}' is not an email address"


def check_boolean(value: str) -> tuple[str, str, str]:
    if value in ("true", "false"):
        return VALID, value, ""
    mapped = BOOLEAN_MAP.get(value.strip().lower())
    if mapped is None:
        return INVALID, value, f"'{value}' is not a boolean"
    return FIXED, mapped, f"Boolean '{value}' standardised"


def check_text(value: str) -> tuple[str, str, str]:
    return VALID, value, ""


COLUMN_TYPES = ("date", "numeric", "integer", "email", "boolean", "text")


def checker_for(column_type: str, *, date_output_format: str = "%Y-%m-%d", dayfirst: bool = False) -> Callable[[str], tuple[str, str, str]]:
    if column_type == "date":
        return lambda value: check_date(value, output_format=date_output_format, dayfirst=dayfirst)
    return {
        "numeric": check_numeric,
        "integer": check_integer,
        "email":   check_email,
        "boolean": check_boolean,
        "text":    check_text,
    }[column_type]
