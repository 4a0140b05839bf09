"""Month arithmetic used to lay out the contract period of a trial.

All helpers are pure and operate on `datetime.date` values. Month counts are
calendar based: days of month only matter for the first/last-day helpers.
"""
import calendar
import numbers
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

from quote_errors import InvalidDate

_MONTHS_PER_YEAR = 12
_ROUND_UP_MONTHS = 6

_FULLWIDTH_DIGITS = str.maketrans("０１２３４５６７８９", "0123456789")
_NUMBER = r"(\d+(?:\.\d+)?)"
_MONTH_UNIT = r"(?:ヶ月|ケ月|か月|カ月|箇月|ヵ月|月)"
_TERM_RE = re.compile(rf"(?:{_NUMBER}\s*年)?\s*(?:{_NUMBER}\s*{_MONTH_UNIT}?)?\s*間?")
_TERM_RANGE_RE = re.compile(rf"{_NUMBER}\s*(年|{_MONTH_UNIT})?\s*[~〜-]\s*{_NUMBER}\s*(年|{_MONTH_UNIT})?\s*間?")
_COMPACT_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_JAPANESE_DATE_RE = re.compile(r"^(\d{4})年(\d{1,2})月(\d{1,2})日$")


def first_day_of_month(value: date) -> date:
    return date(value.year, value.month, 1)


def last_day_of_month(value: date) -> date:
    _, days = calendar.monthrange(value.year, value.month)
    return date(value.year, value.month, days)


def month_diff(start: date, end: date) -> int:
    """Inclusive number of calendar months from `start` to `end`.

    The start month itself is counted, so Jan 2023 -> Jan 2023 is 1.
    """
    return (end.year - start.year) * _MONTHS_PER_YEAR + (end.month - start.month) + 1


def ago_date(value: date, months: int) -> date:
    """First day of the month `months` before `value`."""
    year, month_index = divmod(value.year * _MONTHS_PER_YEAR + value.month - 1 - months, _MONTHS_PER_YEAR)
    return date(year, month_index + 1, 1)


def future_date(value: date, months: int) -> date:
    """Last day of the month `months` after `value`.

    Unlike `ago_date` this lands on the end of the month: it marks the close
    of a period rather than its start.
    """
    year, month_index = divmod(value.year * _MONTHS_PER_YEAR + value.month - 1 + months, _MONTHS_PER_YEAR)
    return last_day_of_month(date(year, month_index + 1, 1))


def round_year(months: Optional[int]) -> Optional[int]:
    """Convert months to whole years, rounding up from 6 leftover months.

    `None` is returned unchanged so a missing treatment term stays blank.
    """
    if months is None:
        return None
    years = int(months / _MONTHS_PER_YEAR)
    remainder = months - years * _MONTHS_PER_YEAR
    return years + 1 if remainder >= _ROUND_UP_MONTHS else years


def to_halfwidth_digits(text: Optional[str]) -> Optional[str]:
    if not text:
        return text
    return text.translate(_FULLWIDTH_DIGITS)


def months_from_text(value: Any) -> Optional[int]:
    """Extract a month count from a free-text treatment term.

    Plain numbers are months and "年" counts 12 months, so "1年6ヶ月" gives 18.
    A range such as "12〜24ヶ月" takes its lower bound. Returns None when the
    text holds no number or uses another unit (weeks, days).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if isinstance(value, (int, float)):
        return int(value)

    text = unicodedata.normalize("NFKC", to_halfwidth_digits(str(value)) or "").strip()
    match = _TERM_RE.fullmatch(text)
    if match and any(match.groups()):
        years, months = match.groups()
        total = float(years or 0) * _MONTHS_PER_YEAR + float(months or 0)
        return int(round(total))

    match = _TERM_RANGE_RE.fullmatch(text)
    if not match:
        return None
    low, low_unit, _, high_unit = match.groups()
    unit = low_unit or high_unit
    total = float(low) * _MONTHS_PER_YEAR if unit == "年" else float(low)
    return int(round(total))


def format_japanese_date(value: date) -> str:
    return f"{value.year}年{value.month}月{value.day}日"


def _invalid(value: Any, field: Optional[str]) -> InvalidDate:
    return InvalidDate(f"Cannot read a date from {value!r}", field=field, value=value)


def parse_date(value: Any, field: Optional[str] = None) -> date:
    """Coerce a form answer (date, datetime, Timestamp or text) to a date.

    Digit-only answers are read as yyyymmdd. Other numbers are rejected rather
    than taken as epoch offsets.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, numbers.Number):
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise _invalid(value, field)
        value = str(value)
        if not _COMPACT_DATE_RE.match(value):
            raise _invalid(value, field)
    if isinstance(value, str):
        value = to_halfwidth_digits(value.strip())
        match = _JAPANESE_DATE_RE.match(value) or _COMPACT_DATE_RE.match(value)
        if match:
            try:
                return date(*(int(part) for part in match.groups()))
            except ValueError as exc:
                raise _invalid(value, field) from exc
    try:
        parsed = pd.to_datetime(value, errors="raise")
    except (ValueError, TypeError, OverflowError) as exc:
        raise _invalid(value, field) from exc
    if parsed is pd.NaT or pd.isna(parsed):
        raise _invalid(value, field)
    return parsed.date()
