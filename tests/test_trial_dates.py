import os
import sys
from datetime import date, datetime

import pandas as pd
import pytest

# Ensure project root is on sys.path so tests can import local modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quote_errors import InvalidDate
from trial_dates import (
    ago_date,
    first_day_of_month,
    format_japanese_date,
    future_date,
    last_day_of_month,
    month_diff,
    months_from_text,
    parse_date,
    round_year,
)


def test_first_and_last_day_of_month():
    assert first_day_of_month(date(2023, 7, 15)) == date(2023, 7, 1)
    assert last_day_of_month(date(2023, 7, 15)) == date(2023, 7, 31)
    assert last_day_of_month(date(2023, 4, 1)) == date(2023, 4, 30)
    # Leap years
    assert last_day_of_month(date(2024, 2, 3)) == date(2024, 2, 29)
    assert last_day_of_month(date(2023, 2, 3)) == date(2023, 2, 28)


def test_month_diff_counts_start_month():
    assert month_diff(date(2023, 1, 1), date(2023, 1, 31)) == 1
    assert month_diff(date(2023, 1, 1), date(2025, 12, 1)) == 36


def test_month_diff_ignores_day_once_normalized():
    for fpi, lpo in [
        (date(2023, 1, 1), date(2025, 12, 1)),
        (date(2023, 1, 15), date(2025, 12, 31)),
        (date(2023, 1, 31), date(2025, 12, 15)),
    ]:
        assert month_diff(first_day_of_month(fpi), last_day_of_month(lpo)) == 36


def test_ago_date_lands_on_first_day():
    assert ago_date(date(2023, 7, 15), 6) == date(2023, 1, 1)
    assert ago_date(date(2023, 1, 1), 3) == date(2022, 10, 1)
    # Borrow more than one year
    assert ago_date(date(2023, 2, 10), 14) == date(2021, 12, 1)


def test_future_date_lands_on_last_day():
    # Ends on the last day, unlike ago_date which starts on the first
    assert future_date(date(2023, 7, 15), 6) == date(2024, 1, 31)
    assert future_date(date(2025, 12, 31), 3) == date(2026, 3, 31)
    assert future_date(date(2023, 11, 30), 3) == date(2024, 2, 29)
    assert future_date(date(2023, 1, 1), 30) == date(2025, 7, 31)


def test_round_year():
    assert round_year(13) == 1
    assert round_year(6) == 1
    assert round_year(5) == 0
    assert round_year(18) == 2
    assert round_year(24) == 2
    assert round_year(0) == 0


def test_round_year_passes_none_through():
    assert round_year(None) is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("13", 13),
        ("１３", 13),
        ("13ヶ月", 13),
        ("6か月", 6),
        ("2年", 24),
        ("1年6ヶ月", 18),
        ("１年６ヶ月", 18),
        ("2年間", 24),
        ("12〜24ヶ月", 12),
        ("1~2年", 12),
        ("6週", None),
        ("90日", None),
        (13, 13),
        ("未定", None),
        ("", None),
        (None, None),
    ],
)
def test_months_from_text(text, expected):
    assert months_from_text(text) == expected


def test_format_japanese_date_has_no_padding():
    assert format_japanese_date(date(2022, 10, 1)) == "2022年10月1日"
    assert format_japanese_date(date(2026, 3, 31)) == "2026年3月31日"


@pytest.mark.parametrize(
    "value",
    [
        "2023-01-15",
        "2023/01/15",
        "2023年1月15日",
        "２０２３-０１-１５",
        date(2023, 1, 15),
        datetime(2023, 1, 15, 9, 30),
        pd.Timestamp("2023-01-15"),
        "20230115",
        20230115,
    ],
)
def test_parse_date_accepts_form_answers(value):
    assert parse_date(value) == date(2023, 1, 15)


@pytest.mark.parametrize("value", ["not a date", "2023-13-45", "2023年2月30日", ""])
def test_parse_date_rejects_bad_values(value):
    with pytest.raises(InvalidDate) as excinfo:
        parse_date(value, field="FPI (First Patient In)")
    assert excinfo.value.field == "FPI (First Patient In)"


@pytest.mark.parametrize("value", [45000, 0, 44927.5, True, 20231345])
def test_parse_date_rejects_numbers_that_are_not_yyyymmdd(value):
    # Serial numbers must not be taken as nanoseconds since 1970
    with pytest.raises(InvalidDate):
        parse_date(value, field="LPO (Last Patient Out)")
