"""
Tests for date parsing and patient age display.
"""
from datetime import date

import pytest

from dates import age_in_years, display_age, parse_local_date

TODAY = date(2026, 10, 19)


def test_parse_local_date_uses_components():
    d = parse_local_date("2024-03-01")
    assert (d.year, d.month, d.day) == (2024, 3, 1)


def test_parse_local_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_local_date("2024-02-30")
    with pytest.raises(ValueError):
        parse_local_date("not a date")


@pytest.mark.parametrize("dob, expected", [
    ("2026-10-19", "0 meses"),
    ("2026-09-19", "1 mes"),
    ("2026-09-20", "0 meses"),
    ("2026-04-10", "6 meses"),
    # 11 months and 29 days
    ("2025-10-20", "11 meses"),
    ("2025-10-19", "1 año"),
    ("2024-10-20", "1 año"),
    ("2024-10-19", "2 años"),
    ("1980-01-01", "46 años"),
])
def test_display_age(dob, expected):
    assert display_age(dob, today=TODAY) == expected


def test_display_age_invalid_input():
    assert display_age("2026-10-20", today=TODAY) is None
    assert display_age("", today=TODAY) is None
    assert display_age(None, today=TODAY) is None
    assert display_age("garbage", today=TODAY) is None


def test_display_age_accepts_date_objects():
    assert display_age(date(2020, 10, 19), today=TODAY) == "6 años"


def test_age_in_years():
    assert age_in_years("2000-10-19", today=TODAY) == 26
    assert age_in_years("2000-10-20", today=TODAY) == 25
    assert age_in_years("2000-11-01", today=TODAY) == 25


def test_age_in_years_never_negative():
    assert age_in_years("2030-01-01", today=TODAY) == 0
    assert age_in_years("", today=TODAY) == 0
    assert age_in_years("bad", today=TODAY) == 0
