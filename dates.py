"""
Date helpers

Dates of birth and appointment dates are stored as plain 'YYYY-MM-DD'
strings and always read back as local calendar dates.
"""

from datetime import date
from typing import Optional, Union

DateLike = Union[str, date, None]


def parse_local_date(value: str) -> date:
    """Build a date from its year/month/day components, without any timezone."""
    year, month, day = (int(part) for part in value.strip().split("-"))
    return date(year, month, day)


def _as_date(value: DateLike) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_local_date(value)
    except ValueError:
        return None


def display_age(dob: DateLike, today: Optional[date] = None) -> Optional[str]:
    """
    Age as shown in the patient file: months under one year, years after.

    Returns None when the date of birth is missing, malformed or in the future.
    """
    birth = _as_date(dob)
    if birth is None:
        return None
    today = today or date.today()
    if birth > today:
        return None

    months = (today.year - birth.year) * 12 + (today.month - birth.month)
    # a month only counts once its day has been reached
    if today.day < birth.day:
        months -= 1

    if months < 12:
        if months <= 0:
            return "0 meses"
        if months == 1:
            return "1 mes"
        return f"{months} meses"

    years = months // 12
    if years == 1:
        return "1 año"
    return f"{years} años"


def age_in_years(dob: DateLike, today: Optional[date] = None) -> int:
    birth = _as_date(dob)
    if birth is None:
        return 0
    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return max(age, 0)
