# clinic/utils/dates.py
from datetime import date, datetime, timedelta
from typing import Iterator, Optional


def compute_age(dob: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if not dob:
        return None
    today = today or date.today()
    years = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        years -= 1
    return max(years, 0)


def daterange(start: date, end: date) -> Iterator[date]:
    """Inclusive day range."""
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def parse_hhmm(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%H:%M")
    except ValueError:
        return None
