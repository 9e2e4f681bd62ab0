"""Date helpers for horizon arithmetic.

Everything here works on naive local calendar dates. A horizon cutoff is the
midnight that starts a given local day, so a ``date`` carries all the
information an instant would.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

ISO_DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def now_local() -> datetime:
    """Return the current local datetime (naive).

    Returns:
        Current wall-clock time in the local timezone
    """
    return datetime.now()


def start_of_day(moment: Union[datetime, date]) -> date:
    """Return the calendar day that ``moment`` falls on.

    Args:
        moment: A datetime or date

    Returns:
        The date whose midnight starts the day containing ``moment``
    """
    if isinstance(moment, datetime):
        return moment.date()
    return moment


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def shift_calendar(day: date, years: int = 0, months: int = 0) -> date:
    """Shift a date by whole years/months, normalising overflowing days.

    A day that does not exist in the target month rolls forward into the
    next month (Feb 29 plus one year is Mar 1), matching how most calendar
    libraries normalise out-of-range dates.

    Args:
        day: Starting date
        years: Years to add (may be negative)
        months: Months to add (may be negative)

    Returns:
        The shifted date
    """
    month_index = day.month - 1 + months
    year = day.year + years + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1) + timedelta(days=day.day - 1)


def first_of_next_month(day: date) -> date:
    return shift_calendar(day.replace(day=1), months=1)


def first_of_next_quarter(day: date) -> date:
    quarter_start = ((day.month - 1) // 3) * 3 + 1
    return shift_calendar(date(day.year, quarter_start, 1), months=3)


def first_of_next_year(day: date) -> date:
    return date(day.year + 1, 1, 1)


def parse_weekday(name: Optional[str]) -> int:
    """Parse a weekday name into ``date.weekday()`` numbering.

    Args:
        name: Case-insensitive weekday name, e.g. ``"Sunday"``

    Returns:
        0 for Monday through 6 for Sunday; Monday for anything unrecognised
    """
    if not name:
        return 0
    cleaned = str(name).strip().lower()
    if cleaned in WEEKDAYS:
        return WEEKDAYS.index(cleaned)
    return 0


def format_date(day: date) -> str:
    return day.strftime(ISO_DATE_FORMAT)


def format_time(moment: datetime) -> str:
    return moment.strftime(TIME_FORMAT)
