"""Calendar utilities anchored to the Brasília civil timezone.

Every stored date is significant only at day granularity. Values arriving as
ISO date-time strings (``2024-03-10T03:00:00.000Z``) keep their written date:
the time-of-day is dropped and no timezone conversion is applied, so a due
date stored at UTC midnight never shifts to the previous day.
"""

import calendar
from datetime import date, datetime
from zoneinfo import ZoneInfo

from kredi.config import BRASILIA_TIMEZONE
from kredi.exceptions import ValidationError

DateLike = date | datetime | str


def now(tz: str = BRASILIA_TIMEZONE) -> datetime:
    """Current instant as an aware datetime in the given civil timezone."""
    return datetime.now(ZoneInfo(tz))


def today(tz: str = BRASILIA_TIMEZONE) -> date:
    """Current civil date in ``tz``, regardless of the host timezone.

    The date comes from the timezone database rules for ``tz`` rather than a
    fixed UTC offset, so future daylight-saving changes are honoured.
    """
    return now(tz).date()


def parse_date(value: DateLike) -> date:
    """Coerce a boundary value into a calendar date.

    Parameters
    ----------
    value : date | datetime | str
        A date, a datetime (its own civil date is kept) or an ISO-8601
        date / date-time string.

    Returns
    -------
    date
        The date part of ``value``.

    Raises
    ------
    ValidationError
        If ``value`` is empty or not a recognisable date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        date_part = value.strip().split("T")[0].split(" ")[0]
        try:
            return date.fromisoformat(date_part)
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {value!r}") from exc
    raise ValidationError(f"Invalid date: {value!r}")


def parse_optional_date(value: DateLike | None) -> date | None:
    """Like :func:`parse_date` but lets ``None`` and ``""`` through as ``None``."""
    if value is None or value == "":
        return None
    return parse_date(value)


def resolve_reference(reference_date: DateLike | None, tz: str = BRASILIA_TIMEZONE) -> date:
    """Return ``reference_date`` as a date, defaulting to today in ``tz``."""
    if reference_date is None:
        return today(tz)
    return parse_date(reference_date)


def days_overdue(due_date: DateLike, reference_date: DateLike | None = None) -> int:
    """Whole days ``due_date`` lies before the reference date, never negative."""
    due = parse_date(due_date)
    reference = resolve_reference(reference_date)
    return max(0, (reference - due).days)


def days_until(due_date: DateLike, reference_date: DateLike | None = None) -> int:
    """Signed whole days from the reference date to ``due_date``."""
    return (parse_date(due_date) - resolve_reference(reference_date)).days


def add_months(value: DateLike, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month.

    ``add_months(date(2024, 1, 31), 1)`` is ``date(2024, 2, 29)``, never a
    day in March.
    """
    start = parse_date(value)
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def format_display_date(value: DateLike | None) -> str:
    """Format as ``dd/mm/yyyy`` for display; empty input gives ``""``."""
    if value is None or value == "":
        return ""
    return parse_date(value).strftime("%d/%m/%Y")
