"""Civil date range derivation for ledger queries.

Every range is half-open, ``[start_date, end_date_exclusive)``. "Today" is an
explicit argument everywhere; :func:`civil_today` reads it fresh from the
reference timezone and nothing here memoizes it.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from shared import config
from shared.models import DateRange


class DateRangeError(ValueError):
    """Raised when range inputs cannot describe a valid interval."""


def civil_today(timezone_name: str | None = None) -> date:
    """Return today's civil date in the reference timezone, not the host's."""
    return datetime.now(ZoneInfo(timezone_name or config.app_timezone())).date()


def format_civil_date(value: date) -> str:
    return f"{value.day}/{value.month}/{value.year}"


def month_label(month: int, year: int) -> str:
    return f"tháng {month}/{year}"


def month_range(year: int, month: int) -> DateRange:
    """Return the calendar month ``[first day, first day of next month)``."""
    if not 1 <= month <= 12:
        raise DateRangeError(f"month must be between 1 and 12, got {month}")
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return DateRange(
        start_date=start,
        end_date_exclusive=end,
        label=month_label(month, year),
        month=month,
        year=year,
    )


def month_offset_range(today: date, month_offset: int = 0) -> DateRange:
    """Return the month ``month_offset`` months away from ``today``'s month.

    Floor division keeps negative offsets rolling back across years, so
    January with offset -1 lands in December of the previous year.
    """
    target_index = today.year * 12 + (today.month - 1) + month_offset
    year, month_zero_based = divmod(target_index, 12)
    return month_range(year, month_zero_based + 1)


def explicit_range(start_date: date, end_date_inclusive: date) -> DateRange:
    if end_date_inclusive < start_date:
        raise DateRangeError("end date must not be before start date")
    return DateRange(
        start_date=start_date,
        end_date_exclusive=end_date_inclusive + timedelta(days=1),
        label=f"từ {format_civil_date(start_date)} đến {format_civil_date(end_date_inclusive)}",
    )


def exclusive_range(start_date: date, end_date_exclusive: date) -> DateRange:
    if end_date_exclusive <= start_date:
        raise DateRangeError("end date must be after start date")
    return explicit_range(start_date, end_date_exclusive - timedelta(days=1))


def day_range(day: date) -> DateRange:
    return DateRange(
        start_date=day,
        end_date_exclusive=day + timedelta(days=1),
        label=f"ngày {format_civil_date(day)}",
    )


def trailing_days_range(today: date, days: int = 7) -> DateRange:
    """Return the last ``days`` days, today included."""
    if days < 1:
        raise DateRangeError("days must be positive")
    return explicit_range(today - timedelta(days=days - 1), today)


def derive_range(
    *,
    today: date,
    start_date: date | None = None,
    end_date_inclusive: date | None = None,
    month_offset: int | None = None,
    month: int | None = None,
    year: int | None = None,
) -> DateRange:
    """Resolve the requested period, in priority order.

    1. explicit start and inclusive end dates,
    2. explicit month (year defaults to the current civil year),
    3. month offset relative to ``today`` (default 0).
    """
    if start_date is not None and end_date_inclusive is not None:
        return explicit_range(start_date, end_date_inclusive)

    if month is not None:
        return month_range(year if year is not None else today.year, month)

    return month_offset_range(today, month_offset or 0)
