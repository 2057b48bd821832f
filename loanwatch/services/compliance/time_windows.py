"""Time-window evaluation for loans and reservations.

Pure functions: days overdue, overdue priority, no-show / expiry checks,
due-soon window and business-calendar bounds. Calendar truncation happens in
the configured business time zone; all returned instants are UTC.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from loanwatch.config import get_settings
from loanwatch.services.compliance.constants import (
    LOAN_STATUS_BORROWED,
    OVERDUE_CRITICAL_DAYS,
    OVERDUE_HIGH_DAYS,
    PRIORITY_CRITICAL,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    RESERVATION_STATUS_READY,
)


class _ReservationLike(Protocol):
    status: str
    start_time: datetime | None


class _LoanLike(Protocol):
    status: str
    expected_return_time: datetime | None


def business_tz() -> ZoneInfo:
    """Return the time zone used for day/week cutoffs."""
    return ZoneInfo(get_settings().business_timezone)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite returns naive values)."""
    if dt is None:
        return None
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt


def local_date(dt: datetime) -> date:
    """Calendar date of dt in the business time zone."""
    return ensure_utc(dt).astimezone(business_tz()).date()


def days_overdue(expected_return_time: datetime | None, now: datetime) -> int:
    """Whole calendar days between the expected return day and today.

    Negative when not yet due, 0 on the due day. A loan with no expected
    return time is treated as due today.
    """
    if expected_return_time is None:
        return 0
    return (local_date(now) - local_date(expected_return_time)).days


def overdue_priority(days: int) -> str:
    """Map days overdue to alert priority: 3+ critical, 1-2 high, 0 medium."""
    if days >= OVERDUE_CRITICAL_DAYS:
        return PRIORITY_CRITICAL
    if days >= OVERDUE_HIGH_DAYS:
        return PRIORITY_HIGH
    if days >= 0:
        return PRIORITY_MEDIUM
    return PRIORITY_LOW


def pickup_deadline(start_time: datetime) -> datetime:
    """Latest pickup time for a ready reservation."""
    return ensure_utc(start_time) + timedelta(hours=get_settings().no_show_grace_hours)


def is_no_show(reservation: _ReservationLike, now: datetime) -> bool:
    """True iff the reservation is still ready and the pickup deadline has passed."""
    if reservation is None or reservation.start_time is None:
        return False
    if reservation.status != RESERVATION_STATUS_READY:
        return False
    return ensure_utc(now) > pickup_deadline(reservation.start_time)


def is_reservation_expired(
    reservation: _ReservationLike,
    now: datetime,
    grace: timedelta = timedelta(0),
) -> bool:
    """Same pickup-deadline rule as is_no_show, with an extra grace period.

    The cleanup job passes a grace so the no-show scan claims stale
    reservations first.
    """
    if reservation is None or reservation.start_time is None:
        return False
    if reservation.status != RESERVATION_STATUS_READY:
        return False
    return ensure_utc(now) > pickup_deadline(reservation.start_time) + grace


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Start and end (inclusive) of a business-calendar day, in UTC."""
    tz = business_tz()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def week_bounds(day: date) -> tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999999 of the week containing day, in UTC."""
    monday = day - timedelta(days=day.weekday())
    start, _ = day_bounds(monday)
    _, end = day_bounds(monday + timedelta(days=6))
    return start, end


def end_of_expected_day(expected_return_time: datetime) -> datetime:
    """Last instant of the expected return day; returns up to then count as on time."""
    return day_bounds(local_date(expected_return_time))[1]


def due_soon_window(now: datetime) -> tuple[datetime, datetime]:
    """(now, end of tomorrow). Loans due inside this window get a reminder."""
    now = ensure_utc(now)
    tomorrow = local_date(now) + timedelta(days=1)
    return now, day_bounds(tomorrow)[1]


def is_due_soon(loan: _LoanLike, now: datetime) -> bool:
    """True if a borrowed loan's expected return falls inside due_soon_window(now)."""
    if loan.status != LOAN_STATUS_BORROWED or loan.expected_return_time is None:
        return False
    start, end = due_soon_window(now)
    return start <= ensure_utc(loan.expected_return_time) <= end
