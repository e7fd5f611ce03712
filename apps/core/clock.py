"""
Clock and time-window helpers.

Pure functions only: every function takes `now` explicitly so callers (and
tests) decide what time it is. `current_time()` is the single place that
reads the wall clock.
"""
import calendar
import time as time_module
from datetime import date as date_type, datetime, time as time_type, timedelta

from django.utils import timezone


def current_time() -> datetime:
    return timezone.now()


def local_date(instant: datetime) -> date_type:
    """Calendar date of an aware instant in the configured TIME_ZONE."""
    return timezone.localtime(instant).date()


def local_instant(day: date_type, at: time_type) -> datetime:
    """Aware instant for a wall-clock time on a local calendar date."""
    return timezone.make_aware(datetime.combine(day, at))


def day_bounds(day: date_type) -> tuple[datetime, datetime]:
    """[start, end) instants covering a local calendar date."""
    start = local_instant(day, time_type.min)
    return start, local_instant(day + timedelta(days=1), time_type.min)


def parse_hhmm(value: str) -> time_type:
    """Parse an "HH:MM" wall-clock string."""
    return datetime.strptime(value, '%H:%M').time()


def add_minutes(instant: datetime, minutes: int) -> datetime:
    return instant + timedelta(minutes=minutes)


def add_months(instant: datetime, months: int) -> datetime:
    """Same day-of-month `months` later, clamped to the month's last day."""
    month_index = instant.month - 1 + months
    year = instant.year + month_index // 12
    month = month_index % 12 + 1
    day = min(instant.day, calendar.monthrange(year, month)[1])
    return instant.replace(year=year, month=month, day=day)


def month_key(instant: datetime) -> str:
    """Local calendar month of `instant` as "YYYY-MM"."""
    return timezone.localtime(instant).strftime('%Y-%m')


def is_in_past(instant: datetime, now: datetime) -> bool:
    return instant < now


def is_before_deadline(instant: datetime, deadline: datetime | None) -> bool:
    """True when no deadline is configured or `instant` does not pass it."""
    return deadline is None or instant <= deadline


def more_than_hours_before(instant: datetime, now: datetime, hours: int) -> bool:
    """True if `now` is strictly more than `hours` before `instant`."""
    return instant - now > timedelta(hours=hours)


def intervals_overlap(a_start: datetime, a_end: datetime,
                      b_start: datetime, b_end: datetime) -> bool:
    """True if [a_start, a_end) overlaps [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


class Deadline:
    """
    Absolute cutoff for store I/O, supplied by the caller.

    Built from a relative budget (`Deadline.after(5)`) and measured on the
    monotonic clock so wall-clock adjustments cannot extend it.
    """

    def __init__(self, expires_at: float | None) -> None:
        self._expires_at = expires_at

    @classmethod
    def after(cls, seconds: float | None) -> 'Deadline':
        if seconds is None:
            return cls(None)
        return cls(time_module.monotonic() + seconds)

    @classmethod
    def never(cls) -> 'Deadline':
        return cls(None)

    def remaining(self) -> float | None:
        """Seconds left, or None for an unbounded deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time_module.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def __repr__(self) -> str:
        return f'Deadline(remaining={self.remaining()})'
