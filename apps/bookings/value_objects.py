"""Immutable values passed between the repositories and the engine."""

from dataclasses import dataclass
from datetime import date, datetime, time

from apps.core.exceptions import ValidationError


@dataclass(frozen=True)
class DaySchedule:
    """A designer's operating windows on one local calendar date."""

    designer_id: str
    day: date
    is_closed: bool
    windows: tuple[tuple[time, time], ...] = ()


@dataclass(frozen=True)
class SlotQuery:
    """designer_id=None asks for the union across every eligible designer."""

    designer_id: str | None
    day: date
    duration_minutes: int
    service_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.duration_minutes <= 0:
            raise ValidationError('Duration must be a positive number of minutes.')


@dataclass(frozen=True)
class BusyInterval:
    """[start, end) occupied on a designer's calendar."""

    start: datetime
    end: datetime
    booking_id: str


@dataclass(frozen=True)
class DesignerBookingInfo:
    designer_id: str
    closed_dates: tuple[date, ...]
    booking_deadline: datetime | None
