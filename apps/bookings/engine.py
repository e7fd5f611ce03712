"""
Slot engine: pure scheduling logic, no HTTP/request awareness.

Public API:
  SlotAvailabilityCalculator(schedules, bookings)
      .compute_slots(designer_id, day, duration_minutes, now)
      .is_offerable(designer_id, start_time, duration_minutes, now)
      .designer_booking_info(designer_id, start, end)
  get_available_slots(designer_id, day, service_ids, now=None, option_item_ids=())
  normalize_designer_id(value)
"""
import logging
import uuid
from datetime import date as date_type, datetime, timedelta

from django.conf import settings

from apps.core.clock import (
    Deadline,
    add_minutes,
    current_time,
    day_bounds,
    intervals_overlap,
    is_before_deadline,
    is_in_past,
    local_date,
    local_instant,
)
from apps.core.exceptions import ErrorCode, NotFoundError, ValidationError
from apps.services.catalog import (
    normalize_ids,
    resolve_option_items,
    resolve_services,
    total_duration,
)

from .stores.interfaces import BookingRepository, ScheduleRepository
from .value_objects import BusyInterval, DesignerBookingInfo, SlotQuery

logger = logging.getLogger(__name__)

ANY_DESIGNER = 'any'


def normalize_designer_id(value) -> str | None:
    """Canonical designer id, or None for the designer-agnostic mode."""
    if value is None or str(value).strip() in ('', ANY_DESIGNER):
        return None
    try:
        return str(uuid.UUID(str(value).strip()))
    except ValueError as exc:
        raise ValidationError(f"Invalid designer id '{value}'.") from exc


class SlotAvailabilityCalculator:
    """
    Computes offerable start instants on a designer's calendar.

    A candidate survives when it lies on the grid of an operating window
    (and ends inside it), does not overlap any non-cancelled booking, is not
    before `now`, and does not pass the effective booking deadline.
    """

    def __init__(self, schedules: ScheduleRepository, bookings: BookingRepository,
                 interval_minutes: int | None = None, buffer_minutes: int | None = None) -> None:
        self.schedules = schedules
        self.bookings = bookings
        self.interval_minutes = interval_minutes or settings.SLOT_INTERVAL_MINUTES
        self.buffer_minutes = (
            settings.BOOKING_BUFFER_MINUTES if buffer_minutes is None else buffer_minutes
        )

    # ── Public ────────────────────────────────────────────────────────────────

    def compute_slots(self, designer_id, day: date_type, duration_minutes: int,
                      now: datetime | None = None, *, service_ids=(),
                      exclude_booking_id: str | None = None) -> list[datetime]:
        """
        Ordered offerable start instants.

        designer_id=None evaluates every active designer able to perform
        `service_ids` and returns the union, deduplicated and sorted.
        """
        query = SlotQuery(normalize_designer_id(designer_id), day, duration_minutes, tuple(service_ids))
        now = now or current_time()

        if query.designer_id is not None:
            return self._designer_slots(query.designer_id, query.day, query.duration_minutes,
                                        now, exclude_booking_id)

        union = set()
        for candidate_id in self.schedules.list_designer_ids(query.service_ids):
            union.update(self._designer_slots(candidate_id, query.day, query.duration_minutes, now))
        return sorted(union)

    def is_offerable(self, designer_id: str, start_time: datetime, duration_minutes: int,
                     now: datetime | None = None, exclude_booking_id: str | None = None) -> bool:
        """True if `start_time` is one of the slots computed for its local date."""
        slots = self.compute_slots(
            designer_id, local_date(start_time), duration_minutes, now,
            exclude_booking_id=exclude_booking_id,
        )
        return start_time in slots

    def designer_booking_info(self, designer_id, start: date_type, end: date_type) -> DesignerBookingInfo:
        """Closed dates in [start, end] and the effective booking deadline."""
        key = normalize_designer_id(designer_id)
        if key is None or not self.schedules.designer_exists(key):
            raise NotFoundError('Designer not found.', code=ErrorCode.DESIGNER_NOT_FOUND)
        if end < start:
            raise ValidationError('Range end must not be before its start.')
        return DesignerBookingInfo(
            designer_id=key,
            closed_dates=tuple(self.schedules.get_closed_dates(key, start, end)),
            booking_deadline=self.schedules.get_booking_deadline(key),
        )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _designer_slots(self, designer_id: str, day: date_type, duration_minutes: int,
                        now: datetime, exclude_booking_id: str | None = None) -> list[datetime]:
        schedule = self.schedules.get_day_schedule(designer_id, day)
        if schedule is None:
            raise NotFoundError('Designer not found.', code=ErrorCode.DESIGNER_NOT_FOUND)
        if schedule.is_closed:
            return []

        deadline = self.schedules.get_booking_deadline(designer_id)
        if deadline is not None and day > local_date(deadline):
            return []

        candidates = self._grid(day, schedule.windows, duration_minutes)
        if not candidates:
            return []

        busy = self._busy_intervals(designer_id, day, exclude_booking_id)
        slots = []
        for start in candidates:
            end = add_minutes(start, duration_minutes)
            if any(intervals_overlap(start, end, b.start, b.end) for b in busy):
                continue
            if is_in_past(start, now) or not is_before_deadline(start, deadline):
                continue
            slots.append(start)
        return slots

    def _grid(self, day: date_type, windows, duration_minutes: int) -> list[datetime]:
        """Grid points whose [start, start + duration) fits inside a window."""
        points = set()
        for opens, closes in windows:
            cursor = local_instant(day, opens)
            window_end = local_instant(day, closes)
            while add_minutes(cursor, duration_minutes) <= window_end:
                points.add(cursor)
                cursor = add_minutes(cursor, self.interval_minutes)
        return sorted(points)

    def _busy_intervals(self, designer_id: str, day: date_type,
                        exclude_booking_id: str | None) -> list[BusyInterval]:
        day_start, day_end = day_bounds(day)
        # Bookings from the previous day may run past midnight.
        rows = self.bookings.list_active_for_designer(
            designer_id, day_start - timedelta(days=1), day_end, exclude_id=exclude_booking_id,
        )
        return [
            BusyInterval(
                start=b.start_time,
                end=add_minutes(b.end_time, self.buffer_minutes),
                booking_id=str(b.id),
            )
            for b in rows
        ]


def default_calculator(deadline: Deadline | None = None) -> SlotAvailabilityCalculator:
    from .stores.django_store import DjangoBookingRepository, DjangoScheduleRepository

    return SlotAvailabilityCalculator(
        DjangoScheduleRepository(deadline),
        DjangoBookingRepository(deadline),
    )


def get_available_slots(designer_id, day: date_type, service_ids,
                        now: datetime | None = None,
                        deadline: Deadline | None = None,
                        option_item_ids=()) -> list[datetime]:
    """
    Slots for booking `service_ids` back to back on `day`.

    Picked option items lengthen the occupied interval. designer_id None or
    "any" returns the union across eligible designers.
    """
    services = resolve_services(service_ids, deadline=deadline)
    option_items = resolve_option_items(option_item_ids, services, deadline=deadline)
    calculator = default_calculator(deadline)
    slots = calculator.compute_slots(
        designer_id, day, total_duration(services, option_items), now,
        service_ids=tuple(normalize_ids(service_ids)),
    )
    logger.debug('%d slots for designer=%s day=%s services=%s',
                 len(slots), designer_id or ANY_DESIGNER, day, len(services))
    return slots
