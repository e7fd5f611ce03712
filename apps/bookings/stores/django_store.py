"""Django ORM implementation of the booking and schedule stores.

Every store is built with the caller's Deadline: reads go through
read_with_retry and units of work through atomic_block, both bounded by it.
"""

from datetime import date, datetime

from django.db import transaction

from apps.bookings.models import Booking, BookingStatus, BookingStatusLog
from apps.bookings.stores.interfaces import BookingRepository, ScheduleRepository
from apps.bookings.value_objects import DaySchedule
from apps.core.clock import Deadline
from apps.core.db import atomic_block, read_with_retry
from apps.designers.models import BookingSettings, BusinessHours, Designer


class DjangoScheduleRepository(ScheduleRepository):
    """Designer calendars from the Designer / BusinessHours tables."""

    def __init__(self, deadline: Deadline | None = None) -> None:
        self.deadline = deadline

    def _read(self, fn, *args):
        return read_with_retry(fn, *args, deadline=self.deadline)

    def get_day_schedule(self, designer_id: str, day: date) -> DaySchedule | None:
        def load():
            designer = Designer.objects.filter(id=designer_id, is_active=True).first()
            if designer is None:
                return None
            hours = BusinessHours.objects.filter(designer=designer, date=day).first()
            if hours is not None:
                return DaySchedule(str(designer.id), day, hours.is_closed, tuple(hours.windows()))
            windows = ()
            if designer.opening_time < designer.closing_time:
                windows = ((designer.opening_time, designer.closing_time),)
            return DaySchedule(str(designer.id), day, False, windows)
        return self._read(load)

    def get_booking_deadline(self, designer_id: str | None) -> datetime | None:
        def load():
            if designer_id is not None:
                own = (Designer.objects.filter(id=designer_id)
                       .values_list('booking_deadline', flat=True).first())
                if own is not None:
                    return own
            return (BookingSettings.objects.filter(pk=1)
                    .values_list('booking_deadline', flat=True).first())
        return self._read(load)

    def get_closed_dates(self, designer_id: str, start: date, end: date) -> list[date]:
        return self._read(lambda: list(
            BusinessHours.objects
            .filter(designer_id=designer_id, is_closed=True, date__gte=start, date__lte=end)
            .order_by('date')
            .values_list('date', flat=True)
        ))

    def list_designer_ids(self, service_ids: tuple[str, ...] = ()) -> list[str]:
        def load():
            qs = Designer.objects.filter(is_active=True)
            for service_id in service_ids:
                qs = qs.filter(services__id=service_id)
            return [str(pk) for pk in qs.order_by('id').values_list('id', flat=True).distinct()]
        return self._read(load)

    def designer_exists(self, designer_id: str) -> bool:
        return self._read(lambda: Designer.objects.filter(id=designer_id, is_active=True).exists())


class DjangoBookingRepository(BookingRepository):
    """PostgreSQL-backed booking store using Django ORM."""

    def __init__(self, deadline: Deadline | None = None) -> None:
        self.deadline = deadline

    def _read(self, fn, *args):
        return read_with_retry(fn, *args, deadline=self.deadline)

    def atomic(self):
        return atomic_block(self.deadline)

    def on_commit(self, callback) -> None:
        transaction.on_commit(callback)

    def get(self, booking_id: str, for_update: bool = False) -> Booking | None:
        if for_update:
            return self._read(lambda: Booking.objects.select_for_update().filter(id=booking_id).first())
        return self._read(lambda: Booking.objects.select_related('designer').filter(id=booking_id).first())

    def get_by_request_key(self, request_key: str) -> Booking | None:
        return self._read(lambda: Booking.objects.filter(request_key=request_key).first())

    def lock_designer(self, designer_id: str) -> None:
        # Row lock on the designer serializes creates/reschedules on their calendar,
        # including inserts that no existing booking row could have blocked.
        self._read(lambda: list(Designer.objects.select_for_update().filter(id=designer_id).values_list('id')))

    def _active(self, designer_id, start, end):
        return (Booking.objects
                .filter(designer_id=designer_id, start_time__gte=start, start_time__lt=end)
                .exclude(status=BookingStatus.CANCELLED))

    def list_active_for_designer(self, designer_id: str, start: datetime, end: datetime,
                                 exclude_id: str | None = None) -> list[Booking]:
        def load():
            qs = self._active(designer_id, start, end)
            if exclude_id is not None:
                qs = qs.exclude(id=exclude_id)
            return list(qs.order_by('start_time'))
        return self._read(load)

    def count_active_for_designer(self, designer_id: str, start: datetime, end: datetime) -> int:
        return self._read(lambda: self._active(designer_id, start, end).count())

    def create(self, **fields) -> Booking:
        return Booking.objects.create(**fields)

    def save(self, booking: Booking, fields: list[str]) -> None:
        booking.save(update_fields=[*fields, 'updated_at'])

    def log_transition(self, booking: Booking, from_status: str, to_status: str,
                       changed_by: str, reason: str = '') -> None:
        BookingStatusLog.objects.create(
            booking=booking,
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by,
            reason=reason,
        )

    def list_for_customer(self, customer_id: str) -> list[Booking]:
        return self._read(lambda: list(
            Booking.objects.select_related('designer')
            .filter(customer_id=customer_id)
            .order_by('-start_time')
        ))

    def list_refund_pending(self) -> list[Booking]:
        return self._read(lambda: list(
            Booking.objects.filter(refund_pending=True, status=BookingStatus.CANCELLED)
            .order_by('updated_at')
        ))
