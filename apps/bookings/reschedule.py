"""
One-time reschedule of a booking by its owner.

Preconditions are checked in a fixed order so each failure has one
distinct reason:
  1. booking exists                          NotFoundError
  2. requester owns it                       AuthorizationError
  3. not completed / cancelled               NOT_RESCHEDULABLE
  4. reschedule_count < RESCHEDULE_LIMIT     RESCHEDULE_LIMIT_REACHED
  5. now is more than RESCHEDULE_CUTOFF_HOURS
     before the current start_time           INSIDE_RESTRICTION_WINDOW
  6. new start is an offerable slot          SLOT_UNAVAILABLE
"""
import logging
from datetime import datetime

from django.conf import settings

from apps.core.clock import Deadline, current_time, more_than_hours_before
from apps.core.exceptions import ConflictError, DependencyError, ErrorCode, NotFoundError
from apps.core.roles import Requester, require_owner
from apps.notifications.dispatcher import NotificationDispatcher, get_dispatcher

from .engine import SlotAvailabilityCalculator
from .lifecycle import notify_on_commit, require_aware
from .models import Booking, BookingStatus
from .stores.interfaces import BookingRepository

logger = logging.getLogger(__name__)


class RescheduleCoordinator:

    def __init__(self, bookings: BookingRepository, calculator: SlotAvailabilityCalculator,
                 dispatcher: NotificationDispatcher, cutoff_hours: int | None = None,
                 limit: int | None = None) -> None:
        self.bookings = bookings
        self.calculator = calculator
        self.dispatcher = dispatcher
        self.cutoff_hours = settings.RESCHEDULE_CUTOFF_HOURS if cutoff_hours is None else cutoff_hours
        self.limit = settings.RESCHEDULE_LIMIT if limit is None else limit

    def reschedule(self, booking_id: str, requester: Requester, new_start_time: datetime,
                   now: datetime | None = None) -> Booking:
        new_start_time = require_aware(new_start_time, 'new_start_time')
        now = now or current_time()
        try:
            with self.bookings.atomic():
                booking = self.bookings.get(booking_id, for_update=True)
                if booking is None:
                    raise NotFoundError('Booking not found.', code=ErrorCode.BOOKING_NOT_FOUND)
                require_owner(requester, booking.customer_id)
                if booking.is_terminal:
                    raise ConflictError('Booking not reschedulable.', code=ErrorCode.NOT_RESCHEDULABLE)
                if booking.reschedule_count >= self.limit:
                    raise ConflictError('Reschedule limit reached.', code=ErrorCode.RESCHEDULE_LIMIT_REACHED)
                if not more_than_hours_before(booking.start_time, now, self.cutoff_hours):
                    raise ConflictError('Inside restriction window.', code=ErrorCode.INSIDE_RESTRICTION_WINDOW)

                designer_id = str(booking.designer_id) if booking.designer_id else None
                if designer_id is None:
                    raise ConflictError('Slot unavailable.', code=ErrorCode.SLOT_UNAVAILABLE)
                self.bookings.lock_designer(designer_id)
                if not self.calculator.is_offerable(designer_id, new_start_time, booking.duration_minutes,
                                                    now, exclude_booking_id=str(booking.id)):
                    raise ConflictError('Slot unavailable.', code=ErrorCode.SLOT_UNAVAILABLE)

                old_start = booking.start_time
                booking.start_time = new_start_time
                booking.reschedule_count += 1
                fields = ['start_time', 'reschedule_count']
                if booking.status != BookingStatus.PENDING_PAYMENT:
                    old_status = booking._transition(BookingStatus.PENDING_CONFIRMATION)
                    fields.append('status')
                    if old_status != booking.status:
                        self.bookings.log_transition(
                            booking, old_status, booking.status, requester.label, 'rescheduled',
                        )
                self.bookings.save(booking, fields)
                notify_on_commit(self.bookings, self.dispatcher, 'booking.rescheduled', booking)
        except DependencyError as exc:
            if not exc.outcome_unknown:
                raise
            stored = self.bookings.get(booking_id)
            if stored is not None and stored.start_time == new_start_time and stored.reschedule_count >= 1:
                logger.warning('Reschedule of booking %s landed despite a store error', booking_id)
                return stored
            raise

        logger.info('Booking %s rescheduled %s -> %s by %s',
                    booking.id, old_start.isoformat(), new_start_time.isoformat(), requester.label)
        return booking


def default_coordinator(deadline: Deadline | None = None) -> RescheduleCoordinator:
    from .stores.django_store import DjangoBookingRepository, DjangoScheduleRepository

    bookings = DjangoBookingRepository(deadline)
    calculator = SlotAvailabilityCalculator(DjangoScheduleRepository(deadline), bookings)
    return RescheduleCoordinator(bookings, calculator, get_dispatcher())
