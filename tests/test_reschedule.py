"""Tests for RescheduleCoordinator.

Run with: pytest tests/test_reschedule.py -v
"""

from datetime import timedelta

import pytest

from apps.bookings.models import BookingStatus, BookingStatusLog
from apps.bookings.reschedule import RescheduleCoordinator
from apps.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from conftest import BOOKING_DAY, NOW, local_dt

NEW_SLOT = local_dt(BOOKING_DAY, 10, 0)
LATER_SLOT = local_dt(BOOKING_DAY, 14, 0)


@pytest.mark.django_db
class TestRescheduleSucceeds:

    def test_first_reschedule_moves_the_booking(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=96))

        updated = coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)

        assert updated.start_time == NEW_SLOT
        assert updated.reschedule_count == 1
        booking.refresh_from_db()
        assert booking.start_time == NEW_SLOT

    def test_confirmed_booking_goes_back_to_confirmation(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=96), status=BookingStatus.CONFIRMED)

        updated = coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)

        assert updated.status == BookingStatus.PENDING_CONFIRMATION
        log = BookingStatusLog.objects.get(booking=booking)
        assert (log.from_status, log.to_status, log.reason) == ('confirmed', 'pending_confirmation', 'rescheduled')

    def test_unpaid_booking_stays_unpaid(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=96), status=BookingStatus.PENDING_PAYMENT)

        updated = coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)

        assert updated.status == BookingStatus.PENDING_PAYMENT
        assert not BookingStatusLog.objects.filter(booking=booking).exists()

    def test_may_overlap_its_own_old_interval(self, coordinator, customer, make_booking):
        booking = make_booking(NEW_SLOT)
        updated = coordinator.reschedule(booking.id, customer, local_dt(BOOKING_DAY, 10, 30), now=NOW)
        assert updated.start_time == local_dt(BOOKING_DAY, 10, 30)

    def test_notifies_after_commit(self, coordinator, customer, make_booking, dispatcher,
                                   django_capture_on_commit_callbacks):
        booking = make_booking(NOW + timedelta(hours=96))
        with django_capture_on_commit_callbacks(execute=True):
            coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)
        assert [event for event, _ in dispatcher.events] == ['booking.rescheduled']
        assert dispatcher.events[0][1]['reschedule_count'] == 1


@pytest.mark.django_db
class TestReschedulePreconditions:

    def test_second_reschedule_hits_the_limit(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=96))
        coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)

        with pytest.raises(ConflictError) as exc_info:
            coordinator.reschedule(booking.id, customer, LATER_SLOT, now=NOW)

        assert exc_info.value.code is ErrorCode.RESCHEDULE_LIMIT_REACHED
        booking.refresh_from_db()
        assert booking.start_time == NEW_SLOT

    def test_inside_restriction_window(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=10))
        with pytest.raises(ConflictError) as exc_info:
            coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)
        assert exc_info.value.code is ErrorCode.INSIDE_RESTRICTION_WINDOW

    def test_exactly_on_the_window_boundary_is_inside(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=72))
        with pytest.raises(ConflictError) as exc_info:
            coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)
        assert exc_info.value.code is ErrorCode.INSIDE_RESTRICTION_WINDOW

    def test_window_is_measured_from_the_current_start(self, coordinator, customer, make_booking):
        # Target is far away, but the booking itself is close.
        booking = make_booking(NOW + timedelta(hours=30))
        with pytest.raises(ConflictError):
            coordinator.reschedule(booking.id, customer, NEW_SLOT + timedelta(days=7), now=NOW)

    def test_limit_is_checked_before_the_window(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=10), reschedule_count=1)
        with pytest.raises(ConflictError) as exc_info:
            coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)
        assert exc_info.value.code is ErrorCode.RESCHEDULE_LIMIT_REACHED

    def test_custom_limit(self, booking_repo, calculator, dispatcher, customer, make_booking):
        coordinator = RescheduleCoordinator(booking_repo, calculator, dispatcher, limit=2)
        booking = make_booking(NOW + timedelta(hours=96), reschedule_count=1)
        assert coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW).reschedule_count == 2

    @pytest.mark.parametrize('status', [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
    def test_terminal_booking_is_not_reschedulable(self, coordinator, customer, make_booking, status):
        booking = make_booking(NOW + timedelta(hours=96), status=status)
        with pytest.raises(ConflictError) as exc_info:
            coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)
        assert exc_info.value.code is ErrorCode.NOT_RESCHEDULABLE

    def test_stranger_cannot_reschedule(self, coordinator, other_customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=96))
        with pytest.raises(AuthorizationError):
            coordinator.reschedule(booking.id, other_customer, NEW_SLOT, now=NOW)

    def test_admin_cannot_reschedule_for_a_customer(self, coordinator, admin, make_booking):
        booking = make_booking(NOW + timedelta(hours=96))
        with pytest.raises(AuthorizationError):
            coordinator.reschedule(booking.id, admin, NEW_SLOT, now=NOW)

    def test_missing_booking(self, coordinator, customer):
        with pytest.raises(NotFoundError):
            coordinator.reschedule('6f1c2a52-2d1c-4e0e-9d0a-555555555555', customer, NEW_SLOT, now=NOW)

    def test_taken_slot(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=96))
        make_booking(NEW_SLOT, customer_id='cust-2')
        with pytest.raises(ConflictError) as exc_info:
            coordinator.reschedule(booking.id, customer, NEW_SLOT, now=NOW)
        assert exc_info.value.code is ErrorCode.SLOT_UNAVAILABLE
        booking.refresh_from_db()
        assert booking.reschedule_count == 0

    def test_off_grid_target(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=96))
        with pytest.raises(ConflictError):
            coordinator.reschedule(booking.id, customer, local_dt(BOOKING_DAY, 10, 10), now=NOW)

    def test_naive_target_is_rejected(self, coordinator, customer, make_booking):
        booking = make_booking(NOW + timedelta(hours=96))
        with pytest.raises(ValidationError):
            coordinator.reschedule(booking.id, customer, NEW_SLOT.replace(tzinfo=None), now=NOW)
