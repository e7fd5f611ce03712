"""Tests for BookingLifecycle: creation, payment note, status transitions.

Run with: pytest tests/test_lifecycle.py -v
"""

from contextlib import contextmanager
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core import mail

from apps.bookings.lifecycle import BookingLifecycle
from apps.bookings.models import Booking, BookingStatus, BookingStatusLog
from apps.bookings.stores.django_store import DjangoBookingRepository
from apps.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from apps.notifications.dispatcher import EmailNotificationDispatcher, NotificationDispatcher
from apps.notifications.signals import booking_event
from conftest import BOOKING_DAY, NOW, local_dt

TEN = local_dt(BOOKING_DAY, 10, 0)


@pytest.mark.django_db
class TestCreateBooking:

    def test_customer_booking_awaits_payment(self, lifecycle, customer, designer, gel):
        booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, 'first visit', now=NOW)

        assert booking.status == BookingStatus.PENDING_PAYMENT
        assert booking.amount == Decimal('1200.00')
        assert booking.duration_minutes == 60
        assert booking.service_names == ['Gel manicure']
        assert booking.customer_id == customer.id
        assert booking.reschedule_count == 0

    def test_duration_and_amount_sum_over_services_in_order(self, lifecycle, customer, designer, gel, removal):
        booking = lifecycle.create_booking(customer, designer.id, [str(removal.id), str(gel.id)], TEN, now=NOW)
        assert booking.duration_minutes == 90
        assert booking.amount == Decimal('1500.00')
        assert booking.service_ids == [str(removal.id), str(gel.id)]

    def test_platinum_booking_skips_upfront_payment(self, lifecycle, platinum, designer, gel):
        booking = lifecycle.create_booking(platinum, designer.id, [str(gel.id)], TEN, now=NOW)
        assert booking.status == BookingStatus.PENDING_CONFIRMATION
        assert booking.amount == Decimal('1000.00')

    def test_creation_is_logged(self, lifecycle, customer, designer, gel):
        booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=NOW)
        log = BookingStatusLog.objects.get(booking=booking)
        assert log.from_status == ''
        assert log.to_status == BookingStatus.PENDING_PAYMENT
        assert log.changed_by == 'customer:cust-1'

    def test_occupied_slot_is_a_conflict(self, lifecycle, customer, other_customer, designer, gel):
        lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=NOW)
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.create_booking(other_customer, designer.id, [str(gel.id)],
                                     local_dt(BOOKING_DAY, 10, 30), now=NOW)
        assert exc_info.value.code is ErrorCode.SLOT_UNAVAILABLE
        assert Booking.objects.count() == 1

    def test_off_grid_start_is_a_conflict(self, lifecycle, customer, designer, gel):
        with pytest.raises(ConflictError):
            lifecycle.create_booking(customer, designer.id, [str(gel.id)], local_dt(BOOKING_DAY, 10, 15), now=NOW)

    def test_past_start_is_a_conflict(self, lifecycle, customer, designer, gel):
        with pytest.raises(ConflictError):
            lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=TEN + timedelta(hours=1))

    def test_naive_start_time_is_rejected(self, lifecycle, customer, designer, gel):
        with pytest.raises(ValidationError):
            lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN.replace(tzinfo=None), now=NOW)

    def test_designer_must_offer_every_service(self, lifecycle, customer, second_designer, removal, gel):
        with pytest.raises(ValidationError):
            lifecycle.create_booking(customer, second_designer.id, [str(removal.id)], TEN, now=NOW)

    def test_unknown_designer(self, lifecycle, customer, gel):
        with pytest.raises(NotFoundError):
            lifecycle.create_booking(customer, '6f1c2a52-2d1c-4e0e-9d0a-333333333333', [str(gel.id)], TEN, now=NOW)

    def test_request_key_replays_the_same_booking(self, lifecycle, customer, designer, gel):
        first = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, request_key='k-1', now=NOW)
        second = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, request_key='k-1', now=NOW)
        assert first.id == second.id
        assert Booking.objects.count() == 1

    def test_request_key_of_another_customer_is_a_conflict(self, lifecycle, customer, other_customer, designer, gel):
        lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, request_key='k-1', now=NOW)
        with pytest.raises(ConflictError):
            lifecycle.create_booking(other_customer, designer.id, [str(gel.id)],
                                     local_dt(BOOKING_DAY, 14, 0), request_key='k-1', now=NOW)

    def test_notification_is_sent_after_commit(self, lifecycle, customer, designer, gel, dispatcher,
                                               django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=NOW)
        assert [event for event, _ in dispatcher.events] == ['booking.created']
        assert dispatcher.events[0][1]['booking_id'] == str(booking.id)


@pytest.mark.django_db
class TestAnyDesignerCreation:

    def test_picks_the_least_booked_designer(self, lifecycle, customer, designer, second_designer,
                                             gel, make_booking):
        make_booking(local_dt(BOOKING_DAY, 16, 0), on_designer=designer)
        booking = lifecycle.create_booking(customer, None, [str(gel.id)], TEN, now=NOW)
        assert str(booking.designer_id) == str(second_designer.id)

    def test_skips_designers_busy_at_that_time(self, lifecycle, customer, designer, second_designer,
                                               gel, make_booking):
        make_booking(TEN, on_designer=second_designer)
        booking = lifecycle.create_booking(customer, 'any', [str(gel.id)], TEN, now=NOW)
        assert str(booking.designer_id) == str(designer.id)

    def test_ties_break_by_designer_id(self, lifecycle, customer, designer, second_designer, gel):
        booking = lifecycle.create_booking(customer, None, [str(gel.id)], TEN, now=NOW)
        assert str(booking.designer_id) == min(str(designer.id), str(second_designer.id))

    def test_nobody_available(self, lifecycle, customer, designer, second_designer, gel, make_booking):
        make_booking(TEN, on_designer=designer)
        make_booking(TEN, on_designer=second_designer)
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.create_booking(customer, None, [str(gel.id)], TEN, now=NOW)
        assert exc_info.value.code is ErrorCode.SLOT_UNAVAILABLE


@pytest.mark.django_db
class TestPaymentNote:

    def test_note_is_prepended_and_status_advances(self, lifecycle, customer, designer, gel):
        booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, 'nail art please', now=NOW)

        updated = lifecycle.submit_payment_note(booking.id, customer, '12345')

        assert updated.status == BookingStatus.PENDING_CONFIRMATION
        assert updated.notes == '[Payment reported] last digits: 12345\nnail art please'
        assert updated.status_logs.last().to_status == BookingStatus.PENDING_CONFIRMATION

    def test_only_pending_payment_accepts_a_note(self, lifecycle, customer, designer, gel):
        booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=NOW)
        lifecycle.submit_payment_note(booking.id, customer, '12345')
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.submit_payment_note(booking.id, customer, '99999')
        assert exc_info.value.code is ErrorCode.PAYMENT_NOT_PENDING

    def test_empty_note(self, lifecycle, customer, designer, gel):
        booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=NOW)
        with pytest.raises(ValidationError):
            lifecycle.submit_payment_note(booking.id, customer, '   ')

    def test_stranger_cannot_report_payment(self, lifecycle, customer, other_customer, designer, gel):
        booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=NOW)
        with pytest.raises(AuthorizationError):
            lifecycle.submit_payment_note(booking.id, other_customer, '12345')
        booking.refresh_from_db()
        assert booking.status == BookingStatus.PENDING_PAYMENT


@pytest.mark.django_db
class TestSetBookingStatus:

    def test_admin_confirms(self, lifecycle, admin, make_booking):
        booking = make_booking(TEN, status=BookingStatus.PENDING_CONFIRMATION)
        updated = lifecycle.set_booking_status(booking.id, 'confirmed', admin, now=NOW)
        assert updated.status == BookingStatus.CONFIRMED

    def test_customer_cannot_confirm(self, lifecycle, customer, make_booking):
        booking = make_booking(TEN, status=BookingStatus.PENDING_CONFIRMATION)
        with pytest.raises(AuthorizationError):
            lifecycle.set_booking_status(booking.id, 'confirmed', customer, now=NOW)

    @pytest.mark.parametrize('status', [
        BookingStatus.PENDING_PAYMENT, BookingStatus.PENDING_CONFIRMATION, BookingStatus.CONFIRMED,
    ])
    def test_customer_cancels_own_booking(self, lifecycle, customer, make_booking, status):
        booking = make_booking(TEN, status=status)
        updated = lifecycle.set_booking_status(booking.id, 'cancelled', customer, 'changed plans', now=NOW)
        assert updated.status == BookingStatus.CANCELLED
        log = updated.status_logs.last()
        assert (log.from_status, log.to_status, log.reason) == (status, 'cancelled', 'changed plans')

    def test_stranger_cannot_cancel(self, lifecycle, other_customer, make_booking):
        booking = make_booking(TEN)
        with pytest.raises(AuthorizationError):
            lifecycle.set_booking_status(booking.id, 'cancelled', other_customer, now=NOW)

    @pytest.mark.parametrize('terminal', [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_terminal_states_are_final(self, lifecycle, admin, customer, make_booking, terminal):
        booking = make_booking(TEN, status=terminal)
        for requester, target in ((admin, 'confirmed'), (customer, 'cancelled')):
            with pytest.raises(ConflictError) as exc_info:
                lifecycle.set_booking_status(booking.id, target, requester, now=NOW)
            assert exc_info.value.code is ErrorCode.BOOKING_TERMINAL
        booking.refresh_from_db()
        assert booking.status == terminal

    def test_illegal_edge(self, lifecycle, admin, make_booking):
        booking = make_booking(TEN, status=BookingStatus.PENDING_PAYMENT)
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.set_booking_status(booking.id, 'completed', admin, now=NOW)
        assert exc_info.value.code is ErrorCode.ILLEGAL_TRANSITION
        booking.refresh_from_db()
        assert booking.status == BookingStatus.PENDING_PAYMENT

    def test_illegal_edge_is_reported_before_role(self, lifecycle, customer, make_booking):
        booking = make_booking(TEN, status=BookingStatus.PENDING_PAYMENT)
        with pytest.raises(ConflictError):
            lifecycle.set_booking_status(booking.id, 'confirmed', customer, now=NOW)

    def test_completion_before_start_is_a_conflict(self, lifecycle, admin, make_booking):
        booking = make_booking(TEN)
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.set_booking_status(booking.id, 'completed', admin, now=TEN - timedelta(minutes=1))
        assert exc_info.value.code is ErrorCode.NOT_STARTED

    def test_admin_completes_at_start_time(self, lifecycle, admin, make_booking):
        booking = make_booking(TEN)
        assert lifecycle.set_booking_status(booking.id, 'completed', admin, now=TEN).status == 'completed'

    def test_customer_cannot_complete(self, lifecycle, customer, make_booking):
        booking = make_booking(TEN)
        with pytest.raises(AuthorizationError):
            lifecycle.set_booking_status(booking.id, 'completed', customer, now=TEN + timedelta(hours=2))

    def test_unknown_status(self, lifecycle, admin, make_booking):
        booking = make_booking(TEN)
        with pytest.raises(ValidationError):
            lifecycle.set_booking_status(booking.id, 'no_show', admin, now=NOW)

    def test_missing_booking(self, lifecycle, admin, db):
        with pytest.raises(NotFoundError):
            lifecycle.set_booking_status('6f1c2a52-2d1c-4e0e-9d0a-444444444444', 'confirmed', admin, now=NOW)

    def test_every_transition_notifies(self, lifecycle, admin, make_booking, dispatcher,
                                       django_capture_on_commit_callbacks):
        booking = make_booking(TEN, status=BookingStatus.PENDING_CONFIRMATION)
        with django_capture_on_commit_callbacks(execute=True):
            lifecycle.set_booking_status(booking.id, 'confirmed', admin, now=NOW)
        event, payload = dispatcher.events[-1]
        assert event == 'booking.status_changed'
        assert payload['status'] == 'confirmed'


@pytest.mark.django_db
class TestFeedbackAndListing:

    def test_owner_leaves_feedback_on_completed_booking(self, lifecycle, customer, make_booking):
        booking = make_booking(TEN, status=BookingStatus.COMPLETED)
        assert lifecycle.leave_feedback(booking.id, customer, 'Lovely!').feedback == 'Lovely!'

    def test_feedback_requires_completion(self, lifecycle, customer, make_booking):
        booking = make_booking(TEN)
        with pytest.raises(ConflictError):
            lifecycle.leave_feedback(booking.id, customer, 'Lovely!')

    def test_only_owner_leaves_feedback(self, lifecycle, admin, make_booking):
        booking = make_booking(TEN, status=BookingStatus.COMPLETED)
        with pytest.raises(AuthorizationError):
            lifecycle.leave_feedback(booking.id, admin, 'Lovely!')

    def test_customer_sees_own_bookings_newest_first(self, lifecycle, customer, make_booking):
        early = make_booking(TEN)
        late = make_booking(TEN + timedelta(days=1))
        make_booking(TEN + timedelta(hours=3), customer_id='cust-2')
        assert [b.id for b in lifecycle.list_customer_bookings(customer)] == [late.id, early.id]


class ExplodingDispatcher(NotificationDispatcher):
    def notify(self, event, payload):
        raise RuntimeError('smtp down')


@pytest.mark.django_db
class TestNotifications:

    def test_failed_notification_keeps_the_transition(self, booking_repo, calculator, ledger, admin,
                                                      make_booking, django_capture_on_commit_callbacks):
        lifecycle = BookingLifecycle(booking_repo, calculator, ledger, ExplodingDispatcher())
        booking = make_booking(TEN, status=BookingStatus.PENDING_CONFIRMATION)
        with django_capture_on_commit_callbacks(execute=True):
            lifecycle.set_booking_status(booking.id, 'confirmed', admin, now=NOW)
        booking.refresh_from_db()
        assert booking.status == BookingStatus.CONFIRMED

    def test_email_dispatcher_mails_customer_and_staff_and_fires_signal(
            self, booking_repo, calculator, ledger, customer, designer, gel,
            django_capture_on_commit_callbacks):
        received = []

        def listener(sender, event, payload, **kwargs):
            received.append(event)

        booking_event.connect(listener)
        try:
            lifecycle = BookingLifecycle(booking_repo, calculator, ledger, EmailNotificationDispatcher())
            with django_capture_on_commit_callbacks(execute=True):
                lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN,
                                         contact_email='mika.fan@example.com', now=NOW)
        finally:
            booking_event.disconnect(listener)

        assert received == ['booking.created']
        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ['mika.fan@example.com', 'frontdesk@nailbook.tw']
        assert 'Booking received' in mail.outbox[0].subject


class FlakyCommitRepository(DjangoBookingRepository):
    """The write lands, then the store reports a failure."""

    def atomic(self):
        @contextmanager
        def block():
            with DjangoBookingRepository.atomic(self):
                yield
            raise DependencyError('connection lost at commit', outcome_unknown=True)
        return block()


class LostWriteRepository(DjangoBookingRepository):
    """The store fails before anything is written."""

    def atomic(self):
        @contextmanager
        def block():
            raise DependencyError('connection refused', outcome_unknown=True)
            yield
        return block()


@pytest.mark.django_db
class TestUnknownOutcome:

    def test_landed_transition_is_returned(self, calculator, ledger, dispatcher, admin, make_booking):
        lifecycle = BookingLifecycle(FlakyCommitRepository(), calculator, ledger, dispatcher)
        booking = make_booking(TEN, status=BookingStatus.PENDING_CONFIRMATION)
        assert lifecycle.set_booking_status(booking.id, 'confirmed', admin, now=NOW).status == 'confirmed'

    def test_lost_transition_is_reraised(self, calculator, ledger, dispatcher, admin, make_booking):
        lifecycle = BookingLifecycle(LostWriteRepository(), calculator, ledger, dispatcher)
        booking = make_booking(TEN, status=BookingStatus.PENDING_CONFIRMATION)
        with pytest.raises(DependencyError):
            lifecycle.set_booking_status(booking.id, 'confirmed', admin, now=NOW)
        booking.refresh_from_db()
        assert booking.status == BookingStatus.PENDING_CONFIRMATION

    def test_landed_create_is_found_by_request_key(self, calculator, ledger, dispatcher, customer, designer, gel):
        lifecycle = BookingLifecycle(FlakyCommitRepository(), calculator, ledger, dispatcher)
        booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, request_key='k-9', now=NOW)
        assert booking.request_key == 'k-9'
        assert Booking.objects.count() == 1

    def test_create_without_request_key_reraises(self, calculator, ledger, dispatcher, customer, designer, gel):
        lifecycle = BookingLifecycle(FlakyCommitRepository(), calculator, ledger, dispatcher)
        with pytest.raises(DependencyError):
            lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=NOW)
