"""
Booking lifecycle: creation and guarded status transitions.

    pending_payment ──payment note──▶ pending_confirmation ──admin──▶ confirmed
          │                                  │                           │
          └──────────────▶ cancelled ◀───────┘                 admin, at/after start
                                                                         ▼
                                                                     completed

completed and cancelled are terminal. Every transition writes a
BookingStatusLog row and schedules a notification for after commit.
"""
import logging
from datetime import datetime
from decimal import Decimal

from django.db import IntegrityError
from django.utils import timezone

from apps.core.clock import Deadline, current_time, day_bounds, local_date
from apps.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from apps.core.roles import Requester, require_owner, require_owner_or_admin
from apps.notifications.dispatcher import (
    NotificationDispatcher,
    booking_payload,
    get_dispatcher,
    notify_safely,
)
from apps.passes.ledger import PassConsumptionLedger
from apps.services.catalog import (
    normalize_ids,
    quote_amount,
    resolve_option_items,
    resolve_services,
    total_duration,
)

from .engine import SlotAvailabilityCalculator, normalize_designer_id
from .models import Booking, BookingStatus
from .stores.interfaces import BookingRepository

logger = logging.getLogger(__name__)

PAYMENT_NOTE_PREFIX = '[Payment reported] last digits: '


def notify_on_commit(bookings: BookingRepository, dispatcher: NotificationDispatcher,
                     event: str, booking: Booking) -> None:
    """Snapshot the booking now, deliver the notification after commit."""
    payload = booking_payload(booking)
    bookings.on_commit(lambda: notify_safely(dispatcher, event, payload))


def require_aware(value: datetime, field: str = 'start_time') -> datetime:
    if not isinstance(value, datetime) or timezone.is_naive(value):
        raise ValidationError(f'{field} must be a timezone-aware datetime.', fields={field: ['Invalid.']})
    return value


class BookingLifecycle:

    def __init__(self, bookings: BookingRepository, calculator: SlotAvailabilityCalculator,
                 ledger: PassConsumptionLedger, dispatcher: NotificationDispatcher,
                 deadline: Deadline | None = None) -> None:
        self.bookings = bookings
        self.calculator = calculator
        self.schedules = calculator.schedules
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.deadline = deadline

    # ── Creation ──────────────────────────────────────────────────────────────

    def create_booking(self, customer: Requester, designer_id, service_ids, start_time: datetime,
                       notes: str = '', *, option_item_ids=(), active_pass_id: str | None = None,
                       pass_service_ids=(), contact_email: str = '', request_key: str | None = None,
                       now: datetime | None = None) -> Booking:
        """
        Reserve `start_time` for `service_ids` performed back to back, with
        the picked option items adding to the price and the duration.

        designer_id None or "any" picks the available designer with the
        fewest active bookings that day. The slot is re-validated under the
        designer's lock inside the inserting transaction.
        """
        now = now or current_time()
        start_time = require_aware(start_time)

        if request_key:
            existing = self.bookings.get_by_request_key(request_key)
            if existing is not None:
                return self._replayed(existing, customer)

        services = resolve_services(service_ids, deadline=self.deadline)
        ids = [str(s.id) for s in services]
        option_items = resolve_option_items(option_item_ids, services, deadline=self.deadline)
        duration = total_duration(services, option_items)

        covered = normalize_ids(pass_service_ids)
        if covered or active_pass_id:
            if not (covered and active_pass_id):
                raise ValidationError('A season pass and the services it covers must be given together.')
            if not set(covered) <= set(ids):
                raise ValidationError('Pass-covered services must be part of the booking.')
            self.ledger.ensure_can_cover(customer.id, active_pass_id, covered, now)

        amount = quote_amount(services, customer.skips_upfront_payment, covered, option_items)
        if customer.skips_upfront_payment or amount == Decimal('0'):
            status = BookingStatus.PENDING_CONFIRMATION
        else:
            status = BookingStatus.PENDING_PAYMENT

        designer_key = normalize_designer_id(designer_id)
        if designer_key is not None:
            if not self.schedules.designer_exists(designer_key):
                raise NotFoundError('Designer not found.', code=ErrorCode.DESIGNER_NOT_FOUND)
            if designer_key not in self.schedules.list_designer_ids(tuple(ids)):
                raise ValidationError('This designer does not offer every selected service.')

        try:
            with self.bookings.atomic():
                if designer_key is None:
                    designer_key = self._least_booked_designer(tuple(ids), start_time, duration, now)
                self.bookings.lock_designer(designer_key)
                if not self.calculator.is_offerable(designer_key, start_time, duration, now):
                    raise ConflictError('That time slot is no longer available.',
                                        code=ErrorCode.SLOT_UNAVAILABLE)
                booking = self.bookings.create(
                    customer_id=customer.id,
                    contact_email=contact_email,
                    designer_id=designer_key,
                    service_ids=ids,
                    service_names=[s.name for s in services],
                    option_item_ids=[str(i.id) for i in option_items],
                    option_names=[str(i) for i in option_items],
                    start_time=start_time,
                    duration_minutes=duration,
                    amount=amount,
                    status=status,
                    notes=notes.strip(),
                    active_pass_id=active_pass_id if covered else None,
                    pass_service_ids=covered,
                    request_key=request_key or None,
                )
                self.bookings.log_transition(booking, '', status, customer.label, 'created')
                notify_on_commit(self.bookings, self.dispatcher, 'booking.created', booking)
        except IntegrityError as exc:
            existing = self.bookings.get_by_request_key(request_key) if request_key else None
            if existing is None:
                raise ConflictError('Booking could not be stored.', code=ErrorCode.SLOT_UNAVAILABLE) from exc
            return self._replayed(existing, customer)
        except DependencyError as exc:
            if not (exc.outcome_unknown and request_key):
                raise
            existing = self.bookings.get_by_request_key(request_key)
            if existing is None:
                raise
            logger.warning('Booking create for key %s landed despite a store error', request_key)
            return self._replayed(existing, customer)

        logger.info('Booking %s created: designer=%s start=%s status=%s by %s',
                    booking.id, designer_key, start_time.isoformat(), status, customer.label)
        return booking

    def _replayed(self, booking: Booking, customer: Requester) -> Booking:
        if booking.customer_id != customer.id:
            raise ConflictError('Request key already used.', code=ErrorCode.ILLEGAL_TRANSITION)
        return booking

    def _least_booked_designer(self, service_ids: tuple, start_time: datetime,
                               duration: int, now: datetime) -> str:
        day_start, day_end = day_bounds(local_date(start_time))
        available = [
            designer_id
            for designer_id in self.schedules.list_designer_ids(service_ids)
            if self.calculator.is_offerable(designer_id, start_time, duration, now)
        ]
        if not available:
            raise ConflictError('No designer is available at that time.', code=ErrorCode.SLOT_UNAVAILABLE)
        return min(
            available,
            key=lambda d: (self.bookings.count_active_for_designer(d, day_start, day_end), d),
        )

    # ── Transitions ───────────────────────────────────────────────────────────

    def submit_payment_note(self, booking_id: str, requester: Requester, note: str) -> Booking:
        """Record the customer's transfer reference and move to pending_confirmation."""
        note = (note or '').strip()
        if not note:
            raise ValidationError('Payment note is required.', fields={'note': ['Required.']})
        target = BookingStatus.PENDING_CONFIRMATION
        try:
            with self.bookings.atomic():
                booking = self._get_for_update(booking_id)
                require_owner_or_admin(requester, booking.customer_id)
                if booking.status != BookingStatus.PENDING_PAYMENT:
                    raise ConflictError('Booking is not awaiting payment.', code=ErrorCode.PAYMENT_NOT_PENDING)
                booking.notes = PAYMENT_NOTE_PREFIX + note + (f'\n{booking.notes}' if booking.notes else '')
                old_status = booking._transition(target)
                self.bookings.save(booking, ['status', 'notes'])
                self.bookings.log_transition(booking, old_status, target, requester.label, 'payment reported')
                notify_on_commit(self.bookings, self.dispatcher, 'booking.payment_reported', booking)
        except DependencyError as exc:
            return self._reread(booking_id, target, exc)

        logger.info('Booking %s payment reported by %s', booking.id, requester.label)
        return booking

    def set_booking_status(self, booking_id: str, new_status, requester: Requester,
                           reason: str = '', now: datetime | None = None) -> Booking:
        """
        Move a booking along one allowed edge.

        Customers may only cancel their own bookings; every other edge is
        administrator-only. Completing requires start_time to have passed
        and debits any pass-covered services in the same transaction.
        """
        try:
            target = BookingStatus(new_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown status '{new_status}'.", fields={'status': ['Invalid.']}) from exc
        now = now or current_time()

        try:
            with self.bookings.atomic():
                booking = self._get_for_update(booking_id)
                require_owner_or_admin(requester, booking.customer_id)
                if booking.is_terminal:
                    raise ConflictError(f'Booking is already {booking.status}.', code=ErrorCode.BOOKING_TERMINAL)
                if not booking.can_transition_to(target):
                    raise ConflictError(f'Cannot move a booking from {booking.status} to {target}.',
                                        code=ErrorCode.ILLEGAL_TRANSITION)
                if not requester.is_admin and target != BookingStatus.CANCELLED:
                    raise AuthorizationError('Only administrators may make this change.')
                if target == BookingStatus.COMPLETED and now < booking.start_time:
                    raise ConflictError('Booking has not started yet.', code=ErrorCode.NOT_STARTED)

                old_status = booking._transition(target)
                fields = ['status']
                if target == BookingStatus.COMPLETED and booking.active_pass_id and not booking.pass_usage_deducted:
                    self.ledger.consume_for_booking(booking, now)
                    booking.pass_usage_deducted = True
                    fields.append('pass_usage_deducted')
                if target == BookingStatus.CANCELLED and self.ledger.has_unrefunded(str(booking.id)):
                    booking.refund_pending = True
                    fields.append('refund_pending')
                    refund_id = str(booking.id)
                    self.bookings.on_commit(lambda: self.apply_refund(refund_id))

                self.bookings.save(booking, fields)
                self.bookings.log_transition(booking, old_status, target, requester.label, reason)
                notify_on_commit(self.bookings, self.dispatcher, 'booking.status_changed', booking)
        except DependencyError as exc:
            return self._reread(booking_id, target, exc)

        logger.info('Booking %s: %s -> %s by %s', booking.id, old_status, target, requester.label)
        return booking

    def leave_feedback(self, booking_id: str, requester: Requester, feedback: str) -> Booking:
        feedback = (feedback or '').strip()
        if not feedback:
            raise ValidationError('Feedback is required.', fields={'feedback': ['Required.']})
        with self.bookings.atomic():
            booking = self._get_for_update(booking_id)
            require_owner(requester, booking.customer_id)
            if booking.status != BookingStatus.COMPLETED:
                raise ConflictError('Feedback is only accepted for completed bookings.',
                                    code=ErrorCode.ILLEGAL_TRANSITION)
            booking.feedback = feedback
            self.bookings.save(booking, ['feedback'])
        return booking

    def list_customer_bookings(self, requester: Requester) -> list[Booking]:
        return self.bookings.list_for_customer(requester.id)

    # ── Refunds ───────────────────────────────────────────────────────────────

    def apply_refund(self, booking_id: str) -> bool:
        """
        Refund the pass consumptions of a cancelled booking and clear its flag.

        Runs after commit and from the apply_pending_refunds command. A failure
        leaves refund_pending set for the next run.
        """
        try:
            self.ledger.refund_booking(booking_id)
            with self.bookings.atomic():
                booking = self.bookings.get(booking_id, for_update=True)
                if booking is not None and booking.refund_pending:
                    booking.refund_pending = False
                    self.bookings.save(booking, ['refund_pending'])
        except Exception:
            logger.exception('Pass refund for booking %s failed; left pending', booking_id)
            return False
        return True

    def apply_pending_refunds(self) -> tuple[int, int]:
        """Returns (applied, failed)."""
        applied = failed = 0
        for booking in self.bookings.list_refund_pending():
            if self.apply_refund(str(booking.id)):
                applied += 1
            else:
                failed += 1
        return applied, failed

    # ── Internals ─────────────────────────────────────────────────────────────

    def _get_for_update(self, booking_id: str) -> Booking:
        booking = self.bookings.get(booking_id, for_update=True)
        if booking is None:
            raise NotFoundError('Booking not found.', code=ErrorCode.BOOKING_NOT_FOUND)
        return booking

    def _reread(self, booking_id: str, target: str, exc: DependencyError) -> Booking:
        """Resolve an unknown-outcome write by reading the stored status."""
        if not exc.outcome_unknown:
            raise exc
        stored = self.bookings.get(booking_id)
        if stored is not None and stored.status == target:
            logger.warning('Booking %s reached %s despite a store error', booking_id, target)
            return stored
        raise exc


def default_lifecycle(deadline: Deadline | None = None) -> BookingLifecycle:
    from apps.passes.stores.django_store import DjangoPassLedgerRepository

    from .stores.django_store import DjangoBookingRepository, DjangoScheduleRepository

    bookings = DjangoBookingRepository(deadline)
    calculator = SlotAvailabilityCalculator(DjangoScheduleRepository(deadline), bookings)
    return BookingLifecycle(
        bookings,
        calculator,
        PassConsumptionLedger(DjangoPassLedgerRepository(deadline)),
        get_dispatcher(),
        deadline=deadline,
    )
