"""
Season pass usage ledger.

  consume(...)              debit one content item, honoring balance and monthly cap
  refund(...)               reverse one recorded consumption, no cap re-check
  ensure_can_cover(...)     balance check for a booking's pass-covered services
  consume_for_booking(...)  debit the covered services of a completed booking not yet debited
  refund_booking(...)       idempotent refund of everything a booking consumed

Every debit locks the ActivePass row first, so the balance check and the
decrement are one atomic step with respect to other writers on that pass.
A credit only ever reverses a PassConsumption row, once.
"""
import logging
import re
from datetime import datetime

from apps.core.clock import current_time, month_key
from apps.core.exceptions import ConflictError, ErrorCode, NotFoundError, ValidationError

from .models import ActivePass, PassConsumption
from .stores.interfaces import PassLedgerRepository

logger = logging.getLogger(__name__)

MONTH_RE = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')


def _check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError('Quantity must be a positive integer.')
    return quantity


def _check_month(month: str) -> str:
    if not isinstance(month, str) or not MONTH_RE.match(month):
        raise ValidationError(f"Month must look like YYYY-MM, got '{month}'.")
    return month


class PassConsumptionLedger:

    def __init__(self, passes: PassLedgerRepository) -> None:
        self.passes = passes

    # ── Consumption ───────────────────────────────────────────────────────────

    def consume(self, customer_id: str | None, active_pass_id: str, content_item_id: str,
                quantity: int = 1, month: str | None = None, booking_id: str | None = None,
                now: datetime | None = None) -> int:
        """
        Debit `quantity` of a content item and return the remaining count.

        customer_id=None skips the ownership check (administrator on behalf
        of a customer). Nothing is written when a check fails.
        """
        remaining, _ = self.consume_entry(customer_id, active_pass_id, content_item_id,
                                          quantity, month, booking_id, now)
        return remaining

    def consume_entry(self, customer_id: str | None, active_pass_id: str, content_item_id: str,
                      quantity: int = 1, month: str | None = None, booking_id: str | None = None,
                      now: datetime | None = None) -> tuple[int, PassConsumption]:
        """
        Same as consume(), also returning the PassConsumption it recorded.

        A booking_id must name an existing booking of the pass owner.
        """
        quantity = _check_quantity(quantity)
        now = now or current_time()
        month = _check_month(month or month_key(now))
        with self.passes.atomic():
            active_pass = self._locked_pass(active_pass_id, customer_id)
            if active_pass.is_expired(now):
                raise NotFoundError('Season pass has expired.', code=ErrorCode.PASS_NOT_FOUND)
            if booking_id is not None:
                booking_id = str(booking_id)
                self._check_booking(active_pass, booking_id)
            return self._debit(active_pass, str(content_item_id), quantity, month, booking_id)

    def ensure_can_cover(self, customer_id: str, active_pass_id: str, service_ids,
                         now: datetime | None = None) -> ActivePass:
        """
        Check that the pass can cover one unit of each service right now.

        Does not debit. Returns the pass.
        """
        now = now or current_time()
        month = month_key(now)
        active_pass = self.passes.get_pass(active_pass_id)
        if active_pass is None or active_pass.customer_id != customer_id or active_pass.is_expired(now):
            raise NotFoundError('Season pass not found.', code=ErrorCode.PASS_NOT_FOUND)
        for item, count in self._items_for_services(active_pass, service_ids).values():
            self._check_balance(active_pass, str(item.id), item, count, month)
        return active_pass

    def consume_for_booking(self, booking, now: datetime | None = None) -> list[tuple[str, int]]:
        """
        Debit one unit per pass-covered service of `booking`.

        Units already consumed against the booking on the same pass (and not
        refunded) count toward its covered services, so only the difference
        is debited. Called inside the completing transaction. Expiry is
        checked against `now`; the owner is the booking's customer. Returns
        (item id, remaining) pairs.
        """
        if not booking.active_pass_id or not booking.pass_service_ids:
            return []
        now = now or current_time()
        month = month_key(now)
        with self.passes.atomic():
            active_pass = self._locked_pass(str(booking.active_pass_id), booking.customer_id)
            if active_pass.is_expired(now):
                raise NotFoundError('Season pass has expired.', code=ErrorCode.PASS_NOT_FOUND)
            recorded = self._recorded_units(active_pass, str(booking.id))
            results = []
            for item, count in self._items_for_services(active_pass, booking.pass_service_ids).values():
                item_id = str(item.id)
                owed = count - recorded.get(item_id, 0)
                if owed > 0:
                    remaining, _ = self._debit(active_pass, item_id, owed, month, str(booking.id))
                else:
                    remaining = active_pass.remaining(item_id)
                    logger.info('Booking %s item %s already consumed on pass %s',
                                booking.id, item_id, active_pass.id)
                results.append((item_id, remaining))
            return results

    # ── Refunds ───────────────────────────────────────────────────────────────

    def refund(self, customer_id: str | None, consumption_id: str, now: datetime | None = None) -> int:
        """
        Reverse one recorded consumption and return the item's new count.

        Credits exactly the consumed quantity and lowers the usage counter
        of the month it was consumed in. Works on expired passes. A second
        refund of the same consumption is a ConflictError.
        """
        now = now or current_time()
        with self.passes.atomic():
            consumption = self.passes.get_consumption(str(consumption_id), for_update=True)
            if consumption is None:
                raise NotFoundError('Pass consumption not found.', code=ErrorCode.CONSUMPTION_NOT_FOUND)
            active_pass = self._locked_pass(str(consumption.active_pass_id), customer_id)
            if not self.passes.mark_refunded(consumption, now):
                raise ConflictError('Pass consumption was already refunded.',
                                    code=ErrorCode.ALREADY_REFUNDED)
            return self._credit(active_pass, consumption.content_item_id,
                                consumption.quantity, consumption.month)

    def has_unrefunded(self, booking_id: str) -> bool:
        return bool(self.passes.list_unrefunded(booking_id))

    def refund_booking(self, booking_id: str, now: datetime | None = None) -> int:
        """
        Refund every unrefunded consumption recorded for `booking_id`.

        Safe to call any number of times: each consumption is refunded at
        most once. Returns how many records were refunded by this call.
        """
        now = now or current_time()
        refunded = 0
        with self.passes.atomic():
            consumptions = self.passes.list_unrefunded(booking_id, for_update=True)
            for consumption in consumptions:
                active_pass = self.passes.get_pass(str(consumption.active_pass_id), for_update=True)
                if active_pass is None:
                    continue
                if not self.passes.mark_refunded(consumption, now):
                    continue
                self._credit(active_pass, consumption.content_item_id,
                             consumption.quantity, consumption.month)
                refunded += 1
        if refunded:
            logger.info('Refunded %d pass consumption(s) for booking %s', refunded, booking_id)
        return refunded

    # ── Internals ─────────────────────────────────────────────────────────────

    def _locked_pass(self, active_pass_id: str, customer_id: str | None) -> ActivePass:
        active_pass = self.passes.get_pass(active_pass_id, for_update=True)
        if active_pass is None or (customer_id is not None and active_pass.customer_id != customer_id):
            raise NotFoundError('Season pass not found.', code=ErrorCode.PASS_NOT_FOUND)
        return active_pass

    def _check_balance(self, active_pass: ActivePass, item_id: str, item, quantity: int, month: str) -> None:
        if active_pass.remaining(item_id) < quantity:
            raise ConflictError('Insufficient pass balance.', code=ErrorCode.INSUFFICIENT_BALANCE)
        if item is not None and item.monthly_limit is not None:
            used = self.passes.get_monthly_used(active_pass, item_id, month)
            if used + quantity > item.monthly_limit:
                raise ConflictError('Monthly usage limit reached.', code=ErrorCode.MONTHLY_LIMIT_REACHED)

    def _check_booking(self, active_pass: ActivePass, booking_id: str) -> None:
        owner = self.passes.get_booking_owner(booking_id)
        if owner is None:
            raise NotFoundError('Booking not found.', code=ErrorCode.BOOKING_NOT_FOUND)
        if owner != active_pass.customer_id:
            raise ValidationError('Booking does not belong to the pass owner.')

    def _recorded_units(self, active_pass: ActivePass, booking_id: str) -> dict[str, int]:
        """Unrefunded units per item already consumed for a booking on this pass."""
        units = {}
        for consumption in self.passes.list_unrefunded(booking_id):
            if str(consumption.active_pass_id) != str(active_pass.id):
                continue
            item_id = consumption.content_item_id
            units[item_id] = units.get(item_id, 0) + consumption.quantity
        return units

    def _debit(self, active_pass: ActivePass, item_id: str, quantity: int,
               month: str, booking_id: str | None) -> tuple[int, PassConsumption]:
        self._check_balance(active_pass, item_id, self.passes.get_content_item(item_id), quantity, month)
        remaining = active_pass.remaining(item_id) - quantity
        active_pass.remaining_usages = {**active_pass.remaining_usages, item_id: remaining}
        self.passes.save_pass(active_pass, ['remaining_usages'])
        self.passes.add_monthly_usage(active_pass, item_id, month, quantity)
        consumption = self.passes.record_consumption(active_pass, item_id, quantity, month, booking_id)
        logger.info('Pass %s item %s consumed %d (%s), %d left',
                    active_pass.id, item_id, quantity, month, remaining)
        return remaining, consumption

    def _credit(self, active_pass: ActivePass, item_id: str, quantity: int, month: str) -> int:
        remaining = active_pass.remaining(item_id) + quantity
        active_pass.remaining_usages = {**active_pass.remaining_usages, item_id: remaining}
        self.passes.save_pass(active_pass, ['remaining_usages'])
        self.passes.add_monthly_usage(active_pass, item_id, month, -quantity)
        logger.info('Pass %s item %s refunded %d (%s), %d left',
                    active_pass.id, item_id, quantity, month, remaining)
        return remaining

    def _items_for_services(self, active_pass: ActivePass, service_ids) -> dict:
        """
        Map each covered service to the pass content item linked to it.

        Returns {item id: (item, units)}. A service the pass does not cover
        is a ValidationError.
        """
        by_service = {
            str(item.service_id): item
            for item in self.passes.list_content_items(str(active_pass.season_pass_id))
            if item.service_id is not None
        }
        wanted = {}
        for service_id in service_ids:
            item = by_service.get(str(service_id))
            if item is None:
                raise ValidationError(f"Service {service_id} is not covered by this season pass.")
            _, units = wanted.get(str(item.id), (item, 0))
            wanted[str(item.id)] = (item, units + 1)
        return wanted


def default_ledger(deadline=None) -> PassConsumptionLedger:
    from .stores.django_store import DjangoPassLedgerRepository

    return PassConsumptionLedger(DjangoPassLedgerRepository(deadline))
