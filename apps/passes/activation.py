"""
Season pass purchase flow.

Customers order a pass and pay by bank transfer. An administrator confirms
the transfer by completing the order, which activates an ActivePass with one
remaining-usage entry per content item of the pass definition.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from apps.core.clock import add_months, current_time
from apps.core.exceptions import ConflictError, ErrorCode, NotFoundError, ValidationError
from apps.core.roles import Requester, require_admin, require_owner_or_admin

from .models import ActivePass, OrderStatus, SeasonPassOrder
from .stores.interfaces import PassLedgerRepository

logger = logging.getLogger(__name__)


class PassActivation:

    def __init__(self, passes: PassLedgerRepository) -> None:
        self.passes = passes

    def create_order(self, requester: Requester, season_pass_id: str,
                     variant_name: str = '', payment_note: str = '') -> SeasonPassOrder:
        season_pass = self.passes.get_season_pass(season_pass_id)
        if season_pass is None:
            raise NotFoundError('Season pass not found.', code=ErrorCode.PASS_NOT_FOUND)

        price = Decimal('0.00')
        if season_pass.variants or variant_name:
            variant = season_pass.variant(variant_name)
            if variant is None:
                raise ValidationError(f"Unknown variant '{variant_name}' for {season_pass.name}.")
            try:
                price = Decimal(str(variant.get('price', 0)))
            except InvalidOperation as exc:
                raise ValidationError(f"Variant '{variant_name}' has no valid price.") from exc

        with self.passes.atomic():
            order = self.passes.create_order(
                customer_id=requester.id,
                season_pass=season_pass,
                pass_name=season_pass.name,
                variant_name=variant_name,
                price=price,
                status=OrderStatus.PENDING_PAYMENT,
                payment_note=payment_note.strip(),
            )
        logger.info('Pass order %s created for %s (%s %s)',
                    order.id, requester.id, season_pass.name, variant_name)
        return order

    def complete_order(self, order_id: str, requester: Requester,
                       now: datetime | None = None) -> ActivePass:
        """Activate the pass for a paid order. Completing twice is a conflict."""
        require_admin(requester)
        now = now or current_time()
        with self.passes.atomic():
            order = self._pending_order(order_id)
            season_pass = order.season_pass
            remaining = {
                str(item.id): item.quantity
                for item in self.passes.list_content_items(str(season_pass.id))
            }
            active_pass = self.passes.create_pass(
                customer_id=order.customer_id,
                season_pass=season_pass,
                order=order,
                pass_name=order.pass_name,
                variant_name=order.variant_name,
                purchase_date=now,
                expiry_date=add_months(now, season_pass.duration_months),
                remaining_usages=remaining,
            )
            order.status = OrderStatus.COMPLETED
            order.completed_at = now
            self.passes.save_order(order, ['status', 'completed_at'])
        logger.info('Pass order %s completed by %s; active pass %s expires %s',
                    order.id, requester.label, active_pass.id, active_pass.expiry_date)
        return active_pass

    def cancel_order(self, order_id: str, requester: Requester) -> SeasonPassOrder:
        with self.passes.atomic():
            order = self.passes.get_order(order_id, for_update=True)
            if order is None:
                raise NotFoundError('Order not found.', code=ErrorCode.ORDER_NOT_FOUND)
            require_owner_or_admin(requester, order.customer_id)
            if order.status != OrderStatus.PENDING_PAYMENT:
                raise ConflictError('Only pending orders can be cancelled.', code=ErrorCode.ORDER_NOT_PENDING)
            order.status = OrderStatus.CANCELLED
            self.passes.save_order(order, ['status'])
        logger.info('Pass order %s cancelled by %s', order.id, requester.label)
        return order

    def set_remaining_usage(self, active_pass_id: str, content_item_id: str,
                            quantity: int, requester: Requester) -> ActivePass:
        """Administrative correction: set an absolute remaining count."""
        require_admin(requester)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValidationError('Remaining usage must be a non-negative integer.')
        with self.passes.atomic():
            active_pass = self.passes.get_pass(active_pass_id, for_update=True)
            if active_pass is None:
                raise NotFoundError('Season pass not found.', code=ErrorCode.PASS_NOT_FOUND)
            key = str(content_item_id)
            if key not in active_pass.remaining_usages:
                raise ValidationError(f'Content item {key} is not part of this pass.')
            active_pass.remaining_usages = {**active_pass.remaining_usages, key: quantity}
            self.passes.save_pass(active_pass, ['remaining_usages'])
        logger.info('Pass %s item %s set to %d by %s', active_pass.id, key, quantity, requester.label)
        return active_pass

    def list_customer_passes(self, requester: Requester) -> list[ActivePass]:
        return self.passes.list_passes_for_customer(requester.id)

    def _pending_order(self, order_id: str) -> SeasonPassOrder:
        order = self.passes.get_order(order_id, for_update=True)
        if order is None:
            raise NotFoundError('Order not found.', code=ErrorCode.ORDER_NOT_FOUND)
        if order.status != OrderStatus.PENDING_PAYMENT:
            raise ConflictError(f'Order is already {order.status}.', code=ErrorCode.ORDER_NOT_PENDING)
        return order


def default_activation(deadline=None) -> PassActivation:
    from .stores.django_store import DjangoPassLedgerRepository

    return PassActivation(DjangoPassLedgerRepository(deadline))
