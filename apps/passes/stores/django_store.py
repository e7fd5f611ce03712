"""Django ORM implementation of the pass store."""

from datetime import datetime

from django.apps import apps
from django.db import transaction

from apps.core.clock import Deadline
from apps.core.db import atomic_block, read_with_retry
from apps.passes.models import (
    ActivePass,
    ContentItem,
    PassConsumption,
    PassMonthlyUsage,
    SeasonPass,
    SeasonPassOrder,
)
from apps.passes.stores.interfaces import PassLedgerRepository


class DjangoPassLedgerRepository(PassLedgerRepository):

    def __init__(self, deadline: Deadline | None = None) -> None:
        self.deadline = deadline

    def _read(self, fn, *args):
        return read_with_retry(fn, *args, deadline=self.deadline)

    def atomic(self):
        return atomic_block(self.deadline)

    def on_commit(self, callback) -> None:
        transaction.on_commit(callback)

    def get_pass(self, active_pass_id, for_update=False):
        qs = ActivePass.objects.all()
        if for_update:
            qs = qs.select_for_update()
        return self._read(lambda: qs.filter(id=active_pass_id).first())

    def save_pass(self, active_pass, fields):
        active_pass.save(update_fields=[*fields, 'updated_at'])

    def create_pass(self, **fields):
        return ActivePass.objects.create(**fields)

    def list_passes_for_customer(self, customer_id):
        return self._read(lambda: list(
            ActivePass.objects.filter(customer_id=customer_id).order_by('-purchase_date')
        ))

    def get_season_pass(self, season_pass_id):
        return self._read(lambda: SeasonPass.objects.filter(id=season_pass_id, is_active=True).first())

    def get_content_item(self, content_item_id):
        return self._read(lambda: ContentItem.objects.filter(id=content_item_id).first())

    def list_content_items(self, season_pass_id):
        return self._read(lambda: list(
            ContentItem.objects.filter(season_pass_id=season_pass_id).order_by('name')
        ))

    def get_monthly_used(self, active_pass, content_item_id, month):
        used = self._read(lambda: (
            PassMonthlyUsage.objects
            .filter(active_pass=active_pass, content_item_id=str(content_item_id), month=month)
            .values_list('used', flat=True)
            .first()
        ))
        return used or 0

    def add_monthly_usage(self, active_pass, content_item_id, month, delta):
        # Callers hold the ActivePass row lock, so the counter row has one writer.
        row, _ = PassMonthlyUsage.objects.get_or_create(
            active_pass=active_pass, content_item_id=str(content_item_id), month=month,
        )
        row.used = max(0, row.used + delta)
        row.save(update_fields=['used'])
        return row.used

    def record_consumption(self, active_pass, content_item_id, quantity, month, booking_id=None):
        return PassConsumption.objects.create(
            active_pass=active_pass,
            content_item_id=str(content_item_id),
            quantity=quantity,
            month=month,
            booking_id=booking_id,
        )

    def get_consumption(self, consumption_id, for_update=False):
        qs = PassConsumption.objects.all()
        if for_update:
            qs = qs.select_for_update()
        return self._read(lambda: qs.filter(id=consumption_id).first())

    def list_unrefunded(self, booking_id, for_update=False):
        qs = PassConsumption.objects.filter(booking_id=booking_id, refunded_at__isnull=True)
        if for_update:
            qs = qs.select_for_update()
        return self._read(lambda: list(qs.order_by('created_at')))

    def mark_refunded(self, consumption, refunded_at: datetime):
        # Conditional update: a second refund of the same record matches no row.
        updated = (PassConsumption.objects
                   .filter(pk=consumption.pk, refunded_at__isnull=True)
                   .update(refunded_at=refunded_at, updated_at=refunded_at))
        consumption.refunded_at = refunded_at
        return updated == 1

    def get_booking_owner(self, booking_id):
        # Resolved through the app registry: bookings already imports passes.
        Booking = apps.get_model('bookings', 'Booking')
        return self._read(lambda: (
            Booking.objects.filter(id=booking_id).values_list('customer_id', flat=True).first()
        ))

    def get_order(self, order_id, for_update=False):
        qs = SeasonPassOrder.objects.all()
        if for_update:
            qs = qs.select_for_update()
        return self._read(lambda: qs.filter(id=order_id).first())

    def create_order(self, **fields):
        return SeasonPassOrder.objects.create(**fields)

    def save_order(self, order, fields):
        order.save(update_fields=[*fields, 'updated_at'])
