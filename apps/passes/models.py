"""
Season pass models:
  - SeasonPass        : catalog definition (variants, duration)
  - ContentItem       : one redeemable line item of a pass definition
  - SeasonPassOrder   : a customer's purchase, confirmed manually by an admin
  - ActivePass        : an activated purchase with remaining usage counts
  - PassMonthlyUsage  : per-month usage counter for capped content items
  - PassConsumption   : ledger of every debit, keyed by booking for refunds
"""
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.core.models import TimestampedModel, UUIDModel
from apps.services.models import Service


class SeasonPass(UUIDModel, TimestampedModel):
    name = models.CharField(max_length=120)
    duration_months = models.PositiveSmallIntegerField(default=3, validators=[MinValueValidator(1)])
    variants = models.JSONField(
        default=list, blank=True,
        help_text='e.g. [{"name": "120", "price": 12000, "original_price": 15000}]',
    )
    note = models.TextField(blank=True)
    color = models.CharField(max_length=20, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Season Pass'
        verbose_name_plural = 'Season Passes'
        ordering = ['display_order', 'name']

    def __str__(self):
        return self.name

    def variant(self, name: str) -> dict | None:
        return next((v for v in self.variants if v.get('name') == name), None)


class ContentCategory(models.TextChoices):
    SERVICE = 'service', 'Service'
    BENEFIT = 'benefit', 'Benefit'


class ContentItem(UUIDModel):
    season_pass = models.ForeignKey(SeasonPass, on_delete=models.CASCADE, related_name='content_items')
    name = models.CharField(max_length=120)
    category = models.CharField(max_length=10, choices=ContentCategory.choices, default=ContentCategory.SERVICE)
    service = models.ForeignKey(
        Service, on_delete=models.SET_NULL, null=True, blank=True, related_name='pass_content_items',
        help_text='Service this item redeems, if any',
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    monthly_limit = models.PositiveIntegerField(
        null=True, blank=True,
        help_text='Maximum redemptions per calendar month; empty means no cap',
    )

    class Meta:
        verbose_name = 'Content Item'
        verbose_name_plural = 'Content Items'
        ordering = ['season_pass', 'name']

    def __str__(self):
        return f'{self.name} ×{self.quantity}'


class OrderStatus(models.TextChoices):
    PENDING_PAYMENT = 'pending_payment', 'Pending Payment'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class SeasonPassOrder(UUIDModel, TimestampedModel):
    """A pass purchase paid by bank transfer and confirmed by an admin."""
    customer_id = models.CharField(max_length=128, db_index=True)
    season_pass = models.ForeignKey(SeasonPass, on_delete=models.PROTECT, related_name='orders')
    # Snapshot in case the definition changes later
    pass_name = models.CharField(max_length=120)
    variant_name = models.CharField(max_length=60, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING_PAYMENT, db_index=True,
    )
    payment_note = models.CharField(max_length=120, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Season Pass Order'
        verbose_name_plural = 'Season Pass Orders'
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.pass_name} {self.variant_name} — {self.customer_id} [{self.status}]'


def validate_remaining_usages(value):
    if not isinstance(value, dict):
        raise ValidationError('Remaining usages must be a mapping of content item id to count.')
    for key, count in value.items():
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise ValidationError(f'Remaining usage for {key} must be a non-negative integer.')


class ActivePass(UUIDModel, TimestampedModel):
    """
    A customer's activated season pass.
    remaining_usages maps str(ContentItem.id) -> remaining count (never < 0).
    Only the ledger decrements it; admins may set absolute values.
    """
    customer_id = models.CharField(max_length=128, db_index=True)
    season_pass = models.ForeignKey(SeasonPass, on_delete=models.PROTECT, related_name='active_passes')
    order = models.OneToOneField(
        SeasonPassOrder, on_delete=models.SET_NULL, null=True, blank=True, related_name='active_pass',
    )
    pass_name = models.CharField(max_length=120)
    variant_name = models.CharField(max_length=60, blank=True)
    purchase_date = models.DateTimeField()
    expiry_date = models.DateTimeField(db_index=True)
    remaining_usages = models.JSONField(default=dict, blank=True, validators=[validate_remaining_usages])

    class Meta:
        verbose_name = 'Active Pass'
        verbose_name_plural = 'Active Passes'
        ordering = ['-purchase_date']

    def __str__(self):
        return f'{self.pass_name} ({self.customer_id}) until {self.expiry_date:%Y-%m-%d}'

    def is_expired(self, now=None) -> bool:
        return self.expiry_date < (now or timezone.now())

    def remaining(self, content_item_id) -> int:
        return int(self.remaining_usages.get(str(content_item_id), 0))


class PassMonthlyUsage(UUIDModel):
    """How many times a capped content item was used in one calendar month."""
    active_pass = models.ForeignKey(ActivePass, on_delete=models.CASCADE, related_name='monthly_usage')
    content_item_id = models.CharField(max_length=36)
    month = models.CharField(max_length=7, help_text='YYYY-MM')
    used = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Monthly Usage'
        verbose_name_plural = 'Monthly Usage'
        constraints = [
            models.UniqueConstraint(
                fields=['active_pass', 'content_item_id', 'month'],
                name='uq_pass_item_month_usage',
            )
        ]

    def __str__(self):
        return f'{self.active_pass_id} {self.content_item_id} {self.month}: {self.used}'


class PassConsumption(UUIDModel, TimestampedModel):
    """Immutable debit record. refunded_at is set exactly once by a refund."""
    active_pass = models.ForeignKey(ActivePass, on_delete=models.CASCADE, related_name='consumptions')
    content_item_id = models.CharField(max_length=36)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    month = models.CharField(max_length=7)
    booking_id = models.UUIDField(null=True, blank=True, db_index=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Pass Consumption'
        verbose_name_plural = 'Pass Consumptions'
        ordering = ['-created_at']

    def __str__(self):
        state = 'refunded' if self.refunded_at else 'active'
        return f'{self.content_item_id} ×{self.quantity} ({self.month}) [{state}]'
