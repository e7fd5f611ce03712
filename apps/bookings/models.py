"""
Bookings app models:
  - Booking          : Core booking record with state machine
  - BookingStatusLog : Full audit trail of state transitions
"""
from django.core.validators import MinValueValidator
from django.db import models

from apps.core.clock import add_minutes
from apps.core.models import TimestampedModel, UUIDModel
from apps.designers.models import Designer
from apps.passes.models import ActivePass


# ── Booking State Machine ─────────────────────────────────────────────────────

class BookingStatus(models.TextChoices):
    PENDING_PAYMENT      = 'pending_payment',      'Pending Payment'
    PENDING_CONFIRMATION = 'pending_confirmation', 'Pending Confirmation'
    CONFIRMED            = 'confirmed',            'Confirmed'
    COMPLETED            = 'completed',            'Completed'
    CANCELLED            = 'cancelled',            'Cancelled'


ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING_PAYMENT:      {BookingStatus.PENDING_CONFIRMATION, BookingStatus.CANCELLED},
    BookingStatus.PENDING_CONFIRMATION: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED:            {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED:            set(),
    BookingStatus.CANCELLED:            set(),
}

TERMINAL_STATUSES = {BookingStatus.COMPLETED, BookingStatus.CANCELLED}


class Booking(UUIDModel, TimestampedModel):
    """
    A reservation of designer time for one or more services.
    Status transitions go through _transition(); the lifecycle writes the
    matching BookingStatusLog row in the same transaction.
    """
    customer_id = models.CharField(max_length=128, db_index=True)
    contact_email = models.EmailField(blank=True)
    designer = models.ForeignKey(
        Designer, on_delete=models.PROTECT, null=True, blank=True, related_name='bookings',
    )

    # Ordered snapshot of the booked services
    service_ids = models.JSONField(default=list)
    service_names = models.JSONField(default=list, blank=True)
    option_item_ids = models.JSONField(default=list, blank=True)
    option_names = models.JSONField(default=list, blank=True)

    start_time = models.DateTimeField(db_index=True)
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=0,
        validators=[MinValueValidator(0)],
    )
    status = models.CharField(
        max_length=24, choices=BookingStatus.choices,
        default=BookingStatus.PENDING_PAYMENT, db_index=True,
    )
    notes = models.TextField(blank=True)
    reschedule_count = models.PositiveSmallIntegerField(default=0)
    feedback = models.TextField(blank=True)

    # Season pass redemption
    active_pass = models.ForeignKey(
        ActivePass, on_delete=models.SET_NULL, null=True, blank=True, related_name='bookings',
    )
    pass_service_ids = models.JSONField(default=list, blank=True)
    pass_usage_deducted = models.BooleanField(default=False)
    refund_pending = models.BooleanField(default=False, db_index=True)

    # Client-supplied idempotency key for creation
    request_key = models.CharField(max_length=64, null=True, blank=True, unique=True)

    class Meta:
        verbose_name = 'Booking'
        verbose_name_plural = 'Bookings'
        ordering = ['-start_time']
        indexes = [
            models.Index(fields=['designer', 'start_time'], name='booking_designer_start_idx'),
        ]

    def __str__(self):
        names = '、'.join(self.service_names) or 'booking'
        return f"#{self.id_short} | {self.customer_id} | {names} | {self.start_time:%Y-%m-%d %H:%M}"

    @property
    def id_short(self):
        """Returns the first 8 chars of UUID in uppercase."""
        return str(self.id)[:8].upper()

    @property
    def end_time(self):
        return add_minutes(self.start_time, self.duration_minutes)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, new_status) -> bool:
        return new_status in ALLOWED_TRANSITIONS[BookingStatus(self.status)]

    def _transition(self, new_status):
        """Set status and return the previous one. Caller saves and logs."""
        old_status = self.status
        self.status = new_status
        return old_status


# ── Booking Audit Log ─────────────────────────────────────────────────────────

class BookingStatusLog(UUIDModel):
    """Immutable audit trail of every status transition on a booking."""
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='status_logs')
    from_status = models.CharField(max_length=24, choices=BookingStatus.choices, blank=True)
    to_status = models.CharField(max_length=24, choices=BookingStatus.choices)
    changed_by = models.CharField(max_length=160, help_text='role:requester-id or system')
    reason = models.TextField(blank=True)
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Booking Status Log'
        verbose_name_plural = 'Booking Status Logs'
        ordering = ['changed_at']

    def __str__(self):
        return f"Booking {str(self.booking_id)[:8]}: {self.from_status or '∅'} → {self.to_status}"
