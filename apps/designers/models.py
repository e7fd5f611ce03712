"""
Designer models: Designer profile, per-date BusinessHours, BookingSettings.

BusinessHours rows are keyed by calendar date. A row either closes the day
or lists the operating windows ("HH:MM" pairs) for it. Dates without a row
fall back to the designer's default opening/closing time.
"""
from datetime import time

from django.core.exceptions import ValidationError
from django.db import models

from apps.core.clock import parse_hhmm
from apps.core.models import SingletonModel, TimestampedModel, UUIDModel


class Designer(UUIDModel, TimestampedModel):
    name = models.CharField(max_length=120)
    title = models.CharField(max_length=80, blank=True, help_text='e.g. Senior Designer, Store Manager')
    bio = models.TextField(blank=True)
    linked_user_id = models.CharField(
        max_length=128, blank=True,
        help_text='Identity-provider id of the staff account linked to this designer',
    )
    opening_time = models.TimeField(default=time(10, 0))
    closing_time = models.TimeField(default=time(19, 0))
    booking_deadline = models.DateTimeField(
        null=True, blank=True,
        help_text='No slot may start after this instant. Overrides the store-wide deadline.',
    )
    is_active = models.BooleanField(default=True, db_index=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Designer'
        verbose_name_plural = 'Designers'
        ordering = ['display_order', 'name']

    def __str__(self):
        return self.name


def validate_time_slots(value):
    if not isinstance(value, list):
        raise ValidationError('Time slots must be a list of {"start", "end"} objects.')
    for slot in value:
        try:
            start, end = parse_hhmm(slot['start']), parse_hhmm(slot['end'])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f'Invalid time slot {slot!r}; expected {{"start": "HH:MM", "end": "HH:MM"}}.') from exc
        if start >= end:
            raise ValidationError(f'Time slot {slot["start"]}–{slot["end"]} ends before it starts.')


class BusinessHours(UUIDModel):
    """A designer's hours for one calendar date."""
    designer = models.ForeignKey(Designer, on_delete=models.CASCADE, related_name='business_hours')
    date = models.DateField(db_index=True)
    is_closed = models.BooleanField(default=False)
    time_slots = models.JSONField(
        default=list, blank=True, validators=[validate_time_slots],
        help_text='e.g. [{"start": "10:00", "end": "13:00"}, {"start": "14:00", "end": "20:00"}]',
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Business Hours'
        verbose_name_plural = 'Business Hours'
        unique_together = [('designer', 'date')]
        ordering = ['designer', 'date']

    def __str__(self):
        if self.is_closed:
            return f'{self.designer.name} — {self.date} (closed)'
        spans = ', '.join(f"{s['start']}–{s['end']}" for s in self.time_slots)
        return f'{self.designer.name} — {self.date} ({spans or "no hours"})'

    def windows(self) -> list[tuple[time, time]]:
        """Operating windows as (start, end) time pairs, earliest first."""
        if self.is_closed:
            return []
        return sorted((parse_hhmm(s['start']), parse_hhmm(s['end'])) for s in self.time_slots)


class BookingSettings(SingletonModel):
    """Store-wide booking configuration edited from the admin."""
    booking_deadline = models.DateTimeField(
        null=True, blank=True,
        help_text='No slot may start after this instant (unless a designer sets their own).',
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Booking Settings'
        verbose_name_plural = 'Booking Settings'

    def __str__(self):
        return 'Booking Settings'
