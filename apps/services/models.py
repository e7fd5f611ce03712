"""
Service model: one bookable service (e.g. "Gel manicure", 60 min).

A booking may combine several services; its duration is the sum of their
durations plus the minutes of any selected option items. A service can be
performed by MULTIPLE designers via the ManyToManyField.
"""
from django.core.validators import MinValueValidator
from django.db import models

from apps.core.models import TimestampedModel, UUIDModel
from apps.designers.models import Designer


class Service(UUIDModel, TimestampedModel):
    designers = models.ManyToManyField(
        Designer,
        related_name='services',
        blank=True,
    )
    name = models.CharField(max_length=150)
    category = models.CharField(max_length=80, blank=True)
    description = models.TextField(blank=True)
    duration_minutes = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text='Session duration in minutes',
    )
    price = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)])
    platinum_price = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)],
        help_text='Price for platinum members; falls back to price when empty',
    )
    is_active = models.BooleanField(default=True, db_index=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Service'
        verbose_name_plural = 'Services'
        ordering = ['display_order', 'name']

    def __str__(self):
        return f"{self.name} ({self.duration_minutes} min)"

    def price_for(self, privileged: bool):
        if privileged and self.platinum_price is not None:
            return self.platinum_price
        return self.price


class ServiceOption(UUIDModel):
    """A choice group on a service, e.g. "Nail length" or "Add-ons"."""
    service = models.ForeignKey(Service, on_delete=models.CASCADE, related_name='options')
    name = models.CharField(max_length=100)
    required = models.BooleanField(default=False, help_text='The customer must pick at least one item')
    multi_select = models.BooleanField(default=False, help_text='More than one item may be picked')
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Service Option'
        verbose_name_plural = 'Service Options'
        ordering = ['service', 'display_order', 'name']

    def __str__(self):
        return f"{self.service.name} · {self.name}"


class ServiceOptionItem(UUIDModel):
    """One pickable item. Its price and minutes are added to the booking."""
    option = models.ForeignKey(ServiceOption, on_delete=models.CASCADE, related_name='items')
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=8, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    duration_minutes = models.PositiveIntegerField(default=0, help_text='Extra minutes on top of the service')
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Option Item'
        verbose_name_plural = 'Option Items'
        ordering = ['option', 'display_order', 'name']

    def __str__(self):
        return f"{self.option.name}: {self.name}"
