"""
management command: apply_pending_refunds

Refunds the season pass consumptions of cancelled bookings whose refund
did not complete right after the cancellation committed. Each consumption
is refunded at most once, so overlapping runs are harmless.

Run via OS cron every 5 minutes:
  */5 * * * *  /path/to/venv/bin/python manage.py apply_pending_refunds
"""
from django.conf import settings
from django.core.management.base import BaseCommand

from apps.bookings.lifecycle import default_lifecycle
from apps.core.clock import Deadline


class Command(BaseCommand):
    help = 'Apply pass refunds for cancelled bookings still flagged refund_pending'

    def handle(self, *args, **options):
        lifecycle = default_lifecycle(Deadline.after(settings.STORE_TIMEOUT_SECONDS * 6))
        applied, failed = lifecycle.apply_pending_refunds()

        message = f'apply_pending_refunds: applied {applied}, failed {failed}'
        if failed:
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS(message))
