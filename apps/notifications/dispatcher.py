"""
Booking notifications.

Dispatch is fire-and-forget: callers schedule `notify_safely` with
transaction.on_commit, so a failed email never rolls back the transition
that triggered it.

Public API:
  get_dispatcher()                   dispatcher named by NOTIFICATION_DISPATCHER
  notify_safely(dispatcher, event, payload)
  booking_payload(booking)
"""
import logging
from abc import ABC, abstractmethod

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.module_loading import import_string

from .signals import booking_event

logger = logging.getLogger(__name__)

EVENT_SUBJECTS = {
    'booking.created': 'Booking received',
    'booking.payment_reported': 'Payment reported',
    'booking.status_changed': 'Booking status updated',
    'booking.rescheduled': 'Booking rescheduled',
}


class NotificationDispatcher(ABC):

    @abstractmethod
    def notify(self, event: str, payload: dict) -> None:
        ...


class EmailNotificationDispatcher(NotificationDispatcher):
    """Fires the booking_event signal, then emails the customer and staff."""

    def notify(self, event: str, payload: dict) -> None:
        booking_event.send(sender=self.__class__, event=event, payload=payload)

        recipients = [payload.get('contact_email'), *settings.BOOKING_NOTIFY_EMAILS]
        recipients = [r for r in recipients if r]
        if not recipients:
            logger.debug('No recipients for %s (booking ref %s)', event, payload.get('booking_ref'))
            return

        context = {**payload, 'event': event, 'support_email': settings.DEFAULT_FROM_EMAIL}
        subject = f"{EVENT_SUBJECTS.get(event, 'Booking update')} - #{payload.get('booking_ref', '')}"
        _send(subject, recipients, 'emails/booking_event.html', 'emails/booking_event.txt', context)


def _send(subject: str, to: list[str], html_template: str, txt_template: str, context: dict):
    """Build a multipart email with an HTML body and a text fallback."""
    text_body = render_to_string(txt_template, context)
    html_body = render_to_string(html_template, context)

    msg = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=to,
    )
    msg.attach_alternative(html_body, 'text/html')
    msg.send(fail_silently=False)
    logger.info('Email "%s" sent to %s', subject, ', '.join(to))


def get_dispatcher() -> NotificationDispatcher:
    return import_string(settings.NOTIFICATION_DISPATCHER)()


def notify_safely(dispatcher: NotificationDispatcher, event: str, payload: dict) -> None:
    """Deliver a notification; failures are logged for an operator, never raised."""
    try:
        dispatcher.notify(event, payload)
    except Exception:
        logger.exception('Notification %s failed for booking %s', event, payload.get('booking_id'))


def booking_payload(booking) -> dict:
    start = timezone.localtime(booking.start_time)
    return {
        'booking_id': str(booking.id),
        'booking_ref': booking.id_short,
        'customer_id': booking.customer_id,
        'contact_email': booking.contact_email,
        'designer_id': str(booking.designer_id) if booking.designer_id else None,
        'designer_name': booking.designer.name if booking.designer_id else '',
        'service_names': list(booking.service_names),
        'option_names': list(booking.option_names),
        'start_time': start.isoformat(),
        'start_display': start.strftime('%Y-%m-%d %H:%M'),
        'duration_minutes': booking.duration_minutes,
        'amount': str(booking.amount),
        'status': booking.status,
        'status_display': booking.get_status_display(),
        'reschedule_count': booking.reschedule_count,
    }
