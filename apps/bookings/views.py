"""
Booking JSON API.

Identity arrives in trusted headers from the upstream identity provider
(see apps.core.decorators.requester_required). Every view builds its
services with a fresh per-request store deadline.
"""
import logging

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from apps.core.clock import Deadline
from apps.core.decorators import form_errors, json_api, read_json, requester_required

from .engine import ANY_DESIGNER, default_calculator, get_available_slots, normalize_designer_id
from .forms import (
    BookingCreateForm,
    DesignerInfoForm,
    FeedbackForm,
    PaymentNoteForm,
    RescheduleForm,
    SlotQueryForm,
    StatusForm,
)
from .lifecycle import default_lifecycle
from .reschedule import default_coordinator

logger = logging.getLogger(__name__)


def _deadline() -> Deadline:
    return Deadline.after(settings.STORE_TIMEOUT_SECONDS)


def _clean(form_class, data):
    form = form_class(data)
    if not form.is_valid():
        raise form_errors(form)
    return form.cleaned_data


def serialize_booking(booking) -> dict:
    return {
        'id': str(booking.id),
        'ref': booking.id_short,
        'customer_id': booking.customer_id,
        'designer_id': str(booking.designer_id) if booking.designer_id else None,
        'service_ids': list(booking.service_ids),
        'service_names': list(booking.service_names),
        'option_item_ids': list(booking.option_item_ids),
        'option_names': list(booking.option_names),
        'start_time': timezone.localtime(booking.start_time).isoformat(),
        'end_time': timezone.localtime(booking.end_time).isoformat(),
        'duration_minutes': booking.duration_minutes,
        'amount': str(booking.amount),
        'status': booking.status,
        'notes': booking.notes,
        'reschedule_count': booking.reschedule_count,
        'feedback': booking.feedback,
        'active_pass_id': str(booking.active_pass_id) if booking.active_pass_id else None,
        'pass_service_ids': list(booking.pass_service_ids),
        'refund_pending': booking.refund_pending,
        'created_at': booking.created_at.isoformat() if booking.created_at else None,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Availability
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
@json_api
def api_slots(request):
    """
    GET /bookings/api/slots/?designer_id=<uuid|any>&date=YYYY-MM-DD&service_ids=<uuid>,<uuid>
                           [&option_item_ids=<uuid>,<uuid>]
    """
    data = _clean(SlotQueryForm, request.GET)
    designer_id = normalize_designer_id(data['designer_id'])
    slots = get_available_slots(designer_id, data['date'], data['service_ids'], deadline=_deadline(),
                                option_item_ids=data['option_item_ids'])
    return JsonResponse({
        'date': data['date'].isoformat(),
        'designer_id': designer_id or ANY_DESIGNER,
        'slots': [timezone.localtime(s).isoformat() for s in slots],
    })


@require_GET
@json_api
def api_designer_info(request, designer_id):
    """GET /bookings/api/designers/<uuid>/info/?from=YYYY-MM-DD&to=YYYY-MM-DD"""
    data = _clean(DesignerInfoForm, {'start': request.GET.get('from'), 'end': request.GET.get('to')})
    info = default_calculator(_deadline()).designer_booking_info(designer_id, data['start'], data['end'])
    return JsonResponse({
        'designer_id': info.designer_id,
        'closed_dates': [d.isoformat() for d in info.closed_dates],
        'booking_deadline': (
            timezone.localtime(info.booking_deadline).isoformat() if info.booking_deadline else None
        ),
    })


# ─────────────────────────────────────────────────────────────────────────────
# Bookings
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
@requester_required
@json_api
def api_my_bookings(request):
    bookings = default_lifecycle(_deadline()).list_customer_bookings(request.requester)
    return JsonResponse({'bookings': [serialize_booking(b) for b in bookings]})


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_create_booking(request):
    data = _clean(BookingCreateForm, read_json(request))
    booking = default_lifecycle(_deadline()).create_booking(
        request.requester,
        data['designer_id'] or None,
        data['service_ids'],
        data['start_time'],
        data['notes'],
        option_item_ids=data['option_item_ids'],
        active_pass_id=str(data['active_pass_id']) if data['active_pass_id'] else None,
        pass_service_ids=data['pass_service_ids'],
        contact_email=data['contact_email'],
        request_key=data['request_key'] or None,
    )
    return JsonResponse({'booking': serialize_booking(booking)}, status=201)


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_payment_note(request, booking_id):
    data = _clean(PaymentNoteForm, read_json(request))
    booking = default_lifecycle(_deadline()).submit_payment_note(
        str(booking_id), request.requester, data['note'],
    )
    return JsonResponse({'booking': serialize_booking(booking)})


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_set_status(request, booking_id):
    data = _clean(StatusForm, read_json(request))
    booking = default_lifecycle(_deadline()).set_booking_status(
        str(booking_id), data['status'], request.requester, data['reason'],
    )
    return JsonResponse({'booking': serialize_booking(booking)})


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_reschedule(request, booking_id):
    data = _clean(RescheduleForm, read_json(request))
    booking = default_coordinator(_deadline()).reschedule(
        str(booking_id), request.requester, data['new_start_time'],
    )
    return JsonResponse({'booking': serialize_booking(booking)})


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_feedback(request, booking_id):
    data = _clean(FeedbackForm, read_json(request))
    booking = default_lifecycle(_deadline()).leave_feedback(
        str(booking_id), request.requester, data['feedback'],
    )
    return JsonResponse({'booking': serialize_booking(booking)})
