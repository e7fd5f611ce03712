"""
Season pass JSON API: balances, consumption, refunds, and purchase orders.

Customers act on their own passes only. Administrators may act on any pass
and are the only ones who complete orders, correct balances or reverse a
single consumption.
"""
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from apps.core.clock import Deadline
from apps.core.decorators import form_errors, json_api, read_json, requester_required
from apps.core.roles import require_admin

from .activation import default_activation
from .forms import ConsumeForm, PassOrderForm, RefundForm, RemainingUsageForm
from .ledger import default_ledger


def _deadline() -> Deadline:
    return Deadline.after(settings.STORE_TIMEOUT_SECONDS)


def _clean(form_class, data):
    form = form_class(data)
    if not form.is_valid():
        raise form_errors(form)
    return form.cleaned_data


def _acting_customer(requester):
    """None lets an administrator act on any customer's pass."""
    return None if requester.is_admin else requester.id


def serialize_pass(active_pass) -> dict:
    return {
        'id': str(active_pass.id),
        'season_pass_id': str(active_pass.season_pass_id),
        'pass_name': active_pass.pass_name,
        'variant_name': active_pass.variant_name,
        'purchase_date': active_pass.purchase_date.isoformat(),
        'expiry_date': active_pass.expiry_date.isoformat(),
        'remaining_usages': dict(active_pass.remaining_usages),
    }


def serialize_order(order) -> dict:
    return {
        'id': str(order.id),
        'customer_id': order.customer_id,
        'season_pass_id': str(order.season_pass_id),
        'pass_name': order.pass_name,
        'variant_name': order.variant_name,
        'price': str(order.price),
        'status': order.status,
        'payment_note': order.payment_note,
        'completed_at': order.completed_at.isoformat() if order.completed_at else None,
    }


@require_GET
@requester_required
@json_api
def api_my_passes(request):
    passes = default_activation(_deadline()).list_customer_passes(request.requester)
    return JsonResponse({'passes': [serialize_pass(p) for p in passes]})


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_consume(request):
    data = _clean(ConsumeForm, read_json(request))
    remaining, consumption = default_ledger(_deadline()).consume_entry(
        _acting_customer(request.requester),
        str(data['active_pass_id']),
        str(data['content_item_id']),
        data['quantity'],
        data['month'] or None,
        booking_id=str(data['booking_id']) if data['booking_id'] else None,
    )
    return JsonResponse({
        'consumption_id': str(consumption.id),
        'content_item_id': str(data['content_item_id']),
        'remaining': remaining,
    })


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_refund(request):
    """Reverse one consumption. Customers get refunds through booking cancellation."""
    require_admin(request.requester)
    data = _clean(RefundForm, read_json(request))
    remaining = default_ledger(_deadline()).refund(None, str(data['consumption_id']))
    return JsonResponse({'consumption_id': str(data['consumption_id']), 'remaining': remaining})


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_create_order(request):
    data = _clean(PassOrderForm, read_json(request))
    order = default_activation(_deadline()).create_order(
        request.requester, str(data['season_pass_id']), data['variant_name'], data['payment_note'],
    )
    return JsonResponse({'order': serialize_order(order)}, status=201)


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_complete_order(request, order_id):
    active_pass = default_activation(_deadline()).complete_order(str(order_id), request.requester)
    return JsonResponse({'pass': serialize_pass(active_pass)})


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_cancel_order(request, order_id):
    order = default_activation(_deadline()).cancel_order(str(order_id), request.requester)
    return JsonResponse({'order': serialize_order(order)})


@csrf_exempt
@require_POST
@requester_required
@json_api
def api_set_remaining(request, active_pass_id):
    data = _clean(RemainingUsageForm, read_json(request))
    active_pass = default_activation(_deadline()).set_remaining_usage(
        str(active_pass_id), str(data['content_item_id']), data['quantity'], request.requester,
    )
    return JsonResponse({'pass': serialize_pass(active_pass)})
