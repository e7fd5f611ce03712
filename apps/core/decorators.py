"""
JSON API decorators.

requester_required  attaches request.requester from the trusted identity
                    headers set by the upstream identity provider.
json_api            maps booking engine errors to JSON responses.
"""
import json
import logging
from functools import wraps

from django.conf import settings
from django.http import JsonResponse

from .exceptions import (
    AuthorizationError,
    BookingEngineError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from .roles import Requester, Role

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (DependencyError, 503),
)


def status_for(exc: BookingEngineError) -> int:
    for error_class, status in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return status
    return 400


def requester_required(view_func):
    """Reject requests without an identity header with 401."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        requester_id = request.META.get(settings.REQUESTER_ID_HEADER, '').strip()
        if not requester_id:
            return JsonResponse(
                {'error': 'UNAUTHENTICATED', 'message': 'Missing requester identity.'},
                status=401,
            )
        try:
            role = Role.parse(request.META.get(settings.REQUESTER_ROLE_HEADER))
        except ValidationError as exc:
            return JsonResponse(exc.as_dict(), status=400)
        request.requester = Requester(id=requester_id, role=role)
        return view_func(request, *args, **kwargs)
    return wrapper


def json_api(view_func):
    """Turn BookingEngineError subclasses into {"error", "message"} responses."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except BookingEngineError as exc:
            if isinstance(exc, DependencyError):
                logger.error('%s %s failed on a dependency: %s', request.method, request.path, exc)
            return JsonResponse(exc.as_dict(), status=status_for(exc))
    return wrapper


def read_json(request) -> dict:
    """Decode a JSON object request body."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValidationError('Request body is not valid JSON.') from exc
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


def form_errors(form) -> ValidationError:
    """ValidationError carrying a Django form's field errors."""
    fields = {name: [str(e) for e in errors] for name, errors in form.errors.items()}
    return ValidationError('Invalid input.', fields=fields)
