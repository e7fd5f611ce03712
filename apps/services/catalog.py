"""
Service catalog lookups used by the booking engine.

  resolve_services(service_ids)           ordered, active Service rows
  resolve_option_items(ids, services)     picked option items, checked against the options
  total_duration(services, items)         minutes a booking occupies
  quote_amount(services, ...)             amount due, excluding pass-covered services
"""
import uuid
from decimal import Decimal

from apps.core.clock import Deadline
from apps.core.db import read_with_retry
from apps.core.exceptions import ErrorCode, NotFoundError, ValidationError

from .models import Service, ServiceOption, ServiceOptionItem


def normalize_ids(raw_ids, what: str = 'service') -> list[str]:
    """Validate a list of UUID strings, keeping order. Rejects duplicates."""
    ids = []
    for raw in raw_ids or []:
        try:
            value = str(uuid.UUID(str(raw)))
        except ValueError as exc:
            raise ValidationError(f"Invalid {what} id '{raw}'.") from exc
        if value in ids:
            raise ValidationError(f"Duplicate {what} id '{raw}'.")
        ids.append(value)
    return ids


def resolve_services(service_ids, deadline: Deadline | None = None) -> list[Service]:
    """
    Load services in the order given.

    Raises ValidationError for an empty or malformed list and NotFoundError
    when any id is unknown or inactive.
    """
    ids = normalize_ids(service_ids)
    if not ids:
        raise ValidationError('At least one service is required.')

    rows = read_with_retry(
        lambda: list(Service.objects.filter(id__in=ids, is_active=True)),
        deadline=deadline,
    )
    found = {str(s.id): s for s in rows}
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError(f"Service not found: {', '.join(missing)}", code=ErrorCode.SERVICE_NOT_FOUND)
    return [found[i] for i in ids]


def resolve_option_items(option_item_ids, services, deadline: Deadline | None = None) -> list[ServiceOptionItem]:
    """
    Load the picked option items in the order given and check the picks.

    Every item must belong to an option of one of `services`. A required
    option needs at least one pick; a single-select option allows one.
    Runs with an empty list too, so unmet required options are caught.
    """
    ids = normalize_ids(option_item_ids, what='option item')
    service_ids = [str(s.id) for s in services]

    def load():
        items = list(
            ServiceOptionItem.objects
            .select_related('option')
            .filter(id__in=ids, option__service_id__in=service_ids)
        )
        required = list(ServiceOption.objects.filter(service_id__in=service_ids, required=True))
        return items, required

    items, required = read_with_retry(load, deadline=deadline)
    found = {str(i.id): i for i in items}
    missing = [i for i in ids if i not in found]
    if missing:
        raise ValidationError(f"Option items not offered for the selected services: {', '.join(missing)}",
                              fields={'option_item_ids': ['Unknown option item.']})

    picks = {}
    for item in items:
        picks.setdefault(item.option_id, []).append(item)
    for picked in picks.values():
        option = picked[0].option
        if not option.multi_select and len(picked) > 1:
            raise ValidationError(f"Pick only one item for '{option.name}'.",
                                  fields={'option_item_ids': ['Single choice.']})
    for option in required:
        if option.id not in picks:
            raise ValidationError(f"'{option.name}' requires a choice.",
                                  fields={'option_item_ids': ['Required option missing.']})
    return [found[i] for i in ids]


def total_duration(services, option_items=()) -> int:
    return (sum(s.duration_minutes for s in services)
            + sum(i.duration_minutes for i in option_items))


def quote_amount(services, privileged: bool = False, covered_service_ids=(), option_items=()) -> Decimal:
    """Services at the requester's tier, minus covered ones, plus every option item."""
    covered = {str(i) for i in covered_service_ids}
    services_total = sum(
        (s.price_for(privileged) for s in services if str(s.id) not in covered),
        Decimal('0.00'),
    )
    return services_total + sum((i.price for i in option_items), Decimal('0.00'))
