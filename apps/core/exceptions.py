"""
Error taxonomy for the booking engine.

Raised by the engine, lifecycle, reschedule and ledger modules and mapped to
HTTP responses in apps.core.decorators. Every error carries a machine-readable
ErrorCode so callers can render a precise message.
"""
from enum import Enum


class ErrorCode(Enum):
    """Machine-readable reason codes."""

    INVALID_INPUT = 'INVALID_INPUT'

    FORBIDDEN = 'FORBIDDEN'

    BOOKING_NOT_FOUND = 'BOOKING_NOT_FOUND'
    DESIGNER_NOT_FOUND = 'DESIGNER_NOT_FOUND'
    SERVICE_NOT_FOUND = 'SERVICE_NOT_FOUND'
    PASS_NOT_FOUND = 'PASS_NOT_FOUND'
    ORDER_NOT_FOUND = 'ORDER_NOT_FOUND'
    CONSUMPTION_NOT_FOUND = 'CONSUMPTION_NOT_FOUND'

    ILLEGAL_TRANSITION = 'ILLEGAL_TRANSITION'
    BOOKING_TERMINAL = 'BOOKING_TERMINAL'
    NOT_STARTED = 'NOT_STARTED'
    PAYMENT_NOT_PENDING = 'PAYMENT_NOT_PENDING'
    NOT_RESCHEDULABLE = 'NOT_RESCHEDULABLE'
    RESCHEDULE_LIMIT_REACHED = 'RESCHEDULE_LIMIT_REACHED'
    INSIDE_RESTRICTION_WINDOW = 'INSIDE_RESTRICTION_WINDOW'
    SLOT_UNAVAILABLE = 'SLOT_UNAVAILABLE'
    INSUFFICIENT_BALANCE = 'INSUFFICIENT_BALANCE'
    MONTHLY_LIMIT_REACHED = 'MONTHLY_LIMIT_REACHED'
    ORDER_NOT_PENDING = 'ORDER_NOT_PENDING'
    ALREADY_REFUNDED = 'ALREADY_REFUNDED'

    STORE_UNAVAILABLE = 'STORE_UNAVAILABLE'
    DEADLINE_EXCEEDED = 'DEADLINE_EXCEEDED'


class BookingEngineError(Exception):
    """Base exception for all booking engine errors."""

    default_code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict:
        return {'error': self.code.value, 'message': self.message}


class ValidationError(BookingEngineError):
    """Malformed or missing required input."""
    default_code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, code: ErrorCode | None = None, fields: dict | None = None) -> None:
        super().__init__(message, code)
        self.fields = fields or {}

    def as_dict(self) -> dict:
        data = super().as_dict()
        if self.fields:
            data['fields'] = self.fields
        return data


class AuthorizationError(BookingEngineError):
    """Caller is neither the resource owner nor privileged for the action."""
    default_code = ErrorCode.FORBIDDEN


class NotFoundError(BookingEngineError):
    """Referenced booking, designer, service, pass or order does not exist."""
    default_code = ErrorCode.BOOKING_NOT_FOUND


class ConflictError(BookingEngineError):
    """The request would violate a domain invariant."""
    default_code = ErrorCode.ILLEGAL_TRANSITION


class DependencyError(BookingEngineError):
    """
    The document store (or another collaborator) failed.

    outcome_unknown is True when a write may or may not have been applied;
    callers must re-read state instead of retrying the write.
    """
    default_code = ErrorCode.STORE_UNAVAILABLE

    def __init__(self, message: str, code: ErrorCode | None = None, outcome_unknown: bool = False) -> None:
        super().__init__(message, code)
        self.outcome_unknown = outcome_unknown
