"""
Role tiers and authorization.

The identity provider authenticates callers upstream; this module only ever
sees an opaque requester id plus a coarse role tier. Authorization is a pure
function of (requester, resource owner, role).
"""
from dataclasses import dataclass
from enum import Enum

from .exceptions import AuthorizationError, ValidationError


class Role(Enum):
    CUSTOMER = 'customer'
    PLATINUM = 'platinum'   # privileged tier: no upfront payment
    ADMIN = 'admin'

    @classmethod
    def parse(cls, value: str | None) -> 'Role':
        if not value:
            return cls.CUSTOMER
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown role '{value}'.") from exc


@dataclass(frozen=True)
class Requester:
    """A pre-authenticated caller."""

    id: str
    role: Role = Role.CUSTOMER

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError('Requester id is required.')

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def skips_upfront_payment(self) -> bool:
        return self.role in (Role.PLATINUM, Role.ADMIN)

    @property
    def label(self) -> str:
        """Value written to audit logs (`changed_by`)."""
        return f'{self.role.value}:{self.id}'


def is_owner_or_admin(requester: Requester, owner_id: str) -> bool:
    return requester.is_admin or requester.id == owner_id


def require_owner_or_admin(requester: Requester, owner_id: str) -> None:
    if not is_owner_or_admin(requester, owner_id):
        raise AuthorizationError('You do not own this resource.')


def require_owner(requester: Requester, owner_id: str) -> None:
    if requester.id != owner_id:
        raise AuthorizationError('Only the owner may perform this action.')


def require_admin(requester: Requester) -> None:
    if not requester.is_admin:
        raise AuthorizationError('Administrator access required.')
