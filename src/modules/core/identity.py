"""Acting principal resolution.

The order core only needs ``(user_id, role)`` for the caller.  Roles come
from, in order: staff flag (admin), the ``role`` claim of the JWT, and the
user's Django group (``buyer``, ``farmer`` or ``supplier``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from django.db import models

from modules.core.exceptions import AuthorizationError

if TYPE_CHECKING:
    from rest_framework.request import Request


class Role(models.TextChoices):
    BUYER = "buyer", "Buyer"
    FARMER = "farmer", "Farmer"
    SUPPLIER = "supplier", "Supplier"
    ADMIN = "admin", "Admin"
    SYSTEM = "system", "System"


MARKETPLACE_GROUPS: tuple[str, ...] = (Role.BUYER, Role.FARMER, Role.SUPPLIER)
CUSTOMER_ROLES: frozenset[str] = frozenset({Role.BUYER, Role.FARMER})
SELLER_ROLES: frozenset[str] = frozenset({Role.FARMER, Role.SUPPLIER})


@dataclass(frozen=True)
class Actor:
    """The principal performing an operation."""

    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_system(self) -> bool:
        return self.role == Role.SYSTEM

    @property
    def can_buy(self) -> bool:
        return self.role in CUSTOMER_ROLES

    @property
    def can_sell(self) -> bool:
        return self.role in SELLER_ROLES


SYSTEM_ACTOR = Actor(user_id="system", role=Role.SYSTEM)


def resolve_role(user: Any) -> Optional[str]:
    """Return the marketplace role of a Django user, or ``None``."""
    if user.is_staff or user.is_superuser:
        return Role.ADMIN
    names = set(user.groups.filter(name__in=MARKETPLACE_GROUPS).values_list("name", flat=True))
    for role in MARKETPLACE_GROUPS:
        if role in names:
            return role
    return None


def actor_from_request(request: Request) -> Actor:
    user = request.user
    role: Optional[str] = None
    if user.is_staff or user.is_superuser:
        role = Role.ADMIN
    else:
        token = request.auth
        claim = token.get("role") if token is not None and hasattr(token, "get") else None
        role = claim if claim in MARKETPLACE_GROUPS else resolve_role(user)
    if role is None:
        raise AuthorizationError("No marketplace role is assigned to this account.")
    return Actor(user_id=str(user.pk), role=role)

