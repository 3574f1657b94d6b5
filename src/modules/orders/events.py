"""Domain events for the Orders bounded context.

Payload fields are plain strings, numbers and lists so events survive the
round trip through the outbox.  ``sellers`` holds ``{"id", "role"}`` dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderEvent(DomainEvent):
    order_number: str = ""
    customer_id: str = ""
    customer_role: str = ""


@dataclass(frozen=True)
class OrderPlaced(OrderEvent):
    """Raised when a customer places an order."""

    sellers: list = field(default_factory=list)
    total_amount: str = "0.00"


@dataclass(frozen=True)
class OrderAccepted(OrderEvent):
    """Raised when a seller accepts their pending items."""

    seller_id: str = ""
    seller_role: str = ""
    item_count: int = 0


@dataclass(frozen=True)
class OrderItemsRejected(OrderEvent):
    """Raised when a seller rejects their pending items."""

    seller_id: str = ""
    seller_role: str = ""
    reason: str = ""
    order_status: str = ""


@dataclass(frozen=True)
class OrderItemStatusChanged(OrderEvent):
    """Raised when a seller moves one line item forward."""

    item_id: str = ""
    product_name: str = ""
    old_status: str = ""
    new_status: str = ""
    order_status: str = ""
    confirmation_window_minutes: Optional[int] = None


@dataclass(frozen=True)
class OrderCancelled(OrderEvent):
    """Raised when the customer cancels the whole order."""

    sellers: list = field(default_factory=list)
    reason: str = ""
    payment_status: str = ""


@dataclass(frozen=True)
class OrderReceived(OrderEvent):
    """Raised when receipt is confirmed, by the buyer or automatically."""

    sellers: list = field(default_factory=list)
    automatic: bool = False
