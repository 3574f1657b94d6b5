"""Pure transition rules for line items and the derived order status.

Nothing here touches the database; the service layer feeds in current
values and a clock reading and persists the outcome.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable, Optional, Set

from modules.orders.constants import (
    CLOSED_ITEM_STATES,
    FINAL_ITEM_STATES,
    ITEM_TRANSITIONS,
    ItemStatus,
    OrderStatus,
)
from modules.orders.exceptions import (
    InvalidTransition,
    MissingShipmentTimestamp,
    TransitionTooEarly,
)


def allowed_transitions(current: str) -> Set[str]:
    return set(ITEM_TRANSITIONS.get(current, set()))


def check_item_transition(current: str, requested: str) -> None:
    """Raise ``InvalidTransition`` unless *requested* follows *current*."""
    allowed = allowed_transitions(current)
    if current in FINAL_ITEM_STATES or requested not in allowed:
        raise InvalidTransition(current, requested, allowed)


def remaining_delivery_wait(
    shipped_at: datetime, now: datetime, minimum: timedelta
) -> int:
    """Whole minutes (rounded up) until an item shipped at *shipped_at* may be delivered."""
    remaining = minimum - (now - shipped_at)
    if remaining <= timedelta(0):
        return 0
    return math.ceil(remaining.total_seconds() / 60)


def check_delivery_gate(
    shipped_at: Optional[datetime], now: datetime, minimum_minutes: int
) -> None:
    if shipped_at is None:
        raise MissingShipmentTimestamp(
            "Cannot mark as delivered: the item has no shipping timestamp."
        )
    remaining = remaining_delivery_wait(shipped_at, now, timedelta(minutes=minimum_minutes))
    if remaining > 0:
        raise TransitionTooEarly(remaining, minimum_minutes)


def _order_level(status: str) -> str:
    return OrderStatus.CANCELLED if status in CLOSED_ITEM_STATES else status


def derive_order_status(item_statuses: Iterable[str]) -> str:
    """Whole-order status as a function of the line-item statuses.

    Rejected items count as cancelled.  Identical statuses (or no items)
    give that status; a mix resolves to partially_cancelled, then
    partially_delivered, then partially_shipped, else processing.
    """
    statuses = [_order_level(status) for status in item_statuses]
    if not statuses:
        return OrderStatus.PENDING
    distinct = set(statuses)
    if len(distinct) == 1:
        return OrderStatus(statuses[0])
    if OrderStatus.CANCELLED in distinct:
        return OrderStatus.PARTIALLY_CANCELLED
    if OrderStatus.DELIVERED in distinct:
        return OrderStatus.PARTIALLY_DELIVERED
    if OrderStatus.SHIPPED in distinct:
        return OrderStatus.PARTIALLY_SHIPPED
    return OrderStatus.PROCESSING


def awaiting_receipt(item_statuses: Iterable[str]) -> bool:
    """True when every item still in the order has been delivered."""
    live = [status for status in item_statuses if status not in CLOSED_ITEM_STATES]
    return bool(live) and all(status == ItemStatus.DELIVERED for status in live)


def live_order_status(item_statuses: Iterable[str]) -> str:
    """Derived status of the items not rejected or cancelled.

    An order with no such items is cancelled.
    """
    live = [status for status in item_statuses if status not in CLOSED_ITEM_STATES]
    if not live:
        return OrderStatus.CANCELLED
    return derive_order_status(live)
