"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs:
atomic creation with line items, per-item persistence, the history sink
and the candidate query used by the auto-confirmation sweep.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db import models

    from modules.core.identity import Actor
    from modules.orders.models import LineItem, Order, OrderHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its line items atomically.

        ``data`` must include ``customer_id``, ``customer_role`` and
        ``items`` (dicts with ``product_id``, ``product_name``,
        ``quantity``, ``price`` and one of ``farmer_id``/``supplier_id``).
        """

    @abstractmethod
    def save_item(self, item: LineItem) -> LineItem:
        """Persist a line item changed by the service."""

    @abstractmethod
    def list_for_actor(self, actor: Actor) -> "models.QuerySet[Order]":
        """Orders the actor may see: own orders, sold items, or all for admins."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        actor: Actor,
        change_type: str,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        reason: str = "",
        notes: str = "",
        line_item_id: Optional[UUID] = None,
    ) -> Optional[OrderHistory]:
        """Record a change in the audit trail.

        Fire-and-forget: a failed write is logged and ``None`` returned.
        """

    @abstractmethod
    def history(self, order_id: UUID) -> List[OrderHistory]:
        """Audit trail of an order, oldest first."""

    @abstractmethod
    def awaiting_receipt_ids(self, delivered_before: datetime) -> List[UUID]:
        """Ids of delivered orders without receipt and without an active dispute."""
