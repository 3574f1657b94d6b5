"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Services lock
the order row with ``get_for_update`` before any change; line items are
only ever modified while their order is locked.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import DatabaseError, models, transaction

from modules.core.identity import Actor
from modules.core.outbox import record_domain_events
from modules.orders.constants import ACTIVE_DISPUTE_STATUSES, OrderStatus
from modules.orders.models import LineItem, Order, OrderHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

# Statuses an order can have while every live item is delivered.
RECEIPT_PENDING_STATUSES = (OrderStatus.DELIVERED, OrderStatus.PARTIALLY_CANCELLED)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            customer_id=data["customer_id"],
            customer_role=data["customer_role"],
            payment_method=data["payment_method"],
            shipping_address=data.get("shipping_address") or {},
            notes=data.get("notes", ""),
        )
        order.save()

        total = Decimal("0.00")
        items = data.get("items", [])
        for position, item_data in enumerate(items):
            item = LineItem(
                order=order,
                position=position,
                product_id=item_data["product_id"],
                product_name=item_data.get("product_name", ""),
                quantity=item_data["quantity"],
                price=item_data["price"],
                farmer_id=item_data.get("farmer_id"),
                supplier_id=item_data.get("supplier_id"),
            )
            item.full_clean(exclude=["order", "product"])
            item.save()
            total += item.subtotal

        order.total_amount = total
        order.save(update_fields=["total_amount"])

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its items prefetched.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Order.objects.prefetch_related("items").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Items are prefetched after the lock is taken, so the service sees
        the committed state of every line.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> "models.QuerySet[Order]":
        queryset = Order.objects.prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_for_actor(self, actor: Actor) -> "models.QuerySet[Order]":
        queryset = self.list()
        if actor.is_admin:
            return queryset
        visible = models.Q(customer_id=actor.user_id, customer_role=actor.role)
        if actor.can_sell:
            seller_field = f"{actor.role}_id"
            seller_orders = LineItem.objects.filter(**{seller_field: actor.user_id})
            visible |= models.Q(id__in=seller_orders.values("order_id"))
        return queryset.filter(visible)

    def awaiting_receipt_ids(self, delivered_before: datetime) -> List[UUID]:
        return list(
            Order.objects.filter(
                order_status__in=RECEIPT_PENDING_STATUSES,
                delivered_at__isnull=False,
                delivered_at__lte=delivered_before,
                received_at__isnull=True,
            )
            .exclude(dispute_status__in=ACTIVE_DISPUTE_STATUSES)
            .order_by("delivered_at")
            .values_list("id", flat=True)
        )

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and move its collected domain events to the outbox."""
        entity.save()
        event_count = record_domain_events(entity, topic="orders")
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    def save_item(self, item: LineItem) -> LineItem:
        item.save()
        return item

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

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
        try:
            with transaction.atomic():
                history = OrderHistory.objects.create(
                    order_id=order_id,
                    line_item_id=line_item_id,
                    changed_by_id=actor.user_id,
                    changed_by_role=actor.role,
                    change_type=change_type,
                    old_value=old_value or "",
                    new_value=new_value or "",
                    reason=reason[:500],
                    notes=notes,
                )
        except DatabaseError:
            logger.exception(
                "order.history_write_failed",
                order_id=str(order_id),
                change_type=change_type,
            )
            return None

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            change_type=change_type,
            old_value=old_value,
            new_value=new_value,
            actor_role=actor.role,
        )
        return history

    def history(self, order_id: UUID) -> List[OrderHistory]:
        return list(OrderHistory.objects.filter(order_id=order_id).order_by("created_at", "id"))
