"""Order, LineItem and OrderHistory models.

Rules carried by the models:
- ``Order.order_status`` is derived from the line items and refreshed with
  ``refresh_status`` after every item change; it is never set directly.
- A line item belongs to exactly one seller: ``farmer_id`` or
  ``supplier_id`` (check constraint + ``clean``).
- ``LineItem.price`` is a snapshot of the product price at order time.
- ``OrderHistory`` is append-only.
- Order number is a human-readable identifier (``ORD-YYYYMMDD-XXXXXX``).
"""

from __future__ import annotations

import secrets
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.identity import Actor, Role
from modules.core.models import BaseModel
from modules.orders.constants import (
    ACTIVE_DISPUTE_STATUSES,
    ORDER_NUMBER_MAX_RETRIES,
    PAYMENT_RECORD_STATUS,
    ChangeType,
    DisputeStatus,
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    PaymentRecordStatus,
    PaymentStatus,
)
from modules.orders.state_machine import derive_order_status
from modules.products.models import SellerRole
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class CustomerRole(models.TextChoices):
    BUYER = "buyer", "Buyer"
    FARMER = "farmer", "Farmer"


class Order(DomainEventMixin, BaseModel):
    """Multi-vendor order aggregate root.

    A single-seller order is simply an order whose items share one seller.
    ``payment_status`` and ``dispute_status`` are independent of
    ``order_status``; the payment record fields mirror the gateway-side
    view of the same payment.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    customer_id = models.CharField(max_length=64, db_index=True)
    customer_role = models.CharField(max_length=16, choices=CustomerRole.choices)
    order_status = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(
        max_length=32,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH_ON_DELIVERY,
    )
    payment_record_status = models.CharField(
        max_length=16,
        choices=PaymentRecordStatus.choices,
        default=PaymentRecordStatus.PENDING,
    )
    transaction_id = models.CharField(max_length=128, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)
    dispute_status = models.CharField(
        max_length=32,
        choices=DisputeStatus.choices,
        default=DisputeStatus.NONE,
    )
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    expected_delivery_date = models.DateTimeField(null=True, blank=True)
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    shipping_address = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order_status"], name="orders_status_idx"),
            models.Index(fields=["dispute_status"], name="orders_dispute_idx"),
            models.Index(
                fields=["order_status", "delivered_at"],
                name="orders_status_delivered_idx",
            ),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def has_active_dispute(self) -> bool:
        return self.dispute_status in ACTIVE_DISPUTE_STATUSES

    def line_items(self) -> List[LineItem]:
        return list(self.items.all())

    def refresh_status(self, items: Iterable[LineItem]) -> str:
        """Recompute ``order_status`` from *items* and return it."""
        self.order_status = derive_order_status(item.status for item in items)
        return self.order_status

    def apply_payment_status(self, status: str, now: Optional[datetime] = None) -> Optional[str]:
        """Set ``payment_status`` and mirror it on the payment record.

        Returns the previous status when it changed, else ``None``.
        ``paid_at`` is stamped the first time the payment completes.
        """
        previous = self.payment_status
        if previous == status:
            return None
        self.payment_status = status
        self.payment_record_status = PAYMENT_RECORD_STATUS[status]
        if status == PaymentStatus.COMPLETE and self.paid_at is None:
            self.paid_at = now or timezone.now()
        return previous

    def sellers(self, items: Optional[Iterable[LineItem]] = None) -> List[dict]:
        """Distinct sellers in item order, as ``{"id", "role"}`` dicts."""
        seen: List[dict] = []
        for item in items if items is not None else self.line_items():
            ref = {"id": item.seller_id, "role": item.seller_role}
            if ref not in seen:
                seen.append(ref)
        return seen

    def is_visible_to(self, actor: Actor, items: Optional[Iterable[LineItem]] = None) -> bool:
        if actor.is_admin or actor.is_system:
            return True
        if actor.can_buy and self.customer_id == actor.user_id:
            return True
        lines = items if items is not None else self.line_items()
        return any(item.is_sold_by(actor) for item in lines)

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_number} ({self.order_status})"


class LineItem(BaseModel):
    """One seller's product within an order, with its own status.

    ``seller_accepted`` is tri-state: ``None`` until the seller acts.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    position = models.PositiveSmallIntegerField(default=0)
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="line_items",
    )
    product_name = models.CharField(max_length=255, blank=True, default="")
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    price = models.DecimalField(max_digits=10, decimal_places=2)
    farmer_id = models.CharField(max_length=64, null=True, blank=True)  # noqa: DJ01
    supplier_id = models.CharField(max_length=64, null=True, blank=True)  # noqa: DJ01
    status = models.CharField(
        max_length=16,
        choices=ItemStatus.choices,
        default=ItemStatus.PENDING,
    )
    seller_accepted = models.BooleanField(null=True, blank=True, default=None)
    estimated_delivery_date = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        db_table = "order_line_items"
        ordering = ["position", "created_at"]
        indexes = [
            models.Index(fields=["farmer_id"], name="line_items_farmer_idx"),
            models.Index(fields=["supplier_id"], name="line_items_supplier_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="line_items_quantity_positive",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(farmer_id__isnull=False, supplier_id__isnull=True)
                    | models.Q(farmer_id__isnull=True, supplier_id__isnull=False)
                ),
                name="line_items_single_seller",
            ),
        ]

    # ------------------------------------------------------------------
    # Seller helpers
    # ------------------------------------------------------------------

    @property
    def seller_id(self) -> str:
        return self.farmer_id or self.supplier_id or ""

    @property
    def seller_role(self) -> str:
        return SellerRole.FARMER if self.farmer_id else SellerRole.SUPPLIER

    def is_sold_by(self, actor: Actor) -> bool:
        if actor.role == Role.FARMER:
            return self.farmer_id == actor.user_id
        if actor.role == Role.SUPPLIER:
            return self.supplier_id == actor.user_id
        return False

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if bool(self.farmer_id) == bool(self.supplier_id):
            raise ValidationError("A line item must have exactly one of farmer_id or supplier_id.")
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.product_name or self.product_id} x{self.quantity} [{self.status}]"


class OrderHistory(BaseModel):
    """Append-only audit trail for order, payment and dispute changes.

    ``line_item`` is set for item-level entries (accepted, shipped...).
    ``changed_by_role`` is ``system`` for sweep-driven changes.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="history",
    )
    line_item = models.ForeignKey(
        "orders.LineItem",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="history",
    )
    changed_by_id = models.CharField(max_length=64)
    changed_by_role = models.CharField(max_length=16, choices=Role.choices)
    change_type = models.CharField(max_length=32, choices=ChangeType.choices)
    old_value = models.CharField(max_length=64, blank=True, default="")
    new_value = models.CharField(max_length=64, blank=True, default="")
    reason = models.CharField(max_length=500, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_history"
        ordering = ["created_at"]
        verbose_name_plural = "order history"
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="order_history_order_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} {self.change_type}: {self.old_value} -> {self.new_value}"
