"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import (
    REJECTION_REASON_MAX_LENGTH,
    SELLER_UPDATABLE_STATUSES,
    PaymentMethod,
)
from modules.orders.models import LineItem, Order, OrderHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH_ON_DELIVERY,
    )
    shipping_address = serializers.DictField(required=False, default=dict)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class AcceptOrderSerializer(serializers.Serializer):
    estimated_delivery_date = serializers.DateTimeField(required=False, allow_null=True)


class RejectOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=REJECTION_REASON_MAX_LENGTH)


class UpdateItemStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=SELLER_UPDATABLE_STATUSES,
        error_messages={
            "invalid_choice": (
                "Invalid status. Allowed values: " + ", ".join(SELLER_UPDATABLE_STATUSES)
            )
        },
    )
    reason = serializers.CharField(required=False, default="", allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(
        required=False,
        default="",
        allow_blank=True,
        max_length=REJECTION_REASON_MAX_LENGTH,
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class LineItemSerializer(serializers.ModelSerializer):
    """Read serializer for line items with the price snapshot."""

    seller_id = serializers.CharField(read_only=True)
    seller_role = serializers.CharField(read_only=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = LineItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "price",
            "subtotal",
            "seller_id",
            "seller_role",
            "status",
            "seller_accepted",
            "estimated_delivery_date",
            "shipped_at",
            "delivered_at",
            "received_at",
            "rejected_at",
            "rejection_reason",
        ]
        read_only_fields = fields


class OrderHistorySerializer(serializers.ModelSerializer):
    """Read serializer for audit trail entries."""

    line_item_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = OrderHistory
        fields = [
            "id",
            "line_item_id",
            "changed_by_id",
            "changed_by_role",
            "change_type",
            "old_value",
            "new_value",
            "reason",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested line items."""

    items = LineItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "customer_role",
            "order_status",
            "payment_status",
            "payment_method",
            "payment_record_status",
            "transaction_id",
            "paid_at",
            "dispute_status",
            "shipped_at",
            "delivered_at",
            "received_at",
            "expected_delivery_date",
            "total_amount",
            "shipping_address",
            "notes",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "order_status",
            "payment_status",
            "dispute_status",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields
