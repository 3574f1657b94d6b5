"""Order domain constants.

Line-item statuses and their transition table, the derived whole-order
statuses, and the independent payment and dispute axes.
"""

from datetime import timedelta

from django.db import models


class ItemStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    RECEIVED = "received", "Received"
    REJECTED = "rejected", "Rejected"
    CANCELLED = "cancelled", "Cancelled"


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    RECEIVED = "received", "Received"
    CANCELLED = "cancelled", "Cancelled"
    PARTIALLY_SHIPPED = "partially_shipped", "Partially shipped"
    PARTIALLY_DELIVERED = "partially_delivered", "Partially delivered"
    PARTIALLY_CANCELLED = "partially_cancelled", "Partially cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETE = "complete", "Complete"
    REFUNDED = "refunded", "Refunded"
    CANCELLED = "cancelled", "Cancelled"


class PaymentRecordStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"
    CANCELLED = "cancelled", "Cancelled"


class PaymentMethod(models.TextChoices):
    CASH_ON_DELIVERY = "cash_on_delivery", "Cash on delivery"
    EASYPAISA = "easypaisa", "Easypaisa"
    JAZZCASH = "jazzcash", "JazzCash"


class DisputeStatus(models.TextChoices):
    NONE = "none", "None"
    OPEN = "open", "Open"
    PENDING_ADMIN_REVIEW = "pending_admin_review", "Pending admin review"
    CLOSED = "closed", "Closed"


class ChangeType(models.TextChoices):
    STATUS = "status", "Status"
    PAYMENT_STATUS = "payment_status", "Payment status"
    DISPUTE_STATUS = "dispute_status", "Dispute status"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    RECEIVED = "received", "Received"
    CANCELLED = "cancelled", "Cancelled"


ITEM_TRANSITIONS: dict[str, set[str]] = {
    ItemStatus.PENDING: {ItemStatus.CONFIRMED, ItemStatus.REJECTED, ItemStatus.CANCELLED},
    ItemStatus.CONFIRMED: {ItemStatus.PROCESSING, ItemStatus.CANCELLED},
    ItemStatus.PROCESSING: {ItemStatus.SHIPPED, ItemStatus.CANCELLED},
    ItemStatus.SHIPPED: {ItemStatus.DELIVERED},
    ItemStatus.DELIVERED: set(),
    ItemStatus.RECEIVED: set(),
    ItemStatus.REJECTED: set(),
    ItemStatus.CANCELLED: set(),
}

# No workflow transition ever leaves these states.
FINAL_ITEM_STATES: set[str] = {
    ItemStatus.DELIVERED,
    ItemStatus.RECEIVED,
    ItemStatus.REJECTED,
    ItemStatus.CANCELLED,
}

# Items that dropped out of the order; they count as cancelled at order level.
CLOSED_ITEM_STATES: set[str] = {ItemStatus.REJECTED, ItemStatus.CANCELLED}

SELLER_UPDATABLE_STATUSES: tuple[str, ...] = (
    ItemStatus.PROCESSING,
    ItemStatus.SHIPPED,
    ItemStatus.DELIVERED,
    ItemStatus.CANCELLED,
)

ACTIVE_DISPUTE_STATUSES: set[str] = {
    DisputeStatus.OPEN,
    DisputeStatus.PENDING_ADMIN_REVIEW,
}

DISPUTABLE_ORDER_STATUSES: set[str] = {
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.RECEIVED,
}

PREPAID_METHODS: set[str] = {PaymentMethod.EASYPAISA, PaymentMethod.JAZZCASH}

DEFAULT_DELIVERY_WINDOW = timedelta(days=7)

REJECTION_REASON_MAX_LENGTH = 500

ORDER_NUMBER_MAX_RETRIES = 5

# Payment record status mirrored from the order-level payment status.
PAYMENT_RECORD_STATUS: dict[str, str] = {
    PaymentStatus.PENDING: PaymentRecordStatus.PENDING,
    PaymentStatus.COMPLETE: PaymentRecordStatus.COMPLETED,
    PaymentStatus.REFUNDED: PaymentRecordStatus.REFUNDED,
    PaymentStatus.CANCELLED: PaymentRecordStatus.CANCELLED,
}
