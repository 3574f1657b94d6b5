from django.db import models


class NotificationType(models.TextChoices):
    ORDER_PLACED = "order_placed", "Order placed"
    ORDER_ACCEPTED = "order_accepted", "Order accepted"
    ORDER_REJECTED = "order_rejected", "Order rejected"
    ORDER_PROCESSING = "order_processing", "Order processing"
    ORDER_SHIPPED = "order_shipped", "Order shipped"
    ORDER_DELIVERED = "order_delivered", "Order delivered"
    ORDER_RECEIVED = "order_received", "Order received"
    ORDER_CANCELLED = "order_cancelled", "Order cancelled"
    DISPUTE_OPENED = "dispute_opened", "Dispute opened"
    DISPUTE_RESPONSE = "dispute_response", "Dispute response"
    DISPUTE_RESOLVED = "dispute_resolved", "Dispute resolved"
    DISPUTE_ESCALATED = "dispute_escalated", "Dispute escalated"
    DISPUTE_ADMIN_RULING = "dispute_admin_ruling", "Dispute admin ruling"


class Priority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class RelatedType(models.TextChoices):
    ORDER = "order", "Order"
    DISPUTE = "dispute", "Dispute"


TITLE_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 1000
