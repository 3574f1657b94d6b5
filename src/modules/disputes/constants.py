"""Dispute domain constants."""

from django.db import models


class DisputeType(models.TextChoices):
    NON_DELIVERY = "non_delivery", "Non-delivery"
    PRODUCT_FAULT = "product_fault", "Product fault"
    WRONG_ITEM = "wrong_item", "Wrong item"
    OTHER = "other", "Other"


class DisputeState(models.TextChoices):
    OPEN = "open", "Open"
    PENDING_ADMIN_REVIEW = "pending_admin_review", "Pending admin review"
    CLOSED = "closed", "Closed"


class Resolution(models.TextChoices):
    ACCEPT = "accept", "Accept"
    REJECT = "reject", "Reject"


class Ruling(models.TextChoices):
    BUYER_WIN = "buyer_win", "Buyer wins"
    SELLER_WIN = "seller_win", "Seller wins"


class EscalationReason(models.TextChoices):
    BUYER_REJECTED = "buyer_rejected", "Buyer rejected the proposal"
    SELLER_TIMEOUT = "seller_timeout", "Seller did not respond in time"


ACTIVE_DISPUTE_STATES: tuple[str, ...] = (
    DisputeState.OPEN,
    DisputeState.PENDING_ADMIN_REVIEW,
)

REASON_MAX_LENGTH = 1000
TEXT_MAX_LENGTH = 2000
