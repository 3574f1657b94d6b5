"""Dispute model.

A dispute is raised by the order's customer against one seller of the
order.  The seller response and the admin ruling are each written once.
At most one dispute per order may be open or under admin review at a
time; closed disputes do not count.
"""

from __future__ import annotations

from django.db import models

from modules.core.identity import Actor
from modules.core.models import BaseModel
from modules.disputes.constants import (
    ACTIVE_DISPUTE_STATES,
    REASON_MAX_LENGTH,
    TEXT_MAX_LENGTH,
    DisputeState,
    DisputeType,
    EscalationReason,
    Ruling,
)
from modules.orders.models import CustomerRole
from modules.products.models import SellerRole
from shared.domain.events import DomainEventMixin


class Dispute(DomainEventMixin, BaseModel):
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="disputes",
    )
    buyer_id = models.CharField(max_length=64)
    buyer_role = models.CharField(max_length=16, choices=CustomerRole.choices)
    seller_id = models.CharField(max_length=64)
    seller_role = models.CharField(max_length=16, choices=SellerRole.choices)
    dispute_type = models.CharField(max_length=32, choices=DisputeType.choices)
    reason = models.CharField(max_length=REASON_MAX_LENGTH)

    buyer_proof_images = models.JSONField(default=list, blank=True)
    buyer_proof_description = models.CharField(
        max_length=TEXT_MAX_LENGTH, blank=True, default=""
    )

    seller_evidence = models.JSONField(default=list, blank=True)
    seller_proposal = models.CharField(max_length=TEXT_MAX_LENGTH, blank=True, default="")
    seller_responded_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=32,
        choices=DisputeState.choices,
        default=DisputeState.OPEN,
    )
    buyer_accepted = models.BooleanField(default=False)
    escalation_reason = models.CharField(
        max_length=32,
        choices=EscalationReason.choices,
        blank=True,
        default="",
    )
    escalated_at = models.DateTimeField(null=True, blank=True)

    ruling_decision = models.CharField(
        max_length=16,
        choices=Ruling.choices,
        blank=True,
        default="",
    )
    ruling_notes = models.CharField(max_length=TEXT_MAX_LENGTH, blank=True, default="")
    ruled_at = models.DateTimeField(null=True, blank=True)
    ruling_admin_id = models.CharField(max_length=64, blank=True, default="")
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "disputes"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="disputes_order_status_idx"),
            models.Index(fields=["buyer_id"], name="disputes_buyer_idx"),
            models.Index(fields=["seller_role", "seller_id"], name="disputes_seller_idx"),
            models.Index(fields=["status", "created_at"], name="disputes_status_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(status__in=ACTIVE_DISPUTE_STATES),
                name="disputes_one_active_per_order",
            ),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_DISPUTE_STATES

    @property
    def has_seller_response(self) -> bool:
        return self.seller_responded_at is not None

    def is_buyer(self, actor: Actor) -> bool:
        return actor.can_buy and self.buyer_id == actor.user_id

    def is_seller(self, actor: Actor) -> bool:
        return (
            actor.can_sell
            and self.seller_id == actor.user_id
            and self.seller_role == actor.role
        )

    def is_visible_to(self, actor: Actor) -> bool:
        return actor.is_admin or self.is_buyer(actor) or self.is_seller(actor)

    def __str__(self) -> str:
        return f"Dispute {self.id} on {self.order_id} [{self.status}]"
