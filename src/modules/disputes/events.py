"""Domain events for the Disputes bounded context.

``aggregate_id`` is the dispute id; the order reference travels in the
payload so notification handlers can link back to the order.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class DisputeEvent(DomainEvent):
    order_id: str = ""
    order_number: str = ""
    buyer_id: str = ""
    buyer_role: str = ""
    seller_id: str = ""
    seller_role: str = ""


@dataclass(frozen=True)
class DisputeOpened(DisputeEvent):
    """Raised when the buyer opens a dispute; the seller must respond."""

    dispute_type: str = ""
    reason: str = ""
    response_minutes: int = 0
    response_deadline: str = ""


@dataclass(frozen=True)
class DisputeResponded(DisputeEvent):
    proposal: str = ""


@dataclass(frozen=True)
class DisputeResolved(DisputeEvent):
    """Raised when the buyer accepts the seller's proposal."""


@dataclass(frozen=True)
class DisputeEscalated(DisputeEvent):
    """Raised when a dispute moves to admin review."""

    escalation_reason: str = ""


@dataclass(frozen=True)
class DisputeRuled(DisputeEvent):
    decision: str = ""
    notes: str = ""
    payment_status: str = ""
