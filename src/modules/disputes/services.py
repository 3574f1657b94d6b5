"""Dispute service layer.

Runs the buyer/seller/admin dispute protocol attached to an order:

    (none) --buyer opens--> open --seller responds (once)--> open
    open --buyer accepts--> closed          (payment complete)
    open --buyer rejects--> pending_admin_review
    open --no response in time (sweep)--> pending_admin_review
    pending_admin_review --admin rules--> closed (refunded | complete)

The order's ``dispute_status`` mirrors the dispute and blocks the order
workflow while it is open or under review.  Locks are always taken
order first, then dispute.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.configuration.timing import TimingConfig, get_timings
from modules.core.identity import SYSTEM_ACTOR, Actor
from modules.disputes.constants import (
    DisputeState,
    DisputeType,
    EscalationReason,
    Resolution,
    Ruling,
)
from modules.disputes.events import (
    DisputeEscalated,
    DisputeOpened,
    DisputeResolved,
    DisputeResponded,
    DisputeRuled,
)
from modules.disputes.exceptions import (
    DisputeAlreadyActive,
    DisputeNotAllowed,
    DisputeNotFound,
    DisputeStateConflict,
    InvalidDisputeInput,
    NotDisputeParty,
)
from modules.orders.constants import (
    CLOSED_ITEM_STATES,
    DEFAULT_DELIVERY_WINDOW,
    DISPUTABLE_ORDER_STATUSES,
    ChangeType,
    OrderStatus,
    PaymentStatus,
)
from modules.orders.exceptions import OrderNotFound
from modules.orders.state_machine import live_order_status

if TYPE_CHECKING:
    from django.db import models

    from modules.disputes.dtos import (
        OpenDisputeDTO,
        ResolveDisputeDTO,
        RespondDisputeDTO,
        RuleDisputeDTO,
    )
    from modules.disputes.models import Dispute
    from modules.disputes.repositories.interfaces import IDisputeRepository
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

RULING_PAYMENT = {
    Ruling.BUYER_WIN: PaymentStatus.REFUNDED,
    Ruling.SELLER_WIN: PaymentStatus.COMPLETE,
}


class DisputeService:
    """Application service for dispute use-cases."""

    def __init__(
        self,
        dispute_repository: IDisputeRepository,
        order_repository: IOrderRepository,
        timings: Callable[[], TimingConfig] = get_timings,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._dispute_repo = dispute_repository
        self._order_repo = order_repository
        self._timings = timings
        self._clock = clock

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def open_dispute(self, order_id: UUID, dto: OpenDisputeDTO, actor: Actor) -> Dispute:
        """Open a dispute on behalf of the order's customer.

        Raises:
            NotDisputeParty: the actor did not place the order.
            DisputeAlreadyActive: another dispute is open or under review.
            DisputeNotAllowed: order status or time window does not allow it.
        """
        if not actor.can_buy:
            raise NotDisputeParty("Only buyers can open disputes.")
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        if order.customer_id != actor.user_id:
            raise NotDisputeParty("This order does not belong to you.")
        if order.has_active_dispute:
            raise DisputeAlreadyActive()

        now = self._clock()
        timings = self._timings()
        self._check_dispute_window(order, dto.dispute_type, now, timings)
        seller = self._resolve_seller(order, dto.seller_id)

        dispute = self._dispute_repo.create(
            {
                "order": order,
                "buyer_id": actor.user_id,
                "buyer_role": actor.role,
                "seller_id": seller["id"],
                "seller_role": seller["role"],
                "dispute_type": dto.dispute_type,
                "reason": dto.reason,
                "buyer_proof_images": list(dto.proof_images),
                "buyer_proof_description": dto.proof_description,
            }
        )

        self._mirror_on_order(order, DisputeState.OPEN, actor, reason=dto.reason)
        self._set_payment(order, PaymentStatus.PENDING, actor, now)
        self._order_repo.save(order)

        deadline = dispute.created_at + timings.dispute_response
        dispute.add_domain_event(
            DisputeOpened(
                aggregate_id=dispute.id,
                **self._event_context(dispute, order),
                dispute_type=dispute.dispute_type,
                reason=dispute.reason,
                response_minutes=timings.dispute_response_minutes,
                response_deadline=deadline.isoformat(),
            )
        )
        self._dispute_repo.save(dispute)

        logger.info(
            "dispute.opened",
            dispute_id=str(dispute.id),
            order_id=str(order.id),
            dispute_type=dispute.dispute_type,
            seller_id=dispute.seller_id,
        )
        return dispute

    @transaction.atomic
    def respond(self, dispute_id: UUID, dto: RespondDisputeDTO, actor: Actor) -> Dispute:
        """Record the seller's evidence and proposal (once)."""
        order, dispute = self._lock(dispute_id)
        if not dispute.is_seller(actor):
            raise NotDisputeParty("This dispute does not belong to you.")
        if dispute.status != DisputeState.OPEN:
            raise DisputeStateConflict("Dispute is not open for response.")
        if dispute.has_seller_response:
            raise DisputeStateConflict("The seller has already responded to this dispute.")

        dispute.seller_evidence = list(dto.evidence)
        dispute.seller_proposal = dto.proposal
        dispute.seller_responded_at = self._clock()
        dispute.add_domain_event(
            DisputeResponded(
                aggregate_id=dispute.id,
                **self._event_context(dispute, order),
                proposal=dispute.seller_proposal,
            )
        )
        self._dispute_repo.save(dispute)

        logger.info("dispute.responded", dispute_id=str(dispute.id), order_id=str(order.id))
        return dispute

    @transaction.atomic
    def resolve(self, dispute_id: UUID, dto: ResolveDisputeDTO, actor: Actor) -> Dispute:
        """Buyer accepts the seller's proposal or escalates to an admin."""
        order, dispute = self._lock(dispute_id)
        if not dispute.is_buyer(actor):
            raise NotDisputeParty("This dispute does not belong to you.")
        if dispute.status != DisputeState.OPEN:
            raise DisputeStateConflict("Dispute is not open for resolution.")
        if not dispute.has_seller_response:
            raise DisputeStateConflict("Seller has not responded yet.")

        now = self._clock()
        if dto.action == Resolution.ACCEPT:
            dispute.status = DisputeState.CLOSED
            dispute.buyer_accepted = True
            dispute.resolved_at = now
            self._mirror_on_order(order, DisputeState.CLOSED, actor)
            self._set_payment(order, PaymentStatus.COMPLETE, actor, now)
            dispute.add_domain_event(
                DisputeResolved(aggregate_id=dispute.id, **self._event_context(dispute, order))
            )
        else:
            self._escalate(dispute, order, EscalationReason.BUYER_REJECTED, actor, now)

        self._order_repo.save(order)
        self._dispute_repo.save(dispute)

        logger.info(
            "dispute.resolved_by_buyer",
            dispute_id=str(dispute.id),
            action=dto.action,
            dispute_status=dispute.status,
        )
        return dispute

    @transaction.atomic
    def rule(self, dispute_id: UUID, dto: RuleDisputeDTO, actor: Actor) -> Dispute:
        """Admin's binding decision on an escalated dispute."""
        if not actor.is_admin:
            raise NotDisputeParty("Only admins can rule on disputes.")
        order, dispute = self._lock(dispute_id)
        if dispute.status != DisputeState.PENDING_ADMIN_REVIEW:
            raise DisputeStateConflict("Dispute is not pending admin review.")

        now = self._clock()
        dispute.status = DisputeState.CLOSED
        dispute.ruling_decision = dto.decision
        dispute.ruling_notes = dto.notes
        dispute.ruled_at = now
        dispute.ruling_admin_id = actor.user_id
        dispute.resolved_at = now

        self._mirror_on_order(order, DisputeState.CLOSED, actor, reason=dto.notes)
        self._set_payment(order, RULING_PAYMENT[dto.decision], actor, now)
        self._order_repo.save(order)

        dispute.add_domain_event(
            DisputeRuled(
                aggregate_id=dispute.id,
                **self._event_context(dispute, order),
                decision=dto.decision,
                notes=dto.notes,
                payment_status=order.payment_status,
            )
        )
        self._dispute_repo.save(dispute)

        logger.info(
            "dispute.ruled",
            dispute_id=str(dispute.id),
            decision=dto.decision,
            admin_id=actor.user_id,
            payment_status=order.payment_status,
        )
        return dispute

    # ------------------------------------------------------------------
    # Escalation sweep support
    # ------------------------------------------------------------------

    def escalation_candidates(self, now: datetime) -> List[UUID]:
        cutoff = now - self._timings().dispute_response
        return self._dispute_repo.unanswered_ids(created_before=cutoff)

    @transaction.atomic
    def escalate_if_overdue(self, dispute_id: UUID, now: Optional[datetime] = None) -> bool:
        """Escalate an unanswered dispute whose response window has lapsed.

        Re-checked under the lock: a dispute the seller answered, or that
        was closed or escalated meanwhile, is left alone.
        """
        now = now or self._clock()
        order, dispute = self._lock(dispute_id)
        if dispute.status != DisputeState.OPEN or dispute.has_seller_response:
            return False
        if dispute.created_at > now - self._timings().dispute_response:
            return False

        self._escalate(dispute, order, EscalationReason.SELLER_TIMEOUT, SYSTEM_ACTOR, now)
        self._order_repo.save(order)
        self._dispute_repo.save(dispute)

        logger.info("dispute.escalated", dispute_id=str(dispute.id), order_id=str(order.id))
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_dispute(self, dispute_id: str, actor: Actor) -> Dispute:
        dispute = self._dispute_repo.get_by_id(str(dispute_id))
        if dispute is None or not dispute.is_visible_to(actor):
            raise DisputeNotFound(f"Dispute {dispute_id} not found.")
        return dispute

    def list_disputes(self, actor: Actor) -> "models.QuerySet[Dispute]":
        return self._dispute_repo.list_for_actor(actor)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, dispute_id: UUID) -> Tuple[Order, Dispute]:
        dispute = self._dispute_repo.get_by_id(str(dispute_id))
        if dispute is None:
            raise DisputeNotFound(f"Dispute {dispute_id} not found.")
        order = self._order_repo.get_for_update(str(dispute.order_id))
        if order is None:
            raise OrderNotFound(f"Order {dispute.order_id} not found.")
        locked = self._dispute_repo.get_for_update(str(dispute_id))
        if locked is None:
            raise DisputeNotFound(f"Dispute {dispute_id} not found.")
        return order, locked

    @staticmethod
    def _check_dispute_window(
        order: Order, dispute_type: str, now: datetime, timings: TimingConfig
    ) -> None:
        # Rejected and cancelled items do not count towards eligibility.
        status = live_order_status(item.status for item in order.line_items())
        if status not in DISPUTABLE_ORDER_STATUSES:
            raise DisputeNotAllowed(
                'Cannot create dispute. Order must be in "shipped", "delivered", '
                f'or "received" status. Current status: "{order.order_status}"'
            )

        window = timings.delivered_to_received
        minutes = timings.delivered_to_received_minutes
        if status == OrderStatus.RECEIVED:
            if order.received_at and now - order.received_at > window:
                raise DisputeNotAllowed(
                    "Cannot create dispute. Order was confirmed more than "
                    f"{minutes} minutes ago. Please contact support."
                )
        elif status == OrderStatus.DELIVERED:
            if (
                dispute_type == DisputeType.NON_DELIVERY
                and order.delivered_at
                and now - order.delivered_at > window
            ):
                raise DisputeNotAllowed(
                    "Cannot create dispute. Order was delivered more than "
                    f"{minutes} minutes ago. Please contact support."
                )
        else:
            expected = order.expected_delivery_date
            if expected is None and order.shipped_at is not None:
                expected = order.shipped_at + DEFAULT_DELIVERY_WINDOW
            if expected is not None and now < expected:
                raise DisputeNotAllowed(
                    "Cannot create dispute. Estimated delivery date has not passed yet. "
                    f"Expected delivery: {expected.isoformat()}"
                )

    @staticmethod
    def _resolve_seller(order: Order, seller_id: Optional[str]) -> dict:
        live = [item for item in order.line_items() if item.status not in CLOSED_ITEM_STATES]
        sellers = order.sellers(live)
        if seller_id:
            for seller in sellers:
                if seller["id"] == seller_id:
                    return seller
            raise InvalidDisputeInput("The given seller has no items in this order.")
        if len(sellers) != 1:
            raise InvalidDisputeInput(
                "seller_id is required when the order has more than one seller."
            )
        return sellers[0]

    def _escalate(
        self,
        dispute: Dispute,
        order: Order,
        reason: str,
        actor: Actor,
        now: datetime,
    ) -> None:
        dispute.status = DisputeState.PENDING_ADMIN_REVIEW
        dispute.escalation_reason = reason
        dispute.escalated_at = now
        self._mirror_on_order(order, DisputeState.PENDING_ADMIN_REVIEW, actor, reason=reason)
        dispute.add_domain_event(
            DisputeEscalated(
                aggregate_id=dispute.id,
                **self._event_context(dispute, order),
                escalation_reason=reason,
            )
        )

    def _mirror_on_order(
        self, order: Order, status: str, actor: Actor, reason: str = ""
    ) -> None:
        old_status = order.dispute_status
        order.dispute_status = status
        self._order_repo.add_history(
            order.id,
            actor,
            ChangeType.DISPUTE_STATUS,
            old_value=old_status,
            new_value=status,
            reason=reason,
        )

    def _set_payment(self, order: Order, status: str, actor: Actor, now: datetime) -> None:
        old_status = order.apply_payment_status(status, now=now)
        if old_status is None:
            return
        self._order_repo.add_history(
            order.id,
            actor,
            ChangeType.PAYMENT_STATUS,
            old_value=old_status,
            new_value=status,
        )

    @staticmethod
    def _event_context(dispute: Dispute, order: Order) -> dict:
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "buyer_id": dispute.buyer_id,
            "buyer_role": dispute.buyer_role,
            "seller_id": dispute.seller_id,
            "seller_role": dispute.seller_role,
        }


def build_dispute_service() -> DisputeService:
    from modules.disputes.repositories.django_repository import DisputeDjangoRepository
    from modules.orders.repositories.django_repository import OrderDjangoRepository

    return DisputeService(
        dispute_repository=DisputeDjangoRepository(),
        order_repository=OrderDjangoRepository(),
    )
