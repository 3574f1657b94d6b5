"""Event handlers turning order and dispute events into notifications.

Handlers run inside the outbox processor's transaction for the event;
an exception here marks the event failed and it is retried later.
"""

from __future__ import annotations

from typing import Optional

import structlog

from modules.core.identity import Role
from modules.disputes.constants import EscalationReason, Ruling
from modules.disputes.events import (
    DisputeEscalated,
    DisputeEvent,
    DisputeOpened,
    DisputeResolved,
    DisputeResponded,
    DisputeRuled,
)
from modules.notifications import recipients
from modules.notifications.constants import NotificationType, Priority, RelatedType
from modules.notifications.dispatcher import NotificationDispatcher
from modules.orders.constants import ItemStatus
from modules.orders.events import (
    OrderAccepted,
    OrderCancelled,
    OrderEvent,
    OrderItemsRejected,
    OrderItemStatusChanged,
    OrderPlaced,
    OrderReceived,
)
from shared.domain.bus import IEventBus, IEventHandler

logger = structlog.get_logger(__name__)


class _NotificationHandler:
    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None) -> None:
        self._dispatcher = dispatcher or NotificationDispatcher()

    def _to_customer(
        self,
        event: OrderEvent,
        notification_type: str,
        title: str,
        message: str,
        priority: str = Priority.MEDIUM,
    ) -> None:
        self._dispatcher.notify(
            event.customer_id,
            event.customer_role,
            notification_type,
            title,
            message,
            related_id=str(event.aggregate_id),
            related_type=RelatedType.ORDER,
            action_url=f"/orders/{event.aggregate_id}",
            priority=priority,
        )

    def _to_sellers(
        self,
        event: OrderEvent,
        sellers: list,
        notification_type: str,
        title: str,
        message: str,
        priority: str = Priority.MEDIUM,
    ) -> None:
        for seller in sellers:
            self._dispatcher.notify(
                seller["id"],
                seller["role"],
                notification_type,
                title,
                message,
                related_id=str(event.aggregate_id),
                related_type=RelatedType.ORDER,
                action_url=f"/orders/{event.aggregate_id}",
                priority=priority,
            )

    def _to_dispute_party(
        self,
        event: DisputeEvent,
        user_id: str,
        role: str,
        notification_type: str,
        title: str,
        message: str,
        priority: str = Priority.HIGH,
        admin: bool = False,
    ) -> None:
        prefix = "/admin/disputes" if admin else "/disputes"
        self._dispatcher.notify(
            user_id,
            role,
            notification_type,
            title,
            message,
            related_id=str(event.aggregate_id),
            related_type=RelatedType.DISPUTE,
            action_url=f"{prefix}/{event.aggregate_id}",
            priority=priority,
        )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderPlacedHandler(_NotificationHandler, IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        self._to_sellers(
            event,
            event.sellers,
            NotificationType.ORDER_PLACED,
            "New Order Received",
            f"You have a new order #{event.order_number}. "
            "Please review and accept or reject it.",
            priority=Priority.HIGH,
        )


class OrderAcceptedHandler(_NotificationHandler, IEventHandler[OrderAccepted]):
    def handle(self, event: OrderAccepted) -> None:
        self._to_customer(
            event,
            NotificationType.ORDER_ACCEPTED,
            "Order Accepted",
            f"Your order #{event.order_number} has been accepted by the seller.",
        )


class OrderItemsRejectedHandler(_NotificationHandler, IEventHandler[OrderItemsRejected]):
    def handle(self, event: OrderItemsRejected) -> None:
        self._to_customer(
            event,
            NotificationType.ORDER_REJECTED,
            "Order Rejected",
            f"Items in your order #{event.order_number} were rejected by the seller. "
            f"Reason: {event.reason}",
            priority=Priority.HIGH,
        )


class OrderItemStatusChangedHandler(
    _NotificationHandler, IEventHandler[OrderItemStatusChanged]
):
    def handle(self, event: OrderItemStatusChanged) -> None:
        number = event.order_number
        if event.new_status == ItemStatus.PROCESSING:
            content = (
                NotificationType.ORDER_PROCESSING,
                "Order Processing",
                f"{event.product_name} in your order #{number} is being prepared.",
            )
        elif event.new_status == ItemStatus.SHIPPED:
            content = (
                NotificationType.ORDER_SHIPPED,
                "Order Shipped",
                f"Your order #{number} has been shipped and is on its way.",
            )
        elif event.new_status == ItemStatus.DELIVERED:
            content = (
                NotificationType.ORDER_DELIVERED,
                "Order Delivered",
                f"Your order #{number} has been delivered. Please confirm receipt within "
                f"{event.confirmation_window_minutes} minutes, after which it will be "
                "confirmed automatically.",
            )
        elif event.new_status == ItemStatus.CANCELLED:
            content = (
                NotificationType.ORDER_CANCELLED,
                "Item Cancelled",
                f"{event.product_name} in your order #{number} was cancelled by the seller.",
            )
        else:
            logger.debug("notification.status_ignored", new_status=event.new_status)
            return
        self._to_customer(event, *content)


class OrderCancelledHandler(_NotificationHandler, IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        message = f"Order #{event.order_number} was cancelled by the customer."
        if event.reason:
            message = f"{message} Reason: {event.reason}"
        self._to_sellers(
            event,
            event.sellers,
            NotificationType.ORDER_CANCELLED,
            "Order Cancelled",
            message,
        )


class OrderReceivedHandler(_NotificationHandler, IEventHandler[OrderReceived]):
    def handle(self, event: OrderReceived) -> None:
        if event.automatic:
            self._to_customer(
                event,
                NotificationType.ORDER_RECEIVED,
                "Order Auto-Confirmed",
                f"Your order #{event.order_number} has been automatically confirmed as "
                "received. Payment status has been updated to complete.",
            )
        self._to_sellers(
            event,
            event.sellers,
            NotificationType.ORDER_RECEIVED,
            "Order Received",
            f"Receipt of order #{event.order_number} has been confirmed.",
        )


# ---------------------------------------------------------------------------
# Disputes
# ---------------------------------------------------------------------------


class DisputeOpenedHandler(_NotificationHandler, IEventHandler[DisputeOpened]):
    def handle(self, event: DisputeOpened) -> None:
        self._to_dispute_party(
            event,
            event.seller_id,
            event.seller_role,
            NotificationType.DISPUTE_OPENED,
            "Dispute Opened - Action Required",
            f"A dispute has been opened for order #{event.order_number}. "
            f"Reason: {event.reason}. Please respond within {event.response_minutes} "
            "minutes. If you don't respond, the dispute will be automatically "
            "escalated to admin.",
        )


class DisputeRespondedHandler(_NotificationHandler, IEventHandler[DisputeResponded]):
    def handle(self, event: DisputeResponded) -> None:
        self._to_dispute_party(
            event,
            event.buyer_id,
            event.buyer_role,
            NotificationType.DISPUTE_RESPONSE,
            "Seller Responded to Dispute",
            f"The seller has responded to your dispute for order #{event.order_number}. "
            f"Proposal: {event.proposal}. Please accept or reject the proposal.",
        )


class DisputeResolvedHandler(_NotificationHandler, IEventHandler[DisputeResolved]):
    def handle(self, event: DisputeResolved) -> None:
        self._to_dispute_party(
            event,
            event.seller_id,
            event.seller_role,
            NotificationType.DISPUTE_RESOLVED,
            "Dispute Resolved",
            f"The buyer accepted your proposal for order #{event.order_number}. "
            "Payment has been completed.",
            priority=Priority.MEDIUM,
        )


class DisputeEscalatedHandler(_NotificationHandler, IEventHandler[DisputeEscalated]):
    def handle(self, event: DisputeEscalated) -> None:
        timed_out = event.escalation_reason == EscalationReason.SELLER_TIMEOUT
        cause = (
            "the seller did not respond in time"
            if timed_out
            else "the buyer rejected the seller's proposal"
        )
        for admin_id in recipients.admin_user_ids():
            self._to_dispute_party(
                event,
                admin_id,
                Role.ADMIN,
                NotificationType.DISPUTE_ESCALATED,
                "Dispute Escalated - Review Required",
                f"The dispute for order #{event.order_number} has been escalated because "
                f"{cause}. Please review and make a ruling.",
                admin=True,
            )
        if timed_out:
            user_id, role = event.buyer_id, event.buyer_role
        else:
            user_id, role = event.seller_id, event.seller_role
        self._to_dispute_party(
            event,
            user_id,
            role,
            NotificationType.DISPUTE_ESCALATED,
            "Dispute Escalated to Admin",
            f"The dispute for order #{event.order_number} has been escalated to admin "
            f"review because {cause}.",
            priority=Priority.MEDIUM,
        )


class DisputeRuledHandler(_NotificationHandler, IEventHandler[DisputeRuled]):
    def handle(self, event: DisputeRuled) -> None:
        decision = (
            "Buyer Wins - Refund Approved"
            if event.decision == Ruling.BUYER_WIN
            else "Seller Wins - Payment Completed"
        )
        message = (
            f"The dispute for order #{event.order_number} has been resolved. "
            f"Decision: {decision}"
        )
        if event.notes:
            message = f"{message}\nNotes: {event.notes}"
        for user_id, role in (
            (event.buyer_id, event.buyer_role),
            (event.seller_id, event.seller_role),
        ):
            self._to_dispute_party(
                event,
                user_id,
                role,
                NotificationType.DISPUTE_ADMIN_RULING,
                "Dispute Resolution",
                message,
            )


HANDLERS = (
    (OrderPlaced, OrderPlacedHandler),
    (OrderAccepted, OrderAcceptedHandler),
    (OrderItemsRejected, OrderItemsRejectedHandler),
    (OrderItemStatusChanged, OrderItemStatusChangedHandler),
    (OrderCancelled, OrderCancelledHandler),
    (OrderReceived, OrderReceivedHandler),
    (DisputeOpened, DisputeOpenedHandler),
    (DisputeResponded, DisputeRespondedHandler),
    (DisputeResolved, DisputeResolvedHandler),
    (DisputeEscalated, DisputeEscalatedHandler),
    (DisputeRuled, DisputeRuledHandler),
)

_registered: dict = {}


def register_handlers(bus: IEventBus) -> None:
    """Subscribe one handler instance per event type; safe to call twice."""
    for event_class, handler_class in HANDLERS:
        handler = _registered.setdefault(event_class, handler_class())
        bus.subscribe(event_class, handler)
