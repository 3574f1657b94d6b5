"""Order service layer (Use Cases).

Orchestrates the multi-vendor order lifecycle: placement with stock
reservation, seller acceptance/rejection, per-item fulfilment, buyer
cancellation and receipt confirmation (manual or automatic).

Every command runs in one transaction and locks the order row first, so
concurrent requests and the sweeps are serialized per order.  Rules are
checked before anything is written; a rejected command leaves the order
untouched.  Side effects (notifications, email) are emitted as domain
events and delivered later through the outbox.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.configuration.timing import TimingConfig, get_timings
from modules.core.identity import SYSTEM_ACTOR, Actor
from modules.orders.constants import (
    CLOSED_ITEM_STATES,
    DEFAULT_DELIVERY_WINDOW,
    PREPAID_METHODS,
    ChangeType,
    ItemStatus,
    OrderStatus,
    PaymentStatus,
)
from modules.orders.events import (
    OrderAccepted,
    OrderCancelled,
    OrderItemsRejected,
    OrderItemStatusChanged,
    OrderPlaced,
    OrderReceived,
)
from modules.orders.exceptions import (
    DisputeBlocksTransition,
    InvalidOrderInput,
    LineItemNotFound,
    NothingToUpdate,
    NotItemSeller,
    NotOrderCustomer,
    OrderNotCancellable,
    OrderNotFound,
    ReceiptNotAllowed,
)
from modules.orders.state_machine import (
    awaiting_receipt,
    check_delivery_gate,
    check_item_transition,
)
from modules.products.exceptions import (
    InsufficientStock,
    ProductNotFound,
    ProductUnavailable,
)
from modules.products.models import SellerRole

if TYPE_CHECKING:
    from django.db import models

    from modules.orders.dtos import (
        AcceptOrderDTO,
        CreateOrderDTO,
        RejectOrderDTO,
        UpdateItemStatusDTO,
    )
    from modules.orders.models import LineItem, Order, OrderHistory
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

ITEM_CHANGE_TYPES = {
    ItemStatus.SHIPPED: ChangeType.SHIPPED,
    ItemStatus.DELIVERED: ChangeType.DELIVERED,
    ItemStatus.CANCELLED: ChangeType.CANCELLED,
}


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).  ``timings``
    and ``clock`` are injectable so time-gated rules can be exercised
    without waiting.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        timings: Callable[[], TimingConfig] = get_timings,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._timings = timings
        self._clock = clock

    # ------------------------------------------------------------------
    # Commands: placement
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, actor: Actor) -> Order:
        """Place an order and reserve stock.

        Products are locked in primary-key order to avoid deadlocks between
        concurrent orders for the same products.

        Raises:
            NotOrderCustomer: the actor is not a buyer or farmer.
            ProductNotFound / ProductUnavailable / InsufficientStock.
        """
        if not actor.can_buy:
            raise NotOrderCustomer("Only buyers and farmers can place orders.")

        log = logger.bind(customer_id=actor.user_id, customer_role=actor.role)
        log.info("order.creation_started", item_count=len(dto.items))

        lines = {}
        for item_dto in sorted(dto.items, key=lambda i: str(i.product_id)):
            product = self._product_repo.get_for_update(str(item_dto.product_id))
            if not product:
                raise ProductNotFound(f"Product {item_dto.product_id} not found.")
            if not product.is_available:
                raise ProductUnavailable(f"Product {product.name} is not available.")
            if product.quantity < item_dto.quantity:
                raise InsufficientStock(
                    f"Product {product.name}: requested {item_dto.quantity}, "
                    f"available {product.quantity}."
                )
            self._product_repo.reserve(product, item_dto.quantity)

            seller_field = (
                "farmer_id" if product.owner_role == SellerRole.FARMER else "supplier_id"
            )
            lines[item_dto.product_id] = {
                "product_id": product.id,
                "product_name": product.name,
                "quantity": item_dto.quantity,
                "price": product.price,
                seller_field: product.owner_id,
            }

        order = self._order_repo.create(
            {
                "customer_id": actor.user_id,
                "customer_role": actor.role,
                "payment_method": dto.payment_method,
                "shipping_address": dto.shipping_address,
                "notes": dto.notes,
                "items": [lines[item.product_id] for item in dto.items],
            }
        )

        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                customer_role=order.customer_role,
                sellers=order.sellers(),
                total_amount=str(order.total_amount),
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order.id,
            actor,
            ChangeType.STATUS,
            new_value=OrderStatus.PENDING,
            notes="Order placed",
        )

        log.info("order.created", order_id=str(order.id), order_number=order.order_number)
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Commands: seller intake
    # ------------------------------------------------------------------

    @transaction.atomic
    def accept_order(
        self, order_id: UUID, actor: Actor, dto: Optional[AcceptOrderDTO] = None
    ) -> Order:
        """Accept every pending item of the acting seller.

        When no item of any seller is pending any more, all confirmed
        items move on to processing.
        """
        now = self._clock()
        estimate = dto.estimated_delivery_date if dto else None
        if estimate is not None and estimate <= now:
            raise InvalidOrderInput("Estimated delivery date must be in the future.")

        order = self._lock(order_id)
        self._ensure_no_active_dispute(order)
        items = order.line_items()
        own = self._seller_items(items, actor)

        pending = [
            item
            for item in own
            if item.status == ItemStatus.PENDING and item.seller_accepted is None
        ]
        if not pending:
            raise NothingToUpdate("No pending items to accept in this order.")

        for item in pending:
            item.seller_accepted = True
            item.status = ItemStatus.CONFIRMED
            if estimate is not None:
                item.estimated_delivery_date = estimate
            self._order_repo.save_item(item)
            self._order_repo.add_history(
                order.id,
                actor,
                ChangeType.ACCEPTED,
                old_value=ItemStatus.PENDING,
                new_value=ItemStatus.CONFIRMED,
                line_item_id=item.id,
            )

        if not any(item.status == ItemStatus.PENDING for item in items):
            for item in items:
                if item.status == ItemStatus.CONFIRMED:
                    item.status = ItemStatus.PROCESSING
                    self._order_repo.save_item(item)
                    self._order_repo.add_history(
                        order.id,
                        actor,
                        ChangeType.STATUS,
                        old_value=ItemStatus.CONFIRMED,
                        new_value=ItemStatus.PROCESSING,
                        notes="All sellers responded",
                        line_item_id=item.id,
                    )

        self._refresh_status(order, items, actor)
        order.add_domain_event(
            OrderAccepted(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                customer_role=order.customer_role,
                seller_id=actor.user_id,
                seller_role=actor.role,
                item_count=len(pending),
            )
        )
        self._order_repo.save(order)

        logger.info(
            "order.accepted",
            order_id=str(order.id),
            seller_id=actor.user_id,
            item_count=len(pending),
            order_status=order.order_status,
        )
        return self._reload(order)

    @transaction.atomic
    def reject_order(self, order_id: UUID, actor: Actor, dto: RejectOrderDTO) -> Order:
        """Reject every pending item of the acting seller and restore stock."""
        now = self._clock()
        order = self._lock(order_id)
        self._ensure_no_active_dispute(order)
        items = order.line_items()
        own = self._seller_items(items, actor)

        pending = [
            item
            for item in own
            if item.status == ItemStatus.PENDING and item.seller_accepted is None
        ]
        if not pending:
            raise NothingToUpdate("No pending items to reject in this order.")

        for item in pending:
            item.seller_accepted = False
            item.status = ItemStatus.REJECTED
            item.rejected_at = now
            item.rejection_reason = dto.reason
            self._order_repo.save_item(item)
            self._product_repo.release(str(item.product_id), item.quantity)
            self._order_repo.add_history(
                order.id,
                actor,
                ChangeType.REJECTED,
                old_value=ItemStatus.PENDING,
                new_value=ItemStatus.REJECTED,
                reason=dto.reason,
                line_item_id=item.id,
            )

        self._refresh_status(order, items, actor, reason=dto.reason)
        order.add_domain_event(
            OrderItemsRejected(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                customer_role=order.customer_role,
                seller_id=actor.user_id,
                seller_role=actor.role,
                reason=dto.reason,
                order_status=order.order_status,
            )
        )
        self._order_repo.save(order)

        logger.info(
            "order.rejected",
            order_id=str(order.id),
            seller_id=actor.user_id,
            item_count=len(pending),
            order_status=order.order_status,
        )
        return self._reload(order)

    # ------------------------------------------------------------------
    # Commands: fulfilment
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_item_status(
        self,
        order_id: UUID,
        item_id: UUID,
        dto: UpdateItemStatusDTO,
        actor: Actor,
    ) -> Order:
        """Move one of the seller's line items to ``dto.status``.

        Raises:
            DisputeBlocksTransition: the order has an active dispute.
            InvalidTransition: the status does not follow the current one.
            TransitionTooEarly: delivery requested before the minimum wait.
        """
        now = self._clock()
        order = self._lock(order_id)
        items = order.line_items()
        item = next((line for line in items if str(line.id) == str(item_id)), None)
        if item is None:
            raise LineItemNotFound(f"Item {item_id} not found in order {order.order_number}.")
        if not item.is_sold_by(actor):
            raise NotItemSeller("You can only update your own items in this order.")

        log = logger.bind(
            order_id=str(order.id),
            item_id=str(item.id),
            current_status=item.status,
            new_status=dto.status,
        )

        self._ensure_no_active_dispute(order)
        check_item_transition(item.status, dto.status)
        timings = self._timings()
        if dto.status == ItemStatus.DELIVERED:
            check_delivery_gate(item.shipped_at, now, timings.shipped_to_delivered_minutes)

        old_status = item.status
        item.status = dto.status
        if dto.status == ItemStatus.SHIPPED:
            item.shipped_at = now
            if order.expected_delivery_date is None:
                order.expected_delivery_date = (
                    item.estimated_delivery_date or now + DEFAULT_DELIVERY_WINDOW
                )
            if order.shipped_at is None:
                order.shipped_at = now
        elif dto.status == ItemStatus.DELIVERED:
            item.delivered_at = now
            if order.delivered_at is None:
                order.delivered_at = now
        elif dto.status == ItemStatus.CANCELLED:
            self._product_repo.release(str(item.product_id), item.quantity)

        self._order_repo.save_item(item)
        self._order_repo.add_history(
            order.id,
            actor,
            ITEM_CHANGE_TYPES.get(dto.status, ChangeType.STATUS),
            old_value=old_status,
            new_value=dto.status,
            reason=dto.reason,
            line_item_id=item.id,
        )
        self._refresh_status(order, items, actor, reason=dto.reason)

        order.add_domain_event(
            OrderItemStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                customer_role=order.customer_role,
                item_id=str(item.id),
                product_name=item.product_name,
                old_status=old_status,
                new_status=dto.status,
                order_status=order.order_status,
                confirmation_window_minutes=(
                    timings.delivered_to_received_minutes
                    if dto.status == ItemStatus.DELIVERED
                    else None
                ),
            )
        )
        self._order_repo.save(order)

        log.info("order.item_status_updated", order_status=order.order_status)
        return self._reload(order)

    @transaction.atomic
    def cancel_order(self, order_id: UUID, actor: Actor, reason: str = "") -> Order:
        """Cancel the whole order on behalf of its customer.

        Only possible while nothing has shipped; reserved stock is released.
        """
        order = self._lock(order_id)
        if not actor.is_admin and not self._is_customer(order, actor):
            raise NotOrderCustomer("You can only cancel your own orders.")
        self._ensure_no_active_dispute(order)

        items = order.line_items()
        if any(
            item.status in (ItemStatus.SHIPPED, ItemStatus.DELIVERED, ItemStatus.RECEIVED)
            for item in items
        ):
            raise OrderNotCancellable(
                "Cannot cancel order after items have been shipped or delivered."
            )
        live = [item for item in items if item.status not in CLOSED_ITEM_STATES]
        if not live:
            raise OrderNotCancellable("Order is already cancelled.")

        for item in live:
            old_status = item.status
            check_item_transition(old_status, ItemStatus.CANCELLED)
            item.status = ItemStatus.CANCELLED
            self._order_repo.save_item(item)
            self._product_repo.release(str(item.product_id), item.quantity)
            self._order_repo.add_history(
                order.id,
                actor,
                ChangeType.CANCELLED,
                old_value=old_status,
                new_value=ItemStatus.CANCELLED,
                reason=reason,
                line_item_id=item.id,
            )

        self._refresh_status(order, items, actor, reason=reason)
        order.add_domain_event(
            OrderCancelled(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                customer_role=order.customer_role,
                sellers=order.sellers(live),
                reason=reason,
                payment_status=order.payment_status,
            )
        )
        self._order_repo.save(order)

        logger.info("order.cancelled", order_id=str(order.id), item_count=len(live))
        return self._reload(order)

    # ------------------------------------------------------------------
    # Commands: receipt
    # ------------------------------------------------------------------

    @transaction.atomic
    def confirm_receipt(self, order_id: UUID, actor: Actor) -> Order:
        """Buyer confirms that every delivered item arrived."""
        if not actor.can_buy:
            raise NotOrderCustomer("Only the buyer can confirm receipt.")
        order = self._lock(order_id)
        if not self._is_customer(order, actor):
            raise NotOrderCustomer("You can only confirm receipt of your own orders.")
        self._ensure_no_active_dispute(order)

        items = order.line_items()
        if not awaiting_receipt(item.status for item in items):
            raise ReceiptNotAllowed(
                "Order must be delivered before confirming receipt. "
                f"Current status: {order.order_status}"
            )

        self._mark_received(order, items, actor, self._clock(), automatic=False)
        logger.info("order.receipt_confirmed", order_id=str(order.id))
        return self._reload(order)

    def auto_confirmation_candidates(self, now: datetime) -> List[UUID]:
        """Orders whose delivery is older than the confirmation window."""
        cutoff = now - self._timings().delivered_to_received
        return self._order_repo.awaiting_receipt_ids(delivered_before=cutoff)

    @transaction.atomic
    def auto_confirm_receipt(self, order_id: UUID, now: Optional[datetime] = None) -> bool:
        """Confirm receipt on the buyer's behalf once the window has lapsed.

        Eligibility is re-checked under the row lock; returns ``False``
        when the order no longer qualifies (buyer confirmed, dispute opened,
        last delivery still inside the window).
        """
        now = now or self._clock()
        order = self._order_repo.get_for_update(str(order_id))
        if order is None or order.received_at is not None or order.has_active_dispute:
            return False

        items = order.line_items()
        if not awaiting_receipt(item.status for item in items):
            return False
        cutoff = now - self._timings().delivered_to_received
        last_delivery = max(
            (item.delivered_at for item in items if item.delivered_at is not None),
            default=None,
        )
        if last_delivery is None or last_delivery > cutoff:
            return False

        self._mark_received(order, items, SYSTEM_ACTOR, now, automatic=True)
        logger.info("order.receipt_auto_confirmed", order_id=str(order.id))
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str, actor: Actor) -> Order:
        """Retrieve an order visible to *actor*.

        Raises:
            OrderNotFound: missing, or not visible to the actor.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if not order or not order.is_visible_to(actor):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, actor: Actor) -> "models.QuerySet[Order]":
        return self._order_repo.list_for_actor(actor)

    def order_history(self, order_id: str, actor: Actor) -> List[OrderHistory]:
        order = self.get_order(order_id, actor)
        return self._order_repo.history(order.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, order_id: UUID) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _reload(self, order: Order) -> Order:
        return self._order_repo.get_by_id(str(order.id)) or order

    @staticmethod
    def _is_customer(order: Order, actor: Actor) -> bool:
        return actor.can_buy and order.customer_id == actor.user_id

    @staticmethod
    def _seller_items(items: List[LineItem], actor: Actor) -> List[LineItem]:
        if not actor.can_sell:
            raise NotItemSeller("Only farmers and suppliers can act on order items.")
        own = [item for item in items if item.is_sold_by(actor)]
        if not own:
            raise NotItemSeller("You do not have any items in this order.")
        return own

    @staticmethod
    def _ensure_no_active_dispute(order: Order) -> None:
        if order.has_active_dispute:
            raise DisputeBlocksTransition()

    def _refresh_status(
        self, order: Order, items: List[LineItem], actor: Actor, reason: str = ""
    ) -> None:
        """Re-derive the order status and record the change, if any.

        An order that ends up fully cancelled gets its payment cancelled
        (cash on delivery) or refunded (prepaid methods).
        """
        old_status = order.order_status
        new_status = order.refresh_status(items)
        if new_status == old_status:
            return
        self._order_repo.add_history(
            order.id,
            actor,
            ChangeType.STATUS,
            old_value=old_status,
            new_value=new_status,
            reason=reason,
        )
        if new_status == OrderStatus.CANCELLED:
            if order.payment_method in PREPAID_METHODS:
                self._set_payment(order, PaymentStatus.REFUNDED, actor, reason=reason)
            else:
                self._set_payment(order, PaymentStatus.CANCELLED, actor, reason=reason)

    def _set_payment(
        self,
        order: Order,
        status: str,
        actor: Actor,
        reason: str = "",
        now: Optional[datetime] = None,
    ) -> None:
        old_status = order.apply_payment_status(status, now=now or self._clock())
        if old_status is None:
            return
        self._order_repo.add_history(
            order.id,
            actor,
            ChangeType.PAYMENT_STATUS,
            old_value=old_status,
            new_value=status,
            reason=reason,
        )

    def _mark_received(
        self,
        order: Order,
        items: List[LineItem],
        actor: Actor,
        now: datetime,
        automatic: bool,
    ) -> None:
        received = [item for item in items if item.status == ItemStatus.DELIVERED]
        for item in received:
            item.status = ItemStatus.RECEIVED
            item.received_at = now
            self._order_repo.save_item(item)
            self._order_repo.add_history(
                order.id,
                actor,
                ChangeType.RECEIVED,
                old_value=ItemStatus.DELIVERED,
                new_value=ItemStatus.RECEIVED,
                notes="Confirmed automatically" if automatic else "",
                line_item_id=item.id,
            )

        order.received_at = now
        self._refresh_status(order, items, actor)
        # A binding refund from a dispute ruling is never overturned.
        if order.payment_status != PaymentStatus.REFUNDED:
            self._set_payment(order, PaymentStatus.COMPLETE, actor, now=now)

        order.add_domain_event(
            OrderReceived(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                customer_role=order.customer_role,
                sellers=order.sellers(received),
                automatic=automatic,
            )
        )
        self._order_repo.save(order)


def build_order_service() -> OrderService:
    """Wire the service with its Django repositories."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.products.repositories.django_repository import ProductDjangoRepository

    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )
