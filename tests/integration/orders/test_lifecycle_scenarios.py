"""End-to-end order lifecycles driven through the services and sweeps."""

from __future__ import annotations

from datetime import timedelta

import pytest

from modules.disputes.constants import DisputeState, DisputeType, EscalationReason, Ruling
from modules.disputes.dtos import OpenDisputeDTO, RuleDisputeDTO
from modules.disputes.jobs import escalate_overdue_disputes
from modules.orders.constants import (
    DisputeStatus,
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from modules.orders.exceptions import TransitionTooEarly
from modules.orders.jobs import confirm_overdue_deliveries
from modules.orders.models import Order

pytestmark = pytest.mark.integration


def test_ship_wait_deliver_and_confirm(flow, order_service, buyer, farmer, rice):
    order = flow.place(buyer, (rice, 2))
    order = flow.accept(order, farmer)
    assert order.order_status == OrderStatus.PROCESSING

    order = flow.ship(order, farmer)
    assert order.order_status == OrderStatus.SHIPPED
    assert order.line_items()[0].shipped_at is not None

    with pytest.raises(TransitionTooEarly, match="Please wait 10 more minute"):
        flow.move(order, farmer, ItemStatus.DELIVERED)

    order = flow.deliver(order, farmer, wait_minutes=10)
    assert order.order_status == OrderStatus.DELIVERED

    order = order_service.confirm_receipt(order.id, buyer)
    assert order.order_status == OrderStatus.RECEIVED
    assert order.payment_status == PaymentStatus.COMPLETE


def test_unconfirmed_delivery_is_received_automatically(flow, buyer, farmer, rice):
    order = flow.delivered_order(buyer, farmer, rice)

    flow.frozen.tick(timedelta(minutes=1439))
    assert confirm_overdue_deliveries()["confirmed"] == 0

    flow.frozen.tick(timedelta(minutes=1))
    stats = confirm_overdue_deliveries()
    assert stats == {"checked": 1, "confirmed": 1, "skipped": 0, "errors": 0}

    order.refresh_from_db()
    assert order.order_status == OrderStatus.RECEIVED
    assert order.payment_status == PaymentStatus.COMPLETE
    assert order.received_at is not None


def test_unanswered_dispute_is_escalated_and_ruled_for_seller(
    flow, dispute_service, buyer, farmer, admin, rice
):
    order = flow.delivered_order(buyer, farmer, rice)
    dispute = dispute_service.open_dispute(
        order.id,
        OpenDisputeDTO(dispute_type=DisputeType.PRODUCT_FAULT, reason="Rice was damp"),
        buyer,
    )

    flow.frozen.tick(timedelta(minutes=10))
    assert escalate_overdue_disputes()["escalated"] == 1

    dispute.refresh_from_db()
    order.refresh_from_db()
    assert dispute.status == DisputeState.PENDING_ADMIN_REVIEW
    assert dispute.escalation_reason == EscalationReason.SELLER_TIMEOUT
    assert order.dispute_status == DisputeStatus.PENDING_ADMIN_REVIEW

    dispute = dispute_service.rule(
        dispute.id, RuleDisputeDTO(decision=Ruling.SELLER_WIN, notes="Photos inconclusive"), admin
    )
    order.refresh_from_db()
    assert dispute.status == DisputeState.CLOSED
    assert order.dispute_status == DisputeStatus.CLOSED
    assert order.payment_status == PaymentStatus.COMPLETE


@pytest.mark.parametrize(
    "payment_method,expected_payment",
    [
        (PaymentMethod.CASH_ON_DELIVERY, PaymentStatus.CANCELLED),
        (PaymentMethod.EASYPAISA, PaymentStatus.REFUNDED),
        (PaymentMethod.JAZZCASH, PaymentStatus.REFUNDED),
    ],
)
def test_seller_rejection_cancels_order(
    flow, buyer, farmer, rice, payment_method, expected_payment
):
    order = flow.place(buyer, (rice, 1), payment_method=payment_method)
    order = flow.reject(order, farmer, reason="out of stock")

    item = order.line_items()[0]
    assert item.status == ItemStatus.REJECTED
    assert item.rejection_reason == "out of stock"
    assert order.order_status == OrderStatus.CANCELLED
    assert order.payment_status == expected_payment
    assert Order.objects.get(id=order.id).payment_status == expected_payment
