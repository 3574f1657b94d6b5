"""Unit tests for the line-item transition rules and status derivation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from modules.orders.constants import ItemStatus, OrderStatus
from modules.orders.exceptions import (
    InvalidTransition,
    MissingShipmentTimestamp,
    TransitionTooEarly,
)
from modules.orders.state_machine import (
    allowed_transitions,
    awaiting_receipt,
    check_delivery_gate,
    check_item_transition,
    derive_order_status,
    live_order_status,
    remaining_delivery_wait,
)

pytestmark = pytest.mark.unit

SHIPPED_AT = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TestItemTransitions:
    @pytest.mark.parametrize(
        "current,requested",
        [
            (ItemStatus.PENDING, ItemStatus.CONFIRMED),
            (ItemStatus.PENDING, ItemStatus.REJECTED),
            (ItemStatus.CONFIRMED, ItemStatus.PROCESSING),
            (ItemStatus.CONFIRMED, ItemStatus.CANCELLED),
            (ItemStatus.PROCESSING, ItemStatus.SHIPPED),
            (ItemStatus.PROCESSING, ItemStatus.CANCELLED),
            (ItemStatus.SHIPPED, ItemStatus.DELIVERED),
        ],
    )
    def test_allowed(self, current, requested):
        check_item_transition(current, requested)

    @pytest.mark.parametrize(
        "current,requested",
        [
            (ItemStatus.PENDING, ItemStatus.SHIPPED),
            (ItemStatus.CONFIRMED, ItemStatus.DELIVERED),
            (ItemStatus.PROCESSING, ItemStatus.DELIVERED),
            (ItemStatus.SHIPPED, ItemStatus.CANCELLED),
            (ItemStatus.SHIPPED, ItemStatus.PROCESSING),
        ],
    )
    def test_rejected(self, current, requested):
        with pytest.raises(InvalidTransition):
            check_item_transition(current, requested)

    @pytest.mark.parametrize(
        "terminal",
        [ItemStatus.DELIVERED, ItemStatus.RECEIVED, ItemStatus.REJECTED, ItemStatus.CANCELLED],
    )
    def test_terminal_states_have_no_exit(self, terminal):
        assert allowed_transitions(terminal) == set()
        for target in ItemStatus.values:
            with pytest.raises(InvalidTransition):
                check_item_transition(terminal, target)

    def test_error_lists_allowed_transitions(self):
        with pytest.raises(InvalidTransition) as exc_info:
            check_item_transition(ItemStatus.PROCESSING, ItemStatus.DELIVERED)
        message = exc_info.value.detail
        assert "Cannot change status from processing to delivered" in message
        assert "cancelled, shipped" in message

    def test_error_for_terminal_state_says_none(self):
        with pytest.raises(InvalidTransition) as exc_info:
            check_item_transition(ItemStatus.CANCELLED, ItemStatus.PROCESSING)
        assert exc_info.value.detail.endswith("Allowed transitions: none")


class TestDeliveryGate:
    def test_nine_minutes_after_shipping_is_too_early(self):
        with pytest.raises(TransitionTooEarly) as exc_info:
            check_delivery_gate(SHIPPED_AT, SHIPPED_AT + timedelta(minutes=9), 10)
        assert exc_info.value.remaining_minutes == 1
        assert "Please wait 1 more minute(s)" in exc_info.value.detail
        assert "Minimum 10 minutes required after shipping" in exc_info.value.detail

    def test_exactly_at_threshold_is_allowed(self):
        check_delivery_gate(SHIPPED_AT, SHIPPED_AT + timedelta(minutes=10), 10)

    def test_remaining_minutes_round_up(self):
        now = SHIPPED_AT + timedelta(minutes=2, seconds=30)
        assert remaining_delivery_wait(SHIPPED_AT, now, timedelta(minutes=10)) == 8

    def test_zero_threshold_allows_immediate_delivery(self):
        check_delivery_gate(SHIPPED_AT, SHIPPED_AT, 0)

    def test_missing_shipping_timestamp(self):
        with pytest.raises(MissingShipmentTimestamp):
            check_delivery_gate(None, SHIPPED_AT, 10)


class TestDeriveOrderStatus:
    @pytest.mark.parametrize(
        "statuses,expected",
        [
            ([], OrderStatus.PENDING),
            ([ItemStatus.PENDING], OrderStatus.PENDING),
            ([ItemStatus.SHIPPED, ItemStatus.SHIPPED], OrderStatus.SHIPPED),
            ([ItemStatus.DELIVERED, ItemStatus.DELIVERED], OrderStatus.DELIVERED),
            ([ItemStatus.RECEIVED], OrderStatus.RECEIVED),
            ([ItemStatus.REJECTED], OrderStatus.CANCELLED),
            ([ItemStatus.REJECTED, ItemStatus.CANCELLED], OrderStatus.CANCELLED),
            ([ItemStatus.CANCELLED, ItemStatus.DELIVERED], OrderStatus.PARTIALLY_CANCELLED),
            ([ItemStatus.REJECTED, ItemStatus.PROCESSING], OrderStatus.PARTIALLY_CANCELLED),
            ([ItemStatus.DELIVERED, ItemStatus.SHIPPED], OrderStatus.PARTIALLY_DELIVERED),
            ([ItemStatus.SHIPPED, ItemStatus.PROCESSING], OrderStatus.PARTIALLY_SHIPPED),
            ([ItemStatus.CONFIRMED, ItemStatus.PENDING], OrderStatus.PROCESSING),
            ([ItemStatus.CONFIRMED, ItemStatus.PROCESSING], OrderStatus.PROCESSING),
        ],
    )
    def test_derivation(self, statuses, expected):
        assert derive_order_status(statuses) == expected

    def test_cancelled_takes_precedence_over_delivered(self):
        statuses = [ItemStatus.CANCELLED, ItemStatus.DELIVERED, ItemStatus.SHIPPED]
        assert derive_order_status(statuses) == OrderStatus.PARTIALLY_CANCELLED


class TestAwaitingReceipt:
    def test_all_delivered(self):
        assert awaiting_receipt([ItemStatus.DELIVERED, ItemStatus.DELIVERED])

    def test_delivered_plus_cancelled(self):
        assert awaiting_receipt([ItemStatus.DELIVERED, ItemStatus.CANCELLED])

    def test_one_item_still_shipped(self):
        assert not awaiting_receipt([ItemStatus.DELIVERED, ItemStatus.SHIPPED])

    def test_everything_cancelled(self):
        assert not awaiting_receipt([ItemStatus.CANCELLED, ItemStatus.REJECTED])

    def test_already_received(self):
        assert not awaiting_receipt([ItemStatus.RECEIVED])


class TestLiveOrderStatus:
    @pytest.mark.parametrize(
        "statuses,expected",
        [
            ([ItemStatus.DELIVERED, ItemStatus.REJECTED], OrderStatus.DELIVERED),
            ([ItemStatus.RECEIVED, ItemStatus.CANCELLED], OrderStatus.RECEIVED),
            ([ItemStatus.SHIPPED, ItemStatus.REJECTED], OrderStatus.SHIPPED),
            ([ItemStatus.DELIVERED, ItemStatus.SHIPPED], OrderStatus.PARTIALLY_DELIVERED),
            ([ItemStatus.REJECTED, ItemStatus.CANCELLED], OrderStatus.CANCELLED),
            ([], OrderStatus.CANCELLED),
        ],
    )
    def test_ignores_closed_items(self, statuses, expected):
        assert live_order_status(statuses) == expected
