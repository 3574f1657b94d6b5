"""Outbox events delivered to in-app notifications and email."""

from __future__ import annotations

from datetime import timedelta
from smtplib import SMTPException
from unittest import mock

import pytest
from django.core import mail

from modules.core.models import EventStatus, OutboxEvent
from modules.core.outbox import OutboxProcessor
from modules.disputes.constants import DisputeType, Resolution, Ruling
from modules.disputes.dtos import (
    OpenDisputeDTO,
    ResolveDisputeDTO,
    RespondDisputeDTO,
    RuleDisputeDTO,
)
from modules.disputes.jobs import escalate_overdue_disputes
from modules.notifications.constants import NotificationType, Priority, RelatedType
from modules.notifications.handlers import OrderPlacedHandler, register_handlers
from modules.notifications.models import Notification
from modules.notifications.recipients import admin_user_ids
from modules.orders.events import OrderPlaced
from modules.orders.jobs import confirm_overdue_deliveries
from shared.infrastructure.bus import event_bus

pytestmark = pytest.mark.integration


def _deliver() -> dict:
    return OutboxProcessor().process_batch()


def _inbox(actor, notification_type=None):
    queryset = Notification.objects.filter(user_id=actor.user_id, user_role=actor.role)
    if notification_type:
        queryset = queryset.filter(notification_type=notification_type)
    return queryset


class TestOrderNotifications:
    def test_new_order_notifies_each_seller(
        self, settings, flow, buyer, farmer, supplier, rice, fertilizer
    ):
        settings.FRONTEND_URL = "https://market.example.com"
        order = flow.place(buyer, (rice, 1), (fertilizer, 1))

        stats = _deliver()
        assert stats == {"checked": 1, "published": 1, "failed": 0}

        for seller in (farmer, supplier):
            notification = _inbox(seller, NotificationType.ORDER_PLACED).get()
            assert notification.priority == Priority.HIGH
            assert notification.related_type == RelatedType.ORDER
            assert notification.related_id == str(order.id)
            assert notification.action_url == f"/orders/{order.id}"
            assert order.order_number in notification.message

        assert sorted(message.to[0] for message in mail.outbox) == [
            "farmer@example.com",
            "supplier@example.com",
        ]
        assert f"https://market.example.com/orders/{order.id}" in mail.outbox[0].body
        assert OutboxEvent.objects.get().status == EventStatus.PUBLISHED

    def test_delivery_mentions_confirmation_window(self, flow, buyer, farmer, rice):
        flow.delivered_order(buyer, farmer, rice)
        _deliver()

        notification = _inbox(buyer, NotificationType.ORDER_DELIVERED).get()
        assert "within 1440 minutes" in notification.message

    def test_rejection_reason_reaches_the_buyer(self, flow, buyer, farmer, rice):
        flow.reject(flow.place(buyer, (rice, 1)), farmer, reason="out of stock")
        _deliver()

        notification = _inbox(buyer, NotificationType.ORDER_REJECTED).get()
        assert "Reason: out of stock" in notification.message

    def test_auto_confirmation_notifies_buyer_and_seller(self, flow, buyer, farmer, rice):
        flow.delivered_order(buyer, farmer, rice)
        flow.frozen.tick(timedelta(minutes=1440))
        confirm_overdue_deliveries()
        _deliver()

        assert _inbox(buyer, NotificationType.ORDER_RECEIVED).get().title == (
            "Order Auto-Confirmed"
        )
        assert _inbox(farmer, NotificationType.ORDER_RECEIVED).count() == 1

    def test_manual_receipt_only_notifies_seller(self, flow, order_service, buyer, farmer, rice):
        order = flow.delivered_order(buyer, farmer, rice)
        order_service.confirm_receipt(order.id, buyer)
        _deliver()

        assert not _inbox(buyer, NotificationType.ORDER_RECEIVED).exists()
        assert _inbox(farmer, NotificationType.ORDER_RECEIVED).count() == 1

    def test_receipt_skips_sellers_who_rejected(
        self, flow, order_service, buyer, farmer, supplier, rice, fertilizer
    ):
        order = flow.place(buyer, (rice, 1), (fertilizer, 1))
        flow.reject(order, supplier)
        order = flow.deliver(flow.ship(flow.accept(order, farmer), farmer), farmer)
        order_service.confirm_receipt(order.id, buyer)
        _deliver()

        assert _inbox(farmer, NotificationType.ORDER_RECEIVED).count() == 1
        assert not _inbox(supplier, NotificationType.ORDER_RECEIVED).exists()


class TestDisputeNotifications:
    @pytest.fixture()
    def dispute(self, flow, dispute_service, buyer, farmer, rice):
        order = flow.delivered_order(buyer, farmer, rice)
        return dispute_service.open_dispute(
            order.id,
            OpenDisputeDTO(dispute_type=DisputeType.PRODUCT_FAULT, reason="Rice was damp"),
            buyer,
        )

    def test_opening_asks_seller_to_respond(self, dispute, farmer):
        _deliver()

        notification = _inbox(farmer, NotificationType.DISPUTE_OPENED).get()
        assert notification.related_type == RelatedType.DISPUTE
        assert notification.action_url == f"/disputes/{dispute.id}"
        assert "Please respond within 10 minutes" in notification.message

    def test_seller_timeout_alerts_admins_and_buyer(
        self, flow, dispute, buyer, farmer, admin
    ):
        flow.frozen.tick(timedelta(minutes=10))
        escalate_overdue_disputes()
        _deliver()

        admin_note = _inbox(admin, NotificationType.DISPUTE_ESCALATED).get()
        assert admin_note.action_url == f"/admin/disputes/{dispute.id}"
        assert "did not respond in time" in admin_note.message
        assert _inbox(buyer, NotificationType.DISPUTE_ESCALATED).count() == 1
        assert not _inbox(farmer, NotificationType.DISPUTE_ESCALATED).exists()

    def test_buyer_rejection_alerts_admins_and_seller(
        self, dispute_service, dispute, buyer, farmer, admin
    ):
        dispute_service.respond(
            dispute.id,
            RespondDisputeDTO(evidence=["https://cdn.example.com/a.jpg"], proposal="Half refund"),
            farmer,
        )
        dispute_service.resolve(dispute.id, ResolveDisputeDTO(action=Resolution.REJECT), buyer)
        _deliver()

        assert "Proposal: Half refund" in _inbox(buyer, NotificationType.DISPUTE_RESPONSE).get().message
        assert _inbox(admin, NotificationType.DISPUTE_ESCALATED).count() == 1
        assert _inbox(farmer, NotificationType.DISPUTE_ESCALATED).count() == 1
        assert not _inbox(buyer, NotificationType.DISPUTE_ESCALATED).exists()

    def test_ruling_notifies_both_parties(
        self, flow, dispute_service, dispute, buyer, farmer, admin
    ):
        flow.frozen.tick(timedelta(minutes=10))
        escalate_overdue_disputes()
        dispute_service.rule(
            dispute.id, RuleDisputeDTO(decision=Ruling.BUYER_WIN, notes="Damp bag"), admin
        )
        _deliver()

        for party in (buyer, farmer):
            message = _inbox(party, NotificationType.DISPUTE_ADMIN_RULING).get().message
            assert "Buyer Wins - Refund Approved" in message
            assert "Notes: Damp bag" in message


class TestDeliveryFailures:
    def test_email_failure_does_not_fail_the_event(self, flow, buyer, farmer, rice):
        flow.place(buyer, (rice, 1))

        with mock.patch(
            "modules.notifications.dispatcher.send_mail", side_effect=SMTPException("down")
        ):
            stats = _deliver()

        assert stats["published"] == 1
        assert _inbox(farmer, NotificationType.ORDER_PLACED).count() == 1
        assert mail.outbox == []

    def test_user_without_email_gets_in_app_only(self, flow, buyer, farmer, farmer_user, rice):
        farmer_user.email = ""
        farmer_user.save()
        flow.place(buyer, (rice, 1))
        _deliver()

        assert _inbox(farmer, NotificationType.ORDER_PLACED).count() == 1
        assert mail.outbox == []

    def test_handler_failure_is_retried(self, flow, buyer, farmer, rice):
        flow.place(buyer, (rice, 1))

        with mock.patch.object(OrderPlacedHandler, "handle", side_effect=RuntimeError("boom")):
            assert _deliver() == {"checked": 1, "published": 0, "failed": 1}

        event = OutboxEvent.objects.get()
        assert event.status == EventStatus.FAILED
        assert event.retry_count == 1
        assert "RuntimeError: boom" in event.error_message
        assert not Notification.objects.exists()

        assert _deliver()["published"] == 1
        assert _inbox(farmer, NotificationType.ORDER_PLACED).count() == 1

    def test_retries_stop_at_the_limit(self, flow, buyer, rice):
        flow.place(buyer, (rice, 1))
        processor = OutboxProcessor(max_retries=2)

        with mock.patch.object(OrderPlacedHandler, "handle", side_effect=RuntimeError("boom")):
            processor.process_batch()
            processor.process_batch()
            assert processor.process_batch()["checked"] == 0

        assert OutboxEvent.objects.get().retry_count == 2

    def test_unknown_event_type_is_marked_failed(self):
        OutboxEvent.objects.create(
            event_type="OrderTeleported", payload={}, aggregate_id="x", topic="orders"
        )
        assert _deliver()["failed"] == 1
        assert "No event class registered" in OutboxEvent.objects.get().error_message


class TestRegistration:
    def test_register_handlers_is_idempotent(self):
        register_handlers(event_bus)
        register_handlers(event_bus)
        assert len(event_bus.handlers_for(OrderPlaced)) == 1

    def test_admin_recipients_are_staff_users(self, admin, buyer):
        assert admin_user_ids() == [admin.user_id]
