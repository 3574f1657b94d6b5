"""HTTP tests for the dispute endpoints."""

from __future__ import annotations

from datetime import timedelta

import pytest

from modules.disputes.constants import DisputeState, DisputeType, EscalationReason, Ruling
from modules.disputes.jobs import escalate_overdue_disputes
from modules.orders.constants import DisputeStatus, ItemStatus, PaymentStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/disputes/"


def _open_payload(order, **extra):
    body = {
        "order_id": str(order.id),
        "dispute_type": DisputeType.PRODUCT_FAULT,
        "reason": "Half the bags were torn",
        "proof_images": ["https://cdn.example.com/torn.jpg"],
    }
    body.update(extra)
    return body


@pytest.fixture()
def delivered(flow, buyer, farmer, rice):
    return flow.delivered_order(buyer, farmer, rice)


@pytest.fixture()
def opened(client_for, buyer_user, delivered):
    response = client_for(buyer_user).post(URL, _open_payload(delivered), format="json")
    assert response.status_code == 201
    return response.data


class TestOpenDispute:
    def test_buyer_opens(self, opened, delivered, farmer):
        assert opened["status"] == DisputeState.OPEN
        assert str(opened["order_id"]) == str(delivered.id)
        assert opened["order_number"] == delivered.order_number
        assert opened["seller_id"] == farmer.user_id
        assert opened["buyer_proof_images"] == ["https://cdn.example.com/torn.jpg"]
        delivered.refresh_from_db()
        assert delivered.dispute_status == DisputeStatus.OPEN

    def test_second_dispute_is_a_conflict(self, client_for, buyer_user, delivered, opened):
        response = client_for(buyer_user).post(URL, _open_payload(delivered), format="json")

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "dispute_active"

    def test_pending_order_cannot_be_disputed(self, client_for, flow, buyer, buyer_user, rice):
        order = flow.place(buyer, (rice, 1))
        response = client_for(buyer_user).post(URL, _open_payload(order), format="json")

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "dispute_not_allowed"

    def test_unknown_type_is_a_validation_error(self, client_for, buyer_user, delivered):
        response = client_for(buyer_user).post(
            URL, _open_payload(delivered, dispute_type="changed_my_mind"), format="json"
        )

        assert response.status_code == 400
        assert response.data["errors"][0]["attr"] == "dispute_type"

    def test_blank_reason_is_a_validation_error(self, client_for, buyer_user, delivered):
        response = client_for(buyer_user).post(
            URL, _open_payload(delivered, reason="   "), format="json"
        )
        assert response.status_code == 400

    def test_seller_cannot_open(self, client_for, farmer_user, delivered):
        response = client_for(farmer_user).post(URL, _open_payload(delivered), format="json")
        assert response.status_code == 403

    def test_creation_is_throttled(
        self, client_for, flow, buyer, buyer_user, farmer, rice
    ):
        client = client_for(buyer_user)
        orders = [flow.delivered_order(buyer, farmer, rice) for _ in range(6)]
        for order in orders[:5]:
            assert client.post(URL, _open_payload(order), format="json").status_code == 201

        response = client.post(URL, _open_payload(orders[5]), format="json")
        assert response.status_code == 429


class TestDisputeProtocol:
    def test_respond_then_accept(self, client_for, buyer_user, farmer_user, opened, delivered):
        dispute_url = f"{URL}{opened['id']}/"
        responded = client_for(farmer_user).post(
            f"{dispute_url}respond/",
            {"evidence": ["https://cdn.example.com/packed.jpg"], "proposal": "Refund 2 bags"},
            format="json",
        )
        assert responded.status_code == 200
        assert responded.data["seller_proposal"] == "Refund 2 bags"
        assert responded.data["seller_responded_at"] is not None

        resolved = client_for(buyer_user).post(
            f"{dispute_url}resolve/", {"action": "accept"}, format="json"
        )
        assert resolved.status_code == 200
        assert resolved.data["status"] == DisputeState.CLOSED
        assert resolved.data["buyer_accepted"] is True
        order = Order.objects.get(id=delivered.id)
        assert order.dispute_status == DisputeStatus.CLOSED
        assert order.payment_status == PaymentStatus.COMPLETE

    def test_respond_requires_evidence(self, client_for, farmer_user, opened):
        response = client_for(farmer_user).post(
            f"{URL}{opened['id']}/respond/",
            {"evidence": [], "proposal": "Refund"},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["errors"][0]["attr"] == "evidence"

    def test_invalid_resolution_action(self, client_for, buyer_user, opened):
        response = client_for(buyer_user).post(
            f"{URL}{opened['id']}/resolve/", {"action": "maybe"}, format="json"
        )

        assert response.status_code == 400
        assert response.data["errors"][0]["detail"] == (
            "Invalid action. Use 'accept' or 'reject'."
        )

    def test_admin_rules_after_escalation(self, client_for, flow, admin_user, opened, delivered):
        flow.frozen.tick(timedelta(minutes=10))
        escalate_overdue_disputes()

        escalated = client_for(admin_user).get(f"{URL}{opened['id']}/")
        assert escalated.data["status"] == DisputeState.PENDING_ADMIN_REVIEW
        assert escalated.data["escalation_reason"] == EscalationReason.SELLER_TIMEOUT

        ruled = client_for(admin_user).post(
            f"{URL}{opened['id']}/rule/",
            {"decision": Ruling.BUYER_WIN, "notes": "No seller response"},
            format="json",
        )
        assert ruled.status_code == 200
        assert ruled.data["ruling_decision"] == Ruling.BUYER_WIN
        order = Order.objects.get(id=delivered.id)
        assert order.payment_status == PaymentStatus.REFUNDED

    def test_ruling_an_open_dispute_is_a_conflict(self, client_for, admin_user, opened):
        response = client_for(admin_user).post(
            f"{URL}{opened['id']}/rule/", {"decision": Ruling.SELLER_WIN}, format="json"
        )
        assert response.status_code == 409

    def test_buyer_cannot_rule(self, client_for, buyer_user, opened):
        response = client_for(buyer_user).post(
            f"{URL}{opened['id']}/rule/", {"decision": Ruling.BUYER_WIN}, format="json"
        )
        assert response.status_code == 403

    def test_order_is_frozen_while_disputed(self, client_for, farmer_user, opened, delivered):
        response = client_for(farmer_user).post(
            f"/api/v1/orders/{delivered.id}/items/{delivered.line_items()[0].id}/status/",
            {"status": ItemStatus.CANCELLED},
            format="json",
        )

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "dispute_active"


class TestListDisputes:
    def test_parties_and_admin_see_it(
        self, client_for, opened, buyer_user, farmer_user, supplier_user, admin_user
    ):
        for user, expected in (
            (buyer_user, 1),
            (farmer_user, 1),
            (supplier_user, 0),
            (admin_user, 1),
        ):
            assert client_for(user).get(URL).data["count"] == expected

    def test_stranger_cannot_retrieve(self, client_for, other_buyer_user, opened):
        response = client_for(other_buyer_user).get(f"{URL}{opened['id']}/")
        assert response.status_code == 404
