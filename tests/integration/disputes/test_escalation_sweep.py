"""Integration tests for the unanswered-dispute escalation sweep."""

from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from modules.core.identity import Role
from modules.core.models import OutboxEvent
from modules.disputes.constants import DisputeState, DisputeType, EscalationReason
from modules.disputes.dtos import OpenDisputeDTO, RespondDisputeDTO
from modules.disputes.jobs import escalate_overdue_disputes
from modules.disputes.tasks import escalate_overdue_disputes as escalate_task
from modules.orders.constants import ChangeType, DisputeStatus
from modules.orders.models import OrderHistory

pytestmark = pytest.mark.integration


@pytest.fixture()
def open_dispute(flow, dispute_service):
    def build(buyer, seller, product):
        order = flow.delivered_order(buyer, seller, product)
        return dispute_service.open_dispute(
            order.id,
            OpenDisputeDTO(dispute_type=DisputeType.WRONG_ITEM, reason="Got wheat, not rice"),
            buyer,
        )

    return build


class TestEscalateOverdueDisputes:
    def test_not_before_the_response_window(self, flow, open_dispute, buyer, farmer, rice):
        dispute = open_dispute(buyer, farmer, rice)
        flow.frozen.tick(timedelta(minutes=9))

        assert escalate_overdue_disputes()["checked"] == 0
        dispute.refresh_from_db()
        assert dispute.status == DisputeState.OPEN

    def test_escalates_at_the_window(self, flow, open_dispute, buyer, farmer, rice):
        dispute = open_dispute(buyer, farmer, rice)
        flow.frozen.tick(timedelta(minutes=10))

        stats = escalate_overdue_disputes()
        assert stats == {"checked": 1, "escalated": 1, "skipped": 0, "errors": 0}

        dispute.refresh_from_db()
        assert dispute.status == DisputeState.PENDING_ADMIN_REVIEW
        assert dispute.escalation_reason == EscalationReason.SELLER_TIMEOUT
        assert dispute.order.dispute_status == DisputeStatus.PENDING_ADMIN_REVIEW
        entry = OrderHistory.objects.get(
            order=dispute.order,
            change_type=ChangeType.DISPUTE_STATUS,
            new_value=DisputeStatus.PENDING_ADMIN_REVIEW,
        )
        assert entry.changed_by_role == Role.SYSTEM
        assert OutboxEvent.objects.filter(event_type="DisputeEscalated").count() == 1

    def test_answered_dispute_is_never_escalated(
        self, flow, dispute_service, open_dispute, buyer, farmer, rice
    ):
        dispute = open_dispute(buyer, farmer, rice)
        dispute_service.respond(
            dispute.id,
            RespondDisputeDTO(evidence=["https://cdn.example.com/a.jpg"], proposal="Swap it"),
            farmer,
        )
        flow.frozen.tick(timedelta(days=30))

        assert escalate_overdue_disputes()["checked"] == 0
        dispute.refresh_from_db()
        assert dispute.status == DisputeState.OPEN

    def test_response_after_snapshot_wins(
        self, flow, dispute_service, open_dispute, buyer, farmer, rice
    ):
        dispute = open_dispute(buyer, farmer, rice)
        flow.frozen.tick(timedelta(minutes=15))
        candidates = dispute_service.escalation_candidates(timezone.now())
        assert candidates == [dispute.id]

        dispute_service.respond(
            dispute.id,
            RespondDisputeDTO(evidence=["https://cdn.example.com/a.jpg"], proposal="Swap it"),
            farmer,
        )
        assert dispute_service.escalate_if_overdue(dispute.id) is False

    def test_is_idempotent(self, flow, open_dispute, buyer, farmer, rice):
        open_dispute(buyer, farmer, rice)
        flow.frozen.tick(timedelta(minutes=10))

        assert escalate_overdue_disputes()["escalated"] == 1
        assert escalate_overdue_disputes()["checked"] == 0
        assert OutboxEvent.objects.filter(event_type="DisputeEscalated").count() == 1

    def test_one_failure_does_not_stop_the_sweep(
        self, flow, dispute_service, open_dispute, buyer, other_buyer, farmer, rice
    ):
        first = open_dispute(buyer, farmer, rice)
        second = open_dispute(other_buyer, farmer, rice)
        flow.frozen.tick(timedelta(minutes=10))

        real = dispute_service.escalate_if_overdue

        def flaky(dispute_id, now=None):
            if dispute_id == first.id:
                raise RuntimeError("lock timeout")
            return real(dispute_id, now=now)

        with mock.patch.object(dispute_service, "escalate_if_overdue", side_effect=flaky):
            stats = escalate_overdue_disputes(service=dispute_service)

        assert stats == {"checked": 2, "escalated": 1, "skipped": 0, "errors": 1}
        second.refresh_from_db()
        assert second.status == DisputeState.PENDING_ADMIN_REVIEW

    def test_celery_task_runs_the_sweep(self, flow, open_dispute, buyer, farmer, rice):
        open_dispute(buyer, farmer, rice)
        flow.frozen.tick(timedelta(minutes=10))

        assert escalate_task.delay().result["escalated"] == 1
