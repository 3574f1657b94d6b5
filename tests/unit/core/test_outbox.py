"""Unit tests for the transactional outbox."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.core.outbox import OutboxProcessor, record_domain_events
from modules.orders.events import OrderPlaced
from shared.domain.events import DomainEventMixin

pytestmark = pytest.mark.unit


class FakeBus:
    def __init__(self, fail_on=()) -> None:
        self.published = []
        self._fail_on = set(fail_on)

    def publish(self, event) -> None:
        if event.order_number in self._fail_on:
            raise ValueError(f"cannot deliver {event.order_number}")
        self.published.append(event)

    def subscribe(self, event_class, handler) -> None:
        pass

    def handlers_for(self, event_class):
        return []


def _record(order_number: str) -> OutboxEvent:
    aggregate = DomainEventMixin()
    aggregate.add_domain_event(
        OrderPlaced(
            aggregate_id=uuid4(),
            order_number=order_number,
            customer_id="7",
            customer_role="buyer",
            sellers=[{"id": "3", "role": "farmer"}],
            total_amount="320.00",
        )
    )
    record_domain_events(aggregate, topic="orders")
    return OutboxEvent.objects.get(payload__order_number=order_number)


class TestRecordDomainEvents:
    def test_writes_one_row_per_event_and_clears(self):
        aggregate = DomainEventMixin()
        for number in ("ORD-1", "ORD-2"):
            aggregate.add_domain_event(OrderPlaced(aggregate_id=uuid4(), order_number=number))

        assert record_domain_events(aggregate, topic="orders") == 2
        assert aggregate.domain_events == []
        assert OutboxEvent.objects.filter(topic="orders", event_type="OrderPlaced").count() == 2

    def test_payload_is_json_ready(self):
        row = _record("ORD-3")

        assert row.status == EventStatus.PENDING
        assert row.payload["aggregate_id"] == row.aggregate_id
        assert isinstance(row.payload["occurred_on"], str)
        assert row.payload["sellers"] == [{"id": "3", "role": "farmer"}]


class TestOutboxEventModel:
    def test_mark_as_failed_then_published(self):
        row = _record("ORD-4")

        row.mark_as_failed("boom")
        row.refresh_from_db()
        assert (row.status, row.retry_count, row.error_message) == (
            EventStatus.FAILED,
            1,
            "boom",
        )

        row.mark_as_published()
        row.refresh_from_db()
        assert row.status == EventStatus.PUBLISHED
        assert row.processed_at is not None
        assert row.error_message is None

    def test_deliverable_excludes_published_and_exhausted(self):
        pending = _record("ORD-5")
        retryable = _record("ORD-6")
        exhausted = _record("ORD-7")
        published = _record("ORD-8")
        retryable.mark_as_failed("x")
        for _ in range(3):
            exhausted.mark_as_failed("x")
        published.mark_as_published()

        ids = set(OutboxEvent.objects.deliverable(3).values_list("id", flat=True))
        assert ids == {pending.id, retryable.id}


class TestOutboxProcessor:
    def test_rebuilds_and_publishes(self):
        row = _record("ORD-9")
        bus = FakeBus()

        stats = OutboxProcessor(bus=bus, max_retries=3).process_batch()

        assert stats == {"checked": 1, "published": 1, "failed": 0}
        assert bus.published[0].order_number == "ORD-9"
        assert str(bus.published[0].aggregate_id) == row.aggregate_id

    def test_failure_is_isolated_per_event(self):
        _record("ORD-10")
        _record("ORD-11")
        bus = FakeBus(fail_on={"ORD-10"})

        stats = OutboxProcessor(bus=bus, max_retries=3).process_batch()

        assert stats == {"checked": 2, "published": 1, "failed": 1}
        failed = OutboxEvent.objects.get(payload__order_number="ORD-10")
        assert failed.status == EventStatus.FAILED
        assert failed.error_message == "ValueError: cannot deliver ORD-10"

    def test_batch_size(self):
        for number in ("ORD-12", "ORD-13", "ORD-14"):
            _record(number)

        stats = OutboxProcessor(bus=FakeBus(), max_retries=3).process_batch(batch_size=2)

        assert stats["checked"] == 2
        assert OutboxEvent.objects.filter(status=EventStatus.PENDING).count() == 1
