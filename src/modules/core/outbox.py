"""Transactional outbox: writing collected domain events and publishing them.

``record_domain_events`` is called by repositories inside the business
transaction.  ``OutboxProcessor`` runs from the ``core.process_outbox``
Celery task and hands events to the in-process bus one row at a time, so a
failing handler only affects its own event.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.bus import IEventBus
from shared.domain.events import DomainEvent, DomainEventMixin, resolve_event_type
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


def record_domain_events(entity: DomainEventMixin, topic: str) -> int:
    """Persist the entity's pending domain events as outbox rows and clear them."""
    events = entity.domain_events
    for event in events:
        OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=_serialize_event_payload(event),
            topic=topic,
        )
    entity.clear_domain_events()
    return len(events)


class UnknownEventType(Exception):
    """An outbox row names an event class that is not registered."""


class OutboxProcessor:
    """Publishes deliverable outbox events on the event bus."""

    def __init__(
        self,
        bus: IEventBus = event_bus,
        max_retries: Optional[int] = None,
    ) -> None:
        self._bus = bus
        self._max_retries = (
            max_retries if max_retries is not None else settings.OUTBOX_MAX_RETRIES
        )

    def process_batch(self, batch_size: int = 100) -> Dict[str, int]:
        """Process up to *batch_size* events.

        Returns a stats dict with ``checked``, ``published`` and ``failed``.
        """
        event_ids = list(
            OutboxEvent.objects.deliverable(self._max_retries).values_list(
                "id", flat=True
            )[:batch_size]
        )
        stats = {"checked": len(event_ids), "published": 0, "failed": 0}

        for event_id in event_ids:
            outcome = self._process_one(event_id)
            if outcome is not None:
                stats[outcome] += 1

        if event_ids:
            logger.info("outbox.batch_processed", **stats)
        return stats

    def _process_one(self, event_id: UUID) -> Optional[str]:
        with transaction.atomic():
            row = (
                OutboxEvent.objects.select_for_update(skip_locked=True)
                .filter(id=event_id, status__in=[EventStatus.PENDING, EventStatus.FAILED])
                .first()
            )
            if row is None:
                return None

            log = logger.bind(
                outbox_id=str(row.id),
                event_type=row.event_type,
                aggregate_id=row.aggregate_id,
            )
            try:
                with transaction.atomic():
                    self._bus.publish(self._rebuild(row))
            except Exception as exc:
                log.exception("outbox.publish_failed", retry_count=row.retry_count + 1)
                row.mark_as_failed(f"{type(exc).__name__}: {exc}")
                return "failed"

            row.mark_as_published()
            log.info("outbox.published")
            return "published"

    @staticmethod
    def _rebuild(row: OutboxEvent) -> DomainEvent:
        event_class = resolve_event_type(row.event_type)
        if event_class is None:
            raise UnknownEventType(f"No event class registered for {row.event_type!r}.")
        return event_class.from_payload(row.payload)


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
