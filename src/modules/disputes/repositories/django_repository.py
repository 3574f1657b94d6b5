"""Django ORM implementation of the Dispute repository."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.core.identity import Actor
from modules.core.outbox import record_domain_events
from modules.disputes.constants import DisputeState
from modules.disputes.models import Dispute
from modules.disputes.repositories.interfaces import IDisputeRepository

logger = structlog.get_logger(__name__)


class DisputeDjangoRepository(IDisputeRepository):
    """Concrete Dispute repository backed by Django ORM."""

    def create(self, data: Dict[str, Any]) -> Dispute:
        dispute = Dispute.objects.create(**data)
        logger.info(
            "dispute.persisted",
            dispute_id=str(dispute.id),
            order_id=str(dispute.order_id),
        )
        return dispute

    def get_by_id(self, id: str) -> Optional[Dispute]:
        try:
            return Dispute.objects.select_related("order").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Dispute]:
        """Lock the dispute row; callers lock the owning order first."""
        try:
            return Dispute.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> "models.QuerySet[Dispute]":
        queryset = Dispute.objects.select_related("order")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_for_actor(self, actor: Actor) -> "models.QuerySet[Dispute]":
        queryset = self.list()
        if actor.is_admin:
            return queryset
        if actor.can_sell:
            as_seller = models.Q(seller_id=actor.user_id, seller_role=actor.role)
            if actor.can_buy:
                return queryset.filter(as_seller | models.Q(buyer_id=actor.user_id))
            return queryset.filter(as_seller)
        return queryset.filter(buyer_id=actor.user_id)

    def unanswered_ids(self, created_before: datetime) -> List[UUID]:
        return list(
            Dispute.objects.filter(
                status=DisputeState.OPEN,
                seller_responded_at__isnull=True,
                created_at__lte=created_before,
            )
            .order_by("created_at")
            .values_list("id", flat=True)
        )

    @transaction.atomic
    def save(self, entity: Dispute) -> Dispute:
        """Persist a dispute and move its collected domain events to the outbox."""
        entity.save()
        event_count = record_domain_events(entity, topic="disputes")
        logger.info("dispute.saved", dispute_id=str(entity.id), event_count=event_count)
        return entity
