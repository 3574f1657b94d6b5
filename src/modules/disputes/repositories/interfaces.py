"""Dispute repository interface."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db import models

    from modules.core.identity import Actor
    from modules.disputes.models import Dispute


class IDisputeRepository(IRepository["Dispute"]):
    """Repository contract for the Dispute aggregate."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Dispute:
        """Create an open dispute."""

    @abstractmethod
    def list_for_actor(self, actor: Actor) -> "models.QuerySet[Dispute]":
        """Disputes the actor raised or received; all of them for admins."""

    @abstractmethod
    def unanswered_ids(self, created_before: datetime) -> List[UUID]:
        """Ids of open disputes without a seller response created at or before the cutoff."""
