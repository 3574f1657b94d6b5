"""Scheduled dispute jobs."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

import structlog
from django.utils import timezone

from modules.disputes.services import DisputeService, build_dispute_service

logger = structlog.get_logger(__name__)


def escalate_overdue_disputes(
    now: Optional[datetime] = None,
    service: Optional[DisputeService] = None,
) -> Dict[str, int]:
    """Escalate open disputes the seller left unanswered past the response window.

    A dispute with a seller response is never escalated, however old.
    """
    now = now or timezone.now()
    service = service or build_dispute_service()
    dispute_ids = service.escalation_candidates(now)
    stats = {"checked": len(dispute_ids), "escalated": 0, "skipped": 0, "errors": 0}

    for dispute_id in dispute_ids:
        try:
            if service.escalate_if_overdue(dispute_id, now=now):
                stats["escalated"] += 1
            else:
                stats["skipped"] += 1
        except Exception:
            stats["errors"] += 1
            logger.exception("dispute.escalation_failed", dispute_id=str(dispute_id))

    if dispute_ids:
        logger.info("dispute.escalation_sweep_finished", **stats)
    return stats
