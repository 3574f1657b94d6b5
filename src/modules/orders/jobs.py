"""Scheduled order jobs.

Plain functions of ``now`` so they can be driven from Celery beat, a
management shell or a test with a frozen clock.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

import structlog
from django.utils import timezone

from modules.orders.services import OrderService, build_order_service

logger = structlog.get_logger(__name__)


def confirm_overdue_deliveries(
    now: Optional[datetime] = None,
    service: Optional[OrderService] = None,
) -> Dict[str, int]:
    """Confirm receipt of delivered orders whose confirmation window lapsed.

    Each order is handled in its own transaction; one failing order is
    logged and counted without stopping the sweep.
    """
    now = now or timezone.now()
    service = service or build_order_service()
    order_ids = service.auto_confirmation_candidates(now)
    stats = {"checked": len(order_ids), "confirmed": 0, "skipped": 0, "errors": 0}

    for order_id in order_ids:
        try:
            if service.auto_confirm_receipt(order_id, now=now):
                stats["confirmed"] += 1
            else:
                stats["skipped"] += 1
        except Exception:
            stats["errors"] += 1
            logger.exception("order.auto_confirm_failed", order_id=str(order_id))

    if order_ids:
        logger.info("order.auto_confirm_sweep_finished", **stats)
    return stats
