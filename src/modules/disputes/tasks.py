"""Dispute asynchronous tasks."""

import structlog
from celery import shared_task

from modules.disputes.jobs import escalate_overdue_disputes as run_escalation_sweep

logger = structlog.get_logger(__name__)


@shared_task(name="disputes.escalate_overdue_disputes")
def escalate_overdue_disputes():
    """Move unanswered disputes to admin review."""
    stats = run_escalation_sweep()
    logger.debug("disputes.escalate_overdue_disputes.executed", **stats)
    return stats
