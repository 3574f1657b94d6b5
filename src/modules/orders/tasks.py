"""Order asynchronous tasks."""

import structlog
from celery import shared_task

from modules.orders.jobs import confirm_overdue_deliveries as run_confirmation_sweep

logger = structlog.get_logger(__name__)


@shared_task(name="orders.confirm_overdue_deliveries")
def confirm_overdue_deliveries():
    """Auto-confirm receipt of orders left unconfirmed past the window."""
    stats = run_confirmation_sweep()
    logger.debug("orders.confirm_overdue_deliveries.executed", **stats)
    return stats
