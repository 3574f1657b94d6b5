"""Core asynchronous tasks."""

import structlog
from celery import shared_task
from django.conf import settings

from modules.core.outbox import OutboxProcessor

logger = structlog.get_logger(__name__)


@shared_task(name="core.process_outbox")
def process_outbox(batch_size: int | None = None):
    """Publish pending outbox events to the notification handlers."""
    stats = OutboxProcessor().process_batch(batch_size or settings.OUTBOX_BATCH_SIZE)
    logger.debug("core.process_outbox.executed", **stats)
    return stats
