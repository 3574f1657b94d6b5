"""Notification dispatcher: in-app record plus optional email.

The in-app notification is part of the outbox event's transaction; the
email is best effort, so an SMTP failure is logged and never causes the
event to be retried.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog
from django.conf import settings
from django.core.mail import send_mail

from modules.notifications import recipients
from modules.notifications.constants import (
    MESSAGE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Priority,
)
from modules.notifications.models import Notification

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        email_lookup: Callable[[str], Optional[str]] = recipients.email_for,
    ) -> None:
        self._email_lookup = email_lookup

    def notify(
        self,
        user_id: str,
        role: str,
        notification_type: str,
        title: str,
        message: str,
        related_id: str = "",
        related_type: str = "",
        action_url: str = "",
        priority: str = Priority.MEDIUM,
        send_email: bool = True,
    ) -> Notification:
        notification = Notification.objects.create(
            user_id=str(user_id),
            user_role=role,
            notification_type=notification_type,
            title=title[:TITLE_MAX_LENGTH],
            message=message[:MESSAGE_MAX_LENGTH],
            related_id=str(related_id or ""),
            related_type=related_type,
            action_url=action_url,
            priority=priority,
        )
        logger.info(
            "notification.created",
            notification_id=str(notification.id),
            user_id=str(user_id),
            user_role=role,
            notification_type=notification_type,
        )
        if send_email:
            self._send_email(notification)
        return notification

    def _send_email(self, notification: Notification) -> bool:
        address = self._email_lookup(notification.user_id)
        log = logger.bind(
            notification_id=str(notification.id),
            notification_type=notification.notification_type,
        )
        if not address:
            log.debug("notification.email_skipped", reason="no_address")
            return False

        body = notification.message
        if notification.action_url:
            body = f"{body}\n\n{settings.FRONTEND_URL}{notification.action_url}"
        try:
            send_mail(
                subject=notification.title,
                message=body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[address],
            )
        except Exception:
            log.exception("notification.email_failed")
            return False

        log.info("notification.email_sent")
        return True
