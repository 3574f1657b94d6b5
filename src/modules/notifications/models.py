"""In-app notifications addressed to one marketplace user."""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from modules.core.identity import Role
from modules.core.models import BaseModel
from modules.notifications.constants import (
    MESSAGE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    NotificationType,
    Priority,
    RelatedType,
)


class Notification(BaseModel):
    user_id = models.CharField(max_length=64)
    user_role = models.CharField(max_length=16, choices=Role.choices)
    notification_type = models.CharField(max_length=32, choices=NotificationType.choices)
    title = models.CharField(max_length=TITLE_MAX_LENGTH)
    message = models.CharField(max_length=MESSAGE_MAX_LENGTH)
    related_id = models.CharField(max_length=64, blank=True, default="")
    related_type = models.CharField(
        max_length=16,
        choices=RelatedType.choices,
        blank=True,
        default="",
    )
    action_url = models.CharField(max_length=500, blank=True, default="")
    priority = models.CharField(
        max_length=8,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["user_role", "user_id", "is_read"],
                name="notifications_user_read_idx",
            ),
            models.Index(fields=["related_id"], name="notifications_related_idx"),
        ]

    def mark_as_read(self) -> None:
        if self.is_read:
            return
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=["is_read", "read_at", "updated_at"])

    def __str__(self) -> str:
        return f"{self.notification_type} -> {self.user_role}:{self.user_id}"
