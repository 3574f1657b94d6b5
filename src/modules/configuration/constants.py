"""Keys of the tunable marketplace timers (values are minutes)."""

from django.db import models


class ConfigKey(models.TextChoices):
    SHIPPED_TO_DELIVERED_MINUTES = (
        "SHIPPED_TO_DELIVERED_MINUTES",
        "Minimum minutes between shipping an item and marking it delivered",
    )
    DELIVERED_TO_RECEIVED_MINUTES = (
        "DELIVERED_TO_RECEIVED_MINUTES",
        "Minutes before a delivered order is confirmed automatically",
    )
    DISPUTE_RESPONSE_MINUTES = (
        "DISPUTE_RESPONSE_MINUTES",
        "Minutes a seller has to answer a dispute before it is escalated",
    )
