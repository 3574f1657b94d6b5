from __future__ import annotations

from django.db import models

from modules.configuration.constants import ConfigKey
from modules.core.models import BaseModel


class SystemConfig(BaseModel):
    """One tunable integer threshold, in minutes."""

    config_key = models.CharField(max_length=64, unique=True, choices=ConfigKey.choices)
    config_value = models.PositiveIntegerField()
    description = models.CharField(max_length=255, blank=True, default="")
    updated_by = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        db_table = "system_config"
        ordering = ["config_key"]

    def __str__(self) -> str:
        return f"{self.config_key}={self.config_value}"
