"""Typed snapshot of the marketplace timers.

``TimingConfig`` always carries a value for every threshold: defaults come
from ``settings.MARKETPLACE_TIMINGS`` and rows in ``SystemConfig`` override
them.  Request-time checks and the periodic sweeps both read through
``get_timings()``, so they agree on the same threshold.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Dict

from django.conf import settings
from pydantic import BaseModel, ConfigDict, Field

from modules.configuration.constants import ConfigKey
from modules.configuration.models import SystemConfig


class TimingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    shipped_to_delivered_minutes: int = Field(default=10, ge=0)
    delivered_to_received_minutes: int = Field(default=1440, ge=0)
    dispute_response_minutes: int = Field(default=10, ge=0)

    @property
    def shipped_to_delivered(self) -> timedelta:
        return timedelta(minutes=self.shipped_to_delivered_minutes)

    @property
    def delivered_to_received(self) -> timedelta:
        return timedelta(minutes=self.delivered_to_received_minutes)

    @property
    def dispute_response(self) -> timedelta:
        return timedelta(minutes=self.dispute_response_minutes)

    @classmethod
    def from_mapping(cls, values: Dict[str, int]) -> TimingConfig:
        return cls(
            **{
                _FIELD_BY_KEY[key]: value
                for key, value in values.items()
                if key in _FIELD_BY_KEY
            }
        )


_FIELD_BY_KEY: Dict[str, str] = {
    ConfigKey.SHIPPED_TO_DELIVERED_MINUTES: "shipped_to_delivered_minutes",
    ConfigKey.DELIVERED_TO_RECEIVED_MINUTES: "delivered_to_received_minutes",
    ConfigKey.DISPUTE_RESPONSE_MINUTES: "dispute_response_minutes",
}


def default_values() -> Dict[str, int]:
    """Defaults from settings, keyed by ``ConfigKey``."""
    configured = getattr(settings, "MARKETPLACE_TIMINGS", {})
    defaults = TimingConfig()
    return {
        key: int(configured.get(key, getattr(defaults, field)))
        for key, field in _FIELD_BY_KEY.items()
    }


def get_timings() -> TimingConfig:
    values = default_values()
    values.update(
        SystemConfig.objects.filter(config_key__in=list(_FIELD_BY_KEY)).values_list(
            "config_key", "config_value"
        )
    )
    return TimingConfig.from_mapping(values)
