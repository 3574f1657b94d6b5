"""Configuration store use cases: seeding, listing and updating timers."""

from __future__ import annotations

from typing import Any, List

import structlog
from django.db import transaction

from modules.configuration.constants import ConfigKey
from modules.configuration.exceptions import ConfigChangeNotAllowed, UnknownConfigKey
from modules.configuration.models import SystemConfig
from modules.configuration.timing import default_values
from modules.core.identity import Actor

logger = structlog.get_logger(__name__)


class ConfigurationService:
    def seed_defaults(self) -> int:
        """Create a row for every missing key; existing values are left alone."""
        created = 0
        for key, value in default_values().items():
            _, was_created = SystemConfig.objects.get_or_create(
                config_key=key,
                defaults={
                    "config_value": value,
                    "description": ConfigKey(key).label,
                    "updated_by": "system",
                },
            )
            created += int(was_created)
        if created:
            logger.info("configuration.defaults_seeded", created=created)
        return created

    def list_entries(self) -> List[SystemConfig]:
        self.seed_defaults()
        return list(SystemConfig.objects.all())

    @transaction.atomic
    def update_value(self, key: str, value: int, actor: Actor) -> SystemConfig:
        if not actor.is_admin:
            raise ConfigChangeNotAllowed("Only admins can change marketplace timers.")
        if key not in ConfigKey.values:
            raise UnknownConfigKey(f"Unknown configuration key {key}.")

        entry, _ = SystemConfig.objects.select_for_update().get_or_create(
            config_key=key,
            defaults={"config_value": value, "description": ConfigKey(key).label},
        )
        old_value = entry.config_value
        entry.config_value = value
        entry.updated_by = actor.user_id
        entry.save(update_fields=["config_value", "updated_by"])

        logger.info(
            "configuration.value_updated",
            key=key,
            old_value=old_value,
            new_value=value,
            updated_by=actor.user_id,
        )
        return entry


def seed_defaults_after_migrate(sender: Any, **kwargs: Any) -> None:
    ConfigurationService().seed_defaults()
