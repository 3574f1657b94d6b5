from django.apps import AppConfig
from django.db.models.signals import post_migrate


class ConfigurationConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.configuration"
    label = "configuration"

    def ready(self) -> None:
        from modules.configuration.services import seed_defaults_after_migrate

        post_migrate.connect(
            seed_defaults_after_migrate,
            sender=self,
            dispatch_uid="configuration.seed_defaults",
        )
