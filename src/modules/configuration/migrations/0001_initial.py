import django.utils.timezone
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SystemConfig",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7, editable=False, primary_key=True, serialize=False
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, editable=False),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "config_key",
                    models.CharField(
                        choices=[
                            (
                                "SHIPPED_TO_DELIVERED_MINUTES",
                                "Minimum minutes between shipping an item and marking it delivered",
                            ),
                            (
                                "DELIVERED_TO_RECEIVED_MINUTES",
                                "Minutes before a delivered order is confirmed automatically",
                            ),
                            (
                                "DISPUTE_RESPONSE_MINUTES",
                                "Minutes a seller has to answer a dispute before it is escalated",
                            ),
                        ],
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("config_value", models.PositiveIntegerField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("updated_by", models.CharField(blank=True, default="", max_length=64)),
            ],
            options={
                "db_table": "system_config",
                "ordering": ["config_key"],
            },
        ),
    ]
