import django.utils.timezone
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Notification",
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
                ("user_id", models.CharField(max_length=64)),
                (
                    "user_role",
                    models.CharField(
                        choices=[
                            ("buyer", "Buyer"),
                            ("farmer", "Farmer"),
                            ("supplier", "Supplier"),
                            ("admin", "Admin"),
                            ("system", "System"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "notification_type",
                    models.CharField(
                        choices=[
                            ("order_placed", "Order placed"),
                            ("order_accepted", "Order accepted"),
                            ("order_rejected", "Order rejected"),
                            ("order_processing", "Order processing"),
                            ("order_shipped", "Order shipped"),
                            ("order_delivered", "Order delivered"),
                            ("order_received", "Order received"),
                            ("order_cancelled", "Order cancelled"),
                            ("dispute_opened", "Dispute opened"),
                            ("dispute_response", "Dispute response"),
                            ("dispute_resolved", "Dispute resolved"),
                            ("dispute_escalated", "Dispute escalated"),
                            ("dispute_admin_ruling", "Dispute admin ruling"),
                        ],
                        max_length=32,
                    ),
                ),
                ("title", models.CharField(max_length=200)),
                ("message", models.CharField(max_length=1000)),
                ("related_id", models.CharField(blank=True, default="", max_length=64)),
                (
                    "related_type",
                    models.CharField(
                        blank=True,
                        choices=[("order", "Order"), ("dispute", "Dispute")],
                        default="",
                        max_length=16,
                    ),
                ),
                ("action_url", models.CharField(blank=True, default="", max_length=500)),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                            ("urgent", "Urgent"),
                        ],
                        default="medium",
                        max_length=8,
                    ),
                ),
                ("is_read", models.BooleanField(default=False)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "notifications",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["user_role", "user_id", "is_read"],
                        name="notifications_user_read_idx",
                    ),
                    models.Index(fields=["related_id"], name="notifications_related_idx"),
                ],
            },
        ),
    ]
