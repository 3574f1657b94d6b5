import django.db.models.deletion
import django.utils.timezone
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Dispute",
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
                ("buyer_id", models.CharField(max_length=64)),
                (
                    "buyer_role",
                    models.CharField(
                        choices=[("buyer", "Buyer"), ("farmer", "Farmer")], max_length=16
                    ),
                ),
                ("seller_id", models.CharField(max_length=64)),
                (
                    "seller_role",
                    models.CharField(
                        choices=[("farmer", "Farmer"), ("supplier", "Supplier")], max_length=16
                    ),
                ),
                (
                    "dispute_type",
                    models.CharField(
                        choices=[
                            ("non_delivery", "Non-delivery"),
                            ("product_fault", "Product fault"),
                            ("wrong_item", "Wrong item"),
                            ("other", "Other"),
                        ],
                        max_length=32,
                    ),
                ),
                ("reason", models.CharField(max_length=1000)),
                ("buyer_proof_images", models.JSONField(blank=True, default=list)),
                (
                    "buyer_proof_description",
                    models.CharField(blank=True, default="", max_length=2000),
                ),
                ("seller_evidence", models.JSONField(blank=True, default=list)),
                ("seller_proposal", models.CharField(blank=True, default="", max_length=2000)),
                ("seller_responded_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("open", "Open"),
                            ("pending_admin_review", "Pending admin review"),
                            ("closed", "Closed"),
                        ],
                        default="open",
                        max_length=32,
                    ),
                ),
                ("buyer_accepted", models.BooleanField(default=False)),
                (
                    "escalation_reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("buyer_rejected", "Buyer rejected the proposal"),
                            ("seller_timeout", "Seller did not respond in time"),
                        ],
                        default="",
                        max_length=32,
                    ),
                ),
                ("escalated_at", models.DateTimeField(blank=True, null=True)),
                (
                    "ruling_decision",
                    models.CharField(
                        blank=True,
                        choices=[("buyer_win", "Buyer wins"), ("seller_win", "Seller wins")],
                        default="",
                        max_length=16,
                    ),
                ),
                ("ruling_notes", models.CharField(blank=True, default="", max_length=2000)),
                ("ruled_at", models.DateTimeField(blank=True, null=True)),
                ("ruling_admin_id", models.CharField(blank=True, default="", max_length=64)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="disputes",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "disputes",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["order", "status"], name="disputes_order_status_idx"),
                    models.Index(fields=["buyer_id"], name="disputes_buyer_idx"),
                    models.Index(
                        fields=["seller_role", "seller_id"], name="disputes_seller_idx"
                    ),
                    models.Index(
                        fields=["status", "created_at"], name="disputes_status_created_idx"
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(status__in=("open", "pending_admin_review")),
                        fields=("order",),
                        name="disputes_one_active_per_order",
                    ),
                ],
            },
        ),
    ]
