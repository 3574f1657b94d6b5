import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid6
from decimal import Decimal
from django.db import migrations, models

ROLE_CHOICES = [
    ("buyer", "Buyer"),
    ("farmer", "Farmer"),
    ("supplier", "Supplier"),
    ("admin", "Admin"),
    ("system", "System"),
]

ITEM_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("confirmed", "Confirmed"),
    ("processing", "Processing"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
    ("received", "Received"),
    ("rejected", "Rejected"),
    ("cancelled", "Cancelled"),
]


def base_fields():
    return [
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
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=base_fields()
            + [
                ("order_number", models.CharField(editable=False, max_length=20, unique=True)),
                ("customer_id", models.CharField(db_index=True, max_length=64)),
                (
                    "customer_role",
                    models.CharField(
                        choices=[("buyer", "Buyer"), ("farmer", "Farmer")], max_length=16
                    ),
                ),
                (
                    "order_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("processing", "Processing"),
                            ("shipped", "Shipped"),
                            ("delivered", "Delivered"),
                            ("received", "Received"),
                            ("cancelled", "Cancelled"),
                            ("partially_shipped", "Partially shipped"),
                            ("partially_delivered", "Partially delivered"),
                            ("partially_cancelled", "Partially cancelled"),
                        ],
                        default="pending",
                        max_length=32,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("complete", "Complete"),
                            ("refunded", "Refunded"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("cash_on_delivery", "Cash on delivery"),
                            ("easypaisa", "Easypaisa"),
                            ("jazzcash", "JazzCash"),
                        ],
                        default="cash_on_delivery",
                        max_length=32,
                    ),
                ),
                (
                    "payment_record_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("transaction_id", models.CharField(blank=True, default="", max_length=128)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "dispute_status",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("open", "Open"),
                            ("pending_admin_review", "Pending admin review"),
                            ("closed", "Closed"),
                        ],
                        default="none",
                        max_length=32,
                    ),
                ),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("received_at", models.DateTimeField(blank=True, null=True)),
                ("expected_delivery_date", models.DateTimeField(blank=True, null=True)),
                (
                    "total_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                ("shipping_address", models.JSONField(blank=True, default=dict)),
                ("notes", models.TextField(blank=True, default="")),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["order_status"], name="orders_status_idx"),
                    models.Index(fields=["dispute_status"], name="orders_dispute_idx"),
                    models.Index(
                        fields=["order_status", "delivered_at"],
                        name="orders_status_delivered_idx",
                    ),
                    models.Index(fields=["-created_at"], name="orders_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LineItem",
            fields=base_fields()
            + [
                ("position", models.PositiveSmallIntegerField(default=0)),
                ("product_name", models.CharField(blank=True, default="", max_length=255)),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        default=1, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("farmer_id", models.CharField(blank=True, max_length=64, null=True)),
                ("supplier_id", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=ITEM_STATUS_CHOICES, default="pending", max_length=16
                    ),
                ),
                ("seller_accepted", models.BooleanField(blank=True, default=None, null=True)),
                ("estimated_delivery_date", models.DateTimeField(blank=True, null=True)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("received_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.CharField(blank=True, default="", max_length=500)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="line_items",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "db_table": "order_line_items",
                "ordering": ["position", "created_at"],
                "indexes": [
                    models.Index(fields=["farmer_id"], name="line_items_farmer_idx"),
                    models.Index(fields=["supplier_id"], name="line_items_supplier_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=1), name="line_items_quantity_positive"
                    ),
                    models.CheckConstraint(
                        condition=(
                            models.Q(farmer_id__isnull=False, supplier_id__isnull=True)
                            | models.Q(farmer_id__isnull=True, supplier_id__isnull=False)
                        ),
                        name="line_items_single_seller",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderHistory",
            fields=base_fields()
            + [
                ("changed_by_id", models.CharField(max_length=64)),
                ("changed_by_role", models.CharField(choices=ROLE_CHOICES, max_length=16)),
                (
                    "change_type",
                    models.CharField(
                        choices=[
                            ("status", "Status"),
                            ("payment_status", "Payment status"),
                            ("dispute_status", "Dispute status"),
                            ("accepted", "Accepted"),
                            ("rejected", "Rejected"),
                            ("shipped", "Shipped"),
                            ("delivered", "Delivered"),
                            ("received", "Received"),
                            ("cancelled", "Cancelled"),
                        ],
                        max_length=32,
                    ),
                ),
                ("old_value", models.CharField(blank=True, default="", max_length=64)),
                ("new_value", models.CharField(blank=True, default="", max_length=64)),
                ("reason", models.CharField(blank=True, default="", max_length=500)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="orders.order",
                    ),
                ),
                (
                    "line_item",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="history",
                        to="orders.lineitem",
                    ),
                ),
            ],
            options={
                "db_table": "order_history",
                "ordering": ["created_at"],
                "verbose_name_plural": "order history",
                "indexes": [
                    models.Index(fields=["order", "created_at"], name="order_history_order_idx"),
                ],
            },
        ),
    ]
