import django.core.validators
import django.utils.timezone
import uuid6
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
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
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("owner_id", models.CharField(db_index=True, max_length=64)),
                (
                    "owner_role",
                    models.CharField(
                        choices=[("farmer", "Farmer"), ("supplier", "Supplier")],
                        max_length=16,
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("quantity", models.PositiveIntegerField(default=0)),
                ("unit", models.CharField(default="kg", max_length=16)),
                ("is_available", models.BooleanField(default=True)),
            ],
            options={
                "db_table": "products",
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["owner_role", "owner_id"], name="products_owner_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(price__gt=0), name="products_price_positive"
                    ),
                ],
            },
        ),
    ]
