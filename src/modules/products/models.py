"""Product listing as seen by the order core.

Only the facts an order needs are modelled: price, available quantity and
the owning farmer or supplier.  Listing management lives elsewhere.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class SellerRole(models.TextChoices):
    FARMER = "farmer", "Farmer"
    SUPPLIER = "supplier", "Supplier"


class Product(BaseModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    owner_id = models.CharField(max_length=64, db_index=True)
    owner_role = models.CharField(max_length=16, choices=SellerRole.choices)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    quantity = models.PositiveIntegerField(default=0)
    unit = models.CharField(max_length=16, default="kg")
    is_available = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["owner_role", "owner_id"], name="products_owner_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.name} ({self.owner_role}:{self.owner_id})"
