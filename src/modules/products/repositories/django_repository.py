"""Django ORM implementation of the Product repository.

Methods return ``None`` for missing products; the order service decides
how to translate that into a domain error.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE)."""
        try:
            return Product.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> "models.QuerySet[Product]":
        queryset = Product.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    def reserve(self, product: Product, quantity: int) -> Product:
        product.quantity -= quantity
        product.save(update_fields=["quantity", "updated_at"])
        logger.info(
            "product.stock_reserved",
            product_id=str(product.id),
            quantity=quantity,
            remaining=product.quantity,
        )
        return product

    @transaction.atomic
    def release(self, id: str, quantity: int) -> Optional[Product]:
        product = self.get_for_update(id)
        if product is None:
            logger.warning("product.release_missing", product_id=str(id), quantity=quantity)
            return None
        product.quantity += quantity
        product.save(update_fields=["quantity", "updated_at"])
        logger.info(
            "product.stock_released",
            product_id=str(product.id),
            quantity=quantity,
            restored_stock=product.quantity,
        )
        return product
