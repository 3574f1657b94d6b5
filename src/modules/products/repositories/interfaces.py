"""Product repository interface.

The order core reads price, quantity and owner when an order is placed,
and gives quantity back when items are rejected or cancelled.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product collaborator."""

    @abstractmethod
    def reserve(self, product: Product, quantity: int) -> Product:
        """Deduct *quantity* from a product locked with ``get_for_update``."""

    @abstractmethod
    def release(self, id: str, quantity: int) -> Optional[Product]:
        """Return *quantity* to the product's stock (locks the row).

        Returns ``None`` if the product no longer exists.
        """
