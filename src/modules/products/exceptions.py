"""Product catalog exceptions raised while placing or unwinding orders."""

from __future__ import annotations

from modules.core.exceptions import NotFoundError, StateConflictError


class ProductNotFound(NotFoundError):
    """The requested product does not exist."""


class ProductUnavailable(StateConflictError):
    """The product is not currently offered for sale."""


class InsufficientStock(StateConflictError):
    """Not enough quantity left to fulfil the order."""

    code = "insufficient_stock"
