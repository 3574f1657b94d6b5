"""Order domain exceptions.

Raised by the state machine and the service layer when a business rule
rejects an operation.  The API exception handler maps the base classes
to 400/403/404/409 responses.
"""

from __future__ import annotations

from typing import Iterable

from modules.core.exceptions import (
    AuthorizationError,
    DomainValidationError,
    NotFoundError,
    StateConflictError,
)


class OrderNotFound(NotFoundError):
    """The requested order does not exist."""


class LineItemNotFound(NotFoundError):
    """The order has no line item with the given id."""


class InvalidOrderInput(DomainValidationError):
    """Malformed order input (unknown status value, blank reason...)."""


class NotOrderCustomer(AuthorizationError):
    """The actor is not the customer who placed the order."""


class NotItemSeller(AuthorizationError):
    """The actor does not sell the line item(s) concerned."""


class InvalidTransition(StateConflictError):
    """The requested status is not reachable from the current one."""

    code = "invalid_transition"

    def __init__(self, current: str, requested: str, allowed: Iterable[str]) -> None:
        self.current = current
        self.requested = requested
        self.allowed = sorted(str(status) for status in allowed)
        allowed_text = ", ".join(self.allowed) if self.allowed else "none"
        super().__init__(
            f"Cannot change status from {current} to {requested}. "
            f"Allowed transitions: {allowed_text}"
        )


class TransitionTooEarly(StateConflictError):
    """A minimum dwell time has not elapsed yet."""

    code = "transition_too_early"

    def __init__(self, remaining_minutes: int, minimum_minutes: int) -> None:
        self.remaining_minutes = remaining_minutes
        self.minimum_minutes = minimum_minutes
        super().__init__(
            "Cannot mark as delivered yet. "
            f"Please wait {remaining_minutes} more minute(s). "
            f"Minimum {minimum_minutes} minutes required after shipping."
        )


class MissingShipmentTimestamp(StateConflictError):
    """A shipped item has no ``shipped_at`` to measure the delivery gate from."""


class DisputeBlocksTransition(StateConflictError):
    """The order has an open or escalated dispute."""

    code = "dispute_active"
    default_detail = (
        "Cannot update order status while dispute is open. "
        "Please resolve the dispute first."
    )


class NothingToUpdate(StateConflictError):
    """None of the actor's items are in a state the operation applies to."""


class OrderNotCancellable(StateConflictError):
    """Items have already shipped, or the order is already closed."""


class ReceiptNotAllowed(StateConflictError):
    """The order is not awaiting buyer confirmation."""
