"""Dispute domain exceptions."""

from modules.core.exceptions import (
    AuthorizationError,
    DomainValidationError,
    NotFoundError,
    StateConflictError,
)


class DisputeNotFound(NotFoundError):
    """The requested dispute does not exist or is not visible to the actor."""


class InvalidDisputeInput(DomainValidationError):
    pass


class NotDisputeParty(AuthorizationError):
    """The actor is not the buyer, seller or admin the action requires."""


class DisputeAlreadyActive(StateConflictError):
    code = "dispute_active"
    default_detail = "A dispute is already active for this order."


class DisputeNotAllowed(StateConflictError):
    """The order is not in a state, or time window, that accepts a dispute."""

    code = "dispute_not_allowed"


class DisputeStateConflict(StateConflictError):
    """The dispute is not in the status the action requires."""
