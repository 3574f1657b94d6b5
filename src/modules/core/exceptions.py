"""Base domain exception hierarchy.

Module-level exceptions (``orders.exceptions``, ``disputes.exceptions``...)
subclass one of these.  The API exception handler maps them to HTTP
responses through ``status_code`` and ``code``; services never deal with
HTTP directly.
"""

from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base class for every business-rule rejection."""

    status_code: int = 400
    code: str = "error"
    default_detail: str = "The request could not be processed."

    def __init__(self, detail: Optional[str] = None, *, code: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        if code is not None:
            self.code = code
        super().__init__(self.detail)


class DomainValidationError(DomainError):
    """Missing or malformed input (invalid enum value, blank reason...)."""

    status_code = 400
    code = "invalid"
    default_detail = "Invalid input."


class AuthorizationError(DomainError):
    """Wrong role, or the actor does not own the resource."""

    status_code = 403
    code = "permission_denied"
    default_detail = "You do not have permission to perform this action."


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found."


class StateConflictError(DomainError):
    """Illegal transition, blocking dispute or a timing gate not yet satisfied."""

    status_code = 409
    code = "conflict"
    default_detail = "The resource is not in a state that allows this action."
