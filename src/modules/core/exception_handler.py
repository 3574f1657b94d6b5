"""DRF exception handler producing a single error envelope.

Every error response has the shape::

    {"type": "validation_error" | "client_error" | "server_error",
     "errors": [{"code": "...", "detail": "...", "attr": "field" | null}]}

Domain exceptions are translated here, so views do not need to catch them.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

import structlog
from django.core.exceptions import PermissionDenied
from django.http import Http404
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from modules.core.exceptions import DomainError

logger = structlog.get_logger(__name__)


class DomainAPIException(exceptions.APIException):
    """Carries a ``DomainError`` through DRF's exception machinery."""

    def __init__(self, error: DomainError) -> None:
        self.status_code = error.status_code
        super().__init__(detail=error.detail, code=error.code)


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    if isinstance(exc, DomainError):
        logger.info(
            "api.domain_error",
            error=type(exc).__name__,
            code=exc.code,
            status_code=exc.status_code,
        )
        exc = DomainAPIException(exc)
    elif isinstance(exc, PydanticValidationError):
        exc = exceptions.ValidationError(_pydantic_details(exc))
    elif isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    response.data = {
        "type": _error_type(exc, response.status_code),
        "errors": list(_flatten(exc.get_full_details())),
    }
    return response


def _error_type(exc: Exception, status_code: int) -> str:
    if isinstance(exc, exceptions.ValidationError):
        return "validation_error"
    if status_code >= 500:
        return "server_error"
    return "client_error"


def _pydantic_details(exc: PydanticValidationError) -> Dict[str, list]:
    details: Dict[str, list] = {}
    for error in exc.errors():
        attr = ".".join(str(part) for part in error.get("loc", ())) or "non_field_errors"
        message = error.get("msg", "Invalid value.")
        details.setdefault(attr, []).append(message.removeprefix("Value error, "))
    return details


def _flatten(details: Any, attr: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    if isinstance(details, list):
        for item in details:
            yield from _flatten(item, attr)
    elif isinstance(details, dict):
        if set(details) == {"message", "code"}:
            yield {"code": details["code"], "detail": str(details["message"]), "attr": attr}
            return
        for key, value in details.items():
            name = key if attr is None else f"{attr}.{key}"
            yield from _flatten(value, name)
