"""Configuration store exceptions."""

from __future__ import annotations

from modules.core.exceptions import AuthorizationError, NotFoundError


class UnknownConfigKey(NotFoundError):
    """The key is not one of the tunable timers."""


class ConfigChangeNotAllowed(AuthorizationError):
    """Only admins may change timer thresholds."""
