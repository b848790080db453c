"""Error taxonomy shared by import plugins and the import service.

Adapters and the external client translate every transport, HTTP and parsing
failure into one of these classes at their boundary; callers never see raw
``httpx`` or XML/JSON decoding errors.
"""

from typing import Any


class ImportPluginError(Exception):
    """Base exception for import plugin errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(ImportPluginError):
    """Raised for invalid caller input (unknown search field, empty query)."""


class NotFoundError(ImportPluginError):
    """Raised when a plugin is not registered or an external id does not exist."""


class DisabledPluginError(ImportPluginError):
    """Raised when a disabled plugin is asked to search or import."""


class ConflictError(ImportPluginError):
    """Raised when provisioning would silently change existing schema."""


class UnauthorizedError(ImportPluginError):
    """Raised when the upstream credential is missing or rejected."""


class UnavailableError(ImportPluginError):
    """Raised on upstream timeouts, 5xx, 429 or network failures."""


class CoercionError(ValueError):
    """Raised when an external value cannot be coerced to an attribute data type."""


#: Errors caused by the upstream source; reported as a generic outage.
UPSTREAM_ERRORS = (UnauthorizedError, UnavailableError)
