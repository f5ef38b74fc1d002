"""Error taxonomy shared by the stores, the auth gate and the API layer.

Every error carries the HTTP status it maps to; the FastAPI exception
handlers in ``zeabur_monitor.api.server`` render them as
``{"success": false, "error": ...}``.
"""

from __future__ import annotations

from typing import Any


class MonitorError(Exception):
    """Base class for errors that translate into a JSON error response."""

    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class AuthRequired(MonitorError):
    """Raised when no credential channel authenticates the request."""

    status_code = 401


class ValidationError(MonitorError):
    """Raised for malformed or missing request fields."""

    status_code = 400


class NotFound(MonitorError):
    status_code = 404


class PersistenceError(MonitorError):
    """Raised when a durable document could not be written."""

    status_code = 500
