"""Custom exception classes for the application.

This module provides domain-specific exception classes that carry
appropriate HTTP status codes and structured error information.
Every error renders to the same envelope the web client expects:
``{"ok": false, "message": ...}`` plus optional diagnostic fields.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class AppError(Exception):
    """Base exception for application errors.

    All application-specific exceptions should inherit from this class.
    Each exception carries an HTTP status code and optional details.

    Attributes:
        message: Machine-readable error message.
        status_code: HTTP status code (default 500).
        detail: Optional additional context.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response body."""
        result: dict[str, Any] = {"ok": False, "message": self.message}
        if self.detail:
            result["detail"] = self.detail
        return result


class ValidationError(AppError):
    """Raised when input validation fails.

    Use for malformed request bodies or invalid field values. These are
    detected locally and never forwarded upstream.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, status_code=400)
        self.field = field


class EmptyPhoneNotice(AppError):
    """Raised by lookup when the phone has no digits yet.

    Lookup can be called from a live input field before submission, so
    this is answered with a 200 and ``ok: false`` rather than a 400.
    """

    def __init__(self) -> None:
        super().__init__("empty_phone", status_code=200)


class MethodNotAllowedError(AppError):
    """Raised when the request uses an unsupported HTTP method."""

    def __init__(self, method: str, allowed: tuple[str, ...] = ("POST",)):
        super().__init__("Method not allowed", status_code=405)
        self.method = method
        self.allowed = allowed


class ConfigurationError(AppError):
    """Raised when required configuration is missing.

    Use when environment variables or settings are not properly configured.
    """

    def __init__(self, config_name: str, reason: Optional[str] = None):
        message = (
            f"Server config invalid: {config_name}"
            if reason
            else f"Server config missing: {config_name}"
        )
        super().__init__(message, status_code=500)
        self.config_name = config_name
        self.reason = reason


class UpstreamProtocolError(AppError):
    """Raised when the backend answers with a body that is not JSON.

    Carries a truncated snippet of the raw body for diagnosis.
    """

    def __init__(self, raw: str):
        super().__init__("GAS_non_json", status_code=502)
        self.raw = raw

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["raw"] = self.raw
        return result


class UpstreamUnavailableError(AppError):
    """Raised when the backend cannot be reached.

    The message is operation specific (``lookup_failed``,
    ``checkin_failed``); the detail describes the underlying failure.
    """

    def __init__(self, operation: str, detail: str):
        super().__init__(f"{operation}_failed", status_code=504, detail=detail)
        self.operation = operation


class UpstreamTimeoutError(UpstreamUnavailableError):
    """Raised when the backend did not answer before the deadline."""
