"""Shared response utilities for Lambda handlers."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any
from typing import Optional

from pydantic import BaseModel

from entrydesk.exceptions import AppError
from entrydesk.exceptions import MethodNotAllowedError


def get_security_headers() -> dict[str, str]:
    """Get security headers for all responses.

    SECURITY: These headers protect against common web vulnerabilities:
    - X-Content-Type-Options: Prevents MIME type sniffing
    - X-Frame-Options: Prevents clickjacking
    - Cache-Control: Prevents caching of attendee data

    Returns:
        Dictionary of security headers.
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Cache-Control": "no-store, no-cache, must-revalidate",
        "Pragma": "no-cache",
    }


def get_cors_headers() -> dict[str, str]:
    """Get the permissive CORS headers attached to every response.

    The endpoints are called from a public static page, so any origin
    is allowed. Only POST and the preflight are advertised.
    """
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }


def json_response(
    status_code: int,
    body: Any,
    headers: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    """Create a JSON API Gateway response.

    Args:
        status_code: HTTP status code.
        body: Response body (dict, Pydantic model, or dataclass).
        headers: Optional additional headers to include.

    Returns:
        API Gateway response dictionary.
    """
    response_headers = {
        "Content-Type": "application/json; charset=utf-8",
    }
    response_headers.update(get_security_headers())
    response_headers.update(get_cors_headers())

    if headers:
        response_headers.update(headers)

    payload = _serialize_body(body)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(payload, default=str, ensure_ascii=False),
    }


def _serialize_body(body: Any) -> Any:
    """Serialize response body to JSON-compatible format.

    Args:
        body: The body to serialize.

    Returns:
        JSON-serializable representation of the body.
    """
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json")

    if hasattr(body, "__dataclass_fields__"):
        return asdict(body)

    return body


def preflight_response() -> dict[str, Any]:
    """Answer a CORS preflight: no body, CORS headers only."""
    return {
        "statusCode": 204,
        "headers": get_cors_headers(),
        "body": "",
    }


def error_response(error: AppError) -> dict[str, Any]:
    """Create an error response from an application error.

    Args:
        error: The application error to render.

    Returns:
        API Gateway response dictionary.
    """
    headers: Optional[dict[str, str]] = None
    if isinstance(error, MethodNotAllowedError):
        headers = {"Allow": ", ".join((*error.allowed, "OPTIONS"))}
    return json_response(error.status_code, error.to_dict(), headers=headers)
