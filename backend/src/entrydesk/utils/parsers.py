"""Shared parsing utilities for request handling."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any
from typing import Mapping
from typing import Optional

from entrydesk.exceptions import ValidationError


def get_header(event: Mapping[str, Any], name: str) -> Optional[str]:
    """Return a request header value, matching the name case-insensitively.

    Args:
        event: The API Gateway event dictionary.
        name: The header name to look up.

    Returns:
        The header value, or None if absent.
    """
    headers = event.get("headers") or {}
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return None if value is None else str(value)
    return None


def get_http_method(event: Mapping[str, Any]) -> str:
    """Return the upper-cased HTTP method of a gateway event.

    Handles REST API (and Netlify) events carrying ``httpMethod`` as
    well as HTTP API v2 events carrying ``requestContext.http.method``.
    """
    method = event.get("httpMethod")
    if not method:
        http = (event.get("requestContext") or {}).get("http") or {}
        method = http.get("method")
    return str(method or "").upper()


def parse_json_body(event: Mapping[str, Any]) -> dict[str, Any]:
    """Parse the request body as a JSON object.

    An absent or empty body parses as an empty object, so that field
    validation reports the missing field instead.

    Args:
        event: The API Gateway event dictionary.

    Returns:
        The decoded JSON object.

    Raises:
        ValidationError: ``Bad JSON`` if the body cannot be decoded or
            is not a JSON object.
    """
    raw = event.get("body")
    if raw is None or raw == "":
        return {}

    try:
        if event.get("isBase64Encoded"):
            raw = base64.b64decode(raw).decode("utf-8")
        elif isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        body = json.loads(raw)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise ValidationError("Bad JSON", field="body") from exc

    if not isinstance(body, dict):
        raise ValidationError("Bad JSON", field="body")
    return body
