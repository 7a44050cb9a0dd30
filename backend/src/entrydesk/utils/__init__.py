"""Utility modules for the backend application."""

from entrydesk.utils.parsers import (
    get_header,
    get_http_method,
    parse_json_body,
)
from entrydesk.utils.responses import (
    error_response,
    json_response,
    preflight_response,
)
from entrydesk.utils.validators import (
    normalize_phone,
    parse_quantity,
    truncate_snippet,
)
from entrydesk.utils.logging import (
    configure_logging,
    get_logger,
    mask_phone,
    set_request_context,
    clear_request_context,
)

__all__ = [
    "clear_request_context",
    "configure_logging",
    "error_response",
    "get_header",
    "get_http_method",
    "get_logger",
    "json_response",
    "mask_phone",
    "normalize_phone",
    "parse_json_body",
    "parse_quantity",
    "preflight_response",
    "set_request_context",
    "truncate_snippet",
]
