"""Lambda handler for registration lookup.

The web client sends the phone typed by the attendee; the backend
answers whether a registration exists and how many entries it allows.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from entrydesk.api.forwarding import HandlerCache
from entrydesk.api.forwarding import Operation
from entrydesk.api.forwarding import ParsedRequest
from entrydesk.exceptions import EmptyPhoneNotice
from entrydesk.utils import normalize_phone
from entrydesk.utils.logging import configure_logging

# Configure logging on module load
configure_logging()


def parse_lookup_request(body: Mapping[str, Any]) -> ParsedRequest:
    """Validate a lookup body.

    Raises:
        EmptyPhoneNotice: If the phone has no digits.
    """
    phone = normalize_phone(body.get("phone"))
    if not phone:
        raise EmptyPhoneNotice()
    return ParsedRequest(phone=phone)


LOOKUP = Operation(name="lookup", parse=parse_lookup_request)

handler_cache = HandlerCache(LOOKUP)


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle API Gateway request for lookup."""
    return handler_cache.get().handle(event, context)
