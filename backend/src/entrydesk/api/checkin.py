"""Lambda handler for check-in.

Called when staff confirm entry: records on the backend that ``qty``
entries were admitted for the phone.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from entrydesk.api.forwarding import HandlerCache
from entrydesk.api.forwarding import Operation
from entrydesk.api.forwarding import ParsedRequest
from entrydesk.exceptions import ValidationError
from entrydesk.utils import normalize_phone
from entrydesk.utils import parse_quantity
from entrydesk.utils.logging import configure_logging

# Configure logging on module load
configure_logging()


def parse_checkin_request(body: Mapping[str, Any]) -> ParsedRequest:
    """Validate a check-in body.

    ``count`` is accepted in place of ``qty`` for older clients.

    Raises:
        ValidationError: ``missing_phone`` or ``invalid_qty``.
    """
    phone = normalize_phone(body.get("phone"))
    if not phone:
        raise ValidationError("missing_phone", field="phone")

    field_name = "qty" if body.get("qty") is not None else "count"
    qty = parse_quantity(body.get(field_name), field_name="qty")
    return ParsedRequest(phone=phone, qty=qty, log_fields={"qty": qty})


CHECKIN = Operation(name="checkin", parse=parse_checkin_request)

handler_cache = HandlerCache(CHECKIN)


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle API Gateway request for check-in."""
    return handler_cache.get().handle(event, context)
