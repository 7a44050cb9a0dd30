"""Lambda entrypoint for check-in."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from entrydesk.api.checkin import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the check-in handler."""

    return _handler(event, context)
