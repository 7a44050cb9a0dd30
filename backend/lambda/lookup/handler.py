"""Lambda entrypoint for registration lookup."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from entrydesk.api.lookup import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the lookup handler."""

    return _handler(event, context)
