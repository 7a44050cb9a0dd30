"""Input validation utilities."""

from __future__ import annotations

import math
import re
from typing import Any
from typing import Optional
from typing import Union

from entrydesk.exceptions import ValidationError

_NON_DIGITS = re.compile(r"\D", re.ASCII)

Quantity = Union[int, float]


def normalize_phone(value: Any) -> str:
    """Reduce a free-form phone value to its digits.

    Callers may type spaces, dashes, parentheses or a leading ``+``;
    only the ASCII digits are kept, in order.

    Args:
        value: The raw ``phone`` field from the request body.

    Returns:
        The digit-only phone, possibly empty.
    """
    if value is None:
        return ""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    return _NON_DIGITS.sub("", text)


def parse_quantity(value: Any, field_name: str = "qty") -> Quantity:
    """Coerce an entry quantity and check it is a finite number above zero.

    Args:
        value: The raw quantity from the request body.
        field_name: Name of the field for error reporting.

    Returns:
        The quantity, as ``int`` when it is integral.

    Raises:
        ValidationError: ``invalid_qty`` if the value is missing, not
            numeric, not finite, or not greater than zero.
    """
    number = _coerce_number(value)
    if number is None or not math.isfinite(number) or number <= 0:
        raise ValidationError("invalid_qty", field=field_name)
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _coerce_number(value: Any) -> Optional[Quantity]:
    if value is None:
        return 0
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0
        try:
            return float(stripped)
        except ValueError:
            return None
    return None


def truncate_snippet(text: Optional[str], limit: int = 300) -> str:
    """Shorten text for diagnostics.

    Args:
        text: The text to shorten, or None.
        limit: Maximum number of characters kept.

    Returns:
        The text itself when short enough, otherwise its first ``limit``
        characters followed by ``...``.
    """
    value = "" if text is None else str(text)
    if len(value) > limit:
        return value[:limit] + "..."
    return value
