"""
Reduce whatever the database hands us to a single distance reading.

Payloads seen in the wild: a bare number, a numeric string (possibly with a
unit suffix such as "12.5cm"), or an object whose first child is the number.
Anything else yields ``None``, which callers must not confuse with a reading
of zero.
"""
from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any, Optional


def _finite_number(value: Any) -> Optional[float]:
    # bool is an int subclass; a flag is not a distance
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


# leading decimal literal only; whatever follows it (a unit, a comment) is ignored
_DECIMAL_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _parse_decimal(text: str) -> Optional[float]:
    match = _DECIMAL_PREFIX.match(text)
    if match is None:
        return None
    number = float(match.group(1))
    return number if math.isfinite(number) else None


def normalize(payload: Any) -> Optional[float]:
    number = _finite_number(payload)
    if number is not None:
        return number
    if isinstance(payload, Mapping):
        for first_key in payload:
            return _finite_number(payload[first_key])
        return None
    if isinstance(payload, str):
        return _parse_decimal(payload)
    return None


def extract_event_value(event_type: Optional[str], data: Any) -> Optional[float]:
    """Value carried by a ``put``/``patch`` change event, if any.

    A ``put`` replaces the node, so its data is normalized in full. A ``patch``
    only lists the changed children; without the rest of the subtree an object
    patch cannot be reduced to one scalar, so only a bare number is accepted.
    """
    if event_type == "put":
        return normalize(data)
    if event_type == "patch":
        return _finite_number(data)
    return None
