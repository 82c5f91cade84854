"""JSON fallback encoding for structured log lines."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Any, Callable

_ENCODERS: list[tuple[type | tuple[type, ...], Callable[[Any], Any]]] = [
    ((datetime, date), lambda v: v.isoformat()),
    (timedelta, lambda v: v.total_seconds()),
    (Decimal, float),
    (PurePath, str),
    (bytes, lambda v: v.decode("utf-8", errors="replace")),
    (Enum, lambda v: v.value),
]


def json_serializer(obj: Any) -> Any:
    """
    Fallback for json.dumps(default=...) that keeps log values typed.

    Timestamps become ISO 8601 strings, durations become seconds, Decimals
    become floats, enums become their value. Objects with a __dict__ are
    emitted as that dict; anything else is stringified.
    """
    for types, encode in _ENCODERS:
        if isinstance(obj, types):
            return encode(obj)
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)


__all__ = ["json_serializer"]
