"""Coercion of loosely-typed external values into attribute data types.

Each ``DataType`` has exactly one coercer. A coercer either returns a value
that can be stored as-is in an asset's attribute map or raises
``CoercionError``.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Callable, Dict

from attic_import.plugins.base import AttributeValue, DataType
from attic_import.plugins.errors import CoercionError

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}

_INTEGER_RE = re.compile(r"-?[0-9]+")
_DECIMAL_RE = re.compile(r"-?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?")


def _format_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_string(raw: Any) -> str:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            raise CoercionError(f"cannot store non-finite number {raw!r} as text")
        return _format_number(raw)
    if isinstance(raw, (date, datetime)):
        return raw.isoformat()
    raise CoercionError(f"cannot convert {type(raw).__name__} to string")


def coerce_number(raw: Any) -> int | float:
    if isinstance(raw, bool):
        raise CoercionError("boolean is not a number")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise CoercionError(f"non-finite number {raw!r}")
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if _INTEGER_RE.fullmatch(text):
            return int(text)
        if not _DECIMAL_RE.fullmatch(text):
            raise CoercionError(f"not a number: {raw!r}")
        value = float(text)
        if not math.isfinite(value):
            raise CoercionError(f"non-finite number {raw!r}")
        return value
    raise CoercionError(f"cannot convert {type(raw).__name__} to number")


def coerce_boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise CoercionError(f"not a boolean: {raw!r}")


def coerce_date(raw: Any) -> str:
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    if isinstance(raw, str):
        try:
            return date.fromisoformat(raw.strip()[:10]).isoformat()
        except ValueError as e:
            raise CoercionError(f"not an ISO date: {raw!r}") from e
    raise CoercionError(f"cannot convert {type(raw).__name__} to date")


COERCERS: Dict[DataType, Callable[[Any], AttributeValue]] = {
    DataType.STRING: coerce_string,
    DataType.TEXT: coerce_string,
    DataType.NUMBER: coerce_number,
    DataType.BOOLEAN: coerce_boolean,
    DataType.DATE: coerce_date,
}


def coerce_value(data_type: DataType, raw: Any) -> AttributeValue:
    """Coerce a raw external value to the given attribute data type.

    Args:
        data_type: Declared data type of the attribute
        raw: Value as produced by the adapter

    Returns:
        Value suitable for persistence

    Raises:
        CoercionError: If the value cannot represent the data type
    """
    if raw is None:
        raise CoercionError("missing value")
    return COERCERS[DataType(data_type)](raw)
