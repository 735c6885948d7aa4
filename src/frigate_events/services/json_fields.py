"""Typed accessors for loosely-shaped Frigate JSON.

Each accessor returns the value when it has the expected type and None
otherwise (missing key, null, or wrong type), so callers can probe response
shapes without try/except around every cast.
"""

import json
from typing import Any


def parse_json(raw: bytes | str) -> Any:
    """Parse a response body; raises ValueError on invalid JSON or encoding."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def as_object(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def as_object_list(value: Any) -> list[dict[str, Any]] | None:
    """Return value when it is a list whose elements are all JSON objects."""
    if not isinstance(value, list):
        return None
    if not all(isinstance(item, dict) for item in value):
        return None
    return value


def is_number(value: Any) -> bool:
    """JSON number check; bool is an int subclass in Python and is excluded."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def get_str(obj: dict[str, Any], key: str) -> str | None:
    value = obj.get(key)
    return value if isinstance(value, str) else None


def get_bool(obj: dict[str, Any], key: str) -> bool | None:
    value = obj.get(key)
    return value if isinstance(value, bool) else None


def _to_float(value: Any) -> float | None:
    """float() of a JSON number; None for an integer too large for a float."""
    try:
        return float(value)
    except OverflowError:
        return None


def get_number(obj: dict[str, Any], key: str) -> float | None:
    value = obj.get(key)
    return _to_float(value) if is_number(value) else None


def get_str_list(obj: dict[str, Any], key: str) -> list[str] | None:
    value = obj.get(key)
    if not isinstance(value, list):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return value


def get_float_list(obj: dict[str, Any], key: str) -> list[float] | None:
    value = obj.get(key)
    if not isinstance(value, list):
        return None
    if not all(is_number(item) for item in value):
        return None
    floats = [_to_float(item) for item in value]
    if any(f is None for f in floats):
        return None
    return floats


def get_float_tuple4(obj: dict[str, Any], key: str) -> tuple[float, float, float, float] | None:
    """Four-number array (box/region) as a tuple; None for any other length."""
    values = get_float_list(obj, key)
    if values is None or len(values) != 4:
        return None
    return (values[0], values[1], values[2], values[3])


def get_object(obj: dict[str, Any], key: str) -> dict[str, Any] | None:
    return as_object(obj.get(key))


def is_float(value: Any) -> bool:
    """JSON number that also converts to a Python float."""
    return is_number(value) and _to_float(value) is not None
