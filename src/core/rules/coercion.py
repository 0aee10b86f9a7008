"""
Value coercion helpers shared by the table transform rules.

These are lenient on purpose: the destination columns are type-strict, so
anything that cannot be coerced takes an explicit fallback instead of
raising. JSON parsing is best-effort and lossy; a value that does not
parse is returned unchanged (or replaced by a caller-supplied default).
"""

import json
import math
import re
from typing import Any

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def coerce_int(value: Any, fallback: int) -> int:
    """
    Coerce a value to int, returning ``fallback`` when it cannot be parsed
    or parses to zero.

    Strings are read up to the first non-digit ("12 min" -> 12), floats are
    truncated, booleans are rejected.

    Examples:
        >>> coerce_int("45", 60)
        45
        >>> coerce_int("abc", 60)
        60
        >>> coerce_int(None, 0)
        0
    """
    if value is None or isinstance(value, bool):
        return fallback

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return fallback
        parsed = int(value)
    elif isinstance(value, str):
        match = _INT_PREFIX.match(value)
        if not match:
            return fallback
        parsed = int(match.group(1))
    else:
        return fallback

    return parsed or fallback


def coerce_float(value: Any, fallback: float) -> float:
    """
    Coerce a value to float, returning ``fallback`` when it cannot be parsed
    or parses to zero.

    Examples:
        >>> coerce_float("75.5", 70.0)
        75.5
        >>> coerce_float("", 70.0)
        70.0
    """
    if value is None or isinstance(value, bool):
        return fallback

    try:
        if isinstance(value, (int, float)):
            parsed = float(value)
        elif isinstance(value, str):
            match = _FLOAT_PREFIX.match(value)
            if not match:
                return fallback
            parsed = float(match.group(1))
        else:
            return fallback
    except OverflowError:
        return fallback

    if not math.isfinite(parsed):
        return fallback
    return parsed or fallback


def looks_like_json(value: Any) -> bool:
    """True for strings that start like a JSON object or array."""
    return isinstance(value, str) and (value.startswith("{") or value.startswith("["))


def try_parse_json(value: Any) -> Any:
    """
    Parse a JSON-looking string, keeping the original value on failure.

    Only strings starting with ``{`` or ``[`` are attempted.
    """
    if not looks_like_json(value):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


def parse_json_field(value: Any, default: Any) -> Any:
    """
    Parse a string field as JSON, substituting ``default`` on failure.

    Non-string values are returned unchanged.
    """
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return default


def true_unless_false(value: Any) -> bool:
    """Boolean flag that defaults to True unless explicitly False."""
    return value is not False


def true_only_if_true(value: Any) -> bool:
    """Boolean flag that is True only when explicitly True."""
    return value is True


def drop_none(record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``record`` without keys whose value is None."""
    return {k: v for k, v in record.items() if v is not None}
