"""
JSON text utilities for SSE Inspector.

Parsed JSON is represented with the standard Python mapping of the JSON
types, which already forms a closed tagged union:

    null -> None, true/false -> bool, number -> int | float,
    string -> str, array -> list, object -> dict (insertion ordered)

``NaN`` and ``Infinity`` are rejected because they are not JSON, and so are
numbers too large to represent as a finite float (``1e400``).
"""

import json
import math
from typing import Any, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass

from ..utils.errors import JsonBodyError

JsonValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

INDENT = 2


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name} is not valid JSON")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"Number {literal} is out of range")
    return value


def loads(text: str) -> JsonValue:
    """Strictly parse JSON text; raises ValueError on malformed input."""
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


def dumps(value: JsonValue, indent: Optional[int] = INDENT) -> str:
    """Serialize with ``indent`` spaces, or with no whitespace when indent is None."""
    if indent is None:
        return json.dumps(value, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    return json.dumps(value, ensure_ascii=False, allow_nan=False, indent=indent)


@dataclass(frozen=True)
class JsonValidation:
    """Outcome of validating a JSON document."""
    valid: bool
    error: Optional[str] = None
    formatted: Optional[str] = None


def validate_json(text: str) -> JsonValidation:
    """Parse ``text``; never raises."""
    try:
        value = loads(text)
    except (ValueError, RecursionError) as e:
        return JsonValidation(valid=False, error=str(e) or "Invalid JSON")
    return JsonValidation(valid=True, formatted=dumps(value))


def format_json(text: str) -> str:
    """Re-serialize ``text`` with 2-space indentation."""
    result = validate_json(text)
    if not result.valid:
        raise JsonBodyError(result.error)
    return result.formatted


def minify_json(text: str) -> str:
    """Re-serialize ``text`` without inserted whitespace."""
    try:
        return dumps(loads(text), indent=None)
    except (ValueError, RecursionError) as e:
        raise JsonBodyError(str(e) or "Invalid JSON") from e


def parse_payload(raw: str) -> Tuple[bool, JsonValue]:
    """
    Try to parse an event payload.

    Returns:
        ``(True, value)`` on success, ``(False, None)`` otherwise. Malformed
        payloads are expected on SSE streams and are not errors.
    """
    try:
        return True, loads(raw.strip())
    except (ValueError, RecursionError):
        return False, None
