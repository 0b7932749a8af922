"""
LetSQL Models - attribute filtering and casts.

Two pure helpers used by ``Model`` on the way in and out of the store:

- ``restrict_fields`` applies the fillable/guarded rule to a record
- ``apply_casts`` converts values between their application type and the
  representation sent to (or read from) the store
"""

from __future__ import annotations

import json
import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping

from ..faults import SerializationFault, UsageFault

__all__ = [
    "CastDirection",
    "CAST_TAGS",
    "restrict_fields",
    "apply_casts",
    "validate_casts",
]


class CastDirection(str, Enum):
    TO_STORAGE = "to_storage"
    FROM_STORAGE = "from_storage"


def restrict_fields(
    record: Mapping[str, Any],
    fillable: Iterable[str] = (),
    guarded: Iterable[str] = (),
) -> Dict[str, Any]:
    """
    Keep only the keys allowed by ``fillable`` and not denied by ``guarded``.

    An empty ``fillable`` allows everything; an empty ``guarded`` denies
    nothing. Dropped keys are not an error.
    """
    allow = set(fillable)
    deny = set(guarded)
    return {
        key: value
        for key, value in record.items()
        if (not allow or key in allow) and (not deny or key not in deny)
    }


# ── Cast functions ───────────────────────────────────────────────────
# Each takes (column, value) and never sees None.

def _json_to_storage(column: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as exc:
        raise SerializationFault(column, "json", str(exc)) from exc


def _json_from_storage(column: str, value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if not isinstance(value, str):
        # Driver already decoded a JSON column
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise SerializationFault(column, "json", f"malformed JSON: {exc.msg}") from exc


def _boolean_to_storage(column: str, value: Any) -> int:
    return 1 if _truthy(value) else 0


def _boolean_from_storage(column: str, value: Any) -> bool:
    return _truthy(value)


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no", "off")
    if isinstance(value, (bytes, bytearray)):
        return value not in (b"", b"\x00", b"0")
    return bool(value)


def _date_to_storage(column: str, value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return value


def _date_from_storage(column: str, value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, timezone.utc).replace(tzinfo=None)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise SerializationFault(column, "date", f"not an ISO-8601 timestamp: {value!r}") from exc


def _number(column: str, value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise SerializationFault(column, "number", f"not numeric: {value!r}") from exc
    if math.isfinite(number) and number.is_integer():
        return int(number)
    return number


def _float(column: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SerializationFault(column, "float", f"not numeric: {value!r}") from exc


def _string(column: str, value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return str(value)


_CASTS: Dict[str, Dict[CastDirection, Callable[[str, Any], Any]]] = {
    "json": {
        CastDirection.TO_STORAGE: _json_to_storage,
        CastDirection.FROM_STORAGE: _json_from_storage,
    },
    "boolean": {
        CastDirection.TO_STORAGE: _boolean_to_storage,
        CastDirection.FROM_STORAGE: _boolean_from_storage,
    },
    "date": {
        CastDirection.TO_STORAGE: _date_to_storage,
        CastDirection.FROM_STORAGE: _date_from_storage,
    },
    "number": {
        CastDirection.TO_STORAGE: _number,
        CastDirection.FROM_STORAGE: _number,
    },
    "float": {
        CastDirection.TO_STORAGE: _float,
        CastDirection.FROM_STORAGE: _float,
    },
    "string": {
        CastDirection.TO_STORAGE: _string,
        CastDirection.FROM_STORAGE: _string,
    },
}

CAST_TAGS = frozenset(_CASTS)


def validate_casts(casts: Mapping[str, str], owner: str = "<model>") -> None:
    """Raise UsageFault for any cast tag that is not supported."""
    for column, tag in casts.items():
        if tag not in _CASTS:
            raise UsageFault(
                owner,
                f"unknown cast '{tag}' for column '{column}' "
                f"(expected one of: {', '.join(sorted(CAST_TAGS))})",
            )


def apply_casts(
    record: Mapping[str, Any],
    casts: Mapping[str, str],
    direction: CastDirection,
) -> Dict[str, Any]:
    """
    Return a copy of ``record`` with cast columns converted.

    Only columns present in both ``record`` and ``casts`` are touched;
    None passes through unchanged.

    Raises:
        SerializationFault: A value cannot be converted (e.g. malformed JSON).
    """
    direction = CastDirection(direction)
    result = dict(record)
    for column, tag in casts.items():
        if column not in result or result[column] is None:
            continue
        try:
            convert = _CASTS[tag][direction]
        except KeyError:
            raise UsageFault("<casts>", f"unknown cast '{tag}' for column '{column}'") from None
        result[column] = convert(column, result[column])
    return result
