"""
LetSQL DB Backend - Base Adapter Interface.

All store backends implement this interface. The ``ExecutionClient``
delegates to the adapter selected by the connection URL scheme.

Compiled statements always use ``?`` placeholders. A binding that is a
list or tuple (from ``IN`` / ``NOT IN``) is expanded here, before the
statement reaches the driver, so every driver sees scalar bindings only.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger("letsql.db.backends")

__all__ = [
    "DatabaseAdapter",
    "ExecutionSummary",
    "QueryResult",
    "expand_sequence_bindings",
    "split_placeholders",
]


@dataclass
class ExecutionSummary:
    """Outcome of a statement that returns no rows."""

    affected_rows: int = 0
    insert_id: Optional[int] = None
    insert_uuid: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


QueryResult = Union[List[Dict[str, Any]], ExecutionSummary]

_MISSING = object()
_QUOTES = ("'", '"', "`")


def split_placeholders(sql: str) -> List[str]:
    """
    Split ``sql`` at every ``?`` outside quoted literals.

    A statement with ``n`` placeholders yields ``n + 1`` segments.
    """
    segments: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None

    for ch in sql:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch == "?":
            segments.append("".join(current))
            current = []
            continue
        current.append(ch)

    segments.append("".join(current))
    return segments


def expand_sequence_bindings(sql: str, params: Optional[Sequence[Any]]) -> Tuple[str, List[Any]]:
    """
    Expand list/tuple bindings into one placeholder per element.

    ``?`` bound to ``[1, 2, 3]`` becomes ``?, ?, ?``; bound to ``[]`` it
    becomes ``NULL``. Question marks inside quoted literals are left alone.
    """
    if not params:
        return sql, []
    if not any(isinstance(p, (list, tuple)) for p in params):
        return sql, list(params)

    segments = split_placeholders(sql)
    out: List[str] = [segments[0]]
    flat: List[Any] = []
    remaining = iter(params)

    for segment in segments[1:]:
        value = next(remaining, _MISSING)
        if value is _MISSING:
            raise ValueError("statement has more placeholders than bindings")
        if isinstance(value, (list, tuple)):
            if value:
                out.append(", ".join("?" for _ in value))
                flat.extend(value)
            else:
                out.append("NULL")
        else:
            out.append("?")
            flat.append(value)
        out.append(segment)

    flat.extend(remaining)
    return "".join(out), flat


class DatabaseAdapter(ABC):
    """
    Abstract store adapter interface.

    ``execute`` returns a list of row dicts for statements that produce a
    result set, and an ``ExecutionSummary`` otherwise.
    """

    dialect: str = "base"

    @abstractmethod
    async def connect(self, url: str, **options) -> None:
        """Open the connection (or pool)."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection (or drain the pool)."""
        ...

    @abstractmethod
    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Execute one statement."""
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Round-trip a trivial statement; raise on failure."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    def pool_stats(self) -> Dict[str, Any]:
        """Pool occupancy; adapters without a pool report a single slot."""
        return {"size": 1 if self.is_connected else 0, "free": None, "min": 1, "max": 1}

    def adapt_sql(self, sql: str) -> str:
        """Convert ``?`` placeholders to the driver's param style."""
        return sql

    def __repr__(self) -> str:
        return f"<{type(self).__name__} dialect={self.dialect} connected={self.is_connected}>"
