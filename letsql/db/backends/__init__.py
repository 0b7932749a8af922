"""
LetSQL DB Backends Package - pluggable store adapters.

Provides a common adapter interface and implementations for:
- MySQL / MariaDB (via aiomysql, pooled): ``letsql.db.backends.mysql``
- SQLite (via aiosqlite, local development and tests): ``letsql.db.backends.sqlite``

Concrete adapters are imported on demand, so a driver is only loaded
when its adapter is used.
"""

from .base import (
    DatabaseAdapter,
    ExecutionSummary,
    QueryResult,
    expand_sequence_bindings,
    split_placeholders,
)

__all__ = [
    "DatabaseAdapter",
    "ExecutionSummary",
    "QueryResult",
    "expand_sequence_bindings",
    "split_placeholders",
]
