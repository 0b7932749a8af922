"""
LetSQL DB Backend - SQLite adapter via aiosqlite.

A single connection serialized by an ``asyncio.Lock`` (a pool of one).
Used for local development and the test suite.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import date, datetime
from typing import Any, Optional, Sequence

import aiosqlite

from .base import DatabaseAdapter, ExecutionSummary, QueryResult, expand_sequence_bindings

logger = logging.getLogger("letsql.db.backends.sqlite")

__all__ = ["SQLiteAdapter"]

_INSERT_IGNORE_RE = re.compile(r"^\s*INSERT\s+IGNORE\s+INTO\b", re.IGNORECASE)


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite adapter using aiosqlite.

    - ``INSERT IGNORE`` is rewritten to ``INSERT OR IGNORE``
    - ``datetime``/``date`` bindings are sent as ISO strings
    - writes are committed immediately
    """

    dialect = "sqlite"

    def __init__(self):
        self._connection: Any = None
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self, url: str, **options) -> None:
        if self._connected:
            return
        async with self._lock:
            if self._connected:
                return
            db_path = self._parse_url(url)
            timeout = options.get("connect_timeout")
            if timeout is not None:
                self._connection = await aiosqlite.connect(db_path, timeout=timeout)
            else:
                self._connection = await aiosqlite.connect(db_path)
            await self._connection.execute("PRAGMA foreign_keys=ON")
            self._connection.row_factory = aiosqlite.Row
            self._connected = True
            logger.info(f"SQLite connected: {db_path}")

    async def disconnect(self) -> None:
        if not self._connected:
            return
        async with self._lock:
            if self._connection:
                await self._connection.close()
                self._connection = None
            self._connected = False
            logger.info("SQLite disconnected")

    def adapt_sql(self, sql: str) -> str:
        return _INSERT_IGNORE_RE.sub("INSERT OR IGNORE INTO", sql, count=1)

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        if not self._connected:
            raise ConnectionError("Not connected to SQLite")
        sql, bindings = expand_sequence_bindings(self.adapt_sql(sql), params)
        bindings = [_to_sqlite(value) for value in bindings]

        async with self._lock:
            cursor = await self._connection.execute(sql, bindings)
            try:
                if cursor.description:
                    rows = await cursor.fetchall()
                    return [dict(row) for row in rows]
                await self._connection.commit()
                affected = max(cursor.rowcount, 0)
                return ExecutionSummary(
                    affected_rows=affected,
                    insert_id=cursor.lastrowid if affected and cursor.lastrowid else None,
                )
            finally:
                await cursor.close()

    async def ping(self) -> None:
        if not self._connected:
            raise ConnectionError("Not connected to SQLite")
        async with self._lock:
            cursor = await self._connection.execute("SELECT 1")
            await cursor.fetchone()
            await cursor.close()

    @staticmethod
    def _parse_url(url: str) -> str:
        """Extract file path from sqlite URL."""
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                path = url[len(prefix):]
                return path or ":memory:"
        return url.replace("sqlite:", "").lstrip("/") or ":memory:"


def _to_sqlite(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return value
