"""
LetSQL Execution Client - pooled, retrying, health-reporting.

Provides:
- ExecutionClient: async connection owner delegating to a store adapter
- Retry of transient failures with exponential backoff
- Health reporting with latency classification
- Keep-alive probing as an explicitly started background task

The client is an ordinary object: create one, hand it to the models that
need it, and shut it down when done.

Usage:
    client = ExecutionClient(DatabaseConfig.from_env())
    await client.initialize()
    rows = await client.execute("SELECT * FROM users WHERE id = ?", [1])
    await client.shutdown()

    # or
    async with ExecutionClient("sqlite:///:memory:") as client:
        ...
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Sequence, Union

from ..config import DatabaseConfig
from ..faults import (
    Fault,
    RetryExhaustedFault,
    StoreConnectionFault,
)
from .backends.base import DatabaseAdapter, QueryResult
from .errors import classify_store_error

logger = logging.getLogger("letsql.db")

__all__ = ["ExecutionClient", "HEALTHY", "WARNING", "SLOW", "UNHEALTHY"]

HEALTHY = "healthy"
WARNING = "warning"
SLOW = "slow"
UNHEALTHY = "unhealthy"

# Latency thresholds (seconds)
_WARNING_LATENCY = 1.0
_SLOW_LATENCY = 5.0


def _create_adapter(driver: str) -> DatabaseAdapter:
    """Factory - instantiate the correct backend adapter."""
    if driver == "sqlite":
        from .backends.sqlite import SQLiteAdapter
        return SQLiteAdapter()
    elif driver == "mysql":
        from .backends.mysql import MySQLAdapter
        return MySQLAdapter()
    else:
        raise StoreConnectionFault(
            url=f"<{driver}>",
            reason=f"No adapter registered for driver: {driver}",
        )


class ExecutionClient:
    """
    Async execution client over a store adapter.

    Statements use ``?`` placeholders; the adapter translates them to the
    driver's param style and expands sequence bindings for ``IN`` lists.

    Failures are wrapped in store faults. Transient ones are retried up to
    ``retry_attempts`` total attempts, waiting
    ``min(retry_base_delay * 2 ** (attempt - 1), retry_max_delay)`` between
    attempts. Permanent ones surface immediately.
    """

    __slots__ = (
        "_config",
        "_url",
        "_driver",
        "_adapter",
        "_connected",
        "_lock",
        "_last_activity",
        "_keep_alive_task",
    )

    def __init__(
        self,
        config: Union[DatabaseConfig, str, None] = None,
        *,
        adapter: Optional[DatabaseAdapter] = None,
    ):
        """
        Args:
            config: ``DatabaseConfig``, a connection URL, or None for defaults.
            adapter: Adapter instance to use instead of the one selected by
                the URL scheme.
        """
        if config is None:
            config = DatabaseConfig()
        elif isinstance(config, str):
            config = DatabaseConfig(url=config)
        self._config = config.validate()
        self._url = config.to_url()
        self._driver = config.resolved_driver
        self._adapter: DatabaseAdapter = adapter if adapter is not None else _create_adapter(self._driver)
        self._connected = False
        self._lock = asyncio.Lock()
        self._last_activity: float = 0.0
        self._keep_alive_task: Optional[asyncio.Task] = None

    # ── Properties ───────────────────────────────────────────────────

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def url(self) -> str:
        return self._url

    @property
    def driver(self) -> str:
        return self._driver

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    @property
    def is_connected(self) -> bool:
        return self._connected and self._adapter.is_connected

    @property
    def keep_alive_running(self) -> bool:
        return self._keep_alive_task is not None and not self._keep_alive_task.done()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Connect and start keep-alive probing."""
        await self.connect()
        self.start_keep_alive()

    async def shutdown(self) -> None:
        """Stop keep-alive probing, then drain the pool."""
        await self.stop_keep_alive()
        await self.disconnect()

    async def __aenter__(self) -> "ExecutionClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    # ── Connection management ────────────────────────────────────────

    def _connect_options(self) -> Dict[str, Any]:
        cfg = self._config
        if self._adapter.dialect == "mysql":
            return {
                "minsize": cfg.pool_min,
                "maxsize": cfg.pool_max,
                "connect_timeout": cfg.connect_timeout,
            }
        return {"connect_timeout": cfg.connect_timeout}

    async def connect(self) -> None:
        """Open the store connection with retry logic."""
        if self._connected:
            return

        async with self._lock:
            if self._connected:
                return

            retries = self._config.connect_retries
            delay = self._config.connect_retry_delay
            last_exc: Optional[Exception] = None
            for attempt in range(1, retries + 1):
                try:
                    await self._adapter.connect(self._url, **self._connect_options())
                    self._connected = True
                    self._last_activity = time.monotonic()
                    logger.info(f"Store connected ({self._driver}), attempt {attempt}")
                    return
                except Exception as exc:
                    last_exc = exc
                    if attempt < retries:
                        logger.warning(
                            f"Connection attempt {attempt} failed: {exc}, "
                            f"retrying in {delay}s..."
                        )
                        await asyncio.sleep(delay)

            raise StoreConnectionFault(
                url=self._config.redacted_url(),
                reason=f"Failed after {retries} attempts: {last_exc}",
            ) from last_exc

    async def disconnect(self) -> None:
        """Close the store connection."""
        if not self._connected:
            return
        async with self._lock:
            if not self._connected:
                return
            try:
                await self._adapter.disconnect()
                logger.info("Store disconnected")
            except Exception as exc:
                raise StoreConnectionFault(
                    url=self._config.redacted_url(),
                    reason=f"Disconnect failed: {exc}",
                ) from exc
            finally:
                self._connected = False

    async def ensure_connected(self) -> None:
        """Ensure a live connection exists, reconnecting if needed."""
        if not self._connected:
            await self.connect()
        elif not self._adapter.is_connected:
            self._connected = False
            await self.connect()

    # ── Execution ────────────────────────────────────────────────────

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed attempt number ``attempt`` (1-based)."""
        cfg = self._config
        return min(cfg.retry_base_delay * (2 ** (attempt - 1)), cfg.retry_max_delay)

    async def execute(self, sql: str, bindings: Optional[Sequence[Any]] = None) -> QueryResult:
        """
        Execute one statement.

        Returns:
            ``list[dict]`` for row-producing statements, otherwise an
            ``ExecutionSummary``.

        Raises:
            PermanentStoreFault: Rejected by the store; never retried.
            RetryExhaustedFault: Transient failures outlasted the retry budget.
        """
        params = list(bindings) if bindings else []
        attempts = self._config.retry_attempts
        last_exc: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                await self.ensure_connected()
                result = await self._adapter.execute(sql, params)
                self._last_activity = time.monotonic()
                return result
            except Fault as fault:
                if not fault.retryable:
                    raise
                last_exc = fault
            except Exception as exc:
                fault = classify_store_error(exc)
                if not fault.retryable:
                    raise fault from exc
                last_exc = exc

            if attempt < attempts:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    f"Transient store failure on attempt {attempt}/{attempts}: {last_exc}, "
                    f"retrying in {delay}s..."
                )
                await asyncio.sleep(delay)

        logger.error(f"Statement failed after {attempts} attempts: {last_exc}")
        raise RetryExhaustedFault(
            attempts=attempts,
            reason=str(last_exc),
            metadata={"sql": sql},
        ) from last_exc

    # ── Health ───────────────────────────────────────────────────────

    def pool_stats(self) -> Dict[str, Any]:
        return self._adapter.pool_stats()

    async def health_check(self) -> Dict[str, Any]:
        """
        Probe the store and report its state. Never raises.

        Status is ``healthy`` under 1s, ``warning`` up to 5s, ``slow`` above
        5s, and ``unhealthy`` when the probe fails.
        """
        start = time.perf_counter()
        error: Optional[str] = None
        try:
            if not self.is_connected:
                raise ConnectionError("Not connected")
            await self._adapter.ping()
            latency = time.perf_counter() - start
            if latency < _WARNING_LATENCY:
                status = HEALTHY
            elif latency <= _SLOW_LATENCY:
                status = WARNING
            else:
                status = SLOW
        except Exception as exc:
            latency = time.perf_counter() - start
            status = UNHEALTHY
            error = str(exc) or type(exc).__name__
            logger.warning(f"Store health check failed: {error}")

        try:
            pool = self._adapter.pool_stats()
        except Exception as exc:
            pool = {"error": str(exc)}

        report: Dict[str, Any] = {
            "status": status,
            "latency": round(latency, 6),
            "database": {
                "connected": self.is_connected,
                "driver": self._driver,
                "url": self._config.redacted_url(),
            },
            "pool": pool,
            "keep_alive": {
                "running": self.keep_alive_running,
                "interval": self._config.keep_alive_interval,
            },
        }
        if error is not None:
            report["error"] = error
        return report

    async def is_healthy(self) -> bool:
        report = await self.health_check()
        return report["status"] != UNHEALTHY

    # ── Keep-alive ───────────────────────────────────────────────────

    def start_keep_alive(self) -> bool:
        """
        Start the background keep-alive task on the running loop.

        Returns False when the interval is 0 (disabled).
        """
        if self._config.keep_alive_interval <= 0:
            return False
        if self.keep_alive_running:
            return True
        loop = asyncio.get_running_loop()
        self._keep_alive_task = loop.create_task(self._keep_alive_loop())
        logger.debug(f"Keep-alive started (every {self._config.keep_alive_interval}s)")
        return True

    async def stop_keep_alive(self) -> None:
        task, self._keep_alive_task = self._keep_alive_task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.debug("Keep-alive stopped")

    async def _keep_alive_loop(self) -> None:
        """Background keep-alive loop."""
        while True:
            try:
                await asyncio.sleep(self._config.keep_alive_interval)
                await self._probe()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.warning(f"Keep-alive reconnect failed: {exc}")

    async def _probe(self) -> None:
        try:
            await self._adapter.ping()
            self._last_activity = time.monotonic()
        except Exception as exc:
            logger.warning(f"Keep-alive ping failed: {exc}, reconnecting")
            await self._reconnect()

    async def _reconnect(self) -> None:
        async with self._lock:
            try:
                await self._adapter.disconnect()
            except Exception as exc:
                logger.debug(f"Ignoring disconnect error during reconnect: {exc}")
            self._connected = False
        await self.connect()
        logger.info("Store reconnected after failed keep-alive ping")

    def __repr__(self) -> str:
        return (
            f"<ExecutionClient driver={self._driver} "
            f"url={self._config.redacted_url()} connected={self._connected}>"
        )
