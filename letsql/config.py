"""
LetSQL configuration.

``DatabaseConfig`` carries the connection parameters handed to the
execution client. Values come from keyword arguments or from the
environment (optionally seeded from a ``.env`` file via python-dotenv).

Example:
    ```python
    config = DatabaseConfig.from_env()           # DB_HOST, DB_PORT, ...
    client = ExecutionClient(config)
    ```
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlparse, urlunparse

from dotenv import dotenv_values

from .faults import ConfigInvalidFault

logger = logging.getLogger("letsql.config")

SUPPORTED_DRIVERS = ("mysql", "sqlite")

# field name -> environment suffix (after the prefix)
_ENV_KEYS = {
    "url": "URL",
    "driver": "DRIVER",
    "host": "HOST",
    "port": "PORT",
    "user": "USER",
    "password": "PASSWORD",
    "database": "DATABASE",
    "pool_min": "POOL_MIN",
    "pool_max": "POOL_SIZE",
    "connect_timeout": "CONNECT_TIMEOUT",
    "connect_retries": "CONNECT_RETRIES",
    "connect_retry_delay": "CONNECT_RETRY_DELAY",
    "retry_attempts": "RETRY_ATTEMPTS",
    "retry_base_delay": "RETRY_BASE_DELAY",
    "retry_max_delay": "RETRY_MAX_DELAY",
    "keep_alive_interval": "KEEP_ALIVE_INTERVAL",
}


@dataclass
class DatabaseConfig:
    """
    Store connection configuration.

    Loaded from the environment via ``DatabaseConfig.from_env()``.
    """
    url: Optional[str] = None           # Full URL; overrides the parts below
    driver: str = "mysql"               # "mysql", "sqlite"
    host: str = "localhost"
    port: int = 3306
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None

    # Pool bounds
    pool_min: int = 1
    pool_max: int = 10

    # Connection establishment
    connect_timeout: float = 10.0       # Seconds per connect attempt
    connect_retries: int = 3
    connect_retry_delay: float = 0.5    # Fixed delay between connect attempts

    # Statement retry (total attempts, exponential backoff)
    retry_attempts: int = 3
    retry_base_delay: float = 0.1
    retry_max_delay: float = 5.0

    # Keep-alive probing
    keep_alive_interval: float = 30.0   # Seconds between pings (0 = disabled)

    @classmethod
    def from_env(
        cls,
        prefix: str = "DB_",
        env_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "DatabaseConfig":
        """
        Build a config from environment variables.

        Args:
            prefix: Variable prefix (``DB_HOST``, ``DB_PORT``, ...)
            env_file: Optional ``.env`` file; process variables take precedence
            environ: Mapping used instead of ``os.environ`` (tests)

        Raises:
            ConfigInvalidFault: A value cannot be coerced to its field type
        """
        values: dict[str, Any] = {}
        if env_file:
            values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
            logger.debug(f"Loaded {len(values)} values from {env_file}")
        values.update(os.environ if environ is None else environ)

        fields = {f.name: f for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        for name, suffix in _ENV_KEYS.items():
            key = f"{prefix}{suffix}"
            if key not in values:
                continue
            kwargs[name] = _coerce(key, values[key], fields[name].default)

        config = cls(**kwargs)
        config.validate()
        return config

    def validate(self) -> "DatabaseConfig":
        """Check bounds and driver; raise ConfigInvalidFault on the first problem."""
        driver = self.resolved_driver
        if driver not in SUPPORTED_DRIVERS:
            raise ConfigInvalidFault("driver", f"unsupported driver '{driver}'")
        if self.pool_max < 1:
            raise ConfigInvalidFault("pool_max", "must be at least 1")
        if self.pool_min < 0 or self.pool_min > self.pool_max:
            raise ConfigInvalidFault("pool_min", f"must be between 0 and pool_max ({self.pool_max})")
        if self.retry_attempts < 1:
            raise ConfigInvalidFault("retry_attempts", "must be at least 1")
        if self.connect_retries < 1:
            raise ConfigInvalidFault("connect_retries", "must be at least 1")
        for name in (
            "connect_timeout",
            "connect_retry_delay",
            "retry_base_delay",
            "retry_max_delay",
            "keep_alive_interval",
        ):
            if getattr(self, name) < 0:
                raise ConfigInvalidFault(name, "must not be negative")
        return self

    @property
    def resolved_driver(self) -> str:
        """Driver named by the URL scheme when a URL is set, else ``driver``."""
        if self.url:
            scheme = urlparse(self.url).scheme
            return scheme.split("+", 1)[0] or self.driver
        return self.driver

    def to_url(self) -> str:
        """Connection URL, built from the parts when ``url`` is unset."""
        if self.url:
            return self.url
        if self.driver == "sqlite":
            return f"sqlite:///{self.database or ':memory:'}"

        auth = ""
        if self.user:
            auth = quote(self.user, safe="")
            if self.password:
                auth += ":" + quote(self.password, safe="")
            auth += "@"
        return f"{self.driver}://{auth}{self.host}:{self.port}/{self.database or ''}"

    def redacted_url(self) -> str:
        """``to_url()`` with the password masked."""
        url = self.to_url()
        parsed = urlparse(url)
        if not parsed.password:
            return url
        netloc = parsed.netloc.replace(f":{parsed.password}@", ":***@", 1)
        return urlunparse(parsed._replace(netloc=netloc))


def _coerce(key: str, raw: Any, default: Any) -> Any:
    """Coerce an environment string to the type of the field default."""
    if not isinstance(raw, str):
        return raw
    value = raw.strip()
    try:
        if isinstance(default, bool):
            if value.lower() in ("true", "yes", "1"):
                return True
            if value.lower() in ("false", "no", "0"):
                return False
            raise ValueError(f"not a boolean: {value!r}")
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
    except ValueError as exc:
        raise ConfigInvalidFault(key, str(exc)) from exc
    return value or None
