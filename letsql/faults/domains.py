"""
LetSQL Faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults (connection parameters, environment)
- MODEL faults (entity misuse)
- QUERY faults (compilation)
- STORE faults (execution, connection, retry exhaustion)
- DATA faults (relation integrity, serialization)
"""

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class ConfigMissingFault(ConfigFault):
    """Required configuration is missing."""

    def __init__(self, key: str, **kwargs):
        super().__init__(
            code="CONFIG_MISSING",
            message=f"Required configuration key '{key}' is missing",
            metadata={"key": key, **kwargs.get("metadata", {})},
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# MODEL Faults
# ============================================================================

class UsageFault(Fault):
    """
    Entity model used incorrectly.

    Raised for a missing table name, an invalid fluent-call arity,
    an unconditional update/delete, or an unknown relation name.
    Never retried.
    """

    def __init__(self, model: str, reason: str, **kwargs):
        super().__init__(
            code="MODEL_USAGE",
            message=f"Invalid use of '{model}': {reason}",
            domain=FaultDomain.MODEL,
            retryable=False,
            metadata={"model": model, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# QUERY Faults
# ============================================================================

class CompileFault(Fault):
    """Query intent could not be compiled to SQL (raised before any I/O)."""

    def __init__(self, table: str, action: str, reason: str, **kwargs):
        super().__init__(
            code="QUERY_COMPILE_FAILED",
            message=f"Cannot compile {action} on '{table}': {reason}",
            domain=FaultDomain.QUERY,
            retryable=False,
            metadata={"table": table, "action": action, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# STORE Faults
# ============================================================================

class StoreFault(Fault):
    """Base class for store execution faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.STORE,
            severity=severity,
            retryable=retryable,
            metadata=metadata,
        )


class TransientStoreFault(StoreFault):
    """Connection-level failure that is likely to succeed on retry."""

    def __init__(self, reason: str, **kwargs):
        super().__init__(
            code="STORE_TRANSIENT",
            message=f"Transient store failure: {reason}",
            severity=Severity.WARN,
            retryable=True,
            metadata={"reason": reason, **kwargs.get("metadata", {})},
        )


class PermanentStoreFault(StoreFault):
    """Data or schema level failure (constraint, syntax, unknown table)."""

    def __init__(self, reason: str, **kwargs):
        super().__init__(
            code="STORE_PERMANENT",
            message=f"Store rejected statement: {reason}",
            retryable=False,
            metadata={"reason": reason, **kwargs.get("metadata", {})},
        )


class RetryExhaustedFault(StoreFault):
    """Transient failures persisted past the retry budget."""

    def __init__(self, attempts: int, reason: str, **kwargs):
        super().__init__(
            code="STORE_RETRY_EXHAUSTED",
            message=f"Statement failed after {attempts} attempts: {reason}",
            retryable=False,
            metadata={"attempts": attempts, "reason": reason, **kwargs.get("metadata", {})},
        )


class StoreConnectionFault(StoreFault):
    """Store connection could not be established."""

    def __init__(self, url: str, reason: str, **kwargs):
        super().__init__(
            code="STORE_CONNECTION_FAILED",
            message=f"Store connection failed ({url}): {reason}",
            severity=Severity.FATAL,
            retryable=True,
            metadata={"url": url, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# DATA Faults
# ============================================================================

class DataIntegrityFault(Fault):
    """Stored data violates an assumption of this layer."""

    def __init__(self, reason: str, code: str = "DATA_INTEGRITY", **kwargs):
        super().__init__(
            code=code,
            message=f"Data integrity violated: {reason}",
            domain=FaultDomain.DATA,
            retryable=False,
            metadata={"reason": reason, **kwargs.get("metadata", {})},
        )


class SerializationFault(DataIntegrityFault):
    """A stored value could not be converted by its declared cast."""

    def __init__(self, column: str, cast: str, reason: str, **kwargs):
        super().__init__(
            reason=f"column '{column}' ({cast}): {reason}",
            code="DATA_SERIALIZATION",
            metadata={"column": column, "cast": cast, **kwargs.get("metadata", {})},
        )


# ── Short aliases ──────────────────────────────────────────────────────────
UsageError = UsageFault
CompileError = CompileFault
TransientStoreError = TransientStoreFault
PermanentStoreError = PermanentStoreFault
DataIntegrityError = DataIntegrityFault
SerializationError = SerializationFault
