"""
LetSQL - Active-Record data access over MySQL for asyncio

Complete integration of:
- Models: fluent query intent, CRUD, soft delete, casts, relations
- Compiler: query intent to parameterized SQL
- Execution client: pooled connections, retry with backoff, health, keep-alive
- Faults: structured error handling with fault domains
- Config: environment-driven connection settings
"""

__version__ = "0.1.0"

from .config import DatabaseConfig
from .db import ExecutionClient, ExecutionSummary
from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ConfigInvalidFault,
    ConfigMissingFault,
    UsageFault,
    CompileFault,
    TransientStoreFault,
    PermanentStoreFault,
    RetryExhaustedFault,
    StoreConnectionFault,
    DataIntegrityFault,
    SerializationFault,
    UsageError,
    CompileError,
    TransientStoreError,
    PermanentStoreError,
    DataIntegrityError,
    SerializationError,
)
from .models import Model, Page, QueryIntent, compile_intent, relation

__all__ = [
    "__version__",
    "DatabaseConfig",
    "ExecutionClient",
    "ExecutionSummary",
    "Model",
    "Page",
    "QueryIntent",
    "compile_intent",
    "relation",
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigInvalidFault",
    "ConfigMissingFault",
    "UsageFault",
    "CompileFault",
    "TransientStoreFault",
    "PermanentStoreFault",
    "RetryExhaustedFault",
    "StoreConnectionFault",
    "DataIntegrityFault",
    "SerializationFault",
    "UsageError",
    "CompileError",
    "TransientStoreError",
    "PermanentStoreError",
    "DataIntegrityError",
    "SerializationError",
]
