"""
LetSQL Faults - structured error types.

Every error raised by LetSQL is a ``Fault``: a typed exception with a
stable code, a domain, a severity and retry semantics.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigMissingFault,
    ConfigInvalidFault,
    UsageFault,
    CompileFault,
    StoreFault,
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

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "ConfigFault",
    "ConfigMissingFault",
    "ConfigInvalidFault",
    "UsageFault",
    "CompileFault",
    "StoreFault",
    "TransientStoreFault",
    "PermanentStoreFault",
    "RetryExhaustedFault",
    "StoreConnectionFault",
    "DataIntegrityFault",
    "SerializationFault",

    # Aliases
    "UsageError",
    "CompileError",
    "TransientStoreError",
    "PermanentStoreError",
    "DataIntegrityError",
    "SerializationError",
]
