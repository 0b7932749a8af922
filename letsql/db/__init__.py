"""
LetSQL DB - execution client and store adapters.
"""

from .backends import DatabaseAdapter, ExecutionSummary
from .engine import ExecutionClient, HEALTHY, SLOW, UNHEALTHY, WARNING
from .errors import classify_store_error, is_transient

__all__ = [
    "ExecutionClient",
    "DatabaseAdapter",
    "ExecutionSummary",
    "classify_store_error",
    "is_transient",
    "HEALTHY",
    "WARNING",
    "SLOW",
    "UNHEALTHY",
]
