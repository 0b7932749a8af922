"""
LetSQL DB - store error classification.

Decides whether a driver exception is transient (connection-level, worth
retrying) or permanent (constraint, syntax, schema), and wraps it in the
matching store fault.
"""

from __future__ import annotations

import asyncio
import errno
from typing import Optional

from ..faults import Fault, PermanentStoreFault, TransientStoreFault

__all__ = [
    "TRANSIENT_ERRNOS",
    "TRANSIENT_MYSQL_CODES",
    "TRANSIENT_CODE_NAMES",
    "TRANSIENT_MESSAGES",
    "is_transient",
    "classify_store_error",
]

TRANSIENT_ERRNOS = frozenset({
    errno.ECONNRESET,
    errno.ECONNREFUSED,
    errno.ETIMEDOUT,
    errno.EHOSTUNREACH,
    errno.ENETUNREACH,
    errno.EPIPE,
})

# MySQL client (2xxx) and server (1xxx) connection-level error numbers
TRANSIENT_MYSQL_CODES = frozenset({
    2002,  # CR_CONNECTION_ERROR
    2003,  # CR_CONN_HOST_ERROR
    2006,  # CR_SERVER_GONE_ERROR
    2013,  # CR_SERVER_LOST
    2055,  # CR_SERVER_LOST_EXTENDED
    1040,  # ER_CON_COUNT_ERROR
    1053,  # ER_SERVER_SHUTDOWN
    1077,  # ER_NORMAL_SHUTDOWN
    1152,  # ER_ABORTING_CONNECTION
    1159,  # ER_NET_READ_INTERRUPTED
    1160,  # ER_NET_ERROR_ON_WRITE
    1161,  # ER_NET_WRITE_INTERRUPTED
})

TRANSIENT_CODE_NAMES = frozenset({
    "PROTOCOL_CONNECTION_LOST",
    "ECONNRESET",
    "ECONNREFUSED",
    "ETIMEDOUT",
    "EHOSTUNREACH",
    "PROTOCOL_SEQUENCE_TIMEOUT",
    "ER_SERVER_GONE_ERROR",
})

TRANSIENT_MESSAGES = (
    "server has gone away",
    "lost connection",
    "connection reset",
    "connection refused",
    "timed out",
    "host unreachable",
    "broken pipe",
)


def _error_code(exc: BaseException) -> Optional[object]:
    """Driver error code: ``exc.code``, ``exc.errno`` or pymysql-style ``args[0]``."""
    code = getattr(exc, "code", None)
    if code is not None:
        return code
    if isinstance(exc, OSError) and exc.errno is not None:
        return exc.errno
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return None


def is_transient(exc: BaseException) -> bool:
    """True when ``exc`` is a connection-level failure likely to succeed on retry."""
    if isinstance(exc, Fault):
        return exc.retryable
    if isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True
    if isinstance(exc, OSError) and exc.errno in TRANSIENT_ERRNOS:
        return True

    code = _error_code(exc)
    if isinstance(code, int) and not isinstance(code, bool) and code in TRANSIENT_MYSQL_CODES:
        return True
    if isinstance(code, str) and code.upper() in TRANSIENT_CODE_NAMES:
        return True

    message = str(exc).lower()
    return any(fragment in message for fragment in TRANSIENT_MESSAGES)


def classify_store_error(exc: BaseException) -> Fault:
    """
    Wrap a driver exception in a store fault.

    Faults pass through unchanged. The caller chains the original
    exception (``raise fault from exc``).
    """
    if isinstance(exc, Fault):
        return exc

    reason = str(exc) or type(exc).__name__
    metadata = {"error_type": type(exc).__name__}
    code = _error_code(exc)
    if code is not None:
        metadata["error_code"] = code

    if is_transient(exc):
        return TransientStoreFault(reason, metadata=metadata)
    return PermanentStoreFault(reason, metadata=metadata)
