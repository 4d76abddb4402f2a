"""
Upstream error classification.

Maps httpx exceptions onto the failure categories the poll client reacts to.
"""

import asyncio
import errno
import ssl
from enum import Enum
from typing import Callable, Optional

import httpx


class ErrorKind(Enum):
    """Failure categories for a request to the upstream service."""
    CONNECTION_REFUSED = "connection_refused"  # Host refused the socket, degrades availability
    TIMEOUT = "timeout"  # Transient, counted but availability unchanged
    TLS = "tls"  # Certificate problems, ignored for self-signed deployments
    HTTP_STATUS = "http_status"  # Service responded with a non-2xx status
    NO_RESPONSE = "no_response"  # DNS, unreachable network or dropped connection
    UNKNOWN = "unknown"


def _find_cause(error: BaseException, match: Callable[[BaseException], bool]) -> Optional[BaseException]:
    """Walk the exception chain and return the first exception accepted by ``match``."""
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        if match(current):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None


def _tls_cause(error: BaseException) -> Optional[BaseException]:
    return _find_cause(error, lambda exc: isinstance(exc, ssl.SSLError))


def _refused_cause(error: BaseException) -> Optional[BaseException]:
    return _find_cause(
        error,
        lambda exc: isinstance(exc, ConnectionRefusedError)
        or (isinstance(exc, OSError) and exc.errno == errno.ECONNREFUSED),
    )


def classify_error(error: BaseException) -> ErrorKind:
    """Classify an exception raised while talking to the upstream service.

    Only a refused socket counts as CONNECTION_REFUSED. Other connect
    failures (name resolution, unreachable network) are NO_RESPONSE.

    Args:
        error: Exception raised by the transport

    Returns:
        The matching ErrorKind
    """
    if isinstance(error, httpx.HTTPStatusError):
        return ErrorKind.HTTP_STATUS
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    if _tls_cause(error) is not None or "CERTIFICATE_VERIFY_FAILED" in str(error):
        return ErrorKind.TLS
    if _refused_cause(error) is not None:
        return ErrorKind.CONNECTION_REFUSED
    if isinstance(error, httpx.RequestError):
        return ErrorKind.NO_RESPONSE
    return ErrorKind.UNKNOWN
