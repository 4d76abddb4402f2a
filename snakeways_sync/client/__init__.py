"""
Upstream client for the Snake Ways appliance.

Provides the HTTP transport, failure tracking and the polling loop.
"""

from .errors import ErrorKind, classify_error
from .failures import MAX_CONSECUTIVE_FAILURES, FailureTracker
from .poller import PollLoop, UpstreamClient
from .transport import Transport

__all__ = [
    "ErrorKind",
    "classify_error",
    "MAX_CONSECUTIVE_FAILURES",
    "FailureTracker",
    "PollLoop",
    "UpstreamClient",
    "Transport",
]
