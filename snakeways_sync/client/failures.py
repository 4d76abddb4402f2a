"""
Consecutive failure tracking.

Holds the per-endpoint failure counters and the availability flag that
decide when a polling loop stops and when one-shot calls fast-fail.
"""

import logging
from typing import Dict, Optional

from .errors import ErrorKind

MAX_CONSECUTIVE_FAILURES = 10


class FailureTracker:
    """Consecutive failure counts keyed by endpoint plus service availability.

    Lives only in memory; a process restart or a manual recovery call
    brings every counter back to zero.
    """

    def __init__(
        self,
        max_consecutive_failures: int = MAX_CONSECUTIVE_FAILURES,
        logger: Optional[logging.Logger] = None,
    ):
        if max_consecutive_failures <= 0:
            raise ValueError("max_consecutive_failures must be > 0")
        self.max_consecutive_failures = max_consecutive_failures
        self.logger = logger or logging.getLogger(__name__)
        self.service_available = True
        self._failures: Dict[str, int] = {}

    def consecutive_failures(self, endpoint: str) -> int:
        return self._failures.get(endpoint, 0)

    def should_stop(self, endpoint: str) -> bool:
        """Check if polling of ``endpoint`` has failed too many times in a row."""
        return self.consecutive_failures(endpoint) >= self.max_consecutive_failures

    def record(self, endpoint: str, kind: ErrorKind) -> None:
        """Apply a classified failure to the counters.

        Connection refused flips availability and counts. Timeouts, missing
        responses and unknown errors only count. TLS and HTTP status errors
        prove the service is reachable, so they reset the counter.
        """
        if kind == ErrorKind.CONNECTION_REFUSED:
            self.service_available = False
            self._increment(endpoint)
        elif kind in (ErrorKind.TLS, ErrorKind.HTTP_STATUS):
            self.reset_consecutive_failures(endpoint)
        else:
            self._increment(endpoint)

    def record_success(self, endpoint: str) -> None:
        self.reset_consecutive_failures(endpoint)

    def mark_unavailable(self) -> None:
        self.service_available = False

    def reset_consecutive_failures(self, endpoint: str) -> None:
        current = self.consecutive_failures(endpoint)
        if current > 0:
            self.logger.info(
                "Resetting consecutive failures counter for %s from %d to 0", endpoint, current
            )
            self._failures[endpoint] = 0

    def reset_service_availability(self) -> None:
        if not self.service_available:
            self.logger.info("Resetting service availability status from unavailable to available")
            self.service_available = True

    def describe(self, endpoint: str) -> str:
        """Human readable failure count, e.g. ``3/10``."""
        return f"{self.consecutive_failures(endpoint)}/{self.max_consecutive_failures}"

    def _increment(self, endpoint: str) -> None:
        self._failures[endpoint] = self.consecutive_failures(endpoint) + 1
