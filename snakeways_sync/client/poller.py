"""
Polling and one-shot access to the Snake Ways API.

``UpstreamClient`` applies the failure policy to every request and
``PollLoop`` repeats a fetch on a fixed interval until it is stopped or
the endpoint fails too many times in a row.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from .errors import ErrorKind, classify_error
from .failures import FailureTracker
from .transport import Transport

Params = Optional[Dict[str, Any]]
ParamsSource = Union[Params, Callable[[], Params]]
Fetch = Callable[[str, Params], Awaitable[Optional[Any]]]
Handler = Callable[[Optional[Any]], Awaitable[Any]]


class UpstreamClient:
    """Request methods with availability fast-fail and failure accounting.

    One-shot methods (``get``, ``post``, ``put``, ``delete``) return None
    without touching the network while the service is marked unavailable,
    and re-raise any failure after recording it. ``fetch`` is the polling
    variant: it always attempts the call and never raises.
    """

    def __init__(
        self,
        transport: Transport,
        tracker: FailureTracker,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.tracker = tracker
        self.logger = logger or logging.getLogger(__name__)

    async def get(self, endpoint: str, params: Params = None) -> Optional[Any]:
        return await self._one_shot("GET", endpoint, params=params)

    async def post(self, endpoint: str, payload: Any = None) -> Optional[Any]:
        return await self._one_shot("POST", endpoint, json=payload)

    async def put(self, endpoint: str, payload: Any = None) -> Optional[Any]:
        return await self._one_shot("PUT", endpoint, json=payload)

    async def delete(self, endpoint: str) -> Optional[Any]:
        return await self._one_shot("DELETE", endpoint)

    async def _one_shot(self, method: str, endpoint: str, **kwargs: Any) -> Optional[Any]:
        if not self.tracker.service_available:
            self.logger.warning(
                "%s %s skipped: service unavailable. Consecutive failures: %s",
                method, endpoint, self.tracker.describe(endpoint),
            )
            return None

        try:
            data = await self.transport.request(method, endpoint, **kwargs)
        except Exception as error:
            self._handle_error(method, endpoint, error)
            raise

        self.tracker.record_success(endpoint)
        return data

    async def fetch(self, endpoint: str, params: Params = None) -> Optional[Any]:
        """GET ``endpoint`` for a polling tick.

        Returns:
            Decoded payload, or None on any failure
        """
        try:
            data = await self.transport.get(endpoint, params=params)
        except Exception as error:
            self._handle_error("GET", endpoint, error)
            self.logger.warning(
                "Failed to poll %s. Consecutive failures: %s",
                endpoint, self.tracker.describe(endpoint),
            )
            if self.tracker.should_stop(endpoint):
                self.logger.error(
                    "Stopping polling for %s after %d consecutive failures",
                    endpoint, self.tracker.max_consecutive_failures,
                )
            return None

        self.tracker.record_success(endpoint)
        self.tracker.reset_service_availability()
        return data

    async def check_service_availability(self) -> bool:
        """Probe the API root once, for diagnostics only.

        Returns:
            True if the service answered (any status, or a TLS complaint)
        """
        endpoint = "/"
        try:
            await self.transport.get(endpoint)
        except Exception as error:
            kind = classify_error(error)
            self.tracker.record(endpoint, kind)
            if kind in (ErrorKind.TLS, ErrorKind.HTTP_STATUS):
                self.logger.warning("Snake Ways service answered with an error but is reachable: %s", error)
                return True
            self.tracker.mark_unavailable()
            self.logger.warning(
                "Snake Ways service is not available at %s: %s. Some features may be limited. "
                "Consecutive failures: %s",
                self.transport.base_url, str(error) or kind.value, self.tracker.describe(endpoint),
            )
            return False

        self.tracker.record_success(endpoint)
        self.tracker.reset_service_availability()
        return True

    def _handle_error(self, method: str, endpoint: str, error: BaseException) -> None:
        kind = classify_error(error)
        self.tracker.record(endpoint, kind)

        if kind == ErrorKind.CONNECTION_REFUSED:
            self.logger.warning(
                "Snake Ways service is not available at %s. Consecutive failures: %s",
                self.transport.base_url, self.tracker.describe(endpoint),
            )
        elif kind == ErrorKind.TIMEOUT:
            self.logger.warning(
                "Request to %s timed out. Consecutive failures: %s",
                endpoint, self.tracker.describe(endpoint),
            )
        elif kind == ErrorKind.TLS:
            self.logger.warning(
                "SSL certificate validation issue for %s %s, continuing since certificates are not verified",
                method, endpoint,
            )
        elif kind == ErrorKind.HTTP_STATUS:
            response = getattr(error, "response", None)
            status = response.status_code if response is not None else "?"
            body = response.text if response is not None else ""
            self.logger.error("%s %s failed with status %s: %s", method, endpoint, status, body)
        elif kind == ErrorKind.NO_RESPONSE:
            self.logger.error("%s %s failed: no response received from server", method, endpoint)
        else:
            self.logger.error("%s %s failed: %s", method, endpoint, error)


class PollLoop:
    """Cancellable fixed-interval polling of one endpoint.

    Each tick calls ``fetch`` and hands the result (payload or None) to
    ``handler``. The loop ends when ``stop()`` is called or once the
    tracker reports too many consecutive failures for the endpoint;
    after that it has to be started again explicitly.
    """

    def __init__(
        self,
        name: str,
        endpoint: str,
        interval: float,
        fetch: Fetch,
        handler: Handler,
        tracker: FailureTracker,
        logger: Optional[logging.Logger] = None,
        params: ParamsSource = None,
        startup_delay: float = 0.0,
    ):
        """Initialize the loop.

        Args:
            name: Label used in log messages
            endpoint: Endpoint path, also the failure counter key
            interval: Seconds between ticks
            fetch: Coroutine function returning a payload or None
            handler: Coroutine function receiving each result
            tracker: Failure tracker shared with the fetching client
            logger: Logger bound to the owning component
            params: Query parameters, or a callable producing them per tick
            startup_delay: Seconds to wait before the first tick
        """
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.name = name
        self.endpoint = endpoint
        self.interval = interval
        self.fetch = fetch
        self.handler = handler
        self.tracker = tracker
        self.logger = logger or logging.getLogger(__name__)
        self.params = params
        self.startup_delay = startup_delay
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, with_delay: bool = True) -> bool:
        """Start polling on the running event loop.

        Args:
            with_delay: Honour the startup delay before the first tick

        Returns:
            False if the loop was already running
        """
        if self.is_running:
            self.logger.info("%s polling is already active, not starting again", self.name)
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.ensure_future(self._run(self.startup_delay if with_delay else 0.0))
        return True

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the current tick to finish."""
        if not self.is_running:
            return
        self._stop_event.set()
        await self._task

    async def wait(self) -> None:
        """Wait until the loop ends on its own or is stopped."""
        if self._task is not None:
            await self._task

    def _current_params(self) -> Params:
        return self.params() if callable(self.params) else self.params

    async def _run(self, delay: float) -> None:
        self.logger.info("Starting to poll %s every %ss", self.endpoint, self.interval)
        if delay and await self._sleep(delay):
            return

        while not self._stop_event.is_set():
            if self.tracker.should_stop(self.endpoint):
                break

            payload = await self.fetch(self.endpoint, self._current_params())
            try:
                await self.handler(payload)
            except Exception:
                self.logger.exception("Unexpected error while handling %s data", self.name)

            if self.tracker.should_stop(self.endpoint):
                break
            if await self._sleep(self.interval):
                break

        if self.tracker.should_stop(self.endpoint):
            self.logger.warning(
                "Polling %s stopped after %d consecutive failures, restart required",
                self.name, self.tracker.max_consecutive_failures,
            )
        else:
            self.logger.info("Polling %s stopped", self.name)

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped first. Returns True if the stop signal arrived."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
