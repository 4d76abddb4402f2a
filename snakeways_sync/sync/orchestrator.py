"""
Sync orchestration.

A ``SyncOrchestrator`` ties one resource synchronizer to a ``PollLoop``
and exposes the manual operations: force sync and restart.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from snakeways_sync.client.poller import ParamsSource, PollLoop, UpstreamClient
from snakeways_sync.storage.models import ResourceType


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a forced sync."""
    count: int
    items: List[Any] = field(default_factory=list)


class SyncOrchestrator:
    """Polls one upstream endpoint and feeds each payload to a synchronizer.

    The synchronizer is any object with an ``async sync(items) -> int``
    method. ``reader`` returns the mirrored rows reported by ``force_sync``.
    """

    def __init__(
        self,
        resource_type: ResourceType,
        endpoint: str,
        payload_key: str,
        synchronizer,
        client: UpstreamClient,
        interval: float,
        startup_delay: float = 0.0,
        reader: Optional[Callable[[], List[Any]]] = None,
        params: ParamsSource = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.resource_type = resource_type
        self.endpoint = endpoint
        self.payload_key = payload_key
        self.synchronizer = synchronizer
        self.client = client
        self.reader = reader
        self.params = params
        self.logger = logger or logging.getLogger(__name__)
        self.loop = PollLoop(
            name=resource_type.value,
            endpoint=endpoint,
            interval=interval,
            fetch=client.fetch,
            handler=self.handle_payload,
            tracker=client.tracker,
            logger=self.logger,
            params=params,
            startup_delay=startup_delay,
        )

    @property
    def is_polling(self) -> bool:
        return self.loop.is_running

    def extract_items(self, payload: Any) -> Optional[List[Dict[str, Any]]]:
        """Pull the resource list out of a payload such as ``{"wan": [...]}``."""
        if not isinstance(payload, dict):
            return None
        items = payload.get(self.payload_key)
        return items if isinstance(items, list) else None

    async def handle_payload(self, payload: Any) -> int:
        """Poll loop callback. None and unexpected payloads are ignored."""
        items = self.extract_items(payload)
        if items is None:
            return 0
        return await self.synchronizer.sync(items)

    def start(self) -> bool:
        return self.loop.start()

    async def stop(self) -> None:
        await self.loop.stop()

    async def force_sync(self) -> SyncResult:
        """Fetch and sync immediately, outside the polling cadence.

        Request failures propagate to the caller.

        Returns:
            SyncResult with the number of items written and the mirrored rows
        """
        self.logger.info("Force syncing %s from Snake Ways", self.resource_type.value)
        params = self.params() if callable(self.params) else self.params
        payload = await self.client.get(self.endpoint, params=params)
        items = self.extract_items(payload)

        if not items:
            self.logger.warning("No %s data returned from Snake Ways", self.resource_type.value)
            return SyncResult(count=0, items=self._read())

        count = await self.synchronizer.sync(items)
        self.logger.info("Force sync completed: %d %s items synchronized", count, self.resource_type.value)
        return SyncResult(count=count, items=self._read())

    def restart_polling_if_stopped(self) -> bool:
        """Reset failure state and start polling again if it has stopped.

        Returns:
            True if polling was restarted, False if it was already running
        """
        if self.loop.is_running:
            return False
        self.logger.info("Attempting to restart %s polling", self.resource_type.value)
        self.client.tracker.reset_service_availability()
        self.client.tracker.reset_consecutive_failures(self.endpoint)
        return self.loop.start(with_delay=False)

    def status(self) -> Dict[str, Any]:
        return {
            "polling": self.is_polling,
            "service_available": self.client.tracker.service_available,
            "consecutive_failures": self.client.tracker.consecutive_failures(self.endpoint),
        }

    def _read(self) -> List[Any]:
        return self.reader() if self.reader is not None else []
