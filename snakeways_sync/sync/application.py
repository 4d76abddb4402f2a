"""
Application wiring.

Builds one orchestrator per resource type, each with its own failure
tracker and logger, on top of a shared transport and repository.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Union

from snakeways_sync.client.failures import FailureTracker
from snakeways_sync.client.poller import UpstreamClient
from snakeways_sync.client.transport import Transport
from snakeways_sync.config.loader import AppConfig, parse_resource_type
from snakeways_sync.core.periods import days_since_month_start, start_of_day
from snakeways_sync.storage.models import ResourceType
from snakeways_sync.storage.repository import MirrorRepository

from .interfaces import InterfaceSynchronizer
from .lans import LanSynchronizer
from .orchestrator import SyncOrchestrator
from .usage import LanUsageSynchronizer, WanUsageSynchronizer
from .users import UserSynchronizer
from .wans import WanSynchronizer

logger = logging.getLogger(__name__)


class SyncApplication:
    """All resource orchestrators of one process.

    Startup ordering between resources that reference each other is
    expressed through the configured startup delays.
    """

    def __init__(
        self,
        config: AppConfig,
        repository: MirrorRepository,
        transport: Optional[Transport] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.repository = repository
        self.transport = transport or Transport.from_config(config.upstream)
        self.clock = clock
        self.orchestrators: Dict[ResourceType, SyncOrchestrator] = {}
        self._build()

    def _client(self, component_logger: logging.Logger) -> UpstreamClient:
        tracker = FailureTracker(logger=component_logger)
        return UpstreamClient(self.transport, tracker, component_logger)

    def _current_month_days(self) -> Dict[str, int]:
        return {"days": days_since_month_start(self.clock())}

    def _build(self) -> None:
        repository = self.repository
        clock = self.clock

        def today():
            return start_of_day(clock())

        definitions = [
            (ResourceType.USER, "/user", "user",
             lambda log, client: UserSynchronizer(repository, client, log, clock),
             repository.list_users, None),
            (ResourceType.WAN, "/wan", "wan",
             lambda log, client: WanSynchronizer(repository, log, clock),
             repository.list_wans, None),
            (ResourceType.INTERFACE, "/interface", "interface",
             lambda log, client: InterfaceSynchronizer(repository, log, clock),
             repository.list_interfaces, None),
            (ResourceType.LAN, "/lan", "lan",
             lambda log, client: LanSynchronizer(repository, log, clock),
             repository.list_lans, None),
            (ResourceType.WAN_USAGE, "/wanusage", "wanusage",
             lambda log, client: WanUsageSynchronizer(repository, log, clock),
             lambda: repository.fetch_wan_usage(start=today()), self._current_month_days),
            (ResourceType.LAN_USAGE, "/lanusage", "lanusage",
             lambda log, client: LanUsageSynchronizer(repository, log, clock),
             lambda: repository.fetch_lan_usage(start=today()), self._current_month_days),
        ]

        for resource_type, endpoint, payload_key, make_synchronizer, reader, params in definitions:
            component_logger = logging.getLogger(f"snakeways_sync.sync.{resource_type.value}")
            client = self._client(component_logger)
            polling = self.config.polling_for(resource_type)
            self.orchestrators[resource_type] = SyncOrchestrator(
                resource_type=resource_type,
                endpoint=endpoint,
                payload_key=payload_key,
                synchronizer=make_synchronizer(component_logger, client),
                client=client,
                interval=polling.interval,
                startup_delay=polling.startup_delay,
                reader=reader,
                params=params,
                logger=component_logger,
            )

    def orchestrator(self, resource_type: Union[ResourceType, str]) -> SyncOrchestrator:
        """Look up the orchestrator for a resource type or its name.

        Raises:
            ValueError: If the name is not a known resource type
        """
        if not isinstance(resource_type, ResourceType):
            resource_type = parse_resource_type(resource_type)
        return self.orchestrators[resource_type]

    async def check_service_availability(self) -> bool:
        client = UpstreamClient(self.transport, FailureTracker(logger=logger), logger)
        return await client.check_service_availability()

    async def start(self) -> None:
        """Probe the service and start every polling loop."""
        await self.check_service_availability()
        for orchestrator in self.orchestrators.values():
            orchestrator.start()

    async def stop(self) -> None:
        """Stop every polling loop and close the transport."""
        for orchestrator in self.orchestrators.values():
            await orchestrator.stop()
        await self.transport.aclose()

    async def run_forever(self) -> None:
        """Start polling and keep running until cancelled.

        Stopped loops are not restarted automatically, they wait for a
        manual restart.
        """
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()
