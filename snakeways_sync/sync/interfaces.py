"""Network interface synchronization from ``/interface``."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from snakeways_sync.storage.models import NetworkInterface
from snakeways_sync.storage.repository import MirrorRepository

from .mapping import map_interface_type, to_int


def build_interface(item: Dict[str, Any], log: Optional[logging.Logger] = None) -> NetworkInterface:
    port = item.get("Port")
    vlan_id = item.get("VlanID")
    return NetworkInterface(
        interface_id=str(item["InterfaceID"]),
        name=item.get("Name") or str(item["InterfaceID"]),
        status=to_int(item.get("Status")),
        type=map_interface_type(item.get("Type"), log),
        port=to_int(port) if port is not None else None,
        vlan_id=to_int(vlan_id) if vlan_id is not None else None,
    )


class InterfaceSynchronizer:
    """Writes upstream interfaces to the mirror."""

    def __init__(
        self,
        repository: MirrorRepository,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock

    async def sync(self, items: List[Dict[str, Any]]) -> int:
        self.logger.info("Syncing %d interfaces from Snake Ways", len(items))
        synced = 0
        for item in items:
            try:
                self.repository.upsert_interface(build_interface(item, self.logger), self.clock())
                synced += 1
            except Exception as error:
                self.logger.error("Failed to sync interface %s: %s", item.get("InterfaceID"), error)
        self.logger.info("Synced %d of %d interfaces", synced, len(items))
        return synced
