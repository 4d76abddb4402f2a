"""
LAN synchronization.

Mirrors ``/lan`` into the lans table together with the LAN to interface
links. Links to interfaces that are not mirrored yet are skipped, the
LAN itself is still written.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from snakeways_sync.storage.models import Lan
from snakeways_sync.storage.repository import MirrorRepository

from .mapping import MappingError, map_dhcp_status, map_qos, optional_address


def build_lan(item: Dict[str, Any], log: Optional[logging.Logger] = None) -> Lan:
    """Transform an upstream LAN object into a local Lan.

    Raises:
        MappingError: If the DHCP status is unknown
    """
    lan_id = str(item["LanID"])
    interface_ids = []
    for link in item.get("Interface") or []:
        interface_id = link.get("InterfaceID") if isinstance(link, dict) else link
        if interface_id:
            interface_ids.append(str(interface_id))

    return Lan(
        lan_id=lan_id,
        name=item.get("LanName") or lan_id,
        dhcp=map_dhcp_status(item.get("DHCP")),
        qos=map_qos(item.get("QOS"), log),
        ip_address=optional_address(item.get("IpAddress")),
        subnetmask=optional_address(item.get("Subnetmask")),
        dns1=optional_address(item.get("DNS1")),
        dns2=optional_address(item.get("DNS2")),
        dhcp_range_from=optional_address(item.get("DhcpRangeFrom")),
        dhcp_range_to=optional_address(item.get("DhcpRangeTo")),
        allow_gateway=bool(item.get("AllowGateway")),
        captive_portal=bool(item.get("CaptivePortal")),
        interface_ids=tuple(interface_ids),
    )


class LanSynchronizer:
    """Writes upstream LANs and their interface links to the mirror."""

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
        self.logger.info("Syncing %d LANs from Snake Ways", len(items))
        synced = 0
        for item in items:
            try:
                lan = build_lan(item, self.logger)
                skipped = self.repository.upsert_lan(lan, self.clock())
                for interface_id in skipped:
                    self.logger.warning(
                        "Interface %s not found for LAN %s, skipping link", interface_id, lan.lan_id
                    )
                synced += 1
            except MappingError as error:
                self.logger.error("Skipping LAN %s: %s", item.get("LanID"), error)
            except Exception as error:
                self.logger.error("Failed to sync LAN %s: %s", item.get("LanID"), error)
        self.logger.info("Synced %d of %d LANs", synced, len(items))
        return synced
