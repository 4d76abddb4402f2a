"""
WAN synchronization.

Mirrors ``/wan`` into the wans table. An unknown DHCP code fails the
item, every other unknown code falls back with a warning.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from snakeways_sync.storage.models import Wan
from snakeways_sync.storage.repository import MirrorRepository

from .mapping import (
    MappingError,
    map_dhcp_status,
    map_prepaid_access,
    map_usage_limit,
    map_usage_period,
    map_wan_status,
    optional_address,
    parse_upstream_datetime,
    to_int,
)


def build_wan(item: Dict[str, Any], log: Optional[logging.Logger] = None) -> Wan:
    """Transform an upstream WAN object into a local Wan.

    Raises:
        MappingError: If the DHCP status is unknown
        KeyError: If WanID is missing
    """
    wan_id = str(item["WanID"])
    start_timestamp = item.get("UsageStartTimestamp")
    interface_id = item.get("InterfaceID")
    return Wan(
        wan_id=wan_id,
        name=item.get("WanName") or wan_id,
        status=map_wan_status(item.get("Status"), log),
        allow_prepaid=map_prepaid_access(item.get("AllowPrepaid"), log),
        dhcp=map_dhcp_status(item.get("DHCP")),
        usage_limited=map_usage_limit(item.get("UsageLimited"), log),
        usage_period_type=map_usage_period(item.get("UsagePeriodType"), "UsagePeriodType", log),
        prepaid_usage_period_type=map_usage_period(
            item.get("PrepaidUsagePeriodType"), "PrepaidUsagePeriodType", log
        ),
        dns1=optional_address(item.get("DNS1")),
        dns2=optional_address(item.get("DNS2")),
        interface_id=str(interface_id) if interface_id else None,
        ip_address=optional_address(item.get("IpAddress")),
        ip_gateway=optional_address(item.get("IpGateway")),
        subnetmask=optional_address(item.get("Subnetmask")),
        prepaid_usage_max_volume=to_int(item.get("PrepaidUsageMaxVolume")),
        switch_priority=to_int(item.get("SwitchPriority")),
        usage_blocked=bool(to_int(item.get("UsageBlocked"))),
        usage_bytes=to_int(item.get("UsageBytes")),
        usage_max_bytes=to_int(item.get("UsageMaxBytes")),
        usage_period=to_int(item.get("UsagePeriod")),
        usage_start=parse_upstream_datetime(item.get("UsageStart")),
        usage_start_timestamp=to_int(start_timestamp) if start_timestamp is not None else None,
    )


class WanSynchronizer:
    """Writes upstream WANs to the mirror."""

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
        self.logger.info("Syncing %d WANs from Snake Ways", len(items))
        synced = 0
        for item in items:
            try:
                self.repository.upsert_wan(build_wan(item, self.logger), self.clock())
                synced += 1
            except MappingError as error:
                self.logger.error("Skipping WAN %s: %s", item.get("WanID"), error)
            except Exception as error:
                self.logger.error("Failed to sync WAN %s: %s", item.get("WanID"), error)
        self.logger.info("Synced %d of %d WANs", synced, len(items))
        return synced
