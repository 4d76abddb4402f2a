"""
WAN and LAN usage synchronization.

Turns ``/wanusage`` and ``/lanusage`` records into daily counter
snapshots. Records whose WAN or LAN is not mirrored yet are skipped.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from snakeways_sync.storage.models import LanUsageSnapshot, WanUsageSnapshot
from snakeways_sync.storage.repository import MirrorRepository, MissingReferenceError

from .mapping import to_int


def _end_time(value: Any) -> Optional[int]:
    # 0 marks the currently active usage period
    end = to_int(value)
    return end if end > 0 else None


def build_wan_usage(item: Dict[str, Any], snapshot_date: datetime) -> WanUsageSnapshot:
    wan_id = str(item["WanID"])
    return WanUsageSnapshot(
        wan_id=wan_id,
        snapshot_date=snapshot_date,
        name=item.get("Name") or wan_id,
        bytes=to_int(item.get("Bytes")),
        max_bytes=to_int(item.get("MaxBytes")),
        start_time=to_int(item.get("Starttime")),
        end_time=_end_time(item.get("Endtime")),
    )


def build_lan_usage(item: Dict[str, Any], snapshot_date: datetime) -> LanUsageSnapshot:
    lan_id = str(item["LanID"])
    wan_id = str(item["WanID"])
    return LanUsageSnapshot(
        lan_id=lan_id,
        wan_id=wan_id,
        snapshot_date=snapshot_date,
        lan_name=item.get("LanName") or lan_id,
        wan_name=item.get("WanName") or wan_id,
        bytes=to_int(item.get("Bytes")),
        start_time=to_int(item.get("Starttime")),
        end_time=_end_time(item.get("Endtime")),
    )


class WanUsageSynchronizer:
    """Records one usage snapshot per WAN per day."""

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
        self.logger.info("Syncing %d WAN usage records from Snake Ways", len(items))
        synced = 0
        for item in items:
            try:
                self.repository.record_wan_usage_snapshot(build_wan_usage(item, self.clock()))
                synced += 1
            except MissingReferenceError:
                self.logger.warning("WAN %s not found in database, skipping usage record", item.get("WanID"))
            except Exception as error:
                self.logger.error("Failed to sync usage for WAN %s: %s", item.get("WanID"), error)
        self.logger.info("Synced %d of %d WAN usage records", synced, len(items))
        return synced


class LanUsageSynchronizer:
    """Records one usage snapshot per (LAN, WAN) pair per day."""

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
        self.logger.info("Syncing %d LAN usage records from Snake Ways", len(items))
        synced = 0
        for item in items:
            try:
                self.repository.record_lan_usage_snapshot(build_lan_usage(item, self.clock()))
                synced += 1
            except MissingReferenceError as error:
                self.logger.warning(
                    "Skipping LAN usage record for LAN %s via WAN %s: %s",
                    item.get("LanID"), item.get("WanID"), error,
                )
            except Exception as error:
                self.logger.error(
                    "Failed to sync usage for LAN %s via WAN %s: %s",
                    item.get("LanID"), item.get("WanID"), error,
                )
        self.logger.info("Synced %d of %d LAN usage records", synced, len(items))
        return synced
