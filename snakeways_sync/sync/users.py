"""
User synchronization.

Mirrors ``/user`` into the users table and records the daily counter
snapshot. Each user is enriched with its autocredit policy and the
bytes it used so far this month.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from snakeways_sync.client.poller import UpstreamClient
from snakeways_sync.core.periods import days_since_month_start
from snakeways_sync.storage.models import (
    AutocreditDefinition,
    AutocreditInterval,
    AutocreditStatus,
    AutocreditType,
    UsageRecordType,
    User,
    UserSnapshot,
)
from snakeways_sync.storage.repository import MirrorRepository

from .mapping import (
    from_timestamp,
    map_access_level,
    map_autocredit_definition,
    map_autocredit_interval,
    map_autocredit_status,
    map_autocredit_type,
    map_user_status,
    to_int,
)


def summarize_usage(records: List[Dict[str, Any]], autocredit: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """Derive the month-to-date usage counters for one user.

    Debit is the sum of received and transmitted bytes, the quota is the
    autocredit value and the credit is what remains of the quota.

    Args:
        records: Usage records (record type 2) for the current month
        autocredit: The user's autocredit policy, if any

    Returns:
        Dictionary with usage_debit, usage_quota and usage_credit
    """
    debit = sum(to_int(record.get("RX")) + to_int(record.get("TX")) for record in records)
    quota = to_int(autocredit.get("CreditValue")) if autocredit else 0
    return {
        "usage_debit": max(0, debit),
        "usage_quota": max(0, quota),
        "usage_credit": max(0, quota - debit),
    }


def build_user(
    item: Dict[str, Any],
    autocredit: Optional[Dict[str, Any]],
    usage: Dict[str, int],
    log: Optional[logging.Logger] = None,
) -> User:
    """Transform an upstream user object into a local User."""
    if autocredit:
        autocredit_fields = dict(
            autocredit_definition=map_autocredit_definition(autocredit.get("CreditDefinition")),
            autocredit_interval=map_autocredit_interval(autocredit.get("CreditInterval")),
            autocredit_type=map_autocredit_type(autocredit.get("CreditType")),
            autocredit_value=to_int(autocredit.get("CreditValue")),
            autocredit_last_update=from_timestamp(autocredit.get("LastTopup")),
            autocredit_status=map_autocredit_status(autocredit.get("Status")),
        )
    else:
        autocredit_fields = dict(
            autocredit_definition=AutocreditDefinition.NOT_FOUND,
            autocredit_interval=AutocreditInterval.MONTHLY,
            autocredit_type=AutocreditType.ADD_VALUE,
            autocredit_value=None,
            autocredit_last_update=None,
            autocredit_status=AutocreditStatus.DISABLED,
        )

    display_name = item.get("DisplayName") or item.get("Login") or str(item["UserID"])
    return User(
        user_id=str(item["UserID"]),
        name=display_name,
        display_name=item.get("DisplayName"),
        access_level=map_access_level(item.get("AccessLevel"), log),
        auto_credit=to_int(item.get("AutoCreditEnabled")) == 1,
        data_credit=to_int(item.get("DataCredit")),
        time_credit=to_int(item.get("TimeCredit")),
        status=map_user_status(item.get("Pending")),
        portal_connected_at=from_timestamp(item.get("PortalConnected")),
        usage_debit=usage["usage_debit"],
        usage_credit=usage["usage_credit"],
        usage_quota=usage["usage_quota"],
        **autocredit_fields,
    )


def snapshot_of(user: User, snapshot_date: datetime) -> UserSnapshot:
    return UserSnapshot(
        user_id=user.user_id,
        snapshot_date=snapshot_date,
        name=user.name,
        access_level=user.access_level,
        auto_credit=user.auto_credit,
        data_credit=user.data_credit,
        time_credit=user.time_credit,
        status=user.status,
        autocredit_value=user.autocredit_value,
        usage_debit=user.usage_debit,
        usage_credit=user.usage_credit,
        usage_quota=user.usage_quota,
    )


class UserSynchronizer:
    """Writes upstream users and their daily snapshots to the mirror."""

    def __init__(
        self,
        repository: MirrorRepository,
        client: UpstreamClient,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock

    async def fetch_autocredits(self) -> Dict[str, Dict[str, Any]]:
        """Fetch every autocredit policy keyed by user ID. Empty on failure."""
        try:
            data = await self.client.get("/autocredit")
        except Exception as error:
            self.logger.error("Failed to fetch autocredit data: %s", error)
            return {}
        items = data.get("autocredit") if isinstance(data, dict) else None
        if not isinstance(items, list):
            if data:
                self.logger.warning("Unexpected autocredit payload, treating as empty")
            return {}
        return {
            str(item["UserID"]): item
            for item in items
            if isinstance(item, dict) and item.get("UserID")
        }

    async def fetch_usage(self, user_id: str, days: int) -> List[Dict[str, Any]]:
        """Fetch the user's byte usage records for the last ``days`` days. Empty on failure."""
        params = {"days": days, "userid": user_id, "recordtype": UsageRecordType.USAGE.value}
        try:
            data = await self.client.get("/usage", params=params)
        except Exception as error:
            self.logger.error("Failed to fetch usage for user %s: %s", user_id, error)
            return []
        records = data.get("usage") if isinstance(data, dict) else None
        if not isinstance(records, list):
            return []
        return [record for record in records if isinstance(record, dict)]

    async def sync(self, items: List[Dict[str, Any]]) -> int:
        """Upsert every user and today's snapshot.

        Returns:
            Number of users written
        """
        self.logger.info("Syncing %d users from Snake Ways", len(items))
        autocredits = await self.fetch_autocredits()
        days = days_since_month_start(self.clock())
        self.logger.info("Fetching usage data for %d days from start of month", days)

        synced = 0
        for item in items:
            user_id = item.get("UserID")
            if not user_id:
                self.logger.warning("Skipping user without UserID: %r", item)
                continue
            user_id = str(user_id)
            try:
                autocredit = autocredits.get(user_id)
                records = await self.fetch_usage(user_id, days)
                user = build_user(item, autocredit, summarize_usage(records, autocredit), self.logger)
                now = self.clock()
                self.repository.upsert_user(user, now)
                created = self.repository.record_user_snapshot(snapshot_of(user, now))
                self.logger.debug(
                    "%s daily snapshot for %s (%s)",
                    "Created" if created else "Updated", user.name, user.user_id,
                )
                synced += 1
            except Exception as error:
                self.logger.error("Failed to sync user %s: %s", user_id, error)

        self.logger.info("Synced %d of %d users", synced, len(items))
        return synced
