"""
Manual recovery facade.

Entry point for operators and the outer service layer. Sync requests
propagate errors because a person is waiting for the answer; restart
requests report failures as structured text instead.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union

from snakeways_sync.core.periods import as_datetime
from snakeways_sync.core.usage import UsageResult, compute_user_usage
from snakeways_sync.storage.models import ResourceType
from snakeways_sync.storage.repository import MirrorRepository
from snakeways_sync.sync.application import SyncApplication
from snakeways_sync.sync.orchestrator import SyncResult

logger = logging.getLogger(__name__)

ResourceRef = Union[ResourceType, str]


@dataclass(frozen=True)
class RestartResult:
    """Outcome of a restart request."""
    restarted: bool
    message: str


class RecoveryFacade:
    """Manual operations over a running SyncApplication."""

    def __init__(self, application: SyncApplication, repository: Optional[MirrorRepository] = None):
        self.application = application
        self.repository = repository or application.repository

    async def force_sync(self, resource_type: ResourceRef) -> SyncResult:
        """Poll and sync one resource type right now.

        Args:
            resource_type: ResourceType or its name, e.g. ``wan_usage``

        Returns:
            SyncResult with the synced count and the mirrored rows

        Raises:
            ValueError: If the resource type is unknown
            httpx.HTTPError: If the upstream request fails
        """
        return await self.application.orchestrator(resource_type).force_sync()

    def restart_polling_if_stopped(self, resource_type: ResourceRef) -> bool:
        """Reset failure state and restart polling if it has stopped.

        Returns:
            True if polling was restarted, False if it was already running
        """
        return self.application.orchestrator(resource_type).restart_polling_if_stopped()

    def restart_polling(self, resource_type: ResourceRef) -> RestartResult:
        """Restart polling and describe what happened. Never raises."""
        try:
            restarted = self.restart_polling_if_stopped(resource_type)
        except Exception as error:
            logger.error("Failed to restart polling for %s: %s", resource_type, error)
            return RestartResult(restarted=False, message=f"Failed to restart polling: {error}")

        if restarted:
            return RestartResult(restarted=True, message="Polling restarted successfully")
        return RestartResult(restarted=False, message="Polling was already active, no restart needed")

    def get_usage(
        self,
        entity_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> UsageResult:
        """Usage of one user between two dates (whole days, both inclusive).

        Missing or insufficient snapshots give zero usage.
        """
        start = as_datetime(start_date) if start_date is not None else None
        end = as_datetime(end_date) if end_date is not None else None
        snapshots = self.repository.fetch_user_snapshots(user_id=entity_id)
        return compute_user_usage(snapshots, start, end, entity_id=entity_id)

    def polling_status(self) -> Dict[str, Dict[str, Any]]:
        """Polling and failure state of every resource type."""
        return {
            resource_type.value: orchestrator.status()
            for resource_type, orchestrator in self.application.orchestrators.items()
        }
