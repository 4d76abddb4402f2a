"""
Tests for sync orchestration, application wiring and the manual recovery facade.
"""

import asyncio
import os
import tempfile
from datetime import datetime
from unittest.mock import patch

import httpx
import pytest

from snakeways_sync.client.errors import ErrorKind
from snakeways_sync.client.transport import Transport
from snakeways_sync.config.loader import AppConfig, PollingConfig
from snakeways_sync.recovery.facade import RecoveryFacade, RestartResult
from snakeways_sync.storage.models import AccessLevel, ResourceType, UserSnapshot, UserStatus
from snakeways_sync.storage.repository import MirrorRepository, initialize_schema
from snakeways_sync.sync.application import SyncApplication

NOW = datetime(2024, 3, 15, 10, 0)

PAYLOADS = {
    "/wan": {"wan": [{"WanID": "w1", "WanName": "Starlink", "Status": 7, "DHCP": 0}]},
    "/interface": {"interface": [{"InterfaceID": "i1", "Name": "eth0", "Type": 0}]},
    "/lan": {"lan": [{"LanID": "l1", "LanName": "Crew", "DHCP": 0, "QOS": "low",
                      "Interface": [{"InterfaceID": "i1"}]}]},
    "/wanusage": {"wanusage": [{"WanID": "w1", "Name": "Starlink", "Bytes": 1000, "Starttime": 1}]},
    "/lanusage": {"lanusage": [{"LanID": "l1", "WanID": "w1", "Bytes": 600, "Starttime": 1}]},
    "/user": {"user": [{"UserID": "u1", "Login": "alice", "Pending": 0, "DataCredit": 9000}]},
    "/autocredit": {"autocredit": []},
    "/usage": {"usage": []},
}


def appliance(request: httpx.Request) -> httpx.Response:
    payload = PAYLOADS.get(request.url.path)
    if payload is None:
        return httpx.Response(404)
    return httpx.Response(200, json=payload)


def refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request) from ConnectionRefusedError(111, "Connection refused")


class RecoveryTestCase:
    """Application backed by a temporary mirror and a mock appliance."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_schema(self.db_path)
        self.repository = MirrorRepository(self.db_path)
        self.requests = []

    def teardown_method(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def make_application(self, handler=appliance, interval=0.001) -> SyncApplication:
        def recording(request):
            self.requests.append(request)
            return handler(request)

        config = AppConfig(
            db_path=self.db_path,
            polling={resource: PollingConfig(interval=interval) for resource in ResourceType},
        )
        transport = Transport("http://appliance", transport=httpx.MockTransport(recording))
        return SyncApplication(config, self.repository, transport=transport, clock=lambda: NOW)

    def make_facade(self, handler=appliance, interval=0.001) -> RecoveryFacade:
        return RecoveryFacade(self.make_application(handler, interval))


class TestForceSync(RecoveryTestCase):
    """Test forced one-shot syncs."""

    @pytest.mark.asyncio
    async def test_force_sync_writes_and_returns_mirrored_rows(self):
        facade = self.make_facade()

        result = await facade.force_sync(ResourceType.WAN)

        assert result.count == 1
        assert [wan.wan_id for wan in result.items] == ["w1"]
        assert self.repository.get_wan("w1").name == "Starlink"

    @pytest.mark.asyncio
    async def test_force_sync_in_dependency_order(self):
        facade = self.make_facade()

        for resource in ("interface", "lan", "wan", "wan_usage", "lan_usage", "user"):
            result = await facade.force_sync(resource)
            assert result.count == 1, resource

        assert self.repository.get_lan("l1").interface_ids == ("i1",)
        assert self.repository.fetch_lan_usage()[0].bytes == 600
        assert self.repository.fetch_user_snapshots(user_id="u1")[0].data_credit == 9000

    @pytest.mark.asyncio
    async def test_usage_endpoints_request_current_month(self):
        facade = self.make_facade()

        await facade.force_sync(ResourceType.WAN_USAGE)

        usage_requests = [r for r in self.requests if r.url.path == "/wanusage"]
        assert usage_requests[0].url.params["days"] == "15"

    @pytest.mark.asyncio
    async def test_usage_for_unmirrored_wan_is_skipped(self):
        facade = self.make_facade()

        result = await facade.force_sync("wan_usage")

        assert result.count == 0
        assert result.items == []

    @pytest.mark.asyncio
    async def test_force_sync_propagates_request_errors(self):
        facade = self.make_facade(handler=refused)

        with pytest.raises(httpx.ConnectError):
            await facade.force_sync(ResourceType.WAN)

        # The service is now marked unavailable, the next call fast-fails
        result = await facade.force_sync(ResourceType.WAN)
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_force_sync_with_empty_payload(self):
        facade = self.make_facade(handler=lambda r: httpx.Response(200, json={}))

        result = await facade.force_sync(ResourceType.LAN)

        assert result.count == 0

    @pytest.mark.asyncio
    async def test_unknown_resource_type(self):
        facade = self.make_facade()

        with pytest.raises(ValueError, match="must be one of"):
            await facade.force_sync("router")


class TestRestartPolling(RecoveryTestCase):
    """Test restart requests against real polling loops."""

    @pytest.mark.asyncio
    async def test_restart_after_polling_stopped(self):
        application = self.make_application(handler=refused)
        facade = RecoveryFacade(application)
        orchestrator = application.orchestrator(ResourceType.WAN)

        orchestrator.start()
        await asyncio.wait_for(orchestrator.loop.wait(), timeout=5)
        assert orchestrator.is_polling is False
        assert orchestrator.client.tracker.consecutive_failures("/wan") == 10
        assert orchestrator.client.tracker.service_available is False

        result = facade.restart_polling(ResourceType.WAN)

        assert result == RestartResult(restarted=True, message="Polling restarted successfully")
        assert orchestrator.is_polling is True
        await asyncio.wait_for(orchestrator.loop.wait(), timeout=5)
        await application.transport.aclose()

    @pytest.mark.asyncio
    async def test_restart_resets_failure_state_first(self):
        application = self.make_application(interval=3600)
        orchestrator = application.orchestrator(ResourceType.LAN)
        tracker = orchestrator.client.tracker
        for _ in range(10):
            tracker.record("/lan", ErrorKind.CONNECTION_REFUSED)

        assert orchestrator.restart_polling_if_stopped() is True
        await asyncio.sleep(0.05)

        assert tracker.service_available is True
        assert tracker.consecutive_failures("/lan") == 0
        assert self.repository.get_lan("l1") is not None
        await application.stop()

    @pytest.mark.asyncio
    async def test_restart_when_already_polling(self):
        application = self.make_application(interval=3600)
        facade = RecoveryFacade(application)
        application.orchestrator("user").start()

        result = facade.restart_polling("user")

        assert result.restarted is False
        assert result.message == "Polling was already active, no restart needed"
        await application.stop()

    def test_restart_failure_is_reported_not_raised(self):
        facade = self.make_facade()

        with patch.object(facade.application.orchestrator("wan"), "restart_polling_if_stopped",
                          side_effect=RuntimeError("no event loop")):
            result = facade.restart_polling("wan")

        assert result == RestartResult(restarted=False, message="Failed to restart polling: no event loop")

    def test_restart_unknown_resource_is_reported(self):
        result = self.make_facade().restart_polling("router")

        assert result.restarted is False
        assert result.message.startswith("Failed to restart polling: Unknown resource type 'router'")

    @pytest.mark.asyncio
    async def test_polling_status(self):
        application = self.make_application(interval=3600)
        facade = RecoveryFacade(application)
        application.orchestrator("interface").start()
        await asyncio.sleep(0.01)

        status = facade.polling_status()

        assert set(status.keys()) == {resource.value for resource in ResourceType}
        assert status["interface"]["polling"] is True
        assert status["wan"] == {"polling": False, "service_available": True, "consecutive_failures": 0}
        await application.stop()


class TestGetUsage(RecoveryTestCase):
    """Test usage queries through the facade."""

    def _snapshot(self, when, data_credit):
        return UserSnapshot(
            user_id="u1", snapshot_date=when, name="alice", access_level=AccessLevel.USER,
            auto_credit=False, data_credit=data_credit, time_credit=0, status=UserStatus.REGISTERED,
        )

    @pytest.mark.asyncio
    async def test_usage_between_dates(self):
        facade = self.make_facade()
        await facade.force_sync("user")
        self.repository.record_user_snapshot(self._snapshot(datetime(2024, 3, 1), 12000))
        self.repository.record_user_snapshot(self._snapshot(datetime(2024, 3, 20), 4000))

        result = facade.get_usage("u1", datetime(2024, 3, 1).date(), datetime(2024, 3, 20))

        # Snapshots on the 1st, 15th (9000) and 20th; first to last is 8000
        assert result.snapshot_count == 3
        assert result.data_usage == 8000
        assert result.entity_id == "u1"

    def test_unknown_user_has_zero_usage(self):
        result = self.make_facade().get_usage("nobody")

        assert result.snapshot_count == 0
        assert result.data_usage == 0
        assert result.entity_id == "nobody"


class TestSyncApplication(RecoveryTestCase):

    def test_one_orchestrator_per_resource_with_own_tracker(self):
        application = self.make_application()

        assert set(application.orchestrators) == set(ResourceType)
        trackers = {id(o.client.tracker) for o in application.orchestrators.values()}
        assert len(trackers) == len(ResourceType)

    def test_default_startup_delays(self):
        config = AppConfig(db_path=self.db_path)
        transport = Transport("http://appliance", transport=httpx.MockTransport(appliance))
        application = SyncApplication(config, self.repository, transport=transport)

        assert application.orchestrator("lan").loop.startup_delay == 5
        assert application.orchestrator("wan_usage").loop.startup_delay == 5
        assert application.orchestrator("lan_usage").loop.startup_delay == 10
        assert application.orchestrator("wan").loop.startup_delay == 0

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        application = self.make_application(interval=3600)

        await application.start()
        assert all(o.is_polling for o in application.orchestrators.values())

        await application.stop()
        assert not any(o.is_polling for o in application.orchestrators.values())
