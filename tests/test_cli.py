"""
Tests for the CLI interface.
"""
import os
import tempfile
from datetime import datetime
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from snakeways_sync.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from snakeways_sync.client.transport import Transport
from snakeways_sync.storage.models import AccessLevel, User, UserSnapshot, UserStatus
from snakeways_sync.storage.repository import MirrorRepository, initialize_schema

runner = CliRunner()


PAYLOADS = {
    "/wan": {"wan": [{"WanID": "w1", "WanName": "Starlink", "DHCP": 0}]},
    "/interface": {"interface": [{"InterfaceID": "i1", "Name": "eth0", "Type": 0}]},
    "/lan": {"lan": [{"LanID": "l1", "LanName": "Crew", "DHCP": 0, "QOS": "low",
                      "Interface": [{"InterfaceID": "i1"}]}]},
    "/wanusage": {"wanusage": [{"WanID": "w1", "Name": "Starlink", "Bytes": 512,
                                "MaxBytes": 1024 ** 3, "Starttime": 1}]},
    "/lanusage": {"lanusage": [{"LanID": "l1", "WanID": "w1", "LanName": "Crew", "WanName": "Starlink",
                                "Bytes": 2048, "Starttime": int(datetime.now().timestamp())}]},
}


def appliance(request: httpx.Request) -> httpx.Response:
    payload = PAYLOADS.get(request.url.path)
    if payload is None:
        return httpx.Response(404)
    return httpx.Response(200, json=payload)


def refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request) from ConnectionRefusedError(111, "Connection refused")


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep the CLI from replacing the test run's log handlers."""
    with patch('snakeways_sync.cli.main.setup_logging'):
        yield


@pytest.fixture
def db_env():
    """Point the CLI at a temporary database."""
    temp_dir = tempfile.mkdtemp()
    db_path = os.path.join(temp_dir, "cli.db")
    yield {"SNAKE_WAYS_DB_PATH": db_path}
    import shutil
    shutil.rmtree(temp_dir, ignore_errors=True)


def mock_transport(handler):
    return patch.object(
        Transport, "from_config",
        side_effect=lambda config: Transport(config.base_url, transport=httpx.MockTransport(handler)),
    )


def seed_user_history(db_path: str) -> None:
    initialize_schema(db_path)
    repository = MirrorRepository(db_path)
    repository.upsert_user(User(
        user_id="u1", name="Alice", display_name="Alice", access_level=AccessLevel.USER,
        auto_credit=False, data_credit=0, time_credit=0, status=UserStatus.REGISTERED,
    ))
    for day, credit, seconds in ((1, 3 * 1024 ** 2, 7200), (10, 1024 ** 2, 1800)):
        repository.record_user_snapshot(UserSnapshot(
            user_id="u1", snapshot_date=datetime(2024, 3, day), name="Alice",
            access_level=AccessLevel.USER, auto_credit=False, data_credit=credit,
            time_credit=seconds, status=UserStatus.REGISTERED,
        ))


class TestCLI:
    """Test CLI commands."""

    def test_no_command_prints_hint(self, db_env):
        result = runner.invoke(app, [], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "Use --help" in result.output

    def test_missing_config_file_fails(self, db_env):
        result = runner.invoke(app, ["--config", "/nonexistent/config.yaml", "init"], env=db_env)

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error loading configuration" in result.output

    def test_init_creates_database(self, db_env):
        result = runner.invoke(app, ["init"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "Database initialized successfully" in result.output
        assert os.path.exists(db_env["SNAKE_WAYS_DB_PATH"])

    def test_check_reachable(self, db_env):
        with mock_transport(appliance):
            result = runner.invoke(app, ["check"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "reachable" in result.output

    def test_check_unreachable(self, db_env):
        with mock_transport(refused):
            result = runner.invoke(app, ["check"], env=db_env)

        assert result.exit_code == EXIT_CODE_FAIL
        assert "not available" in result.output

    def test_sync_resource(self, db_env):
        with mock_transport(appliance):
            result = runner.invoke(app, ["sync", "wan"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "Force sync: wan" in result.output
        assert MirrorRepository(db_env["SNAKE_WAYS_DB_PATH"]).get_wan("w1") is not None

    def test_sync_unknown_resource(self, db_env):
        result = runner.invoke(app, ["sync", "router"], env=db_env)

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unknown resource type" in result.output

    def test_sync_upstream_down(self, db_env):
        with mock_transport(refused):
            result = runner.invoke(app, ["sync", "wan"], env=db_env)

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Sync failed" in result.output

    def test_usage_without_database(self, db_env):
        result = runner.invoke(app, ["usage", "u1"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "No usage data found" in result.output

    def test_usage_for_user(self, db_env):
        seed_user_history(db_env["SNAKE_WAYS_DB_PATH"])

        result = runner.invoke(app, ["usage", "u1", "--start", "2024-03-01", "--end", "2024-03-31"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "2 MB" in result.output
        assert "1h 30m" in result.output

    def test_usage_invalid_date(self, db_env):
        result = runner.invoke(app, ["usage", "u1", "--start", "March"], env=db_env)

        assert result.exit_code != EXIT_CODE_PASS

    def test_history_lists_users(self, db_env):
        seed_user_history(db_env["SNAKE_WAYS_DB_PATH"])

        result = runner.invoke(app, ["history"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "Alice" in result.output
        assert "2 MB" in result.output

    def test_history_empty(self, db_env):
        initialize_schema(db_env["SNAKE_WAYS_DB_PATH"])

        result = runner.invoke(app, ["history", "--start", "2030-01-01"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "No user snapshots found" in result.output

    def test_wan_chart_invalid_period(self, db_env):
        initialize_schema(db_env["SNAKE_WAYS_DB_PATH"])

        result = runner.invoke(app, ["wan-chart", "--period", "hourly"], env=db_env)

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unknown period" in result.output

    def test_wan_chart_without_data(self, db_env):
        initialize_schema(db_env["SNAKE_WAYS_DB_PATH"])

        result = runner.invoke(app, ["wan-chart"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "No WAN usage found" in result.output


class TestNetworkReports:
    """Test the WAN and LAN report commands over a synced mirror."""

    def sync_network(self, db_env):
        with mock_transport(appliance):
            for resource in ("interface", "lan", "wan", "wan_usage", "lan_usage"):
                result = runner.invoke(app, ["sync", resource], env=db_env)
                assert result.exit_code == EXIT_CODE_PASS, result.output

    def test_wan_usage(self, db_env):
        self.sync_network(db_env)

        result = runner.invoke(app, ["wan-usage", "--period", "daily"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "Starlink" in result.output
        assert "1 GB" in result.output
        assert "0.0%" in result.output

    def test_wan_usage_without_data(self, db_env):
        initialize_schema(db_env["SNAKE_WAYS_DB_PATH"])

        result = runner.invoke(app, ["wan-usage"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "No WAN usage found" in result.output

    def test_lan_usage(self, db_env):
        self.sync_network(db_env)

        result = runner.invoke(app, ["lan-usage", "--period", "monthly"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "Crew" in result.output
        assert "2 KB" in result.output

    def test_lan_usage_invalid_period(self, db_env):
        initialize_schema(db_env["SNAKE_WAYS_DB_PATH"])

        result = runner.invoke(app, ["lan-usage", "--period", "yearly"], env=db_env)

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unknown period" in result.output

    def test_lans_with_interfaces_and_usage(self, db_env):
        self.sync_network(db_env)

        result = runner.invoke(app, ["lans"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "Crew" in result.output
        assert "eth0" in result.output
        assert "2 KB" in result.output

    def test_lans_filtered_by_unused_wan(self, db_env):
        self.sync_network(db_env)

        result = runner.invoke(app, ["lans", "--wan", "w9"], env=db_env)

        assert result.exit_code == EXIT_CODE_PASS
        assert "No LANs found" in result.output
