"""
Unit tests for upstream to local value mapping.
"""

import logging
from datetime import datetime

import pytest

from snakeways_sync.storage.models import (
    AccessLevel,
    AutocreditDefinition,
    AutocreditInterval,
    AutocreditStatus,
    AutocreditType,
    DhcpStatus,
    InterfaceType,
    PrepaidAccess,
    QosLevel,
    UsageLimitStatus,
    UsagePeriodType,
    UserStatus,
    WanStatus,
)
from snakeways_sync.sync.mapping import (
    MappingError,
    from_timestamp,
    map_access_level,
    map_autocredit_definition,
    map_autocredit_interval,
    map_autocredit_status,
    map_autocredit_type,
    map_dhcp_status,
    map_interface_type,
    map_prepaid_access,
    map_qos,
    map_usage_limit,
    map_usage_period,
    map_user_status,
    map_wan_status,
    optional_address,
    parse_upstream_datetime,
    to_int,
)


class TestEnumMapping:
    """Test code tables and their fallbacks."""

    def test_access_levels(self):
        assert map_access_level(110) == AccessLevel.ADMIN
        assert map_access_level("120") == AccessLevel.SITE_ADMIN
        assert map_access_level(125) == AccessLevel.SITE_MASTER
        assert map_access_level(130) == AccessLevel.USER
        assert map_access_level(140) == AccessLevel.PREPAID_USER

    def test_unknown_access_level_falls_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert map_access_level(999) == AccessLevel.USER
        assert "Unknown AccessLevel value 999" in caplog.text

    def test_user_status(self):
        assert map_user_status(0) == UserStatus.REGISTERED
        assert map_user_status(1700000000) == UserStatus.PENDING
        assert map_user_status(None) == UserStatus.PENDING

    def test_autocredit_fields(self):
        assert map_autocredit_definition(1) == AutocreditDefinition.USER
        assert map_autocredit_definition(3) == AutocreditDefinition.SITE_GROUP
        assert map_autocredit_definition(9) == AutocreditDefinition.NOT_FOUND
        assert map_autocredit_interval(2) == AutocreditInterval.WEEKLY
        assert map_autocredit_interval(None) == AutocreditInterval.MONTHLY
        assert map_autocredit_type(2) == AutocreditType.SET_TO_VALUE
        assert map_autocredit_type(0) == AutocreditType.ADD_VALUE
        assert map_autocredit_status(1) == AutocreditStatus.ENABLED
        assert map_autocredit_status(0) == AutocreditStatus.DISABLED

    def test_wan_fields(self):
        assert map_wan_status(0) == WanStatus.READY
        assert map_wan_status(7) == WanStatus.ONLINE
        assert map_wan_status(42) == WanStatus.NOT_READY
        assert map_prepaid_access(2) == PrepaidAccess.LIMITED
        assert map_prepaid_access(None) == PrepaidAccess.ALLOW
        assert map_usage_limit(1) == UsageLimitStatus.LIMIT_ENFORCED
        assert map_usage_limit(5) == UsageLimitStatus.NO_LIMIT
        assert map_usage_period(1, "UsagePeriodType") == UsagePeriodType.DAILY
        assert map_usage_period(0, "UsagePeriodType") == UsagePeriodType.MONTHLY

    def test_dhcp_is_strict(self):
        assert map_dhcp_status(0) == DhcpStatus.ENABLED
        assert map_dhcp_status("1") == DhcpStatus.DISABLED

        with pytest.raises(MappingError, match="Unknown DHCP status"):
            map_dhcp_status(2)
        with pytest.raises(MappingError):
            map_dhcp_status(None)

    def test_interface_types(self):
        assert map_interface_type(1) == InterfaceType.WIFI_AP
        assert map_interface_type(6) == InterfaceType.LTE
        assert map_interface_type(8) == InterfaceType.EXTENDER
        assert map_interface_type(3) == InterfaceType.ETHERNET

    def test_qos(self):
        assert map_qos("High") == QosLevel.HIGH
        assert map_qos("low") == QosLevel.LOW
        assert map_qos("turbo") == QosLevel.MEDIUM
        assert map_qos(None) == QosLevel.MEDIUM


class TestValueConversion:
    """Test numeric, time and address helpers."""

    def test_to_int(self):
        assert to_int(5) == 5
        assert to_int("123456789012345678901") == 123456789012345678901
        assert to_int("12.7") == 12
        assert to_int(None) == 0
        assert to_int("") == 0
        assert to_int("n/a", default=-1) == -1

    def test_from_timestamp(self):
        assert from_timestamp(0) is None
        assert from_timestamp(None) is None
        assert from_timestamp(1700000000) == datetime.fromtimestamp(1700000000)

    def test_parse_upstream_datetime(self):
        assert parse_upstream_datetime("2024-01-31 23:59:00") == datetime(2024, 1, 31, 23, 59)
        assert parse_upstream_datetime("31/01/2024") is None
        assert parse_upstream_datetime(None) is None

    def test_optional_address(self):
        assert optional_address("10.0.0.1") == "10.0.0.1"
        assert optional_address("0.0.0.0") is None
        assert optional_address(" ") is None
        assert optional_address(None) is None
