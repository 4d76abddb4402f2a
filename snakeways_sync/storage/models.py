"""
Data models for storage layer.

Defines the mirrored upstream resources, their daily counter snapshots
and the local enumerations their upstream codes are mapped onto.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class ResourceType(Enum):
    """Upstream resource kinds that have their own sync orchestrator."""
    USER = "user"
    WAN = "wan"
    LAN = "lan"
    INTERFACE = "interface"
    WAN_USAGE = "wan_usage"
    LAN_USAGE = "lan_usage"


class AccessLevel(Enum):
    ADMIN = "ADMIN"
    SITE_ADMIN = "SITE_ADMIN"
    SITE_MASTER = "SITE_MASTER"
    USER = "USER"
    PREPAID_USER = "PREPAID_USER"


class UserStatus(Enum):
    REGISTERED = "REGISTERED"
    PENDING = "PENDING"
    ERROR = "ERROR"


class AutocreditDefinition(Enum):
    USER = "USER"
    SITE = "SITE"
    SITE_GROUP = "SITE_GROUP"
    NOT_FOUND = "NOT_FOUND"


class AutocreditInterval(Enum):
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    DAILY = "DAILY"


class AutocreditType(Enum):
    ADD_VALUE = "ADD_VALUE"
    SET_TO_VALUE = "SET_TO_VALUE"


class AutocreditStatus(Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class UsageRecordType(Enum):
    """Record types returned by the upstream /usage endpoint."""
    UNKNOWN = 0
    SUMMARY = 1
    USAGE = 2  # Actual byte usage
    CREDIT = 3
    ADJ_DOWN = 4
    ADJ_UP = 5
    AUTOCREDIT = 6
    AUTOCREDIT_DEDUCTION = 7


class WanStatus(Enum):
    READY = "READY"
    ERROR = "ERROR"
    SUSPENDED = "SUSPENDED"
    INITIALIZING = "INITIALIZING"
    ALL_WAN_FORCED_OFF = "ALL_WAN_FORCED_OFF"
    NOT_READY = "NOT_READY"
    QUOTA_REACHED = "QUOTA_REACHED"
    ONLINE = "ONLINE"


class PrepaidAccess(Enum):
    DISALLOW = "DISALLOW"
    ALLOW = "ALLOW"
    LIMITED = "LIMITED"


class DhcpStatus(Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class UsageLimitStatus(Enum):
    NO_LIMIT = "NO_LIMIT"
    LIMIT_ENFORCED = "LIMIT_ENFORCED"
    LIMIT_DISABLED = "LIMIT_DISABLED"


class UsagePeriodType(Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class QosLevel(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class InterfaceType(Enum):
    ETHERNET = "ETHERNET"
    WIFI_AP = "WIFI_AP"
    WIFI_MANAGED = "WIFI_MANAGED"
    LTE = "LTE"
    LINK_EXTENDER = "LINK_EXTENDER"
    EXTENDER = "EXTENDER"


@dataclass(frozen=True)
class User:
    """Current state of an upstream user account.

    Counter fields are plain ints; sqlite stores them as 64-bit integers
    so multi-terabyte values never pass through floating point.
    """
    user_id: str
    name: str
    display_name: Optional[str]
    access_level: AccessLevel
    auto_credit: bool
    data_credit: int
    time_credit: int
    status: UserStatus
    portal_connected_at: Optional[datetime] = None
    autocredit_definition: AutocreditDefinition = AutocreditDefinition.NOT_FOUND
    autocredit_interval: AutocreditInterval = AutocreditInterval.MONTHLY
    autocredit_type: AutocreditType = AutocreditType.ADD_VALUE
    autocredit_value: Optional[int] = None
    autocredit_last_update: Optional[datetime] = None
    autocredit_status: AutocreditStatus = AutocreditStatus.DISABLED
    usage_debit: int = 0
    usage_credit: int = 0
    usage_quota: int = 0


@dataclass(frozen=True)
class UserSnapshot:
    """Dated copy of a user's counters. At most one per user per day."""
    user_id: str
    snapshot_date: datetime
    name: str
    access_level: AccessLevel
    auto_credit: bool
    data_credit: int
    time_credit: int
    status: UserStatus
    autocredit_value: Optional[int] = None
    usage_debit: int = 0
    usage_credit: int = 0
    usage_quota: int = 0
    id: Optional[int] = None


@dataclass(frozen=True)
class NetworkInterface:
    """Physical or virtual interface of the appliance."""
    interface_id: str
    name: str
    status: int
    type: InterfaceType
    port: Optional[int] = None
    vlan_id: Optional[int] = None


@dataclass(frozen=True)
class Wan:
    """Current state of an upstream WAN uplink."""
    wan_id: str
    name: str
    status: WanStatus
    allow_prepaid: PrepaidAccess
    dhcp: DhcpStatus
    usage_limited: UsageLimitStatus
    usage_period_type: UsagePeriodType
    prepaid_usage_period_type: UsagePeriodType
    dns1: Optional[str] = None
    dns2: Optional[str] = None
    interface_id: Optional[str] = None
    ip_address: Optional[str] = None
    ip_gateway: Optional[str] = None
    subnetmask: Optional[str] = None
    prepaid_usage_max_volume: int = 0
    switch_priority: int = 0
    usage_blocked: bool = False
    usage_bytes: int = 0
    usage_max_bytes: int = 0
    usage_period: int = 0
    usage_start: Optional[datetime] = None
    usage_start_timestamp: Optional[int] = None


@dataclass(frozen=True)
class WanUsageSnapshot:
    """Dated copy of a WAN's byte counter. At most one per WAN per day."""
    wan_id: str
    snapshot_date: datetime
    name: str
    bytes: int
    max_bytes: int
    start_time: int
    end_time: Optional[int] = None  # None while the usage period is active
    id: Optional[int] = None


@dataclass(frozen=True)
class Lan:
    """Current state of an upstream LAN segment."""
    lan_id: str
    name: str
    dhcp: DhcpStatus
    qos: QosLevel
    ip_address: Optional[str] = None
    subnetmask: Optional[str] = None
    dns1: Optional[str] = None
    dns2: Optional[str] = None
    dhcp_range_from: Optional[str] = None
    dhcp_range_to: Optional[str] = None
    allow_gateway: bool = False
    captive_portal: bool = False
    interface_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LanUsageSnapshot:
    """Dated copy of the bytes a LAN routed through one WAN.

    At most one per (LAN, WAN) per day. The WAN may differ between
    snapshots of the same LAN.
    """
    lan_id: str
    wan_id: str
    snapshot_date: datetime
    lan_name: str
    wan_name: str
    bytes: int
    start_time: int
    end_time: Optional[int] = None
    id: Optional[int] = None
