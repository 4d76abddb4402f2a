"""
Upstream to local enumeration mapping.

Snake Ways reports enumerations as integer codes (and a few strings).
Unknown codes fall back to a documented default with a warning, except
DHCP status where no sane default exists and a MappingError is raised.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, TypeVar

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

E = TypeVar("E")

logger = logging.getLogger(__name__)


class MappingError(ValueError):
    """Raised when an upstream value has no safe local equivalent."""


ACCESS_LEVELS = {
    110: AccessLevel.ADMIN,
    120: AccessLevel.SITE_ADMIN,
    125: AccessLevel.SITE_MASTER,
    130: AccessLevel.USER,
    140: AccessLevel.PREPAID_USER,
}

AUTOCREDIT_DEFINITIONS = {
    1: AutocreditDefinition.USER,
    2: AutocreditDefinition.SITE,
    3: AutocreditDefinition.SITE_GROUP,
}

AUTOCREDIT_INTERVALS = {
    1: AutocreditInterval.MONTHLY,
    2: AutocreditInterval.WEEKLY,
    3: AutocreditInterval.DAILY,
}

AUTOCREDIT_TYPES = {
    1: AutocreditType.ADD_VALUE,
    2: AutocreditType.SET_TO_VALUE,
}

WAN_STATUSES = {
    0: WanStatus.READY,
    1: WanStatus.ERROR,
    2: WanStatus.SUSPENDED,
    3: WanStatus.INITIALIZING,
    4: WanStatus.ALL_WAN_FORCED_OFF,
    5: WanStatus.NOT_READY,
    6: WanStatus.QUOTA_REACHED,
    7: WanStatus.ONLINE,
}

PREPAID_ACCESS = {
    0: PrepaidAccess.DISALLOW,
    1: PrepaidAccess.ALLOW,
    2: PrepaidAccess.LIMITED,
}

DHCP_STATUSES = {
    0: DhcpStatus.ENABLED,
    1: DhcpStatus.DISABLED,
}

USAGE_LIMITS = {
    0: UsageLimitStatus.NO_LIMIT,
    1: UsageLimitStatus.LIMIT_ENFORCED,
    2: UsageLimitStatus.LIMIT_DISABLED,
}

USAGE_PERIODS = {
    1: UsagePeriodType.DAILY,
    2: UsagePeriodType.WEEKLY,
    3: UsagePeriodType.MONTHLY,
}

INTERFACE_TYPES = {
    0: InterfaceType.ETHERNET,
    1: InterfaceType.WIFI_AP,
    2: InterfaceType.WIFI_MANAGED,
    6: InterfaceType.LTE,
    7: InterfaceType.LINK_EXTENDER,
    8: InterfaceType.EXTENDER,
}

QOS_LEVELS = {
    "high": QosLevel.HIGH,
    "medium": QosLevel.MEDIUM,
    "low": QosLevel.LOW,
}


def _code(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def map_code(
    value: Any,
    table: Dict[int, E],
    fallback: E,
    field: str,
    log: Optional[logging.Logger] = None,
    warn: bool = True,
) -> E:
    """Map an integer code through ``table``, falling back on unknown codes.

    Args:
        value: Raw upstream value (int or numeric string)
        table: Code to local enum mapping
        fallback: Value used for unknown or missing codes
        field: Upstream field name for the warning
        log: Logger for the fallback warning
        warn: Log a warning when falling back

    Returns:
        The mapped local enum member
    """
    code = _code(value)
    if code in table:
        return table[code]
    if warn:
        (log or logger).warning(
            "Unknown %s value %r, defaulting to %s", field, value, getattr(fallback, "name", fallback)
        )
    return fallback


def map_access_level(value: Any, log: Optional[logging.Logger] = None) -> AccessLevel:
    return map_code(value, ACCESS_LEVELS, AccessLevel.USER, "AccessLevel", log)


def map_user_status(pending: Any) -> UserStatus:
    """Pending is 0 for registered users, otherwise a timestamp or error code."""
    return UserStatus.REGISTERED if _code(pending) == 0 else UserStatus.PENDING


def map_autocredit_definition(value: Any) -> AutocreditDefinition:
    return map_code(value, AUTOCREDIT_DEFINITIONS, AutocreditDefinition.NOT_FOUND, "CreditDefinition", warn=False)


def map_autocredit_interval(value: Any) -> AutocreditInterval:
    return map_code(value, AUTOCREDIT_INTERVALS, AutocreditInterval.MONTHLY, "CreditInterval", warn=False)


def map_autocredit_type(value: Any) -> AutocreditType:
    return map_code(value, AUTOCREDIT_TYPES, AutocreditType.ADD_VALUE, "CreditType", warn=False)


def map_autocredit_status(value: Any) -> AutocreditStatus:
    return AutocreditStatus.ENABLED if _code(value) == 1 else AutocreditStatus.DISABLED


def map_wan_status(value: Any, log: Optional[logging.Logger] = None) -> WanStatus:
    return map_code(value, WAN_STATUSES, WanStatus.NOT_READY, "Status", log)


def map_prepaid_access(value: Any, log: Optional[logging.Logger] = None) -> PrepaidAccess:
    return map_code(value, PREPAID_ACCESS, PrepaidAccess.ALLOW, "AllowPrepaid", log)


def map_dhcp_status(value: Any) -> DhcpStatus:
    """Map the DHCP code.

    Raises:
        MappingError: If the code is unknown
    """
    code = _code(value)
    if code not in DHCP_STATUSES:
        raise MappingError(f"Unknown DHCP status: {value!r}")
    return DHCP_STATUSES[code]


def map_usage_limit(value: Any, log: Optional[logging.Logger] = None) -> UsageLimitStatus:
    return map_code(value, USAGE_LIMITS, UsageLimitStatus.NO_LIMIT, "UsageLimited", log)


def map_usage_period(value: Any, field: str, log: Optional[logging.Logger] = None) -> UsagePeriodType:
    return map_code(value, USAGE_PERIODS, UsagePeriodType.MONTHLY, field, log)


def map_interface_type(value: Any, log: Optional[logging.Logger] = None) -> InterfaceType:
    return map_code(value, INTERFACE_TYPES, InterfaceType.ETHERNET, "Type", log)


def map_qos(value: Any, log: Optional[logging.Logger] = None) -> QosLevel:
    key = str(value).strip().lower() if value is not None else ""
    if key in QOS_LEVELS:
        return QOS_LEVELS[key]
    (log or logger).warning("Unknown QOS value %r, defaulting to MEDIUM", value)
    return QosLevel.MEDIUM


def to_int(value: Any, default: int = 0) -> int:
    """Convert a numeric upstream value (int, float or string) to int.

    Large counters arrive as strings; they are parsed as integers so no
    precision is lost to floating point.
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def from_timestamp(value: Any) -> Optional[datetime]:
    """Unix seconds to datetime, None for zero, negative or missing values."""
    seconds = to_int(value)
    return datetime.fromtimestamp(seconds) if seconds > 0 else None


def parse_upstream_datetime(value: Any) -> Optional[datetime]:
    """Parse ``YYYY-MM-DD HH:MM:SS`` strings, None when absent or invalid."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None


def optional_address(value: Any) -> Optional[str]:
    """Normalize an IP address field; empty and ``0.0.0.0`` become None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == "0.0.0.0":
        return None
    return text
