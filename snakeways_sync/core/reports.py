"""
Usage reports built on the delta calculator.

User history, WAN usage charts and aggregated WAN/LAN usage. Everything
here is pure: callers load the snapshots and pass them in.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from snakeways_sync.storage.models import (
    Lan,
    LanUsageSnapshot,
    NetworkInterface,
    UserSnapshot,
    Wan,
    WanUsageSnapshot,
)

from .formatting import format_bytes, format_time
from .periods import (
    end_of_day,
    end_of_month,
    start_of_day,
    start_of_month,
    subtract_months,
)
from .usage import UsageResult, compute_user_usage, positive_delta_total


class ReportPeriod(Enum):
    """Granularity of chart points and aggregation buckets."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def parse_period(value: str) -> ReportPeriod:
    try:
        return ReportPeriod(value.lower())
    except ValueError:
        valid = [period.value for period in ReportPeriod]
        raise ValueError(f"Unknown period '{value}', must be one of: {valid}")


@dataclass(frozen=True)
class UserHistoryEntry:
    """Latest snapshot of a user with its usage over the requested window."""
    snapshot: UserSnapshot
    usage: UsageResult

    @property
    def formatted(self) -> Dict[str, str]:
        return {
            "data_usage": format_bytes(self.usage.data_usage),
            "time_usage": format_time(self.usage.time_usage),
            "autocredit_usage": format_bytes(self.usage.autocredit_usage),
            "usage_debit": format_bytes(self.usage.usage_debit),
            "usage_credit": format_bytes(self.usage.usage_credit),
            "usage_quota": format_bytes(self.usage.usage_quota),
        }


def user_history(
    snapshots: Sequence[UserSnapshot],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[UserHistoryEntry]:
    """Usage per user over a window, sorted by user name.

    Args:
        snapshots: Snapshots of any number of users
        start: Optional window start
        end: Optional window end

    Returns:
        One entry per user with at least one snapshot in the window
    """
    by_user: Dict[str, List[UserSnapshot]] = OrderedDict()
    lower = start_of_day(start) if start is not None else None
    upper = end_of_day(end) if end is not None else None
    for snapshot in sorted(snapshots, key=lambda s: s.snapshot_date):
        if lower is not None and snapshot.snapshot_date < lower:
            continue
        if upper is not None and snapshot.snapshot_date > upper:
            continue
        by_user.setdefault(snapshot.user_id, []).append(snapshot)

    entries = [
        UserHistoryEntry(
            snapshot=user_snapshots[-1],
            usage=compute_user_usage(user_snapshots, start, end, entity_id=user_id),
        )
        for user_id, user_snapshots in by_user.items()
    ]
    return sorted(entries, key=lambda entry: entry.snapshot.name.lower())


@dataclass(frozen=True)
class ChartPoint:
    """Usage per WAN name for one chart period."""
    date: datetime
    period_start: datetime
    period_end: datetime
    values: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class WanChartMetadata:
    name: str
    total_bytes: int
    formatted_total_bytes: str


@dataclass(frozen=True)
class WanUsageChart:
    data: List[ChartPoint]
    metadata: List[WanChartMetadata]


def chart_points(period: ReportPeriod, now: datetime) -> List[Tuple[datetime, datetime, datetime]]:
    """Chart points as (date, period_start, period_end), oldest first.

    Daily charts have 7 one-day points, weekly charts 4 seven-day points
    and monthly charts 6 calendar-month points.
    """
    points = []
    if period == ReportPeriod.DAILY:
        for i in range(7):
            day = now - timedelta(days=6 - i)
            points.append((day, start_of_day(day), end_of_day(day)))
    elif period == ReportPeriod.WEEKLY:
        for i in range(4):
            day = now - timedelta(days=(3 - i) * 7)
            points.append((day, start_of_day(day), end_of_day(day + timedelta(days=6))))
    else:
        for i in range(6):
            day = subtract_months(now, 5 - i)
            points.append((day, start_of_month(day), end_of_month(day)))
    return points


def chart_window_start(period: ReportPeriod, now: datetime) -> datetime:
    """Earliest snapshot date a chart for ``period`` needs."""
    return chart_points(period, now)[0][1]


def _group_by_wan(records: Sequence[WanUsageSnapshot]) -> Dict[str, List[WanUsageSnapshot]]:
    grouped: Dict[str, List[WanUsageSnapshot]] = OrderedDict()
    for record in sorted(records, key=lambda r: r.snapshot_date):
        grouped.setdefault(record.wan_id, []).append(record)
    return grouped


def wan_usage_chart(
    records: Sequence[WanUsageSnapshot],
    period: ReportPeriod,
    now: datetime,
    wan_names: Optional[Mapping[str, str]] = None,
) -> WanUsageChart:
    """Build WAN usage chart data.

    Each point holds, per WAN, the sum of positive snapshot-to-snapshot
    byte increases inside the point's period.

    Args:
        records: WAN usage snapshots
        period: Chart granularity
        now: Reference time for the last point
        wan_names: Optional WAN ID to name mapping restricting the WANs shown

    Returns:
        WanUsageChart with data points and per-WAN totals
    """
    grouped = _group_by_wan(records)
    if wan_names is None:
        wan_names = OrderedDict(
            (wan_id, wan_records[-1].name or f"WAN {wan_id[:8]}")
            for wan_id, wan_records in grouped.items()
        )

    points = chart_points(period, now)
    data = [ChartPoint(date=date, period_start=lo, period_end=hi) for date, lo, hi in points]
    metadata = []

    for wan_id, name in wan_names.items():
        wan_records = grouped.get(wan_id, [])
        total = 0
        for point in data:
            in_period = [r.bytes for r in wan_records if point.period_start <= r.snapshot_date <= point.period_end]
            usage = positive_delta_total(in_period) if len(in_period) >= 2 else 0
            point.values[name] = usage
            total += usage
        metadata.append(WanChartMetadata(name=name, total_bytes=total, formatted_total_bytes=format_bytes(total)))

    return WanUsageChart(data=data, metadata=metadata)


@dataclass(frozen=True)
class WanAggregate:
    """Usage of one WAN over the current day, week or month."""
    wan_id: str
    name: str
    total_bytes: int
    max_bytes: int
    usage_percentage: float
    period_start: datetime
    period_end: datetime

    @property
    def formatted_total_bytes(self) -> str:
        return format_bytes(self.total_bytes)


def aggregation_window(period: ReportPeriod, now: datetime) -> Tuple[datetime, datetime]:
    """Current day, ISO week (Monday start) or calendar month containing ``now``."""
    if period == ReportPeriod.DAILY:
        return start_of_day(now), end_of_day(now)
    if period == ReportPeriod.WEEKLY:
        monday = start_of_day(now - timedelta(days=now.weekday()))
        return monday, end_of_day(monday + timedelta(days=6))
    return start_of_month(now), end_of_month(now)


def aggregate_wan_usage(
    records: Sequence[WanUsageSnapshot],
    period: ReportPeriod,
    now: datetime,
    wans: Optional[Sequence[Wan]] = None,
) -> List[WanAggregate]:
    """Aggregate WAN usage for the current period.

    Args:
        records: WAN usage snapshots, filtered to the window here
        period: Aggregation period
        now: Reference time
        wans: Optional mirrored WANs, used for names

    Returns:
        One aggregate per WAN with snapshots in the window
    """
    period_start, period_end = aggregation_window(period, now)
    names = {wan.wan_id: wan.name for wan in wans or []}
    in_window = [r for r in records if period_start <= r.snapshot_date <= period_end]

    result = []
    for wan_id, wan_records in _group_by_wan(in_window).items():
        total = positive_delta_total(r.bytes for r in wan_records)
        max_bytes = wan_records[-1].max_bytes
        result.append(WanAggregate(
            wan_id=wan_id,
            name=names.get(wan_id) or wan_records[-1].name,
            total_bytes=total,
            max_bytes=max_bytes,
            usage_percentage=(total / max_bytes) * 100 if max_bytes > 0 else 0.0,
            period_start=period_start,
            period_end=period_end,
        ))
    return result


@dataclass(frozen=True)
class LanAggregate:
    """Bytes a LAN routed through one WAN in one bucket."""
    bucket: datetime
    lan_id: str
    lan_name: str
    wan_id: str
    wan_name: str
    total_bytes: int

    @property
    def formatted_total_bytes(self) -> str:
        return format_bytes(self.total_bytes)


def _bucket_start(value: datetime, period: ReportPeriod) -> datetime:
    if period == ReportPeriod.DAILY:
        return start_of_day(value)
    if period == ReportPeriod.WEEKLY:
        return start_of_day(value - timedelta(days=value.weekday()))
    return start_of_month(value)


def latest_per_usage_period(records: Sequence[LanUsageSnapshot]) -> List[LanUsageSnapshot]:
    """Keep the newest snapshot of each upstream usage period.

    Daily snapshots of the same (LAN, WAN, start time) are successive
    readings of one period, so only the last one counts.
    """
    latest: Dict[Tuple[str, str, int], LanUsageSnapshot] = OrderedDict()
    for record in sorted(records, key=lambda r: r.snapshot_date):
        latest[(record.lan_id, record.wan_id, record.start_time)] = record
    return list(latest.values())


def aggregate_lan_usage(records: Sequence[LanUsageSnapshot], period: ReportPeriod) -> List[LanAggregate]:
    """Sum LAN usage by day, week or month of the period start time.

    Returns:
        Aggregates ordered by bucket, then LAN and WAN name
    """
    buckets: Dict[Tuple[datetime, str, str], LanAggregate] = {}
    for record in latest_per_usage_period(records):
        bucket = _bucket_start(datetime.fromtimestamp(record.start_time), period)
        key = (bucket, record.lan_id, record.wan_id)
        current = buckets.get(key)
        total = (current.total_bytes if current else 0) + record.bytes
        buckets[key] = LanAggregate(
            bucket=bucket,
            lan_id=record.lan_id,
            lan_name=record.lan_name,
            wan_id=record.wan_id,
            wan_name=record.wan_name,
            total_bytes=total,
        )
    return sorted(buckets.values(), key=lambda a: (a.bucket, a.lan_name, a.wan_name))


@dataclass(frozen=True)
class LanWithUsage:
    lan: Lan
    interfaces: List[NetworkInterface]
    usage: List[LanUsageSnapshot]
    total_bytes: int

    @property
    def formatted_total_bytes(self) -> str:
        return format_bytes(self.total_bytes)


def lans_with_usage(
    lans: Sequence[Lan],
    interfaces: Sequence[NetworkInterface],
    records: Sequence[LanUsageSnapshot],
    wan_id: Optional[str] = None,
) -> List[LanWithUsage]:
    """Join LANs with their interfaces and usage snapshots.

    Args:
        lans: Mirrored LANs
        interfaces: Mirrored interfaces, linked through ``Lan.interface_ids``
        records: LAN usage snapshots
        wan_id: Only LANs that routed through this WAN, and only that usage

    Returns:
        One entry per LAN, usage newest first
    """
    by_id = {interface.interface_id: interface for interface in interfaces}
    result = []
    for lan in lans:
        usage = [r for r in records if r.lan_id == lan.lan_id and (wan_id is None or r.wan_id == wan_id)]
        if wan_id is not None and not usage:
            continue
        usage.sort(key=lambda r: r.snapshot_date, reverse=True)
        result.append(LanWithUsage(
            lan=lan,
            interfaces=[by_id[i] for i in lan.interface_ids if i in by_id],
            usage=usage,
            total_bytes=sum(r.bytes for r in latest_per_usage_period(usage)),
        ))
    return result
