"""
Usage delta calculation.

Turns dated counter snapshots into usage over a date window. Upstream
counters reset at the start of every calendar month, so a window that
crosses a month boundary is computed month by month and summed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from itertools import groupby
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from snakeways_sync.storage.models import UserSnapshot

from .periods import end_of_day, month_key, start_of_day

logger = logging.getLogger(__name__)

CounterPoint = Tuple[datetime, Optional[int]]


class CounterShape(Enum):
    """How a counter moves as it is consumed."""
    CREDIT = "credit"  # Starts high, decremented by consumption
    DEBIT = "debit"  # Starts low, incremented by consumption


# Tracked user counters and their shapes; each is computed independently
USER_COUNTERS: Dict[str, CounterShape] = {
    "data_credit": CounterShape.CREDIT,
    "time_credit": CounterShape.CREDIT,
    "autocredit_value": CounterShape.DEBIT,
    "usage_debit": CounterShape.DEBIT,
    "usage_credit": CounterShape.CREDIT,
    "usage_quota": CounterShape.DEBIT,
}


@dataclass(frozen=True)
class UsageResult:
    """Usage of one user over a date window.

    Every figure is >= 0. Fewer than two snapshots in the window means
    zero usage, not an error.
    """
    entity_id: Optional[str]
    data_usage: int = 0
    time_usage: int = 0
    autocredit_usage: int = 0
    usage_debit: int = 0
    usage_credit: int = 0
    usage_quota: int = 0
    snapshot_count: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    first_snapshot_date: Optional[datetime] = None
    last_snapshot_date: Optional[datetime] = None

    def __post_init__(self):
        """Validate usage figures are not negative."""
        for name in ("data_usage", "time_usage", "autocredit_usage",
                     "usage_debit", "usage_credit", "usage_quota", "snapshot_count"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")


# UsageResult attribute for each user counter
_RESULT_FIELDS = {
    "data_credit": "data_usage",
    "time_credit": "time_usage",
    "autocredit_value": "autocredit_usage",
    "usage_debit": "usage_debit",
    "usage_credit": "usage_credit",
    "usage_quota": "usage_quota",
}


def counter_usage(first: Optional[int], last: Optional[int], shape: CounterShape) -> int:
    """Usage between two readings of the same counter within one month.

    Credit counters use ``first - last`` and debit counters ``last - first``.
    A move in the wrong direction (refill or reset) is reported as 0.

    Args:
        first: Earlier reading, None counts as 0
        last: Later reading, None counts as 0
        shape: Counter shape

    Returns:
        Non-negative usage
    """
    first = first or 0
    last = last or 0
    delta = first - last if shape == CounterShape.CREDIT else last - first
    if delta < 0:
        if shape == CounterShape.CREDIT:
            logger.debug("Credit counter increased from %d to %d, reporting no usage", first, last)
        return 0
    return delta


def filter_window(
    points: Iterable[CounterPoint],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[CounterPoint]:
    """Keep points dated inside ``[start_of_day(start), end_of_day(end)]``, oldest first.

    A missing bound leaves that side open.
    """
    lower = start_of_day(start) if start is not None else None
    upper = end_of_day(end) if end is not None else None
    kept = [
        point for point in points
        if (lower is None or point[0] >= lower) and (upper is None or point[0] <= upper)
    ]
    return sorted(kept, key=lambda point: point[0])


def split_by_month(points: Sequence[CounterPoint]) -> List[List[CounterPoint]]:
    """Partition chronologically ordered points into calendar month buckets."""
    return [list(bucket) for _, bucket in groupby(points, key=lambda point: month_key(point[0]))]


def window_usage(
    points: Iterable[CounterPoint],
    shape: CounterShape,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> int:
    """Usage of one counter over a date window.

    Same-month windows compare the first and last reading. Windows that
    span several months compute each month's first to last usage on its
    own and add them up, so the monthly reset never shows up as negative
    usage and is never subtracted across.

    Args:
        points: (snapshot_date, value) readings of one entity
        shape: Counter shape
        start: Optional window start (whole day included)
        end: Optional window end (whole day included)

    Returns:
        Non-negative usage, 0 when fewer than two readings fall in the window
    """
    in_window = filter_window(points, start, end)
    if len(in_window) < 2:
        return 0

    first, last = in_window[0], in_window[-1]
    if month_key(first[0]) == month_key(last[0]):
        return counter_usage(first[1], last[1], shape)

    return sum(
        counter_usage(bucket[0][1], bucket[-1][1], shape)
        for bucket in split_by_month(in_window)
    )


def positive_delta_total(values: Iterable[Optional[int]]) -> int:
    """Sum the increases between consecutive readings of a debit counter.

    Decreases (counter resets) are discarded rather than subtracted.
    Suited to dense series such as daily chart data.
    """
    total = 0
    previous: Optional[int] = None
    for value in values:
        value = value or 0
        if previous is not None and value > previous:
            total += value - previous
        previous = value
    return total


def compute_user_usage(
    snapshots: Sequence[UserSnapshot],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    entity_id: Optional[str] = None,
) -> UsageResult:
    """Compute the six tracked usage figures of one user.

    Args:
        snapshots: Snapshots of a single user, any order
        start: Optional window start
        end: Optional window end
        entity_id: User ID reported in the result, defaults to the snapshots' user

    Returns:
        UsageResult for the window
    """
    lower = start_of_day(start) if start is not None else None
    upper = end_of_day(end) if end is not None else None
    in_window = sorted(
        (s for s in snapshots
         if (lower is None or s.snapshot_date >= lower) and (upper is None or s.snapshot_date <= upper)),
        key=lambda s: s.snapshot_date,
    )
    if entity_id is None and snapshots:
        entity_id = snapshots[0].user_id

    figures = {}
    for counter, shape in USER_COUNTERS.items():
        points = [(s.snapshot_date, getattr(s, counter)) for s in in_window]
        figures[_RESULT_FIELDS[counter]] = window_usage(points, shape)

    return UsageResult(
        entity_id=entity_id,
        snapshot_count=len(in_window),
        start_date=lower,
        end_date=upper,
        first_snapshot_date=in_window[0].snapshot_date if in_window else None,
        last_snapshot_date=in_window[-1].snapshot_date if in_window else None,
        **figures,
    )
