"""
Unit tests for the usage delta calculator.

Covers same-month deltas, month boundary splitting and degenerate windows.
"""

from datetime import datetime

import pytest

from snakeways_sync.core.usage import (
    USER_COUNTERS,
    CounterShape,
    UsageResult,
    compute_user_usage,
    counter_usage,
    positive_delta_total,
    split_by_month,
    window_usage,
)
from snakeways_sync.storage.models import AccessLevel, UserSnapshot, UserStatus


def snapshot(when: datetime, data_credit=0, time_credit=0, usage_debit=0, usage_credit=0,
             usage_quota=0, autocredit_value=None, user_id="u1") -> UserSnapshot:
    return UserSnapshot(
        user_id=user_id,
        snapshot_date=when,
        name="Alice",
        access_level=AccessLevel.USER,
        auto_credit=False,
        data_credit=data_credit,
        time_credit=time_credit,
        status=UserStatus.REGISTERED,
        autocredit_value=autocredit_value,
        usage_debit=usage_debit,
        usage_credit=usage_credit,
        usage_quota=usage_quota,
    )


class TestCounterUsage:
    """Test the same-month formula for both counter shapes."""

    def test_counter_shapes(self):
        assert USER_COUNTERS["data_credit"] == CounterShape.CREDIT
        assert USER_COUNTERS["time_credit"] == CounterShape.CREDIT
        assert USER_COUNTERS["usage_credit"] == CounterShape.CREDIT
        assert USER_COUNTERS["autocredit_value"] == CounterShape.DEBIT
        assert USER_COUNTERS["usage_debit"] == CounterShape.DEBIT
        assert USER_COUNTERS["usage_quota"] == CounterShape.DEBIT

    def test_credit_decrease_is_usage(self):
        assert counter_usage(5, 3, CounterShape.CREDIT) == 2

    def test_debit_increase_is_usage(self):
        assert counter_usage(100, 400, CounterShape.DEBIT) == 300

    def test_wrong_direction_is_zero(self):
        assert counter_usage(3, 5, CounterShape.CREDIT) == 0
        assert counter_usage(400, 100, CounterShape.DEBIT) == 0

    def test_missing_values_count_as_zero(self):
        assert counter_usage(None, 50, CounterShape.DEBIT) == 50
        assert counter_usage(10, None, CounterShape.CREDIT) == 10

    def test_large_counters_are_exact(self):
        first = 2 ** 62 + 7
        assert counter_usage(first, first - 3, CounterShape.CREDIT) == 3


class TestWindowUsage:
    """Test window filtering and the month split."""

    def test_fewer_than_two_points_is_zero(self):
        assert window_usage([], CounterShape.CREDIT) == 0
        assert window_usage([(datetime(2024, 1, 5), 100)], CounterShape.CREDIT) == 0

    def test_same_month_uses_first_and_last(self):
        points = [
            (datetime(2024, 1, 1), 5000),
            (datetime(2024, 1, 10), 2000),
            (datetime(2024, 1, 20), 4000),  # refill in between
            (datetime(2024, 1, 31), 3000),
        ]
        assert window_usage(points, CounterShape.CREDIT) == 2000

    def test_points_are_ordered_before_use(self):
        points = [(datetime(2024, 1, 31), 3000), (datetime(2024, 1, 1), 5000)]
        assert window_usage(points, CounterShape.CREDIT) == 2000

    def test_cross_month_sums_each_month(self):
        """Usage across a reset is the sum of each month's own usage."""
        points = [
            (datetime(2024, 1, 10), 1000),
            (datetime(2024, 1, 31), 1600),
            (datetime(2024, 2, 1), 50),
            (datetime(2024, 2, 15), 450),
        ]
        assert window_usage(points, CounterShape.DEBIT) == 600 + 400

    def test_cross_month_credit_reset_is_never_negative(self):
        points = [
            (datetime(2024, 1, 20), 5000),
            (datetime(2024, 1, 31), 1000),
            (datetime(2024, 2, 1), 10000),
            (datetime(2024, 2, 10), 9000),
        ]
        assert window_usage(points, CounterShape.CREDIT) == 4000 + 1000

    def test_three_month_window(self):
        points = [
            (datetime(2024, 1, 1), 0), (datetime(2024, 1, 31), 100),
            (datetime(2024, 2, 1), 0), (datetime(2024, 2, 29), 200),
            (datetime(2024, 3, 1), 0), (datetime(2024, 3, 15), 300),
        ]
        assert window_usage(points, CounterShape.DEBIT) == 600

    def test_single_point_month_contributes_nothing(self):
        points = [
            (datetime(2024, 1, 1), 0),
            (datetime(2024, 1, 31), 100),
            (datetime(2024, 2, 15), 999),
        ]
        assert window_usage(points, CounterShape.DEBIT) == 100

    def test_window_bounds_cover_whole_days(self):
        points = [
            (datetime(2024, 1, 1, 8), 0),
            (datetime(2024, 1, 5, 23, 59), 50),
            (datetime(2024, 1, 6, 0, 1), 80),
        ]
        usage = window_usage(points, CounterShape.DEBIT, start=datetime(2024, 1, 1, 12), end=datetime(2024, 1, 5))
        assert usage == 50

    def test_split_by_month(self):
        points = [(datetime(2023, 12, 31), 1), (datetime(2024, 1, 1), 2), (datetime(2024, 1, 2), 3)]
        assert split_by_month(points) == [[points[0]], points[1:]]


class TestPositiveDeltaTotal:

    def test_sums_increases_and_ignores_resets(self):
        assert positive_delta_total([100, 150, 150, 20, 70]) == 100

    def test_empty_or_single(self):
        assert positive_delta_total([]) == 0
        assert positive_delta_total([5]) == 0


class TestComputeUserUsage:
    """Test the six user usage figures."""

    def test_same_month_scenario(self):
        result = compute_user_usage([
            snapshot(datetime(2024, 1, 1), data_credit=5, time_credit=600, usage_debit=10),
            snapshot(datetime(2024, 1, 31), data_credit=3, time_credit=100, usage_debit=70),
        ])

        assert result.data_usage == 2
        assert result.time_usage == 500
        assert result.usage_debit == 60
        assert result.snapshot_count == 2
        assert result.entity_id == "u1"
        assert result.first_snapshot_date == datetime(2024, 1, 1)
        assert result.last_snapshot_date == datetime(2024, 1, 31)

    def test_january_to_february_reset(self):
        """Counters that reset on the first are never reported as negative usage."""
        result = compute_user_usage([
            snapshot(datetime(2024, 1, 15), data_credit=8000, usage_debit=2000, usage_credit=3000, usage_quota=5000),
            snapshot(datetime(2024, 1, 31), data_credit=6000, usage_debit=4500, usage_credit=500, usage_quota=5000),
            snapshot(datetime(2024, 2, 1), data_credit=10000, usage_debit=0, usage_credit=5000, usage_quota=5000),
            snapshot(datetime(2024, 2, 14), data_credit=9500, usage_debit=700, usage_credit=4300, usage_quota=5000),
        ])

        assert result.data_usage == 2000 + 500
        assert result.usage_debit == 2500 + 700
        assert result.usage_credit == 2500 + 700
        assert result.usage_quota == 0
        for value in (result.data_usage, result.time_usage, result.autocredit_usage,
                      result.usage_debit, result.usage_credit, result.usage_quota):
            assert value >= 0

    def test_no_snapshots(self):
        result = compute_user_usage([], entity_id="u1")

        assert result == UsageResult(entity_id="u1")

    def test_one_snapshot_in_window(self):
        result = compute_user_usage(
            [snapshot(datetime(2024, 1, 1), data_credit=5), snapshot(datetime(2024, 1, 20), data_credit=1)],
            start=datetime(2024, 1, 10),
        )

        assert result.data_usage == 0
        assert result.snapshot_count == 1
        assert result.start_date == datetime(2024, 1, 10)

    def test_credit_increase_within_month_is_zero(self):
        result = compute_user_usage([
            snapshot(datetime(2024, 1, 1), data_credit=100),
            snapshot(datetime(2024, 1, 2), data_credit=900),
        ])
        assert result.data_usage == 0

    def test_autocredit_none_treated_as_zero(self):
        result = compute_user_usage([
            snapshot(datetime(2024, 1, 1), autocredit_value=None),
            snapshot(datetime(2024, 1, 2), autocredit_value=1000),
        ])
        assert result.autocredit_usage == 1000

    def test_negative_figures_rejected(self):
        with pytest.raises(ValueError, match="data_usage cannot be negative"):
            UsageResult(entity_id="u1", data_usage=-1)
