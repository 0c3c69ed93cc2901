"""
Tests for dashboard metrics.
"""

import pytest

from dealflow.domain.metrics import (
    DailyDealFlowMetrics,
    build_stats_from_metrics,
    calculate_daily_rates,
    calculate_metrics_from_data,
    calculate_metrics_with_comparison,
    calculate_percentage_change,
    get_default_stats,
)

ROWS = [
    {"status": "Pending Approval", "call_result": "Underwriting", "is_callback": True},
    {"status": "Pending Approval", "call_result": "Submitted", "is_callback": False},
    {"status": "GI - Currently DQ", "call_result": "Not Submitted", "is_callback": False},
    {"status": "DQ", "call_result": "Not Submitted", "is_callback": False},
]


class TestMetrics:
    """Tests for metric aggregation."""

    def test_metrics_from_data(self):
        metrics = calculate_metrics_from_data(ROWS, 10)

        assert metrics == DailyDealFlowMetrics(
            total_transfers=10,
            pending_approval=2,
            underwriting=1,
            approved=1,
            gi_currently_dq=1,
        )

    def test_metrics_from_missing_data(self):
        assert calculate_metrics_from_data(None, None) == DailyDealFlowMetrics()

    @pytest.mark.parametrize(
        "current,previous,expected",
        [(0, 0, 0), (5, 0, 100), (15, 10, 50), (5, 10, -50), (1, 3, -67)],
    )
    def test_percentage_change(self, current, previous, expected):
        assert calculate_percentage_change(current, previous) == expected

    def test_comparison(self):
        metrics, changes = calculate_metrics_with_comparison(ROWS, 4, ROWS[:2], 2)

        assert metrics.total_transfers == 4
        assert changes["total_transfers"] == 100
        assert changes["gi_currently_dq"] == 100
        assert changes["pending_approval"] == 0

    def test_stats_tiles(self):
        stats = build_stats_from_metrics(DailyDealFlowMetrics(total_transfers=7), {"total_transfers": 40})

        assert [s.title for s in stats] == [
            "Total Transfers", "Pending Approval", "Underwriting", "Approved", "GI - Currently DQ"
        ]
        assert stats[0].value == 7
        assert stats[0].variation == 40
        assert stats[1].variation == 0

    def test_default_stats_are_zero(self):
        assert all(s.value == 0 and s.variation == 0 for s in get_default_stats())


class TestDailyRates:
    """Tests for daily rate calculation."""

    def test_rates(self):
        rates = calculate_daily_rates(ROWS)

        assert rates.total_transfers == 4
        assert rates.total_sales == 2
        assert rates.total_underwriting == 1
        assert rates.approval_rate == pytest.approx(50.0)
        assert rates.callback_rate == pytest.approx(25.0)
        assert rates.dq_rate == pytest.approx(25.0)

    def test_no_rows(self):
        rates = calculate_daily_rates([])

        assert rates.total_transfers == 0
        assert rates.approval_rate == 0.0
