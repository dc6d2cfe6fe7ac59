"""
Tests for core/trends.py — month-over-month classification.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.trends import TREND_THRESHOLD, classify_delta, compute_trend


def bucket(month_key, label, average):
    return {"monthKey": month_key, "label": label, "stats": {"averagePercentage": average}}


class TestComputeTrend:

    def test_upward_trend(self):
        trend = compute_trend([
            bucket("2025-01", "January 2025", 70.0),
            bucket("2025-02", "February 2025", 74.5),
        ])
        assert trend["delta"] == 4.5
        assert trend["direction"] == "up"
        assert "4.5%" in trend["label"]
        assert trend["label"] == "Performance up 4.5% vs January 2025"
        assert trend["previousMonth"] == "2025-01"

    def test_order_of_buckets_irrelevant(self):
        trend = compute_trend([
            bucket("2025-02", "February 2025", 60.0),
            bucket("2025-01", "January 2025", 70.0),
        ])
        assert trend["delta"] == -10.0
        assert trend["direction"] == "down"

    def test_uses_two_most_recent_months(self):
        trend = compute_trend([
            bucket("2024-12", "December 2024", 10.0),
            bucket("2025-01", "January 2025", 70.0),
            bucket("2025-03", "March 2025", 70.2),
        ])
        assert trend["latestMonth"] == "2025-03"
        assert trend["previousMonth"] == "2025-01"
        assert trend["direction"] == "flat"

    def test_needs_two_months(self):
        assert compute_trend([]) is None
        assert compute_trend([bucket("2025-01", "January 2025", 70.0)]) is None

    def test_months_without_average_ignored(self):
        assert compute_trend([
            bucket("2025-01", "January 2025", 70.0),
            bucket("2025-02", "February 2025", None),
        ]) is None


class TestClassifyDelta:

    @pytest.mark.parametrize(
        "delta, direction",
        [(0.5, "up"), (0.49, "flat"), (0.0, "flat"), (-0.49, "flat"), (-0.5, "down")],
    )
    def test_threshold(self, delta, direction):
        assert TREND_THRESHOLD == 0.5
        assert classify_delta(delta) == direction

    def test_direction_uses_unrounded_delta(self):
        trend = compute_trend([
            bucket("2025-01", "January 2025", 70.0),
            bucket("2025-02", "February 2025", 70.4996),
        ])
        assert trend["delta"] == 0.5
        assert trend["direction"] == "flat"
        assert trend["label"] == "Performance flat 0.5% vs January 2025"
