"""
Tests for core/stats.py — month buckets, one-vote-per-type averages, overall summary.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.performance import compute_grouped_performance
from core.records import load_evaluations
from core.stats import (
    compute_overall_performance,
    group_by_year_month,
    iter_month_buckets,
    latest_by_type,
    month_points,
)


def ev(evaluation_type, score, date, **extra):
    record = {"type": evaluation_type, "score": score, "recordedDate": date}
    record.update(extra)
    return record


def grouped_for(records):
    df, _ = load_evaluations(records)
    return group_by_year_month(df)


def points_for(records):
    df, _ = load_evaluations(records)
    return month_points(df)


@pytest.fixture
def mixed_records():
    """Three months of mixed weekly and monthly evaluations."""
    return [
        ev("aptitude", 17.5, "2025-01-06T10:00:00Z", id="e1"),
        ev("spring_meet", 74.5, "2025-02-20T10:00:00Z", id="e2"),
        ev("aptitude", 20, "2025-03-10T10:00:00Z", id="e3"),
        ev("aptitude", 10, "2025-03-18T10:00:00Z", id="e4"),
        ev("logical", 15, "2025-03-11T10:00:00Z", id="e5"),
        ev("spring_meet", 90, "2025-03-28T10:00:00Z", id="e6"),
    ]


class TestSingleRecord:
    """One aptitude evaluation, 20/25 on Monday 2025-03-10."""

    @pytest.fixture
    def bucket(self):
        grouped = grouped_for([ev("aptitude", 20, "2025-03-10")])
        return grouped["2025"]["months"]["2025-03"]

    def test_per_type_average(self, bucket):
        assert bucket["stats"]["perTypeAverages"] == {"aptitude": 80.0}

    def test_month_average(self, bucket):
        assert bucket["stats"]["averagePercentage"] == 80.0

    def test_weekly_entries(self, bucket):
        assert len(bucket["weeklyEntries"]) == 1
        assert bucket["weeklyEntries"][0]["periodLabel"] == "Week of Mar 10, 2025"
        assert bucket["monthlyEntries"] == []
        assert bucket["springMeet"] is None

    def test_bucket_metadata(self, bucket):
        assert bucket["label"] == "March 2025"
        assert bucket["year"] == 2025
        assert bucket["monthIndex"] == 2
        assert bucket["stats"]["evaluationCount"] == 1


class TestGroupByYearMonth:

    def test_empty(self):
        assert grouped_for([]) == {}

    def test_year_keys_are_strings(self, mixed_records):
        grouped = grouped_for(mixed_records)
        assert list(grouped.keys()) == ["2025"]
        assert grouped["2025"]["year"] == 2025

    def test_months_chronological(self, mixed_records):
        months = grouped_for(mixed_records)["2025"]["months"]
        assert list(months.keys()) == ["2025-01", "2025-02", "2025-03"]

    def test_sparse_months(self):
        grouped = grouped_for([
            ev("aptitude", 20, "2024-11-04"),
            ev("aptitude", 20, "2025-02-03"),
        ])
        assert list(grouped.keys()) == ["2024", "2025"]
        assert list(grouped["2024"]["months"].keys()) == ["2024-11"]
        assert list(grouped["2025"]["months"].keys()) == ["2025-02"]

    def test_one_vote_per_type(self, mixed_records):
        march = grouped_for(mixed_records)["2025"]["months"]["2025-03"]
        stats = march["stats"]
        # aptitude (80 + 40) / 2 = 60, logical 60, spring_meet 90
        assert stats["perTypeAverages"] == {"aptitude": 60.0, "logical": 60.0, "spring_meet": 90.0}
        assert stats["averagePercentage"] == 70.0
        assert stats["evaluationCount"] == 4

    def test_bound_property(self, mixed_records):
        for bucket in iter_month_buckets(grouped_for(mixed_records)):
            values = list(bucket["stats"]["perTypeAverages"].values())
            assert min(values) <= bucket["stats"]["averagePercentage"] <= max(values)

    def test_monthly_entries_and_spring_meet(self):
        march = grouped_for([
            ev("spring_meet", 60, "2025-03-05", id="first"),
            ev("spring_meet", 80, "2025-03-25", id="second"),
        ])["2025"]["months"]["2025-03"]
        assert [e["id"] for e in march["monthlyEntries"]] == ["first", "second"]
        assert march["springMeet"]["id"] == "second"
        assert march["stats"]["perTypeAverages"] == {"spring_meet": 70.0}

    def test_weekly_trend_points(self, mixed_records):
        march = grouped_for(mixed_records)["2025"]["months"]["2025-03"]
        labels = [p["label"] for p in march["weeklyTrend"]]
        assert labels == ["Week of Mar 10, 2025", "Week of Mar 17, 2025"]
        # Week of Mar 10: aptitude 80, logical 60
        assert march["weeklyTrend"][0]["averagePercentage"] == 70.0

    def test_last_updated_prefers_updated_at(self):
        march = grouped_for([
            ev("aptitude", 20, "2025-03-10T10:00:00Z", updatedAt="2025-03-12T08:00:00Z"),
        ])["2025"]["months"]["2025-03"]
        assert march["stats"]["lastUpdated"] == "2025-03-12T08:00:00.000+00:00"

    def test_input_order_does_not_matter(self, mixed_records):
        mixed_records = mixed_records + [
            {"id": "bad", "type": "bogus", "score": 1, "recordedDate": "2025-03-01"},
            {"id": "over", "type": "aptitude", "score": 99, "recordedDate": "2025-03-02"},
        ]
        forward = compute_grouped_performance(mixed_records)
        backward = compute_grouped_performance(list(reversed(mixed_records)))
        assert forward == backward


class TestLatestByType:

    def test_latest_entry_per_type(self, mixed_records):
        df, _ = load_evaluations(mixed_records)
        latest = latest_by_type(df)
        assert list(latest.keys()) == ["aptitude", "logical", "spring_meet"]
        assert latest["aptitude"]["id"] == "e4"
        assert latest["spring_meet"]["id"] == "e6"


class TestOverallPerformance:

    def test_none_without_months(self):
        assert compute_overall_performance([]) is None
        assert compute_overall_performance(points_for([])) is None

    def test_mean_of_monthly_means(self, mixed_records):
        overall = compute_overall_performance(points_for(mixed_records))
        # months: 70, 74.5, 70
        assert overall["averagePercentage"] == pytest.approx(71.5)
        assert overall["monthsCount"] == 3
        assert overall["grade"] == "Good"

    def test_rounded_buckets_accepted(self, mixed_records):
        buckets = iter_month_buckets(grouped_for(mixed_records))
        assert compute_overall_performance(buckets) == compute_overall_performance(points_for(mixed_records))

    def test_per_type_only_counts_months_with_type(self, mixed_records):
        per_type = compute_overall_performance(points_for(mixed_records))["perTypeAverages"]
        assert per_type["aptitude"] == 65.0
        assert per_type["logical"] == 60.0
        assert per_type["spring_meet"] == pytest.approx(82.25)

    def test_summary_bound(self, mixed_records):
        buckets = iter_month_buckets(grouped_for(mixed_records))
        averages = [b["stats"]["averagePercentage"] for b in buckets]
        overall = compute_overall_performance(points_for(mixed_records))
        assert min(averages) <= overall["averagePercentage"] <= max(averages)

    def test_ties_go_to_most_recent_month(self):
        overall = compute_overall_performance(points_for([
            ev("spring_meet", 80, "2025-01-15"),
            ev("spring_meet", 60, "2025-02-15"),
            ev("spring_meet", 80, "2025-03-15"),
            ev("spring_meet", 60, "2025-04-15"),
        ]))
        assert overall["bestMonth"]["monthKey"] == "2025-03"
        assert overall["weakestMonth"]["monthKey"] == "2025-04"
        assert overall["bestMonth"]["label"] == "March 2025"


class TestGradeBoundary:
    """19.999 / 25 is 79.996%: shown as 80.0 but still below Excellent."""

    @pytest.fixture
    def records(self):
        return [ev("aptitude", 19.999, "2025-03-10")]

    def test_month_points_unrounded(self, records):
        points = points_for(records)
        assert points[0]["stats"]["averagePercentage"] == pytest.approx(79.996)

    def test_overall_grade(self, records):
        overall = compute_overall_performance(points_for(records))
        assert overall["averagePercentage"] == 80.0
        assert overall["grade"] == "Good"

    def test_bucket_grade(self, records):
        bucket = grouped_for(records)["2025"]["months"]["2025-03"]
        assert bucket["stats"]["averagePercentage"] == 80.0
        assert bucket["stats"]["grade"] == "Good"

    def test_grouped_performance_grade(self, records):
        overall = compute_grouped_performance(records)["overallPerformance"]
        assert overall["averagePercentage"] == 80.0
        assert overall["grade"] == "Good"
