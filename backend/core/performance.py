"""
performance.py — Student "My Performance" projections.

Everything here is rebuilt from the evaluation log on each call:
- Grouped performance (year → month buckets, lifetime summary, trend, tips)
- Hero snapshot for the most recent month
- Freshness check used by polling clients to decide whether to re-fetch
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from core.insights import generate_performance_insights
from core.periods import MonthKey, iso, to_utc_timestamp
from core.records import load_evaluations, pick_field, sanitize
from core.stats import (
    build_month_bucket,
    compute_overall_performance,
    group_by_year_month,
    iter_month_buckets,
    latest_by_type,
    month_points,
)

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "COMPLETED"
STATUS_IN_PROGRESS = "IN_PROGRESS"


def build_grouped_performance(
    df: pd.DataFrame, skipped: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Grouped performance for an already-validated evaluation frame."""
    grouped = group_by_year_month(df)
    derived = generate_performance_insights(df, grouped)

    return sanitize({
        "groupedByYearMonth": grouped,
        "overallPerformance": compute_overall_performance(month_points(df)),
        "trend": derived["trend"],
        "insights": derived["insights"],
        "latestByType": latest_by_type(df),
        "skipped": skipped or {"count": 0, "records": []},
    })


def compute_grouped_performance(records: Optional[List[Any]]) -> Dict[str, Any]:
    """
    Full "My Performance" payload for one student's raw evaluation records.

    Returns:
        {
            "groupedByYearMonth": {year: {year, months: {monthKey: bucket}}},
            "overallPerformance": {...} | None,
            "trend": {...} | None,
            "insights": [str, ...],
            "latestByType": {type: entry},
            "skipped": {"count": int, "records": [...]},
        }
    """
    df, skipped = load_evaluations(records)
    result = build_grouped_performance(df, skipped)
    logger.info(
        "Grouped %d evaluation(s) into %d month(s); %d skipped",
        len(df), len(iter_month_buckets(result["groupedByYearMonth"])), skipped["count"],
    )
    return result


# ── Hero Snapshot ───────────────────────────────────────────────────

def build_hero_snapshot(records: Optional[List[Any]], now: Any = None) -> Optional[Dict[str, Any]]:
    """
    Snapshot of the calendar month holding the most recent evaluation.

    status is COMPLETED once that month has ended (now > periodEnd), else
    IN_PROGRESS. Returns None when there is no valid evaluation.
    """
    df, _ = load_evaluations(records)
    if df.empty:
        return None

    if now is None:
        now_ts = pd.Timestamp.now(tz="UTC")
    else:
        now_ts = to_utc_timestamp(now)
        if now_ts is None:
            raise ValueError(f"Invalid 'now' timestamp: {now!r}")

    # Frame is sorted by recordedDate; the last row is the most recent.
    month_key = MonthKey(df["monthKey"].iloc[-1])
    bucket = build_month_bucket(month_key, df[df["monthKey"] == month_key])
    period_start, period_end = month_key.bounds()

    return sanitize({
        "period": {
            "label": month_key.label,
            "monthKey": month_key,
            "year": month_key.year,
            "monthIndex": month_key.month - 1,
            "periodStart": iso(period_start),
            "periodEnd": iso(period_end),
        },
        "averagePercentage": bucket["stats"]["averagePercentage"],
        "perTypeAverages": bucket["stats"]["perTypeAverages"],
        "springMeet": bucket["springMeet"],
        "status": STATUS_COMPLETED if now_ts > period_end else STATUS_IN_PROGRESS,
        "lastUpdated": bucket["stats"]["lastUpdated"],
    })


# ── Freshness ───────────────────────────────────────────────────────

def latest_modification(records: Optional[List[Any]]) -> Optional[pd.Timestamp]:
    """
    Most recent modification time across raw records (updatedAt, falling
    back to recordedDate), without validating or aggregating them.
    """
    latest = None
    for record in records or []:
        if not isinstance(record, dict):
            continue
        ts = to_utc_timestamp(pick_field(record, "updatedAt"))
        if ts is None:
            ts = to_utc_timestamp(pick_field(record, "recordedDate"))
        if ts is not None and (latest is None or ts > latest):
            latest = ts
    return latest


def check_freshness(last_modified: Any, since: Any = None) -> Dict[str, Any]:
    """
    Compare the evaluation set's last modification against the caller's
    last-seen timestamp.

    hasUpdates is True only when both timestamps are usable and
    last_modified is strictly later than since.
    """
    last = to_utc_timestamp(last_modified)
    since_ts = to_utc_timestamp(since)
    return {
        "hasUpdates": bool(last is not None and since_ts is not None and last > since_ts),
        "lastUpdated": iso(last),
    }
