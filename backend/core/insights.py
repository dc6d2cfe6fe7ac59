"""
insights.py — Rule-based performance tips for the student view.

Rules (evaluated in order, each may append one tip):
1. Weakest evaluation type in the latest month
2. Strongest evaluation type in the latest month
3. Month-over-month improvement or decline (|delta| >= TREND_THRESHOLD)
4. Generic "steady performance" tip when nothing above applied
No data at all yields the single onboarding message instead.

Ties between types resolve alphabetically by type key.
"""

from typing import Any, Dict, List, Optional

import pandas as pd

from core.narrative import (
    NO_DATA_TIP,
    STEADY_TIP,
    narrate_strongest_type,
    narrate_trend_change,
    narrate_weakest_type,
)
from core.stats import group_by_year_month, iter_month_buckets, month_points
from core.trends import compute_trend


def _extremes(per_type: Dict[str, float]):
    """(weakest, strongest) as (type, value) pairs, alphabetical tie-break."""
    items = sorted((t, v) for t, v in per_type.items() if v is not None)
    if not items:
        return None, None
    weakest, strongest = items[0], items[0]
    for item in items[1:]:
        if item[1] < weakest[1]:
            weakest = item
        if item[1] > strongest[1]:
            strongest = item
    return weakest, strongest


def generate_insights(
    latest_month: Optional[Dict[str, Any]],
    trend: Optional[Dict[str, Any]] = None,
) -> List[str]:
    """
    Build the ordered tip list from the latest month bucket and trend.

    Weakest-area tip comes first so the learner sees where to focus.
    """
    if latest_month is None:
        return [NO_DATA_TIP]

    tips: List[str] = []
    per_type = latest_month.get("stats", {}).get("perTypeAverages") or {}

    weakest, strongest = _extremes(per_type)
    if weakest is not None:
        tips.append(narrate_weakest_type(*weakest))
        tips.append(narrate_strongest_type(*strongest))

    if trend is not None and trend.get("direction") in ("up", "down"):
        previous_label = trend.get("previousLabel") or trend.get("previousMonth") or "last month"
        tips.append(narrate_trend_change(trend["delta"], previous_label))

    if not tips:
        tips.append(STEADY_TIP)

    return tips


def generate_performance_insights(
    df: pd.DataFrame,
    grouped: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Tips and trend for one student's validated evaluation frame.

    grouped may be passed when the caller already built the year → month
    buckets. The trend is computed on unrounded month averages.
    """
    if grouped is None:
        grouped = group_by_year_month(df)
    buckets = iter_month_buckets(grouped, newest_first=True)
    latest = buckets[0] if buckets else None
    trend = compute_trend(month_points(df))
    return {
        "insights": generate_insights(latest, trend),
        "trend": trend,
    }
