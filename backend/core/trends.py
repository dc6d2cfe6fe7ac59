"""
trends.py — Month-over-month trend classification.

One threshold governs every trend in the system: the student "My Performance"
hero, the insight tips and the trainer cohort rollup all classify movement
with TREND_THRESHOLD.
"""

from typing import Any, Dict, List, Optional

from core.records import safe_float

# Percentage points; |delta| below this is "flat".
TREND_THRESHOLD = 0.5


def classify_delta(delta: float, threshold: float = TREND_THRESHOLD) -> str:
    """Map a signed delta to up / down / flat."""
    if delta >= threshold:
        return "up"
    if delta <= -threshold:
        return "down"
    return "flat"


def compute_trend(month_buckets: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Compare the two most recent month buckets that have an average.

    Buckets may be passed in any order; they are sorted newest first here.
    Pass month_points(df) so the direction is decided on exact averages;
    only the emitted delta is rounded.
    Returns None when fewer than two dated buckets exist.
    """
    dated = [
        b for b in month_buckets
        if b.get("stats", {}).get("averagePercentage") is not None
    ]
    if len(dated) < 2:
        return None

    latest, previous = sorted(dated, key=lambda b: b["monthKey"], reverse=True)[:2]
    raw_delta = latest["stats"]["averagePercentage"] - previous["stats"]["averagePercentage"]
    direction = classify_delta(raw_delta)

    return {
        "direction": direction,
        "delta": safe_float(raw_delta),
        "label": f"Performance {direction} {abs(raw_delta):.1f}% vs {previous['label']}",
        "latestMonth": latest["monthKey"],
        "previousMonth": previous["monthKey"],
        "previousLabel": previous["label"],
    }

