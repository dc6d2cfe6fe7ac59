"""
stats.py — Month bucket aggregation and lifetime summary.

Computes, for one student's validated evaluation frame:
- Year → month hierarchy of MonthBuckets (sparse, chronological)
- Per-type averages and one-vote-per-type monthly average
- Week-level trend points inside each month
- Latest entry per evaluation type
- Overall performance summary (mean of monthly means) with grade
"""

from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from core.grading import get_grade_label
from core.periods import EVALUATION_TYPE_OPTIONS, MonthKey, iso
from core.records import safe_float, sanitize


# ── Helpers ─────────────────────────────────────────────────────────

def _entry(row) -> Dict[str, Any]:
    """Serialize one evaluation row for display."""
    return {
        "id": row["id"],
        "studentId": row["studentId"],
        "type": row["type"],
        "frequency": row["frequency"],
        "score": row["score"],
        "maxScore": row["maxScore"],
        "percentage": safe_float(row["percentage"]),
        "periodLabel": row["periodLabel"],
        "periodStart": iso(row["periodStart"]),
        "periodEnd": iso(row["periodEnd"]),
        "recordedDate": iso(row["recordedDate"]),
        "notes": row["notes"],
        "updatedAt": iso(row["updatedAt"]),
    }


def _entries(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return [_entry(row) for _, row in df.iterrows()]


def modified_at(df: pd.DataFrame) -> pd.Series:
    """Per-row modification time: updatedAt, falling back to recordedDate."""
    updated = pd.to_datetime(df["updatedAt"], utc=True)
    return updated.where(updated.notna(), pd.to_datetime(df["recordedDate"], utc=True))


def type_means(df: pd.DataFrame) -> Dict[str, float]:
    """Unrounded mean percentage per type present, in registry order."""
    means = df.groupby("type")["percentage"].mean()
    return {t: float(means[t]) for t in EVALUATION_TYPE_OPTIONS if t in means.index}


def _one_vote_per_type(per_type: Dict[str, float]) -> Optional[float]:
    if not per_type:
        return None
    return float(np.mean(list(per_type.values())))


# ── Month Buckets ───────────────────────────────────────────────────

def compute_weekly_trend(weekly_df: pd.DataFrame) -> List[Dict[str, Any]]:
    """One point per week with weekly entries, chronological."""
    points = []
    if weekly_df.empty:
        return points
    for (start, label), wdf in weekly_df.groupby(["periodStart", "periodLabel"], sort=True):
        points.append({
            "label": label,
            "periodStart": iso(start),
            "averagePercentage": safe_float(_one_vote_per_type(type_means(wdf))),
            "evaluations": len(wdf),
        })
    return points


def build_month_bucket(month_key: MonthKey, mdf: pd.DataFrame) -> Dict[str, Any]:
    """Aggregate the evaluations of one calendar month."""
    weekly = mdf[mdf["frequency"] == "weekly"]
    monthly = mdf[mdf["frequency"] == "monthly"]

    per_type = type_means(mdf)
    average = _one_vote_per_type(per_type)
    monthly_entries = _entries(monthly)

    return {
        "monthKey": month_key,
        "year": month_key.year,
        "monthIndex": month_key.month - 1,
        "label": month_key.label,
        "weeklyEntries": _entries(weekly),
        "monthlyEntries": monthly_entries,
        # Frame is sorted by recordedDate, so the last monthly row is the latest.
        "springMeet": monthly_entries[-1] if monthly_entries else None,
        "weeklyTrend": compute_weekly_trend(weekly),
        "stats": {
            "averagePercentage": safe_float(average),
            "perTypeAverages": {t: safe_float(v) for t, v in per_type.items()},
            "grade": get_grade_label(average),
            "evaluationCount": len(mdf),
            "lastUpdated": iso(modified_at(mdf).max()),
        },
    }


def group_by_year_month(df: pd.DataFrame) -> Dict[str, Dict[str, Any]]:
    """
    Group a student's evaluations into {year: {year, months: {monthKey: bucket}}}.

    Years and months are inserted in chronological order. Months without
    evaluations never get a bucket.
    """
    grouped: Dict[str, Dict[str, Any]] = {}
    if df.empty:
        return grouped

    for raw_key, mdf in df.groupby("monthKey", sort=True):
        month_key = MonthKey(raw_key)
        year_bucket = grouped.setdefault(str(month_key.year), {"year": month_key.year, "months": {}})
        year_bucket["months"][month_key] = build_month_bucket(month_key, mdf)

    return sanitize(grouped)


def iter_month_buckets(grouped: Dict[str, Dict[str, Any]], newest_first: bool = False) -> List[Dict[str, Any]]:
    """Flatten the year → month hierarchy, sorted by monthKey."""
    buckets = [
        bucket
        for year_bucket in grouped.values()
        for bucket in year_bucket["months"].values()
    ]
    buckets.sort(key=lambda b: b["monthKey"], reverse=newest_first)
    return buckets


def latest_by_type(df: pd.DataFrame) -> Dict[str, Dict[str, Any]]:
    """Most recently recorded entry for each evaluation type present."""
    latest = {}
    if df.empty:
        return latest
    for evaluation_type in EVALUATION_TYPE_OPTIONS:
        tdf = df[df["type"] == evaluation_type]
        if not tdf.empty:
            latest[evaluation_type] = _entry(tdf.iloc[-1])
    return sanitize(latest)


# ── Overall Summary ─────────────────────────────────────────────────

def month_points(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Unrounded month averages, chronological, shaped like month buckets
    ({monthKey, label, stats: {averagePercentage, perTypeAverages}}).

    Grades and trend directions are decided on these values; only the
    numbers that leave the engine are rounded.
    """
    points = []
    if df.empty:
        return points
    for raw_key, mdf in df.groupby("monthKey", sort=True):
        month_key = MonthKey(raw_key)
        per_type = type_means(mdf)
        points.append({
            "monthKey": month_key,
            "label": month_key.label,
            "stats": {
                "averagePercentage": _one_vote_per_type(per_type),
                "perTypeAverages": per_type,
            },
        })
    return points


def _dated(month_buckets: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Months with an average, newest first."""
    dated = [b for b in month_buckets if b["stats"].get("averagePercentage") is not None]
    return sorted(dated, key=lambda b: b["monthKey"], reverse=True)


def mean_of_monthly_means(month_buckets: List[Dict[str, Any]]) -> Optional[float]:
    """Unrounded lifetime average: every month with data counts once."""
    dated = _dated(month_buckets)
    if not dated:
        return None
    return float(np.mean([b["stats"]["averagePercentage"] for b in dated]))


def _month_ref(bucket: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "monthKey": bucket["monthKey"],
        "label": bucket["label"],
        "averagePercentage": safe_float(bucket["stats"]["averagePercentage"]),
    }


def compute_overall_performance(month_buckets: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Reduce all of a student's months into one lifetime summary.

    Pass month_points(df) so the grade is applied to the exact average;
    rounded month buckets are accepted too.
    Every month with data counts once, however many evaluations it holds.
    Per-type averages only count months in which the type appears.
    Best/weakest month ties go to the most recent month.
    Returns None when no month has an average.
    """
    dated = _dated(month_buckets)
    if not dated:
        return None

    average = mean_of_monthly_means(dated)

    per_type_values: Dict[str, List[float]] = {}
    for bucket in dated:
        for evaluation_type, value in bucket["stats"]["perTypeAverages"].items():
            if value is not None:
                per_type_values.setdefault(evaluation_type, []).append(value)
    per_type = {
        t: safe_float(np.mean(per_type_values[t]))
        for t in EVALUATION_TYPE_OPTIONS
        if t in per_type_values
    }

    best, weakest = dated[0], dated[0]
    for bucket in dated[1:]:
        avg = bucket["stats"]["averagePercentage"]
        if avg > best["stats"]["averagePercentage"]:
            best = bucket
        if avg < weakest["stats"]["averagePercentage"]:
            weakest = bucket

    return sanitize({
        "averagePercentage": safe_float(average),
        "perTypeAverages": per_type,
        "bestMonth": _month_ref(best),
        "weakestMonth": _month_ref(weakest),
        "monthsCount": len(dated),
        "grade": get_grade_label(average),
    })
