"""
rollup.py — Trainer cohort analytics.

Runs the student aggregation across a trainer's approved cohort:
- Filters (batch, student, month) narrow the raw evaluation set first
- Cohort summary, monthly trend and per-type breakdown use per-evaluation
  percentages (every evaluation weighs the same)
- Per-student scores reuse the student view's month buckets and lifetime
  summary (one vote per type per month), so a student's number here matches
  what they see on "My Performance"
- Most-improved student and threshold alerts
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from core.grading import get_grade_label
from core.periods import EVALUATION_TYPE_OPTIONS, MonthKey
from core.records import find_key, load_evaluations, safe_float, sanitize
from core.stats import mean_of_monthly_means, month_points
from core.trends import compute_trend

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 60.0

PROFILE_ALIASES: Dict[str, List[str]] = {
    "studentProfileId": ["studentprofileid", "student_profile_id", "_id", "id", "studentid", "student_id"],
    "name": ["name", "student_name", "full_name"],
    "rollNo": ["rollno", "roll_no"],
    "batch": ["batch"],
    "aggregateScore": ["aggregatescore", "aggregate_score"],
    "approvalStatus": ["approvalstatus", "approval_status"],
}


# ── Helpers ─────────────────────────────────────────────────────────

def _display_name(value: Any) -> str:
    """Accept "Jane Doe" or {"first": "Jane", "last": "Doe"}."""
    if isinstance(value, dict):
        return f"{value.get('first') or ''} {value.get('last') or ''}".strip()
    if value is None:
        return ""
    return str(value).strip()


def normalize_profiles(students: Optional[List[Any]]) -> List[Dict[str, Any]]:
    """Canonical cohort profiles; unapproved or id-less profiles are dropped."""
    profiles = []
    for raw in students or []:
        if not isinstance(raw, dict):
            continue
        picked = {}
        for field, aliases in PROFILE_ALIASES.items():
            key = find_key(raw, aliases)
            picked[field] = raw[key] if key is not None else None

        if picked["studentProfileId"] in (None, ""):
            logger.warning("Ignoring student profile without an id: %r", raw)
            continue
        status = picked["approvalStatus"]
        if status is not None and str(status).lower() != "approved":
            continue

        profiles.append({
            "studentProfileId": str(picked["studentProfileId"]),
            "name": _display_name(picked["name"]),
            "rollNo": picked["rollNo"],
            "batch": picked["batch"],
            "aggregateScore": safe_float(picked["aggregateScore"]),
        })

    profiles.sort(key=lambda p: (p["name"].lower(), p["studentProfileId"]))
    return profiles


def _parse_threshold(threshold: Any) -> float:
    if threshold is None or threshold == "":
        return DEFAULT_THRESHOLD
    if isinstance(threshold, (bool, np.bool_)):
        raise ValueError(f"Invalid threshold: {threshold!r}")
    try:
        value = float(threshold)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid threshold: {threshold!r}")
    if np.isnan(value) or np.isinf(value):
        raise ValueError(f"Invalid threshold: {threshold!r}")
    return value


def _grouped_scores(df: pd.DataFrame, column: str, key_name: str) -> List[Dict[str, Any]]:
    rows = []
    for key, group in df.groupby(column, sort=True):
        rows.append({
            key_name: str(key),
            "avgScore": safe_float(group["percentage"].mean()),
            "evaluations": len(group),
        })
    return rows


def _trend_slope(points: List[Dict[str, Any]]) -> Optional[float]:
    """Least-squares slope of monthly averages (points per month with data)."""
    values = [p["stats"]["averagePercentage"] for p in points
              if p["stats"]["averagePercentage"] is not None]
    if len(values) < 2:
        return None
    x = np.arange(len(values))
    return safe_float(np.polyfit(x, np.array(values, dtype=float), 1)[0], 3)


# ── Per-Student ─────────────────────────────────────────────────────

def _student_entry(profile: Dict[str, Any], sdf: pd.DataFrame) -> Tuple[Dict[str, Any], Optional[float]]:
    """(perStudent entry, unrounded overall average)."""
    points = month_points(sdf)
    average = mean_of_monthly_means(points)
    trend = compute_trend(points)

    entry = {
        "studentProfileId": profile["studentProfileId"],
        "name": profile["name"],
        "rollNo": profile["rollNo"],
        "batch": profile["batch"],
        "avgScore": safe_float(average),
        # Frame is sorted by recordedDate; the last row is the latest.
        "latestScore": safe_float(sdf["percentage"].iloc[-1]) if not sdf.empty else None,
        "trend": trend["delta"] if trend else None,
        "trendDirection": trend["direction"] if trend else None,
        "trendSlope": _trend_slope(points),
        "evaluations": len(sdf),
        "grade": get_grade_label(average),
    }
    return entry, average


def _below_threshold(
    per_student: List[Dict[str, Any]],
    exact_averages: Dict[str, Optional[float]],
    profiles: Dict[str, Dict[str, Any]],
    threshold: float,
) -> List[Dict[str, Any]]:
    flagged = []
    for entry in per_student:
        student_id = entry["studentProfileId"]
        if entry["evaluations"] > 0:
            score, source = exact_averages[student_id], "evaluations"
        else:
            score, source = profiles[student_id]["aggregateScore"], "aggregateScore"
        if score is None or score >= threshold:
            continue
        flagged.append({
            "studentProfileId": student_id,
            "name": entry["name"],
            "rollNo": entry["rollNo"],
            "batch": entry["batch"],
            "avgScore": entry["avgScore"],
            "score": score,
            "scoreSource": source,
        })
    # Worst first; perStudent order breaks ties.
    flagged.sort(key=lambda s: s["score"])
    for item in flagged:
        item["score"] = safe_float(item["score"])
    return flagged


def _most_improved(per_student: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    best = None
    for entry in per_student:
        if entry["trend"] is None or entry["trend"] <= 0:
            continue
        if best is None or entry["trend"] > best["trend"]:
            best = entry
    return best


# ── Main Entry Point ───────────────────────────────────────────────

def compute_trainer_analytics(
    students: Optional[List[Any]],
    evaluations: Optional[List[Any]],
    filters: Optional[Dict[str, Any]] = None,
    threshold: Any = DEFAULT_THRESHOLD,
) -> Dict[str, Any]:
    """
    Cohort analytics for a trainer.

    Args:
        students: cohort profiles {studentProfileId, name, rollNo, batch,
            aggregateScore?, approvalStatus?}
        evaluations: raw evaluation records for the cohort
        filters: optional {batch, studentProfileId, month ("YYYY-MM")}
        threshold: alert cutoff in percent

    Returns:
        {
            "summary": {totalStudents, avgScore, totalEvaluations, skippedEvaluations},
            "monthlyTrend": [{month, avgScore, evaluations}],
            "typeBreakdown": [{type, avgScore, evaluations}],
            "perStudent": [...],
            "insights": {"mostImproved": ..., "studentsBelowThreshold": [...]},
            "threshold": float,
            "skipped": {...},
        }

    Raises ValueError for an invalid month filter or threshold.
    """
    filters = filters or {}
    cutoff = _parse_threshold(threshold)

    month = filters.get("month")
    month_key = MonthKey(month) if month not in (None, "") else None

    profiles = normalize_profiles(students)
    batch = filters.get("batch")
    if batch not in (None, ""):
        profiles = [p for p in profiles if str(p["batch"]) == str(batch)]
    student_filter = filters.get("studentProfileId")
    if student_filter not in (None, ""):
        profiles = [p for p in profiles if p["studentProfileId"] == str(student_filter)]

    df, skipped = load_evaluations(evaluations)
    cohort_ids = {p["studentProfileId"] for p in profiles}
    if not df.empty:
        df = df[df["studentId"].isin(cohort_ids)]
        if month_key is not None:
            df = df[df["monthKey"] == month_key]

    per_student = []
    exact_averages: Dict[str, Optional[float]] = {}
    for p in profiles:
        entry, average = _student_entry(p, df[df["studentId"] == p["studentProfileId"]])
        per_student.append(entry)
        exact_averages[p["studentProfileId"]] = average
    by_id = {p["studentProfileId"]: p for p in profiles}

    monthly_trend = _grouped_scores(df, "monthKey", "month") if not df.empty else []
    type_rows = {row["type"]: row for row in _grouped_scores(df, "type", "type")} if not df.empty else {}
    type_breakdown = [type_rows[t] for t in EVALUATION_TYPE_OPTIONS if t in type_rows]

    logger.info(
        "Trainer analytics: %d student(s), %d evaluation(s), threshold %.1f",
        len(profiles), len(df), cutoff,
    )

    return sanitize({
        "summary": {
            "totalStudents": len(profiles),
            "avgScore": safe_float(df["percentage"].mean()) if not df.empty else None,
            "totalEvaluations": len(df),
            "skippedEvaluations": skipped["count"],
        },
        "monthlyTrend": monthly_trend,
        "typeBreakdown": type_breakdown,
        "perStudent": per_student,
        "insights": {
            "mostImproved": _most_improved(per_student),
            "studentsBelowThreshold": _below_threshold(per_student, exact_averages, by_id, cutoff),
        },
        "threshold": cutoff,
        "skipped": skipped,
    })
