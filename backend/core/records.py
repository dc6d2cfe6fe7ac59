"""
records.py — Evaluation record loading and validation.

Turns raw evaluation records (JSON objects from the evaluation store) into a
pandas DataFrame with one validated row per evaluation:
- Key aliases (camelCase / snake_case) resolved to canonical columns
- Type checked against the registry (unknown types rejected, never guessed)
- recordedDate parsed as UTC
- score / maxScore coerced to numbers, maxScore defaulted per type
- Percentage and period (week or month window) computed
- Rows sorted deterministically so results never depend on input order

Every excluded record is reported in a skipped report rather than dropped.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from core.periods import (
    EVALUATION_TYPES,
    MonthKey,
    UnknownEvaluationType,
    get_type_config,
    resolve_period,
    to_utc_timestamp,
)

logger = logging.getLogger(__name__)


FIELD_ALIASES: Dict[str, List[str]] = {
    "id": ["id", "_id", "evaluation_id", "evaluationid"],
    "studentId": ["studentid", "student_id", "studentprofileid", "student_profile_id"],
    "type": ["type", "evaluation_type", "evaluationtype"],
    "score": ["score", "marks"],
    "maxScore": ["maxscore", "max_score", "out_of"],
    "recordedDate": ["recordeddate", "recorded_date", "date"],
    "updatedAt": ["updatedat", "updated_at", "modified_at"],
    "notes": ["notes", "note", "remark"],
    "trainerId": ["trainerid", "trainer_id"],
}

FRAME_COLUMNS = [
    "id", "studentId", "trainerId", "type", "frequency", "score", "maxScore",
    "percentage", "recordedDate", "updatedAt", "notes", "periodStart",
    "periodEnd", "periodLabel", "monthKey", "year", "monthIndex", "sourceIndex",
]

SKIP_REASONS = {
    "not_an_object": "Record is not a JSON object.",
    "unknown_type": "Evaluation type is not one of: " + ", ".join(EVALUATION_TYPES) + ".",
    "invalid_recorded_date": "recordedDate is missing or not a valid timestamp.",
    "invalid_score": "score is missing or not numeric.",
    "invalid_max_score": "maxScore must be a positive number.",
    "score_out_of_range": "score must lie between 0 and maxScore.",
}


# ── Helpers ─────────────────────────────────────────────────────────

def safe_float(val, ndigits: int = 2) -> Optional[float]:
    """Convert to a rounded float or return None (NaN/inf included)."""
    try:
        v = float(val)
        return None if np.isnan(v) or np.isinf(v) else round(v, ndigits)
    except (TypeError, ValueError):
        return None


def sanitize(obj):
    """Recursively coerce numpy/pandas scalars to JSON-safe Python types."""
    if isinstance(obj, dict):
        return {k: sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize(v) for v in obj]
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (np.floating, float)):
        v = float(obj)
        return None if (np.isnan(v) or np.isinf(v)) else v
    if obj is pd.NaT:
        return None
    return obj


def find_key(record: Dict[str, Any], aliases: List[str]) -> Optional[str]:
    """Find the first key matching any alias (case-insensitive)."""
    keys_lower = {str(k).lower().strip(): k for k in record.keys()}
    for a in aliases:
        if a in keys_lower:
            return keys_lower[a]
    return None


def pick_field(record: Dict[str, Any], field: str) -> Any:
    key = find_key(record, FIELD_ALIASES[field])
    if key is None:
        return None
    value = record[key]
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return None if np.isnan(v) or np.isinf(v) else v


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _content_key(record: Any) -> str:
    """Stable text form of a raw record, independent of key order."""
    return json.dumps(record, sort_keys=True, default=str)


def empty_frame() -> pd.DataFrame:
    return pd.DataFrame(columns=FRAME_COLUMNS)


# ── Loading ─────────────────────────────────────────────────────────

def _normalize_record(index: int, record: Any) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Return (row, None) for a valid record or (None, reason) otherwise."""
    if not isinstance(record, dict):
        return None, "not_an_object"

    evaluation_type = pick_field(record, "type")
    if isinstance(evaluation_type, str):
        evaluation_type = evaluation_type.strip().lower()
    try:
        config = get_type_config(evaluation_type)
    except UnknownEvaluationType:
        return None, "unknown_type"

    recorded = to_utc_timestamp(pick_field(record, "recordedDate"))
    if recorded is None:
        return None, "invalid_recorded_date"

    score = _to_number(pick_field(record, "score"))
    if score is None:
        return None, "invalid_score"

    raw_max = pick_field(record, "maxScore")
    max_score = float(config["default_max"]) if raw_max is None else _to_number(raw_max)
    if max_score is None or max_score <= 0:
        return None, "invalid_max_score"

    if score < 0 or score > max_score:
        return None, "score_out_of_range"

    period = resolve_period(evaluation_type, recorded)
    month_key = MonthKey.from_timestamp(recorded)
    record_id = pick_field(record, "id")

    return {
        "id": str(record_id) if record_id is not None else None,
        "studentId": _clean_text(pick_field(record, "studentId")),
        "trainerId": _clean_text(pick_field(record, "trainerId")),
        "type": evaluation_type,
        "frequency": config["frequency"],
        "score": score,
        "maxScore": max_score,
        "percentage": score / max_score * 100,
        "recordedDate": recorded,
        "updatedAt": to_utc_timestamp(pick_field(record, "updatedAt")),
        "notes": _clean_text(pick_field(record, "notes")),
        "periodStart": period["periodStart"],
        "periodEnd": period["periodEnd"],
        "periodLabel": period["periodLabel"],
        "monthKey": month_key,
        "year": month_key.year,
        "monthIndex": month_key.month - 1,
        "sourceIndex": index,
    }, None


def load_evaluations(records: Optional[List[Any]]) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Validate raw evaluation records.

    Returns (frame, skipped) where skipped is
    {"count": int, "records": [{id, reason, detail, recordedDate}]} ordered
    by content, so the report does not depend on input order.
    """
    rows: List[Dict[str, Any]] = []
    skipped: List[Dict[str, Any]] = []

    for index, record in enumerate(records or []):
        row, reason = _normalize_record(index, record)
        if row is not None:
            rows.append(row)
            continue

        record_id = pick_field(record, "id") if isinstance(record, dict) else None
        recorded = pick_field(record, "recordedDate") if isinstance(record, dict) else None
        skipped.append({
            "id": str(record_id) if record_id is not None else None,
            "reason": reason,
            "detail": SKIP_REASONS[reason],
            "recordedDate": str(recorded) if recorded is not None else None,
            "_key": _content_key(record),
        })
        logger.warning("Skipping evaluation record %d (id=%s): %s", index, record_id, reason)

    # Input positions are only logged; the report is ordered by content.
    skipped.sort(key=lambda s: (s["reason"], s["id"] or "", s["recordedDate"] or "", s["_key"]))
    for entry in skipped:
        del entry["_key"]
    report = {"count": len(skipped), "records": skipped}
    if not rows:
        return empty_frame(), report

    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)

    # Deterministic order: chronological, then by every distinguishing field.
    df["_id_key"] = df["id"].fillna("")
    df["_notes_key"] = df["notes"].fillna("")
    df["_updated_key"] = df["updatedAt"].map(lambda ts: ts.value if ts is not None and not pd.isna(ts) else 0)
    df = df.sort_values(
        ["recordedDate", "type", "_id_key", "score", "maxScore", "_notes_key", "_updated_key"],
        kind="mergesort",
    )
    df = df.drop(columns=["_id_key", "_notes_key", "_updated_key"]).reset_index(drop=True)

    logger.debug("Loaded %d evaluation(s), skipped %d", len(df), len(skipped))
    return df, report
