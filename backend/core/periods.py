"""
periods.py — Evaluation type registry and period resolution.

Maps an evaluation's (type, recordedDate) onto its canonical window:
- Weekly types (aptitude, logical, machine): the Monday-aligned UTC week
- Monthly type (spring_meet): the full UTC calendar month

Also defines MonthKey, the validated "YYYY-MM" string used to key month buckets.
"""

import re
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd


class UnknownEvaluationType(ValueError):
    """Raised when an evaluation type is outside the configured set."""

    def __init__(self, evaluation_type: Any):
        self.evaluation_type = evaluation_type
        super().__init__(f"Unknown evaluation type: {evaluation_type!r}")


# type → frequency and default maximum score
EVALUATION_TYPES: Dict[str, Dict[str, Any]] = {
    "aptitude": {"frequency": "weekly", "default_max": 25},
    "logical": {"frequency": "weekly", "default_max": 25},
    "machine": {"frequency": "weekly", "default_max": 25},
    "spring_meet": {"frequency": "monthly", "default_max": 100},
}

EVALUATION_TYPE_OPTIONS = list(EVALUATION_TYPES.keys())

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def get_type_config(evaluation_type: Any) -> Dict[str, Any]:
    """Return the registry entry for a type or raise UnknownEvaluationType."""
    config = EVALUATION_TYPES.get(evaluation_type) if isinstance(evaluation_type, str) else None
    if config is None:
        raise UnknownEvaluationType(evaluation_type)
    return config


def display_type(evaluation_type: str) -> str:
    """'spring_meet' -> 'spring meet'."""
    return str(evaluation_type).replace("_", " ")


# ── Month keys ──────────────────────────────────────────────────────

class MonthKey(str):
    """A zero-padded "YYYY-MM" calendar month key.

    Sorting MonthKeys as strings is chronological.
    """

    def __new__(cls, value: Any):
        text = str(value).strip()
        if not _MONTH_KEY_RE.match(text):
            raise ValueError(f"Invalid month key {value!r}; expected YYYY-MM.")
        return super().__new__(cls, text)

    @classmethod
    def from_timestamp(cls, ts: Any) -> "MonthKey":
        parsed = to_utc_timestamp(ts)
        if parsed is None:
            raise ValueError(f"Cannot derive a month key from {ts!r}.")
        return cls(f"{parsed.year:04d}-{parsed.month:02d}")

    @property
    def year(self) -> int:
        return int(self[:4])

    @property
    def month(self) -> int:
        return int(self[5:])

    @property
    def label(self) -> str:
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"

    def bounds(self):
        """(first instant, last millisecond) of the month in UTC."""
        start = pd.Timestamp(year=self.year, month=self.month, day=1, tz="UTC")
        end = start + pd.offsets.MonthBegin(1) - pd.Timedelta(milliseconds=1)
        return start, end


# ── Timestamps ──────────────────────────────────────────────────────

def to_utc_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """Parse a value into a tz-aware UTC Timestamp, or None if impossible.

    Naive values are taken to be UTC already. Numbers are epoch
    milliseconds (JavaScript Date.getTime()).
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        if isinstance(value, (int, float, np.integer, np.floating)):
            ts = pd.Timestamp(value, unit="ms")
        else:
            ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def iso(ts: Optional[pd.Timestamp]) -> Optional[str]:
    """ISO 8601 with millisecond precision, e.g. 2025-03-16T23:59:59.999+00:00."""
    if ts is None or pd.isna(ts):
        return None
    return ts.isoformat(timespec="milliseconds")


# ── Period resolution ───────────────────────────────────────────────

def week_range(recorded_date: Any) -> Dict[str, Any]:
    """Monday 00:00:00.000 to Sunday 23:59:59.999 (UTC) around the date."""
    day = to_utc_timestamp(recorded_date)
    if day is None:
        raise ValueError(f"Invalid recorded date: {recorded_date!r}")
    day = day.normalize()
    start = day - pd.Timedelta(days=day.weekday())
    end = start + pd.Timedelta(days=7) - pd.Timedelta(milliseconds=1)
    return {
        "periodStart": start,
        "periodEnd": end,
        "periodLabel": f"Week of {MONTH_NAMES[start.month - 1][:3]} {start.day}, {start.year}",
    }


def month_range(recorded_date: Any) -> Dict[str, Any]:
    """The full UTC calendar month containing the date."""
    key = MonthKey.from_timestamp(recorded_date)
    start, end = key.bounds()
    return {
        "periodStart": start,
        "periodEnd": end,
        "periodLabel": key.label,
    }


def resolve_period(evaluation_type: Any, recorded_date: Any) -> Dict[str, Any]:
    """
    Resolve the period an evaluation belongs to.

    Returns {periodStart, periodEnd, periodLabel} with Timestamp bounds.
    Raises UnknownEvaluationType for types outside EVALUATION_TYPES and
    ValueError for an unusable date.
    """
    config = get_type_config(evaluation_type)
    if config["frequency"] == "monthly":
        return month_range(recorded_date)
    return week_range(recorded_date)
