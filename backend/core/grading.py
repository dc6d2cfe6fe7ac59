"""
grading.py — Performance grade bands.

Grades are applied to a student's overall (mean-of-monthly-means) percentage:
  Excellent (>= 80), Good (>= 60), Needs Improvement (< 60)

Lower bounds are inclusive: 80.0 is Excellent, 79.99 is Good.
"""

from typing import Any, Dict, List, Optional


# (min_score, label, description), ordered high to low.
PERFORMANCE_GRADES = [
    (80.0, "Excellent", "Consistently strong results across evaluations"),
    (60.0, "Good", "Solid results with room to improve"),
    (0.0, "Needs Improvement", "Below the expected level; focus on weak areas"),
]


def _to_score(score: Optional[float]) -> Optional[float]:
    if score is None:
        return None
    try:
        return float(score)
    except (TypeError, ValueError):
        return None


def get_performance_grade(score: Optional[float]) -> Dict[str, Any]:
    """Return grade info for a 0-100 percentage."""
    value = _to_score(score)
    if value is None:
        return {"label": None, "description": "No score"}

    for min_score, label, desc in PERFORMANCE_GRADES:
        if value >= min_score:
            return {"label": label, "description": desc, "score": round(value, 2)}

    # Negative percentages only reach here through bad input upstream.
    return {"label": "Needs Improvement", "description": PERFORMANCE_GRADES[-1][2], "score": round(value, 2)}


def get_grade_label(score: Optional[float]) -> Optional[str]:
    """Return the grade label string, or None when there is no score."""
    return get_performance_grade(score)["label"]


def get_all_grade_thresholds() -> List[Dict[str, Any]]:
    """Return the full grade scale for legend/reference."""
    thresholds = []
    for idx, (min_score, label, desc) in enumerate(PERFORMANCE_GRADES):
        max_score = 100.0 if idx == 0 else PERFORMANCE_GRADES[idx - 1][0] - 0.01
        thresholds.append(
            {
                "min": min_score,
                "max": round(max_score, 2),
                "label": label,
                "description": desc,
            }
        )
    return thresholds
