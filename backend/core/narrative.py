"""
narrative.py — Template-based text for performance tips and cohort summaries.

Transforms structured statistics into short human-readable sentences.
Uses f-string templates — zero AI dependency.
"""

from typing import Any, Dict, List, Optional

from core.periods import display_type


NO_DATA_TIP = "Once your trainer records evaluations, you will see personalised insights here."

STEADY_TIP = (
    "You are maintaining a steady performance. "
    "Focus on consistent weekly practice to improve further."
)


# ── Student Tips ────────────────────────────────────────────────────

def narrate_weakest_type(evaluation_type: str, value: float) -> str:
    return (
        f"{display_type(evaluation_type)} seems to be your weakest area this month at "
        f"{value:.1f}%. Consider revising core concepts and practising targeted questions."
    )


def narrate_strongest_type(evaluation_type: str, value: float) -> str:
    return (
        f"Your strongest area is {display_type(evaluation_type)} at {value:.1f}%. "
        f"Keep up the consistency and aim to maintain this level next month."
    )


def narrate_trend_change(delta: float, previous_label: str) -> str:
    direction = "improved" if delta > 0 else "dropped"
    return (
        f"Your overall performance has {direction} by {abs(delta):.1f}% compared to "
        f"{previous_label}. Try to reflect on what contributed to this change."
    )


# ── Cohort Narratives ───────────────────────────────────────────────

def narrate_most_improved(student: Optional[Dict[str, Any]]) -> str:
    if not student:
        return "No student has improved month-on-month yet."
    name = student.get("name") or student.get("studentProfileId")
    return (
        f"{name} is the most improved student, up {student['trend']:.1f} points "
        f"on their previous month."
    )


def narrate_below_threshold(students: List[Dict[str, Any]], threshold: float) -> str:
    count = len(students)
    if count == 0:
        return f"All students are at or above the {threshold:g}% alert threshold."
    worst = students[0]
    name = worst.get("name") or worst.get("studentProfileId")
    return (
        f"{count} student(s) are below the {threshold:g}% alert threshold. "
        f"{name} needs the most attention at {worst['score']:.1f}%."
    )


def narrate_cohort_summary(summary: Dict[str, Any]) -> str:
    avg = summary.get("avgScore")
    if avg is None:
        return (
            f"No evaluations recorded yet for {summary.get('totalStudents', 0)} "
            f"student(s) in this cohort."
        )
    return (
        f"{summary.get('totalStudents', 0)} student(s), "
        f"{summary.get('totalEvaluations', 0)} evaluation(s), "
        f"cohort average {avg:.1f}%."
    )
