"""
Analytics routes — trainer cohort analytics API endpoints.
"""

import os

from fastapi import APIRouter, HTTPException

from core.grading import get_all_grade_thresholds
from core.rollup import compute_trainer_analytics

router = APIRouter()

ALERT_THRESHOLD = float(os.getenv("ALERT_THRESHOLD", "60"))


def analytics_from_payload(payload: dict) -> dict:
    """Run the cohort rollup for a {students, evaluations, filters?, threshold?} payload."""
    students = payload.get("students")
    evaluations = payload.get("evaluations")
    if students is None or evaluations is None:
        raise HTTPException(400, "Provide 'students' and 'evaluations'.")
    if not isinstance(students, list) or not isinstance(evaluations, list):
        raise HTTPException(400, "'students' and 'evaluations' must be lists.")

    filters = payload.get("filters") or {}
    if not isinstance(filters, dict):
        raise HTTPException(400, "'filters' must be an object.")

    threshold = payload.get("threshold")
    try:
        return compute_trainer_analytics(
            students,
            evaluations,
            filters=filters,
            threshold=ALERT_THRESHOLD if threshold is None else threshold,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/trainer")
async def trainer(payload: dict):
    """Cohort summary, monthly trend, type breakdown, per-student rows and alerts."""
    return analytics_from_payload(payload)


@router.get("/grade-scale")
async def grade_scale():
    """Performance grade bands for legends."""
    return {"grades": get_all_grade_thresholds()}
