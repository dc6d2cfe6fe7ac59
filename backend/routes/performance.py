"""
Performance routes — student "My Performance" endpoints.
"""

import logging

from fastapi import APIRouter, HTTPException

from core.insights import generate_performance_insights
from core.performance import (
    build_hero_snapshot,
    check_freshness,
    compute_grouped_performance,
    latest_modification,
)
from core.periods import EVALUATION_TYPE_OPTIONS, UnknownEvaluationType, iso, resolve_period
from core.records import load_evaluations

logger = logging.getLogger(__name__)

router = APIRouter()


def _evaluations_from_payload(payload: dict) -> list:
    """Extract the evaluation list from a request payload."""
    evaluations = payload.get("evaluations")
    if evaluations is None:
        raise HTTPException(400, "Provide 'evaluations'.")
    if not isinstance(evaluations, list):
        raise HTTPException(400, "'evaluations' must be a list.")
    return evaluations


@router.post("/grouped")
async def grouped(payload: dict):
    """Year → month buckets, lifetime summary, trend and tips."""
    return compute_grouped_performance(_evaluations_from_payload(payload))


@router.post("/latest")
async def latest(payload: dict):
    """Hero snapshot of the most recent month with evaluations."""
    evaluations = _evaluations_from_payload(payload)
    try:
        snapshot = build_hero_snapshot(evaluations, now=payload.get("now"))
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"data": snapshot}


@router.post("/alerts")
async def alerts(payload: dict):
    """Cheap freshness check for polling clients."""
    if "lastModified" in payload:
        last_modified = payload.get("lastModified")
    elif "evaluations" in payload:
        last_modified = latest_modification(_evaluations_from_payload(payload))
    else:
        raise HTTPException(400, "Provide 'evaluations' or 'lastModified'.")

    result = check_freshness(last_modified, payload.get("since"))
    logger.debug("Freshness check since=%s -> %s", payload.get("since"), result)
    return result


@router.post("/insights")
async def insights(payload: dict):
    """Rule-based tips for the latest month plus the month-over-month trend."""
    df, _ = load_evaluations(_evaluations_from_payload(payload))
    return generate_performance_insights(df)


@router.post("/period")
async def period(payload: dict):
    """Resolve the week or month window an evaluation falls into."""
    evaluation_type = payload.get("type")
    recorded_date = payload.get("recordedDate")
    if not evaluation_type or not recorded_date:
        raise HTTPException(400, "Provide 'type' and 'recordedDate'.")

    try:
        resolved = resolve_period(evaluation_type, recorded_date)
    except UnknownEvaluationType as e:
        raise HTTPException(400, f"{e}. Expected one of: {', '.join(EVALUATION_TYPE_OPTIONS)}.")
    except ValueError as e:
        raise HTTPException(400, str(e))

    return {
        "type": evaluation_type,
        "periodStart": iso(resolved["periodStart"]),
        "periodEnd": iso(resolved["periodEnd"]),
        "periodLabel": resolved["periodLabel"],
    }
