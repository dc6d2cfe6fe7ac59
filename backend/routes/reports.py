"""
Report routes — Excel export endpoints.
"""

import re
import uuid
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from core.performance import compute_grouped_performance
from core.report_builder import generate_analytics_excel, generate_performance_excel
from routes.analytics import analytics_from_payload

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
REPORTS_DIR = Path(__file__).resolve().parent.parent / "reports"
REPORTS_DIR.mkdir(parents=True, exist_ok=True)


def _safe_token(value: str, fallback: str = "item") -> str:
    """Create filesystem-safe token for filenames."""
    token = re.sub(r"[^A-Za-z0-9._-]+", "_", str(value)).strip("._-")
    return token or fallback


def _safe_unlink(path: str):
    """Delete the temp file once the response is sent."""
    Path(path).unlink(missing_ok=True)


@router.post("/trainer-excel")
async def trainer_excel(payload: dict):
    """Export trainer cohort analytics as an Excel workbook."""
    analytics = analytics_from_payload(payload)
    trainer_name = str(payload.get("trainer_name") or "Trainer")

    report_id = str(uuid.uuid4())[:8]
    trainer_token = _safe_token(trainer_name, fallback="trainer")
    output_path = REPORTS_DIR / f"analytics_{trainer_token}_{report_id}.xlsx"

    try:
        generate_analytics_excel(str(output_path), analytics, trainer_name=trainer_name)
    except Exception:
        _safe_unlink(str(output_path))
        raise

    return FileResponse(
        str(output_path),
        media_type=XLSX_MEDIA_TYPE,
        filename=f"PlacementMetrics_Analytics_{trainer_token}_{report_id}.xlsx",
        background=BackgroundTask(_safe_unlink, str(output_path)),
    )


@router.post("/student-excel")
async def student_excel(payload: dict):
    """Export one student's grouped performance as an Excel workbook."""
    evaluations = payload.get("evaluations")
    if not isinstance(evaluations, list):
        raise HTTPException(400, "Provide 'evaluations' as a list.")
    student_name = str(payload.get("student_name") or "Student")

    performance = compute_grouped_performance(evaluations)

    report_id = str(uuid.uuid4())[:8]
    student_token = _safe_token(student_name, fallback="student")
    output_path = REPORTS_DIR / f"performance_{student_token}_{report_id}.xlsx"

    try:
        generate_performance_excel(str(output_path), performance, student_name=student_name)
    except Exception:
        _safe_unlink(str(output_path))
        raise

    return FileResponse(
        str(output_path),
        media_type=XLSX_MEDIA_TYPE,
        filename=f"PlacementMetrics_Performance_{student_token}_{report_id}.xlsx",
        background=BackgroundTask(_safe_unlink, str(output_path)),
    )
