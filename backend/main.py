"""
PlacementMetrics — Evaluation Aggregation & Performance Analytics
FastAPI backend entry point.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment before route modules read their settings
load_dotenv()

from core.grading import get_all_grade_thresholds  # noqa: E402
from core.periods import EVALUATION_TYPES  # noqa: E402
from core.trends import TREND_THRESHOLD  # noqa: E402
from routes.analytics import router as analytics_router  # noqa: E402
from routes.performance import router as performance_router  # noqa: E402
from routes.reports import router as reports_router  # noqa: E402

APP_NAME = os.getenv("APP_NAME", "PlacementMetrics")
ALERT_THRESHOLD = float(os.getenv("ALERT_THRESHOLD", "60"))
POLL_INTERVAL_SECONDS = int(os.getenv("POLL_INTERVAL_SECONDS", "20"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# Comma-separated allowed origins, e.g. http://localhost:5173,https://app.example.com
raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{APP_NAME} API",
    description=(
        "Evaluation aggregation and performance analytics — month buckets, "
        "trends, tips and trainer cohort rollups computed on demand."
    ),
    version="1.0.0",
)

# CORS for the React dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(performance_router, prefix="/api/performance", tags=["Performance"])
app.include_router(analytics_router, prefix="/api/analytics", tags=["Analytics"])
app.include_router(reports_router, prefix="/api/reports", tags=["Reports"])

logger.info("%s started (alert threshold %.1f%%)", APP_NAME, ALERT_THRESHOLD)


@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "app_name": APP_NAME,
        "alert_threshold": ALERT_THRESHOLD,
    }


@app.get("/api/config")
async def get_config():
    """Return server configuration to the frontend."""
    return {
        "app_name": APP_NAME,
        "alert_threshold": ALERT_THRESHOLD,
        "trend_threshold": TREND_THRESHOLD,
        "poll_interval_seconds": POLL_INTERVAL_SECONDS,
        "evaluation_types": [
            {"type": t, "frequency": cfg["frequency"], "defaultMaxScore": cfg["default_max"]}
            for t, cfg in EVALUATION_TYPES.items()
        ],
        "grade_scale": get_all_grade_thresholds(),
    }
