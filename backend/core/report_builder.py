"""
report_builder.py — Excel exports of performance analytics.

Generates:
1. Trainer cohort analytics workbook (summary, students, trends, alerts)
2. Single-student performance workbook (overview + one row per month)

Score cells are colour-coded by grade band / alert threshold.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from core.grading import PERFORMANCE_GRADES
from core.narrative import (
    narrate_below_threshold,
    narrate_cohort_summary,
    narrate_most_improved,
)
from core.periods import EVALUATION_TYPE_OPTIONS, display_type
from core.stats import iter_month_buckets


# ── Styling ─────────────────────────────────────────────────────────

HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
HEADER_FILL = PatternFill(start_color="1a1a2e", end_color="1a1a2e", fill_type="solid")
RED_FILL = PatternFill(start_color="fadbd8", end_color="fadbd8", fill_type="solid")
GREEN_FILL = PatternFill(start_color="d5f5e3", end_color="d5f5e3", fill_type="solid")
YELLOW_FILL = PatternFill(start_color="fef9e7", end_color="fef9e7", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"), right=Side(style="thin"),
    top=Side(style="thin"), bottom=Side(style="thin"),
)

EXCELLENT_MIN = PERFORMANCE_GRADES[0][0]
GOOD_MIN = PERFORMANCE_GRADES[1][0]


def _score_fill(value: Any, low_cutoff: float) -> Optional[PatternFill]:
    try:
        val = float(value)
    except (TypeError, ValueError):
        return None
    if val >= EXCELLENT_MIN:
        return GREEN_FILL
    if val >= low_cutoff:
        return YELLOW_FILL
    return RED_FILL


def _write_table(ws, headers: List[str], rows: List[List[Any]],
                 score_col: Optional[int] = None, low_cutoff: float = GOOD_MIN):
    """Append a header + rows and apply borders, fills and widths."""
    ws.append(headers)
    for row in rows:
        ws.append(row)

    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")
        cell.border = THIN_BORDER

    for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
        for cell in row:
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal="center")
        if score_col is not None:
            fill = _score_fill(row[score_col].value, low_cutoff)
            if fill is not None:
                row[score_col].fill = fill

    ws.freeze_panes = "A2"
    for col_cells in ws.columns:
        max_len = max(len(str(cell.value if cell.value is not None else "")) for cell in col_cells)
        ws.column_dimensions[col_cells[0].column_letter].width = min(max_len + 4, 40)


# ═══════════════════════════════════════════════════════════════════
# 1. TRAINER ANALYTICS
# ═══════════════════════════════════════════════════════════════════

def generate_analytics_excel(
    output_path: str,
    analytics: Dict[str, Any],
    trainer_name: str = "Trainer",
):
    """Export the trainer cohort analytics to an Excel workbook."""
    threshold = float(analytics.get("threshold") or GOOD_MIN)
    summary = analytics.get("summary", {})
    insights = analytics.get("insights", {})
    below = insights.get("studentsBelowThreshold", [])

    wb = Workbook()

    # ── Summary ─────────────────────────────────────────────────────
    ws = wb.active
    ws.title = "Summary"
    ws.sheet_properties.tabColor = "1a1a2e"
    _write_table(ws, ["Metric", "Value"], [
        ["Trainer", trainer_name],
        ["Generated", datetime.now().strftime("%d %b %Y %H:%M")],
        ["Students", summary.get("totalStudents", 0)],
        ["Evaluations", summary.get("totalEvaluations", 0)],
        ["Cohort average (%)", summary.get("avgScore")],
        ["Alert threshold (%)", threshold],
        ["Skipped records", summary.get("skippedEvaluations", 0)],
        ["Overview", narrate_cohort_summary(summary)],
        ["Most improved", narrate_most_improved(insights.get("mostImproved"))],
        ["Alerts", narrate_below_threshold(below, threshold)],
    ])

    # ── Students ────────────────────────────────────────────────────
    ws = wb.create_sheet("Students")
    ws.sheet_properties.tabColor = "0f3460"
    _write_table(
        ws,
        ["Name", "Roll No", "Batch", "Average (%)", "Latest (%)", "Trend", "Grade", "Evaluations"],
        [
            [s.get("name"), s.get("rollNo"), s.get("batch"), s.get("avgScore"),
             s.get("latestScore"), s.get("trend"), s.get("grade"), s.get("evaluations")]
            for s in analytics.get("perStudent", [])
        ],
        score_col=3,
        low_cutoff=threshold,
    )

    # ── Monthly Trend ───────────────────────────────────────────────
    ws = wb.create_sheet("Monthly Trend")
    ws.sheet_properties.tabColor = "2ecc71"
    _write_table(
        ws,
        ["Month", "Average (%)", "Evaluations"],
        [[m["month"], m["avgScore"], m["evaluations"]] for m in analytics.get("monthlyTrend", [])],
        score_col=1,
        low_cutoff=threshold,
    )

    # ── Type Breakdown ──────────────────────────────────────────────
    ws = wb.create_sheet("Type Breakdown")
    ws.sheet_properties.tabColor = "f39c12"
    _write_table(
        ws,
        ["Type", "Average (%)", "Evaluations"],
        [[display_type(t["type"]), t["avgScore"], t["evaluations"]]
         for t in analytics.get("typeBreakdown", [])],
        score_col=1,
        low_cutoff=threshold,
    )

    # ── Below Threshold ─────────────────────────────────────────────
    ws = wb.create_sheet("Below Threshold")
    ws.sheet_properties.tabColor = "e94560"
    _write_table(
        ws,
        ["Name", "Roll No", "Batch", "Score (%)", "Source"],
        [[s.get("name"), s.get("rollNo"), s.get("batch"), s.get("score"), s.get("scoreSource")]
         for s in below],
        score_col=3,
        low_cutoff=threshold,
    )

    wb.save(output_path)


# ═══════════════════════════════════════════════════════════════════
# 2. STUDENT PERFORMANCE
# ═══════════════════════════════════════════════════════════════════

def generate_performance_excel(
    output_path: str,
    performance: Dict[str, Any],
    student_name: str = "Student",
):
    """Export one student's grouped performance to an Excel workbook."""
    overall = performance.get("overallPerformance") or {}
    trend = performance.get("trend") or {}

    wb = Workbook()

    ws = wb.active
    ws.title = "Overview"
    ws.sheet_properties.tabColor = "1a1a2e"
    best = overall.get("bestMonth") or {}
    weakest = overall.get("weakestMonth") or {}
    rows = [
        ["Student", student_name],
        ["Overall average (%)", overall.get("averagePercentage")],
        ["Grade", overall.get("grade")],
        ["Months with data", overall.get("monthsCount", 0)],
        ["Best month", best.get("label")],
        ["Weakest month", weakest.get("label")],
        ["Trend", trend.get("label")],
    ]
    rows.extend(["Tip", tip] for tip in performance.get("insights", []))
    _write_table(ws, ["Metric", "Value"], rows)

    ws = wb.create_sheet("Months")
    ws.sheet_properties.tabColor = "0f3460"
    month_rows = []
    for bucket in iter_month_buckets(performance.get("groupedByYearMonth", {})):
        stats = bucket["stats"]
        per_type = stats.get("perTypeAverages", {})
        month_rows.append(
            [bucket["label"], stats.get("averagePercentage"), stats.get("grade")]
            + [per_type.get(t) for t in EVALUATION_TYPE_OPTIONS]
            + [stats.get("evaluationCount")]
        )
    _write_table(
        ws,
        ["Month", "Average (%)", "Grade"]
        + [f"{display_type(t).title()} (%)" for t in EVALUATION_TYPE_OPTIONS]
        + ["Evaluations"],
        month_rows,
        score_col=1,
    )

    wb.save(output_path)
