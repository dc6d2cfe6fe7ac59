"""
Tests for core/report_builder.py — Excel generation completes and has the expected sheets.
"""

import os
import sys
import pytest
from openpyxl import load_workbook

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.performance import compute_grouped_performance
from core.report_builder import generate_analytics_excel, generate_performance_excel
from core.rollup import compute_trainer_analytics

STUDENTS = [
    {"studentProfileId": "s1", "name": "Asha Rao", "rollNo": "R1", "batch": "B1"},
    {"studentProfileId": "s2", "name": "Bala K", "rollNo": "R2", "batch": "B1", "aggregateScore": 48},
]
EVALUATIONS = [
    {"studentId": "s1", "type": "aptitude", "score": 12, "recordedDate": "2025-02-03"},
    {"studentId": "s1", "type": "aptitude", "score": 22, "recordedDate": "2025-03-03"},
    {"studentId": "s1", "type": "spring_meet", "score": 71, "recordedDate": "2025-03-20"},
]


@pytest.fixture
def analytics():
    return compute_trainer_analytics(STUDENTS, EVALUATIONS)


@pytest.fixture
def performance():
    return compute_grouped_performance(EVALUATIONS)


class TestAnalyticsExcel:

    def test_creates_workbook(self, tmp_path, analytics):
        output = tmp_path / "analytics.xlsx"
        generate_analytics_excel(str(output), analytics, trainer_name="Ravi")
        assert output.exists()
        wb = load_workbook(output)
        assert wb.sheetnames == ["Summary", "Students", "Monthly Trend", "Type Breakdown", "Below Threshold"]

    def test_student_rows(self, tmp_path, analytics):
        output = tmp_path / "analytics.xlsx"
        generate_analytics_excel(str(output), analytics)
        ws = load_workbook(output)["Students"]
        assert ws.max_row == 3
        assert ws["A2"].value == "Asha Rao"

    def test_below_threshold_rows(self, tmp_path, analytics):
        output = tmp_path / "analytics.xlsx"
        generate_analytics_excel(str(output), analytics)
        ws = load_workbook(output)["Below Threshold"]
        assert ws["A2"].value == "Bala K"
        assert ws["E2"].value == "aggregateScore"

    def test_empty_cohort(self, tmp_path):
        output = tmp_path / "empty.xlsx"
        generate_analytics_excel(str(output), compute_trainer_analytics([], []))
        assert output.exists()


class TestPerformanceExcel:

    def test_creates_workbook(self, tmp_path, performance):
        output = tmp_path / "performance.xlsx"
        generate_performance_excel(str(output), performance, student_name="Asha Rao")
        wb = load_workbook(output)
        assert wb.sheetnames == ["Overview", "Months"]
        months = wb["Months"]
        assert months.max_row == 3
        assert months["A2"].value == "February 2025"

    def test_no_data(self, tmp_path):
        output = tmp_path / "none.xlsx"
        generate_performance_excel(str(output), compute_grouped_performance([]))
        assert output.exists()
