"""
Tests for core/grading.py — grade band boundaries.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.grading import get_all_grade_thresholds, get_grade_label, get_performance_grade


class TestGradeLabels:

    @pytest.mark.parametrize(
        "score, label",
        [
            (100.0, "Excellent"),
            (80.0, "Excellent"),
            (79.99, "Good"),
            (60.0, "Good"),
            (59.99, "Needs Improvement"),
            (0.0, "Needs Improvement"),
        ],
    )
    def test_boundaries(self, score, label):
        assert get_grade_label(score) == label

    def test_no_score(self):
        assert get_grade_label(None) is None

    def test_grade_info(self):
        grade = get_performance_grade(72.5)
        assert grade["label"] == "Good"
        assert grade["score"] == 72.5


class TestGradeScale:

    def test_scale_covers_all_bands(self):
        scale = get_all_grade_thresholds()
        assert [g["label"] for g in scale] == ["Excellent", "Good", "Needs Improvement"]
        assert scale[0]["max"] == 100.0
        assert scale[1]["max"] == 79.99
