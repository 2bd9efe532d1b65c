"""PR point calculation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from wocboard.db.models import PullRequest
from wocboard.pulls.points import apply_points, calculate_points, points_for


class TestCalculatePoints:

    @pytest.mark.parametrize(
        ("status", "expected"),
        [("merged", 10), ("open", 5), ("closed", 2), ("draft", 0), ("unknown", 0)],
    )
    def test_base_points_by_status(self, status, expected):
        assert calculate_points(status) == expected

    def test_merged_medium_diff(self):
        # 110 changed lines: +3, not > 500; 3 files: no bonus
        assert calculate_points("merged", additions=80, deletions=30, changed_files=3) == 13

    def test_merged_large_validated(self):
        points = calculate_points(
            "merged",
            additions=400,
            deletions=200,
            changed_files=8,
            is_validated=True,
            validation_status="approved",
        )
        assert points == 25

    def test_diff_thresholds_are_strict(self):
        assert calculate_points("open", additions=100) == 5
        assert calculate_points("open", additions=101) == 8
        assert calculate_points("open", additions=500) == 8
        assert calculate_points("open", additions=501) == 13

    def test_file_threshold_is_strict(self):
        assert calculate_points("open", changed_files=5) == 5
        assert calculate_points("open", changed_files=6) == 7

    def test_validation_bonus_needs_approval(self):
        assert calculate_points("open", is_validated=True, validation_status="rejected") == 5
        assert calculate_points("open", is_validated=False, validation_status="approved") == 5
        assert calculate_points("open", is_validated=True, validation_status="approved") == 10

    def test_none_metrics_count_as_zero(self):
        assert calculate_points("merged", additions=None, deletions=None, changed_files=None) == 10

    def test_deterministic(self):
        args = {"status": "merged", "additions": 80, "deletions": 30, "changed_files": 3}
        assert {calculate_points(**args) for _ in range(5)} == {13}


def _pr(**fields) -> PullRequest:
    defaults = {"status": "merged", "additions": 0, "deletions": 0, "changed_files": 0,
                "is_validated": False, "validation_status": None, "points_override": None}
    defaults.update(fields)
    return PullRequest(**defaults)


class TestPointsFor:

    def test_uses_computed_points_without_override(self):
        assert points_for(_pr(additions=80, deletions=30, changed_files=3)) == 13

    def test_override_replaces_computed_value(self):
        assert points_for(_pr(additions=400, points_override=42)) == 42

    def test_zero_override_is_honoured(self):
        assert points_for(_pr(points_override=0)) == 0

    def test_negative_override_is_ignored(self):
        assert points_for(_pr(points_override=-5)) == 10

    def test_apply_points_stamps_calculation_time(self):
        now = datetime(2026, 1, 15, tzinfo=timezone.utc)
        pr = _pr(status="open")
        assert apply_points(pr, now) == 5
        assert pr.points == 5
        assert pr.points_calculated_at == now
