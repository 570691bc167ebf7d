"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import numpy as np
import pytest

from services.course_profile_service import compute_course_profile, compute_spans
from services.models import CourseProfile
from services.track_service import build_elevation_profile
from utils.constants import METERS_TO_FEET


def test_flat_track_is_all_flat(flat_points):
    profile = build_elevation_profile(flat_points)

    course = compute_course_profile(profile)
    assert course.climbing_pct == 0.0
    assert course.flat_pct == 100.0
    assert course.descent_pct == 0.0
    assert course.total_elevation_gain_m == 0.0


def test_climb_then_descent(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)

    course = compute_course_profile(profile)
    assert course.climbing_pct == pytest.approx(50.0, abs=2.0)
    assert course.descent_pct == pytest.approx(50.0, abs=2.0)
    assert course.climbing_pct + course.flat_pct + course.descent_pct == pytest.approx(100.0, abs=0.2)
    assert course.avg_climb_grade_pct == pytest.approx(3.6, abs=0.1)
    assert course.avg_descent_grade_pct == pytest.approx(-3.6, abs=0.1)
    assert course.total_elevation_gain_m == pytest.approx(400.0, abs=0.5)
    assert course.total_elevation_loss_m == pytest.approx(400.0, abs=0.5)
    assert course.max_gradient_pct == pytest.approx(3.6, abs=0.1)
    assert course.min_gradient_pct == pytest.approx(-3.6, abs=0.1)


def test_mile_range_only_counts_spans_inside(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)
    peak_mile = max(profile.samples, key=lambda s: s.elevation_ft).mile

    climb = compute_course_profile(profile, start_mile=0.0, end_mile=peak_mile)
    assert climb.climbing_pct == 100.0
    assert climb.descent_pct == 0.0
    assert climb.total_elevation_loss_m == 0.0
    assert climb.total_elevation_gain_m == pytest.approx(400.0, abs=0.5)

    descent = compute_course_profile(profile, start_mile=peak_mile)
    assert descent.descent_pct == 100.0


def test_threshold_override(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)

    course = compute_course_profile(profile, threshold_pct=5.0)
    assert course.flat_pct == 100.0


def test_no_elevation_is_flat(flat_points):
    profile = build_elevation_profile(flat_points.assign(elevationM=np.nan))

    assert compute_course_profile(profile).flat_pct == 100.0
    assert compute_course_profile(None).flat_pct == 100.0


def test_precomputed_profile_wins(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)
    stored = CourseProfile(
        climbing_pct=30.0,
        flat_pct=40.0,
        descent_pct=30.0,
        avg_climb_grade_pct=6.0,
        avg_descent_grade_pct=-5.0,
        total_elevation_gain_m=900.0,
        total_elevation_loss_m=900.0,
    )

    assert compute_course_profile(profile, precomputed=stored) is stored


def test_compute_spans(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)

    spans = compute_spans(profile, threshold_pct=2.0)
    assert len(spans) == len(profile.samples) - 1
    assert (spans["distance_mi"] > 0).all()
    assert set(spans["terrain"]) <= {"climbing", "flat", "descent"}
    assert spans["elev_diff_ft"].clip(lower=0).sum() == pytest.approx(400 * METERS_TO_FEET, abs=1)


def test_compute_spans_single_sample():
    profile = build_elevation_profile([{"lat": 45.0, "lon": 5.0, "elevationM": 100.0}])

    spans = compute_spans(profile, threshold_pct=2.0)
    assert spans.empty
    assert "terrain" in spans.columns
