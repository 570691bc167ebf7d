"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Terrain composition of a course, or of a mile range within it.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from streamlit.logger import get_logger

from services.models import CourseProfile, ElevationProfile
from utils.coercion import round_half_up, round_signed
from utils.config import PacingConfig, resolve_config
from utils.constants import FEET_TO_METERS, MILES_TO_FEET
from utils.grade_classification import classify_gradients

logger = get_logger(__name__)

SPAN_COLUMNS = ["start_mile", "end_mile", "elev_diff_ft", "distance_mi", "grade_pct"]


def flat_course_profile() -> CourseProfile:
    return CourseProfile(
        climbing_pct=0.0,
        flat_pct=100.0,
        descent_pct=0.0,
        avg_climb_grade_pct=0.0,
        avg_descent_grade_pct=0.0,
        total_elevation_gain_m=0.0,
        total_elevation_loss_m=0.0,
    )


def compute_spans(profile: ElevationProfile, threshold_pct: float) -> pd.DataFrame:
    """Return one row per inter-sample span with its distance, gradient and terrain."""
    samples_df = profile.to_frame()
    if len(samples_df) < 2:
        return pd.DataFrame(
            {col: pd.Series(dtype=float) for col in SPAN_COLUMNS}
        ).assign(terrain=pd.Series(dtype=object))

    spans = pd.DataFrame(
        {
            "start_mile": samples_df["mile"].shift().iloc[1:].to_numpy(),
            "end_mile": samples_df["mile"].iloc[1:].to_numpy(),
            "elev_diff_ft": samples_df["elevation_ft"].diff().iloc[1:].to_numpy(),
        }
    )
    spans["distance_mi"] = spans["end_mile"] - spans["start_mile"]
    spans = spans[spans["distance_mi"] > 0].reset_index(drop=True)
    spans["grade_pct"] = spans["elev_diff_ft"] / (spans["distance_mi"] * MILES_TO_FEET) * 100
    spans["terrain"] = classify_gradients(spans["grade_pct"], threshold_pct)
    return spans


def compute_course_profile(
    profile: Optional[ElevationProfile],
    start_mile: Optional[float] = None,
    end_mile: Optional[float] = None,
    threshold_pct: Optional[float] = None,
    precomputed: Optional[CourseProfile] = None,
    config: Optional[PacingConfig] = None,
) -> CourseProfile:
    """Classify every span of a profile (or a mile range) as climbing, flat or descent.

    A `precomputed` course profile, e.g. persisted from an earlier analysis,
    is returned unchanged.

    Args:
        profile: Elevation profile built by the track service
        start_mile: Range start (course start when None)
        end_mile: Range end (course end when None)
        threshold_pct: Gradient separating flat from climbing/descent
        precomputed: Course profile supplied by the host
        config: Engine configuration (defaults when None)

    Returns:
        CourseProfile with distance split in percent and distance-weighted
        average climb/descent gradients.
    """
    if precomputed is not None:
        return precomputed

    cfg = resolve_config(config)
    threshold = cfg.grade_threshold_pct if threshold_pct is None else threshold_pct

    if profile is None or not profile.has_elevation:
        return flat_course_profile()

    full_course = start_mile is None and end_mile is None
    spans = compute_spans(profile, threshold)
    if start_mile is not None:
        spans = spans[spans["start_mile"] >= start_mile]
    if end_mile is not None:
        spans = spans[spans["end_mile"] <= end_mile]

    total_mi = float(spans["distance_mi"].sum()) if not spans.empty else 0.0
    if total_mi <= 0:
        logger.debug("Fewer than two samples in range, treating as flat")
        return flat_course_profile()

    if full_course:
        gain_m = profile.elevation_gain_ft * FEET_TO_METERS
        loss_m = profile.elevation_loss_ft * FEET_TO_METERS
    else:
        gain_m = spans["elev_diff_ft"].clip(lower=0).sum() * FEET_TO_METERS
        loss_m = -spans["elev_diff_ft"].clip(upper=0).sum() * FEET_TO_METERS

    dist_by_terrain = spans.groupby("terrain")["distance_mi"].sum()

    def _pct(terrain: str) -> float:
        return round_half_up(float(dist_by_terrain.get(terrain, 0.0)) / total_mi * 100, 1)

    def _weighted_grade(terrain: str) -> float:
        subset = spans[spans["terrain"] == terrain]
        if subset.empty:
            return 0.0
        return round_signed(float(np.average(subset["grade_pct"], weights=subset["distance_mi"])), 1)

    avg_gradient = float(np.average(spans["grade_pct"], weights=spans["distance_mi"]))

    return CourseProfile(
        climbing_pct=_pct("climbing"),
        flat_pct=_pct("flat"),
        descent_pct=_pct("descent"),
        avg_climb_grade_pct=_weighted_grade("climbing"),
        avg_descent_grade_pct=_weighted_grade("descent"),
        total_elevation_gain_m=round_half_up(gain_m, 1),
        total_elevation_loss_m=round_half_up(loss_m, 1),
        avg_gradient_pct=round_signed(avg_gradient, 1),
        min_gradient_pct=round_signed(float(spans["grade_pct"].min()), 1),
        max_gradient_pct=round_signed(float(spans["grade_pct"].max()), 1),
    )
