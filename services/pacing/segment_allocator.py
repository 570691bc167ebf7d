"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

from dataclasses import asdict, replace
from typing import Iterable, Optional, Sequence

import pandas as pd
from streamlit.logger import get_logger

from services.models import AthleteProfile, ElevationProfile, Segment, Waypoint
from services.pacing.effort_repacer import repace_segment, segment_power_targets
from utils.coercion import round_int
from utils.config import PacingConfig, resolve_config
from utils.constants import (
    DEFAULT_EFFORT_LEVEL,
    EFFORT_PRESETS,
    MILES_TO_FEET,
    PACING_WAYPOINT_KINDS,
    PRESET_CLIMB_EFFORT,
    PRESET_DEFAULT_EFFORT,
)
from utils.elevation import RangeElevation, extract_range_elevation
from utils.errors import InvalidGoalTimeError, InvalidInputError, guarded_divide

logger = get_logger(__name__)

# Boundaries closer than this (miles) are the same place.
BOUNDARY_EPSILON_MI = 1e-6


def pacing_waypoints(waypoints: Iterable[Waypoint]) -> list[Waypoint]:
    """Waypoints that bound pacing segments (checkpoints excluded), by mile."""
    kept = [wp for wp in waypoints if wp.kind in PACING_WAYPOINT_KINDS]
    return sorted(kept, key=lambda wp: wp.mile)


def terrain_difficulty(
    distance_mi: float,
    elevation_gain_ft: float,
    elevation_loss_ft: float,
    config: Optional[PacingConfig] = None,
) -> float:
    """Time multiplier for a segment relative to flat riding.

    Climbing costs grow linearly with the average climb gradient; descents
    pay back less than they cost and are floored. The two effects are blended
    by their share of total vertical movement, so a segment with no elevation
    change scores exactly 1.0.
    """
    cfg = resolve_config(config)
    if distance_mi <= 0:
        return 1.0

    distance_ft = distance_mi * MILES_TO_FEET
    avg_climb_gradient = elevation_gain_ft / distance_ft * 100
    avg_descent_gradient = elevation_loss_ft / distance_ft * 100

    climb_penalty = 1.0 + avg_climb_gradient * cfg.climb_penalty_per_pct
    descent_bonus = max(cfg.descent_bonus_floor, 1.0 - avg_descent_gradient * cfg.descent_bonus_per_pct)

    # +1 ft keeps the shares defined on perfectly flat segments.
    vertical = elevation_gain_ft + elevation_loss_ft + 1.0
    climb_share = elevation_gain_ft / vertical
    descent_share = elevation_loss_ft / vertical

    difficulty = (
        climb_penalty * climb_share
        + descent_bonus * descent_share
        + 1.0 * (1.0 - climb_share - descent_share)
    )
    return max(cfg.difficulty_min, min(cfg.difficulty_max, difficulty))


def _boundaries(
    waypoints: Sequence[Waypoint], total_distance_mi: float
) -> list[tuple[float, str]]:
    bounds = [(float(wp.mile), wp.name) for wp in pacing_waypoints(waypoints)]
    if not bounds or bounds[0][0] > BOUNDARY_EPSILON_MI:
        bounds.insert(0, (0.0, "Start"))
    if total_distance_mi - bounds[-1][0] > BOUNDARY_EPSILON_MI:
        bounds.append((total_distance_mi, "Finish"))

    deduped = [bounds[0]]
    for mile, name in bounds[1:]:
        if mile - deduped[-1][0] <= BOUNDARY_EPSILON_MI:
            logger.debug(f"Dropping zero-length segment ending at {name!r} (mile {mile})")
            continue
        deduped.append((mile, name))
    return deduped


def allocate_segments(
    profile: Optional[ElevationProfile],
    waypoints: Sequence[Waypoint],
    goal_time_minutes: float,
    athlete: Optional[AthleteProfile] = None,
    total_distance_mi: Optional[float] = None,
    config: Optional[PacingConfig] = None,
) -> list[Segment]:
    """Distribute a goal time across waypoint-bounded segments.

    Each segment costs distance x terrain difficulty; the goal time is split
    in proportion to cost. Without elevation data every segment has
    difficulty 1.0, which is a uniform pace.

    Args:
        profile: Elevation profile (None or empty for no elevation data)
        waypoints: Course waypoints; only start, aid stations and finish bound
            segments
        goal_time_minutes: Goal finish time
        athlete: When given, power targets are filled for the default effort
        total_distance_mi: Course length; defaults to the profile distance, then
            to the last waypoint
        config: Engine configuration (defaults when None)

    Returns:
        Ordered segments spanning the whole course, times in whole minutes.
    """
    cfg = resolve_config(config)
    if goal_time_minutes is None or not goal_time_minutes > 0:
        raise InvalidGoalTimeError(f"Goal time must be positive, got {goal_time_minutes!r}")

    if total_distance_mi is None:
        if profile is not None and profile.total_distance_mi > 0:
            total_distance_mi = profile.total_distance_mi
        else:
            total_distance_mi = max((float(wp.mile) for wp in waypoints), default=0.0)

    bounds = _boundaries(waypoints, float(total_distance_mi))
    if len(bounds) < 2:
        raise InvalidInputError("Course has zero length; cannot allocate segments")

    has_elevation = profile is not None and profile.has_elevation
    miles = profile.miles if has_elevation else []
    elevations = profile.elevations_ft if has_elevation else []
    if not has_elevation:
        logger.debug("No elevation data, allocating time in proportion to distance")

    raw = []
    last_index = len(bounds) - 2
    for index, ((start_mile, start_name), (end_mile, end_name)) in enumerate(zip(bounds, bounds[1:])):
        if has_elevation:
            # The course total is rounded to 0.01 mi, so trailing samples may sit
            # just past the final boundary; the last segment still owns them.
            range_end = max(end_mile, miles[-1]) if index == last_index else end_mile
            elevation = extract_range_elevation(miles, elevations, start_mile, range_end)
        else:
            elevation = RangeElevation(0, 0, 0.0)
        distance = end_mile - start_mile
        cost = distance * terrain_difficulty(
            distance, elevation.elevation_gain_ft, elevation.elevation_loss_ft, cfg
        )
        raw.append((start_mile, end_mile, start_name, end_name, elevation, cost))

    total_cost = sum(item[-1] for item in raw)

    low = high = None
    if athlete is not None:
        low, high = segment_power_targets(
            athlete.ftp_watts, DEFAULT_EFFORT_LEVEL, athlete.intensity_factors, cfg
        )

    segments = []
    for order, (start_mile, end_mile, start_name, end_name, elevation, cost) in enumerate(raw):
        share = guarded_divide(cost, total_cost, "segment time share")
        segments.append(
            Segment(
                order=order,
                start_mile=start_mile,
                end_mile=end_mile,
                start_name=start_name,
                end_name=end_name,
                target_time_minutes=round_int(goal_time_minutes * share),
                effort_level=DEFAULT_EFFORT_LEVEL,
                elevation_gain_ft=elevation.elevation_gain_ft,
                elevation_loss_ft=elevation.elevation_loss_ft,
                avg_gradient_pct=elevation.avg_gradient_pct if has_elevation else None,
                power_target_low_w=low,
                power_target_high_w=high,
            )
        )

    logger.debug(
        f"Allocated {goal_time_minutes} min over {len(segments)} segments "
        f"({sum(s.target_time_minutes for s in segments)} min after rounding)"
    )
    return segments


def apply_effort_preset(
    segments: Sequence[Segment],
    preset: str,
    athlete: AthleteProfile,
    config: Optional[PacingConfig] = None,
) -> list[Segment]:
    """Reassign effort in bulk: climbs and the rest each take the preset's effort.

    Segments whose effort changes are retimed through the effort repacer.
    """
    cfg = resolve_config(config)
    if preset not in EFFORT_PRESETS:
        raise InvalidInputError(f"Unknown preset {preset!r}, expected one of {EFFORT_PRESETS}")

    result = []
    for seg in segments:
        is_climb = seg.avg_gradient_pct is not None and seg.avg_gradient_pct >= cfg.preset_climb_grade_pct
        level = PRESET_CLIMB_EFFORT[preset] if is_climb else PRESET_DEFAULT_EFFORT[preset]
        if level == seg.effort_level:
            result.append(replace(seg))
        else:
            result.append(repace_segment(seg, level, athlete, cfg))
    return result


def segments_to_frame(segments: Sequence[Segment]) -> pd.DataFrame:
    """Tabular view of segments for the host (one row per segment)."""
    if not segments:
        return pd.DataFrame()
    df = pd.DataFrame([asdict(seg) for seg in segments])
    df["distance_mi"] = df["end_mile"] - df["start_mile"]
    return df.sort_values("order").reset_index(drop=True)
