"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Physics pacing model.

Forward: finish time for a normalized power. Inverse: power required for a
goal time. Speeds come from the quasi-static power balance

    P = Crr·m·g·cosθ·v + ½·ρ·CdA·v³ + m·g·sinθ·v

solved per terrain partition (climbing, flat, descent) of the course.
"""

from __future__ import annotations

import math
import warnings
from typing import Optional, Tuple

import numpy as np
from streamlit.logger import get_logger

from services.course_profile_service import flat_course_profile
from services.models import CourseProfile, PacingResult, SurfaceComposition, TerrainSplit
from utils.config import PacingConfig, resolve_config
from utils.constants import (
    GRAVITY,
    MOLAR_MASS_AIR,
    MPS_TO_KPH,
    RHO_SEA_LEVEL,
    T_SEA_LEVEL,
    TERRAIN_TYPES,
    TEMP_LAPSE_RATE,
    UNIVERSAL_GAS_CONSTANT,
)
from utils.errors import (
    ConvergenceWarning,
    InvalidInputError,
    NumericDomainError,
    guarded_divide,
    require_positive,
)

logger = get_logger(__name__)


def effective_crr(
    surface_composition: Optional[SurfaceComposition], config: Optional[PacingConfig] = None
) -> float:
    """Rolling resistance weighted by the share of each surface."""
    cfg = resolve_config(config)
    table = cfg.surface_crr
    if cfg.default_surface not in table:
        raise InvalidInputError(f"Default surface {cfg.default_surface!r} has no Crr in {sorted(table)}")
    if not surface_composition:
        return table[cfg.default_surface]

    unknown = sorted(set(surface_composition) - set(table))
    if unknown:
        raise InvalidInputError(f"Unknown surface types {unknown}, expected {sorted(table)}")

    total_pct = sum(float(pct) for pct in surface_composition.values())
    if total_pct <= 0:
        return table[cfg.default_surface]
    if abs(total_pct - 100.0) > 1.0:
        logger.debug(f"Surface composition sums to {total_pct:.1f}%, normalising")
    return sum(table[s] * float(pct) for s, pct in surface_composition.items()) / total_pct


def air_density(elevation_m: float) -> float:
    """ISA air density at 15°C sea-level temperature."""
    if elevation_m <= 0:
        return RHO_SEA_LEVEL
    # Density, not pressure: the temperature lapse removes one from the exponent.
    exponent = GRAVITY * MOLAR_MASS_AIR / (UNIVERSAL_GAS_CONSTANT * TEMP_LAPSE_RATE) - 1
    return RHO_SEA_LEVEL * (1 - TEMP_LAPSE_RATE * elevation_m / T_SEA_LEVEL) ** exponent


def solve_speed(
    power_w: float,
    mass_kg: float,
    grade_pct: float,
    crr: float,
    rho: float,
    cda_m2: float,
    config: Optional[PacingConfig] = None,
) -> float:
    """Steady speed in m/s for a power on a constant gradient.

    The balance is a depressed cubic a·v³ + b·v − P = 0 with a > 0. For P > 0
    it always has a positive root and the largest real root is the physical
    one. The result is clamped between a crawl speed (insufficient power on a
    steep climb) and a descent speed cap.
    """
    cfg = resolve_config(config)
    if not all(math.isfinite(x) for x in (power_w, mass_kg, grade_pct, crr, rho, cda_m2)):
        raise NumericDomainError("Non-finite input to speed solver")

    theta = math.atan(grade_pct / 100)
    a = 0.5 * rho * cda_m2
    b = mass_kg * GRAVITY * (crr * math.cos(theta) + math.sin(theta))
    roots = np.roots([a, 0.0, b, -power_w])
    real = roots[np.abs(roots.imag) < 1e-9].real
    positive = real[real > 0]
    speed = float(positive.max()) if positive.size else 0.0

    min_speed = cfg.min_speed_kph / MPS_TO_KPH
    max_speed = cfg.max_speed_kph / MPS_TO_KPH
    return min(max(speed, min_speed), max_speed)


def fatigue_factor(hours: float, config: Optional[PacingConfig] = None) -> float:
    """Share of power sustainable after `hours`; linear decay past the onset."""
    cfg = resolve_config(config)
    decayed = 1.0 - cfg.fatigue_rate_per_hour * max(0.0, hours - cfg.fatigue_onset_hours)
    return min(1.0, max(cfg.fatigue_floor, decayed))


def _partitions(
    distance_km: float, elevation_gain_m: float, course_profile: Optional[CourseProfile]
) -> Tuple[CourseProfile, list[tuple[str, float, float]]]:
    """Split the distance into (terrain, distance_km, grade_pct) partitions."""
    if course_profile is None:
        if elevation_gain_m > 0:
            # Without a profile: climb the gain over half the course, descend it over the other.
            grade = elevation_gain_m / (distance_km * 1000 / 2) * 100
            course_profile = CourseProfile(
                climbing_pct=50.0,
                flat_pct=0.0,
                descent_pct=50.0,
                avg_climb_grade_pct=grade,
                avg_descent_grade_pct=-grade,
                total_elevation_gain_m=elevation_gain_m,
                total_elevation_loss_m=elevation_gain_m,
                avg_gradient_pct=0.0,
            )
        else:
            course_profile = flat_course_profile()

    pct_by_terrain = {
        "climbing": course_profile.climbing_pct,
        "flat": course_profile.flat_pct,
        "descent": course_profile.descent_pct,
    }
    shares = {terrain: max(0.0, pct_by_terrain[terrain]) for terrain in TERRAIN_TYPES}
    total_pct = sum(shares.values())
    if total_pct <= 0:
        raise InvalidInputError("Course profile percentages sum to zero")

    grades = {
        "climbing": abs(course_profile.avg_climb_grade_pct),
        "flat": 0.0,
        "descent": -abs(course_profile.avg_descent_grade_pct),
    }
    parts = [
        (terrain, distance_km * share / total_pct, grades[terrain])
        for terrain, share in shares.items()
        if share > 0
    ]
    return course_profile, parts


def estimate_finish_time(
    normalized_power_watts: float,
    distance_km: float,
    elevation_gain_m: float,
    avg_elevation_m: float,
    rider_weight_kg: float,
    surface_composition: Optional[SurfaceComposition] = None,
    course_profile: Optional[CourseProfile] = None,
    include_fatigue: bool = True,
    config: Optional[PacingConfig] = None,
) -> PacingResult:
    """Predict finish time for a normalized power.

    Args:
        normalized_power_watts: Power held for the whole race
        distance_km: Course distance
        elevation_gain_m: Total climbing (used when no course profile is given)
        avg_elevation_m: Mean course elevation, for air density
        rider_weight_kg: Rider weight; bike mass comes from the configuration
        surface_composition: Surface type -> percent of distance
        course_profile: Terrain composition; derived from gain when None
        include_fatigue: Apply the long-effort fatigue model
        config: Engine configuration (defaults when None)

    Returns:
        PacingResult with per-terrain breakdown and total time in minutes.
    """
    cfg = resolve_config(config)
    power = require_positive(normalized_power_watts, "normalized_power_watts")
    distance = require_positive(distance_km, "distance_km")
    weight = require_positive(rider_weight_kg, "rider_weight_kg")
    gain = max(0.0, float(elevation_gain_m or 0.0))

    crr = effective_crr(surface_composition, cfg)
    rho = air_density(float(avg_elevation_m or 0.0))
    mass = weight + cfg.bike_mass_kg
    profile, parts = _partitions(distance, gain, course_profile)

    raw_splits = []
    for terrain, part_km, grade in parts:
        speed = solve_speed(power, mass, grade, crr, rho, cfg.cda_m2, cfg)
        minutes = part_km * 1000 / speed / 60
        raw_splits.append((terrain, part_km, grade, speed, minutes))
    raw_minutes = sum(split[-1] for split in raw_splits)

    ff = 1.0
    moving_minutes = raw_minutes
    iterations = 0
    converged = True
    if include_fatigue:
        converged = False
        for iterations in range(1, cfg.fatigue_max_iterations + 1):
            ff = fatigue_factor(moving_minutes / 60, cfg)
            updated = raw_minutes / ff
            delta = abs(updated - moving_minutes)
            moving_minutes = updated
            if delta < cfg.fatigue_tolerance_minutes:
                converged = True
                break
        if not converged:
            logger.warning(f"Fatigue model did not settle after {iterations} iterations")

    overhead = cfg.overhead_fixed_minutes + cfg.overhead_minutes_per_hour * moving_minutes / 60
    total_minutes = moving_minutes + overhead
    avg_speed = distance / guarded_divide(total_minutes, 60, "average speed")

    breakdown = tuple(
        TerrainSplit(
            terrain=terrain,
            distance_km=part_km,
            grade_pct=grade,
            speed_kph=speed * MPS_TO_KPH,
            time_minutes=minutes / ff,
        )
        for terrain, part_km, grade, speed, minutes in raw_splits
    )

    logger.debug(
        f"{power:.0f} W over {distance:.1f} km: moving {moving_minutes:.1f} min, "
        f"fatigue {ff:.3f}, total {total_minutes:.1f} min"
    )
    return PacingResult(
        normalized_power_w=power,
        effective_crr=crr,
        course_profile=profile,
        terrain_breakdown=breakdown,
        fatigue_factor=ff,
        moving_time_minutes=moving_minutes,
        overhead_minutes=overhead,
        total_time_minutes=total_minutes,
        avg_speed_kph=avg_speed,
        converged=converged,
        iterations=iterations,
    )


def _power_bounds(
    config: PacingConfig,
    power_bounds: Optional[Tuple[float, float]],
    ftp_watts: Optional[float],
) -> Tuple[float, float]:
    if power_bounds is not None:
        low, high = (float(x) for x in power_bounds)
    elif ftp_watts is not None:
        ftp = require_positive(ftp_watts, "ftp_watts")
        low, high = ftp * config.ftp_bound_low, ftp * config.ftp_bound_high
    else:
        low, high = config.min_power_w, config.max_power_w
    if not 0 < low < high:
        raise InvalidInputError(f"Invalid power bounds ({low}, {high})")
    return low, high


def calculate_required_power(
    goal_time_minutes: float,
    distance_km: float,
    elevation_gain_m: float,
    avg_elevation_m: float,
    rider_weight_kg: float,
    surface_composition: Optional[SurfaceComposition] = None,
    course_profile: Optional[CourseProfile] = None,
    include_fatigue: bool = True,
    power_bounds: Optional[Tuple[float, float]] = None,
    ftp_watts: Optional[float] = None,
    config: Optional[PacingConfig] = None,
) -> PacingResult:
    """Find the normalized power that finishes in the goal time.

    Finish time decreases monotonically with power, so the answer is
    bracketed by bisection. When the goal cannot be reached inside the power
    bounds, or the search runs out of iterations, the best estimate is
    returned with `converged=False` and a ConvergenceWarning is emitted.
    """
    cfg = resolve_config(config)
    goal = require_positive(goal_time_minutes, "goal_time_minutes")
    low, high = _power_bounds(cfg, power_bounds, ftp_watts)

    def _estimate(power: float) -> PacingResult:
        return estimate_finish_time(
            power,
            distance_km,
            elevation_gain_m,
            avg_elevation_m,
            rider_weight_kg,
            surface_composition=surface_composition,
            course_profile=course_profile,
            include_fatigue=include_fatigue,
            config=cfg,
        )

    def _with_power(result: PacingResult, converged: bool, iterations: int) -> PacingResult:
        return PacingResult(
            normalized_power_w=result.normalized_power_w,
            effective_crr=result.effective_crr,
            course_profile=result.course_profile,
            terrain_breakdown=result.terrain_breakdown,
            fatigue_factor=result.fatigue_factor,
            moving_time_minutes=result.moving_time_minutes,
            overhead_minutes=result.overhead_minutes,
            total_time_minutes=result.total_time_minutes,
            avg_speed_kph=result.avg_speed_kph,
            required_power_w=result.normalized_power_w,
            converged=converged,
            iterations=iterations,
        )

    slowest = _estimate(low)
    if goal >= slowest.total_time_minutes:
        if goal - slowest.total_time_minutes < cfg.power_tolerance_minutes:
            return _with_power(slowest, True, 0)
        message = (
            f"Goal {goal:.0f} min is slower than {slowest.total_time_minutes:.0f} min "
            f"at the lower power bound {low:.0f} W"
        )
        logger.warning(message)
        warnings.warn(message, ConvergenceWarning, stacklevel=2)
        return _with_power(slowest, False, 0)

    fastest = _estimate(high)
    if goal <= fastest.total_time_minutes:
        if fastest.total_time_minutes - goal < cfg.power_tolerance_minutes:
            return _with_power(fastest, True, 0)
        message = (
            f"Goal {goal:.0f} min is faster than {fastest.total_time_minutes:.0f} min "
            f"at the upper power bound {high:.0f} W"
        )
        logger.warning(message)
        warnings.warn(message, ConvergenceWarning, stacklevel=2)
        return _with_power(fastest, False, 0)

    best = slowest
    for iteration in range(1, cfg.power_max_iterations + 1):
        mid = (low + high) / 2
        result = _estimate(mid)
        if abs(result.total_time_minutes - goal) < abs(best.total_time_minutes - goal):
            best = result
        if abs(result.total_time_minutes - goal) < cfg.power_tolerance_minutes:
            logger.debug(f"Required power {mid:.1f} W after {iteration} iterations")
            return _with_power(result, True, iteration)
        if result.total_time_minutes > goal:
            low = mid
        else:
            high = mid

    message = (
        f"Required power search stopped after {cfg.power_max_iterations} iterations, "
        f"best {best.normalized_power_w:.1f} W gives {best.total_time_minutes:.1f} min"
    )
    logger.warning(message)
    warnings.warn(message, ConvergenceWarning, stacklevel=2)
    return _with_power(best, False, cfg.power_max_iterations)
