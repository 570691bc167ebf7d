"""
Configuration loading utilities.

Every tunable constant of the pacing engine lives on `PacingConfig`. Defaults
are calibration choices; `load_config` lets a deployment override them through
`PACING_*` environment variables (or a `.env` file).
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, fields
from typing import Dict

from dotenv import load_dotenv, find_dotenv
from streamlit.logger import get_logger

from utils.coercion import coerce_float

logger = get_logger(__name__)

ENV_PREFIX = "PACING_"


@dataclass(frozen=True)
class PacingConfig:
    # --- Track cleaning ---
    # Barometric and DEM-corrected tracks never climb 500 ft between two
    # consecutive fixes; larger steps are sensor dropouts.
    dropout_threshold_ft: float = 500.0
    # Resolution of the retained profile; finer than any pacing decision.
    resample_interval_mi: float = 0.1

    # --- Terrain classification ---
    # Below ±2% a rider holds an aero position and speed is drag-limited.
    grade_threshold_pct: float = 2.0

    # --- Altitude ---
    # VO2max loss is negligible under ~4000 ft and near its plateau by 8000 ft.
    altitude_ramp_start_ft: float = 4000.0
    altitude_ramp_end_ft: float = 8000.0
    max_altitude_adjustment: float = 0.5

    # --- Effort repacing ---
    # Past ±3% gravity (climb) or momentum (descent) dominates the power balance.
    repace_climb_grade_pct: float = 3.0
    repace_descent_grade_pct: float = -3.0
    repace_climb_exponent: float = 1.0
    repace_descent_exponent: float = 0.2
    repace_flat_exponent: float = 1.0 / 3.0
    # Keeps near-flat time changes noticeable for a 3% intensity step.
    repace_exponent_floor: float = 0.5
    power_band_low: float = 0.95
    power_band_high: float = 1.05

    # --- Power zones ---
    climb_power_multiplier: float = 1.20
    flat_power_multiplier: float = 0.90
    descent_power_multiplier: float = 0.40

    # --- Segment allocation ---
    # Each 1% of average climb grade adds ~20% to the flat time.
    climb_penalty_per_pct: float = 0.20
    # Descents pay back less than climbs cost (braking, technical terrain).
    descent_bonus_per_pct: float = 0.08
    descent_bonus_floor: float = 0.70
    difficulty_min: float = 0.70
    difficulty_max: float = 3.0
    # Presets treat a segment averaging 2% or more as a climb.
    preset_climb_grade_pct: float = 2.0

    # --- Rolling resistance ---
    # Crr per surface for a 40-45mm gravel tyre at race pressure.
    surface_crr: Dict[str, float] = field(
        default_factory=lambda: {
            # Smooth tarmac, the tyre's best case.
            "pavement": 0.004,
            # Hardpacked gravel road.
            "gravel": 0.006,
            # Dry dirt, some give under the tyre.
            "dirt": 0.008,
            # Two-rut jeep track with loose centre.
            "doubletrack": 0.009,
            # Roots, rocks and constant small impacts.
            "singletrack": 0.012,
            # Tyre sinks in; losses several times gravel.
            "sand": 0.020,
        }
    )
    # Assumed when a course has no surface breakdown.
    default_surface: str = "gravel"

    # --- Rider & bike physics ---
    bike_mass_kg: float = 9.0
    # Hoods position on a gravel bike.
    cda_m2: float = 0.40
    # Walking pace: a rider never goes slower than this, even off the bike.
    min_speed_kph: float = 4.0
    # Gravel descents are limited by traction and sight lines, not by drag.
    max_speed_kph: float = 65.0

    # --- Fatigue ---
    fatigue_onset_hours: float = 2.0
    fatigue_rate_per_hour: float = 0.025
    fatigue_floor: float = 0.75
    fatigue_tolerance_minutes: float = 0.5
    fatigue_max_iterations: int = 20

    # --- Overhead (stops, nutrition, mechanicals) ---
    overhead_fixed_minutes: float = 0.0
    overhead_minutes_per_hour: float = 2.0

    # --- Required power search ---
    min_power_w: float = 50.0
    max_power_w: float = 1000.0
    ftp_bound_low: float = 0.3
    ftp_bound_high: float = 1.6
    power_tolerance_minutes: float = 0.5
    power_max_iterations: int = 30

    # --- Track cache ---
    cache_ttl_seconds: float = 300.0


DEFAULT_CONFIG = PacingConfig()


def resolve_config(config: PacingConfig | None) -> PacingConfig:
    return DEFAULT_CONFIG if config is None else config


def load_config() -> PacingConfig:
    """Load configuration from environment, falling back to defaults.

    Each field maps to `PACING_<FIELD_NAME_UPPER>`. Malformed values keep the
    default and are reported at warning level.
    """
    load_dotenv(find_dotenv(), override=True)

    overrides: dict[str, float | int | str] = {}
    for cfg_field in fields(PacingConfig):
        env_name = ENV_PREFIX + cfg_field.name.upper()
        raw = os.getenv(env_name)
        if raw is None:
            continue
        default = cfg_field.default
        if isinstance(default, str):
            overrides[cfg_field.name] = raw.strip()
            continue
        if not isinstance(default, (int, float)):
            # Mappings such as surface_crr are set in code, not from the environment.
            logger.warning("Ignoring %s: %s cannot be set from the environment", env_name, cfg_field.name)
            continue
        parsed = coerce_float(raw, default=float("nan"))
        if math.isnan(parsed):
            logger.warning("Ignoring malformed %s=%r", env_name, raw)
            continue
        overrides[cfg_field.name] = int(parsed) if isinstance(default, int) else parsed
        logger.debug("%s: %s", env_name, overrides[cfg_field.name])

    return PacingConfig(**overrides)
