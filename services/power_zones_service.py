"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

FTP-based power targets per effort zone, derated for race altitude.
"""

from __future__ import annotations

from typing import Mapping, Optional

from streamlit.logger import get_logger

from services.models import PowerZones
from utils.coercion import round_int
from utils.config import PacingConfig, resolve_config
from utils.constants import DEFAULT_INTENSITY_FACTORS, EFFORT_LEVELS
from utils.errors import InvalidInputError, require_positive

logger = get_logger(__name__)


def altitude_factor(
    race_elevation_high_ft: float,
    user_factor: float,
    config: Optional[PacingConfig] = None,
) -> float:
    """Fraction of FTP lost at the race's highest elevation.

    Zero below the ramp start, rising linearly to the athlete's own factor at
    the ramp end and capped there.
    """
    cfg = resolve_config(config)
    if not 0.0 <= user_factor <= cfg.max_altitude_adjustment:
        raise InvalidInputError(
            f"altitude_adjustment_factor must be within 0-{cfg.max_altitude_adjustment}, got {user_factor!r}"
        )
    if race_elevation_high_ft is None or race_elevation_high_ft < cfg.altitude_ramp_start_ft:
        return 0.0
    ramp = (race_elevation_high_ft - cfg.altitude_ramp_start_ft) / (
        cfg.altitude_ramp_end_ft - cfg.altitude_ramp_start_ft
    )
    return user_factor * min(1.0, ramp)


def calculate_power_zones(
    ftp_watts: float,
    altitude_adjustment_factor: float,
    race_elevation_high_ft: float,
    intensity_factors: Optional[Mapping[str, float]] = None,
    config: Optional[PacingConfig] = None,
) -> PowerZones:
    """Sea-level and altitude-adjusted NP per zone, with terrain-specific targets."""
    cfg = resolve_config(config)
    ftp = require_positive(ftp_watts, "ftp_watts")
    factors = dict(DEFAULT_INTENSITY_FACTORS if intensity_factors is None else intensity_factors)

    alt_factor = altitude_factor(race_elevation_high_ft, altitude_adjustment_factor, cfg)
    adjusted_ftp = ftp * (1 - alt_factor)

    sea_level_np = {}
    adjusted_np = {}
    for zone in EFFORT_LEVELS:
        if zone not in factors:
            raise InvalidInputError(f"Missing intensity factor for {zone!r}")
        sea_level_np[zone] = round_int(ftp * factors[zone])
        adjusted_np[zone] = round_int(adjusted_ftp * factors[zone])

    logger.debug(f"FTP {ftp:.0f} W, altitude factor {alt_factor:.3f}, adjusted {adjusted_ftp:.1f} W")
    return PowerZones(
        altitude_factor=alt_factor,
        adjusted_ftp_w=adjusted_ftp,
        sea_level_np=sea_level_np,
        adjusted_np=adjusted_np,
        climbing_power={z: round_int(np_w * cfg.climb_power_multiplier) for z, np_w in adjusted_np.items()},
        flat_power={z: round_int(np_w * cfg.flat_power_multiplier) for z, np_w in adjusted_np.items()},
        descent_power={z: round_int(np_w * cfg.descent_power_multiplier) for z, np_w in adjusted_np.items()},
    )
