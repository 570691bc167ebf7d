"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Retime a segment when its effort level changes, and apply host edit intents.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Mapping, Optional, Sequence, Tuple, Union

from streamlit.logger import get_logger

from services.models import AthleteProfile, Segment
from utils.coercion import round_int
from utils.config import PacingConfig, resolve_config
from utils.constants import EFFORT_LEVELS
from utils.errors import InvalidInputError, require_positive

logger = get_logger(__name__)


@dataclass(frozen=True)
class EffortChange:
    order: int
    effort_level: str


@dataclass(frozen=True)
class TimeChange:
    order: int
    target_time_minutes: int


EditIntent = Union[EffortChange, TimeChange]


def intensity_factor(level: str, intensity_factors: Mapping[str, float]) -> float:
    if level not in EFFORT_LEVELS:
        raise InvalidInputError(f"Unknown effort level {level!r}, expected one of {EFFORT_LEVELS}")
    return require_positive(intensity_factors.get(level, 0.0), f"intensity factor for {level}")


def repace_exponent(avg_gradient_pct: Optional[float], config: Optional[PacingConfig] = None) -> float:
    """Exponent linking an intensity ratio to a time ratio on a given gradient.

    Climbs are gravity-bound (speed ~ power, exponent 1), flats are drag-bound
    (power ~ speed^3, exponent 1/3); in between the exponent is interpolated
    on the gradient. The result is floored for near-flat stability. An unknown
    gradient is treated as flat.
    """
    cfg = resolve_config(config)
    g = avg_gradient_pct
    if g is None:
        exponent = cfg.repace_flat_exponent
    elif g > cfg.repace_climb_grade_pct:
        exponent = cfg.repace_climb_exponent
    elif g < cfg.repace_descent_grade_pct:
        exponent = cfg.repace_descent_exponent
    else:
        exponent = cfg.repace_flat_exponent + (g / 10) * (2 / 3)
    return max(exponent, cfg.repace_exponent_floor)


def segment_power_targets(
    ftp_watts: float,
    effort_level: str,
    intensity_factors: Mapping[str, float],
    config: Optional[PacingConfig] = None,
) -> Tuple[int, int]:
    """Return the (low, high) normalized power band for an effort level."""
    cfg = resolve_config(config)
    ftp = require_positive(ftp_watts, "ftp_watts")
    target_np = ftp * intensity_factor(effort_level, intensity_factors)
    return round_int(cfg.power_band_low * target_np), round_int(cfg.power_band_high * target_np)


def repace_segment(
    segment: Segment,
    new_level: str,
    athlete: AthleteProfile,
    config: Optional[PacingConfig] = None,
) -> Segment:
    """Return a copy of the segment retimed and re-targeted for a new effort level."""
    cfg = resolve_config(config)
    old_if = intensity_factor(segment.effort_level, athlete.intensity_factors)
    new_if = intensity_factor(new_level, athlete.intensity_factors)
    low, high = segment_power_targets(athlete.ftp_watts, new_level, athlete.intensity_factors, cfg)

    exponent = repace_exponent(segment.avg_gradient_pct, cfg)
    time_ratio = (old_if / new_if) ** exponent
    new_time = round_int(segment.target_time_minutes * time_ratio)
    logger.debug(
        f"Segment {segment.order}: {segment.effort_level} -> {new_level}, "
        f"exponent {exponent:.3f}, {segment.target_time_minutes} -> {new_time} min"
    )
    return replace(
        segment,
        effort_level=new_level,
        target_time_minutes=new_time,
        power_target_low_w=low,
        power_target_high_w=high,
    )


def apply_edit(
    segments: Sequence[Segment],
    intent: EditIntent,
    athlete: Optional[AthleteProfile] = None,
    config: Optional[PacingConfig] = None,
) -> list[Segment]:
    """Apply one host edit and return the new segment list.

    The input list and its segments are left untouched.
    """
    index = next((i for i, seg in enumerate(segments) if seg.order == intent.order), None)
    if index is None:
        raise InvalidInputError(f"No segment with order {intent.order}")

    current = segments[index]
    if isinstance(intent, EffortChange):
        if athlete is None:
            raise InvalidInputError("An athlete profile is required to change effort")
        updated = repace_segment(current, intent.effort_level, athlete, config)
    elif isinstance(intent, TimeChange):
        minutes = require_positive(intent.target_time_minutes, "target_time_minutes")
        updated = replace(current, target_time_minutes=round_int(minutes))
    else:
        raise InvalidInputError(f"Unsupported edit intent {intent!r}")

    result = list(segments)
    result[index] = updated
    return result
