"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Plain data records exchanged between the host application and the engine.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, Optional, Tuple

import pandas as pd

from utils.coercion import round_int
from utils.constants import DEFAULT_EFFORT_LEVEL, DEFAULT_INTENSITY_FACTORS, WAYPOINT_KINDS
from utils.errors import InvalidInputError

SurfaceComposition = Dict[str, float]


@dataclass(frozen=True)
class ElevationSample:
    mile: float
    elevation_ft: float
    lat: float
    lon: float
    gradient_pct: float


@dataclass(frozen=True)
class ElevationProfile:
    """Resampled elevation profile of a course.

    Immutable: re-parsing a track builds a new profile.
    """

    samples: Tuple[ElevationSample, ...]
    total_distance_mi: float
    elevation_gain_ft: float
    elevation_loss_ft: float
    min_elevation_ft: float
    max_elevation_ft: float

    @property
    def has_elevation(self) -> bool:
        return len(self.samples) > 0

    @property
    def miles(self) -> list[float]:
        return [s.mile for s in self.samples]

    @property
    def elevations_ft(self) -> list[float]:
        return [s.elevation_ft for s in self.samples]

    def to_frame(self) -> pd.DataFrame:
        columns = ["mile", "elevation_ft", "lat", "lon", "gradient_pct"]
        if not self.samples:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([asdict(s) for s in self.samples], columns=columns)


@dataclass(frozen=True)
class Waypoint:
    name: str
    mile: float
    kind: str = "aid_station"
    cutoff_time: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in WAYPOINT_KINDS:
            raise InvalidInputError(f"Unknown waypoint kind {self.kind!r}, expected one of {WAYPOINT_KINDS}")


@dataclass
class Segment:
    order: int
    start_mile: float
    end_mile: float
    start_name: str
    end_name: str
    target_time_minutes: int
    effort_level: str = DEFAULT_EFFORT_LEVEL
    elevation_gain_ft: int = 0
    elevation_loss_ft: int = 0
    avg_gradient_pct: Optional[float] = None
    power_target_low_w: Optional[int] = None
    power_target_high_w: Optional[int] = None

    @property
    def distance_mi(self) -> float:
        return self.end_mile - self.start_mile


@dataclass
class AthleteProfile:
    ftp_watts: float
    weight_kg: float
    altitude_adjustment_factor: float = 0.20
    intensity_factors: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_INTENSITY_FACTORS)
    )


@dataclass(frozen=True)
class CourseProfile:
    climbing_pct: float
    flat_pct: float
    descent_pct: float
    avg_climb_grade_pct: float
    avg_descent_grade_pct: float
    total_elevation_gain_m: float
    total_elevation_loss_m: float
    avg_gradient_pct: float = 0.0
    min_gradient_pct: float = 0.0
    max_gradient_pct: float = 0.0


@dataclass(frozen=True)
class PowerZones:
    altitude_factor: float
    adjusted_ftp_w: float
    sea_level_np: Dict[str, int]
    adjusted_np: Dict[str, int]
    climbing_power: Dict[str, int]
    flat_power: Dict[str, int]
    descent_power: Dict[str, int]


@dataclass(frozen=True)
class TerrainSplit:
    terrain: str
    distance_km: float
    grade_pct: float
    speed_kph: float
    time_minutes: float


@dataclass(frozen=True)
class PacingResult:
    normalized_power_w: float
    effective_crr: float
    course_profile: CourseProfile
    terrain_breakdown: Tuple[TerrainSplit, ...]
    fatigue_factor: float
    moving_time_minutes: float
    overhead_minutes: float
    total_time_minutes: float
    avg_speed_kph: float
    required_power_w: Optional[float] = None
    converged: bool = True
    iterations: int = 0

    @property
    def required_power_rounded_w(self) -> Optional[int]:
        if self.required_power_w is None:
            return None
        return round_int(self.required_power_w)


@dataclass(frozen=True)
class CheckpointTiming:
    name: str
    mile: float
    elapsed_minutes: int
    arrival_time: str
    cutoff_time: Optional[str] = None
    cutoff_margin_minutes: Optional[int] = None
    cutoff_status: Optional[str] = None
