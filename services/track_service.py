"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Track parsing: raw GPS points to a cleaned, resampled elevation profile.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Union

import pandas as pd
from haversine import haversine
from streamlit.logger import get_logger

from services.models import ElevationProfile, ElevationSample
from utils.cache import InMemoryTrackCache, TrackCache
from utils.coercion import round_half_up, round_signed, safe_float_optional
from utils.config import PacingConfig, resolve_config
from utils.constants import KM_TO_MILES, METERS_TO_FEET, MILES_TO_FEET
from utils.errors import EmptyTrackError, ParseError
from utils.gpx_parser import parse_gpx_points

logger = get_logger(__name__)

TrackPoints = Union[pd.DataFrame, Iterable[Mapping[str, object]]]


def _to_points_frame(points: TrackPoints) -> pd.DataFrame:
    df = points.copy() if isinstance(points, pd.DataFrame) else pd.DataFrame(list(points))
    if df.empty:
        raise EmptyTrackError("Track contains no points")
    if "lat" not in df.columns or "lon" not in df.columns:
        raise ParseError("Track points need lat and lon")
    if "elevationM" not in df.columns:
        df["elevationM"] = float("nan")
    return df.reset_index(drop=True)


def build_elevation_profile(
    points: TrackPoints, config: Optional[PacingConfig] = None
) -> ElevationProfile:
    """Build a resampled elevation profile from raw track points.

    Distance is accumulated point to point with the Haversine formula.
    Elevation is sanitised before use: a missing value, or a single-step jump
    larger than the dropout threshold, is replaced by the last valid
    elevation. Points seen before any valid elevation only advance distance.

    Gain and loss come from every consecutive pair of points so that short
    undulations between retained samples are not lost. A sample is retained
    each time the distance advanced by at least the resample interval.

    Args:
        points: DataFrame or iterable of mappings with lat, lon, elevationM
            (meters, may be missing)
        config: Engine configuration (defaults when None)

    Returns:
        ElevationProfile

    Raises:
        EmptyTrackError: no points were given
        ParseError: points lack lat/lon or hold non-numeric coordinates
    """
    cfg = resolve_config(config)
    df = _to_points_frame(points)

    samples: list[ElevationSample] = []
    total_mi = 0.0
    gain_ft = 0.0
    loss_ft = 0.0
    min_ft = math.inf
    max_ft = -math.inf

    prev_lat: Optional[float] = None
    prev_lon: Optional[float] = None
    prev_elev_ft: Optional[float] = None
    last_valid_ft: Optional[float] = None
    last_sample_mile = 0.0
    last_sample_elev_ft: Optional[float] = None
    substituted = 0

    for row in df.itertuples(index=False):
        lat = safe_float_optional(row.lat)
        lon = safe_float_optional(row.lon)
        if lat is None or lon is None:
            raise ParseError(f"Non-numeric coordinates: lat={row.lat!r}, lon={row.lon!r}")

        if prev_lat is not None and prev_lon is not None:
            total_mi += haversine((prev_lat, prev_lon), (lat, lon)) * KM_TO_MILES
        prev_lat, prev_lon = lat, lon

        raw_m = safe_float_optional(row.elevationM)
        raw_ft = raw_m * METERS_TO_FEET if raw_m is not None else None
        is_dropout = (
            raw_ft is not None
            and last_valid_ft is not None
            and abs(raw_ft - last_valid_ft) > cfg.dropout_threshold_ft
        )

        if raw_ft is None or is_dropout:
            if last_valid_ft is None:
                continue
            elev_ft = last_valid_ft
            substituted += 1
        else:
            elev_ft = raw_ft
            last_valid_ft = raw_ft

        if prev_elev_ft is not None:
            diff = elev_ft - prev_elev_ft
            if diff > 0:
                gain_ft += diff
            else:
                loss_ft += -diff
        prev_elev_ft = elev_ft
        min_ft = min(min_ft, elev_ft)
        max_ft = max(max_ft, elev_ft)

        if not samples or total_mi - last_sample_mile >= cfg.resample_interval_mi:
            gradient = 0.0
            if last_sample_elev_ft is not None and total_mi > last_sample_mile:
                run_ft = (total_mi - last_sample_mile) * MILES_TO_FEET
                gradient = (elev_ft - last_sample_elev_ft) / run_ft * 100
            samples.append(
                ElevationSample(
                    mile=total_mi,
                    elevation_ft=elev_ft,
                    lat=lat,
                    lon=lon,
                    gradient_pct=round_signed(gradient, 1),
                )
            )
            last_sample_mile = total_mi
            last_sample_elev_ft = elev_ft

    if substituted:
        logger.debug(f"Substituted last valid elevation on {substituted} points")
    if not samples:
        logger.debug("Track has no valid elevation, profile carries distance only")
        min_ft = max_ft = 0.0

    logger.debug(f"Built profile: {len(df)} points, {len(samples)} samples, {total_mi:.2f} mi")
    return ElevationProfile(
        samples=tuple(samples),
        total_distance_mi=round_half_up(total_mi, 2),
        elevation_gain_ft=round_half_up(gain_ft),
        elevation_loss_ft=round_half_up(loss_ft),
        min_elevation_ft=round_half_up(min_ft),
        max_elevation_ft=round_half_up(max_ft),
    )


@dataclass
class TrackService:
    """Parse course tracks, caching profiles by source URL.

    `loader` fetches raw GPX bytes for a URL; the engine itself does no I/O.
    """

    loader: Optional[Callable[[str], bytes]] = None
    cache: Optional[TrackCache] = field(default_factory=InMemoryTrackCache)
    config: PacingConfig = field(default_factory=PacingConfig)

    def profile_from_gpx(self, gpx_bytes: bytes) -> ElevationProfile:
        return build_elevation_profile(parse_gpx_points(gpx_bytes), self.config)

    def load_profile(self, source_url: str) -> ElevationProfile:
        """Return the profile for a source URL, parsing at most once per TTL."""
        if self.loader is None:
            raise ParseError("No track loader configured")

        def _load() -> ElevationProfile:
            return self.profile_from_gpx(self.loader(source_url))

        ttl = self.config.cache_ttl_seconds
        if self.cache is None:
            return _load()
        if isinstance(self.cache, InMemoryTrackCache):
            return self.cache.get_or_load(source_url, _load, ttl)

        cached = self.cache.get(source_url)
        if cached is not None:
            return cached
        profile = _load()
        self.cache.set(source_url, profile, ttl)
        return profile
