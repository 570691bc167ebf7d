"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from services.track_service import TrackService, build_elevation_profile
from utils.cache import InMemoryTrackCache
from utils.config import PacingConfig
from utils.constants import METERS_TO_FEET
from utils.errors import EmptyTrackError, ParseError


def test_profile_is_deterministic(climb_descent_points):
    first = build_elevation_profile(climb_descent_points)
    second = build_elevation_profile(climb_descent_points.copy())
    assert first == second


def test_profile_totals(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)

    # 200 steps of 0.001° latitude ≈ 22.24 km
    assert profile.total_distance_mi == pytest.approx(13.82, abs=0.05)
    assert profile.elevation_gain_ft == pytest.approx(400 * METERS_TO_FEET, abs=1)
    assert profile.elevation_loss_ft == pytest.approx(400 * METERS_TO_FEET, abs=1)
    assert profile.min_elevation_ft == round(1000 * METERS_TO_FEET)
    assert profile.max_elevation_ft == round(1400 * METERS_TO_FEET)


def test_samples_respect_resample_interval(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)
    miles = profile.miles

    assert miles[0] == 0.0
    assert all(b - a >= 0.1 for a, b in zip(miles, miles[1:]))
    assert miles[-1] <= profile.total_distance_mi + 0.01


def test_sample_gradients_follow_terrain(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)
    climb = [s.gradient_pct for s in profile.samples if 1.0 < s.mile < 6.0]
    descent = [s.gradient_pct for s in profile.samples if 8.0 < s.mile < 13.0]

    assert all(g == pytest.approx(3.6, abs=0.1) for g in climb)
    assert all(g == pytest.approx(-3.6, abs=0.1) for g in descent)


def test_dropout_spike_is_ignored(flat_points):
    """A single 600 ft jump between fixes is a sensor dropout, not climbing."""
    points = flat_points.copy()
    points.loc[50, "elevationM"] = 1000.0 + 600 / METERS_TO_FEET

    profile = build_elevation_profile(points)
    assert profile.elevation_gain_ft == 0
    assert profile.elevation_loss_ft == 0
    assert profile.max_elevation_ft == round(1000 * METERS_TO_FEET)


def test_dropout_threshold_from_config(flat_points):
    points = flat_points.copy()
    points.loc[50, "elevationM"] = 1000.0 + 600 / METERS_TO_FEET

    profile = build_elevation_profile(points, PacingConfig(dropout_threshold_ft=1000.0))
    assert profile.elevation_gain_ft == 600
    assert profile.elevation_loss_ft == 600


def test_missing_elevation_keeps_distance(flat_points):
    points = flat_points.assign(elevationM=np.nan)

    profile = build_elevation_profile(points)
    assert not profile.has_elevation
    assert profile.total_distance_mi > 13
    assert profile.elevation_gain_ft == 0
    assert profile.min_elevation_ft == 0
    assert profile.max_elevation_ft == 0


def test_leading_missing_elevation_only_advances_distance(flat_points):
    points = flat_points.copy()
    points.loc[:9, "elevationM"] = np.nan

    profile = build_elevation_profile(points)
    assert profile.samples[0].mile > 0.5
    assert profile.elevation_gain_ft == 0


def test_missing_elevation_column(flat_points):
    profile = build_elevation_profile(flat_points.drop(columns=["elevationM"]))
    assert not profile.has_elevation


def test_accepts_point_mappings():
    points = [
        {"lat": 45.0, "lon": 5.0, "elevationM": 100.0},
        {"lat": 45.01, "lon": 5.0, "elevationM": 110.0},
    ]
    profile = build_elevation_profile(points)
    assert len(profile.samples) == 2
    assert profile.elevation_gain_ft == round(10 * METERS_TO_FEET)


def test_empty_track_raises():
    with pytest.raises(EmptyTrackError):
        build_elevation_profile([])
    with pytest.raises(EmptyTrackError):
        build_elevation_profile(pd.DataFrame(columns=["lat", "lon", "elevationM"]))


def test_missing_coordinates_raises():
    with pytest.raises(ParseError):
        build_elevation_profile([{"elevationM": 100.0}])


def test_profile_to_frame(climb_descent_points):
    profile = build_elevation_profile(climb_descent_points)
    df = profile.to_frame()
    assert list(df.columns) == ["mile", "elevation_ft", "lat", "lon", "gradient_pct"]
    assert len(df) == len(profile.samples)


def test_profile_from_gpx(gpx_factory):
    points = [(45.0 + i * 0.001, 5.0, 1000 + i) for i in range(20)]
    profile = TrackService(cache=None).profile_from_gpx(gpx_factory(points))
    assert profile.elevation_gain_ft == round(19 * METERS_TO_FEET)


def _counting_loader(gpx_bytes):
    calls = []

    def loader(url):
        calls.append(url)
        return gpx_bytes

    return loader, calls


def test_load_profile_caches_by_url(gpx_factory):
    points = [(45.0 + i * 0.001, 5.0, 1000) for i in range(20)]
    loader, calls = _counting_loader(gpx_factory(points))
    service = TrackService(loader=loader)

    first = service.load_profile("https://example.com/a.gpx")
    second = service.load_profile("https://example.com/a.gpx")
    service.load_profile("https://example.com/b.gpx")

    assert first is second
    assert calls == ["https://example.com/a.gpx", "https://example.com/b.gpx"]


def test_load_profile_reloads_after_ttl(gpx_factory):
    now = [0.0]
    points = [(45.0 + i * 0.001, 5.0, 1000) for i in range(20)]
    loader, calls = _counting_loader(gpx_factory(points))
    service = TrackService(loader=loader, cache=InMemoryTrackCache(clock=lambda: now[0]))

    service.load_profile("a")
    now[0] = 299.0
    service.load_profile("a")
    now[0] = 301.0
    service.load_profile("a")

    assert len(calls) == 2


def test_load_profile_without_cache(gpx_factory):
    points = [(45.0 + i * 0.001, 5.0, 1000) for i in range(20)]
    loader, calls = _counting_loader(gpx_factory(points))
    service = TrackService(loader=loader, cache=None)

    service.load_profile("a")
    service.load_profile("a")
    assert len(calls) == 2


def test_load_profile_custom_cache(gpx_factory):
    class DictCache:
        def __init__(self):
            self.store = {}

        def get(self, key):
            return self.store.get(key)

        def set(self, key, value, ttl):
            self.store[key] = value

    points = [(45.0 + i * 0.001, 5.0, 1000) for i in range(20)]
    loader, calls = _counting_loader(gpx_factory(points))
    cache = DictCache()
    service = TrackService(loader=loader, cache=cache)

    service.load_profile("a")
    service.load_profile("a")
    assert len(calls) == 1
    assert "a" in cache.store


def test_load_profile_without_loader():
    with pytest.raises(ParseError):
        TrackService().load_profile("a")
