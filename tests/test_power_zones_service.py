"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import pytest

from services.power_zones_service import altitude_factor, calculate_power_zones
from utils.errors import InvalidInputError


@pytest.mark.parametrize(
    ("elevation_ft", "expected"),
    [(0, 0.0), (3999, 0.0), (4000, 0.0), (6000, 0.1), (8000, 0.2), (12000, 0.2)],
)
def test_altitude_factor_ramp(elevation_ft, expected):
    assert altitude_factor(elevation_ft, 0.20) == pytest.approx(expected)


def test_altitude_factor_rejects_out_of_range_user_factor():
    with pytest.raises(InvalidInputError):
        altitude_factor(9000, 0.6)
    with pytest.raises(InvalidInputError):
        altitude_factor(9000, -0.1)


def test_power_zones_at_altitude():
    zones = calculate_power_zones(250, 0.20, 9000)

    assert zones.altitude_factor == pytest.approx(0.2)
    assert zones.adjusted_ftp_w == pytest.approx(200.0)
    assert zones.sea_level_np["tempo"] == 175
    assert zones.adjusted_np["tempo"] == 140
    assert zones.climbing_power["tempo"] == 168
    assert zones.flat_power["tempo"] == 126
    assert zones.descent_power["tempo"] == 56
    assert zones.sea_level_np["safe"] == 168


def test_power_zones_at_sea_level():
    zones = calculate_power_zones(250, 0.20, 1500)

    assert zones.altitude_factor == 0.0
    assert zones.adjusted_np == zones.sea_level_np


def test_zone_ordering():
    zones = calculate_power_zones(300, 0.15, 7000)
    for table in (zones.adjusted_np, zones.climbing_power, zones.flat_power):
        assert table["safe"] <= table["tempo"] <= table["pushing"]
    assert zones.descent_power["tempo"] < zones.flat_power["tempo"] < zones.climbing_power["tempo"]


def test_power_zones_invalid_inputs():
    with pytest.raises(InvalidInputError):
        calculate_power_zones(0, 0.2, 9000)
    with pytest.raises(InvalidInputError):
        calculate_power_zones(250, 0.2, 9000, intensity_factors={"tempo": 0.7})
