"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Elevation-related helpers.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

from utils.coercion import round_int, round_signed
from utils.constants import MILES_TO_FEET


class RangeElevation(NamedTuple):
    elevation_gain_ft: int
    elevation_loss_ft: int
    avg_gradient_pct: float


def extract_range_elevation(
    miles: Sequence[float],
    elevations_ft: Sequence[float],
    start_mile: float,
    end_mile: float,
) -> RangeElevation:
    """Compute gain, loss and average gradient between two mile markers.

    Only samples with start_mile <= mile <= end_mile are used. The average
    gradient is the net elevation change over the nominal range length, so a
    segment that climbs and descends the same amount reads as flat.

    Args:
        miles: Sample positions in miles, non-decreasing
        elevations_ft: Sample elevations in feet
        start_mile: Range start
        end_mile: Range end

    Returns:
        RangeElevation with gain/loss rounded to feet and gradient to 0.1%.
        All zeros when fewer than two samples fall in the range.
    """
    inside = [
        elev for mile, elev in zip(miles, elevations_ft) if start_mile <= mile <= end_mile
    ]
    if len(inside) < 2:
        return RangeElevation(0, 0, 0.0)

    gain = 0.0
    loss = 0.0
    for prev, curr in zip(inside, inside[1:]):
        diff = curr - prev
        if diff > 0:
            gain += diff
        else:
            loss += -diff

    distance_ft = (end_mile - start_mile) * MILES_TO_FEET
    avg_gradient = (inside[-1] - inside[0]) / distance_ft * 100 if distance_ft > 0 else 0.0

    return RangeElevation(round_int(gain), round_int(loss), round_signed(avg_gradient, 1))
