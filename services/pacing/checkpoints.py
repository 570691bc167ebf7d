"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Arrival times at segment boundaries and margins against cutoffs.
"""

from __future__ import annotations

import datetime as dt
from typing import Iterable, Mapping, Optional, Sequence

from services.models import CheckpointTiming, Segment, Waypoint
from utils.constants import (
    CUTOFF_CAUTION_MARGIN_MINUTES,
    CUTOFF_SAFE_MARGIN_MINUTES,
    DEFAULT_START_TIME,
)
from utils.time import add_minutes, format_clock, parse_clock


def total_time_minutes(segments: Sequence[Segment]) -> int:
    return sum(seg.target_time_minutes for seg in segments)


def cutoff_status(margin_minutes: float) -> str:
    if margin_minutes >= CUTOFF_SAFE_MARGIN_MINUTES:
        return "safe"
    if margin_minutes >= CUTOFF_CAUTION_MARGIN_MINUTES:
        return "caution"
    return "danger"


def cutoffs_from_waypoints(waypoints: Iterable[Waypoint]) -> dict[str, str]:
    return {wp.name: wp.cutoff_time for wp in waypoints if wp.cutoff_time}


def checkpoint_arrivals(
    segments: Sequence[Segment],
    start_time: str = DEFAULT_START_TIME,
    cutoffs: Optional[Mapping[str, str]] = None,
) -> list[CheckpointTiming]:
    """Elapsed time and wall-clock arrival at the start and every segment end.

    Cutoffs are wall-clock times keyed by boundary name. A cutoff earlier in
    the day than the start is read as the next day, so overnight races keep a
    meaningful margin.
    """
    ordered = sorted(segments, key=lambda s: s.order)
    start = parse_clock(start_time)
    cutoffs = cutoffs or {}

    timings = [
        CheckpointTiming(
            name=ordered[0].start_name if ordered else "Start",
            mile=ordered[0].start_mile if ordered else 0.0,
            elapsed_minutes=0,
            arrival_time=format_clock(add_minutes(start, 0)),
        )
    ]

    elapsed = 0
    for seg in ordered:
        elapsed += seg.target_time_minutes
        arrival = add_minutes(start, elapsed)
        cutoff_text = cutoffs.get(seg.end_name)
        margin = None
        status = None
        if cutoff_text:
            cutoff = add_minutes(parse_clock(cutoff_text), 0)
            if cutoff < add_minutes(start, 0):
                cutoff += dt.timedelta(days=1)
            margin = int((cutoff - arrival).total_seconds() // 60)
            status = cutoff_status(margin)
        timings.append(
            CheckpointTiming(
                name=seg.end_name,
                mile=seg.end_mile,
                elapsed_minutes=elapsed,
                arrival_time=format_clock(arrival),
                cutoff_time=cutoff_text,
                cutoff_margin_minutes=margin,
                cutoff_status=status,
            )
        )
    return timings
