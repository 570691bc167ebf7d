"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Type coercion and rounding utilities.
"""

from __future__ import annotations

import math
from typing import Any, Optional


def coerce_float(value: Any, default: float = 0.0) -> float:
    """Coerce a value to float with a default fallback.

    Handles None, empty strings, and conversion errors by returning the default.

    Args:
        value: Value to coerce (can be None, str, int, float, etc.)
        default: Default value to return if coercion fails (default: 0.0)

    Returns:
        float: Coerced value or default if coercion fails
    """
    try:
        if value in (None, ""):
            return default
        return float(value)
    except (TypeError, ValueError):
        return default


def safe_float_optional(value: object) -> Optional[float]:
    """Safely convert a value to float, returning None on failure.

    Handles None, empty strings, "NaN", and math.nan by returning None.

    Args:
        value: Value to convert

    Returns:
        Optional[float]: Converted value or None if conversion fails
    """
    try:
        if value in (None, "", "NaN"):
            return None
        result = float(value)
        if math.isnan(result):
            return None
        return result
    except (TypeError, ValueError):
        return None


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero for positive values (Math.round semantics).

    Python's round() is banker's rounding, which makes 0.5-minute and 0.5-watt
    boundaries flip depending on parity.
    """
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def round_signed(value: float, digits: int = 0) -> float:
    """Round half away from zero, symmetric for negative values (gradients)."""
    if value < 0:
        return -round_half_up(-value, digits)
    return round_half_up(value, digits)
