"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Error taxonomy for the pacing engine.

Every computational failure surfaces as one of these types. Solver
non-convergence is a warning, not an error: the caller still gets the best
bracketed estimate.
"""

from __future__ import annotations

import math


class PacingError(Exception):
    """Base class for all pacing engine errors."""


class ParseError(PacingError, ValueError):
    """Track data is empty or malformed."""


class EmptyTrackError(ParseError):
    """Track contains no points."""


class InvalidInputError(PacingError, ValueError):
    """A caller-supplied value is outside its valid domain."""


class InvalidGoalTimeError(InvalidInputError):
    """Goal time is zero or negative."""


class NumericDomainError(PacingError, ArithmeticError):
    """A physics computation left its numeric domain (NaN, infinity)."""


class ConvergenceWarning(UserWarning):
    """Root finding stopped without bracketing an exact solution."""


def require_positive(value: float, name: str) -> float:
    """Return value as float, raising InvalidInputError unless it is finite and > 0."""
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(result) or result <= 0:
        raise InvalidInputError(f"{name} must be positive, got {value!r}")
    return result


def guarded_divide(numerator: float, denominator: float, what: str) -> float:
    """Divide, raising InvalidInputError on a zero or non-finite denominator."""
    if denominator == 0 or not math.isfinite(denominator):
        raise InvalidInputError(f"Cannot compute {what}: denominator is {denominator!r}")
    return numerator / denominator
