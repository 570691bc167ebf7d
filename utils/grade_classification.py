"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import numpy as np
import pandas as pd


def classify_gradient(grade_pct: float, threshold_pct: float = 2.0) -> str:
    """Classify a span gradient into a terrain type.

    Args:
        grade_pct: Signed gradient in percent.
        threshold_pct: Absolute gradient separating flat from climbing/descent.

    Returns:
        One of: climbing, flat, descent.
    """
    if pd.isna(grade_pct):
        return "flat"
    if grade_pct >= threshold_pct:
        return "climbing"
    if grade_pct <= -threshold_pct:
        return "descent"
    return "flat"


def classify_gradients(grades_pct: pd.Series, threshold_pct: float = 2.0) -> pd.Series:
    """Vectorised `classify_gradient` over a Series of percent gradients."""
    grades = pd.to_numeric(grades_pct, errors="coerce").fillna(0.0)
    labels = np.select(
        [grades >= threshold_pct, grades <= -threshold_pct],
        ["climbing", "descent"],
        default="flat",
    )
    return pd.Series(labels, index=grades_pct.index, dtype=object)
