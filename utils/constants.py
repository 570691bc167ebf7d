"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

# ==============================================================================
# UNIT CONVERSIONS
# ==============================================================================

METERS_TO_FEET = 3.28084
FEET_TO_METERS = 0.3048
KM_TO_MILES = 0.621371
MILES_TO_FEET = 5280.0
MPS_TO_KPH = 3.6

# ==============================================================================
# PHYSICS
# ==============================================================================

GRAVITY = 9.81  # m/s^2
RHO_SEA_LEVEL = 1.225  # kg/m^3 at 15°C
T_SEA_LEVEL = 288.15  # K
TEMP_LAPSE_RATE = 0.0065  # K/m
MOLAR_MASS_AIR = 0.0289644  # kg/mol
UNIVERSAL_GAS_CONSTANT = 8.31447  # J/(mol·K)

# ==============================================================================
# EFFORT LEVELS & POWER
# ==============================================================================

EFFORT_LEVELS = ("safe", "tempo", "pushing")
DEFAULT_EFFORT_LEVEL = "tempo"

# Fractions of FTP held as normalized power for a long gravel race.
DEFAULT_INTENSITY_FACTORS = {
    "safe": 0.67,
    "tempo": 0.70,
    "pushing": 0.73,
}

EFFORT_PRESETS = ("conservative", "tempo", "aggressive")

# Effort assigned to climbing segments by each preset.
PRESET_CLIMB_EFFORT = {
    "conservative": "safe",
    "tempo": "tempo",
    "aggressive": "pushing",
}

# Effort assigned to every other segment by each preset.
PRESET_DEFAULT_EFFORT = {
    "conservative": "safe",
    "tempo": "tempo",
    "aggressive": "tempo",
}

# ==============================================================================
# COURSE & WAYPOINTS
# ==============================================================================

WAYPOINT_KINDS = ("start", "aid_station", "checkpoint", "finish")

# Checkpoints are informational only and never bound a pacing segment.
PACING_WAYPOINT_KINDS = frozenset({"start", "aid_station", "finish"})

TERRAIN_TYPES = ("climbing", "flat", "descent")

# ==============================================================================
# CUTOFFS
# ==============================================================================

CUTOFF_SAFE_MARGIN_MINUTES = 60
CUTOFF_CAUTION_MARGIN_MINUTES = 30
DEFAULT_START_TIME = "06:00"
