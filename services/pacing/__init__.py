"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from services.pacing.checkpoints import checkpoint_arrivals as checkpoint_arrivals
    from services.pacing.effort_repacer import apply_edit as apply_edit
    from services.pacing.segment_allocator import allocate_segments as allocate_segments

_EXPORTS = {
    "allocate_segments": "services.pacing.segment_allocator",
    "apply_edit": "services.pacing.effort_repacer",
    "checkpoint_arrivals": "services.pacing.checkpoints",
}


def __getattr__(name: str) -> object:
    if name in _EXPORTS:
        from importlib import import_module

        return getattr(import_module(_EXPORTS[name]), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["allocate_segments", "apply_edit", "checkpoint_arrivals"]
