# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Starting offset policy enumeration."""

from __future__ import annotations

from enum import Enum


class EnumOffsetDefault(str, Enum):
    """Where a stream starts when no checkpointed offset applies.

    Attributes:
        OLDEST: Earliest retained offset
        UPCOMING: Next offset to be written (skip existing records)
    """

    OLDEST = "oldest"
    UPCOMING = "upcoming"


__all__ = ["EnumOffsetDefault"]
