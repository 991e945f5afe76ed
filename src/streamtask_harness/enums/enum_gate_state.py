# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Synchronization gate state enumeration."""

from __future__ import annotations

from enum import Enum


class EnumGateState(str, Enum):
    """State of a one-shot synchronization gate.

    Attributes:
        ARMED: Waiting for a signal; waiters block
        SIGNALED: Signal delivered; waiters return immediately until rearmed
    """

    ARMED = "armed"
    SIGNALED = "signaled"


__all__ = ["EnumGateState"]
