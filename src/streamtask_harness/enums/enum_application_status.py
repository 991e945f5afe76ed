# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Application Status Enumeration.

Lifecycle states of a stream job as observed by the harness.

State machine::

    NEW -> STARTING -> RUNNING -> KILLING -> UNSUCCESSFUL_FINISH
                               -> COMPLETING -> SUCCESSFUL_FINISH

A job that fails inside its container also ends in UNSUCCESSFUL_FINISH.
"""

from __future__ import annotations

from enum import Enum


class EnumApplicationStatus(str, Enum):
    """Status of a stream job.

    Attributes:
        NEW: Constructed but not yet submitted
        STARTING: Submitted; the container thread has not begun running
        RUNNING: Container thread is running
        KILLING: A kill was requested and the container is unwinding
        COMPLETING: A task requested shutdown and the container is draining
        SUCCESSFUL_FINISH: Terminal state after a requested shutdown
        UNSUCCESSFUL_FINISH: Terminal state after a kill or a container failure
    """

    NEW = "new"
    STARTING = "starting"
    RUNNING = "running"
    KILLING = "killing"
    COMPLETING = "completing"
    SUCCESSFUL_FINISH = "successful_finish"
    UNSUCCESSFUL_FINISH = "unsuccessful_finish"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition can happen from this status."""
        return self in (
            EnumApplicationStatus.SUCCESSFUL_FINISH,
            EnumApplicationStatus.UNSUCCESSFUL_FINISH,
        )


_ALLOWED_TRANSITIONS: dict[EnumApplicationStatus, frozenset[EnumApplicationStatus]] = {
    EnumApplicationStatus.NEW: frozenset(
        {EnumApplicationStatus.STARTING, EnumApplicationStatus.KILLING}
    ),
    EnumApplicationStatus.STARTING: frozenset(
        {
            EnumApplicationStatus.RUNNING,
            EnumApplicationStatus.KILLING,
            EnumApplicationStatus.UNSUCCESSFUL_FINISH,
        }
    ),
    EnumApplicationStatus.RUNNING: frozenset(
        {
            EnumApplicationStatus.KILLING,
            EnumApplicationStatus.COMPLETING,
            EnumApplicationStatus.UNSUCCESSFUL_FINISH,
        }
    ),
    EnumApplicationStatus.KILLING: frozenset(
        {EnumApplicationStatus.UNSUCCESSFUL_FINISH}
    ),
    EnumApplicationStatus.COMPLETING: frozenset(
        {
            EnumApplicationStatus.SUCCESSFUL_FINISH,
            EnumApplicationStatus.KILLING,
            EnumApplicationStatus.UNSUCCESSFUL_FINISH,
        }
    ),
    EnumApplicationStatus.SUCCESSFUL_FINISH: frozenset(),
    EnumApplicationStatus.UNSUCCESSFUL_FINISH: frozenset(),
}


def is_allowed_transition(
    current: EnumApplicationStatus, target: EnumApplicationStatus
) -> bool:
    """Check whether ``current -> target`` is a legal status transition."""
    return target in _ALLOWED_TRANSITIONS[current]


__all__ = ["EnumApplicationStatus", "is_allowed_transition"]
