# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Synchronization gates between worker threads and the harness.

RearmableGate is a one-shot signal that can be reset for reuse.
CountdownGate opens once a target number of signals has arrived; the
target can be raised or lowered while threads wait on it.
"""

from __future__ import annotations

import threading
import time

from streamtask_harness.enums import EnumGateState


class RearmableGate:
    """One-shot signal with an explicit rearm.

    ``signal()`` moves the gate to SIGNALED and releases every waiter;
    ``rearm()`` moves it back to ARMED.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._event = threading.Event()

    @property
    def state(self) -> EnumGateState:
        return EnumGateState.SIGNALED if self._event.is_set() else EnumGateState.ARMED

    @property
    def is_signaled(self) -> bool:
        return self._event.is_set()

    def signal(self) -> None:
        self._event.set()

    def wait(self, timeout: float | None) -> bool:
        """Block until signaled; return False if ``timeout`` elapsed first."""
        return self._event.wait(timeout)

    def rearm(self) -> None:
        self._event.clear()

    def __repr__(self) -> str:
        return f"RearmableGate({self.name!r}, {self.state.value})"


class CountdownGate:
    """Gate that opens once ``target`` signals have been counted."""

    def __init__(self, name: str, target: int = 1) -> None:
        if target < 0:
            raise ValueError(f"Countdown target must be >= 0, got {target}")
        self.name = name
        self._target = target
        self._signals = 0
        self._condition = threading.Condition()

    @property
    def signals(self) -> int:
        with self._condition:
            return self._signals

    @property
    def remaining(self) -> int:
        with self._condition:
            return max(self._target - self._signals, 0)

    def count_down(self) -> None:
        with self._condition:
            self._signals += 1
            self._condition.notify_all()

    def retarget(self, target: int) -> None:
        """Change the number of signals the gate waits for, keeping the count."""
        if target < 0:
            raise ValueError(f"Countdown target must be >= 0, got {target}")
        with self._condition:
            self._target = target
            self._condition.notify_all()

    def wait(self, timeout: float | None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while self._signals < self._target:
                if deadline is None:
                    self._condition.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._condition.wait(remaining)
            return True

    def rearm(self, target: int) -> None:
        """Reset the count to zero and wait for ``target`` new signals."""
        if target < 0:
            raise ValueError(f"Countdown target must be >= 0, got {target}")
        with self._condition:
            self._target = target
            self._signals = 0
            self._condition.notify_all()

    def __repr__(self) -> str:
        return f"CountdownGate({self.name!r}, {self.signals}/{self._target})"


__all__ = ["CountdownGate", "RearmableGate"]
