# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Task Registry.

Shared rendezvous between worker tasks, which run on the job's container
thread, and the harness thread that drives the test.

Worker side:
    register() -> signal_initialized() -> signal_first_event_processed()
    -> signal_message_received() for every record

Harness side:
    await_all_tasks_registered() -> await_task_initialized()
    -> await_message_received() per sent message
    -> await_first_event_processed() before stopping

Gate semantics:
    registration: countdown over all tasks; rearmed after each successful await
    initialized: one-shot per task
    message_received: rearmed after each successful await, so each send
        consumes exactly one signal
    first_event_processed: one-shot, never rearmed

Every harness-side wait raises LifecycleTimeoutError when its budget
elapses, naming the gate, the task and the budget.

The registry is an ordinary object handed to tasks through their context,
so concurrent harness runs never share registration state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from streamtask_harness.errors import (
    HarnessConfigurationError,
    LifecycleTimeoutError,
    ModelHarnessErrorContext,
)
from streamtask_harness.registry.rearmable_gate import CountdownGate, RearmableGate

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_TIMEOUT_SECONDS = 60.0


@dataclass
class TaskRegistryEntry:
    """A registered task and its per-task gates."""

    task_name: str
    task: object
    initialized: RearmableGate = field(init=False)
    message_received: RearmableGate = field(init=False)
    first_event_processed: RearmableGate = field(init=False)

    def __post_init__(self) -> None:
        self.initialized = RearmableGate(f"{self.task_name}:initialized")
        self.message_received = RearmableGate(f"{self.task_name}:message_received")
        self.first_event_processed = RearmableGate(f"{self.task_name}:first_event_processed")


class TaskRegistry:
    """Registry of live tasks and their synchronization gates.

    Thread Safety:
        Registration and lookups are guarded by a lock; gates synchronize
        themselves. Distinct tasks may register concurrently.
    """

    def __init__(self, default_timeout_seconds: float = DEFAULT_REGISTRY_TIMEOUT_SECONDS) -> None:
        self._default_timeout_seconds = default_timeout_seconds
        self._lock = threading.Lock()
        self._entries: dict[str, TaskRegistryEntry] = {}
        self._registered = CountdownGate("registered", target=1)

    # -- worker side -------------------------------------------------------

    def register(self, task_name: str, task: object) -> TaskRegistryEntry:
        """Record ``task`` under ``task_name`` and count it toward registration.

        Raises:
            HarnessConfigurationError: If ``task_name`` is already registered
        """
        with self._lock:
            if task_name in self._entries:
                raise HarnessConfigurationError(
                    f"Task '{task_name}' is already registered",
                    context=self._context("register", task_name),
                )
            entry = TaskRegistryEntry(task_name=task_name, task=task)
            self._entries[task_name] = entry
        self._registered.count_down()
        logger.debug("Task registered: %s", task_name, extra={"task_name": task_name})
        return entry

    def signal_initialized(self, task_name: str) -> None:
        self._entry(task_name, "signal_initialized").initialized.signal()

    def signal_message_received(self, task_name: str) -> None:
        self._entry(task_name, "signal_message_received").message_received.signal()

    def signal_first_event_processed(self, task_name: str) -> None:
        self._entry(task_name, "signal_first_event_processed").first_event_processed.signal()

    # -- harness side ------------------------------------------------------

    def await_all_tasks_registered(
        self, expected_count: int, timeout: float | None = None
    ) -> dict[str, object]:
        """Wait for ``expected_count`` registrations, then rearm the gate.

        Returns:
            Snapshot of task name to task handle.

        Raises:
            LifecycleTimeoutError: If the registrations did not arrive in
                time, or the registry does not hold exactly
                ``expected_count`` tasks.
        """
        budget = self._budget(timeout)
        self._registered.retarget(expected_count)
        if not self._registered.wait(budget):
            raise LifecycleTimeoutError(
                f"Timed out after {budget}s waiting for {expected_count} task(s) to "
                f"register; {self._registered.remaining} registration(s) outstanding",
                context=self._context("await_all_tasks_registered", "registered"),
                expected_count=expected_count,
                timeout_seconds=budget,
            )

        tasks = self.tasks
        if self._registered.remaining != 0 or len(tasks) != expected_count:
            raise LifecycleTimeoutError(
                f"Expected exactly {expected_count} registered task(s), found "
                f"{len(tasks)}: {sorted(tasks)}",
                context=self._context("await_all_tasks_registered", "registered"),
                expected_count=expected_count,
            )
        self._registered.rearm(expected_count)
        return tasks

    def await_task_initialized(self, task_name: str, timeout: float | None = None) -> None:
        entry = self._entry(task_name, "await_task_initialized")
        self._await(entry.initialized, task_name, timeout)

    def await_message_received(self, task_name: str, timeout: float | None = None) -> None:
        """Wait for the task to receive a message, then rearm for the next one."""
        entry = self._entry(task_name, "await_message_received")
        self._await(entry.message_received, task_name, timeout)
        entry.message_received.rearm()

    def await_first_event_processed(
        self, task_name: str, timeout: float | None = None
    ) -> None:
        entry = self._entry(task_name, "await_first_event_processed")
        self._await(entry.first_event_processed, task_name, timeout)

    # -- inspection --------------------------------------------------------

    @property
    def tasks(self) -> dict[str, object]:
        """Snapshot of registered task names to task handles."""
        with self._lock:
            return {name: entry.task for name, entry in self._entries.items()}

    def get(self, task_name: str) -> TaskRegistryEntry | None:
        with self._lock:
            return self._entries.get(task_name)

    def reset(self) -> None:
        """Forget every task and rearm the registration gate."""
        with self._lock:
            self._entries.clear()
        self._registered.rearm(1)

    # -- helpers -----------------------------------------------------------

    def _await(self, gate: RearmableGate, task_name: str, timeout: float | None) -> None:
        budget = self._budget(timeout)
        if not gate.wait(budget):
            raise LifecycleTimeoutError(
                f"Timed out after {budget}s waiting for gate '{gate.name}' of task '{task_name}'",
                context=self._context("await", task_name),
                gate=gate.name,
                timeout_seconds=budget,
            )

    def _entry(self, task_name: str, operation: str) -> TaskRegistryEntry:
        with self._lock:
            entry = self._entries.get(task_name)
        if entry is None:
            raise HarnessConfigurationError(
                f"Task '{task_name}' is not registered",
                context=self._context(operation, task_name),
            )
        return entry

    def _budget(self, timeout: float | None) -> float:
        return self._default_timeout_seconds if timeout is None else timeout

    @staticmethod
    def _context(operation: str, target: str) -> ModelHarnessErrorContext:
        return ModelHarnessErrorContext(
            component="task_registry", operation=operation, target_name=target
        )


__all__ = ["DEFAULT_REGISTRY_TIMEOUT_SECONDS", "TaskRegistry", "TaskRegistryEntry"]
