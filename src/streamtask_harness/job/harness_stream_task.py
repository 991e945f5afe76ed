# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Base class for tasks driven by the stream task harness.

HarnessStreamTask implements the self-registration contract with the
TaskRegistry so tests only supply business logic through ``on_init`` and
``on_process``:

    init:    register -> on_init -> initialized signal
    process: first-event signal (first record only) -> record payload
             -> on_process -> message-received signal

Example:
    ```python
    class UpperCaseTask(HarnessStreamTask):
        def on_process(self, envelope, collector, coordinator):
            collector.send(
                OutgoingMessageEnvelope(SystemStream.parse("kafka.output"),
                                        envelope.message.upper())
            )
    ```
"""

from __future__ import annotations

import threading

from streamtask_harness.errors import JobStateError, ModelHarnessErrorContext
from streamtask_harness.job.stream_task import (
    IncomingMessageEnvelope,
    MessageCollector,
    Payload,
    TaskContext,
    TaskCoordinator,
)


class HarnessStreamTask:
    """Stream task that reports its progress to the harness registry."""

    def __init__(self) -> None:
        self._context: TaskContext | None = None
        self._received: list[Payload] = []
        self._lock = threading.Lock()
        self._first_event_seen = False

    @property
    def context(self) -> TaskContext:
        if self._context is None:
            raise JobStateError(
                f"{type(self).__name__} has not been initialized",
                context=ModelHarnessErrorContext(component="stream_task", operation="context"),
            )
        return self._context

    @property
    def task_name(self) -> str:
        return self.context.task_name

    @property
    def received(self) -> list[Payload]:
        """Snapshot of every payload received, in order."""
        with self._lock:
            return list(self._received)

    @property
    def last_received(self) -> Payload:
        with self._lock:
            if not self._received:
                return None
            return self._received[-1]

    def init(self, context: TaskContext) -> None:
        self._context = context
        context.registry.register(context.task_name, self)
        self.on_init(context)
        context.registry.signal_initialized(context.task_name)

    def process(
        self,
        envelope: IncomingMessageEnvelope,
        collector: MessageCollector,
        coordinator: TaskCoordinator,
    ) -> None:
        registry = self.context.registry
        if not self._first_event_seen:
            self._first_event_seen = True
            registry.signal_first_event_processed(self.task_name)
        with self._lock:
            self._received.append(envelope.message)
        self.on_process(envelope, collector, coordinator)
        registry.signal_message_received(self.task_name)

    def on_init(self, context: TaskContext) -> None:
        """Hook run after registration, before the initialized signal."""

    def on_process(
        self,
        envelope: IncomingMessageEnvelope,
        collector: MessageCollector,
        coordinator: TaskCoordinator,
    ) -> None:
        """Hook run for every record, before the message-received signal."""


__all__ = ["HarnessStreamTask"]
