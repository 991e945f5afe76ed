# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stream task contracts and the objects handed to tasks.

A stream task is user code run by the job container, one instance per
input partition. The container calls ``init(context)`` once, then
``process(envelope, collector, coordinator)`` for every record, and
``close()`` when the task has one and the container stops.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from streamtask_harness.config import JobConfig
from streamtask_harness.models import ModelRecordAck, SystemStream, SystemStreamPartition
from streamtask_harness.protocols import ProtocolBrokerClient

if TYPE_CHECKING:
    from streamtask_harness.registry import TaskRegistry

__all__ = [
    "ClosableTask",
    "IncomingMessageEnvelope",
    "InitableTask",
    "MessageCollector",
    "OutgoingMessageEnvelope",
    "StreamTask",
    "TaskContext",
    "TaskCoordinator",
]

Payload = str | bytes | None


@dataclass(frozen=True)
class IncomingMessageEnvelope:
    """A record delivered to a task.

    ``message`` is None for tombstones. With the string serde configured
    for the system, key and message are decoded to ``str``.
    """

    system_stream_partition: SystemStreamPartition
    offset: str
    key: Payload
    message: Payload


@dataclass(frozen=True)
class OutgoingMessageEnvelope:
    """A record a task wants to publish."""

    system_stream: SystemStream
    message: Payload
    key: Payload = None
    partition: int | None = None


@dataclass(frozen=True)
class TaskContext:
    """Everything a task learns about its environment at init."""

    task_name: str
    partition: int
    system_stream_partitions: tuple[SystemStreamPartition, ...]
    config: JobConfig
    registry: TaskRegistry
    store_dir: Path | None = None


def encode_payload(payload: Payload) -> bytes | None:
    if payload is None or isinstance(payload, bytes):
        return payload
    return payload.encode("utf-8")


def decode_payload(payload: bytes | None) -> str | None:
    """Decode UTF-8, replacing malformed bytes."""
    if payload is None:
        return None
    return payload.decode("utf-8", errors="replace")


class MessageCollector:
    """Publishes OutgoingMessageEnvelopes through the job's broker client."""

    def __init__(self, client: ProtocolBrokerClient) -> None:
        self._client = client

    def send(self, envelope: OutgoingMessageEnvelope) -> ModelRecordAck:
        return self._client.produce(
            envelope.system_stream.stream,
            encode_payload(envelope.message),
            key=encode_payload(envelope.key),
            partition=envelope.partition,
        )


class TaskCoordinator:
    """Lets a task ask the container to commit or to shut down."""

    def __init__(self) -> None:
        self._commit_requested = threading.Event()
        self._shutdown_requested = threading.Event()

    def commit(self) -> None:
        self._commit_requested.set()

    def shutdown(self) -> None:
        self._shutdown_requested.set()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested.is_set()

    def take_commit_request(self) -> bool:
        """Return True once per commit() call burst, clearing the request."""
        if self._commit_requested.is_set():
            self._commit_requested.clear()
            return True
        return False


@runtime_checkable
class StreamTask(Protocol):
    def process(
        self,
        envelope: IncomingMessageEnvelope,
        collector: MessageCollector,
        coordinator: TaskCoordinator,
    ) -> None: ...


@runtime_checkable
class InitableTask(Protocol):
    def init(self, context: TaskContext) -> None: ...


@runtime_checkable
class ClosableTask(Protocol):
    def close(self) -> None: ...
