# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocol definitions for broker clients.

The harness, the topic provisioner and the worker runtime talk to brokers
only through ProtocolBrokerClient and ProtocolRecordConsumer. The in-memory
backend and the kafka-python backed client both satisfy these contracts, so
every component can be tested without a broker process.

Error Handling:
    Implementations translate their native errors into harness errors:
    - TopicAlreadyExistsError: create_topic on an existing topic
    - UnknownTopicError: topic metadata not (yet) visible
    - InfraUnavailableError: no broker reachable, produce not acknowledged

Example Usage:
    ```python
    client = cluster.create_admin_client()
    client.create_topic("input", partitions=1, replication_factor=3)
    ack = client.produce("input", b"hello")
    consumer = client.create_consumer(group_id="reader")
    consumer.subscribe("input")
    records = consumer.poll(timeout_seconds=10.0)
    ```
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from streamtask_harness.models import ModelConsumedRecord, ModelRecordAck

__all__ = [
    "ProtocolBrokerClient",
    "ProtocolRecordConsumer",
]


@runtime_checkable
class ProtocolRecordConsumer(Protocol):
    """Consumer bound to one consumer group.

    ``subscribe`` resumes from the group's committed offset (earliest when
    nothing is committed) and commits consumed offsets automatically.
    ``assign`` takes manual control of partitions; positions then only
    move through ``seek*`` and ``poll``.
    """

    def subscribe(self, topic: str) -> None: ...

    def assign(self, topic: str, partitions: Sequence[int]) -> None: ...

    def seek(self, topic: str, partition: int, offset: int) -> None: ...

    def seek_to_beginning(self, topic: str, partition: int) -> None: ...

    def seek_to_end(self, topic: str, partition: int) -> None: ...

    def end_offset(self, topic: str, partition: int) -> int:
        """Offset the next produced record of the partition will receive."""
        ...

    def poll(self, timeout_seconds: float) -> list[ModelConsumedRecord]:
        """Return available records, waiting up to ``timeout_seconds`` for one."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class ProtocolBrokerClient(Protocol):
    """Admin, producer and consumer factory for one cluster."""

    def create_topic(self, name: str, partitions: int, replication_factor: int) -> None:
        """Issue a create request without waiting for metadata propagation.

        Raises:
            TopicAlreadyExistsError: If the topic already exists
        """
        ...

    def describe_topic(self, name: str, timeout_seconds: float) -> int:
        """Return the partition count currently visible for ``name``.

        Raises:
            UnknownTopicError: If metadata for the topic is not available
            TimeoutError: If the request did not complete in time
        """
        ...

    def produce(
        self,
        topic: str,
        value: bytes | None,
        key: bytes | None = None,
        partition: int | None = None,
        timeout_seconds: float = 30.0,
    ) -> ModelRecordAck:
        """Publish one record and block until the broker acknowledges it."""
        ...

    def create_consumer(self, group_id: str) -> ProtocolRecordConsumer: ...

    def close(self) -> None: ...
