# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Checkpoint Manager backed by a single-partition topic.

Each commit of a task appends one record to the checkpoint topic, keyed by
the task name and holding the encoded Checkpoint. Restoring replays the
topic from the beginning and keeps the newest record of the task.

Topic naming:
    ``__checkpoint_<job.name>_<job.id>`` unless ``task.checkpoint.topic`` is set.
"""

from __future__ import annotations

import logging
import time
import uuid

from streamtask_harness.config import TASK_CHECKPOINT_SYSTEM, JobConfig
from streamtask_harness.errors import (
    HarnessConfigurationError,
    InfraUnavailableError,
    ModelHarnessErrorContext,
    UnknownTopicError,
)
from streamtask_harness.models import Checkpoint, ModelRecordAck
from streamtask_harness.protocols import ProtocolBrokerClient
from streamtask_harness.serializers import CheckpointSerde
from streamtask_harness.topics import TopicProvisioner

logger = logging.getLogger(__name__)

CHECKPOINT_PARTITION = 0
DEFAULT_READ_TIMEOUT_SECONDS = 10.0
_READ_POLL_SECONDS = 0.1


class CheckpointManager:
    """Writes and restores task checkpoints."""

    def __init__(
        self,
        client: ProtocolBrokerClient,
        topic: str,
        system: str,
        replication_factor: int = 1,
        provisioner: TopicProvisioner | None = None,
        read_timeout_seconds: float = DEFAULT_READ_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._topic = topic
        self._system = system
        self._replication_factor = replication_factor
        self._provisioner = provisioner or TopicProvisioner(client)
        self._read_timeout_seconds = read_timeout_seconds
        self._serde = CheckpointSerde()

    @classmethod
    def from_config(
        cls,
        config: JobConfig,
        client: ProtocolBrokerClient,
        provisioner: TopicProvisioner | None = None,
    ) -> CheckpointManager:
        """Build the manager described by the job configuration.

        Raises:
            HarnessConfigurationError: If ``task.checkpoint.system`` is not set
        """
        system = config.checkpoint_system
        if system is None:
            raise HarnessConfigurationError(
                "No checkpoint manager factory configured",
                context=ModelHarnessErrorContext(
                    component="checkpoint_manager",
                    operation="from_config",
                    target_name=TASK_CHECKPOINT_SYSTEM,
                ),
            )
        return cls(
            client,
            topic=config.checkpoint_topic,
            system=system,
            replication_factor=config.checkpoint_replication_factor,
            provisioner=provisioner,
        )

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def system(self) -> str:
        return self._system

    def create_resources(self) -> None:
        """Create the checkpoint topic and wait until it has one partition."""
        self._provisioner.create_topic(self._topic, 1, self._replication_factor)
        self._provisioner.validate(self._topic, 1)

    def write_checkpoint(self, task_name: str, checkpoint: Checkpoint) -> ModelRecordAck:
        ack = self._client.produce(
            self._topic,
            self._serde.to_bytes(checkpoint),
            key=task_name.encode("utf-8"),
            partition=CHECKPOINT_PARTITION,
        )
        logger.debug(
            "Checkpoint written for %s at offset %d",
            task_name,
            ack.offset,
            extra={"task_name": task_name, "topic": self._topic},
        )
        return ack

    def read_last_checkpoint(self, task_name: str) -> Checkpoint | None:
        """Return the newest checkpoint of ``task_name``, or None if it has none.

        Raises:
            InfraUnavailableError: If the topic could not be replayed in time
            CheckpointDecodeError: If the newest checkpoint is malformed
        """
        key = task_name.encode("utf-8")
        consumer = self._client.create_consumer(f"{self._topic}-restore-{uuid.uuid4().hex}")
        try:
            try:
                end = consumer.end_offset(self._topic, CHECKPOINT_PARTITION)
            except UnknownTopicError:
                return None
            if end == 0:
                return None

            consumer.assign(self._topic, [CHECKPOINT_PARTITION])
            consumer.seek_to_beginning(self._topic, CHECKPOINT_PARTITION)

            latest: bytes | None = None
            next_offset = 0
            deadline = time.monotonic() + self._read_timeout_seconds
            while next_offset < end:
                if time.monotonic() > deadline:
                    raise InfraUnavailableError(
                        f"Replaying checkpoint topic '{self._topic}' stalled at offset "
                        f"{next_offset} of {end}",
                        context=ModelHarnessErrorContext(
                            component="checkpoint_manager",
                            operation="read_last_checkpoint",
                            target_name=self._topic,
                        ),
                    )
                for record in consumer.poll(_READ_POLL_SECONDS):
                    next_offset = max(next_offset, record.offset + 1)
                    if record.key == key and record.offset < end:
                        latest = record.value
        finally:
            consumer.close()

        checkpoint = self._serde.from_bytes(latest)
        logger.debug(
            "Restored checkpoint for %s: %s",
            task_name,
            checkpoint,
            extra={"task_name": task_name, "topic": self._topic},
        )
        return checkpoint


__all__ = ["CheckpointManager"]
