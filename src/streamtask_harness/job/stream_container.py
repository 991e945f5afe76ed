# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stream container: the processing loop of a stream job.

The container owns one consumer over every input partition and one task
per partition number. Tasks are named ``Partition <n>`` and receive the
records of partition ``n`` of every input stream.

Run sequence:
    1. Wait (bounded) for metadata of every input topic and of the
       checkpoint topic
    2. Create and init one task per partition
    3. Restore start offsets: last checkpointed offset + 1, unless the
       stream resets offsets; otherwise ``offset.default``
    4. Poll, decode, process; commit every ``task.commit.ms`` and when a
       task asks for it
    5. On a task shutdown request: commit, report COMPLETING, stop
       On kill: stop without committing
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from streamtask_harness.checkpoint import CheckpointManager
from streamtask_harness.config import JobConfig
from streamtask_harness.enums import EnumOffsetDefault
from streamtask_harness.errors import (
    InfraUnavailableError,
    LifecycleTimeoutError,
    ModelHarnessErrorContext,
)
from streamtask_harness.job.stream_task import (
    ClosableTask,
    IncomingMessageEnvelope,
    InitableTask,
    MessageCollector,
    Payload,
    StreamTask,
    TaskContext,
    TaskCoordinator,
    decode_payload,
)
from streamtask_harness.models import (
    Checkpoint,
    ModelConsumedRecord,
    SystemStream,
    SystemStreamPartition,
)
from streamtask_harness.protocols import ProtocolBrokerClient, ProtocolRecordConsumer
from streamtask_harness.registry import TaskRegistry
from streamtask_harness.utils import sanitize_error_message

logger = logging.getLogger(__name__)

STRING_SERDE = "string"
DEFAULT_METADATA_TIMEOUT_SECONDS = 60.0
DEFAULT_POLL_TIMEOUT_SECONDS = 0.1
_METADATA_RETRY_SECONDS = 0.1


class _TaskInstance:
    def __init__(
        self,
        task_name: str,
        task: StreamTask,
        ssps: tuple[SystemStreamPartition, ...],
    ) -> None:
        self.task_name = task_name
        self.task = task
        self.ssps = ssps
        self.coordinator = TaskCoordinator()
        self.offsets: dict[SystemStreamPartition, str] = {}

    def checkpoint(self) -> Checkpoint:
        return Checkpoint(self.offsets)


class StreamContainer:
    """Runs the tasks of one job on the calling thread."""

    def __init__(
        self,
        config: JobConfig,
        client: ProtocolBrokerClient,
        registry: TaskRegistry,
        task_factory: Callable[[], StreamTask],
        checkpoint_manager: CheckpointManager | None = None,
        metadata_timeout_seconds: float = DEFAULT_METADATA_TIMEOUT_SECONDS,
        poll_timeout_seconds: float = DEFAULT_POLL_TIMEOUT_SECONDS,
    ) -> None:
        self._config = config
        self._client = client
        self._registry = registry
        self._task_factory = task_factory
        self._checkpoint_manager = checkpoint_manager
        self._metadata_timeout_seconds = metadata_timeout_seconds
        self._poll_timeout_seconds = poll_timeout_seconds
        self._collector = MessageCollector(client)
        self._tasks: dict[int, _TaskInstance] = {}

    @property
    def task_names(self) -> list[str]:
        return [instance.task_name for instance in self._tasks.values()]

    def run(self, kill_event: threading.Event, on_completing: Callable[[], None]) -> bool:
        """Process records until killed or a task requests shutdown.

        Returns:
            True if the container completed on a task's shutdown request,
            False if it was killed.

        Raises:
            LifecycleTimeoutError: If topic metadata never became available
            Exception: Whatever a task raised from init or process
        """
        inputs = self._config.task_inputs
        partition_counts = self._await_metadata(inputs, kill_event)
        if partition_counts is None:
            return False

        consumer = self._client.create_consumer(
            f"{self._config.job_name}-{self._config.job_id}"
        )
        try:
            self._create_tasks(inputs, partition_counts)
            self._restore_positions(consumer, inputs)
            return self._process_loop(consumer, kill_event, on_completing)
        finally:
            self._close_tasks()
            consumer.close()
            self._client.close()

    # -- startup -----------------------------------------------------------

    def _await_metadata(
        self, inputs: list[SystemStream], kill_event: threading.Event
    ) -> dict[str, int] | None:
        topics = [stream.stream for stream in inputs]
        if self._checkpoint_manager is not None:
            topics.append(self._checkpoint_manager.topic)

        counts: dict[str, int] = {}
        deadline = time.monotonic() + self._metadata_timeout_seconds
        for topic in topics:
            while topic not in counts:
                if kill_event.is_set():
                    return None
                try:
                    counts[topic] = self._client.describe_topic(
                        topic, timeout_seconds=_METADATA_RETRY_SECONDS * 5
                    )
                except Exception as e:
                    if time.monotonic() > deadline:
                        raise LifecycleTimeoutError(
                            f"Metadata for topic '{topic}' unavailable after "
                            f"{self._metadata_timeout_seconds}s",
                            context=ModelHarnessErrorContext(
                                component="stream_container",
                                operation="await_metadata",
                                target_name=topic,
                            ),
                        ) from e
                    logger.debug(
                        "Waiting for metadata of %s: %s",
                        topic,
                        sanitize_error_message(e),
                        extra={"topic": topic},
                    )
                    kill_event.wait(_METADATA_RETRY_SECONDS)
        return counts

    def _create_tasks(self, inputs: list[SystemStream], partition_counts: dict[str, int]) -> None:
        partitions = sorted(
            {p for stream in inputs for p in range(partition_counts[stream.stream])}
        )
        for partition in partitions:
            ssps = tuple(
                SystemStreamPartition(
                    system=stream.system, stream=stream.stream, partition=partition
                )
                for stream in inputs
                if partition < partition_counts[stream.stream]
            )
            task_name = f"Partition {partition}"
            task = self._task_factory()
            instance = _TaskInstance(task_name, task, ssps)
            self._tasks[partition] = instance
            if isinstance(task, InitableTask):
                task.init(
                    TaskContext(
                        task_name=task_name,
                        partition=partition,
                        system_stream_partitions=ssps,
                        config=self._config,
                        registry=self._registry,
                        store_dir=self._store_dir(task_name),
                    )
                )
            logger.info(
                "Task %s initialized", task_name, extra={"task_name": task_name}
            )

    def _store_dir(self, task_name: str) -> Path | None:
        base = self._config.logged_store_base_dir
        if not base:
            return None
        store_dir = Path(base) / self._config.job_name / task_name.replace(" ", "_")
        store_dir.mkdir(parents=True, exist_ok=True)
        return store_dir

    def _restore_positions(
        self, consumer: ProtocolRecordConsumer, inputs: list[SystemStream]
    ) -> None:
        by_topic: dict[str, list[int]] = {}
        for instance in self._tasks.values():
            for ssp in instance.ssps:
                by_topic.setdefault(ssp.stream, []).append(ssp.partition)
        for topic, partitions in by_topic.items():
            consumer.assign(topic, sorted(partitions))

        for instance in self._tasks.values():
            checkpoint = None
            if self._checkpoint_manager is not None:
                checkpoint = self._checkpoint_manager.read_last_checkpoint(instance.task_name)
            for ssp in instance.ssps:
                stream = ssp.system_stream
                restored = checkpoint.offset_for(ssp) if checkpoint is not None else None
                if restored is not None and not self._config.reset_offset(stream):
                    consumer.seek(ssp.stream, ssp.partition, int(restored) + 1)
                    instance.offsets[ssp] = restored
                    start = f"checkpoint {restored}"
                elif self._config.offset_default(stream) == EnumOffsetDefault.OLDEST:
                    consumer.seek_to_beginning(ssp.stream, ssp.partition)
                    start = "oldest"
                else:
                    consumer.seek_to_end(ssp.stream, ssp.partition)
                    start = "upcoming"
                logger.debug(
                    "Starting %s from %s",
                    ssp,
                    start,
                    extra={"task_name": instance.task_name},
                )

    # -- processing --------------------------------------------------------

    def _process_loop(
        self,
        consumer: ProtocolRecordConsumer,
        kill_event: threading.Event,
        on_completing: Callable[[], None],
    ) -> bool:
        commit_ms = self._config.commit_ms
        next_commit = time.monotonic() + commit_ms / 1000.0

        while not kill_event.is_set():
            for record in consumer.poll(self._poll_timeout_seconds):
                if kill_event.is_set():
                    return False
                self._process_record(record)

            if commit_ms > 0 and time.monotonic() >= next_commit:
                self._commit_all()
                next_commit = time.monotonic() + commit_ms / 1000.0

            for instance in self._tasks.values():
                if instance.coordinator.take_commit_request():
                    self._commit(instance)

            if any(i.coordinator.shutdown_requested for i in self._tasks.values()):
                on_completing()
                if kill_event.is_set():
                    return False
                self._commit_all()
                logger.info("Shutdown requested by task, container completing")
                return True
        return False

    def _process_record(self, record: ModelConsumedRecord) -> None:
        instance = self._tasks[record.partition]
        ssp = next(s for s in instance.ssps if s.stream == record.topic)
        envelope = IncomingMessageEnvelope(
            system_stream_partition=ssp,
            offset=str(record.offset),
            key=self._decode(ssp.system, record.key),
            message=self._decode(ssp.system, record.value),
        )
        instance.task.process(envelope, self._collector, instance.coordinator)
        instance.offsets[ssp] = envelope.offset

    def _decode(self, system: str, payload: bytes | None) -> Payload:
        if payload is None or self._config.msg_serde(system) != STRING_SERDE:
            return payload
        return decode_payload(payload)

    def _commit_all(self) -> None:
        for instance in self._tasks.values():
            self._commit(instance)

    def _commit(self, instance: _TaskInstance) -> None:
        if self._checkpoint_manager is None or not instance.offsets:
            return
        try:
            self._checkpoint_manager.write_checkpoint(instance.task_name, instance.checkpoint())
        except InfraUnavailableError as e:
            logger.warning(
                "Checkpoint commit failed for %s: %s",
                instance.task_name,
                sanitize_error_message(e),
                extra={"task_name": instance.task_name},
            )

    def _close_tasks(self) -> None:
        for instance in self._tasks.values():
            if isinstance(instance.task, ClosableTask):
                instance.task.close()


__all__ = ["StreamContainer"]
