# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for StreamContainer against the in-memory cluster.

Covers:
- One task per partition, named ``Partition <n>``
- String decoding of payloads, malformed UTF-8 and tombstones
- Kill without commit, completion with commit
- Checkpoint restore and offset reset across restarts
- Metadata timeout
"""

from __future__ import annotations

from pathlib import Path

import pytest

from streamtask_harness.checkpoint import CheckpointManager
from streamtask_harness.cluster import ClusterBootstrapManager, InMemoryClusterBackend
from streamtask_harness.config import JobConfig
from streamtask_harness.errors import ClusterStateError, LifecycleTimeoutError
from streamtask_harness.job import StreamContainer
from streamtask_harness.registry import TaskRegistry
from tests.helpers.stream_tasks import (
    SHUTDOWN_MESSAGE,
    CommittingTask,
    EchoTask,
    ForwardingTask,
)
from tests.helpers.util_container import ContainerThread, make_job_config, provision

pytestmark = pytest.mark.unit

TIMEOUT = 5.0


def make_container(
    cluster: ClusterBootstrapManager,
    backend: InMemoryClusterBackend,
    registry: TaskRegistry,
    config: JobConfig,
    task_factory: type = EchoTask,
    with_checkpoints: bool = False,
) -> StreamContainer:
    client = backend.create_client(cluster.handle.bootstrap_servers)
    checkpoint_manager = None
    if with_checkpoints:
        checkpoint_manager = CheckpointManager.from_config(
            config, client, provision(cluster, config.checkpoint_topic)
        )
    return StreamContainer(
        config,
        client,
        registry,
        task_factory,
        checkpoint_manager=checkpoint_manager,
        metadata_timeout_seconds=TIMEOUT,
        poll_timeout_seconds=0.02,
    )


class TestContainerTasks:
    """Task creation and record delivery."""

    def test_one_task_per_partition(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        provision(running_cluster, "input", partitions=2)
        config = make_job_config(running_cluster)
        runner = ContainerThread(make_container(running_cluster, backend, registry, config)).start()

        tasks = registry.await_all_tasks_registered(2, TIMEOUT)
        runner.kill()
        runner.join(TIMEOUT)

        assert sorted(tasks) == ["Partition 0", "Partition 1"]
        assert runner.result is False
        assert runner.error is None

    def test_records_are_decoded(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        client = provision(running_cluster, "input").client
        client.produce("input", b"hello")
        client.produce("input", None)
        client.produce("input", SHUTDOWN_MESSAGE.encode())
        config = make_job_config(running_cluster)
        runner = ContainerThread(
            make_container(running_cluster, backend, registry, config, CommittingTask)
        ).start()

        runner.join(TIMEOUT)

        task = registry.tasks["Partition 0"]
        assert task.received == ["hello", None, SHUTDOWN_MESSAGE]
        assert runner.result is True
        assert runner.completing.is_set()

    def test_invalid_utf8_is_replaced(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        client = provision(running_cluster, "input").client
        client.produce("input", b"bad\xff")
        client.produce("input", SHUTDOWN_MESSAGE.encode())
        config = make_job_config(running_cluster)
        runner = ContainerThread(
            make_container(running_cluster, backend, registry, config, CommittingTask)
        ).start()

        runner.join(TIMEOUT)

        assert registry.tasks["Partition 0"].received == ["bad\ufffd", SHUTDOWN_MESSAGE]
        assert runner.error is None
        assert runner.result is True

    def test_raw_bytes_without_string_serde(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        client = provision(running_cluster, "input").client
        client.produce("input", b"\x00\x01")
        config = make_job_config(running_cluster, {"systems.kafka.msg.serde": "json"})
        runner = ContainerThread(make_container(running_cluster, backend, registry, config)).start()

        registry.await_all_tasks_registered(1, TIMEOUT)
        registry.await_message_received("Partition 0", TIMEOUT)
        runner.kill()
        runner.join(TIMEOUT)

        assert registry.tasks["Partition 0"].received == [b"\x00\x01"]

    def test_task_output_is_published(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        client = provision(running_cluster, "input").client
        provision(running_cluster, "output")
        client.produce("input", b"hello")
        config = make_job_config(running_cluster)
        runner = ContainerThread(
            make_container(running_cluster, backend, registry, config, ForwardingTask)
        ).start()

        registry.await_all_tasks_registered(1, TIMEOUT)
        registry.await_message_received("Partition 0", TIMEOUT)
        runner.kill()
        runner.join(TIMEOUT)

        consumer = client.create_consumer("output-reader")
        consumer.subscribe("output")
        assert [r.value for r in consumer.poll(1.0)] == [b"HELLO"]

    def test_store_dir_per_task(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
        tmp_path: Path,
    ) -> None:
        provision(running_cluster, "input")
        config = make_job_config(
            running_cluster, {"job.logged.store.base.dir": str(tmp_path / "stores")}
        )
        runner = ContainerThread(make_container(running_cluster, backend, registry, config)).start()

        task = registry.await_all_tasks_registered(1, TIMEOUT)["Partition 0"]
        runner.kill()
        runner.join(TIMEOUT)

        expected = tmp_path / "stores" / config.job_name / "Partition_0"
        assert task.context.store_dir == expected
        assert expected.is_dir()

    def test_client_closed_after_run(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        provision(running_cluster, "input")
        client = backend.create_client(running_cluster.handle.bootstrap_servers)
        container = StreamContainer(
            make_job_config(running_cluster), client, registry, EchoTask, poll_timeout_seconds=0.02
        )
        runner = ContainerThread(container).start()
        registry.await_all_tasks_registered(1, TIMEOUT)

        runner.kill()
        runner.join(TIMEOUT)

        with pytest.raises(ClusterStateError):
            client.produce("input", b"late")

    def test_metadata_timeout(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        config = make_job_config(running_cluster, {"task.inputs": "kafka.missing"})
        container = StreamContainer(
            config,
            backend.create_client(running_cluster.handle.bootstrap_servers),
            registry,
            EchoTask,
            metadata_timeout_seconds=0.2,
        )
        runner = ContainerThread(container).start()

        runner.join(TIMEOUT)

        assert isinstance(runner.error, LifecycleTimeoutError)
        assert "missing" in str(runner.error)


class TestContainerCheckpoints:
    """Checkpoint writing and restore across container runs."""

    def test_restart_resumes_after_checkpoint(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
    ) -> None:
        client = provision(running_cluster, "input").client
        config = make_job_config(running_cluster, {"task.checkpoint.replication.factor": "3"})
        for value in (b"a", b"b", SHUTDOWN_MESSAGE.encode()):
            client.produce("input", value)

        first_registry = TaskRegistry(TIMEOUT)
        first = ContainerThread(
            make_container(
                running_cluster, backend, first_registry, config, CommittingTask, True
            )
        ).start()
        first.join(TIMEOUT)
        assert first.result is True

        for value in (b"c", SHUTDOWN_MESSAGE.encode()):
            client.produce("input", value)
        second_registry = TaskRegistry(TIMEOUT)
        second = ContainerThread(
            make_container(
                running_cluster, backend, second_registry, config, CommittingTask, True
            )
        ).start()
        second.join(TIMEOUT)

        assert second_registry.tasks["Partition 0"].received == ["c", SHUTDOWN_MESSAGE]

    def test_reset_offset_ignores_checkpoint(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
    ) -> None:
        client = provision(running_cluster, "input").client
        config = make_job_config(running_cluster, {"task.checkpoint.replication.factor": "3"})
        for value in (b"a", SHUTDOWN_MESSAGE.encode()):
            client.produce("input", value)
        first = ContainerThread(
            make_container(
                running_cluster, backend, TaskRegistry(TIMEOUT), config, CommittingTask, True
            )
        ).start()
        first.join(TIMEOUT)

        reset_config = config.with_overrides(
            {"systems.kafka.streams.input.reset.offset": "true"}
        )
        registry = TaskRegistry(TIMEOUT)
        second = ContainerThread(
            make_container(
                running_cluster, backend, registry, reset_config, CommittingTask, True
            )
        ).start()
        second.join(TIMEOUT)

        assert registry.tasks["Partition 0"].received == ["a", SHUTDOWN_MESSAGE]

    def test_kill_does_not_commit(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        client = provision(running_cluster, "input").client
        client.produce("input", b"a")
        config = make_job_config(running_cluster, {"task.checkpoint.replication.factor": "3"})
        container = make_container(running_cluster, backend, registry, config, EchoTask, True)
        runner = ContainerThread(container).start()

        registry.await_all_tasks_registered(1, TIMEOUT)
        registry.await_message_received("Partition 0", TIMEOUT)
        runner.kill()
        runner.join(TIMEOUT)

        manager = CheckpointManager.from_config(config, client)
        assert manager.read_last_checkpoint("Partition 0") is None
