# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for JobRunner, ThreadJobFactory and load_object."""

from __future__ import annotations

import pytest

from streamtask_harness.cluster import ClusterBootstrapManager, InMemoryClusterBackend
from streamtask_harness.config import DEFAULT_JOB_CONFIG, JobConfig
from streamtask_harness.enums import EnumApplicationStatus
from streamtask_harness.errors import HarnessConfigurationError
from streamtask_harness.job import JobRunner, ThreadJobFactory
from streamtask_harness.job.job_runner import load_object
from streamtask_harness.registry import TaskRegistry
from tests.helpers.stream_tasks import EchoTask
from tests.helpers.util_container import make_job_config, provision

pytestmark = pytest.mark.unit

TIMEOUT = 5.0


class TestLoadObject:
    """Dotted path resolution."""

    def test_loads_class(self) -> None:
        assert load_object("tests.helpers.stream_tasks.EchoTask", "task.class") is EchoTask

    def test_not_dotted(self) -> None:
        with pytest.raises(HarnessConfigurationError, match="dotted path"):
            load_object("EchoTask", "task.class")

    def test_missing_module(self) -> None:
        with pytest.raises(HarnessConfigurationError, match="task.class"):
            load_object("no_such_module.EchoTask", "task.class")

    def test_missing_attribute(self) -> None:
        with pytest.raises(HarnessConfigurationError):
            load_object("tests.helpers.stream_tasks.NoSuchTask", "task.class")


class TestJobRunner:
    """Building and submitting jobs."""

    def test_default_factory(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        runner = JobRunner(make_job_config(running_cluster), backend.create_client, registry)

        assert isinstance(runner.build_job_factory(), ThreadJobFactory)

    def test_run_with_task_class(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        provision(running_cluster, "input")
        provision(running_cluster, "__checkpoint_stream-task-harness_1")
        config = make_job_config(
            running_cluster, {"task.class": "tests.helpers.stream_tasks.EchoTask"}
        )

        job = JobRunner(
            config, backend.create_client, registry, metadata_timeout_seconds=TIMEOUT
        ).run()
        try:
            assert job.name == "stream-task-harness-1"
            assert job.wait_for_status(EnumApplicationStatus.RUNNING, TIMEOUT) == (
                EnumApplicationStatus.RUNNING
            )
            tasks = registry.await_all_tasks_registered(1, TIMEOUT)
            assert isinstance(tasks["Partition 0"], EchoTask)
        finally:
            job.kill()
            job.wait_for_finish(TIMEOUT)

    def test_missing_task_class(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        runner = JobRunner(make_job_config(running_cluster), backend.create_client, registry)

        with pytest.raises(HarnessConfigurationError, match="task.class"):
            runner.run()

    def test_unknown_job_factory(
        self,
        running_cluster: ClusterBootstrapManager,
        backend: InMemoryClusterBackend,
        registry: TaskRegistry,
    ) -> None:
        config = make_job_config(running_cluster, {"job.factory.class": "nowhere.JobFactory"})

        with pytest.raises(HarnessConfigurationError, match="job.factory.class"):
            JobRunner(config, backend.create_client, registry, EchoTask).run()

    def test_missing_bootstrap_servers(self, backend: InMemoryClusterBackend) -> None:
        runner = JobRunner(
            JobConfig(DEFAULT_JOB_CONFIG), backend.create_client, TaskRegistry(), EchoTask
        )

        with pytest.raises(HarnessConfigurationError, match="bootstrap.servers"):
            runner.run()
