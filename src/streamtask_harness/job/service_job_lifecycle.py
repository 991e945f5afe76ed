# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Lifecycle Controller.

Launches a stream job against the ephemeral cluster, provisions the
resources it needs, and stops it deterministically.

start():
    1. Launch the job through JobRunner (returns immediately)
    2. Ensure every input topic exists with the expected partition count
    3. Create and validate the checkpoint topic
    4. Ensure the changelog topic of every store, one partition per task
    5. Wait for RUNNING

stop():
    1. Wait until every registered task processed its first event
    2. Kill the job
    3. Require UNSUCCESSFUL_FINISH, the only outcome of a kill

Nothing in this controller is retried: a timeout or an unexpected status is
a test failure. Provisioning failures kill the launched job before the
error propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from streamtask_harness.checkpoint import CheckpointManager
from streamtask_harness.config import JobConfig
from streamtask_harness.enums import EnumApplicationStatus
from streamtask_harness.errors import (
    LifecycleStatusError,
    LifecycleTimeoutError,
    ModelHarnessErrorContext,
)
from streamtask_harness.job.job_runner import ClientFactory, JobRunner, TaskFactory
from streamtask_harness.job.thread_job import ThreadJob
from streamtask_harness.registry import TaskRegistry
from streamtask_harness.topics import TopicProvisioner
from streamtask_harness.utils import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_LIFECYCLE_TIMEOUT_SECONDS = 60.0


class JobLifecycleController:
    """Starts and stops stream jobs for the harness.

    Attributes:
        input_partition_count: Partitions every input topic must have
        replication_factor: Replication factor of created input topics
        timeout_seconds: Budget of every status and gate wait
    """

    def __init__(
        self,
        provisioner: TopicProvisioner,
        client_factory: ClientFactory,
        registry: TaskRegistry,
        input_partition_count: int = 1,
        replication_factor: int = 1,
        timeout_seconds: float = DEFAULT_LIFECYCLE_TIMEOUT_SECONDS,
        task_factory: TaskFactory | None = None,
    ) -> None:
        self._provisioner = provisioner
        self._client_factory = client_factory
        self._registry = registry
        self.input_partition_count = input_partition_count
        self.replication_factor = replication_factor
        self.timeout_seconds = timeout_seconds
        self._task_factory = task_factory

    def start(self, config: JobConfig | Mapping[str, str]) -> ThreadJob:
        """Launch the job, provision its topics and wait for RUNNING.

        Raises:
            LifecycleTimeoutError: If RUNNING was not reached in time
            LifecycleStatusError: If the job finished instead of running
            TopicValidationError: If a topic did not converge
            HarnessConfigurationError: If no checkpoint system is configured
        """
        job_config = config if isinstance(config, JobConfig) else JobConfig(config)
        runner = JobRunner(
            job_config,
            self._client_factory,
            self._registry,
            self._task_factory,
            metadata_timeout_seconds=self.timeout_seconds,
        )
        job = runner.run()

        try:
            for stream in job_config.task_inputs:
                self._provisioner.ensure_topic(
                    stream.stream, self.input_partition_count, self.replication_factor
                )
            CheckpointManager.from_config(
                job_config, self._provisioner.client, self._provisioner
            ).create_resources()
            self._create_changelogs(job_config)
        except Exception as e:
            logger.warning(
                "Provisioning for job %s failed, killing it: %s",
                job.name,
                sanitize_error_message(e),
                extra={"job_name": job.name},
            )
            job.kill()
            raise

        observed = job.wait_for_status(EnumApplicationStatus.RUNNING, self.timeout_seconds)
        if observed != EnumApplicationStatus.RUNNING:
            self._raise_unexpected(job, EnumApplicationStatus.RUNNING, observed, "start")
        logger.info("Job %s is running", job.name, extra={"job_name": job.name})
        return job

    def stop(self, job: ThreadJob) -> EnumApplicationStatus:
        """Kill the job once every task processed its first event.

        Raises:
            LifecycleTimeoutError: If a task never processed an event or the
                job did not finish in time
            LifecycleStatusError: If the job finished with any status other
                than UNSUCCESSFUL_FINISH
        """
        for task_name in self._registry.tasks:
            self._registry.await_first_event_processed(task_name, self.timeout_seconds)

        job.kill()
        observed = job.wait_for_finish(self.timeout_seconds)
        if observed != EnumApplicationStatus.UNSUCCESSFUL_FINISH:
            self._raise_unexpected(
                job, EnumApplicationStatus.UNSUCCESSFUL_FINISH, observed, "stop"
            )
        logger.info("Job %s stopped", job.name, extra={"job_name": job.name})
        return observed

    def _create_changelogs(self, job_config: JobConfig) -> None:
        # One changelog partition per task, one task per input partition.
        for store, stream in job_config.store_changelogs.items():
            self._provisioner.ensure_topic(
                stream.stream,
                self.input_partition_count,
                job_config.changelog_replication_factor(store, self.replication_factor),
            )
            logger.debug(
                "Changelog %s of store %s provisioned",
                stream,
                store,
                extra={"store": store, "topic": stream.stream},
            )

    def _raise_unexpected(
        self,
        job: ThreadJob,
        expected: EnumApplicationStatus,
        observed: EnumApplicationStatus,
        operation: str,
    ) -> None:
        context = ModelHarnessErrorContext(
            component="job_lifecycle", operation=operation, target_name=job.name
        )
        if not observed.is_terminal and observed != expected:
            raise LifecycleTimeoutError(
                f"Job {job.name} did not reach {expected.value} within "
                f"{self.timeout_seconds}s (last status {observed.value})",
                context=context,
                expected=expected.value,
                observed=observed.value,
            )
        raise LifecycleStatusError(
            f"Job {job.name} expected status {expected.value} but observed {observed.value}",
            context=context,
            expected=expected.value,
            observed=observed.value,
            failure=sanitize_error_message(job.failure) if job.failure else None,
        )


__all__ = ["DEFAULT_LIFECYCLE_TIMEOUT_SECONDS", "JobLifecycleController"]
