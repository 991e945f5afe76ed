# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job runner and job factories.

JobRunner resolves the factory named by ``job.factory.class``, asks it for a
job and submits it. ThreadJobFactory builds a ThreadJob wired to the
cluster named by ``systems.<system>.producer.bootstrap.servers``.

Task classes are resolved from ``task.class`` unless a task factory is
passed explicitly, which is how tests hand in local task classes.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable, Mapping
from typing import Protocol

from streamtask_harness.checkpoint import CheckpointManager
from streamtask_harness.config import (
    JOB_FACTORY_CLASS,
    TASK_CLASS,
    JobConfig,
    producer_bootstrap_key,
)
from streamtask_harness.errors import HarnessConfigurationError, ModelHarnessErrorContext
from streamtask_harness.job.stream_container import (
    DEFAULT_METADATA_TIMEOUT_SECONDS,
    StreamContainer,
)
from streamtask_harness.job.stream_task import StreamTask
from streamtask_harness.job.thread_job import ThreadJob
from streamtask_harness.protocols import ProtocolBrokerClient
from streamtask_harness.registry import TaskRegistry

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], ProtocolBrokerClient]
TaskFactory = Callable[[], StreamTask]


def load_object(dotted_path: str, key: str) -> object:
    """Import ``package.module.Name`` and return ``Name``.

    Raises:
        HarnessConfigurationError: If the path cannot be imported
    """
    module_name, _, attribute = dotted_path.rpartition(".")
    context = ModelHarnessErrorContext(
        component="job_runner", operation="load_object", target_name=key
    )
    if not module_name:
        raise HarnessConfigurationError(
            f"'{key}' must be a dotted path, got '{dotted_path}'", context=context
        )
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise HarnessConfigurationError(
            f"Cannot load '{dotted_path}' configured by '{key}'", context=context
        ) from e


class StreamJobFactory(Protocol):
    def get_job(
        self,
        config: JobConfig,
        client_factory: ClientFactory,
        registry: TaskRegistry,
        task_factory: TaskFactory | None = None,
    ) -> ThreadJob: ...


class ThreadJobFactory:
    """Builds a ThreadJob running every task of the job on one thread."""

    def __init__(
        self, metadata_timeout_seconds: float = DEFAULT_METADATA_TIMEOUT_SECONDS
    ) -> None:
        self._metadata_timeout_seconds = metadata_timeout_seconds

    def get_job(
        self,
        config: JobConfig,
        client_factory: ClientFactory,
        registry: TaskRegistry,
        task_factory: TaskFactory | None = None,
    ) -> ThreadJob:
        system = config.task_inputs[0].system
        client = client_factory(config.require(producer_bootstrap_key(system)))

        checkpoint_manager = None
        if config.checkpoint_system is not None:
            checkpoint_manager = CheckpointManager.from_config(config, client)

        if task_factory is None:
            task_class = load_object(config.require(TASK_CLASS), TASK_CLASS)
            if not callable(task_class):
                raise HarnessConfigurationError(
                    f"'{TASK_CLASS}' does not name a class",
                    context=ModelHarnessErrorContext(
                        component="job_runner", operation="get_job", target_name=TASK_CLASS
                    ),
                )
            task_factory = task_class

        container = StreamContainer(
            config,
            client,
            registry,
            task_factory,
            checkpoint_manager=checkpoint_manager,
            metadata_timeout_seconds=self._metadata_timeout_seconds,
        )
        return ThreadJob(f"{config.job_name}-{config.job_id}", container)


class JobRunner:
    """Builds and submits the job described by a job configuration.

    Example:
        >>> runner = JobRunner(config, backend.create_client, registry, EchoTask)
        >>> job = runner.run()
        >>> job.wait_for_status(EnumApplicationStatus.RUNNING, timeout=60)
    """

    def __init__(
        self,
        config: JobConfig | Mapping[str, str],
        client_factory: ClientFactory,
        registry: TaskRegistry,
        task_factory: TaskFactory | None = None,
        metadata_timeout_seconds: float = DEFAULT_METADATA_TIMEOUT_SECONDS,
    ) -> None:
        self.config = config if isinstance(config, JobConfig) else JobConfig(config)
        self._client_factory = client_factory
        self._registry = registry
        self._task_factory = task_factory
        self._metadata_timeout_seconds = metadata_timeout_seconds

    def build_job_factory(self) -> StreamJobFactory:
        factory_path = self.config.get(JOB_FACTORY_CLASS)
        if not factory_path:
            return ThreadJobFactory(self._metadata_timeout_seconds)
        factory_class = load_object(factory_path, JOB_FACTORY_CLASS)
        if factory_class is ThreadJobFactory:
            return ThreadJobFactory(self._metadata_timeout_seconds)
        if not callable(factory_class):
            raise HarnessConfigurationError(
                f"'{JOB_FACTORY_CLASS}' does not name a class",
                context=ModelHarnessErrorContext(
                    component="job_runner",
                    operation="build_job_factory",
                    target_name=JOB_FACTORY_CLASS,
                ),
            )
        factory: StreamJobFactory = factory_class()
        return factory

    def run(self) -> ThreadJob:
        """Build the job and submit it; returns without waiting for RUNNING."""
        factory = self.build_job_factory()
        job = factory.get_job(
            self.config, self._client_factory, self._registry, self._task_factory
        )
        logger.info(
            "Launching job %s",
            job.name,
            extra={"job_name": job.name, "factory": type(factory).__name__},
        )
        return job.submit()


__all__ = ["JobRunner", "StreamJobFactory", "ThreadJobFactory", "load_object"]
