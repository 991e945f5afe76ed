# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Thread-based stream job runtime and its lifecycle controller."""

from streamtask_harness.job.harness_stream_task import HarnessStreamTask
from streamtask_harness.job.job_runner import (
    JobRunner,
    StreamJobFactory,
    ThreadJobFactory,
    load_object,
)
from streamtask_harness.job.service_job_lifecycle import (
    DEFAULT_LIFECYCLE_TIMEOUT_SECONDS,
    JobLifecycleController,
)
from streamtask_harness.job.stream_container import StreamContainer
from streamtask_harness.job.stream_task import (
    ClosableTask,
    IncomingMessageEnvelope,
    InitableTask,
    MessageCollector,
    OutgoingMessageEnvelope,
    StreamTask,
    TaskContext,
    TaskCoordinator,
)
from streamtask_harness.job.thread_job import ThreadJob

__all__: list[str] = [
    "ClosableTask",
    "DEFAULT_LIFECYCLE_TIMEOUT_SECONDS",
    "HarnessStreamTask",
    "IncomingMessageEnvelope",
    "InitableTask",
    "JobLifecycleController",
    "JobRunner",
    "MessageCollector",
    "OutgoingMessageEnvelope",
    "StreamContainer",
    "StreamJobFactory",
    "StreamTask",
    "TaskContext",
    "TaskCoordinator",
    "ThreadJob",
    "ThreadJobFactory",
    "load_object",
]
