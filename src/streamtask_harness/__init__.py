# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stream Task Harness.

Ephemeral-cluster harness for integration tests of stream processing
tasks: it stands up a coordinator and brokers, provisions topics, runs a
thread-based stream job, synchronizes with its tasks through a registry,
and tears everything down deterministically.

Subpackages:
    cluster: Cluster bootstrap manager and backends
    topics: Topic provisioning and metadata validation
    registry: Task registry and synchronization gates
    job: Stream job runtime and lifecycle controller
    exchange: Message exchange with running tasks
    serializers: Checkpoint codec
    testing: StreamTaskHarness facade
"""

from streamtask_harness.cluster import (
    ClusterBootstrapManager,
    ClusterHandle,
    InMemoryClusterBackend,
    LocalKafkaClusterBackend,
)
from streamtask_harness.config import DEFAULT_JOB_CONFIG, JobConfig
from streamtask_harness.enums import EnumApplicationStatus
from streamtask_harness.errors import HarnessAssertionError, HarnessError
from streamtask_harness.job import HarnessStreamTask, JobLifecycleController
from streamtask_harness.models import Checkpoint, ModelHarnessSettings, SystemStreamPartition
from streamtask_harness.serializers import CheckpointSerde
from streamtask_harness.testing import StreamTaskHarness

__version__ = "0.1.0"

__all__: list[str] = [
    "Checkpoint",
    "CheckpointSerde",
    "ClusterBootstrapManager",
    "ClusterHandle",
    "DEFAULT_JOB_CONFIG",
    "EnumApplicationStatus",
    "HarnessAssertionError",
    "HarnessError",
    "HarnessStreamTask",
    "InMemoryClusterBackend",
    "JobConfig",
    "JobLifecycleController",
    "LocalKafkaClusterBackend",
    "ModelHarnessSettings",
    "StreamTaskHarness",
    "SystemStreamPartition",
    "__version__",
]
