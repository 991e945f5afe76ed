# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Pytest configuration and shared fixtures for streamtask_harness tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from streamtask_harness.cluster import ClusterBootstrapManager, InMemoryClusterBackend
from streamtask_harness.models import ModelHarnessSettings
from streamtask_harness.registry import TaskRegistry
from streamtask_harness.testing import StreamTaskHarness
from tests.helpers.stream_tasks import EchoTask

# Budgets small enough for unit tests, large enough for slow CI machines.
FAST_TIMEOUT_SECONDS = 5.0


def make_settings(state_root: Path, **overrides: object) -> ModelHarnessSettings:
    """Build in-memory harness settings with short budgets."""
    values: dict[str, object] = {
        "broker_count": 3,
        "replication_factor": 3,
        "lifecycle_timeout_seconds": FAST_TIMEOUT_SECONDS,
        "topic_validation_attempt_timeout_seconds": 0.01,
        "read_initial_poll_timeout_seconds": 2.0,
        "read_poll_timeout_seconds": 0.05,
        "state_root": state_root,
    }
    values.update(overrides)
    return ModelHarnessSettings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> ModelHarnessSettings:
    """In-memory harness settings rooted in the test's tmp_path."""
    return make_settings(tmp_path)


@pytest.fixture
def backend() -> InMemoryClusterBackend:
    return InMemoryClusterBackend()


@pytest.fixture
def registry() -> TaskRegistry:
    return TaskRegistry(default_timeout_seconds=FAST_TIMEOUT_SECONDS)


@pytest.fixture
def running_cluster(
    backend: InMemoryClusterBackend, tmp_path: Path
) -> Iterator[ClusterBootstrapManager]:
    """A started three-broker in-memory cluster, torn down after the test."""
    with ClusterBootstrapManager(backend, broker_count=3, state_root=tmp_path) as cluster:
        cluster.start()
        yield cluster


@pytest.fixture
def harness_factory(
    settings: ModelHarnessSettings, backend: InMemoryClusterBackend
) -> Iterator[Callable[..., StreamTaskHarness]]:
    """Factory of harnesses that are closed after the test."""
    created: list[StreamTaskHarness] = []

    def factory(task_factory: Callable[[], object] = EchoTask, **kwargs: object) -> StreamTaskHarness:
        harness = StreamTaskHarness(
            settings, backend=backend, task_factory=task_factory, **kwargs  # type: ignore[arg-type]
        )
        created.append(harness)
        return harness

    yield factory
    for harness in created:
        harness.close()
