# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Integration tests running the harness against a local Kafka distribution.

Requires a Kafka distribution (with ZooKeeper scripts) at KAFKA_HOME.
Run with: pytest -m integration
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from streamtask_harness.enums import EnumApplicationStatus, EnumClusterBackend
from streamtask_harness.models import ModelHarnessSettings
from streamtask_harness.testing import StreamTaskHarness
from tests.helpers.stream_tasks import EchoTask, ForwardingTask

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.environ.get("KAFKA_HOME"), reason="KAFKA_HOME not set; no local Kafka distribution"
    ),
]


@pytest.fixture
def kafka_settings(tmp_path: Path) -> ModelHarnessSettings:
    return ModelHarnessSettings(
        backend=EnumClusterBackend.KAFKA,
        kafka_home=Path(os.environ["KAFKA_HOME"]),
        broker_count=3,
        replication_factor=3,
        lifecycle_timeout_seconds=60.0,
        state_root=tmp_path,
    )


@pytest.fixture
def kafka_harness(kafka_settings: ModelHarnessSettings) -> Iterator[StreamTaskHarness]:
    harness = StreamTaskHarness(kafka_settings, task_factory=EchoTask)
    yield harness
    harness.close()


class TestLocalKafkaHarness:
    """The full harness flow over real brokers."""

    def test_send_and_stop(self, kafka_harness: StreamTaskHarness) -> None:
        handle = kafka_harness.start_cluster()
        job, task = kafka_harness.start_job()

        kafka_harness.send(task, "hello")
        kafka_harness.send(task, "world")
        kafka_harness.stop_job(job)

        assert task.received == ["hello", "world"]
        assert job.status == EnumApplicationStatus.UNSUCCESSFUL_FINISH
        assert len(handle.brokers) == 3

    def test_read_output(self, kafka_settings: ModelHarnessSettings) -> None:
        with StreamTaskHarness(kafka_settings, task_factory=ForwardingTask) as harness:
            harness.start_cluster()
            harness.admin_client.create_topic("output", 1, 3)
            job, task = harness.start_job()

            harness.send(task, "hello")
            harness.stop_job(job)

            output = harness.read_all("output", 0, "output-reader", timeout_seconds=60.0)
            assert output == ["HELLO"]
