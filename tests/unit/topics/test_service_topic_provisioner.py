# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for TopicProvisioner.

Covers:
- Idempotent creation
- Validation converging after delayed metadata propagation
- Bounded validation with a descriptive failure
- Transient describe errors counted as attempts
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from streamtask_harness.cluster import ClusterBootstrapManager, InMemoryClusterBackend
from streamtask_harness.errors import (
    HarnessAssertionError,
    TopicAlreadyExistsError,
    TopicValidationError,
)
from streamtask_harness.topics import TopicProvisioner

pytestmark = pytest.mark.unit


class TestTopicCreation:
    """create_topic behavior."""

    def test_create_new_topic(self, running_cluster: ClusterBootstrapManager) -> None:
        provisioner = TopicProvisioner(running_cluster.create_admin_client())

        assert provisioner.create_topic("input", 1, 3) is True

    def test_existing_topic_is_tolerated(self, running_cluster: ClusterBootstrapManager) -> None:
        provisioner = TopicProvisioner(running_cluster.create_admin_client())
        provisioner.create_topic("input", 1, 3)

        assert provisioner.create_topic("input", 1, 3) is False

    def test_create_does_not_describe(self) -> None:
        client = MagicMock()
        client.create_topic.side_effect = TopicAlreadyExistsError("exists")

        TopicProvisioner(client).create_topic("input", 1, 1)

        client.describe_topic.assert_not_called()


class TestTopicValidation:
    """validate and ensure_topic behavior."""

    def test_converges_after_propagation_delay(self, tmp_path: Path) -> None:
        backend = InMemoryClusterBackend(metadata_propagation_polls=3)
        with ClusterBootstrapManager(backend, 3, tmp_path) as cluster:
            cluster.start()
            provisioner = TopicProvisioner(
                cluster.create_admin_client(), attempt_timeout_seconds=0.01
            )

            provisioner.ensure_topic("input", partition_count=1, replication_factor=3)

    def test_exhaustion_reports_attempts(self, tmp_path: Path) -> None:
        backend = InMemoryClusterBackend(metadata_propagation_polls=50)
        with ClusterBootstrapManager(backend, 3, tmp_path) as cluster:
            cluster.start()
            provisioner = TopicProvisioner(
                cluster.create_admin_client(), attempt_timeout_seconds=0.01
            )

            with pytest.raises(TopicValidationError) as exc_info:
                provisioner.ensure_topic("input", partition_count=1, replication_factor=3)

        message = str(exc_info.value)
        assert "Could not validate topic 'input' with 1 partition(s)" in message
        assert "Tried to validate 10 times" in message
        assert isinstance(exc_info.value, HarnessAssertionError)
        assert exc_info.value.extra_context["attempts"] == 10

    def test_wrong_partition_count(self) -> None:
        client = MagicMock()
        client.describe_topic.return_value = 2
        provisioner = TopicProvisioner(client, max_attempts=3, attempt_timeout_seconds=0.0)

        with pytest.raises(TopicValidationError, match="last observed partition count: 2"):
            provisioner.validate("input", expected_partition_count=1)

        assert client.describe_topic.call_count == 3

    def test_exceptions_count_as_attempts(self) -> None:
        client = MagicMock()
        client.describe_topic.side_effect = [
            TimeoutError("describe timed out"),
            RuntimeError("leader not available"),
            1,
        ]
        provisioner = TopicProvisioner(client, max_attempts=3, attempt_timeout_seconds=0.0)

        provisioner.validate("input", expected_partition_count=1)

        assert client.describe_topic.call_count == 3

    def test_attempt_timeout_is_passed_to_describe(self) -> None:
        client = MagicMock()
        client.describe_topic.return_value = 1

        TopicProvisioner(client, attempt_timeout_seconds=0.25).validate("input", 1)

        client.describe_topic.assert_called_once_with("input", timeout_seconds=0.25)
