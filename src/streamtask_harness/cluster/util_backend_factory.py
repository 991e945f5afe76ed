# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Backend selection from harness settings."""

from __future__ import annotations

from streamtask_harness.cluster.inmemory_cluster import InMemoryClusterBackend
from streamtask_harness.cluster.local_kafka_cluster import LocalKafkaClusterBackend
from streamtask_harness.enums import EnumClusterBackend
from streamtask_harness.models import ModelHarnessSettings
from streamtask_harness.protocols import ProtocolClusterBackend


def create_cluster_backend(settings: ModelHarnessSettings) -> ProtocolClusterBackend:
    if settings.backend == EnumClusterBackend.KAFKA:
        # kafka_home presence is enforced by ModelHarnessSettings validation
        assert settings.kafka_home is not None
        return LocalKafkaClusterBackend(
            settings.kafka_home,
            startup_timeout_seconds=settings.service_startup_timeout_seconds,
        )
    return InMemoryClusterBackend()


__all__ = ["create_cluster_backend"]
