# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Ephemeral cluster bootstrap and backends.

Exports:
    ClusterBootstrapManager: Starts and tears down one ephemeral cluster
    ClusterHandle: Running cluster (coordinator, brokers, addresses)
    InMemoryClusterBackend: In-process coordinator and brokers
    LocalKafkaClusterBackend: ZooKeeper and Kafka from a local distribution
    KafkaBrokerClient: kafka-python backed broker client
    create_cluster_backend: Backend selected by harness settings
"""

from streamtask_harness.cluster.inmemory_cluster import (
    InMemoryBrokerClient,
    InMemoryBrokerNode,
    InMemoryClusterBackend,
    InMemoryCoordinator,
    InMemoryRecordConsumer,
)
from streamtask_harness.cluster.kafka_broker_client import (
    KafkaBrokerClient,
    KafkaRecordConsumer,
)
from streamtask_harness.cluster.local_kafka_cluster import LocalKafkaClusterBackend
from streamtask_harness.cluster.service_cluster_bootstrap import (
    ClusterBootstrapManager,
    ClusterHandle,
)
from streamtask_harness.cluster.util_backend_factory import create_cluster_backend

__all__: list[str] = [
    "ClusterBootstrapManager",
    "ClusterHandle",
    "InMemoryBrokerClient",
    "InMemoryBrokerNode",
    "InMemoryClusterBackend",
    "InMemoryCoordinator",
    "InMemoryRecordConsumer",
    "KafkaBrokerClient",
    "KafkaRecordConsumer",
    "LocalKafkaClusterBackend",
    "create_cluster_backend",
]
