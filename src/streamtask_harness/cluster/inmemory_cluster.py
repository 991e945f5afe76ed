# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""In-Memory Cluster Backend for deterministic harness runs.

Implements ProtocolClusterBackend with an in-process coordinator and broker
nodes sharing one partitioned log store. No external processes, ports or
dependencies are required, which makes it the default backend of unit
tests and local development.

Features:
    - Partitioned, append-only logs with per-partition offsets
    - Consumer groups with committed offsets (subscribe) and manual
      assignment with seeking (assign)
    - Blocking polls woken by produce through a shared Condition
    - Real per-broker log directories, so teardown ordering is observable
    - Simulated metadata propagation: a new topic stays invisible to
      describe requests for ``metadata_propagation_polls`` calls
    - Broker liveness: requests fail with InfraUnavailableError once every
      broker has shut down

Usage:
    ```python
    backend = InMemoryClusterBackend(metadata_propagation_polls=2)
    with ClusterBootstrapManager(backend, broker_count=3) as cluster:
        handle = cluster.start()
        client = cluster.create_admin_client()
        client.create_topic("input", partitions=1, replication_factor=3)
    ```

Protocol Compatibility:
    Brokers, coordinator, clients and consumers satisfy the protocols in
    streamtask_harness.protocols by duck typing.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
import zlib
from collections.abc import Sequence
from pathlib import Path

from streamtask_harness.errors import (
    ClusterStateError,
    HarnessConfigurationError,
    InfraUnavailableError,
    ModelHarnessErrorContext,
    TopicAlreadyExistsError,
    UnknownTopicError,
)
from streamtask_harness.models import ModelConsumedRecord, ModelRecordAck

logger = logging.getLogger(__name__)

MAX_POLL_RECORDS = 500


class _LogEntry:
    __slots__ = ("key", "value")

    def __init__(self, key: bytes | None, value: bytes | None) -> None:
        self.key = key
        self.value = value


class _TopicLog:
    def __init__(self, name: str, partitions: int, replication_factor: int, hidden_polls: int):
        self.name = name
        self.replication_factor = replication_factor
        self.partitions: list[list[_LogEntry]] = [[] for _ in range(partitions)]
        self.hidden_polls = hidden_polls
        self.next_partition = 0


class InMemoryCoordinator:
    """Coordination state of an in-memory cluster.

    Holds topic metadata, the partition logs, the live broker set and the
    committed offsets of consumer groups. Every access goes through one
    re-entrant Condition, which consumers wait on for new records.
    """

    def __init__(self, data_dir: Path, metadata_propagation_polls: int = 0) -> None:
        self._data_dir = data_dir
        self._metadata_propagation_polls = metadata_propagation_polls
        self._connect_string = f"inmemory-coordinator:{id(self) & 0xFFFF}"
        self.condition = threading.Condition(threading.RLock())
        self._topics: dict[str, _TopicLog] = {}
        self._live_brokers: set[int] = set()
        self._committed: dict[tuple[str, str, int], int] = {}
        self._running = True

    @property
    def connect_string(self) -> str:
        return self._connect_string

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def is_running(self) -> bool:
        return self._running

    def shutdown(self) -> None:
        with self.condition:
            if not self._running:
                return
            self._running = False
            self.condition.notify_all()
        logger.debug("In-memory coordinator %s shut down", self._connect_string)

    # -- broker membership -------------------------------------------------

    def register_broker(self, broker_id: int) -> None:
        with self.condition:
            self._require_running("register_broker")
            if broker_id in self._live_brokers:
                raise ClusterStateError(
                    f"Broker {broker_id} is already registered",
                    context=ModelHarnessErrorContext(
                        component="inmemory_coordinator",
                        operation="register_broker",
                        target_name=str(broker_id),
                    ),
                )
            self._live_brokers.add(broker_id)

    def deregister_broker(self, broker_id: int) -> None:
        with self.condition:
            self._live_brokers.discard(broker_id)
            self.condition.notify_all()

    @property
    def live_broker_count(self) -> int:
        with self.condition:
            return len(self._live_brokers)

    # -- topic metadata ----------------------------------------------------

    def create_topic(self, name: str, partitions: int, replication_factor: int) -> None:
        with self.condition:
            self._require_available("create_topic", name)
            if name in self._topics:
                raise TopicAlreadyExistsError(
                    f"Topic '{name}' already exists",
                    context=self._context("create_topic", name),
                )
            if partitions < 1:
                raise HarnessConfigurationError(
                    f"Topic '{name}' needs at least one partition, got {partitions}",
                    context=self._context("create_topic", name),
                )
            if replication_factor < 1 or replication_factor > len(self._live_brokers):
                raise HarnessConfigurationError(
                    f"Replication factor {replication_factor} for topic '{name}' "
                    f"exceeds {len(self._live_brokers)} live broker(s)",
                    context=self._context("create_topic", name),
                )
            self._topics[name] = _TopicLog(
                name, partitions, replication_factor, self._metadata_propagation_polls
            )
            self.condition.notify_all()

    def describe_topic(self, name: str) -> int:
        """Partition count of ``name`` as seen by a metadata request."""
        with self.condition:
            self._require_available("describe_topic", name)
            topic = self._topics.get(name)
            if topic is None:
                raise UnknownTopicError(
                    f"Topic '{name}' does not exist",
                    context=self._context("describe_topic", name),
                )
            if topic.hidden_polls > 0:
                topic.hidden_polls -= 1
                raise UnknownTopicError(
                    f"Metadata for topic '{name}' has not propagated yet",
                    context=self._context("describe_topic", name),
                    remaining_polls=topic.hidden_polls,
                )
            return len(topic.partitions)

    def partition_count(self, name: str) -> int | None:
        """Partition count without propagation delay, None if unknown."""
        with self.condition:
            topic = self._topics.get(name)
            return len(topic.partitions) if topic is not None else None

    # -- log access --------------------------------------------------------

    def append(
        self,
        topic_name: str,
        key: bytes | None,
        value: bytes | None,
        partition: int | None = None,
    ) -> ModelRecordAck:
        with self.condition:
            self._require_available("produce", topic_name)
            topic = self._get_topic(topic_name, "produce")
            if partition is None:
                if key is not None:
                    partition = zlib.crc32(key) % len(topic.partitions)
                else:
                    partition = topic.next_partition
                    topic.next_partition = (partition + 1) % len(topic.partitions)
            elif not 0 <= partition < len(topic.partitions):
                raise UnknownTopicError(
                    f"Partition {partition} of topic '{topic_name}' does not exist",
                    context=self._context("produce", topic_name),
                )
            log = topic.partitions[partition]
            log.append(_LogEntry(key, value))
            self.condition.notify_all()
            return ModelRecordAck(topic=topic_name, partition=partition, offset=len(log) - 1)

    def read(
        self, topic_name: str, partition: int, offset: int, max_records: int
    ) -> list[ModelConsumedRecord]:
        with self.condition:
            topic = self._topics.get(topic_name)
            if topic is None or partition >= len(topic.partitions):
                return []
            entries = topic.partitions[partition][offset : offset + max_records]
            return [
                ModelConsumedRecord(
                    topic=topic_name,
                    partition=partition,
                    offset=offset + index,
                    key=entry.key,
                    value=entry.value,
                )
                for index, entry in enumerate(entries)
            ]

    def end_offset(self, topic_name: str, partition: int) -> int:
        with self.condition:
            topic = self._get_topic(topic_name, "end_offset")
            if not 0 <= partition < len(topic.partitions):
                raise UnknownTopicError(
                    f"Partition {partition} of topic '{topic_name}' does not exist",
                    context=self._context("end_offset", topic_name),
                )
            return len(topic.partitions[partition])

    def commit(self, group_id: str, topic_name: str, partition: int, offset: int) -> None:
        with self.condition:
            self._committed[(group_id, topic_name, partition)] = offset

    def committed(self, group_id: str, topic_name: str, partition: int) -> int | None:
        with self.condition:
            return self._committed.get((group_id, topic_name, partition))

    # -- helpers -----------------------------------------------------------

    def _get_topic(self, name: str, operation: str) -> _TopicLog:
        topic = self._topics.get(name)
        if topic is None:
            raise UnknownTopicError(
                f"Topic '{name}' does not exist", context=self._context(operation, name)
            )
        return topic

    def _require_running(self, operation: str) -> None:
        if not self._running:
            raise InfraUnavailableError(
                "In-memory coordinator is shut down",
                context=self._context(operation, self._connect_string),
            )

    def _require_available(self, operation: str, target: str) -> None:
        self._require_running(operation)
        if not self._live_brokers:
            raise InfraUnavailableError(
                "No live brokers available",
                context=self._context(operation, target),
            )

    @staticmethod
    def _context(operation: str, target: str) -> ModelHarnessErrorContext:
        return ModelHarnessErrorContext(
            component="inmemory_cluster", operation=operation, target_name=target
        )


class InMemoryBrokerNode:
    """An in-process broker registered against an InMemoryCoordinator."""

    def __init__(
        self,
        broker_id: int,
        address: str,
        coordinator: InMemoryCoordinator,
        log_dir: Path,
    ) -> None:
        self._broker_id = broker_id
        self._address = address
        self._coordinator = coordinator
        self._log_dir = log_dir
        self._running = False

    @property
    def broker_id(self) -> int:
        return self._broker_id

    @property
    def address(self) -> str:
        return self._address

    @property
    def log_dirs(self) -> tuple[Path, ...]:
        return (self._log_dir,)

    @property
    def coordinator(self) -> InMemoryCoordinator:
        return self._coordinator

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._log_dir.mkdir(parents=True, exist_ok=True)
        (self._log_dir / "meta.properties").write_text(
            f"version=0\nbroker.id={self._broker_id}\n", encoding="utf-8"
        )
        self._coordinator.register_broker(self._broker_id)
        self._running = True

    def shutdown(self) -> None:
        if not self._running:
            return
        self._running = False
        self._coordinator.deregister_broker(self._broker_id)
        logger.debug("In-memory broker %d shut down", self._broker_id)


class InMemoryRecordConsumer:
    """Consumer over the shared in-memory log store.

    Subscribed topics resume from the group's committed offset (earliest when
    none) and commit after every poll that returned records. Assigned
    partitions never commit.
    """

    def __init__(self, coordinator: InMemoryCoordinator, group_id: str) -> None:
        self._coordinator = coordinator
        self._group_id = group_id
        self._subscribed: set[str] = set()
        self._positions: dict[tuple[str, int], int] = {}
        self._closed = False

    @property
    def group_id(self) -> str:
        return self._group_id

    def subscribe(self, topic: str) -> None:
        self._require_open("subscribe")
        self._subscribed.add(topic)

    def assign(self, topic: str, partitions: Sequence[int]) -> None:
        self._require_open("assign")
        for partition in partitions:
            committed = self._coordinator.committed(self._group_id, topic, partition)
            self._positions.setdefault((topic, partition), committed or 0)

    def seek(self, topic: str, partition: int, offset: int) -> None:
        self._require_open("seek")
        self._positions[(topic, partition)] = max(offset, 0)

    def seek_to_beginning(self, topic: str, partition: int) -> None:
        self.seek(topic, partition, 0)

    def seek_to_end(self, topic: str, partition: int) -> None:
        self.seek(topic, partition, self._coordinator.end_offset(topic, partition))

    def end_offset(self, topic: str, partition: int) -> int:
        return self._coordinator.end_offset(topic, partition)

    def poll(self, timeout_seconds: float) -> list[ModelConsumedRecord]:
        self._require_open("poll")
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        condition = self._coordinator.condition
        with condition:
            while True:
                records = self._collect()
                if records or self._closed:
                    return records
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return []
                condition.wait(remaining)

    def close(self) -> None:
        self._closed = True

    def _collect(self) -> list[ModelConsumedRecord]:
        for topic in self._subscribed:
            count = self._coordinator.partition_count(topic) or 0
            for partition in range(count):
                if (topic, partition) not in self._positions:
                    committed = self._coordinator.committed(self._group_id, topic, partition)
                    self._positions[(topic, partition)] = committed or 0

        collected: list[ModelConsumedRecord] = []
        for (topic, partition), position in sorted(self._positions.items()):
            budget = MAX_POLL_RECORDS - len(collected)
            if budget <= 0:
                break
            records = self._coordinator.read(topic, partition, position, budget)
            if not records:
                continue
            next_position = records[-1].offset + 1
            self._positions[(topic, partition)] = next_position
            if topic in self._subscribed:
                self._coordinator.commit(self._group_id, topic, partition, next_position)
            collected.extend(records)
        return collected

    def _require_open(self, operation: str) -> None:
        if self._closed:
            raise ClusterStateError(
                f"Consumer of group '{self._group_id}' is closed",
                context=ModelHarnessErrorContext(
                    component="inmemory_consumer", operation=operation
                ),
            )


class InMemoryBrokerClient:
    """Broker client bound to the brokers of an in-memory cluster."""

    def __init__(self, coordinator: InMemoryCoordinator, bootstrap_servers: str) -> None:
        self._coordinator = coordinator
        self._bootstrap_servers = bootstrap_servers
        self._consumers: list[InMemoryRecordConsumer] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def bootstrap_servers(self) -> str:
        return self._bootstrap_servers

    def create_topic(self, name: str, partitions: int, replication_factor: int) -> None:
        self._require_open("create_topic")
        self._coordinator.create_topic(name, partitions, replication_factor)

    def describe_topic(self, name: str, timeout_seconds: float) -> int:
        self._require_open("describe_topic")
        return self._coordinator.describe_topic(name)

    def produce(
        self,
        topic: str,
        value: bytes | None,
        key: bytes | None = None,
        partition: int | None = None,
        timeout_seconds: float = 30.0,
    ) -> ModelRecordAck:
        self._require_open("produce")
        return self._coordinator.append(topic, key, value, partition)

    def create_consumer(self, group_id: str) -> InMemoryRecordConsumer:
        self._require_open("create_consumer")
        consumer = InMemoryRecordConsumer(self._coordinator, group_id)
        with self._lock:
            self._consumers.append(consumer)
        return consumer

    def close(self) -> None:
        with self._lock:
            consumers, self._consumers = self._consumers, []
            self._closed = True
        for consumer in consumers:
            consumer.close()

    def _require_open(self, operation: str) -> None:
        if self._closed:
            raise ClusterStateError(
                "Broker client is closed",
                context=ModelHarnessErrorContext(
                    component="inmemory_client",
                    operation=operation,
                    target_name=self._bootstrap_servers,
                ),
            )


class InMemoryClusterBackend:
    """Cluster backend that runs coordinator and brokers in process.

    Attributes:
        metadata_propagation_polls: Describe calls a new topic stays invisible
        coordinators: Coordinators started by this backend
    """

    def __init__(self, metadata_propagation_polls: int = 0) -> None:
        if metadata_propagation_polls < 0:
            raise HarnessConfigurationError(
                "metadata_propagation_polls must be >= 0",
                context=ModelHarnessErrorContext(
                    component="inmemory_cluster", operation="init"
                ),
            )
        self.metadata_propagation_polls = metadata_propagation_polls
        self.coordinators: list[InMemoryCoordinator] = []
        self._brokers_by_address: dict[str, InMemoryBrokerNode] = {}
        self._ports = itertools.count(19092)
        self._lock = threading.Lock()

    def start_coordinator(self, state_dir: Path) -> InMemoryCoordinator:
        state_dir.mkdir(parents=True, exist_ok=True)
        coordinator = InMemoryCoordinator(state_dir, self.metadata_propagation_polls)
        with self._lock:
            self.coordinators.append(coordinator)
        logger.info(
            "In-memory coordinator started",
            extra={"connect_string": coordinator.connect_string, "state_dir": str(state_dir)},
        )
        return coordinator

    def start_broker(
        self,
        broker_id: int,
        coordinator: InMemoryCoordinator,
        state_dir: Path,
    ) -> InMemoryBrokerNode:
        with self._lock:
            address = f"inmemory-broker-{broker_id}:{next(self._ports)}"
        broker = InMemoryBrokerNode(broker_id, address, coordinator, state_dir / "logs")
        broker.start()
        with self._lock:
            self._brokers_by_address[address] = broker
        logger.info(
            "In-memory broker started",
            extra={"broker_id": broker_id, "address": address},
        )
        return broker

    def create_client(self, bootstrap_servers: str) -> InMemoryBrokerClient:
        addresses = [a.strip() for a in bootstrap_servers.split(",") if a.strip()]
        with self._lock:
            known = [self._brokers_by_address[a] for a in addresses if a in self._brokers_by_address]
        if not known:
            raise InfraUnavailableError(
                f"No known broker among bootstrap servers '{bootstrap_servers}'",
                context=ModelHarnessErrorContext(
                    component="inmemory_cluster",
                    operation="create_client",
                    target_name=bootstrap_servers,
                ),
            )
        return InMemoryBrokerClient(known[0].coordinator, bootstrap_servers)


__all__ = [
    "InMemoryBrokerClient",
    "InMemoryBrokerNode",
    "InMemoryClusterBackend",
    "InMemoryCoordinator",
    "InMemoryRecordConsumer",
]
