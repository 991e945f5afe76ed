# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Broker client backed by kafka-python.

Wraps KafkaAdminClient, KafkaProducer and KafkaConsumer behind
ProtocolBrokerClient so the harness can drive a real Kafka cluster with the
same code paths it uses against the in-memory backend.

Producer settings favor determinism over throughput: every send waits for
all in-sync replicas, only one request is in flight per connection, and
nothing is batched.

Error Translation:
    kafka.errors.TopicAlreadyExistsError -> TopicAlreadyExistsError
    kafka.errors.UnknownTopicOrPartitionError -> UnknownTopicError
    kafka.errors.NoBrokersAvailable -> InfraUnavailableError
    kafka.errors.KafkaTimeoutError (produce) -> InfraUnavailableError
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from kafka import KafkaConsumer, KafkaProducer, TopicPartition
from kafka.admin import KafkaAdminClient, NewTopic
from kafka.errors import KafkaError, KafkaTimeoutError, NoBrokersAvailable
from kafka.errors import TopicAlreadyExistsError as KafkaTopicAlreadyExistsError
from kafka.errors import UnknownTopicOrPartitionError

from streamtask_harness.errors import (
    InfraUnavailableError,
    ModelHarnessErrorContext,
    TopicAlreadyExistsError,
    UnknownTopicError,
)
from streamtask_harness.models import ModelConsumedRecord, ModelRecordAck
from streamtask_harness.utils import sanitize_error_message

logger = logging.getLogger(__name__)

CLIENT_ID_PREFIX = "streamtask-harness"
UNKNOWN_TOPIC_OR_PARTITION_CODE = UnknownTopicOrPartitionError.errno


class KafkaRecordConsumer:
    """ProtocolRecordConsumer over a kafka-python KafkaConsumer."""

    def __init__(self, bootstrap_servers: str, group_id: str) -> None:
        self._group_id = group_id
        try:
            self._consumer = KafkaConsumer(
                bootstrap_servers=bootstrap_servers.split(","),
                client_id=f"{CLIENT_ID_PREFIX}-consumer",
                group_id=group_id,
                auto_offset_reset="earliest",
                enable_auto_commit=True,
                auto_commit_interval_ms=100,
            )
        except NoBrokersAvailable as e:
            raise InfraUnavailableError(
                f"No broker reachable at '{bootstrap_servers}'",
                context=ModelHarnessErrorContext(
                    component="kafka_consumer", operation="connect", target_name=bootstrap_servers
                ),
            ) from e

    def subscribe(self, topic: str) -> None:
        self._consumer.subscribe([topic])

    def assign(self, topic: str, partitions: Sequence[int]) -> None:
        self._consumer.assign([TopicPartition(topic, p) for p in partitions])

    def seek(self, topic: str, partition: int, offset: int) -> None:
        self._consumer.seek(TopicPartition(topic, partition), max(offset, 0))

    def seek_to_beginning(self, topic: str, partition: int) -> None:
        self._consumer.seek_to_beginning(TopicPartition(topic, partition))

    def seek_to_end(self, topic: str, partition: int) -> None:
        self._consumer.seek_to_end(TopicPartition(topic, partition))

    def end_offset(self, topic: str, partition: int) -> int:
        tp = TopicPartition(topic, partition)
        return int(self._consumer.end_offsets([tp])[tp])

    def poll(self, timeout_seconds: float) -> list[ModelConsumedRecord]:
        batches = self._consumer.poll(timeout_ms=int(timeout_seconds * 1000))
        records: list[ModelConsumedRecord] = []
        for tp in sorted(batches, key=lambda t: (t.topic, t.partition)):
            for record in batches[tp]:
                records.append(
                    ModelConsumedRecord(
                        topic=record.topic,
                        partition=record.partition,
                        offset=record.offset,
                        key=record.key,
                        value=record.value,
                    )
                )
        return records

    def close(self) -> None:
        self._consumer.close()


class KafkaBrokerClient:
    """ProtocolBrokerClient over kafka-python.

    The admin client is created eagerly so an unreachable cluster fails
    fast. The producer is created on first use and shared by every thread
    of the harness; KafkaProducer is thread-safe.

    Example:
        >>> client = KafkaBrokerClient("127.0.0.1:19092")
        >>> client.create_topic("input", partitions=1, replication_factor=1)
        >>> client.describe_topic("input", timeout_seconds=0.5)
        1
    """

    def __init__(self, bootstrap_servers: str, request_timeout_ms: int = 30000) -> None:
        self._bootstrap_servers = bootstrap_servers
        self._request_timeout_ms = request_timeout_ms
        self._producer: KafkaProducer | None = None
        self._consumers: list[KafkaRecordConsumer] = []
        self._lock = threading.Lock()
        try:
            self._admin = KafkaAdminClient(
                bootstrap_servers=bootstrap_servers.split(","),
                client_id=f"{CLIENT_ID_PREFIX}-admin",
                request_timeout_ms=request_timeout_ms,
            )
        except NoBrokersAvailable as e:
            raise InfraUnavailableError(
                f"No broker reachable at '{bootstrap_servers}'",
                context=self._context("connect"),
            ) from e

    @property
    def bootstrap_servers(self) -> str:
        return self._bootstrap_servers

    def create_topic(self, name: str, partitions: int, replication_factor: int) -> None:
        new_topic = NewTopic(
            name=name, num_partitions=partitions, replication_factor=replication_factor
        )
        try:
            self._admin.create_topics([new_topic], validate_only=False)
        except KafkaTopicAlreadyExistsError as e:
            raise TopicAlreadyExistsError(
                f"Topic '{name}' already exists", context=self._context("create_topic", name)
            ) from e

    def describe_topic(self, name: str, timeout_seconds: float) -> int:
        """Partition count of ``name`` from cluster metadata.

        Every call opens its own admin client whose request and version
        probe timeouts equal ``timeout_seconds``, and closes it afterwards.
        Calls never wait on one another.

        Raises:
            TimeoutError: If the metadata did not arrive in time
            UnknownTopicError: If the cluster does not know the topic
        """
        timeout_ms = max(int(timeout_seconds * 1000), 1)
        try:
            admin = KafkaAdminClient(
                bootstrap_servers=self._bootstrap_servers.split(","),
                client_id=f"{CLIENT_ID_PREFIX}-describe",
                request_timeout_ms=timeout_ms,
                api_version_auto_timeout_ms=timeout_ms,
            )
        except NoBrokersAvailable as e:
            raise TimeoutError(
                f"No broker answered for topic '{name}' within {timeout_seconds}s"
            ) from e

        try:
            descriptions = admin.describe_topics([name])
        except KafkaTimeoutError as e:
            raise TimeoutError(
                f"Describing topic '{name}' exceeded {timeout_seconds}s"
            ) from e
        except UnknownTopicOrPartitionError as e:
            raise UnknownTopicError(
                f"Topic '{name}' is unknown to the cluster",
                context=self._context("describe_topic", name),
            ) from e
        finally:
            admin.close()

        for description in descriptions:
            if description.get("topic") != name:
                continue
            if description.get("error_code", 0) == UNKNOWN_TOPIC_OR_PARTITION_CODE:
                break
            return len(description.get("partitions") or [])
        raise UnknownTopicError(
            f"Topic '{name}' is unknown to the cluster",
            context=self._context("describe_topic", name),
        )

    def produce(
        self,
        topic: str,
        value: bytes | None,
        key: bytes | None = None,
        partition: int | None = None,
        timeout_seconds: float = 30.0,
    ) -> ModelRecordAck:
        producer = self._get_producer()
        try:
            metadata = producer.send(topic, value=value, key=key, partition=partition).get(
                timeout=timeout_seconds
            )
        except KafkaTimeoutError as e:
            raise InfraUnavailableError(
                f"Produce to '{topic}' not acknowledged within {timeout_seconds}s",
                context=self._context("produce", topic),
            ) from e
        except UnknownTopicOrPartitionError as e:
            raise UnknownTopicError(
                f"Topic '{topic}' is unknown to the cluster",
                context=self._context("produce", topic),
            ) from e
        return ModelRecordAck(
            topic=metadata.topic, partition=metadata.partition, offset=metadata.offset
        )

    def create_consumer(self, group_id: str) -> KafkaRecordConsumer:
        consumer = KafkaRecordConsumer(self._bootstrap_servers, group_id)
        with self._lock:
            self._consumers.append(consumer)
        return consumer

    def close(self) -> None:
        with self._lock:
            producer, self._producer = self._producer, None
            consumers, self._consumers = self._consumers, []

        for consumer in consumers:
            try:
                consumer.close()
            except KafkaError as e:
                logger.warning(
                    "Failed to close consumer: %s",
                    sanitize_error_message(e),
                    extra={"bootstrap_servers": self._bootstrap_servers},
                )
        if producer is not None:
            producer.close(timeout=5)
        self._admin.close()

    def _get_producer(self) -> KafkaProducer:
        with self._lock:
            if self._producer is None:
                try:
                    self._producer = KafkaProducer(
                        bootstrap_servers=self._bootstrap_servers.split(","),
                        client_id=f"{CLIENT_ID_PREFIX}-producer",
                        acks="all",
                        linger_ms=0,
                        max_in_flight_requests_per_connection=1,
                        request_timeout_ms=self._request_timeout_ms,
                    )
                except NoBrokersAvailable as e:
                    raise InfraUnavailableError(
                        f"No broker reachable at '{self._bootstrap_servers}'",
                        context=self._context("connect"),
                    ) from e
            return self._producer

    def _context(self, operation: str, target: str | None = None) -> ModelHarnessErrorContext:
        return ModelHarnessErrorContext(
            component="kafka_broker_client",
            operation=operation,
            target_name=target or self._bootstrap_servers,
        )


__all__ = ["KafkaBrokerClient", "KafkaRecordConsumer"]
