# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for MessageExchangeDriver.

Covers:
- send() round trip and payload mismatch
- read_all() optional bound, tombstones, invalid UTF-8 and early close
"""

from __future__ import annotations

import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from streamtask_harness.cluster import ClusterBootstrapManager
from streamtask_harness.errors import (
    HarnessAssertionError,
    LifecycleTimeoutError,
    MessageDeliveryError,
)
from streamtask_harness.exchange import MessageExchangeDriver
from streamtask_harness.models import ModelConsumedRecord, ModelRecordAck
from streamtask_harness.registry import TaskRegistry
from tests.helpers.util_container import provision

pytestmark = pytest.mark.unit


def record(offset: int, value: bytes | None) -> ModelConsumedRecord:
    return ModelConsumedRecord(topic="output", partition=0, offset=offset, value=value)


class TestSend:
    """send() against a registry with a stand-in task."""

    def make_driver(self, registry: TaskRegistry) -> tuple[MessageExchangeDriver, MagicMock]:
        client = MagicMock()
        client.produce.return_value = ModelRecordAck(topic="input", partition=0, offset=4)
        return MessageExchangeDriver(client, registry, "input", timeout_seconds=0.5), client

    def test_send_round_trip(self, registry: TaskRegistry) -> None:
        task = SimpleNamespace(last_received="hello")
        registry.register("Partition 0", task)
        registry.signal_message_received("Partition 0")
        driver, client = self.make_driver(registry)

        driver.send("Partition 0", "hello")

        client.produce.assert_called_once_with("input", b"hello", timeout_seconds=30.0)

    def test_payload_mismatch(self, registry: TaskRegistry) -> None:
        registry.register("Partition 0", SimpleNamespace(last_received="world"))
        registry.signal_message_received("Partition 0")
        driver, _ = self.make_driver(registry)

        with pytest.raises(MessageDeliveryError) as exc_info:
            driver.send("Partition 0", "hello")

        assert "'world'" in str(exc_info.value)
        assert isinstance(exc_info.value, HarnessAssertionError)

    def test_task_never_receives(self, registry: TaskRegistry) -> None:
        registry.register("Partition 0", SimpleNamespace(last_received=None))
        driver, _ = self.make_driver(registry)

        with pytest.raises(LifecycleTimeoutError):
            driver.send("Partition 0", "hello")


class TestReadAll:
    """read_all() generator."""

    def test_reads_up_to_offset(self, running_cluster: ClusterBootstrapManager) -> None:
        client = provision(running_cluster, "output").client
        for value in (b"a", None, b"c", b"d"):
            client.produce("output", value)
        driver = MessageExchangeDriver(
            client, TaskRegistry(), "input", initial_poll_timeout_seconds=0.5
        )

        assert driver.read_all_list("output", 2, "reader", timeout_seconds=2.0) == [
            "a",
            None,
            "c",
        ]

    def test_waits_for_later_records(self) -> None:
        client = MagicMock()
        consumer = client.create_consumer.return_value
        consumer.poll.side_effect = [[record(0, b"a")], [], [record(1, b"b")]]
        driver = MessageExchangeDriver(client, TaskRegistry(), "input")

        assert driver.read_all_list("output", 1, "reader") == ["a", "b"]
        consumer.subscribe.assert_called_once_with("output")
        consumer.close.assert_called_once()

    def test_unbounded_without_timeout(self) -> None:
        """A slow read that keeps progressing outlasts the driver timeout."""
        polls = iter(range(1000))

        def slow_poll(timeout_seconds: float) -> list[ModelConsumedRecord]:
            time.sleep(0.01)
            n = next(polls)
            return [record(n // 5, b"x")] if n % 5 == 0 else []

        client = MagicMock()
        consumer = client.create_consumer.return_value
        consumer.poll.side_effect = slow_poll
        driver = MessageExchangeDriver(
            client,
            TaskRegistry(),
            "input",
            timeout_seconds=0.05,
            initial_poll_timeout_seconds=0.01,
            poll_timeout_seconds=0.01,
        )

        assert driver.read_all_list("output", 10, "reader") == ["x"] * 11

    def test_timeout(self) -> None:
        client = MagicMock()
        consumer = client.create_consumer.return_value
        consumer.poll.side_effect = lambda timeout_seconds: time.sleep(timeout_seconds) or []
        driver = MessageExchangeDriver(
            client,
            TaskRegistry(),
            "input",
            initial_poll_timeout_seconds=0.01,
            poll_timeout_seconds=0.01,
        )

        with pytest.raises(LifecycleTimeoutError, match="Offset 3 of topic 'output'"):
            driver.read_all_list("output", 3, "reader", timeout_seconds=0.1)
        consumer.close.assert_called_once()

    def test_invalid_utf8_is_replaced(self) -> None:
        client = MagicMock()
        consumer = client.create_consumer.return_value
        consumer.poll.return_value = [record(0, b"ok\xff")]
        driver = MessageExchangeDriver(client, TaskRegistry(), "input")

        assert driver.read_all_list("output", 0, "reader") == ["ok\ufffd"]

    def test_early_close_releases_consumer(self) -> None:
        client = MagicMock()
        consumer = client.create_consumer.return_value
        consumer.poll.return_value = [record(0, b"a"), record(1, b"b")]
        driver = MessageExchangeDriver(client, TaskRegistry(), "input")

        reader = driver.read_all("output", 10, "reader")
        assert next(reader) == "a"
        reader.close()

        consumer.close.assert_called_once()
        client.create_consumer.assert_called_once_with("reader")
