# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Message Exchange Driver.

Feeds messages to a running task and reads topics back for assertions.

send() is a synchronous round trip: publish, wait for the broker ack, wait
for the task's message-received gate, then compare the payload the task
saw with the payload sent.

read_all() is a lazy, single-pass generator over one topic. It subscribes
under the given consumer group from the earliest offset, waits longer for
the first poll (the group must join) than for later ones, and stops right
after yielding the record at or past ``max_offset_inclusive``. Tombstones
come through as None. The read is unbounded in time unless the caller
passes a timeout.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Iterator

from streamtask_harness.errors import (
    LifecycleTimeoutError,
    MessageDeliveryError,
    ModelHarnessErrorContext,
)
from streamtask_harness.job.stream_task import decode_payload, encode_payload
from streamtask_harness.models import ModelConsumedRecord
from streamtask_harness.protocols import ProtocolBrokerClient
from streamtask_harness.registry import TaskRegistry

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_POLL_TIMEOUT_SECONDS = 10.0
DEFAULT_POLL_TIMEOUT_SECONDS = 0.1
DEFAULT_PRODUCE_TIMEOUT_SECONDS = 30.0


class MessageExchangeDriver:
    """Sends messages to tasks and reads topics back."""

    def __init__(
        self,
        client: ProtocolBrokerClient,
        registry: TaskRegistry,
        input_topic: str,
        timeout_seconds: float = 60.0,
        initial_poll_timeout_seconds: float = DEFAULT_INITIAL_POLL_TIMEOUT_SECONDS,
        poll_timeout_seconds: float = DEFAULT_POLL_TIMEOUT_SECONDS,
        produce_timeout_seconds: float = DEFAULT_PRODUCE_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._registry = registry
        self._input_topic = input_topic
        self._timeout_seconds = timeout_seconds
        self._initial_poll_timeout_seconds = initial_poll_timeout_seconds
        self._poll_timeout_seconds = poll_timeout_seconds
        self._produce_timeout_seconds = produce_timeout_seconds

    def send(self, task_name: str, payload: str) -> None:
        """Publish ``payload`` and wait until ``task_name`` received it.

        Raises:
            LifecycleTimeoutError: If the task did not signal receipt in time
            MessageDeliveryError: If the task received a different payload
        """
        ack = self._client.produce(
            self._input_topic,
            encode_payload(payload),
            timeout_seconds=self._produce_timeout_seconds,
        )
        logger.debug(
            "Sent message to %s at offset %d",
            self._input_topic,
            ack.offset,
            extra={"topic": self._input_topic, "task_name": task_name},
        )

        self._registry.await_message_received(task_name, self._timeout_seconds)

        entry = self._registry.get(task_name)
        received = getattr(entry.task, "last_received", None) if entry is not None else None
        if received != payload:
            raise MessageDeliveryError(
                f"Task '{task_name}' received {received!r}, expected {payload!r}",
                context=ModelHarnessErrorContext(
                    component="message_exchange", operation="send", target_name=task_name
                ),
                offset=ack.offset,
            )

    def read_all(
        self,
        topic: str,
        max_offset_inclusive: int,
        group: str,
        timeout_seconds: float | None = None,
    ) -> Iterator[str | None]:
        """Yield payloads of ``topic`` up to ``max_offset_inclusive``.

        The generator is single-pass; closing it early closes the consumer.
        Without ``timeout_seconds`` the read keeps polling until the offset
        arrives. Payloads that are not valid UTF-8 are decoded with
        replacement characters.

        Raises:
            LifecycleTimeoutError: If ``timeout_seconds`` was given and the
                offset was not reached within it
        """
        consumer = self._client.create_consumer(group)
        try:
            consumer.subscribe(topic)
            pending: deque[ModelConsumedRecord] = deque(
                consumer.poll(self._initial_poll_timeout_seconds)
            )
            deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds
            while True:
                if not pending:
                    if deadline is not None and time.monotonic() > deadline:
                        raise LifecycleTimeoutError(
                            f"Offset {max_offset_inclusive} of topic '{topic}' not "
                            f"reached within {timeout_seconds}s",
                            context=ModelHarnessErrorContext(
                                component="message_exchange",
                                operation="read_all",
                                target_name=topic,
                            ),
                            group=group,
                        )
                    pending.extend(consumer.poll(self._poll_timeout_seconds))
                    continue
                record = pending.popleft()
                logger.debug(
                    "Read offset %d from %s",
                    record.offset,
                    topic,
                    extra={"topic": topic, "group": group},
                )
                yield decode_payload(record.value)
                if record.offset >= max_offset_inclusive:
                    return
        finally:
            consumer.close()

    def read_all_list(
        self,
        topic: str,
        max_offset_inclusive: int,
        group: str,
        timeout_seconds: float | None = None,
    ) -> list[str | None]:
        return list(self.read_all(topic, max_offset_inclusive, group, timeout_seconds))


__all__ = ["MessageExchangeDriver"]
