# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Topic Provisioner with metadata validation.

Creates topics on an ephemeral cluster and confirms their metadata has
converged before anything reads or writes them. Topic metadata propagates
asynchronously through the coordination layer, so a freshly created topic
may be unknown, or report a stale partition count, for a short while.

Design:
    - Create is idempotent: an existing topic is logged and tolerated
    - Create does not wait; validate() is the only blocking step
    - Validation is bounded: ``max_attempts`` attempts, each limited to and
      paced by ``attempt_timeout_seconds``
    - Transient describe failures count as attempts and are logged, never
      raised; exhaustion raises TopicValidationError
"""

from __future__ import annotations

import logging
import time
from uuid import UUID, uuid4

from streamtask_harness.errors import (
    ModelHarnessErrorContext,
    TopicAlreadyExistsError,
    TopicValidationError,
)
from streamtask_harness.protocols import ProtocolBrokerClient
from streamtask_harness.utils import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_VALIDATION_ATTEMPTS = 10
DEFAULT_ATTEMPT_TIMEOUT_SECONDS = 0.5


class TopicProvisioner:
    """Creates topics and waits for their metadata to converge.

    Example:
        >>> provisioner = TopicProvisioner(cluster.create_admin_client())
        >>> provisioner.ensure_topic("input", partition_count=1, replication_factor=3)
    """

    def __init__(
        self,
        client: ProtocolBrokerClient,
        max_attempts: int = DEFAULT_VALIDATION_ATTEMPTS,
        attempt_timeout_seconds: float = DEFAULT_ATTEMPT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the provisioner.

        Args:
            client: Broker client used for create and describe requests
            max_attempts: Validation attempts before giving up
            attempt_timeout_seconds: Bound and pacing of one attempt
        """
        self._client = client
        self._max_attempts = max_attempts
        self._attempt_timeout_seconds = attempt_timeout_seconds

    @property
    def client(self) -> ProtocolBrokerClient:
        return self._client

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def create_topic(
        self,
        name: str,
        partition_count: int,
        replication_factor: int,
        correlation_id: UUID | None = None,
    ) -> bool:
        """Issue a create request for ``name``.

        Returns:
            True if the topic was created, False if it already existed.
        """
        correlation_id = correlation_id or uuid4()
        try:
            self._client.create_topic(name, partition_count, replication_factor)
        except TopicAlreadyExistsError:
            logger.info(
                "Topic already exists: %s",
                name,
                extra={"topic": name, "correlation_id": str(correlation_id)},
            )
            return False

        logger.info(
            "Created topic: %s (partitions=%d, replication=%d)",
            name,
            partition_count,
            replication_factor,
            extra={"topic": name, "correlation_id": str(correlation_id)},
        )
        return True

    def validate(
        self,
        name: str,
        expected_partition_count: int,
        correlation_id: UUID | None = None,
    ) -> None:
        """Wait until ``name`` reports ``expected_partition_count`` partitions.

        Raises:
            TopicValidationError: If metadata did not converge within
                ``max_attempts`` attempts.
        """
        correlation_id = correlation_id or uuid4()
        last_observed: int | None = None

        for attempt in range(1, self._max_attempts + 1):
            started = time.monotonic()
            try:
                last_observed = self._client.describe_topic(
                    name, timeout_seconds=self._attempt_timeout_seconds
                )
                if last_observed == expected_partition_count:
                    logger.info(
                        "Topic %s validated with %d partition(s)",
                        name,
                        last_observed,
                        extra={
                            "topic": name,
                            "attempt": attempt,
                            "correlation_id": str(correlation_id),
                        },
                    )
                    return
                logger.debug(
                    "Topic %s reports %d partition(s), expected %d",
                    name,
                    last_observed,
                    expected_partition_count,
                    extra={"topic": name, "attempt": attempt},
                )
            except Exception as e:
                logger.info(
                    "Topic %s not ready on attempt %d/%d: %s",
                    name,
                    attempt,
                    self._max_attempts,
                    sanitize_error_message(e),
                    extra={"topic": name, "correlation_id": str(correlation_id)},
                )

            if attempt < self._max_attempts:
                elapsed = time.monotonic() - started
                time.sleep(max(self._attempt_timeout_seconds - elapsed, 0.0))

        raise TopicValidationError(
            f"Could not validate topic '{name}' with {expected_partition_count} "
            f"partition(s). Tried to validate {self._max_attempts} times "
            f"(last observed partition count: {last_observed}).",
            context=ModelHarnessErrorContext(
                component="topic_provisioner",
                operation="validate",
                target_name=name,
                correlation_id=correlation_id,
            ),
            attempts=self._max_attempts,
            expected_partition_count=expected_partition_count,
            observed_partition_count=last_observed,
        )

    def ensure_topic(
        self,
        name: str,
        partition_count: int,
        replication_factor: int,
        correlation_id: UUID | None = None,
    ) -> None:
        """Create ``name`` if needed, then validate its partition count."""
        correlation_id = correlation_id or uuid4()
        self.create_topic(name, partition_count, replication_factor, correlation_id)
        self.validate(name, partition_count, correlation_id)


__all__ = [
    "DEFAULT_ATTEMPT_TIMEOUT_SECONDS",
    "DEFAULT_VALIDATION_ATTEMPTS",
    "TopicProvisioner",
]
