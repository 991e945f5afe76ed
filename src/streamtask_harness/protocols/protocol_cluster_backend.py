# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocol definitions for ephemeral cluster backends.

A backend knows how to bring up the coordination service and brokers of a
throwaway cluster, and how to build a broker client for it. The
ClusterBootstrapManager owns ordering, state directories and teardown; the
backend only starts processes.

Implementations:
    - InMemoryClusterBackend: in-process coordinator and brokers
    - LocalKafkaClusterBackend: ZooKeeper and Kafka from a local distribution
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from streamtask_harness.protocols.protocol_broker_client import (
        ProtocolBrokerClient,
    )

__all__ = [
    "ProtocolBrokerProcess",
    "ProtocolClusterBackend",
    "ProtocolCoordinatorProcess",
]


@runtime_checkable
class ProtocolCoordinatorProcess(Protocol):
    """A running coordination service."""

    @property
    def connect_string(self) -> str:
        """``host:port`` brokers and jobs use to reach the coordinator."""
        ...

    def shutdown(self) -> None: ...


@runtime_checkable
class ProtocolBrokerProcess(Protocol):
    """A running broker registered against a coordinator."""

    @property
    def broker_id(self) -> int: ...

    @property
    def address(self) -> str:
        """``host:port`` of the broker listener."""
        ...

    @property
    def log_dirs(self) -> tuple[Path, ...]: ...

    def shutdown(self) -> None: ...


@runtime_checkable
class ProtocolClusterBackend(Protocol):
    """Factory for the processes and clients of one ephemeral cluster.

    Raises:
        InfraUnavailableError: When a process cannot be started or does not
            become ready within the backend's startup timeout.
    """

    def start_coordinator(self, state_dir: Path) -> ProtocolCoordinatorProcess: ...

    def start_broker(
        self,
        broker_id: int,
        coordinator: ProtocolCoordinatorProcess,
        state_dir: Path,
    ) -> ProtocolBrokerProcess: ...

    def create_client(self, bootstrap_servers: str) -> ProtocolBrokerClient: ...
