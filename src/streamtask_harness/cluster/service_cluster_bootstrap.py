# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Cluster Bootstrap Manager.

Stands up an ephemeral coordination service plus N brokers for one harness
run and guarantees their teardown. All on-disk state lives under a
process-unique temporary root, so concurrent runs never share directories.

Startup order:
    1. Create the state root
    2. Start the coordinator
    3. Start brokers 0..N-1 against the coordinator

Teardown order (every step guarded, failures collected not raised):
    1. Shut down each broker
    2. Delete each broker's log directories
    3. Close admin clients
    4. Shut down the coordinator
    5. Remove the state root

Usage:
    ```python
    with ClusterBootstrapManager(InMemoryClusterBackend(), broker_count=3) as cluster:
        handle = cluster.start()
        client = cluster.create_admin_client()
        ...
    # torn down here, even when the body raised
    ```
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType

from streamtask_harness.config import consumer_coordinator_key, producer_bootstrap_key
from streamtask_harness.errors import ClusterStateError, ModelHarnessErrorContext
from streamtask_harness.models import ModelTeardownFailure, ModelTeardownReport
from streamtask_harness.protocols import (
    ProtocolBrokerClient,
    ProtocolBrokerProcess,
    ProtocolClusterBackend,
    ProtocolCoordinatorProcess,
)
from streamtask_harness.utils import sanitize_error_message

logger = logging.getLogger(__name__)

STATE_ROOT_PREFIX = "streamtask-harness"
DEFAULT_SYSTEM = "kafka"


@dataclass(frozen=True)
class ClusterHandle:
    """Running cluster as seen by the rest of the harness."""

    coordinator: ProtocolCoordinatorProcess
    brokers: tuple[ProtocolBrokerProcess, ...]
    state_root: Path
    bootstrap_servers: str = field(init=False)
    coordinator_connect: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "bootstrap_servers", ",".join(broker.address for broker in self.brokers)
        )
        object.__setattr__(self, "coordinator_connect", self.coordinator.connect_string)


class ClusterBootstrapManager:
    """Owns the lifecycle of one ephemeral cluster.

    A manager starts at most one cluster. Calling start() again before
    teardown() is a programming error and raises ClusterStateError; it is
    never retried. After teardown() the manager may start a fresh cluster.

    Attributes:
        backend: Backend that launches coordinator and broker processes
        broker_count: Number of brokers to start
    """

    def __init__(
        self,
        backend: ProtocolClusterBackend,
        broker_count: int = 3,
        state_root: Path | None = None,
    ) -> None:
        if broker_count < 1:
            raise ClusterStateError(
                f"broker_count must be >= 1, got {broker_count}",
                context=self._context("init"),
            )
        self.backend = backend
        self.broker_count = broker_count
        self._state_parent = state_root
        self._state_root: Path | None = None
        self._coordinator: ProtocolCoordinatorProcess | None = None
        self._brokers: list[ProtocolBrokerProcess] = []
        self._admin_clients: list[ProtocolBrokerClient] = []
        self._handle: ClusterHandle | None = None
        self._lock = threading.Lock()

    @property
    def handle(self) -> ClusterHandle:
        """The running cluster.

        Raises:
            ClusterStateError: If the cluster is not started
        """
        if self._handle is None:
            raise ClusterStateError(
                "Cluster is not started", context=self._context("handle")
            )
        return self._handle

    @property
    def is_started(self) -> bool:
        return self._handle is not None

    def start(self) -> ClusterHandle:
        """Start the coordinator, then every broker.

        On any failure, whatever was started is torn down before the error
        propagates.

        Raises:
            ClusterStateError: If a cluster is already running
            InfraUnavailableError: If a process cannot be started
        """
        with self._lock:
            if self._state_root is not None:
                raise ClusterStateError(
                    "Cluster already started; call teardown() before starting again",
                    context=self._context("start"),
                )
            if self._state_parent is not None:
                self._state_parent.mkdir(parents=True, exist_ok=True)
            self._state_root = Path(
                tempfile.mkdtemp(
                    prefix=f"{STATE_ROOT_PREFIX}-{os.getpid()}-",
                    dir=str(self._state_parent) if self._state_parent is not None else None,
                )
            )

        state_root = self._state_root
        try:
            self._coordinator = self.backend.start_coordinator(state_root / "coordinator")
            for broker_id in range(self.broker_count):
                broker = self.backend.start_broker(
                    broker_id, self._coordinator, state_root / f"broker-{broker_id}"
                )
                self._brokers.append(broker)
        except Exception as e:
            logger.warning(
                "Cluster start failed, tearing down partial cluster: %s",
                sanitize_error_message(e),
                extra={"state_root": str(state_root), "brokers_started": len(self._brokers)},
            )
            self.teardown()
            raise

        self._handle = ClusterHandle(
            coordinator=self._coordinator,
            brokers=tuple(self._brokers),
            state_root=state_root,
        )
        logger.info(
            "Cluster started",
            extra={
                "bootstrap_servers": self._handle.bootstrap_servers,
                "coordinator_connect": self._handle.coordinator_connect,
                "broker_count": self.broker_count,
            },
        )
        return self._handle

    def create_admin_client(self) -> ProtocolBrokerClient:
        """Create a broker client for the running cluster, closed on teardown."""
        client = self.backend.create_client(self.handle.bootstrap_servers)
        with self._lock:
            self._admin_clients.append(client)
        return client

    def job_config_overrides(self, system: str = DEFAULT_SYSTEM) -> dict[str, str]:
        """Job configuration keys pointing a job at this cluster."""
        handle = self.handle
        return {
            producer_bootstrap_key(system): handle.bootstrap_servers,
            consumer_coordinator_key(system): handle.coordinator_connect,
        }

    def teardown(self) -> ModelTeardownReport:
        """Release every resource of the cluster.

        Never raises. Safe to call repeatedly, after a failed start, and
        before start (a no-op then).
        """
        with self._lock:
            brokers, self._brokers = self._brokers, []
            clients, self._admin_clients = self._admin_clients, []
            coordinator, self._coordinator = self._coordinator, None
            state_root, self._state_root = self._state_root, None
            self._handle = None

        failures: list[ModelTeardownFailure] = []
        steps = 0

        def run(step: str, target: str, action: Callable[[], None]) -> None:
            nonlocal steps
            steps += 1
            try:
                action()
            except Exception as e:  # teardown collects every failure
                error = sanitize_error_message(e)
                logger.warning(
                    "Teardown step %s failed for %s: %s",
                    step,
                    target,
                    error,
                    extra={"step": step, "target": target},
                )
                failures.append(ModelTeardownFailure(step=step, target=target, error=error))

        for broker in brokers:
            run("shutdown_broker", f"broker-{broker.broker_id}", broker.shutdown)
        for broker in brokers:
            for log_dir in broker.log_dirs:
                run("delete_log_dirs", str(log_dir), _remover(log_dir))
        for client in clients:
            run("close_admin_client", type(client).__name__, client.close)
        if coordinator is not None:
            run("shutdown_coordinator", coordinator.connect_string, coordinator.shutdown)
        if state_root is not None:
            run("remove_state_root", str(state_root), _remover(state_root))

        report = ModelTeardownReport(steps_attempted=steps, failures=tuple(failures))
        if steps:
            logger.info(
                "Cluster torn down",
                extra={"steps_attempted": steps, "failures": len(failures)},
            )
        return report

    def __enter__(self) -> ClusterBootstrapManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.teardown()

    @staticmethod
    def _context(operation: str) -> ModelHarnessErrorContext:
        return ModelHarnessErrorContext(component="cluster_bootstrap", operation=operation)


def _remover(path: Path) -> Callable[[], None]:
    def remove() -> None:
        if path.exists():
            shutil.rmtree(path)

    return remove


__all__ = ["ClusterBootstrapManager", "ClusterHandle"]
