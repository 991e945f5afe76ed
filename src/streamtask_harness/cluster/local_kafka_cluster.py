# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Local Kafka Cluster Backend.

Launches ZooKeeper and Kafka brokers from a local Kafka distribution as
child processes. Each process gets a generated properties file, a free
loopback port and its own directories under the harness state root.
Readiness is a TCP probe of the listener port within a bounded timeout.

Layout under a state directory::

    <state_dir>/zookeeper.properties
    <state_dir>/data/                  ZooKeeper snapshots
    <state_dir>/zookeeper.log
    <state_dir>/server.properties      (broker)
    <state_dir>/logs/                  Kafka log.dirs
    <state_dir>/broker.log

Environment Variables:
    KAFKA_HOME: Root of the Kafka distribution (contains bin/ and config/)

Usage:
    ```python
    backend = LocalKafkaClusterBackend(Path(os.environ["KAFKA_HOME"]))
    with ClusterBootstrapManager(backend, broker_count=3) as cluster:
        handle = cluster.start()
    ```
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO

from streamtask_harness.cluster.kafka_broker_client import KafkaBrokerClient
from streamtask_harness.errors import (
    HarnessConfigurationError,
    InfraUnavailableError,
    ModelHarnessErrorContext,
)
from streamtask_harness.utils import DEFAULT_LOOPBACK_HOST, find_free_port, wait_for_port

logger = logging.getLogger(__name__)

ZOOKEEPER_START_SCRIPT = "zookeeper-server-start.sh"
KAFKA_START_SCRIPT = "kafka-server-start.sh"
SHUTDOWN_GRACE_SECONDS = 10.0


def render_properties(values: Mapping[str, object]) -> str:
    """Render a Java properties file, one ``key=value`` per line."""
    return "".join(f"{key}={value}\n" for key, value in values.items())


def zookeeper_properties(data_dir: Path, port: int) -> dict[str, object]:
    return {
        "dataDir": data_dir,
        "clientPort": port,
        "clientPortAddress": DEFAULT_LOOPBACK_HOST,
        "maxClientCnxns": 0,
        "admin.enableServer": "false",
    }


def broker_properties(
    broker_id: int, port: int, log_dir: Path, zookeeper_connect: str
) -> dict[str, object]:
    listener = f"PLAINTEXT://{DEFAULT_LOOPBACK_HOST}:{port}"
    return {
        "broker.id": broker_id,
        "listeners": listener,
        "advertised.listeners": listener,
        "log.dirs": log_dir,
        "zookeeper.connect": zookeeper_connect,
        "zookeeper.connection.timeout.ms": 6000,
        "zookeeper.session.timeout.ms": 6000,
        "auto.create.topics.enable": "false",
        "offsets.topic.replication.factor": 1,
        "transaction.state.log.replication.factor": 1,
        "transaction.state.log.min.isr": 1,
        "group.initial.rebalance.delay.ms": 0,
    }


class LocalServiceProcess:
    """A child process of the Kafka distribution listening on one port."""

    def __init__(
        self,
        name: str,
        command: Sequence[str],
        port: int,
        log_file: Path,
    ) -> None:
        self.name = name
        self.command = list(command)
        self.port = port
        self.log_file = log_file
        self._process: subprocess.Popen[bytes] | None = None
        self._log_handle: IO[bytes] | None = None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def start(self, startup_timeout_seconds: float) -> None:
        """Spawn the process and wait for its port.

        Raises:
            InfraUnavailableError: If the process exits or the port does not
                open within ``startup_timeout_seconds``.
        """
        context = ModelHarnessErrorContext(
            component="local_kafka_cluster", operation="start", target_name=self.name
        )
        self._log_handle = self.log_file.open("wb")
        try:
            self._process = subprocess.Popen(
                self.command,
                stdout=self._log_handle,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            self._close_log()
            raise InfraUnavailableError(
                f"Failed to launch {self.name}", context=context, command=self.command[0]
            ) from e

        if not wait_for_port(DEFAULT_LOOPBACK_HOST, self.port, startup_timeout_seconds):
            exit_code = self._process.poll()
            self.shutdown()
            raise InfraUnavailableError(
                f"{self.name} did not open port {self.port} within "
                f"{startup_timeout_seconds}s (exit code {exit_code}, see {self.log_file})",
                context=context,
                port=self.port,
                timeout_seconds=startup_timeout_seconds,
            )
        logger.info(
            "%s is listening", self.name, extra={"port": self.port, "pid": self.pid}
        )

    def shutdown(self) -> None:
        """Terminate the process, escalating to kill after a grace period."""
        process, self._process = self._process, None
        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=SHUTDOWN_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                logger.warning(
                    "%s ignored terminate, killing it", self.name, extra={"pid": process.pid}
                )
                process.kill()
                process.wait(timeout=SHUTDOWN_GRACE_SECONDS)
        self._close_log()

    def _close_log(self) -> None:
        handle, self._log_handle = self._log_handle, None
        if handle is not None:
            handle.close()


class LocalZooKeeper:
    """ZooKeeper child process acting as the cluster coordinator."""

    def __init__(self, process: LocalServiceProcess) -> None:
        self._process = process

    @property
    def connect_string(self) -> str:
        return f"{DEFAULT_LOOPBACK_HOST}:{self._process.port}"

    def shutdown(self) -> None:
        self._process.shutdown()


class LocalKafkaBroker:
    """Kafka broker child process."""

    def __init__(self, broker_id: int, process: LocalServiceProcess, log_dir: Path) -> None:
        self._broker_id = broker_id
        self._process = process
        self._log_dir = log_dir

    @property
    def broker_id(self) -> int:
        return self._broker_id

    @property
    def address(self) -> str:
        return f"{DEFAULT_LOOPBACK_HOST}:{self._process.port}"

    @property
    def log_dirs(self) -> tuple[Path, ...]:
        return (self._log_dir,)

    def shutdown(self) -> None:
        self._process.shutdown()


class LocalKafkaClusterBackend:
    """Cluster backend running a local Kafka distribution.

    Attributes:
        kafka_home: Root of the Kafka distribution
        startup_timeout_seconds: Time each process has to open its port
    """

    def __init__(self, kafka_home: Path, startup_timeout_seconds: float = 30.0) -> None:
        self.kafka_home = Path(kafka_home)
        self.startup_timeout_seconds = startup_timeout_seconds

    def script(self, name: str) -> Path:
        path = self.kafka_home / "bin" / name
        if not path.is_file():
            raise HarnessConfigurationError(
                f"Kafka distribution at '{self.kafka_home}' has no bin/{name}",
                context=ModelHarnessErrorContext(
                    component="local_kafka_cluster",
                    operation="resolve_script",
                    target_name=str(path),
                ),
            )
        return path

    def start_coordinator(self, state_dir: Path) -> LocalZooKeeper:
        script = self.script(ZOOKEEPER_START_SCRIPT)
        data_dir = state_dir / "data"
        data_dir.mkdir(parents=True, exist_ok=True)
        port = find_free_port()
        config_file = state_dir / "zookeeper.properties"
        config_file.write_text(
            render_properties(zookeeper_properties(data_dir, port)), encoding="utf-8"
        )
        process = LocalServiceProcess(
            "zookeeper", [str(script), str(config_file)], port, state_dir / "zookeeper.log"
        )
        process.start(self.startup_timeout_seconds)
        return LocalZooKeeper(process)

    def start_broker(
        self,
        broker_id: int,
        coordinator: LocalZooKeeper,
        state_dir: Path,
    ) -> LocalKafkaBroker:
        script = self.script(KAFKA_START_SCRIPT)
        log_dir = state_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        port = find_free_port()
        config_file = state_dir / "server.properties"
        config_file.write_text(
            render_properties(
                broker_properties(broker_id, port, log_dir, coordinator.connect_string)
            ),
            encoding="utf-8",
        )
        process = LocalServiceProcess(
            f"kafka-broker-{broker_id}",
            [str(script), str(config_file)],
            port,
            state_dir / "broker.log",
        )
        process.start(self.startup_timeout_seconds)
        return LocalKafkaBroker(broker_id, process, log_dir)

    def create_client(self, bootstrap_servers: str) -> KafkaBrokerClient:
        return KafkaBrokerClient(bootstrap_servers)


__all__ = [
    "LocalKafkaBroker",
    "LocalKafkaClusterBackend",
    "LocalServiceProcess",
    "LocalZooKeeper",
    "broker_properties",
    "render_properties",
    "zookeeper_properties",
]
