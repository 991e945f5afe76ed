# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job configuration.

A job is configured with an opaque mapping of string keys to string
values. JobConfig wraps that mapping read-only and adds typed accessors
for the keys the worker runtime understands. Unknown keys pass through
untouched to tasks via ``TaskContext.config``.

Recognized keys:
    job.name, job.id                      Job identity (checkpoint topic name)
    job.factory.class                     Dotted path of the job factory
    task.class                            Dotted path of the StreamTask class
    task.inputs                           Comma-separated ``system.stream`` list
    task.commit.ms                        Checkpoint interval; <= 0 disables
    task.checkpoint.system                System holding checkpoints
    task.checkpoint.replication.factor    Checkpoint topic replication
    task.checkpoint.topic                 Checkpoint topic override
    systems.<s>.msg.serde                 "string" decodes payloads as UTF-8
    systems.<s>.offset.default            oldest | upcoming
    systems.<s>.streams.<t>.offset.default  Per-stream override
    systems.<s>.streams.<t>.reset.offset    Ignore checkpoints when true
    stores.<n>.changelog                  ``system.stream`` changelog of store n
    stores.<n>.changelog.replication.factor  Changelog topic replication
    systems.<s>.producer.bootstrap.servers         Injected by the harness
    systems.<s>.consumer.zookeeper.connect         Injected by the harness
    job.logged.store.base.dir             Injected by the harness
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from streamtask_harness.enums import EnumOffsetDefault
from streamtask_harness.errors import HarnessConfigurationError, ModelHarnessErrorContext
from streamtask_harness.models import SystemStream

JOB_NAME = "job.name"
JOB_ID = "job.id"
JOB_FACTORY_CLASS = "job.factory.class"
JOB_LOGGED_STORE_BASE_DIR = "job.logged.store.base.dir"
TASK_CLASS = "task.class"
TASK_INPUTS = "task.inputs"
TASK_COMMIT_MS = "task.commit.ms"
TASK_CHECKPOINT_SYSTEM = "task.checkpoint.system"
TASK_CHECKPOINT_REPLICATION_FACTOR = "task.checkpoint.replication.factor"
TASK_CHECKPOINT_TOPIC = "task.checkpoint.topic"
STORES_PREFIX = "stores."
CHANGELOG_SUFFIX = ".changelog"

DEFAULT_JOB_NAME = "stream-task-harness"
DEFAULT_JOB_ID = "1"
DEFAULT_COMMIT_MS = 60000

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})

# Defaults of a harness job. Streams start at the oldest offset and
# checkpoints go to the "kafka" system.
DEFAULT_JOB_CONFIG: Mapping[str, str] = {
    JOB_NAME: DEFAULT_JOB_NAME,
    JOB_ID: DEFAULT_JOB_ID,
    JOB_FACTORY_CLASS: "streamtask_harness.job.job_runner.ThreadJobFactory",
    "job.coordinator.system": "kafka",
    "processor.id": "1",
    TASK_INPUTS: "kafka.input",
    "systems.kafka.msg.serde": "string",
    "systems.kafka.offset.default": "oldest",
    "systems.kafka.consumer.auto.offset.reset": "smallest",
    TASK_CHECKPOINT_SYSTEM: "kafka",
    TASK_CHECKPOINT_REPLICATION_FACTOR: "1",
    "systems.kafka.streams.input.reset.offset": "false",
}


def producer_bootstrap_key(system: str) -> str:
    return f"systems.{system}.producer.bootstrap.servers"


def consumer_coordinator_key(system: str) -> str:
    return f"systems.{system}.consumer.zookeeper.connect"


class JobConfig(Mapping[str, str]):
    """Read-only job configuration with typed accessors.

    Example:
        >>> config = JobConfig({"task.inputs": "kafka.input", "task.commit.ms": "-1"})
        >>> [str(s) for s in config.task_inputs]
        ['kafka.input']
        >>> config.commit_ms
        -1
    """

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        copied: dict[str, str] = {}
        for key, value in (values or {}).items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise HarnessConfigurationError(
                    "Job configuration keys and values must be strings",
                    context=ModelHarnessErrorContext(
                        component="job_config", operation="init", target_name=str(key)
                    ),
                )
            copied[key] = value
        self._values = copied

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"JobConfig({self._values!r})"

    def with_overrides(self, overrides: Mapping[str, str]) -> JobConfig:
        """Return a new JobConfig with ``overrides`` applied."""
        merged = dict(self._values)
        merged.update(overrides)
        return JobConfig(merged)

    def require(self, key: str) -> str:
        value = self._values.get(key)
        if value is None or value.strip() == "":
            raise HarnessConfigurationError(
                f"Missing required job configuration '{key}'",
                context=ModelHarnessErrorContext(
                    component="job_config", operation="require", target_name=key
                ),
            )
        return value

    def get_int(self, key: str, default: int) -> int:
        raw = self._values.get(key)
        if raw is None or raw.strip() == "":
            return default
        try:
            return int(raw.strip())
        except ValueError as e:
            raise HarnessConfigurationError(
                f"Job configuration '{key}' must be an integer, got '{raw}'",
                context=ModelHarnessErrorContext(
                    component="job_config", operation="get_int", target_name=key
                ),
            ) from e

    def get_bool(self, key: str, default: bool) -> bool:
        raw = self._values.get(key)
        if raw is None or raw.strip() == "":
            return default
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise HarnessConfigurationError(
            f"Job configuration '{key}' must be a boolean, got '{raw}'",
            context=ModelHarnessErrorContext(
                component="job_config", operation="get_bool", target_name=key
            ),
        )

    @property
    def job_name(self) -> str:
        return self._values.get(JOB_NAME) or DEFAULT_JOB_NAME

    @property
    def job_id(self) -> str:
        return self._values.get(JOB_ID) or DEFAULT_JOB_ID

    @property
    def task_inputs(self) -> list[SystemStream]:
        """Input streams in declaration order, duplicates removed."""
        raw = self.require(TASK_INPUTS)
        inputs: list[SystemStream] = []
        for item in raw.split(","):
            if not item.strip():
                continue
            try:
                stream = SystemStream.parse(item)
            except ValueError as e:
                raise HarnessConfigurationError(
                    f"Invalid entry '{item.strip()}' in {TASK_INPUTS}",
                    context=ModelHarnessErrorContext(
                        component="job_config", operation="task_inputs", target_name=TASK_INPUTS
                    ),
                ) from e
            if stream not in inputs:
                inputs.append(stream)
        if not inputs:
            raise HarnessConfigurationError(
                f"{TASK_INPUTS} lists no input streams",
                context=ModelHarnessErrorContext(
                    component="job_config", operation="task_inputs", target_name=TASK_INPUTS
                ),
            )
        return inputs

    @property
    def commit_ms(self) -> int:
        return self.get_int(TASK_COMMIT_MS, DEFAULT_COMMIT_MS)

    @property
    def checkpoint_system(self) -> str | None:
        value = self._values.get(TASK_CHECKPOINT_SYSTEM)
        return value.strip() if value and value.strip() else None

    @property
    def checkpoint_replication_factor(self) -> int:
        return self.get_int(TASK_CHECKPOINT_REPLICATION_FACTOR, 1)

    @property
    def checkpoint_topic(self) -> str:
        override = self._values.get(TASK_CHECKPOINT_TOPIC)
        if override and override.strip():
            return override.strip()
        return f"__checkpoint_{self.job_name}_{self.job_id}"

    @property
    def logged_store_base_dir(self) -> str | None:
        return self._values.get(JOB_LOGGED_STORE_BASE_DIR)

    def msg_serde(self, system: str) -> str | None:
        return self._values.get(f"systems.{system}.msg.serde")

    def offset_default(self, stream: SystemStream) -> EnumOffsetDefault:
        """Starting offset policy, stream-level setting first."""
        raw = self._values.get(
            f"systems.{stream.system}.streams.{stream.stream}.offset.default"
        ) or self._values.get(f"systems.{stream.system}.offset.default")
        if raw is None:
            return EnumOffsetDefault.UPCOMING
        try:
            return EnumOffsetDefault(raw.strip().lower())
        except ValueError as e:
            raise HarnessConfigurationError(
                f"Unknown offset default '{raw}' for {stream}",
                context=ModelHarnessErrorContext(
                    component="job_config", operation="offset_default", target_name=str(stream)
                ),
            ) from e

    def reset_offset(self, stream: SystemStream) -> bool:
        return self.get_bool(
            f"systems.{stream.system}.streams.{stream.stream}.reset.offset", False
        )

    @property
    def store_changelogs(self) -> dict[str, SystemStream]:
        """Changelog stream of every store with a ``stores.<name>.changelog`` key."""
        changelogs: dict[str, SystemStream] = {}
        for key in sorted(self._values):
            if not (key.startswith(STORES_PREFIX) and key.endswith(CHANGELOG_SUFFIX)):
                continue
            store = key[len(STORES_PREFIX) : -len(CHANGELOG_SUFFIX)]
            value = self._values[key].strip()
            if not store or not value:
                continue
            try:
                changelogs[store] = SystemStream.parse(value)
            except ValueError as e:
                raise HarnessConfigurationError(
                    f"Invalid changelog '{value}' for store '{store}'",
                    context=ModelHarnessErrorContext(
                        component="job_config", operation="store_changelogs", target_name=key
                    ),
                ) from e
        return changelogs

    def changelog_replication_factor(self, store: str, default: int) -> int:
        key = f"{STORES_PREFIX}{store}{CHANGELOG_SUFFIX}.replication.factor"
        return self.get_int(key, default)


__all__ = [
    "CHANGELOG_SUFFIX",
    "DEFAULT_JOB_CONFIG",
    "JOB_FACTORY_CLASS",
    "JOB_ID",
    "JOB_LOGGED_STORE_BASE_DIR",
    "JOB_NAME",
    "JobConfig",
    "STORES_PREFIX",
    "TASK_CHECKPOINT_REPLICATION_FACTOR",
    "TASK_CHECKPOINT_SYSTEM",
    "TASK_CHECKPOINT_TOPIC",
    "TASK_CLASS",
    "TASK_COMMIT_MS",
    "TASK_INPUTS",
    "consumer_coordinator_key",
    "producer_bootstrap_key",
]
