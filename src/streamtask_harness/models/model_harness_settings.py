# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Harness Settings Model.

Settings that shape one harness run: cluster size, topic layout, and the
timeout and retry budgets of every blocking operation.

Environment Variables:
    Every field can be overridden with ``STREAMTASK_HARNESS_<FIELD>`` in
    upper case, e.g. ``STREAMTASK_HARNESS_BROKER_COUNT=1``. Overrides apply
    on top of defaults (``default()``) and on top of YAML (``from_yaml()``).

    KAFKA_HOME is honored as a fallback for ``kafka_home``.

Usage:
    ```python
    settings = ModelHarnessSettings.default()
    settings = ModelHarnessSettings.from_yaml(Path("harness.yaml"))
    settings = ModelHarnessSettings(broker_count=1, replication_factor=1)
    ```
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from streamtask_harness.enums import EnumClusterBackend
from streamtask_harness.errors import HarnessConfigurationError, ModelHarnessErrorContext

logger = logging.getLogger(__name__)

ENV_PREFIX = "STREAMTASK_HARNESS_"
ENV_KAFKA_HOME = "KAFKA_HOME"


class ModelHarnessSettings(BaseModel):
    """Settings for one stream task harness run.

    Attributes:
        backend: Which ephemeral infrastructure to stand up
        broker_count: Number of brokers registered against the coordinator
        replication_factor: Replication factor of the input topic
        input_topic: Topic the worker consumes
        expected_task_count: Partitions of the input topic, one task each
        lifecycle_timeout_seconds: Budget of every job/registry wait
        topic_validation_attempts: Retry budget of topic metadata validation
        topic_validation_attempt_timeout_seconds: Bound of one validation attempt
        read_initial_poll_timeout_seconds: First poll timeout of read_all
        read_poll_timeout_seconds: Subsequent poll timeout of read_all
        produce_timeout_seconds: Time to wait for a broker acknowledgment
        state_root: Parent directory of the per-run ephemeral state directory
        kafka_home: Local Kafka distribution (required by the kafka backend)
        service_startup_timeout_seconds: Time a service process has to open its port
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: EnumClusterBackend = Field(
        default=EnumClusterBackend.INMEMORY,
        description="Ephemeral infrastructure backend",
    )
    broker_count: int = Field(default=3, ge=1, le=16, description="Number of brokers")
    replication_factor: int = Field(
        default=3, ge=1, description="Replication factor of the input topic"
    )
    input_topic: str = Field(default="input", min_length=1, description="Input topic")
    expected_task_count: int = Field(
        default=1, ge=1, description="Input partitions, one task per partition"
    )
    lifecycle_timeout_seconds: float = Field(
        default=60.0, gt=0.0, description="Budget of lifecycle and registry waits"
    )
    topic_validation_attempts: int = Field(
        default=10, ge=1, description="Retry budget of topic validation"
    )
    topic_validation_attempt_timeout_seconds: float = Field(
        default=0.5, gt=0.0, description="Bound of one topic validation attempt"
    )
    read_initial_poll_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="First poll timeout of read_all"
    )
    read_poll_timeout_seconds: float = Field(
        default=0.1, gt=0.0, description="Subsequent poll timeout of read_all"
    )
    produce_timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Time to wait for a produce acknowledgment"
    )
    state_root: Path | None = Field(
        default=None, description="Parent of the per-run state directory (tmp if None)"
    )
    kafka_home: Path | None = Field(
        default=None, description="Local Kafka distribution for the kafka backend"
    )
    service_startup_timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Time a service process has to open its port"
    )

    @model_validator(mode="after")
    def validate_cluster_shape(self) -> ModelHarnessSettings:
        """Replication cannot exceed brokers; the kafka backend needs a distribution."""
        if self.replication_factor > self.broker_count:
            raise ValueError(
                f"replication_factor {self.replication_factor} exceeds "
                f"broker_count {self.broker_count}"
            )
        if self.backend == EnumClusterBackend.KAFKA and self.kafka_home is None:
            raise ValueError(
                "backend 'kafka' requires kafka_home (or the KAFKA_HOME environment variable)"
            )
        return self

    @classmethod
    def default(cls) -> ModelHarnessSettings:
        """Create settings from defaults with environment overrides applied."""
        return cls._build({})

    @classmethod
    def from_yaml(cls, path: Path) -> ModelHarnessSettings:
        """Load settings from a YAML mapping, then apply environment overrides.

        Raises:
            FileNotFoundError: If the YAML file does not exist
            HarnessConfigurationError: If the content is not a mapping or invalid
        """
        with path.open(encoding="utf-8") as handle:
            content = yaml.safe_load(handle)

        if content is None:
            content = {}
        if not isinstance(content, Mapping):
            raise HarnessConfigurationError(
                f"Harness settings file must contain a mapping, got {type(content).__name__}",
                context=ModelHarnessErrorContext(
                    component="settings", operation="from_yaml", target_name=str(path)
                ),
            )
        return cls._build(dict(content))

    @classmethod
    def _build(cls, values: dict[str, object]) -> ModelHarnessSettings:
        merged = dict(values)
        merged.update(_environment_overrides())
        if merged.get("kafka_home") is None and os.environ.get(ENV_KAFKA_HOME):
            merged["kafka_home"] = os.environ[ENV_KAFKA_HOME]
        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            raise HarnessConfigurationError(
                f"Invalid harness settings: {e.error_count()} validation error(s)",
                context=ModelHarnessErrorContext(component="settings", operation="validate"),
                errors=[error["msg"] for error in e.errors()],
            ) from e


def _environment_overrides() -> dict[str, object]:
    overrides: dict[str, object] = {}
    for field_name in ModelHarnessSettings.model_fields:
        env_name = f"{ENV_PREFIX}{field_name.upper()}"
        raw = os.environ.get(env_name)
        if raw is None or raw.strip() == "":
            continue
        overrides[field_name] = raw.strip()
        logger.debug("Harness setting %s overridden from %s", field_name, env_name)
    return overrides


__all__ = ["ENV_PREFIX", "ModelHarnessSettings"]
