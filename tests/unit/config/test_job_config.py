# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for JobConfig and DEFAULT_JOB_CONFIG."""

from __future__ import annotations

import pytest

from streamtask_harness.config import DEFAULT_JOB_CONFIG, JobConfig
from streamtask_harness.enums import EnumOffsetDefault
from streamtask_harness.errors import HarnessConfigurationError
from streamtask_harness.models import SystemStream

pytestmark = pytest.mark.unit

INPUT = SystemStream(system="kafka", stream="input")


class TestDefaultJobConfig:
    """The default configuration of a harness job."""

    def test_defaults(self) -> None:
        config = JobConfig(DEFAULT_JOB_CONFIG)

        assert config.task_inputs == [INPUT]
        assert config.msg_serde("kafka") == "string"
        assert config.offset_default(INPUT) == EnumOffsetDefault.OLDEST
        assert config.checkpoint_system == "kafka"
        assert config.checkpoint_replication_factor == 1
        assert config.reset_offset(INPUT) is False
        assert config["job.coordinator.system"] == "kafka"
        assert config["systems.kafka.consumer.auto.offset.reset"] == "smallest"

    def test_checkpoint_topic_name(self) -> None:
        config = JobConfig(DEFAULT_JOB_CONFIG)

        assert config.checkpoint_topic == "__checkpoint_stream-task-harness_1"


class TestJobConfigMapping:
    """JobConfig is a read-only mapping."""

    def test_read_only(self) -> None:
        config = JobConfig({"a": "1"})

        with pytest.raises(TypeError):
            config["a"] = "2"  # type: ignore[index]

    def test_with_overrides_returns_new_config(self) -> None:
        config = JobConfig({"a": "1", "b": "2"})

        merged = config.with_overrides({"b": "3", "c": "4"})

        assert dict(merged) == {"a": "1", "b": "3", "c": "4"}
        assert dict(config) == {"a": "1", "b": "2"}

    def test_rejects_non_string_values(self) -> None:
        with pytest.raises(HarnessConfigurationError):
            JobConfig({"task.commit.ms": 5})  # type: ignore[dict-item]


class TestJobConfigAccessors:
    """Typed accessors."""

    def test_task_inputs_deduplicated_in_order(self) -> None:
        config = JobConfig({"task.inputs": "kafka.b, kafka.a,kafka.b"})

        assert [str(s) for s in config.task_inputs] == ["kafka.b", "kafka.a"]

    @pytest.mark.parametrize("raw", ["", " , ", "input"])
    def test_task_inputs_invalid(self, raw: str) -> None:
        with pytest.raises(HarnessConfigurationError):
            _ = JobConfig({"task.inputs": raw}).task_inputs

    def test_commit_ms(self) -> None:
        assert JobConfig({}).commit_ms == 60000
        assert JobConfig({"task.commit.ms": "-1"}).commit_ms == -1

    def test_get_int_invalid(self) -> None:
        with pytest.raises(HarnessConfigurationError, match="integer"):
            JobConfig({"task.commit.ms": "soon"}).get_int("task.commit.ms", 0)

    @pytest.mark.parametrize(("raw", "expected"), [("true", True), ("FALSE", False), ("1", True)])
    def test_get_bool(self, raw: str, expected: bool) -> None:
        assert JobConfig({"flag": raw}).get_bool("flag", not expected) is expected

    def test_get_bool_invalid(self) -> None:
        with pytest.raises(HarnessConfigurationError, match="boolean"):
            JobConfig({"flag": "maybe"}).get_bool("flag", False)

    def test_stream_offset_default_wins(self) -> None:
        config = JobConfig(
            {
                "systems.kafka.offset.default": "oldest",
                "systems.kafka.streams.input.offset.default": "upcoming",
            }
        )

        assert config.offset_default(INPUT) == EnumOffsetDefault.UPCOMING

    def test_offset_default_unknown(self) -> None:
        config = JobConfig({"systems.kafka.offset.default": "newest"})

        with pytest.raises(HarnessConfigurationError):
            config.offset_default(INPUT)

    def test_missing_checkpoint_system(self) -> None:
        assert JobConfig({"task.checkpoint.system": " "}).checkpoint_system is None

    def test_require(self) -> None:
        with pytest.raises(HarnessConfigurationError, match="task.class"):
            JobConfig({}).require("task.class")

    def test_store_changelogs(self) -> None:
        config = JobConfig(
            {
                "stores.totals.changelog": "kafka.totals-changelog",
                "stores.counts.changelog": "kafka.counts.changelog",
                "stores.counts.changelog.replication.factor": "2",
                "stores.counts.factory": "some.Factory",
                "stores.empty.changelog": " ",
            }
        )

        assert config.store_changelogs == {
            "counts": SystemStream(system="kafka", stream="counts.changelog"),
            "totals": SystemStream(system="kafka", stream="totals-changelog"),
        }
        assert config.changelog_replication_factor("counts", 3) == 2
        assert config.changelog_replication_factor("totals", 3) == 3

    def test_store_changelog_invalid(self) -> None:
        config = JobConfig({"stores.counts.changelog": "no-system"})

        with pytest.raises(HarnessConfigurationError, match="store 'counts'"):
            _ = config.store_changelogs
