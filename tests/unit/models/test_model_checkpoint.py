# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for Checkpoint and the partition identity models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from streamtask_harness.models import Checkpoint, SystemStream, SystemStreamPartition

pytestmark = pytest.mark.unit


class TestSystemStreamPartition:
    """Tests for the partition identity models."""

    def test_hashable_and_equal_by_value(self) -> None:
        a = SystemStreamPartition(system="kafka", stream="input", partition=0)
        b = SystemStreamPartition(system="kafka", stream="input", partition=0)

        assert a == b
        assert hash(a) == hash(b)
        assert {a: "1"}[b] == "1"

    def test_negative_partition_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SystemStreamPartition(system="kafka", stream="input", partition=-1)

    def test_str_and_system_stream(self) -> None:
        ssp = SystemStreamPartition(system="kafka", stream="input", partition=3)

        assert str(ssp) == "kafka.input.3"
        assert ssp.system_stream == SystemStream(system="kafka", stream="input")

    def test_parse_keeps_dots_in_stream(self) -> None:
        stream = SystemStream.parse("kafka.dev.events.v1")

        assert stream.system == "kafka"
        assert stream.stream == "dev.events.v1"

    @pytest.mark.parametrize("value", ["input", ".input", "kafka."])
    def test_parse_rejects_missing_parts(self, value: str) -> None:
        with pytest.raises(ValueError):
            SystemStream.parse(value)


class TestCheckpoint:
    """Tests for Checkpoint immutability and equality."""

    def test_source_mapping_changes_do_not_leak(self) -> None:
        ssp = SystemStreamPartition(system="kafka", stream="input", partition=0)
        source = {ssp: "1"}
        checkpoint = Checkpoint(source)

        source[ssp] = "2"

        assert checkpoint.offsets[ssp] == "1"

    def test_offsets_are_read_only(self) -> None:
        ssp = SystemStreamPartition(system="kafka", stream="input", partition=0)
        checkpoint = Checkpoint({ssp: "1"})

        with pytest.raises(TypeError):
            checkpoint.offsets[ssp] = "2"  # type: ignore[index]

    def test_rejects_non_string_offsets(self) -> None:
        ssp = SystemStreamPartition(system="kafka", stream="input", partition=0)

        with pytest.raises(TypeError):
            Checkpoint({ssp: 1})  # type: ignore[dict-item]

    def test_equality_and_lookup(self) -> None:
        ssp = SystemStreamPartition(system="kafka", stream="input", partition=0)
        other = SystemStreamPartition(system="kafka", stream="input", partition=1)

        assert Checkpoint({ssp: "1"}) == Checkpoint({ssp: "1"})
        assert Checkpoint({ssp: "1"}) != Checkpoint({ssp: "2"})
        assert Checkpoint({ssp: "1"}).offset_for(other) is None
