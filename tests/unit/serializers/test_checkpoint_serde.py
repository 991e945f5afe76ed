# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for CheckpointSerde.

Covers:
- Round trip of single- and multi-partition checkpoints
- Null input returns None
- Deterministic encoding
- Malformed input raises CheckpointDecodeError
"""

from __future__ import annotations

import json

import pytest

from streamtask_harness.errors import CheckpointDecodeError
from streamtask_harness.models import Checkpoint, SystemStreamPartition
from streamtask_harness.serializers import CheckpointSerde
from streamtask_harness.testing import FIRST_CHECKPOINT, SECOND_CHECKPOINT

pytestmark = pytest.mark.unit


@pytest.fixture
def serde() -> CheckpointSerde:
    return CheckpointSerde()


class TestCheckpointSerdeRoundTrip:
    """Encoding then decoding preserves offsets."""

    def test_single_partition_round_trip(self, serde: CheckpointSerde) -> None:
        """A partition with a high number keeps its offset string."""
        ssp = SystemStreamPartition(system="test-system", stream="test-stream", partition=777)
        checkpoint = Checkpoint({ssp: "1"})

        restored = serde.from_bytes(serde.to_bytes(checkpoint))

        assert restored is not None
        assert restored == checkpoint
        assert restored.offsets[ssp] == "1"

    def test_multi_partition_round_trip(self, serde: CheckpointSerde) -> None:
        """Every entry survives, including offsets that are not numbers."""
        offsets = {
            SystemStreamPartition(system="kafka", stream="input", partition=p): f"off-{p}"
            for p in range(5)
        }
        restored = serde.from_bytes(serde.to_bytes(Checkpoint(offsets)))

        assert restored is not None
        assert len(restored) == 5
        assert dict(restored.offsets) == offsets

    def test_reference_checkpoints_are_distinct(self, serde: CheckpointSerde) -> None:
        """The shipped reference checkpoints encode to different bytes."""
        assert serde.to_bytes(FIRST_CHECKPOINT) != serde.to_bytes(SECOND_CHECKPOINT)
        assert serde.from_bytes(serde.to_bytes(SECOND_CHECKPOINT)) == SECOND_CHECKPOINT

    def test_encoding_is_deterministic(self, serde: CheckpointSerde) -> None:
        """Insertion order does not affect the encoded bytes."""
        a = SystemStreamPartition(system="kafka", stream="a", partition=0)
        b = SystemStreamPartition(system="kafka", stream="b", partition=1)

        first = serde.to_bytes(Checkpoint({a: "1", b: "2"}))
        second = serde.to_bytes(Checkpoint({b: "2", a: "1"}))

        assert first == second

    def test_dotted_names_do_not_collide(self, serde: CheckpointSerde) -> None:
        """Partitions whose dotted forms coincide stay separate entries."""
        inner = SystemStreamPartition(system="kafka", stream="a.b", partition=0)
        outer = SystemStreamPartition(system="kafka.a", stream="b", partition=0)
        assert str(inner) == str(outer)
        checkpoint = Checkpoint({inner: "1", outer: "2"})

        restored = serde.from_bytes(serde.to_bytes(checkpoint))

        assert restored is not None
        assert len(restored) == 2
        assert restored.offsets[inner] == "1"
        assert restored.offsets[outer] == "2"

    def test_wire_shape(self, serde: CheckpointSerde) -> None:
        """Entries are keyed by the JSON identity triple with string fields."""
        document = json.loads(serde.to_bytes(FIRST_CHECKPOINT))

        assert document == {
            '["kafka","topic",0]': {
                "system": "kafka",
                "stream": "topic",
                "partition": "0",
                "offset": "123",
            }
        }


class TestCheckpointSerdeNull:
    """Null input is a no-op."""

    def test_none_returns_none(self, serde: CheckpointSerde) -> None:
        assert serde.from_bytes(None) is None

    def test_empty_checkpoint_round_trip(self, serde: CheckpointSerde) -> None:
        """An empty checkpoint is not the same as no checkpoint."""
        restored = serde.from_bytes(serde.to_bytes(Checkpoint({})))

        assert restored is not None
        assert len(restored) == 0


class TestCheckpointSerdeMalformed:
    """Malformed non-null input raises CheckpointDecodeError."""

    @pytest.mark.parametrize(
        "data",
        [
            pytest.param(b"not json", id="not-json"),
            pytest.param(b"\xff\xfe", id="not-utf8"),
            pytest.param(b"[1, 2]", id="not-an-object"),
            pytest.param(
                b'{"k": {"system": "kafka", "stream": "t", "partition": "0"}}',
                id="missing-offset",
            ),
            pytest.param(
                b'{"k": {"system": "kafka", "stream": "t", "partition": "0", "offset": 5}}',
                id="numeric-offset",
            ),
            pytest.param(
                b'{"k": {"system": "kafka", "stream": "t", "partition": "x", "offset": "5"}}',
                id="non-numeric-partition",
            ),
            pytest.param(
                b'{"k": {"system": "kafka", "stream": "t", "partition": "-1", "offset": "5"}}',
                id="negative-partition",
            ),
        ],
    )
    def test_malformed_input_raises(self, serde: CheckpointSerde, data: bytes) -> None:
        with pytest.raises(CheckpointDecodeError):
            serde.from_bytes(data)

    def test_duplicate_partition_raises(self, serde: CheckpointSerde) -> None:
        """Two entries naming the same partition are rejected."""
        entry = {"system": "kafka", "stream": "t", "partition": "0", "offset": "1"}
        data = json.dumps({"first": entry, "second": dict(entry, offset="2")}).encode()

        with pytest.raises(CheckpointDecodeError, match="more than once"):
            serde.from_bytes(data)

    def test_decode_error_is_value_error(self, serde: CheckpointSerde) -> None:
        """Callers catching ValueError also see decode failures."""
        with pytest.raises(ValueError):
            serde.from_bytes(b"{")
