# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Checkpoint serializer.

Encodes a Checkpoint as a JSON object with one entry per partition::

    {
      "[\"kafka\",\"topic\",0]": {
        "system": "kafka",
        "stream": "topic",
        "partition": "0",
        "offset": "123"
      }
    }

The entry key is the compact JSON of the ``[system, stream, partition]``
triple, so dotted system and stream names never collide. Decoding rebuilds
each partition identity from the entry fields. Encoding sorts keys, so equal
checkpoints encode to equal bytes.

Null Handling:
    ``from_bytes(None)`` returns None. A missing checkpoint is a normal state
    (first run of a job) and is not an error. Malformed non-null input raises
    CheckpointDecodeError.
"""

from __future__ import annotations

import json
import logging

from pydantic import BaseModel, ConfigDict, StrictStr, TypeAdapter, ValidationError

from streamtask_harness.errors import CheckpointDecodeError, ModelHarnessErrorContext
from streamtask_harness.models import Checkpoint, SystemStreamPartition

logger = logging.getLogger(__name__)


class _ModelCheckpointEntry(BaseModel):
    """Wire shape of one partition entry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    system: StrictStr
    stream: StrictStr
    partition: int
    offset: StrictStr


_ENTRIES_ADAPTER: TypeAdapter[dict[str, _ModelCheckpointEntry]] = TypeAdapter(
    dict[str, _ModelCheckpointEntry]
)


class CheckpointSerde:
    """Encode and decode checkpoints.

    Example:
        >>> serde = CheckpointSerde()
        >>> ssp = SystemStreamPartition(system="test-system", stream="test-stream", partition=777)
        >>> restored = serde.from_bytes(serde.to_bytes(Checkpoint({ssp: "1"})))
        >>> restored.offsets[ssp]
        '1'
        >>> serde.from_bytes(None) is None
        True
    """

    def to_bytes(self, checkpoint: Checkpoint) -> bytes:
        """Encode a checkpoint as UTF-8 JSON."""
        document = {
            _entry_key(ssp): {
                "system": ssp.system,
                "stream": ssp.stream,
                "partition": str(ssp.partition),
                "offset": offset,
            }
            for ssp, offset in checkpoint.offsets.items()
        }
        return json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def from_bytes(self, data: bytes | None) -> Checkpoint | None:
        """Decode checkpoint bytes.

        Args:
            data: Encoded checkpoint, or None when nothing was persisted

        Returns:
            The decoded checkpoint, or None for None input.

        Raises:
            CheckpointDecodeError: If ``data`` is not a valid encoded checkpoint.
        """
        if data is None:
            return None

        context = ModelHarnessErrorContext(component="checkpoint", operation="from_bytes")
        try:
            document = json.loads(bytes(data).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
            raise CheckpointDecodeError(
                "Checkpoint bytes are not valid UTF-8 JSON",
                context=context,
                length=len(data),
            ) from e

        try:
            entries = _ENTRIES_ADAPTER.validate_python(document)
        except ValidationError as e:
            raise CheckpointDecodeError(
                f"Checkpoint JSON has an invalid shape: {e.error_count()} error(s)",
                context=context,
                errors=[error["msg"] for error in e.errors()],
            ) from e

        offsets: dict[SystemStreamPartition, str] = {}
        for entry_key, entry in entries.items():
            try:
                ssp = SystemStreamPartition(
                    system=entry.system, stream=entry.stream, partition=entry.partition
                )
            except ValidationError as e:
                raise CheckpointDecodeError(
                    f"Checkpoint entry '{entry_key}' is not a valid partition identity",
                    context=context,
                ) from e
            if ssp in offsets:
                raise CheckpointDecodeError(
                    f"Checkpoint lists partition {ssp} more than once",
                    context=context,
                )
            offsets[ssp] = entry.offset

        logger.debug("Decoded checkpoint with %d partition(s)", len(offsets))
        return Checkpoint(offsets)


def _entry_key(ssp: SystemStreamPartition) -> str:
    return json.dumps([ssp.system, ssp.stream, ssp.partition], separators=(",", ":"))


__all__ = ["CheckpointSerde"]
