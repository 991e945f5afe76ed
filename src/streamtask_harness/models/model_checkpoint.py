# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Checkpoint model.

A Checkpoint is an immutable snapshot of a partition-offset map: for each
SystemStreamPartition, the offset string of the last processed record.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from streamtask_harness.models.model_system_stream_partition import (
    SystemStreamPartition,
)

PartitionOffsetMap = Mapping[SystemStreamPartition, str]


class Checkpoint:
    """Immutable snapshot of offsets keyed by partition identity.

    The offsets are copied on construction and exposed read-only, so a
    Checkpoint never changes after it is built.

    Example:
        >>> ssp = SystemStreamPartition(system="kafka", stream="topic", partition=0)
        >>> checkpoint = Checkpoint({ssp: "123"})
        >>> checkpoint.offsets[ssp]
        '123'
    """

    __slots__ = ("_offsets",)

    def __init__(self, offsets: PartitionOffsetMap) -> None:
        copied: dict[SystemStreamPartition, str] = {}
        for ssp, offset in offsets.items():
            if not isinstance(ssp, SystemStreamPartition):
                raise TypeError(
                    f"Checkpoint keys must be SystemStreamPartition, got {type(ssp).__name__}"
                )
            if not isinstance(offset, str):
                raise TypeError(
                    f"Checkpoint offsets must be strings, got {type(offset).__name__} for {ssp}"
                )
            copied[ssp] = offset
        self._offsets: Mapping[SystemStreamPartition, str] = MappingProxyType(copied)

    @property
    def offsets(self) -> Mapping[SystemStreamPartition, str]:
        """Read-only view of the partition-offset map."""
        return self._offsets

    def offset_for(self, ssp: SystemStreamPartition) -> str | None:
        return self._offsets.get(ssp)

    def __iter__(self) -> Iterator[SystemStreamPartition]:
        return iter(self._offsets)

    def __len__(self) -> int:
        return len(self._offsets)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Checkpoint):
            return NotImplemented
        return dict(self._offsets) == dict(other._offsets)

    def __hash__(self) -> int:
        return hash(frozenset(self._offsets.items()))

    def __repr__(self) -> str:
        entries = ", ".join(
            f"{ssp}={offset}"
            for ssp, offset in sorted(
                self._offsets.items(), key=lambda item: item[0].sort_key()
            )
        )
        return f"Checkpoint({entries})"


__all__ = ["Checkpoint", "PartitionOffsetMap"]
