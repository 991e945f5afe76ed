# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stream and partition identity models.

``SystemStream`` names one stream (a topic) within a system (a cluster);
``SystemStreamPartition`` narrows it to one partition. Both are frozen and
hashable so they can key offset maps.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SystemStream(BaseModel):
    """A stream within a named system.

    Attributes:
        system: System name as configured under ``systems.<name>``
        stream: Stream (topic) name
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    system: str = Field(..., min_length=1, description="System name")
    stream: str = Field(..., min_length=1, description="Stream (topic) name")

    @classmethod
    def parse(cls, value: str) -> SystemStream:
        """Parse the ``system.stream`` notation used by ``task.inputs``.

        Only the first dot separates the system; stream names may contain dots.

        Raises:
            ValueError: If the value has no system prefix.
        """
        system, sep, stream = value.strip().partition(".")
        if not sep or not system or not stream:
            raise ValueError(f"'{value}' is not in system.stream form")
        return cls(system=system, stream=stream)

    def __str__(self) -> str:
        return f"{self.system}.{self.stream}"


class SystemStreamPartition(BaseModel):
    """One partition of a stream within a system.

    Attributes:
        system: System name
        stream: Stream (topic) name
        partition: Partition number (0-based)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    system: str = Field(..., min_length=1, description="System name")
    stream: str = Field(..., min_length=1, description="Stream (topic) name")
    partition: int = Field(..., ge=0, description="Partition number")

    @property
    def system_stream(self) -> SystemStream:
        """The stream this partition belongs to."""
        return SystemStream(system=self.system, stream=self.stream)

    def sort_key(self) -> tuple[str, str, int]:
        """Stable ordering key."""
        return (self.system, self.stream, self.partition)

    def __str__(self) -> str:
        return f"{self.system}.{self.stream}.{self.partition}"


__all__ = ["SystemStream", "SystemStreamPartition"]
