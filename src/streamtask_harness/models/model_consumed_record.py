# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Broker record models shared by every cluster backend."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelConsumedRecord(BaseModel):
    """A record returned by a consumer poll.

    ``value`` is None for tombstones; consumers must preserve that.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    topic: str = Field(..., description="Topic the record was read from")
    partition: int = Field(..., ge=0, description="Partition number")
    offset: int = Field(..., ge=0, description="Offset within the partition")
    key: bytes | None = Field(default=None, description="Record key")
    value: bytes | None = Field(default=None, description="Record payload or None")


class ModelRecordAck(BaseModel):
    """Broker acknowledgment of a produced record."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    topic: str = Field(..., description="Topic the record was written to")
    partition: int = Field(..., ge=0, description="Partition the record landed in")
    offset: int = Field(..., ge=0, description="Offset assigned by the broker")


__all__ = ["ModelConsumedRecord", "ModelRecordAck"]
