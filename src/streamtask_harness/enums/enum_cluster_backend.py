# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Cluster backend selection enumeration."""

from __future__ import annotations

from enum import Enum


class EnumClusterBackend(str, Enum):
    """Which ephemeral infrastructure the harness stands up.

    Attributes:
        INMEMORY: In-process coordinator and brokers (no external processes)
        KAFKA: ZooKeeper and Kafka broker processes from a local distribution
    """

    INMEMORY = "inmemory"
    KAFKA = "kafka"


__all__ = ["EnumClusterBackend"]
