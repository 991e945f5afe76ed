# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Serializers for persisted harness state."""

from streamtask_harness.serializers.checkpoint_serde import CheckpointSerde

__all__: list[str] = ["CheckpointSerde"]
