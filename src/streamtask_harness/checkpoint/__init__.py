# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Checkpoint persistence for stream jobs."""

from streamtask_harness.checkpoint.checkpoint_manager import CheckpointManager

__all__: list[str] = ["CheckpointManager"]
