# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Test-facing harness for stream task integration tests."""

from streamtask_harness.testing.stream_task_harness import (
    FIRST_CHECKPOINT,
    REFERENCE_PARTITION,
    SECOND_CHECKPOINT,
    StreamTaskHarness,
)

__all__: list[str] = [
    "FIRST_CHECKPOINT",
    "REFERENCE_PARTITION",
    "SECOND_CHECKPOINT",
    "StreamTaskHarness",
]
