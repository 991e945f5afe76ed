# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Task registry and synchronization gates."""

from streamtask_harness.registry.rearmable_gate import CountdownGate, RearmableGate
from streamtask_harness.registry.task_registry import (
    DEFAULT_REGISTRY_TIMEOUT_SECONDS,
    TaskRegistry,
    TaskRegistryEntry,
)

__all__: list[str] = [
    "CountdownGate",
    "DEFAULT_REGISTRY_TIMEOUT_SECONDS",
    "RearmableGate",
    "TaskRegistry",
    "TaskRegistryEntry",
]
