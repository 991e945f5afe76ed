# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stream Task Harness Enumerations Module.

Exports:
    EnumApplicationStatus: Stream job lifecycle status
    EnumClusterBackend: Ephemeral infrastructure backend selection
    EnumGateState: One-shot synchronization gate state (ARMED, SIGNALED)
    EnumHarnessErrorCode: Error classification for HarnessError
    EnumOffsetDefault: Starting offset policy (OLDEST, UPCOMING)
"""

from streamtask_harness.enums.enum_application_status import (
    EnumApplicationStatus,
    is_allowed_transition,
)
from streamtask_harness.enums.enum_cluster_backend import EnumClusterBackend
from streamtask_harness.enums.enum_gate_state import EnumGateState
from streamtask_harness.enums.enum_harness_error_code import EnumHarnessErrorCode
from streamtask_harness.enums.enum_offset_default import EnumOffsetDefault

__all__: list[str] = [
    "EnumApplicationStatus",
    "EnumClusterBackend",
    "EnumGateState",
    "EnumHarnessErrorCode",
    "EnumOffsetDefault",
    "is_allowed_transition",
]
