# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Data models for the stream task harness.

Exports:
    Checkpoint: Immutable partition-offset snapshot
    PartitionOffsetMap: Mapping type wrapped by Checkpoint
    SystemStream: Stream within a system
    SystemStreamPartition: Partition of a stream within a system
    ModelConsumedRecord: Record returned by a consumer poll
    ModelRecordAck: Broker acknowledgment of a produced record
    ModelHarnessSettings: Settings of one harness run
    ModelTeardownFailure: One failed cleanup step
    ModelTeardownReport: Outcome of a best-effort teardown
"""

from streamtask_harness.models.model_checkpoint import Checkpoint, PartitionOffsetMap
from streamtask_harness.models.model_consumed_record import (
    ModelConsumedRecord,
    ModelRecordAck,
)
from streamtask_harness.models.model_harness_settings import ModelHarnessSettings
from streamtask_harness.models.model_system_stream_partition import (
    SystemStream,
    SystemStreamPartition,
)
from streamtask_harness.models.model_teardown_report import (
    ModelTeardownFailure,
    ModelTeardownReport,
)

__all__: list[str] = [
    "Checkpoint",
    "ModelConsumedRecord",
    "ModelHarnessSettings",
    "ModelRecordAck",
    "ModelTeardownFailure",
    "ModelTeardownReport",
    "PartitionOffsetMap",
    "SystemStream",
    "SystemStreamPartition",
]
