# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stream Task Harness Errors Module.

Exports:
    ModelHarnessErrorContext: Configuration model for bundled error context
    HarnessError: Base harness error class
    HarnessConfigurationError: Invalid settings or job configuration
    ClusterStateError: Cluster lifecycle driven out of order
    JobStateError: Illegal job status transition
    InfraUnavailableError: Coordination or broker service unavailable
    TopicAlreadyExistsError: Topic creation found an existing topic
    UnknownTopicError: Topic metadata not (yet) available
    CheckpointDecodeError: Malformed non-null checkpoint bytes
    HarnessAssertionError: Base for fatal test failures
    TopicValidationError: Topic metadata did not converge
    LifecycleTimeoutError: Lifecycle wait exceeded its budget
    LifecycleStatusError: Lifecycle wait observed the wrong status
    MessageDeliveryError: Delivered payload differs from the sent payload

Correlation ID Assignment:
    Each harness run generates one correlation ID with uuid4() and threads it
    through every ModelHarnessErrorContext and every ``extra`` logging dict,
    so that all log lines and failures of one run can be joined.

Example::

    from uuid import uuid4
    from streamtask_harness.errors import (
        ModelHarnessErrorContext,
        TopicValidationError,
    )

    context = ModelHarnessErrorContext(
        component="topics",
        operation="validate",
        target_name="input",
        correlation_id=uuid4(),
    )
    raise TopicValidationError("Tried to validate 10 times", context=context)
"""

from streamtask_harness.errors.harness_errors import (
    CheckpointDecodeError,
    ClusterStateError,
    HarnessAssertionError,
    HarnessConfigurationError,
    HarnessError,
    InfraUnavailableError,
    JobStateError,
    LifecycleStatusError,
    LifecycleTimeoutError,
    MessageDeliveryError,
    TopicAlreadyExistsError,
    TopicValidationError,
    UnknownTopicError,
)
from streamtask_harness.errors.model_harness_error_context import (
    ModelHarnessErrorContext,
)

__all__: list[str] = [
    # Configuration model
    "ModelHarnessErrorContext",
    # Error classes
    "HarnessError",
    "HarnessConfigurationError",
    "ClusterStateError",
    "JobStateError",
    "InfraUnavailableError",
    "TopicAlreadyExistsError",
    "UnknownTopicError",
    "CheckpointDecodeError",
    "HarnessAssertionError",
    "TopicValidationError",
    "LifecycleTimeoutError",
    "LifecycleStatusError",
    "MessageDeliveryError",
]
