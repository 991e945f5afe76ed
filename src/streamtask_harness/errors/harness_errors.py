# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stream Task Harness Error Classes.

Error Hierarchy:
    HarnessError (base)
    ├── HarnessConfigurationError
    ├── ClusterStateError
    ├── JobStateError
    ├── InfraUnavailableError
    ├── TopicAlreadyExistsError
    ├── UnknownTopicError
    ├── CheckpointDecodeError (also a ValueError)
    └── HarnessAssertionError (also an AssertionError)
        ├── TopicValidationError
        ├── LifecycleTimeoutError
        ├── LifecycleStatusError
        └── MessageDeliveryError

HarnessAssertionError subclasses are fatal test failures. They derive from
AssertionError so pytest reports them as failed assertions, with the message
naming the expected and observed state and the budget that was exhausted.

All errors:
    - Carry an EnumHarnessErrorCode
    - Support chaining with ``raise ... from e``
    - Accept a ModelHarnessErrorContext plus free-form keyword context
"""

from __future__ import annotations

from uuid import UUID

from streamtask_harness.enums import EnumHarnessErrorCode
from streamtask_harness.errors.model_harness_error_context import (
    ModelHarnessErrorContext,
)


class HarnessError(Exception):
    """Base error class for the stream task harness.

    Structured Fields (via ModelHarnessErrorContext):
        component: Harness component raising the error
        operation: Operation being performed
        target_name: Target resource name
        correlation_id: Correlation ID of the harness run

    Example:
        >>> context = ModelHarnessErrorContext(
        ...     component="cluster",
        ...     operation="start",
        ... )
        >>> raise HarnessError("Operation failed", context=context, broker_count=3)
    """

    default_error_code: EnumHarnessErrorCode = EnumHarnessErrorCode.OPERATION_FAILED

    def __init__(
        self,
        message: str,
        error_code: EnumHarnessErrorCode | None = None,
        context: ModelHarnessErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        """Initialize HarnessError with structured fields.

        Args:
            message: Human-readable error message
            error_code: Error code (defaults to the class default)
            context: Bundled harness context (component, operation, ...)
            **extra_context: Additional context information
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.context = context

        structured_context: dict[str, object] = dict(extra_context)
        if context is not None:
            if context.component is not None:
                structured_context["component"] = context.component
            if context.operation is not None:
                structured_context["operation"] = context.operation
            if context.target_name is not None:
                structured_context["target_name"] = context.target_name
        self.extra_context = structured_context

    @property
    def correlation_id(self) -> UUID | None:
        """Correlation ID from the bundled context, if any."""
        return self.context.correlation_id if self.context is not None else None

    def __str__(self) -> str:
        return self.message


class HarnessConfigurationError(HarnessError):
    """Raised when harness settings or job configuration are invalid.

    Example:
        >>> raise HarnessConfigurationError(
        ...     "No checkpoint manager factory configured",
        ...     key="task.checkpoint.system",
        ... )
    """

    default_error_code = EnumHarnessErrorCode.INVALID_CONFIGURATION


class ClusterStateError(HarnessError):
    """Raised when the cluster lifecycle is driven out of order.

    Starting a cluster twice without teardown, or borrowing the cluster
    before it is started, is a programming error and is never retried.
    """

    default_error_code = EnumHarnessErrorCode.INVALID_STATE


class JobStateError(HarnessError):
    """Raised on an illegal stream job status transition."""

    default_error_code = EnumHarnessErrorCode.INVALID_STATE


class InfraUnavailableError(HarnessError):
    """Raised when a coordination or broker service is not available.

    Example:
        >>> raise InfraUnavailableError(
        ...     "Broker did not open its listener in time",
        ...     context=context,
        ...     port=19092,
        ...     timeout_seconds=30.0,
        ... )
    """

    default_error_code = EnumHarnessErrorCode.SERVICE_UNAVAILABLE


class TopicAlreadyExistsError(HarnessError):
    """Raised by a broker client when a created topic already exists."""

    default_error_code = EnumHarnessErrorCode.TOPIC_ALREADY_EXISTS


class UnknownTopicError(HarnessError):
    """Raised by a broker client when topic metadata is not available.

    Transient right after topic creation, since metadata propagates
    asynchronously through the coordination layer.
    """

    default_error_code = EnumHarnessErrorCode.UNKNOWN_TOPIC


class CheckpointDecodeError(HarnessError, ValueError):
    """Raised when non-null checkpoint bytes cannot be decoded.

    Distinct from the null-input path, which returns None without error.
    """

    default_error_code = EnumHarnessErrorCode.DECODE_ERROR


class HarnessAssertionError(HarnessError, AssertionError):
    """Base class for fatal test failures raised by the harness."""


class TopicValidationError(HarnessAssertionError):
    """Raised when topic metadata does not converge within the retry budget."""

    default_error_code = EnumHarnessErrorCode.CONVERGENCE_EXHAUSTED


class LifecycleTimeoutError(HarnessAssertionError):
    """Raised when a job, task or gate does not reach a state in time.

    Lifecycle timeouts are never retried.
    """

    default_error_code = EnumHarnessErrorCode.TIMEOUT


class LifecycleStatusError(HarnessAssertionError):
    """Raised when a lifecycle wait observes an unexpected status."""

    default_error_code = EnumHarnessErrorCode.UNEXPECTED_STATUS


class MessageDeliveryError(HarnessAssertionError):
    """Raised when the payload received by a task differs from the payload sent."""

    default_error_code = EnumHarnessErrorCode.DELIVERY_MISMATCH


__all__ = [
    "CheckpointDecodeError",
    "ClusterStateError",
    "HarnessAssertionError",
    "HarnessConfigurationError",
    "HarnessError",
    "InfraUnavailableError",
    "JobStateError",
    "LifecycleStatusError",
    "LifecycleTimeoutError",
    "MessageDeliveryError",
    "TopicAlreadyExistsError",
    "TopicValidationError",
    "UnknownTopicError",
]
