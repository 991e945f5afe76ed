# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Harness Error Context Configuration Model.

Bundles the structured fields shared by every harness error so that error
constructors keep a short, strongly typed signature.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ModelHarnessErrorContext(BaseModel):
    """Structured context attached to a HarnessError.

    Attributes:
        component: Harness component raising the error (cluster, topics, registry, ...)
        operation: Operation being performed (start, validate, await_message_received, ...)
        target_name: Target resource (topic, task name, broker id, ...)
        correlation_id: Correlation ID tying log lines of one harness run together

    Example:
        >>> context = ModelHarnessErrorContext(
        ...     component="topics",
        ...     operation="validate",
        ...     target_name="input",
        ... )
        >>> raise TopicValidationError("Topic did not converge", context=context)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    component: str | None = Field(
        default=None,
        description="Harness component raising the error",
    )
    operation: str | None = Field(
        default=None,
        description="Operation being performed",
    )
    target_name: str | None = Field(
        default=None,
        description="Target resource name (topic, task, broker)",
    )
    correlation_id: UUID | None = Field(
        default=None,
        description="Correlation ID of the harness run",
    )


__all__ = ["ModelHarnessErrorContext"]
