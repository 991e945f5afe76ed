# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Teardown report models.

Teardown attempts every cleanup step and never raises; the report records
which steps ran and which of them failed.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelTeardownFailure(BaseModel):
    """One failed cleanup step."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    step: str = Field(..., description="Cleanup step (shutdown_broker, delete_log_dirs, ...)")
    target: str = Field(..., description="Resource the step acted on")
    error: str = Field(..., description="Sanitized error message")


class ModelTeardownReport(BaseModel):
    """Outcome of a best-effort teardown."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    steps_attempted: int = Field(default=0, ge=0, description="Number of cleanup steps run")
    failures: tuple[ModelTeardownFailure, ...] = Field(
        default=(), description="Failed steps, in the order they ran"
    )

    @property
    def succeeded(self) -> bool:
        """True when every attempted step succeeded."""
        return not self.failures


__all__ = ["ModelTeardownFailure", "ModelTeardownReport"]
