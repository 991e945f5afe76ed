# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Harness error code enumeration.

Classifies every HarnessError so that callers and log processors can
branch on the failure category without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class EnumHarnessErrorCode(str, Enum):
    """Error codes for stream task harness failures.

    Attributes:
        OPERATION_FAILED: Generic failure (default)
        INVALID_CONFIGURATION: Settings or job configuration are invalid
        INVALID_STATE: Lifecycle method called in the wrong state
        SERVICE_UNAVAILABLE: Coordination or broker service is not reachable
        TOPIC_ALREADY_EXISTS: Topic creation found an existing topic
        UNKNOWN_TOPIC: Topic metadata is not (yet) available
        DECODE_ERROR: Persisted bytes could not be decoded
        CONVERGENCE_EXHAUSTED: Bounded retry budget ran out
        TIMEOUT: A lifecycle wait exceeded its budget
        UNEXPECTED_STATUS: A lifecycle wait observed the wrong status
        DELIVERY_MISMATCH: A delivered payload differs from the sent payload
    """

    OPERATION_FAILED = "operation_failed"
    INVALID_CONFIGURATION = "invalid_configuration"
    INVALID_STATE = "invalid_state"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TOPIC_ALREADY_EXISTS = "topic_already_exists"
    UNKNOWN_TOPIC = "unknown_topic"
    DECODE_ERROR = "decode_error"
    CONVERGENCE_EXHAUSTED = "convergence_exhausted"
    TIMEOUT = "timeout"
    UNEXPECTED_STATUS = "unexpected_status"
    DELIVERY_MISMATCH = "delivery_mismatch"


__all__ = ["EnumHarnessErrorCode"]
