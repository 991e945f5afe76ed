# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Utility functions for the stream task harness."""

from streamtask_harness.utils.util_error_sanitization import (
    SENSITIVE_PATTERNS,
    sanitize_error_message,
    sanitize_error_string,
)
from streamtask_harness.utils.util_network import (
    DEFAULT_LOOPBACK_HOST,
    check_port_open,
    find_free_port,
    wait_for_port,
)

__all__: list[str] = [
    "DEFAULT_LOOPBACK_HOST",
    "SENSITIVE_PATTERNS",
    "check_port_open",
    "find_free_port",
    "sanitize_error_message",
    "sanitize_error_string",
    "wait_for_port",
]
