# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Error message sanitization utilities.

Sanitizes exception text before it reaches logs or teardown reports.
Broker and coordination errors may echo connection strings or JAAS
settings, so anything that looks like a credential is redacted.

Example:
    >>> from streamtask_harness.utils import sanitize_error_message
    >>> try:
    ...     raise ValueError("Auth failed with password=secret123")
    ... except Exception as e:
    ...     safe_msg = sanitize_error_message(e)
    >>> "secret123" not in safe_msg
    True
"""

from __future__ import annotations

# Checked case-insensitively against the error message.
SENSITIVE_PATTERNS: tuple[str, ...] = (
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "private_key",
    "credential",
    "sasl.jaas.config",
    "bearer",
    "authorization",
    "user:pass",
    "-----begin",
    "-----end",
)


def sanitize_error_string(error_str: str, max_length: int = 500) -> str:
    """Sanitize a raw error string for safe inclusion in logs.

    Args:
        error_str: The error string to sanitize
        max_length: Maximum length of the sanitized message (default 500)

    Returns:
        The string unchanged, truncated, or fully redacted when a
        sensitive pattern is present.
    """
    if not error_str:
        return ""

    error_lower = error_str.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in error_lower:
            return "[REDACTED - potentially sensitive data]"

    if len(error_str) > max_length:
        return error_str[:max_length] + "... [truncated]"

    return error_str


def sanitize_error_message(exception: BaseException, max_length: int = 500) -> str:
    """Sanitize an exception for safe inclusion in logs and reports.

    Args:
        exception: The exception to sanitize
        max_length: Maximum length of the sanitized message (default 500)

    Returns:
        ``"{ExceptionType}: {sanitized_message}"``, or just the type name
        when the exception carries no message.
    """
    exception_type = type(exception).__name__
    sanitized = sanitize_error_string(str(exception), max_length=max_length)
    if not sanitized:
        return exception_type
    return f"{exception_type}: {sanitized}"


__all__ = [
    "SENSITIVE_PATTERNS",
    "sanitize_error_message",
    "sanitize_error_string",
]
