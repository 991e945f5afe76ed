# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Topic provisioning and metadata validation."""

from streamtask_harness.topics.service_topic_provisioner import (
    DEFAULT_ATTEMPT_TIMEOUT_SECONDS,
    DEFAULT_VALIDATION_ATTEMPTS,
    TopicProvisioner,
)

__all__: list[str] = [
    "DEFAULT_ATTEMPT_TIMEOUT_SECONDS",
    "DEFAULT_VALIDATION_ATTEMPTS",
    "TopicProvisioner",
]
