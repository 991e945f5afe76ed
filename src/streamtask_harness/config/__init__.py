# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job configuration for the worker runtime."""

from streamtask_harness.config.job_config import (
    DEFAULT_JOB_CONFIG,
    JOB_FACTORY_CLASS,
    JOB_ID,
    JOB_LOGGED_STORE_BASE_DIR,
    JOB_NAME,
    TASK_CHECKPOINT_REPLICATION_FACTOR,
    TASK_CHECKPOINT_SYSTEM,
    TASK_CHECKPOINT_TOPIC,
    TASK_CLASS,
    TASK_COMMIT_MS,
    TASK_INPUTS,
    JobConfig,
    consumer_coordinator_key,
    producer_bootstrap_key,
)

__all__: list[str] = [
    "DEFAULT_JOB_CONFIG",
    "JOB_FACTORY_CLASS",
    "JOB_ID",
    "JOB_LOGGED_STORE_BASE_DIR",
    "JOB_NAME",
    "JobConfig",
    "TASK_CHECKPOINT_REPLICATION_FACTOR",
    "TASK_CHECKPOINT_SYSTEM",
    "TASK_CHECKPOINT_TOPIC",
    "TASK_CLASS",
    "TASK_COMMIT_MS",
    "TASK_INPUTS",
    "consumer_coordinator_key",
    "producer_bootstrap_key",
]
