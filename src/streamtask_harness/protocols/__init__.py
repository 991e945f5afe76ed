# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocol definitions for broker clients and cluster backends."""

from streamtask_harness.protocols.protocol_broker_client import (
    ProtocolBrokerClient,
    ProtocolRecordConsumer,
)
from streamtask_harness.protocols.protocol_cluster_backend import (
    ProtocolBrokerProcess,
    ProtocolClusterBackend,
    ProtocolCoordinatorProcess,
)

__all__: list[str] = [
    "ProtocolBrokerClient",
    "ProtocolBrokerProcess",
    "ProtocolClusterBackend",
    "ProtocolCoordinatorProcess",
    "ProtocolRecordConsumer",
]
