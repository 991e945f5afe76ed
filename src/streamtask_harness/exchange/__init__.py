# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Message exchange with running tasks."""

from streamtask_harness.exchange.service_message_exchange import MessageExchangeDriver

__all__: list[str] = ["MessageExchangeDriver"]
