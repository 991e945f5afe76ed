# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Local network helpers for ephemeral service processes.

Port allocation and TCP readiness probing for the coordination service and
brokers launched by the local cluster backend.
"""

from __future__ import annotations

import logging
import socket
import time

logger = logging.getLogger(__name__)

DEFAULT_LOOPBACK_HOST = "127.0.0.1"


def find_free_port(host: str = DEFAULT_LOOPBACK_HOST) -> int:
    """Ask the OS for an unused TCP port on ``host``.

    The port is released before returning, so a concurrent process could
    take it first; callers treat a failed bind on startup as unavailable.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, 0))
        return int(sock.getsockname()[1])


def check_port_open(host: str, port: int, timeout: float = 1.0) -> bool:
    """Return True if a TCP connection to ``host:port`` succeeds."""
    try:
        addr_info = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror:
        return False

    for family, socktype, proto, _canonname, sockaddr in addr_info:
        try:
            with socket.socket(family, socktype, proto) as sock:
                sock.settimeout(timeout)
                sock.connect(sockaddr)
                return True
        except OSError:
            continue
    return False


def wait_for_port(
    host: str,
    port: int,
    timeout: float,
    interval: float = 0.2,
) -> bool:
    """Poll until ``host:port`` accepts TCP connections or ``timeout`` elapses.

    Returns:
        True if the port opened within the timeout, False otherwise.
    """
    deadline = time.monotonic() + timeout
    while True:
        if check_port_open(host, port, timeout=max(min(interval, 1.0), 0.05)):
            return True
        if time.monotonic() >= deadline:
            logger.debug("Port %s:%d did not open within %.1fs", host, port, timeout)
            return False
        time.sleep(interval)


__all__ = [
    "DEFAULT_LOOPBACK_HOST",
    "check_port_open",
    "find_free_port",
    "wait_for_port",
]
