"""
Per-host request throttling shared by every adapter in a cycle.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from urllib.parse import urlparse


class DomainRateLimiter:
    """
    Enforces a minimum interval between requests to the same host.

    Each host has its own lock, so callers hitting one host are serialized
    while callers on different hosts proceed independently.
    """

    def __init__(
        self,
        *,
        rate_limit_per_second: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval = 1.0 / max(0.1, rate_limit_per_second)
        self._clock = clock
        self._sleep = sleep
        self._last_request_by_host: dict[str, float] = {}
        self._host_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def wait(self, url: str) -> None:
        """
        Block until a request to the URL's host is allowed.
        """

        host = _host_of(url)
        if not host:
            return

        with self._lock_for(host):
            last_time = self._last_request_by_host.get(host)
            if last_time is not None:
                remaining = self._min_interval - (self._clock() - last_time)
                if remaining > 0:
                    self._sleep(remaining)
            self._last_request_by_host[host] = self._clock()

    def _lock_for(self, host: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._host_locks.get(host)
            if lock is None:
                lock = threading.Lock()
                self._host_locks[host] = lock
            return lock


def _host_of(url: str) -> str:
    parsed = urlparse(url)
    return (parsed.netloc or parsed.path).lower()
