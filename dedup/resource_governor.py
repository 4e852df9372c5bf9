"""
Memory cap for a deduplication job.

The shuffle keeps every scanned record in memory until the resolvers run,
so a job over a very large index can exhaust RAM. MemoryGovernor samples
process RSS and calls on_limit once when the cap is crossed.
"""

import os
import threading
from typing import Callable

import psutil

from common.logging.logger import get_logger

logger = get_logger("resource_governor")


class MemoryGovernor(threading.Thread):
    """Monitors RSS of the current process tree on a background thread."""

    def __init__(
        self,
        max_rss_gb: float,
        check_interval_seconds: float,
        on_limit: Callable[[], None],
    ):
        super().__init__(name="MemoryGovernor", daemon=True)

        if max_rss_gb is None:
            raise ValueError("max_rss_gb is required")
        if check_interval_seconds is None:
            raise ValueError("check_interval_seconds is required")
        if on_limit is None:
            raise ValueError("on_limit is required")
        if max_rss_gb <= 0:
            logger.error(f"Invalid max_rss_gb: {max_rss_gb}")
            raise ValueError("max_rss_gb must be > 0")
        if check_interval_seconds <= 0:
            logger.error(f"Invalid check_interval_seconds: {check_interval_seconds}")
            raise ValueError("check_interval_seconds must be > 0")

        self.max_rss_bytes = int(max_rss_gb * 1024 ** 3)
        self.check_interval_seconds = check_interval_seconds
        self._on_limit = on_limit
        self._stopped = threading.Event()
        self.limit_triggered = False

    def run(self):
        while not self._stopped.is_set():
            self.check()
            self._stopped.wait(self.check_interval_seconds)

    def check(self) -> bool:
        """Samples RSS once; returns True if the cap has been reached."""
        try:
            total_rss = self._total_rss_bytes()
        except psutil.Error as e:
            logger.error(f"MemoryGovernor failed to read RSS: {e}")
            return False

        if total_rss < self.max_rss_bytes:
            return False

        if not self.limit_triggered:
            logger.warning(
                f"Memory cap reached: rss={total_rss / (1024 ** 3):.2f}GB "
                f"(limit={self.max_rss_bytes / (1024 ** 3):.2f}GB)"
            )
            self.limit_triggered = True
            self._on_limit()
        return True

    def _total_rss_bytes(self) -> int:
        process = psutil.Process(os.getpid())
        total = process.memory_info().rss
        for child in process.children(recursive=True):
            try:
                total += child.memory_info().rss
            except psutil.Error:
                continue
        return total

    def stop(self):
        self._stopped.set()
