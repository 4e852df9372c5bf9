"""Job counters shared by scanner and resolver threads."""

import threading
from typing import Dict

COUNTER_NAMES = (
    'scanned',
    'groups',
    'duplicate_groups',
    'deleted',
    'flushes',
    'commits',
)


class DedupCounters:
    """Lock-guarded integer counters, read as a snapshot via get_stats()."""

    def __init__(self):
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {name: 0 for name in COUNTER_NAMES}

    def incr(self, name: str, amount: int = 1) -> None:
        if name not in self._stats:
            raise KeyError(f"Unknown counter: {name}")
        with self._lock:
            self._stats[name] += amount

    def __getitem__(self, name: str) -> int:
        with self._lock:
            return self._stats[name]

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return self._stats.copy()
