"""
Survivor selection for one fingerprint group.

The highest weight survives; equal weights fall back to the latest
modification time. When weight and timestamp both tie, the member seen
first in the group wins. Group order is whatever the shuffle delivered, so
that last case is deliberately left undefined.
"""

from typing import List, Optional, Sequence, Tuple

from common.models import FingerprintGroup, IndexRecord, PendingDeletion
from dedup.counters import DedupCounters
from dedup.sink import DeletionSink


def outranks(candidate: IndexRecord, keeper: IndexRecord) -> bool:
    """True if *candidate* should replace *keeper* as the survivor."""
    if candidate.weight > keeper.weight:
        return True
    return candidate.weight == keeper.weight and candidate.modified_at > keeper.modified_at


def select_survivor(records: Sequence[IndexRecord]) -> Tuple[IndexRecord, List[IndexRecord]]:
    """
    Folds a group down to (survivor, losers).

    Each record is classified exactly once: a candidate that does not
    outrank the keeper is a loser immediately; one that does demotes the
    previous keeper to a loser.
    """
    if not records:
        raise ValueError("cannot select a survivor from an empty group")

    keeper = records[0]
    losers: List[IndexRecord] = []
    for candidate in records[1:]:
        if outranks(candidate, keeper):
            losers.append(keeper)
            keeper = candidate
        else:
            losers.append(candidate)
    return keeper, losers


class DuplicateResolver:
    """Resolves groups one at a time, feeding losers to a deletion sink."""

    def __init__(self, sink: DeletionSink, counters: Optional[DedupCounters] = None):
        if sink is None:
            raise ValueError("sink is required")
        self.sink = sink
        self.counters = counters or DedupCounters()

    def resolve(self, group: FingerprintGroup) -> IndexRecord:
        """Queues every non-survivor of *group* for deletion and returns the survivor."""
        self.counters.incr('groups')
        if group.is_singleton:
            return group.records[0]

        survivor, losers = select_survivor(group.records)
        # a document read twice (offsets shifted between scans) must not
        # delete its own survivor or be queued twice
        queued = {survivor.id}
        for loser in losers:
            if loser.id in queued:
                continue
            queued.add(loser.id)
            self.sink.add(PendingDeletion(id=loser.id, fingerprint=group.fingerprint))
            self.counters.incr('deleted')
        if len(queued) > 1:
            self.counters.incr('duplicate_groups')
        return survivor
