"""
Fingerprint grouping as a hash shuffle.

    map side     partition(pairs)  -> one spill per scan, split into buckets
    barrier      merge(spills)     -> called once every scan has finished
    reduce side  iter_groups(bucket)

A fingerprint always hashes to the same bucket, so every record sharing it
ends up in one group no matter which partition it was scanned from. The
bucket hash uses hashlib rather than hash(), which is salted per process.
"""

import hashlib
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Tuple

from common.models import FingerprintGroup, IndexRecord

Bucket = Dict[str, List[IndexRecord]]


def bucket_for(key: str, num_buckets: int) -> int:
    """Stable bucket index for *key* in [0, num_buckets)."""
    digest = hashlib.blake2b(key.encode('utf-8'), digest_size=8).digest()
    return int.from_bytes(digest, 'big') % num_buckets


class FingerprintGrouper:
    """Routes (fingerprint, record) pairs so equal fingerprints meet in one group."""

    def __init__(self, num_buckets: int):
        if num_buckets < 1:
            raise ValueError(f"num_buckets must be >= 1, got {num_buckets}")
        self.num_buckets = num_buckets

    def partition(self, pairs: Iterable[Tuple[str, IndexRecord]]) -> List[Bucket]:
        """Splits one scanner's output into per-bucket maps. Touches no shared state."""
        spill: List[Bucket] = [defaultdict(list) for _ in range(self.num_buckets)]
        for key, record in pairs:
            spill[bucket_for(key, self.num_buckets)][key].append(record)
        return spill

    def merge(self, spills: Iterable[List[Bucket]]) -> List[Bucket]:
        """Combines the spills of all scanners bucket by bucket."""
        merged: List[Bucket] = [defaultdict(list) for _ in range(self.num_buckets)]
        for spill in spills:
            if len(spill) != self.num_buckets:
                raise ValueError(
                    f"spill has {len(spill)} buckets, grouper expects {self.num_buckets}"
                )
            for target, bucket in zip(merged, spill):
                for key, records in bucket.items():
                    target[key].extend(records)
        return merged


def iter_groups(bucket: Bucket) -> Iterator[FingerprintGroup]:
    for key, records in bucket.items():
        yield FingerprintGroup(fingerprint=key, records=records)
