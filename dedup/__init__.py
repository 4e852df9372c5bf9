"""
Fingerprint-based duplicate removal for a search index.

Stages:
    - planner: split the index into contiguous scan ranges
    - scanner: read one range as (fingerprint, record) pairs
    - grouper: hash shuffle bringing equal fingerprints together
    - resolver: keep the highest-weight, most recent record per fingerprint
    - sink: submit deletions in batches and commit
    - job: run the stages with thread pools

Usage:
    python -m dedup http://localhost:8983/solr/nutch [--no-commit]
"""

from dedup.planner import PartitionPlanner, plan_partitions
from dedup.scanner import RangeScanner
from dedup.grouper import FingerprintGrouper, bucket_for, iter_groups
from dedup.resolver import DuplicateResolver, select_survivor, outranks
from dedup.sink import DeletionSink
from dedup.counters import DedupCounters
from dedup.job import DedupJob, DedupStats

__all__ = [
    'PartitionPlanner',
    'plan_partitions',
    'RangeScanner',
    'FingerprintGrouper',
    'bucket_for',
    'iter_groups',
    'DuplicateResolver',
    'select_survivor',
    'outranks',
    'DeletionSink',
    'DedupCounters',
    'DedupJob',
    'DedupStats',
]
