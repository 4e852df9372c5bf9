"""
Deduplication job orchestration.

    PartitionPlanner -> RangeScanner x M (threads) -> FingerprintGrouper.merge (barrier)
    -> DuplicateResolver + DeletionSink x R (threads) -> one commit

Every stage opens its own index client from the factory. Resolver sinks
never commit on their own; the job commits exactly once after all of them
have flushed, and only if something was deleted and no_commit is off.
Any stage error aborts the job; deletions already submitted stay submitted.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from common.config import config
from common.errors import CommitError, DedupAbortedError, IndexBackendError
from common.logging.logger import get_logger
from common.models import FieldMapping, IndexRecord, PartitionRange
from dedup.counters import DedupCounters
from dedup.grouper import Bucket, FingerprintGrouper, iter_groups
from dedup.planner import PartitionPlanner
from dedup.resolver import DuplicateResolver
from dedup.resource_governor import MemoryGovernor
from dedup.scanner import RangeScanner
from dedup.sink import DeletionSink
from search_index.registry import IndexFactory

logger = get_logger("dedup_job")

_TIME_FMT = "%Y-%m-%d %H:%M:%S"
_ABORT_CHECK_EVERY = 1000


@dataclass
class DedupStats:
    """Outcome of one deduplication run."""
    start_time: float
    end_time: Optional[float] = None
    partitions: int = 0
    buckets: int = 0
    no_commit: bool = False
    committed: bool = False
    counters: Dict[str, int] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        end = self.end_time or time.time()
        return end - self.start_time

    @property
    def duration_human(self) -> str:
        secs = int(self.duration_seconds)
        hours, remainder = divmod(secs, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"

    @property
    def deleted(self) -> int:
        return self.counters.get('deleted', 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'duration_seconds': self.duration_seconds,
            'duration_human': self.duration_human,
            'partitions': self.partitions,
            'buckets': self.buckets,
            'no_commit': self.no_commit,
            'committed': self.committed,
            'counters': dict(self.counters),
        }


class DedupJob:
    """
    Removes all but one document per content fingerprint from an index.

    Args:
        index_factory: Zero-argument callable returning a fresh IndexClient
        num_scanners: Number of partitions / scanner threads
        num_resolvers: Number of shuffle buckets / resolver threads
        batch_size: Deletions per submitted batch, per resolver
        no_commit: Leave deletions uncommitted for an external commit
        fields: Index field names (defaults from config)
        max_rss_gb: Abort the job if process RSS exceeds this many GB
    """

    def __init__(
        self,
        index_factory: IndexFactory,
        num_scanners: Optional[int] = None,
        num_resolvers: Optional[int] = None,
        batch_size: Optional[int] = None,
        no_commit: Optional[bool] = None,
        fields: Optional[FieldMapping] = None,
        max_rss_gb: Optional[float] = None,
    ):
        if index_factory is None:
            raise ValueError("index_factory is required")

        self.index_factory = index_factory
        self.num_scanners = num_scanners if num_scanners is not None else config.get("dedup.scanners")
        self.num_resolvers = num_resolvers if num_resolvers is not None else config.get("dedup.resolvers")
        self.batch_size = batch_size if batch_size is not None else config.get("dedup.batch_size")
        self.no_commit = no_commit if no_commit is not None else config.get("dedup.no_commit")
        self.fields = fields or FieldMapping.from_config()
        self.max_rss_gb = max_rss_gb if max_rss_gb is not None else config.get("resource_limits.max_rss_gb")

        if self.num_scanners < 1:
            raise ValueError(f"num_scanners must be >= 1, got {self.num_scanners}")
        if self.num_resolvers < 1:
            raise ValueError(f"num_resolvers must be >= 1, got {self.num_resolvers}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")

        self.grouper = FingerprintGrouper(self.num_resolvers)
        self.counters = DedupCounters()
        self._abort_reason: Optional[str] = None
        self._abort_lock = threading.Lock()

    # ---- public ----

    def run(self) -> DedupStats:
        stats = DedupStats(start_time=time.time(), no_commit=self.no_commit, buckets=self.num_resolvers)
        logger.info(f"Deduplication starting at {datetime.fromtimestamp(stats.start_time).strftime(_TIME_FMT)}")
        logger.info(
            f"scanners={self.num_scanners} resolvers={self.num_resolvers} "
            f"batch_size={self.batch_size} no_commit={self.no_commit}"
        )

        governor = self._start_governor()
        try:
            partitions = self._plan()
            stats.partitions = len(partitions)

            spills = self._scan(partitions)
            buckets = self.grouper.merge(spills)
            del spills

            submitted = self._resolve(buckets)

            if submitted > 0 and not self.no_commit:
                self._commit()
                stats.committed = True
            elif submitted > 0:
                logger.info(f"No-commit mode: {submitted} deletions left for an external commit")
        finally:
            if governor is not None:
                governor.stop()
            stats.end_time = time.time()
            stats.counters = self.counters.get_stats()

        logger.info(
            f"Deduplication finished at {datetime.fromtimestamp(stats.end_time).strftime(_TIME_FMT)}, "
            f"elapsed: {stats.duration_human} | {stats.counters}"
        )
        return stats

    def abort(self, reason: str) -> None:
        """Makes every stage stop at its next checkpoint with DedupAbortedError."""
        with self._abort_lock:
            if self._abort_reason is None:
                self._abort_reason = reason
                logger.warning(f"Abort requested: {reason}")

    # ---- stages ----

    def _plan(self) -> List[PartitionRange]:
        with self.index_factory() as index:
            return PartitionPlanner(index).plan(self.num_scanners)

    def _scan(self, partitions: List[PartitionRange]) -> List[List[Bucket]]:
        spills: List[List[Bucket]] = []
        with ThreadPoolExecutor(max_workers=self.num_scanners, thread_name_prefix="scanner") as pool:
            futures = {pool.submit(self._scan_partition, p): p for p in partitions}
            try:
                for future in as_completed(futures):
                    spills.append(future.result())
            except Exception:
                for future in futures:
                    future.cancel()
                raise
        logger.info(f"Scan complete: {self.counters['scanned']:,} records from {len(partitions)} partitions")
        return spills

    def _scan_partition(self, partition: PartitionRange) -> List[Bucket]:
        self._check_abort()
        if partition.is_empty:
            return self.grouper.partition(())

        with self.index_factory() as index:
            scanner = RangeScanner(index, self.fields)
            spill = self.grouper.partition(self._tracked(scanner.scan(partition), partition))
        return spill

    def _tracked(self, pairs: Iterable[Tuple[str, IndexRecord]],
                 partition: PartitionRange) -> Iterator[Tuple[str, IndexRecord]]:
        seen = 0
        for pair in pairs:
            seen += 1
            if seen % _ABORT_CHECK_EVERY == 0:
                self._check_abort()
            yield pair
        self.counters.incr('scanned', seen)
        logger.info(f"{partition}: scanned {seen:,} records")

    def _resolve(self, buckets: List[Bucket]) -> int:
        submitted = 0
        with ThreadPoolExecutor(max_workers=self.num_resolvers, thread_name_prefix="resolver") as pool:
            futures = {pool.submit(self._resolve_bucket, i, b): i for i, b in enumerate(buckets)}
            try:
                for future in as_completed(futures):
                    submitted += future.result()
            except Exception:
                for future in futures:
                    future.cancel()
                raise
        logger.info(f"Resolve complete: {submitted:,} deletions submitted")
        return submitted

    def _resolve_bucket(self, bucket_id: int, bucket: Bucket) -> int:
        if not bucket:
            return 0
        self._check_abort()

        with self.index_factory() as index, DeletionSink(
            index,
            batch_size=self.batch_size,
            no_commit=True,
            counters=self.counters,
        ) as sink:
            resolver = DuplicateResolver(sink, self.counters)
            for n, group in enumerate(iter_groups(bucket), start=1):
                if n % _ABORT_CHECK_EVERY == 0:
                    self._check_abort()
                resolver.resolve(group)

        logger.info(f"bucket {bucket_id}: {len(bucket):,} fingerprints, {sink.total_submitted:,} deletions")
        return sink.total_submitted

    def _commit(self) -> None:
        with self.index_factory() as index:
            try:
                index.commit()
            except IndexBackendError as e:
                logger.error(f"Commit failed: {e}")
                raise CommitError(str(e)) from e
        self.counters.incr('commits')
        logger.info("Committed deletions")

    # ---- abort handling ----

    def _check_abort(self) -> None:
        if self._abort_reason is not None:
            raise DedupAbortedError(self._abort_reason)

    def _start_governor(self) -> Optional[MemoryGovernor]:
        if not self.max_rss_gb:
            return None
        governor = MemoryGovernor(
            max_rss_gb=self.max_rss_gb,
            check_interval_seconds=config.get("resource_limits.check_interval_seconds"),
            on_limit=lambda: self.abort(f"memory cap of {self.max_rss_gb}GB reached"),
        )
        governor.start()
        return governor
