"""
Batched deletion sink.

Accumulates ids to delete and submits them to the index in batches of
batch_size (1000 by default). The state (outstanding batch, submitted
total) belongs to one sink instance; every resolver executor owns its own,
so the threshold applies per executor rather than globally.

A failed flush raises SubmissionError and leaves the batch in place so the
unsubmitted ids remain observable. Nothing here retries.
"""

from typing import List, Optional

from common.config import config
from common.errors import CommitError, IndexBackendError, SubmissionError
from common.logging.logger import get_logger
from common.models import PendingDeletion
from dedup.counters import DedupCounters
from search_index.protocols import IndexClient

logger = get_logger("sink")

DEFAULT_BATCH_SIZE = 1000


class DeletionSink:
    """
    Per-executor deletion buffer with an explicit commit boundary.

    Use as a context manager: leaving the block normally calls close()
    (final flush, then commit unless no_commit). Leaving it with an
    exception still submits whatever is outstanding, skips the commit, and
    lets the original exception propagate.
    """

    def __init__(
        self,
        index: IndexClient,
        batch_size: Optional[int] = None,
        no_commit: Optional[bool] = None,
        counters: Optional[DedupCounters] = None,
    ):
        if index is None:
            raise ValueError("index is required")

        self.index = index
        self.batch_size = batch_size if batch_size is not None else config.get("dedup.batch_size", DEFAULT_BATCH_SIZE)
        self.no_commit = no_commit if no_commit is not None else config.get("dedup.no_commit")
        self.counters = counters

        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")

        self._outstanding: List[str] = []
        self._total_submitted = 0
        self._flush_failed = False
        self._closed = False

    @property
    def outstanding(self) -> List[str]:
        """Ids queued but not yet submitted."""
        return list(self._outstanding)

    @property
    def pending_count(self) -> int:
        return len(self._outstanding)

    @property
    def total_submitted(self) -> int:
        return self._total_submitted

    def add(self, deletion: PendingDeletion) -> None:
        if self._closed:
            raise RuntimeError("DeletionSink is closed")
        self._outstanding.append(deletion.id)
        if len(self._outstanding) >= self.batch_size:
            self.flush()

    def flush(self) -> int:
        """Submits the outstanding batch as one delete. Returns the number submitted."""
        if not self._outstanding:
            return 0

        count = len(self._outstanding)
        logger.info(f"Deleting {count} duplicates")
        try:
            self.index.delete(self._outstanding)
        except IndexBackendError as e:
            self._flush_failed = True
            logger.error(f"Deletion batch of {count} rejected: {e}")
            raise SubmissionError(count, str(e)) from e

        self._outstanding = []
        self._total_submitted += count
        if self.counters is not None:
            self.counters.incr('flushes')
        return count

    def commit(self) -> None:
        try:
            self.index.commit()
        except IndexBackendError as e:
            logger.error(f"Commit failed: {e}")
            raise CommitError(str(e)) from e
        if self.counters is not None:
            self.counters.incr('commits')
        logger.info("Committed deletions")

    def close(self) -> None:
        """Flushes the remainder, then commits if anything was ever submitted."""
        if self._closed:
            return
        self.flush()
        self._closed = True
        if self.no_commit:
            if self._total_submitted:
                logger.info(f"No-commit mode: {self._total_submitted} deletions left uncommitted")
            return
        if self._total_submitted > 0:
            self.commit()

    def __enter__(self) -> "DeletionSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return

        # Error path: hand over what is queued but do not commit, and do not
        # resubmit a batch the index has already rejected.
        self._closed = True
        if self._flush_failed or not self._outstanding:
            return
        try:
            self.flush()
        except SubmissionError as flush_error:
            logger.error(f"Flush on error exit failed after {exc_type.__name__}: {flush_error}")
