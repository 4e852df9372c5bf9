"""
Exception hierarchy for the deduplication job.

Every stage failure is fatal: stages raise a DedupError subclass naming the
stage, and nothing in the core retries. Callers catch DedupError to turn any
of them into a job-level failure.
"""


class DedupError(Exception):
    """Base exception for all deduplication errors."""


class DedupConfigError(DedupError):
    """Raised when a required configuration key is missing or invalid."""

    def __init__(self, key: str, reason: str = "missing or None"):
        self.key = key
        super().__init__(f"Configuration error for '{key}': {reason}")


class IndexBackendError(DedupError):
    """Raised when a request against the search index fails."""

    def __init__(self, backend: str, detail: str):
        self.backend = backend
        super().__init__(f"Index error [{backend}]: {detail}")


class PlanningError(DedupError):
    """Raised when the document count query fails before any scanning."""

    def __init__(self, detail: str):
        super().__init__(f"Partition planning failed: {detail}")


class ScanError(DedupError):
    """Raised when fetching or decoding one partition fails."""

    def __init__(self, partition, detail: str):
        self.partition = partition
        super().__init__(f"Scan of {partition} failed: {detail}")


class SubmissionError(DedupError):
    """Raised when a batch of deletions is rejected by the index."""

    def __init__(self, count: int, detail: str):
        self.count = count
        super().__init__(f"Submitting {count} deletions failed: {detail}")


class CommitError(DedupError):
    """Raised when the index refuses to commit submitted deletions."""

    def __init__(self, detail: str):
        super().__init__(f"Commit failed: {detail}")


class DedupAbortedError(DedupError):
    """Raised when a running job is stopped before completion."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Deduplication aborted: {reason}")
