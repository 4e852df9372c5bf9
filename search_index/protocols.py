"""Abstract base class for the search index the deduplication job runs against."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence


class IndexClient(ABC):
    """
    Boundary operations the job needs from an index service.

    Implementations raise IndexBackendError on any transport or service
    failure. Clients are context managers so each stage can scope its own
    connection.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g. 'solr')."""
        ...

    @abstractmethod
    def count(self) -> int:
        """Total number of documents matching everything, requesting at most one row."""
        ...

    @abstractmethod
    def fetch(self, fields: Sequence[str], start: int, limit: int) -> List[Dict[str, Any]]:
        """Return up to *limit* documents from offset *start*, projected to *fields*."""
        ...

    @abstractmethod
    def delete(self, ids: Sequence[str]) -> None:
        """Submit one bulk delete by id. May be called repeatedly before commit()."""
        ...

    @abstractmethod
    def commit(self) -> None:
        """Make submitted deletes visible. Safe to call with nothing pending."""
        ...

    def close(self) -> None:
        """Release the underlying connection."""

    def __enter__(self) -> "IndexClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
