"""
Meilisearch index client.

Meilisearch has no explicit commit: every write is an asynchronous task
that becomes visible once it succeeds. delete() enqueues a documentDeletion
task and waits for it, raising if the task did not succeed, so a rejected
batch surfaces in the sink that submitted it. commit() has nothing left to
wait for and is always a safe no-op. Tasks created by other writers on the
same index are never awaited.

Usage:
    with MeilisearchIndexClient("http://localhost:7700", index_name="pages") as index:
        total = index.count()
"""

from typing import Any, Dict, List, Optional, Sequence

import meilisearch
from meilisearch.errors import MeilisearchError

from common.config import config
from common.errors import IndexBackendError
from common.logging.logger import get_logger
from search_index.protocols import IndexClient

logger = get_logger("meilisearch_client")


class MeilisearchIndexClient(IndexClient):
    """Lazy-connecting Meilisearch wrapper that fails loudly."""

    def __init__(
        self,
        url: str,
        index_name: Optional[str] = None,
        api_key: Optional[str] = None,
        id_field: Optional[str] = None,
        task_timeout_ms: Optional[int] = None,
        client: Optional[Any] = None,
    ):
        if not url:
            raise ValueError("url is required")

        self._url = url
        self._index_name = config.require("index.name", index_name)
        self._api_key = api_key or config.get("index.api_key")
        self._id_field = id_field or config.get("index.fields.id")
        self._task_timeout_ms = task_timeout_ms or config.get("index.task_timeout_ms")

        self._client = client
        self._index = None
        self._settled_tasks: List[int] = []

    def _ensure_initialized(self):
        """Connects and resolves the index on first access."""
        if self._index is not None:
            return
        try:
            if self._client is None:
                self._client = meilisearch.Client(self._url, self._api_key)
            self._index = self._client.get_index(self._index_name)
            logger.info(f"Connected to Meilisearch index: {self._index_name}")
        except MeilisearchError as e:
            raise IndexBackendError(self.name, f"index '{self._index_name}' unavailable: {e}") from e

    @property
    def name(self) -> str:
        return "meilisearch"

    @property
    def index_name(self) -> str:
        return self._index_name

    @property
    def settled_tasks(self) -> List[int]:
        return list(self._settled_tasks)

    def count(self) -> int:
        self._ensure_initialized()
        try:
            result = self._index.get_documents({'limit': 1, 'fields': [self._id_field]})
        except MeilisearchError as e:
            raise IndexBackendError(self.name, f"count failed: {e}") from e
        return int(result.total)

    def fetch(self, fields: Sequence[str], start: int, limit: int) -> List[Dict[str, Any]]:
        self._ensure_initialized()
        try:
            result = self._index.get_documents({
                'offset': start,
                'limit': limit,
                'fields': list(fields),
            })
        except MeilisearchError as e:
            raise IndexBackendError(self.name, f"fetch failed: {e}") from e
        return [dict(doc) for doc in result.results]

    def delete(self, ids: Sequence[str]) -> None:
        """
        Enqueues a documentDeletion task and waits for it to settle.

        Waiting here is what makes a rejected batch fatal to the sink that
        submitted it: the task uid never has to outlive this client.
        """
        if not ids:
            return
        self._ensure_initialized()
        try:
            info = self._index.delete_documents(list(ids))
            task = self._client.wait_for_task(info.task_uid, timeout_in_ms=self._task_timeout_ms)
        except MeilisearchError as e:
            raise IndexBackendError(self.name, f"delete failed: {e}") from e
        if task.status != 'succeeded':
            raise IndexBackendError(
                self.name, f"deletion task {info.task_uid} {task.status}: {task.error}"
            )
        self._settled_tasks.append(info.task_uid)
        logger.debug(f"Deletion task {info.task_uid} settled ({len(ids)} ids)")

    def commit(self) -> None:
        """No-op beyond connecting: every deletion task already settled in delete()."""
        self._ensure_initialized()
        if self._settled_tasks:
            logger.info(f"Meilisearch applied {len(self._settled_tasks)} deletion tasks on {self._index_name}")
        self._settled_tasks = []

    def __repr__(self) -> str:
        return f"<MeilisearchIndexClient url={self._url} index={self._index_name}>"
