"""
Shared pytest fixtures for the deduplication tests.

Uses DI to inject an in-memory FakeIndex in place of Solr/Meilisearch, so
every stage runs without a network.

The conftest swaps in an empty Config singleton before any module binds
common.config.config, so a config.json in the working directory cannot
leak into the tests.
"""

import copy
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

# Ensure project root is on sys.path so imports work from tests/
sys.path.insert(0, str(Path(__file__).parent.parent))

import common.config
from common.config import Config

_test_config = Config.__new__(Config)
_test_config._config = {"paths": {}}
Config._instance = _test_config
common.config.config = _test_config

import pytest

from common.errors import IndexBackendError
from common.models import FieldMapping, IndexRecord
from search_index.protocols import IndexClient


@pytest.fixture(autouse=True)
def _isolate_config():
    """Restore the shared test Config after each test (Config.__new__ returns the singleton)."""
    saved = copy.deepcopy(_test_config._config)
    yield
    _test_config._config = saved


def make_doc(doc_id: str, digest: str, boost: float = 1.0, tstamp: float = 0.0) -> Dict[str, Any]:
    """An index document using the default field names."""
    return {
        'id': doc_id,
        'digest': digest,
        'boost': boost,
        'tstamp': tstamp,
        'title': f"title of {doc_id}",
    }


def make_record(doc_id: str, weight: float = 1.0, modified_at: float = 0.0,
                fingerprint: str = "fp") -> IndexRecord:
    return IndexRecord(id=doc_id, fingerprint=fingerprint, weight=weight, modified_at=modified_at)


class FakeIndex(IndexClient):
    """
    In-memory index recording every call.

    Deletes are staged until commit(), mimicking an index where submitted
    deletions only become visible on commit.
    """

    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None):
        self.docs: List[Dict[str, Any]] = list(docs or [])
        self.staged: List[str] = []
        self.count_calls = 0
        self.fetch_calls: List[tuple] = []
        self.delete_calls: List[List[str]] = []
        self.commit_calls = 0
        self.closed = 0

        self.fail_count = False
        self.fail_fetch = False
        self.fail_delete = False
        self.fail_commit = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "fake"

    def count(self) -> int:
        self.count_calls += 1
        if self.fail_count:
            raise IndexBackendError(self.name, "count refused")
        return len(self.docs)

    def fetch(self, fields: Sequence[str], start: int, limit: int) -> List[Dict[str, Any]]:
        with self._lock:
            self.fetch_calls.append((list(fields), start, limit))
        if self.fail_fetch:
            raise IndexBackendError(self.name, "fetch refused")
        return [
            {k: v for k, v in doc.items() if k in fields}
            for doc in self.docs[start:start + limit]
        ]

    def delete(self, ids: Sequence[str]) -> None:
        if self.fail_delete:
            raise IndexBackendError(self.name, "delete refused")
        with self._lock:
            self.delete_calls.append(list(ids))
            self.staged.extend(ids)

    def commit(self) -> None:
        if self.fail_commit:
            raise IndexBackendError(self.name, "commit refused")
        with self._lock:
            self.commit_calls += 1
            gone = set(self.staged)
            self.docs = [d for d in self.docs if d['id'] not in gone]
            self.staged = []

    def close(self) -> None:
        with self._lock:
            self.closed += 1

    @property
    def submitted_ids(self) -> List[str]:
        return [i for call in self.delete_calls for i in call]

    @property
    def visible_ids(self) -> List[str]:
        return [d['id'] for d in self.docs]


@pytest.fixture
def fields():
    return FieldMapping()


@pytest.fixture
def fake_index():
    return FakeIndex()


@pytest.fixture
def duplicate_docs():
    """Ten documents, three fingerprints with duplicates and two singletons."""
    return [
        make_doc("a1", "A", boost=5.0, tstamp=100),
        make_doc("b1", "B", boost=1.0, tstamp=10),
        make_doc("a2", "A", boost=9.0, tstamp=50),
        make_doc("c1", "C", boost=2.0, tstamp=1),
        make_doc("b2", "B", boost=1.0, tstamp=30),
        make_doc("a3", "A", boost=3.0, tstamp=200),
        make_doc("s1", "S1", boost=1.0, tstamp=1),
        make_doc("b3", "B", boost=1.0, tstamp=20),
        make_doc("c2", "C", boost=2.0, tstamp=1),
        make_doc("s2", "S2", boost=7.0, tstamp=7),
    ]
