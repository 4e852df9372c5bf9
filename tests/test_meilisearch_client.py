"""Tests for search_index/meilisearch_client.py using an injected fake client."""

from types import SimpleNamespace

import pytest
from meilisearch.errors import MeilisearchError

from common.errors import DedupConfigError, IndexBackendError, SubmissionError
from dedup.job import DedupJob
from search_index.meilisearch_client import MeilisearchIndexClient


class FakeMeiliIndex:
    def __init__(self, docs):
        self.docs = docs
        self.get_calls = []
        self.deleted = []
        self._next_uid = 100

    def get_documents(self, parameters):
        self.get_calls.append(parameters)
        start = parameters.get('offset', 0)
        rows = self.docs[start:start + parameters['limit']]
        fields = parameters.get('fields')
        if fields:
            rows = [{k: v for k, v in d.items() if k in fields} for d in rows]
        return SimpleNamespace(results=rows, total=len(self.docs))

    def delete_documents(self, ids):
        self.deleted.append(ids)
        self._next_uid += 1
        return SimpleNamespace(task_uid=self._next_uid)


class FakeMeiliClient:
    def __init__(self, docs=None, missing=False):
        self.index_obj = FakeMeiliIndex(docs or [])
        self.missing = missing
        self.waited = []
        self.failed_uids = set()

    def get_index(self, uid):
        if self.missing:
            raise MeilisearchError(f"index {uid} not found")
        return self.index_obj

    def wait_for_task(self, uid, timeout_in_ms=None):
        self.waited.append(uid)
        if uid in self.failed_uids:
            return SimpleNamespace(status='failed', error={'message': 'boom'})
        return SimpleNamespace(status='succeeded', error=None)


def _client(fake):
    return MeilisearchIndexClient("http://meili.test:7700", index_name="pages", client=fake)


class TestMeilisearchReads:
    def test_count_uses_total(self):
        fake = FakeMeiliClient([{'id': str(i)} for i in range(42)])
        assert _client(fake).count() == 42
        assert fake.index_obj.get_calls[0]['limit'] == 1

    def test_fetch_projects_fields(self):
        docs = [{'id': str(i), 'digest': 'x', 'body': 'long'} for i in range(5)]
        fake = FakeMeiliClient(docs)
        result = _client(fake).fetch(["id", "digest"], start=1, limit=2)
        assert result == [{'id': '1', 'digest': 'x'}, {'id': '2', 'digest': 'x'}]

    def test_missing_index(self):
        with pytest.raises(IndexBackendError):
            _client(FakeMeiliClient(missing=True)).count()

    def test_index_name_required(self):
        with pytest.raises(DedupConfigError):
            MeilisearchIndexClient("http://meili.test:7700", client=FakeMeiliClient())


class TestMeilisearchWrites:
    def test_delete_waits_for_its_task(self):
        fake = FakeMeiliClient()
        client = _client(fake)
        client.delete(["a", "b"])
        client.delete(["c"])
        assert fake.index_obj.deleted == [["a", "b"], ["c"]]
        assert fake.waited == [101, 102]
        assert client.settled_tasks == [101, 102]

    def test_failed_task_fails_delete(self):
        fake = FakeMeiliClient()
        fake.failed_uids = {101}
        client = _client(fake)
        with pytest.raises(IndexBackendError):
            client.delete(["a"])
        assert client.settled_tasks == []

    def test_commit_ignores_foreign_tasks(self):
        fake = FakeMeiliClient()
        fake.failed_uids = {7}
        client = _client(fake)
        client.delete(["a"])
        client.commit()
        assert fake.waited == [101]
        assert client.settled_tasks == []

    def test_commit_with_nothing_pending(self):
        fake = FakeMeiliClient()
        client = _client(fake)
        client.commit()
        client.commit()
        assert fake.waited == []


# ── DedupJob against Meilisearch ──────────────────────────────

class TestMeilisearchJob:
    def _job(self, fake, no_commit=False):
        factory = lambda: _client(fake)
        return DedupJob(factory, num_scanners=2, num_resolvers=1, batch_size=1000, no_commit=no_commit)

    def test_deletes_duplicates(self, duplicate_docs):
        fake = FakeMeiliClient(duplicate_docs)
        stats = self._job(fake).run()
        assert stats.committed
        assert len(fake.index_obj.deleted[0]) == 5

    def test_failed_deletion_task_fails_job(self, duplicate_docs):
        fake = FakeMeiliClient(duplicate_docs)
        fake.failed_uids = {101}
        with pytest.raises(SubmissionError):
            self._job(fake).run()

    def test_failed_deletion_task_fails_no_commit_job(self, duplicate_docs):
        fake = FakeMeiliClient(duplicate_docs)
        fake.failed_uids = {101}
        with pytest.raises(SubmissionError):
            self._job(fake, no_commit=True).run()
