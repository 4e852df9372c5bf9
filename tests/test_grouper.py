"""Tests for dedup/grouper.py — hash shuffle and group completeness."""

import random

import pytest

from dedup.grouper import FingerprintGrouper, bucket_for, iter_groups
from conftest import make_record


def _pairs(records):
    return [(r.fingerprint, r) for r in records]


class TestBucketFor:
    def test_in_range(self):
        for i in range(200):
            assert 0 <= bucket_for(f"digest-{i}", 7) < 7

    def test_stable(self):
        assert bucket_for("abc", 13) == bucket_for("abc", 13)

    def test_single_bucket(self):
        assert bucket_for("anything", 1) == 0

    def test_spreads_keys(self):
        buckets = {bucket_for(f"digest-{i}", 4) for i in range(200)}
        assert buckets == {0, 1, 2, 3}


class TestFingerprintGrouper:
    def test_group_completeness_across_partitions(self):
        """Records sharing a fingerprint meet in one group wherever they were scanned."""
        rng = random.Random(7)
        records = [
            make_record(f"doc-{i}", fingerprint=f"fp-{i % 23}")
            for i in range(500)
        ]
        rng.shuffle(records)
        partitions = [records[i:i + 37] for i in range(0, len(records), 37)]

        grouper = FingerprintGrouper(num_buckets=5)
        spills = [grouper.partition(_pairs(p)) for p in partitions]
        buckets = grouper.merge(spills)

        groups = [g for bucket in buckets for g in iter_groups(bucket)]
        fingerprints = [g.fingerprint for g in groups]
        assert len(fingerprints) == len(set(fingerprints)) == 23

        for group in groups:
            expected = {r.id for r in records if r.fingerprint == group.fingerprint}
            assert {r.id for r in group.records} == expected
            assert all(r.fingerprint == group.fingerprint for r in group.records)

    def test_singletons_are_routed(self):
        grouper = FingerprintGrouper(3)
        buckets = grouper.merge([grouper.partition(_pairs([make_record("only", fingerprint="solo")]))])
        groups = [g for b in buckets for g in iter_groups(b)]
        assert len(groups) == 1
        assert groups[0].is_singleton

    def test_empty_input(self):
        grouper = FingerprintGrouper(2)
        buckets = grouper.merge([grouper.partition([]), grouper.partition([])])
        assert [len(b) for b in buckets] == [0, 0]

    def test_no_spills(self):
        assert [len(b) for b in FingerprintGrouper(3).merge([])] == [0, 0, 0]

    def test_bucket_mismatch_rejected(self):
        spill = FingerprintGrouper(2).partition(_pairs([make_record("a")]))
        with pytest.raises(ValueError):
            FingerprintGrouper(3).merge([spill])

    def test_invalid_bucket_count(self):
        with pytest.raises(ValueError):
            FingerprintGrouper(0)
