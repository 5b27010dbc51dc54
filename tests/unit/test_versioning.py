"""
Unit tests for VersionAssigner and VersionRecalculator.
"""

from datetime import datetime, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from edi_canon.core.models import CanonicalDocument, CanonicalHeader, HeaderVersionRow
from edi_canon.core.store import InMemoryCanonicalStore
from edi_canon.core.versioning import (
    VersionAssigner,
    VersionRecalculator,
    ranked_versions,
    version_corrections,
)
from edi_canon.observability.metrics import get_metric_value

BASE_TIME = datetime(2024, 3, 11, 8, 0)


def header(source_record_id, minutes, company="BELK", customer_po="0455123", version=1):
    timestamp = BASE_TIME + timedelta(minutes=minutes)
    return CanonicalHeader(
        company=company,
        customer_po=customer_po,
        download_date=timestamp.date(),
        download_timestamp=timestamp,
        version=version,
        source_record_id=source_record_id,
    )


def row(source_record_id, minutes, version):
    return HeaderVersionRow(
        source_record_id=source_record_id,
        company="BELK",
        customer_po="0455123",
        download_timestamp=BASE_TIME + timedelta(minutes=minutes),
        version=version,
    )


def ingest(store, assigner, new_header):
    with store.unit_of_work(new_header.group_key) as uow:
        stamped = assigner.assign(new_header, uow)
        uow.insert_document(CanonicalDocument(header=stamped))
    return stamped


@pytest.mark.unit
class TestVersionAssigner:
    """Inline version = 1 + earlier headers of the same group"""

    def test_first_header_is_version_one(self):
        store = InMemoryCanonicalStore()
        assert ingest(store, VersionAssigner(), header(1, 0)).version == 1

    def test_in_order_ingestion(self):
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()

        versions = [ingest(store, assigner, header(i, i * 10)).version for i in range(1, 4)]

        assert versions == [1, 2, 3]

    def test_other_groups_do_not_count(self):
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()
        ingest(store, assigner, header(1, 0))
        ingest(store, assigner, header(2, 5, customer_po="OTHER"))
        ingest(store, assigner, header(3, 5, company="Kohls"))

        assert ingest(store, assigner, header(4, 10)).version == 2

    def test_equal_timestamp_is_not_earlier(self):
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()
        ingest(store, assigner, header(1, 0))

        assert ingest(store, assigner, header(2, 0)).version == 1

    def test_out_of_order_ingestion_is_provisional(self):
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()

        later = ingest(store, assigner, header(2, 60))
        earlier = ingest(store, assigner, header(1, 0))

        # both see no earlier header at insert time; recalculation fixes it
        assert (later.version, earlier.version) == (1, 1)


@pytest.mark.unit
class TestRankedVersions:
    """Ranking by (download timestamp, source record id)"""

    def test_rank_by_timestamp(self):
        rows = [row(30, 20, 1), row(10, 0, 1), row(20, 10, 1)]
        assert ranked_versions(rows) == {10: 1, 20: 2, 30: 3}

    def test_ties_broken_by_source_record_id(self):
        rows = [row(7, 0, 1), row(3, 0, 1)]
        assert ranked_versions(rows) == {3: 1, 7: 2}

    def test_corrections_only_for_wrong_versions(self):
        rows = [row(1, 0, 1), row(2, 10, 1), row(3, 20, 3)]
        assert version_corrections(rows) == [(2, 2)]

    def test_no_corrections_when_consistent(self):
        rows = [row(1, 0, 1), row(2, 10, 2)]
        assert version_corrections(rows) == []


@pytest.mark.unit
class TestVersionRecalculator:
    """Recalculation rewrites only wrong versions and is idempotent"""

    def test_fixes_out_of_order_ingestion(self):
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()
        ingest(store, assigner, header(2, 60))
        ingest(store, assigner, header(1, 0))

        result = VersionRecalculator(store, max_workers=2).recalculate()

        assert (result.groups, result.headers, result.updated) == (1, 2, 1)
        assert store.version_for_source(1) == 1
        assert store.version_for_source(2) == 2

    def test_second_run_writes_nothing(self):
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()
        for source_record_id, minutes in [(3, 30), (1, 10), (2, 20)]:
            ingest(store, assigner, header(source_record_id, minutes))

        recalculator = VersionRecalculator(store)
        first = recalculator.recalculate()
        writes_after_first = store.version_writes
        second = recalculator.recalculate()

        assert first.updated > 0
        assert second.updated == 0
        assert store.version_writes == writes_after_first

    def test_groups_are_independent(self):
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()
        ingest(store, assigner, header(1, 10, customer_po="A"))
        ingest(store, assigner, header(2, 0, customer_po="B"))

        result = VersionRecalculator(store).recalculate()

        assert result.groups == 2
        assert result.updated == 0
        assert store.version_for_source(2) == 1

    def test_counts_corrections_metric(self):
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()
        ingest(store, assigner, header(2, 60, customer_po="METRIC"))
        ingest(store, assigner, header(1, 0, customer_po="METRIC"))
        before = get_metric_value("edi_version_corrections_total")

        VersionRecalculator(store).recalculate()

        assert get_metric_value("edi_version_corrections_total") - before == 1

    def test_empty_store(self):
        result = VersionRecalculator(InMemoryCanonicalStore()).recalculate()
        assert (result.groups, result.headers, result.updated) == (0, 0, 0)

    @given(offsets=st.lists(st.integers(min_value=0, max_value=500), min_size=1, max_size=12))
    @settings(max_examples=50, deadline=None)
    def test_versions_follow_download_order(self, offsets):
        """After recalculation versions are 1..N in (timestamp, id) order, whatever the ingestion order"""
        store = InMemoryCanonicalStore()
        assigner = VersionAssigner()
        for source_record_id, minutes in enumerate(offsets, start=1):
            ingest(store, assigner, header(source_record_id, minutes))

        VersionRecalculator(store).recalculate()

        expected_order = sorted(range(1, len(offsets) + 1), key=lambda i: (offsets[i - 1], i))
        versions = [store.version_for_source(i) for i in expected_order]
        assert versions == list(range(1, len(offsets) + 1))
