"""
In-memory canonical store.

Same semantics as the PostgreSQL store: per-record atomic units of work,
serialized per (company, customer PO) group, plus stage outcomes.
Used by unit tests and by ``edi-canon process --dry-run``.
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from edi_canon.core.models import (
    DETAILS_STAGE,
    CanonicalDocument,
    HeaderVersionRow,
    RejectionRecord,
    SourceRecord,
    StageOutcome,
)

from .base import GroupKey


class _StagedWork:
    """Changes staged by one unit of work until it commits."""

    def __init__(self, store: "InMemoryCanonicalStore"):
        self._store = store
        self.documents: list[CanonicalDocument] = []
        self.outcomes: list[StageOutcome] = []

    def count_earlier_headers(self, company: str, customer_po: str, download_timestamp: datetime) -> int:
        committed = self._store.headers_for_group((company, customer_po))
        staged = [
            document.header for document in self.documents
            if document.header.group_key == (company, customer_po)
        ]
        return sum(
            1 for header in committed + staged
            if header.download_timestamp < download_timestamp
        )

    def insert_document(self, document: CanonicalDocument) -> None:
        self.documents.append(document)

    def record_outcome(self, source_record_id: int, status: str, detail: str | None = None) -> None:
        self.outcomes.append(StageOutcome(source_record_id=source_record_id, status=status, detail=detail))


class InMemoryCanonicalStore:
    """
    Thread-safe in-memory implementation of CanonicalStore.

    Attributes:
        documents: Committed documents keyed by source record id
        rejections: Recorded rejections in arrival order
        outcomes: Latest stage outcome per (source record id, stage)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._group_locks: dict[GroupKey, threading.Lock] = defaultdict(threading.Lock)
        self.documents: dict[int, CanonicalDocument] = {}
        self.rejections: list[RejectionRecord] = []
        self.outcomes: dict[tuple[int, str], StageOutcome] = {}
        self.version_writes = 0

    # ------------------------------------------------------------------
    # Stage outcomes
    # ------------------------------------------------------------------

    def claim(self, record: SourceRecord, stage: str = DETAILS_STAGE) -> bool:
        """Claim a record for a stage; False when it already has an outcome."""
        with self._lock:
            key = (record.id, stage)
            if key in self.outcomes:
                return False
            self.outcomes[key] = StageOutcome(source_record_id=record.id, stage=stage, status="claimed")
            return True

    def outcome_for(self, source_record_id: int, stage: str = DETAILS_STAGE) -> StageOutcome | None:
        with self._lock:
            return self.outcomes.get((source_record_id, stage))

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    @contextmanager
    def unit_of_work(self, group_key: GroupKey) -> Iterator[_StagedWork]:
        with self._lock:
            group_lock = self._group_locks[group_key]

        with group_lock:
            work = _StagedWork(self)
            yield work
            with self._lock:
                for document in work.documents:
                    if document.source_record_id in self.documents:
                        raise ValueError(
                            f"Source record {document.source_record_id} already has a canonical header"
                        )
                for document in work.documents:
                    self.documents[document.source_record_id] = document
                for outcome in work.outcomes:
                    self.outcomes[(outcome.source_record_id, outcome.stage)] = outcome

    def record_rejection(self, rejection: RejectionRecord) -> None:
        with self._lock:
            self.rejections.append(rejection)
            self.outcomes[(rejection.source_record_id, DETAILS_STAGE)] = StageOutcome(
                source_record_id=rejection.source_record_id,
                status="rejected",
                detail=rejection.reason,
            )

    def record_failure(self, source_record_id: int, detail: str) -> None:
        with self._lock:
            self.outcomes[(source_record_id, DETAILS_STAGE)] = StageOutcome(
                source_record_id=source_record_id,
                status="failed",
                detail=detail,
            )

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def headers_for_group(self, group_key: GroupKey) -> list:
        with self._lock:
            return [
                document.header for document in self.documents.values()
                if document.header.group_key == group_key
            ]

    def list_version_groups(self) -> list[GroupKey]:
        with self._lock:
            return sorted({document.header.group_key for document in self.documents.values()})

    def load_version_group(self, group_key: GroupKey) -> list[HeaderVersionRow]:
        return [
            HeaderVersionRow(
                source_record_id=header.source_record_id,
                company=header.company,
                customer_po=header.customer_po,
                download_timestamp=header.download_timestamp,
                version=header.version,
            )
            for header in self.headers_for_group(group_key)
        ]

    def apply_versions(self, updates: list[tuple[int, int]]) -> int:
        with self._lock:
            for source_record_id, version in updates:
                document = self.documents[source_record_id]
                header = document.header.model_copy(update={"version": version})
                self.documents[source_record_id] = document.model_copy(update={"header": header})
            self.version_writes += len(updates)
            return len(updates)

    def version_for_source(self, source_record_id: int) -> int | None:
        with self._lock:
            document = self.documents.get(source_record_id)
            return document.header.version if document else None
