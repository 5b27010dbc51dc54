"""
Persistence interfaces used by the pipeline and the version components.

Two implementations ship with the engine: ``InMemoryCanonicalStore``
(tests, dry runs) and ``PostgresCanonicalStore`` (warehouse package).
"""

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol

from edi_canon.core.models import CanonicalDocument, HeaderVersionRow, RejectionRecord

GroupKey = tuple[str, str]


class UnitOfWork(Protocol):
    """
    Atomic scope for one source record.

    Everything done through a unit of work is committed together when the
    context exits cleanly and discarded when it exits with an exception.
    """

    def count_earlier_headers(self, company: str, customer_po: str, download_timestamp: datetime) -> int: ...

    def insert_document(self, document: CanonicalDocument) -> None: ...

    def record_outcome(self, source_record_id: int, status: str, detail: str | None = None) -> None: ...


class CanonicalStore(Protocol):
    def unit_of_work(self, group_key: GroupKey) -> AbstractContextManager[UnitOfWork]: ...

    def record_rejection(self, rejection: RejectionRecord) -> None: ...

    def record_failure(self, source_record_id: int, detail: str) -> None: ...

    def list_version_groups(self) -> list[GroupKey]: ...

    def load_version_group(self, group_key: GroupKey) -> list[HeaderVersionRow]: ...

    def apply_versions(self, updates: list[tuple[int, int]]) -> int: ...

    def version_for_source(self, source_record_id: int) -> int | None: ...


class OutcomeSink(Protocol):
    """Receives the per-record processing signal (succeeded, rejected, failed)."""

    def report(self, source_record_id: int, status: str, detail: str | None = None) -> None: ...
