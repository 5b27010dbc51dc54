"""
Idempotent version recalculation, run as its own phase after ingestion.
"""

from concurrent.futures import ThreadPoolExecutor

from pydantic import BaseModel

from edi_canon.core.models import HeaderVersionRow
from edi_canon.core.store import CanonicalStore, GroupKey
from edi_canon.observability.logger import get_logger, log_operation
from edi_canon.observability.metrics import (
    increment_counter,
    set_gauge,
    version_corrections_total,
    version_groups_examined,
)

logger = get_logger(__name__)


class RecalculationResult(BaseModel):
    """Counts reported by one recalculation run."""

    groups: int = 0
    headers: int = 0
    updated: int = 0


def ranked_versions(rows: list[HeaderVersionRow]) -> dict[int, int]:
    """
    Version each header should carry: its 1-based rank by download
    timestamp, ties broken by source record id.

    Returns:
        Mapping of source record id to version
    """
    ordered = sorted(rows, key=lambda row: (row.download_timestamp, row.source_record_id))
    return {row.source_record_id: rank for rank, row in enumerate(ordered, start=1)}


def version_corrections(rows: list[HeaderVersionRow]) -> list[tuple[int, int]]:
    """(source record id, version) pairs for headers whose stored version is wrong."""
    expected = ranked_versions(rows)
    return [
        (row.source_record_id, expected[row.source_record_id])
        for row in sorted(rows, key=lambda row: row.source_record_id)
        if row.version != expected[row.source_record_id]
    ]


class VersionRecalculator:
    """
    Rewrites header versions so they follow download order within each
    (company, customer PO) group.

    Only headers whose version differs are written, so a second run over
    an unchanged dataset writes nothing. Must not run while ingestion is
    still inserting headers.
    """

    def __init__(self, store: CanonicalStore, max_workers: int = 4):
        """
        Initialize recalculator.

        Args:
            store: Canonical store holding the headers
            max_workers: Groups recalculated concurrently
        """
        self.store = store
        self.max_workers = max(1, max_workers)

    def recalculate(self) -> RecalculationResult:
        """
        Recalculate every group.

        Returns:
            Groups and headers examined, and headers rewritten
        """
        groups = self.store.list_version_groups()

        with log_operation("Recalculating header versions", logger=logger, groups=len(groups)):
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                per_group = list(executor.map(self._recalculate_group, groups))

        result = RecalculationResult(
            groups=len(groups),
            headers=sum(examined for examined, _ in per_group),
            updated=sum(updated for _, updated in per_group),
        )

        set_gauge(version_groups_examined, result.groups)
        if result.updated:
            increment_counter(version_corrections_total, result.updated)
        logger.info(
            f"Version recalculation updated {result.updated} of {result.headers} headers",
            extra=result.model_dump(),
        )
        return result

    def _recalculate_group(self, group_key: GroupKey) -> tuple[int, int]:
        rows = self.store.load_version_group(group_key)
        updates = version_corrections(rows)
        if not updates:
            return len(rows), 0

        logger.debug(
            f"Correcting {len(updates)} versions",
            extra={"company": group_key[0], "customer_po": group_key[1]},
        )
        return len(rows), self.store.apply_versions(updates)
