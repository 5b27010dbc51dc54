"""
Batch pipeline orchestration.

Coordinates the flow: claim -> build -> assign version -> persist -> report,
then recalculates header versions once every record has been written.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, Optional

from edi_canon.core.builder import CanonicalItemBuilder
from edi_canon.core.errors import DocumentRejected
from edi_canon.core.models import RejectionRecord, SourceRecord
from edi_canon.core.store import CanonicalStore, OutcomeSink
from edi_canon.core.versioning import VersionAssigner, VersionRecalculator
from edi_canon.observability.logger import RecordLogger, get_logger, log_operation, record_logger
from edi_canon.observability.metrics import (
    batch_duration_seconds,
    increment_counter,
    observe_histogram,
    record_processing_latency_seconds,
    records_processed_total,
    rejections_total,
    track_duration,
)

logger = get_logger(__name__)

UNKNOWN_COMPANY = "unknown"


class PipelineDriver:
    """
    Runs a batch of source records through the canonicalization engine.

    Flow:
    1. Skip records the eligibility predicate refuses (already processed or
       claimed elsewhere)
    2. Build the canonical document for each record on a bounded worker pool
    3. Stamp the inline version and persist header, lines, compositions and
       the stage outcome in one unit of work
    4. Record rejections for malformed documents
    5. Recalculate versions after the pool has drained
    """

    def __init__(
        self,
        builder: CanonicalItemBuilder,
        store: CanonicalStore,
        assigner: Optional[VersionAssigner] = None,
        recalculator: Optional[VersionRecalculator] = None,
        max_workers: Optional[int] = None,
        outcome_sink: Optional[OutcomeSink] = None,
    ):
        """
        Initialize pipeline driver.

        Args:
            builder: Canonical item builder
            store: Canonical store receiving the output
            assigner: Inline version assigner
            recalculator: Version recalculator (defaults to one over ``store``)
            max_workers: Records processed concurrently (defaults to env var EDI_WORKERS)
            outcome_sink: Optional receiver of per-record outcomes
        """
        self.builder = builder
        self.store = store
        self.assigner = assigner or VersionAssigner()
        self.max_workers = max(1, max_workers or int(os.getenv("EDI_WORKERS", "4")))
        self.recalculator = recalculator or VersionRecalculator(store, max_workers=self.max_workers)
        self.outcome_sink = outcome_sink

    def run(
        self,
        records: Iterable[SourceRecord],
        is_eligible: Optional[Callable[[SourceRecord], bool]] = None,
        recalculate: bool = True,
    ) -> Dict[str, Any]:
        """
        Process a batch of source records.

        Args:
            records: Source records to process
            is_eligible: Predicate deciding whether a record is processed; a
                claiming predicate makes concurrent runs safe
            recalculate: Whether to run the version recalculation phase

        Returns:
            Dictionary with processing results:
            - total_records: Records offered to the driver
            - skipped: Records refused by the eligibility predicate
            - succeeded / rejected / failed: Per-status record counts
            - line_items: Canonical line items written
            - version_groups / versions_updated: Recalculation counts
        """
        records = list(records)
        logger.info(f"Starting canonicalization of {len(records)} source records")

        eligible = [record for record in records if is_eligible is None or is_eligible(record)]
        skipped = len(records) - len(eligible)
        if skipped:
            logger.info(f"Skipped {skipped} records that are not eligible")

        with log_operation("Building canonical details", logger=logger, records=len(eligible)):
            with track_duration(batch_duration_seconds, phase="details"):
                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    outcomes = list(executor.map(self._process_record, eligible))

        result = {
            "total_records": len(records),
            "skipped": skipped,
            "succeeded": sum(1 for status, _ in outcomes if status == "succeeded"),
            "rejected": sum(1 for status, _ in outcomes if status == "rejected"),
            "failed": sum(1 for status, _ in outcomes if status == "failed"),
            "line_items": sum(lines for _, lines in outcomes),
            "version_groups": 0,
            "versions_updated": 0,
        }

        if recalculate:
            with track_duration(batch_duration_seconds, phase="recalculate"):
                recalculation = self.recalculator.recalculate()
            result["version_groups"] = recalculation.groups
            result["versions_updated"] = recalculation.updated

        logger.info("Batch processing complete", extra=result)
        return result

    def _process_record(self, record: SourceRecord) -> tuple[str, int]:
        """
        Canonicalize and persist one record.

        Returns:
            Tuple of (status, line items written)
        """
        company = record.company_code or UNKNOWN_COMPANY
        log = record_logger(logger, source_record_id=record.id, company=company)
        started = time.perf_counter()

        try:
            document = self.builder.build(record)
            with self.store.unit_of_work(document.header.group_key) as uow:
                header = self.assigner.assign(document.header, uow)
                document = document.model_copy(update={"header": header})
                uow.insert_document(document)
                uow.record_outcome(record.id, "succeeded")
        except DocumentRejected as e:
            return self._reject(record, company, e, log)
        except Exception as e:
            log.error(f"Failed to process source record: {e}", exc_info=True)
            return self._fail(record, company, str(e), log)

        observe_histogram(record_processing_latency_seconds, time.perf_counter() - started, company=company)
        increment_counter(records_processed_total, company=company, status="succeeded")
        self._report(record.id, "succeeded")
        log.debug(
            f"Stored version {document.header.version} of PO {document.header.customer_po}",
            extra={"customer_po": document.header.customer_po, "line_items": len(document.line_items)},
        )
        return "succeeded", len(document.line_items)

    def _reject(self, record: SourceRecord, company: str, error: DocumentRejected, log: RecordLogger) -> tuple[str, int]:
        rejection = RejectionRecord(
            source_record_id=record.id,
            company_code=record.company_code,
            reason=error.reason,
            detail=error.detail,
            raw_payload=record.json_content,
        )
        try:
            self.store.record_rejection(rejection)
        except Exception as e:
            log.error(f"Failed to record rejection: {e}", exc_info=True)
            return self._fail(record, company, str(e), log)

        increment_counter(rejections_total, reason=error.reason)
        increment_counter(records_processed_total, company=company, status="rejected")
        self._report(record.id, "rejected", error.reason)
        log.warning(f"Rejected source record: {error}", extra={"reason": error.reason})
        return "rejected", 0

    def _fail(self, record: SourceRecord, company: str, detail: str, log: RecordLogger) -> tuple[str, int]:
        try:
            self.store.record_failure(record.id, detail)
        except Exception as e:
            log.error(f"Failed to record failure outcome: {e}", exc_info=True)

        increment_counter(records_processed_total, company=company, status="failed")
        self._report(record.id, "failed", detail)
        return "failed", 0

    def _report(self, source_record_id: int, status: str, detail: Optional[str] = None) -> None:
        if self.outcome_sink is not None:
            self.outcome_sink.report(source_record_id, status, detail)
