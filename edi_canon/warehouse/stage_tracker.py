"""
Stage-outcome queue over the inbound source records.

A stage claims a record by inserting a ``claimed`` outcome row; the
insert only succeeds for records without an outcome for that stage, so
two workers can never claim the same record. The stage then replaces
the claim with its final status inside the transaction that writes its
output (see PostgresCanonicalStore).
"""

from datetime import timedelta

from edi_canon.core.models import DETAILS_STAGE, SourceRecord
from edi_canon.observability.logger import get_logger

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)


class PostgresStageTracker:
    """
    Claims and lists source records for one processing stage.
    """

    def __init__(self, pool: DatabaseConnectionPool, stage: str = DETAILS_STAGE):
        """
        Initialize tracker.

        Args:
            pool: Database connection pool
            stage: Stage name outcomes are recorded under
        """
        self.pool = pool
        self.stage = stage

    def fetch_eligible(self, company: str | None = None, limit: int | None = None) -> list[SourceRecord]:
        """
        Source records with no outcome for this stage, oldest download first.

        Args:
            company: Restrict to one company code (case-insensitive)
            limit: Maximum number of records

        Returns:
            List of SourceRecord
        """
        query = """
            SELECT s.id, s.company_code, s.partner_order_type, s.json_content, s.download_timestamp
            FROM source_record s
            WHERE s.transaction_type = '850'
              AND NOT EXISTS (
                  SELECT 1 FROM source_stage_outcome o
                  WHERE o.source_record_id = s.id AND o.stage = %s
              )
        """
        params: list = [self.stage]
        if company:
            query += " AND UPPER(s.company_code) = UPPER(%s)"
            params.append(company)
        query += " ORDER BY s.download_timestamp, s.id"
        if limit:
            query += " LIMIT %s"
            params.append(limit)

        rows = self.pool.execute_query(query, tuple(params))
        return [SourceRecord(**row) for row in rows]

    def claim(self, record: SourceRecord) -> bool:
        """
        Claim a record for this stage.

        Returns:
            True if this caller now owns the record
        """
        rows = self.pool.execute_query(
            """
            INSERT INTO source_stage_outcome (source_record_id, stage, status, updated_at)
            VALUES (%s, %s, 'claimed', NOW())
            ON CONFLICT (source_record_id, stage) DO NOTHING
            RETURNING source_record_id
            """,
            (record.id, self.stage),
        )
        return bool(rows)

    def release_stale_claims(self, older_than: timedelta = timedelta(hours=1)) -> int:
        """
        Drop claims left behind by crashed runs so the records become eligible again.

        Returns:
            Number of claims released
        """
        released = self.pool.execute_command(
            """
            DELETE FROM source_stage_outcome
            WHERE stage = %s AND status = 'claimed' AND updated_at < NOW() - %s
            """,
            (self.stage, older_than),
        )
        if released:
            logger.warning(f"Released {released} stale claims", extra={"stage": self.stage})
        return released

    def status_counts(self) -> dict[str, int]:
        """Number of records per outcome status for this stage."""
        rows = self.pool.execute_query(
            """
            SELECT status, COUNT(*) AS records
            FROM source_stage_outcome
            WHERE stage = %s
            GROUP BY status
            """,
            (self.stage,),
        )
        return {row["status"]: row["records"] for row in rows}
