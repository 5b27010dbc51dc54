"""
PostgreSQL canonical store.

Each source record is written in one transaction: the header, its line
items, its prepack compositions and the stage outcome. Inserts for the
same (company, customer PO) are serialized with a transaction-scoped
advisory lock so the inline version count sees committed siblings.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from psycopg import Connection
from psycopg.types.json import Jsonb

from edi_canon.core.models import (
    DETAILS_STAGE,
    CanonicalDocument,
    HeaderVersionRow,
    RejectionRecord,
)
from edi_canon.core.store import GroupKey

from .connection import DatabaseConnectionPool

UPSERT_OUTCOME = """
    INSERT INTO source_stage_outcome (source_record_id, stage, status, detail, updated_at)
    VALUES (%s, %s, %s, %s, NOW())
    ON CONFLICT (source_record_id, stage) DO UPDATE SET
        status = EXCLUDED.status,
        detail = EXCLUDED.detail,
        updated_at = EXCLUDED.updated_at
"""


class PostgresUnitOfWork:
    """Unit of work bound to one open transaction."""

    def __init__(self, conn: Connection):
        self.conn = conn

    def count_earlier_headers(self, company: str, customer_po: str, download_timestamp: datetime) -> int:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT COUNT(*) AS earlier
                FROM canonical_header
                WHERE company = %s AND customer_po = %s AND download_timestamp < %s
                """,
                (company, customer_po, download_timestamp),
            )
            return cur.fetchone()["earlier"]

    def insert_document(self, document: CanonicalDocument) -> None:
        header = document.header
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO canonical_header (
                    source_record_id, company, customer_po, po_type, download_date,
                    download_timestamp, version, department, order_date, start_date,
                    cancel_date, total_items, total_qty
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING header_id
                """,
                (
                    header.source_record_id,
                    header.company,
                    header.customer_po,
                    header.po_type,
                    header.download_date,
                    header.download_timestamp,
                    header.version,
                    header.department,
                    header.order_date,
                    header.start_date,
                    header.cancel_date,
                    header.total_items,
                    header.total_qty,
                ),
            )
            header_id = cur.fetchone()["header_id"]

            if document.line_items:
                cur.executemany(
                    """
                    INSERT INTO canonical_line_item (
                        header_id, line_number, style, color, size, upc, sku, uom,
                        unit_price, retail_price, inner_pack, qty_per_inner_pack,
                        store_number, qty, is_bom_component, parent_line_key
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    [
                        (
                            header_id,
                            line_number,
                            line.style,
                            line.color,
                            line.size,
                            line.upc,
                            line.sku,
                            line.uom,
                            line.unit_price,
                            line.retail_price,
                            line.inner_pack,
                            line.qty_per_inner_pack,
                            line.store_number,
                            line.qty,
                            line.is_bom_component,
                            line.parent_line_key,
                        )
                        for line_number, line in enumerate(document.line_items, start=1)
                    ],
                )

            if document.compositions:
                cur.executemany(
                    """
                    INSERT INTO bom_composition (
                        header_id, parent_line_key, signature, parent_style, parent_color,
                        parent_size, parent_upc, parent_sku, pack_total, components
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    [
                        (
                            header_id,
                            composition.parent_line_key,
                            composition.signature,
                            composition.parent_style,
                            composition.parent_color,
                            composition.parent_size,
                            composition.parent_upc,
                            composition.parent_sku,
                            composition.pack_total,
                            Jsonb([c.model_dump() for c in composition.components]),
                        )
                        for composition in document.compositions
                    ],
                )

    def record_outcome(self, source_record_id: int, status: str, detail: str | None = None) -> None:
        with self.conn.cursor() as cur:
            cur.execute(UPSERT_OUTCOME, (source_record_id, DETAILS_STAGE, status, detail))


class PostgresCanonicalStore:
    """
    CanonicalStore backed by the warehouse schema in docker/init-db.sql.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize store.

        Args:
            pool: Open database connection pool
        """
        self.pool = pool

    @contextmanager
    def unit_of_work(self, group_key: GroupKey) -> Iterator[PostgresUnitOfWork]:
        """
        Open a transaction holding the group's advisory lock.

        Commits when the block exits cleanly, rolls back otherwise.
        """
        company, customer_po = group_key
        with self.pool.transaction(lock_key=f"{company}|{customer_po}") as conn:
            yield PostgresUnitOfWork(conn)

    def record_rejection(self, rejection: RejectionRecord) -> None:
        """Store a rejection and the record's rejected outcome together."""
        with self.pool.transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO rejection_record (
                        source_record_id, company_code, reason, detail, raw_payload, rejected_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    (
                        rejection.source_record_id,
                        rejection.company_code,
                        rejection.reason,
                        rejection.detail,
                        rejection.raw_payload,
                        rejection.rejected_at,
                    ),
                )
                cur.execute(
                    UPSERT_OUTCOME,
                    (rejection.source_record_id, DETAILS_STAGE, "rejected", rejection.reason),
                )

    def record_failure(self, source_record_id: int, detail: str) -> None:
        self.pool.execute_command(UPSERT_OUTCOME, (source_record_id, DETAILS_STAGE, "failed", detail))

    def list_version_groups(self) -> list[GroupKey]:
        rows = self.pool.execute_query(
            """
            SELECT DISTINCT company, customer_po
            FROM canonical_header
            ORDER BY company, customer_po
            """
        )
        return [(row["company"], row["customer_po"]) for row in rows]

    def load_version_group(self, group_key: GroupKey) -> list[HeaderVersionRow]:
        rows = self.pool.execute_query(
            """
            SELECT source_record_id, company, customer_po, download_timestamp, version
            FROM canonical_header
            WHERE company = %s AND customer_po = %s
            """,
            group_key,
        )
        return [HeaderVersionRow(**row) for row in rows]

    def apply_versions(self, updates: list[tuple[int, int]]) -> int:
        """
        Write corrected versions.

        Args:
            updates: (source record id, version) pairs

        Returns:
            Number of headers actually changed
        """
        if not updates:
            return 0

        changed = 0
        with self.pool.transaction() as conn:
            with conn.cursor() as cur:
                for source_record_id, version in updates:
                    cur.execute(
                        """
                        UPDATE canonical_header
                        SET version = %s
                        WHERE source_record_id = %s AND version <> %s
                        """,
                        (version, source_record_id, version),
                    )
                    changed += cur.rowcount
        return changed

    def version_for_source(self, source_record_id: int) -> int | None:
        """Authoritative version of the header built from a source record."""
        rows = self.pool.execute_query(
            "SELECT version FROM canonical_header WHERE source_record_id = %s",
            (source_record_id,),
        )
        return rows[0]["version"] if rows else None
