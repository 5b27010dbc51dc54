"""
Product catalog backed by the warehouse ``product_catalog`` table.
"""

from psycopg import Error as PsycopgError

from edi_canon.core.catalog import CatalogEntry
from edi_canon.core.errors import CatalogUnavailableError

from .connection import DatabaseConnectionPool


class PostgresProductCatalog:
    """
    Looks up color and size by (company, product id).

    Database errors surface as CatalogUnavailableError so the builder
    can fall through to the next configured source.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def lookup(self, company_id: str, product_id: str) -> CatalogEntry | None:
        return self.lookup_many(company_id, [product_id]).get(product_id)

    def lookup_many(self, company_id: str, product_ids: list[str]) -> dict[str, CatalogEntry]:
        if not product_ids:
            return {}
        try:
            rows = self.pool.execute_query(
                """
                SELECT product_id, color, size
                FROM product_catalog
                WHERE UPPER(company_id) = UPPER(%s) AND product_id = ANY(%s)
                """,
                (company_id, list(product_ids)),
            )
        except PsycopgError as e:
            raise CatalogUnavailableError(f"Product catalog lookup failed: {e}") from e

        return {
            row["product_id"]: CatalogEntry(color=row["color"], size=row["size"])
            for row in rows
        }
