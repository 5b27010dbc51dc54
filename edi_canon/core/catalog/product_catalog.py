"""
Product catalog collaborator and per-purchase-order lookup cache.

The catalog is a fallback source of color and size for partners whose
documents omit them on plain line items.
"""

import threading
from typing import Iterable, Protocol, runtime_checkable

from pydantic import BaseModel

from edi_canon.core.errors import CatalogUnavailableError
from edi_canon.observability.logger import get_logger
from edi_canon.observability.metrics import catalog_lookups_total, increment_counter

logger = get_logger(__name__)


class CatalogEntry(BaseModel):
    """Color and size recorded for one product."""

    color: str | None = None
    size: str | None = None

    class Config:
        frozen = True


class ProductCatalog(Protocol):
    def lookup(self, company_id: str, product_id: str) -> CatalogEntry | None: ...


@runtime_checkable
class BatchProductCatalog(ProductCatalog, Protocol):
    def lookup_many(self, company_id: str, product_ids: list[str]) -> dict[str, CatalogEntry]: ...


class StaticProductCatalog:
    """
    Catalog backed by a dictionary, keyed by (company, product id).

    Company codes are matched case-insensitively.
    """

    def __init__(self, entries: dict[tuple[str, str], CatalogEntry] | None = None):
        self._entries = {
            (company.upper(), product_id): entry
            for (company, product_id), entry in (entries or {}).items()
        }
        self._lock = threading.Lock()
        self.lookups = 0

    def lookup(self, company_id: str, product_id: str) -> CatalogEntry | None:
        with self._lock:
            self.lookups += 1
        return self._entries.get((company_id.upper(), product_id))

    def lookup_many(self, company_id: str, product_ids: list[str]) -> dict[str, CatalogEntry]:
        with self._lock:
            self.lookups += 1
        found = {}
        for product_id in product_ids:
            entry = self._entries.get((company_id.upper(), product_id))
            if entry is not None:
                found[product_id] = entry
        return found


class CatalogCache:
    """
    Memoizes catalog lookups for one purchase order.

    A catalog failure is logged once and every further lookup for the
    document resolves to "no value", so resolution moves on to the next
    configured source instead of failing the record.
    """

    def __init__(self, catalog: ProductCatalog | None, company_id: str):
        self.catalog = catalog
        self.company_id = company_id
        self._entries: dict[str, CatalogEntry | None] = {}
        self._unavailable = catalog is None

    def prefetch(self, product_ids: Iterable[str | None]) -> None:
        """Load all product ids of a document in one round trip when supported."""
        if self._unavailable or not isinstance(self.catalog, BatchProductCatalog):
            return

        wanted = sorted({pid for pid in product_ids if pid and pid not in self._entries})
        if not wanted:
            return

        try:
            found = self.catalog.lookup_many(self.company_id, wanted)
        except CatalogUnavailableError as e:
            self._mark_unavailable(e)
            return

        for product_id in wanted:
            entry = found.get(product_id)
            self._entries[product_id] = entry
            increment_counter(catalog_lookups_total, result="hit" if entry else "miss")

    def get(self, product_id: str | None) -> CatalogEntry | None:
        """Catalog entry for a product id, or None when unknown or unavailable."""
        if not product_id or self._unavailable:
            return None
        if product_id in self._entries:
            return self._entries[product_id]

        try:
            entry = self.catalog.lookup(self.company_id, product_id)
        except CatalogUnavailableError as e:
            self._mark_unavailable(e)
            return None

        increment_counter(catalog_lookups_total, result="hit" if entry else "miss")
        self._entries[product_id] = entry
        return entry

    def _mark_unavailable(self, error: Exception) -> None:
        self._unavailable = True
        increment_counter(catalog_lookups_total, result="error")
        logger.warning(
            f"Product catalog unavailable, continuing without fallback values: {error}",
            extra={"company": self.company_id},
        )
