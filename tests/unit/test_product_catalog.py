"""
Unit tests for the product catalog cache.
"""

import pytest

from edi_canon.core.catalog import CatalogCache, CatalogEntry, StaticProductCatalog
from edi_canon.core.errors import CatalogUnavailableError
from edi_canon.observability.metrics import get_metric_value

ENTRIES = {
    ("BELK", "P-100"): CatalogEntry(color="IVORY", size="XL"),
    ("BELK", "P-200"): CatalogEntry(color="BLACK", size="S"),
}


class LookupOnlyCatalog:
    """Catalog without batch lookups."""

    def __init__(self):
        self.calls = []

    def lookup(self, company_id, product_id):
        self.calls.append(product_id)
        return ENTRIES.get((company_id, product_id))


class FailingCatalog:
    def __init__(self):
        self.calls = 0

    def lookup(self, company_id, product_id):
        self.calls += 1
        raise CatalogUnavailableError("connection refused")

    def lookup_many(self, company_id, product_ids):
        self.calls += 1
        raise CatalogUnavailableError("connection refused")


@pytest.mark.unit
class TestStaticProductCatalog:
    """Tests for StaticProductCatalog"""

    def test_company_is_case_insensitive(self):
        catalog = StaticProductCatalog(ENTRIES)
        assert catalog.lookup("belk", "P-100").color == "IVORY"

    def test_unknown_product(self):
        assert StaticProductCatalog(ENTRIES).lookup("BELK", "P-999") is None

    def test_lookup_many_returns_found_only(self):
        found = StaticProductCatalog(ENTRIES).lookup_many("BELK", ["P-100", "P-999"])
        assert list(found) == ["P-100"]


@pytest.mark.unit
class TestCatalogCache:
    """Tests for CatalogCache"""

    def test_memoizes_lookups(self):
        catalog = LookupOnlyCatalog()
        cache = CatalogCache(catalog, "BELK")

        assert cache.get("P-100").size == "XL"
        assert cache.get("P-100").size == "XL"
        assert cache.get("P-999") is None
        assert cache.get("P-999") is None

        assert catalog.calls == ["P-100", "P-999"]

    def test_prefetch_uses_one_batch_lookup(self):
        catalog = StaticProductCatalog(ENTRIES)
        cache = CatalogCache(catalog, "BELK")

        cache.prefetch(["P-100", "P-200", None, "P-100", "P-999"])
        assert catalog.lookups == 1

        assert cache.get("P-200").color == "BLACK"
        assert cache.get("P-999") is None
        assert catalog.lookups == 1

    def test_prefetch_is_skipped_without_batch_support(self):
        catalog = LookupOnlyCatalog()
        CatalogCache(catalog, "BELK").prefetch(["P-100"])
        assert catalog.calls == []

    def test_missing_product_id(self):
        catalog = LookupOnlyCatalog()
        assert CatalogCache(catalog, "BELK").get(None) is None
        assert catalog.calls == []

    def test_no_catalog(self):
        assert CatalogCache(None, "BELK").get("P-100") is None

    def test_failure_disables_catalog_for_document(self):
        before = get_metric_value("edi_catalog_lookups_total", {"result": "error"})
        catalog = FailingCatalog()
        cache = CatalogCache(catalog, "BELK")

        cache.prefetch(["P-100"])
        assert cache.get("P-100") is None
        assert cache.get("P-200") is None

        assert catalog.calls == 1
        assert get_metric_value("edi_catalog_lookups_total", {"result": "error"}) == before + 1

    def test_hits_and_misses_are_counted(self):
        hits = get_metric_value("edi_catalog_lookups_total", {"result": "hit"})
        misses = get_metric_value("edi_catalog_lookups_total", {"result": "miss"})
        cache = CatalogCache(LookupOnlyCatalog(), "BELK")

        cache.get("P-100")
        cache.get("P-999")

        assert get_metric_value("edi_catalog_lookups_total", {"result": "hit"}) == hits + 1
        assert get_metric_value("edi_catalog_lookups_total", {"result": "miss"}) == misses + 1
