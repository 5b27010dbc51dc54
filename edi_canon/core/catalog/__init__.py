"""
Product catalog collaborator interface.
"""

from .product_catalog import (
    BatchProductCatalog,
    CatalogCache,
    CatalogEntry,
    ProductCatalog,
    StaticProductCatalog,
)

__all__ = [
    "CatalogEntry",
    "ProductCatalog",
    "BatchProductCatalog",
    "StaticProductCatalog",
    "CatalogCache",
]
