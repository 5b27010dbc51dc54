"""
Canonical line item construction.
"""

from .item_builder import CanonicalItemBuilder

__all__ = [
    "CanonicalItemBuilder",
]
