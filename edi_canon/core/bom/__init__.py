"""
Prepack (BOM) expansion.
"""

from .expander import BOMExpander, composition_signature, deduplicate_compositions

__all__ = [
    "BOMExpander",
    "composition_signature",
    "deduplicate_compositions",
]
