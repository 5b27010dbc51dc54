"""
JSON shape normalization helpers.
"""

from .shape import as_node_list, node_at, text_or_none, value_at

__all__ = [
    "as_node_list",
    "node_at",
    "value_at",
    "text_or_none",
]
