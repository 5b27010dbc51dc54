"""
Decoders for positionally encoded EDI structures.
"""

from .sdq_decoder import SDQDecoder, element_index

__all__ = [
    "SDQDecoder",
    "element_index",
]
