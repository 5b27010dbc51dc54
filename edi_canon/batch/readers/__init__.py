"""
Batch source record readers.
"""

from .source_reader import SOURCE_RECORD_SCHEMA, SourceFileReader

__all__ = [
    "SourceFileReader",
    "SOURCE_RECORD_SCHEMA",
]
