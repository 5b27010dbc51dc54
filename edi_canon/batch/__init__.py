"""
Batch canonicalization module.
"""

from .pipeline import PipelineDriver
from .readers import SourceFileReader

__all__ = [
    "PipelineDriver",
    "SourceFileReader",
]
