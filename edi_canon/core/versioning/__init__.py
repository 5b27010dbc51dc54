"""
Header version assignment and recalculation.
"""

from .assigner import VersionAssigner
from .recalculator import (
    RecalculationResult,
    VersionRecalculator,
    ranked_versions,
    version_corrections,
)

__all__ = [
    "VersionAssigner",
    "VersionRecalculator",
    "RecalculationResult",
    "ranked_versions",
    "version_corrections",
]
