"""
Core data models for the EDI 850 canonicalization engine.

All models use Pydantic for runtime validation and type safety.
"""

from .bom_composition import BOMComponent, BOMComposition
from .canonical_document import CanonicalDocument, HeaderVersionRow
from .canonical_header import CanonicalHeader
from .canonical_line_item import CanonicalLineItem
from .partner_rule import ComponentFields, PartnerRule
from .rejection_record import RejectionRecord
from .source_record import SourceRecord
from .stage_outcome import DETAILS_STAGE, StageOutcome
from .store_allocation import StoreAllocation

__all__ = [
    "SourceRecord",
    "CanonicalHeader",
    "CanonicalLineItem",
    "BOMComponent",
    "BOMComposition",
    "CanonicalDocument",
    "HeaderVersionRow",
    "ComponentFields",
    "PartnerRule",
    "RejectionRecord",
    "StageOutcome",
    "DETAILS_STAGE",
    "StoreAllocation",
]
