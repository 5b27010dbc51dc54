"""
CanonicalDocument: everything the builder produces for one source record.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .bom_composition import BOMComposition
from .canonical_header import CanonicalHeader
from .canonical_line_item import CanonicalLineItem


class CanonicalDocument(BaseModel):
    """Header, emitted line items and prepack compositions of one transmission."""

    header: CanonicalHeader
    line_items: list[CanonicalLineItem] = Field(default_factory=list)
    compositions: list[BOMComposition] = Field(default_factory=list)

    @property
    def source_record_id(self) -> int:
        return self.header.source_record_id


class HeaderVersionRow(BaseModel):
    """Minimal header projection the version recalculator works on."""

    source_record_id: int
    company: str
    customer_po: str
    download_timestamp: datetime
    version: int
