"""
CanonicalHeader model: one per successfully parsed SourceRecord.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


class CanonicalHeader(BaseModel):
    """
    Partner-agnostic purchase-order header.

    ``source_record_id`` is the join key consumers use to read the
    authoritative version of a transmission.

    Attributes:
        company: Trading partner code
        customer_po: Customer purchase-order number
        po_type: Order type code the partner rule was selected by
        download_date: Calendar date of the download
        download_timestamp: Exact download time, orders versions
        version: 1-based transmission number within (company, customer_po)
        source_record_id: Originating SourceRecord id
        department: Buyer department number
        order_date: PO creation date
        start_date: Requested ship / do-not-deliver-before date
        cancel_date: Cancel-after date
        total_items: Distinct UPC (or SKU) count over emitted lines
        total_qty: Sum of emitted line quantities
    """

    company: str = Field(..., min_length=1)
    customer_po: str = Field(..., min_length=1)
    po_type: str | None = None
    download_date: date
    download_timestamp: datetime
    version: int = Field(default=1, ge=1)
    source_record_id: int
    department: str | None = None
    order_date: date | None = None
    start_date: date | None = None
    cancel_date: date | None = None
    total_items: int = Field(default=0, ge=0)
    total_qty: int = Field(default=0, ge=0)

    @property
    def group_key(self) -> tuple[str, str]:
        """Version group this header belongs to."""
        return (self.company, self.customer_po)

    class Config:
        json_schema_extra = {
            "example": {
                "company": "BELK",
                "customer_po": "0455123",
                "po_type": "BK",
                "download_date": "2024-03-11",
                "download_timestamp": "2024-03-11T08:15:00",
                "version": 2,
                "source_record_id": 1042,
                "department": "412",
                "order_date": "2024-03-08",
                "start_date": "2024-04-01",
                "cancel_date": "2024-04-20",
                "total_items": 6,
                "total_qty": 144,
            }
        }
