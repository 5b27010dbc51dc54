"""
SourceRecord model representing one inbound purchase-order transmission.
"""

from datetime import datetime

from pydantic import BaseModel


class SourceRecord(BaseModel):
    """
    One EDI 850 transmission as delivered by the upstream gateway.

    Immutable once ingested. Processing status is tracked outside the
    record (see StageOutcome).

    Attributes:
        id: Identifier assigned by the inbound table
        company_code: Trading partner code as delivered with the record
        partner_order_type: Order type code as delivered with the record
        json_content: Raw JSON document produced by the X12 translator
        download_timestamp: When the transmission was downloaded
    """

    id: int
    company_code: str | None = None
    partner_order_type: str | None = None
    json_content: str
    download_timestamp: datetime

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": 1042,
                "company_code": "Kohls",
                "partner_order_type": "BULK",
                "json_content": "{\"PurchaseOrderHeader\": {\"PurchaseOrderNumber\": \"7784512\"}}",
                "download_timestamp": "2024-03-11T08:15:00",
            }
        }
