"""
RejectionRecord model representing a source record that could not be canonicalized.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class RejectionRecord(BaseModel):
    """
    Terminal per-record failure, kept for analyst review.

    Attributes:
        rejection_id: Auto-increment primary key
        source_record_id: Rejected SourceRecord id
        company_code: Company code delivered with the record (may be missing)
        reason: Short machine-readable reason (invalid_json, missing_header_field, ...)
        detail: Human-readable explanation
        raw_payload: Original JSON text as received
        rejected_at: When the rejection was recorded
    """

    rejection_id: int | None = None
    source_record_id: int
    company_code: str | None = None
    reason: str = Field(..., min_length=1)
    detail: str = ""
    raw_payload: str | None = None
    rejected_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "rejection_id": 7,
                "source_record_id": 1043,
                "company_code": "ARULA",
                "reason": "missing_header_field",
                "detail": "PurchaseOrderHeader.PurchaseOrderNumber: Field value is null",
                "raw_payload": "{\"PurchaseOrderHeader\": {\"CompanyCode\": \"ARULA\"}}",
            }
        }
