"""
StageOutcome model: the per-record, per-stage entry of the processing queue.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

DETAILS_STAGE = "canonical_details"


class StageOutcome(BaseModel):
    """
    Outcome of one processing stage for one source record.

    A stage claims a record by writing a ``claimed`` row and replaces it
    with the final status in the same transaction as its output rows.
    """

    source_record_id: int
    stage: str = DETAILS_STAGE
    status: Literal["claimed", "succeeded", "rejected", "failed"]
    detail: str | None = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)
