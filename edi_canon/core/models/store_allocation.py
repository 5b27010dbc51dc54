"""
StoreAllocation model: one decoded (store, quantity) pair from an SDQ segment.
"""

from pydantic import BaseModel


class StoreAllocation(BaseModel):
    """
    Raw store/quantity pair reported by the SDQ decoder.

    Quantity is reported as decoded; zero and negative values are filtered
    by the caller.
    """

    owner_key: str
    segment_index: int
    store_number: str | None
    quantity: int

    class Config:
        frozen = True
