"""
CanonicalLineItem model: one unit-of-quantity allocation to one store.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, model_validator


class CanonicalLineItem(BaseModel):
    """
    Normalized, partner-agnostic line item.

    Attributes:
        style: Displayed style (may carry a " P<N>" prepack suffix)
        color: Resolved color
        size: Resolved size ("PPK", "CA" or a concrete size)
        upc: UPC/GTIN equivalent
        sku: Buyer SKU
        uom: Unit of measure code
        unit_price: Cost per unit
        retail_price: Retail price per unit
        inner_pack: Inner pack count
        qty_per_inner_pack: Units per inner pack
        store_number: Destination store
        qty: Units allocated to the store (always positive once emitted)
        is_bom_component: True when the line is an exploded prepack component
        parent_line_key: Key of the prepack parent for component lines
    """

    style: str | None = None
    color: str | None = None
    size: str | None = None
    upc: str | None = None
    sku: str | None = None
    uom: str | None = None
    unit_price: Decimal | None = None
    retail_price: Decimal | None = None
    inner_pack: int | None = None
    qty_per_inner_pack: int | None = None
    store_number: str | None = None
    qty: int = Field(..., ge=0)
    is_bom_component: bool = False
    parent_line_key: str | None = None

    @model_validator(mode="after")
    def check_parent_link(self) -> "CanonicalLineItem":
        """Component lines carry a parent key; plain lines never do."""
        if self.is_bom_component and self.parent_line_key is None:
            raise ValueError("BOM component line requires parent_line_key")
        if not self.is_bom_component and self.parent_line_key is not None:
            raise ValueError("parent_line_key is only allowed on BOM component lines")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "style": "KX4410",
                "color": "NAVY",
                "size": "M",
                "upc": "0884512003321",
                "sku": "77412231",
                "uom": "EA",
                "unit_price": "11.50",
                "retail_price": "28.00",
                "inner_pack": 6,
                "qty_per_inner_pack": 1,
                "store_number": "00108",
                "qty": 12,
                "is_bom_component": True,
                "parent_line_key": "3|0884512009999",
            }
        }
