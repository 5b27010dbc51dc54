"""
BOM models: prepack components and the composition of one prepack parent.
"""

from pydantic import BaseModel, Field


class BOMComponent(BaseModel):
    """One component SKU of a prepack, with its per-pack quantity."""

    style: str | None = None
    color: str | None = None
    size: str | None = None
    upc: str | None = None
    sku: str | None = None
    quantity: int | None = None


class BOMComposition(BaseModel):
    """
    Composition of one prepack parent line.

    Two prepacks with the same components (in any source order) share a
    signature; the PrePack Summary projection keeps one per signature.

    Attributes:
        parent_line_key: Key shared with the component line items
        components: Component descriptors in source order
        signature: Order-independent composition key
        parent_style: Displayed parent style (after suffix rules)
        parent_color: Displayed parent color
        parent_size: Displayed parent size
        parent_upc: Parent UPC/GTIN
        parent_sku: Parent SKU
        pack_total: Sum of component quantities per pack
    """

    parent_line_key: str
    components: list[BOMComponent] = Field(default_factory=list)
    signature: str
    parent_style: str | None = None
    parent_color: str | None = None
    parent_size: str | None = None
    parent_upc: str | None = None
    parent_sku: str | None = None
    pack_total: int = 0

    class Config:
        json_schema_extra = {
            "example": {
                "parent_line_key": "2|0400112233445",
                "components": [
                    {"style": "B100", "color": "RED", "size": "S", "quantity": 2},
                    {"style": "B100", "color": "RED", "size": "M", "quantity": 4},
                ],
                "signature": "B100|RED|M|4~B100|RED|S|2",
                "parent_style": "B100 P6",
                "parent_color": "RED",
                "parent_size": "PPK",
                "pack_total": 6,
            }
        }
