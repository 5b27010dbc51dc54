"""
PartnerRule model: data-driven behavior for one (company, order type) pair.
"""

import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

# "kind" or "kind:argument"
SOURCE_PATTERN = re.compile(r"^[a-z_]+(:.+)?$")

LINE_ITEMS_PATH = "PurchaseOrderHeader.PurchaseOrder.PurchaseOrderDetails"


class ComponentFields(BaseModel):
    """Field names read from each BOM component node."""

    style: str = "VendorItemNumber"
    color: str = "ColorDescription"
    size: str = "SizeDescription"
    upc: str | None = "GTIN"
    sku: str | None = "BuyerPartNumber"
    quantity: str = "Quantity"


class PartnerRule(BaseModel):
    """
    Resolution rules for one trading partner and order type.

    Value sources in ``color_sources`` / ``size_sources`` (and their BOM
    variants) are tried in order; the first non-empty value wins.

    Attributes:
        company: Trading partner code (matched case-insensitively)
        order_type: Order type code (matched case-insensitively)
        description: Free text shown by ``edi-canon rules``
        po_type_path: Header path the order type is read from
        style_field: Line field holding the vendor style
        upc_field: Line field used as UPC/GTIN (None: no UPC)
        sku_field: Line field used as SKU (None: no SKU)
        inner_pack_policy: When inner pack fields are populated
        color_sources: Color resolution order for plain items
        size_sources: Size resolution order for plain items
        bom_color_sources: Color resolution order for prepack parents
        bom_size_sources: Size resolution order for prepack parents
        style_suffix: "pack_total" appends " P<N>" to prepack parent styles
        bom_expansion: "components" explodes prepacks, "parent" keeps one line
        component_inherit: Component line attributes taken from the parent line
        quantity_source: "sdq" decodes allocations, "field" reads one quantity
        quantity_coercion: "integer" or "decimal_truncate" ("238.0" -> 238)
        store_path: Header path holding the store for field quantities
    """

    company: str = Field(..., min_length=1)
    order_type: str = Field(..., min_length=1)
    description: str | None = None

    # Header paths
    po_type_path: str = "PurchaseOrderHeader.PurchaseOrderTypeCode"
    department_path: str | None = "PurchaseOrderHeader.PurchaseOrder.DepartmentNumber"
    order_date_path: str | None = "PurchaseOrderHeader.OrderDate"
    start_date_path: str | None = "PurchaseOrderHeader.PurchaseOrder.RequestedShipDate"
    cancel_date_path: str | None = "PurchaseOrderHeader.PurchaseOrder.CancelDate"
    line_items_path: str = LINE_ITEMS_PATH

    # Line item fields
    line_id_field: str = "LineItemId"
    style_field: str = "VendorItemNumber"
    upc_field: str | None = "GTIN"
    sku_field: str | None = "BuyerPartNumber"
    uom_field: str | None = "UOMTypeCode"
    unit_price_field: str | None = "UnitPrice"
    retail_price_field: str | None = "RetailPrice"
    inner_pack_field: str | None = "Pack"
    qty_per_inner_pack_field: str | None = "PackSize"
    inner_pack_policy: Literal["always", "bom_only", "never"] = "always"
    catalog_product_field: str | None = "ProductId"

    # Resolution orders
    color_sources: list[str] = Field(default_factory=lambda: ["field:ColorDescription"])
    size_sources: list[str] = Field(default_factory=lambda: ["field:SizeDescription"])
    bom_color_sources: list[str] = Field(
        default_factory=lambda: ["bom_first_component", "field:ColorDescription"]
    )
    bom_size_sources: list[str] = Field(default_factory=lambda: ["literal:PPK"])
    style_suffix: Literal["pack_total"] | None = None

    # Prepacks
    bom_field: str = "BOMDetails"
    bom_expansion: Literal["components", "parent"] = "components"
    component_fields: ComponentFields = Field(default_factory=ComponentFields)
    component_inherit: list[Literal["style", "upc", "sku"]] = Field(default_factory=list)

    # Quantities
    quantity_source: Literal["sdq", "field"] = "sdq"
    sdq_path: str = "DestinationInfo.SDQ"
    quantity_field: str = "Quantity"
    store_path: str | None = None
    quantity_coercion: Literal["integer", "decimal_truncate"] = "integer"

    @field_validator(
        "color_sources", "size_sources", "bom_color_sources", "bom_size_sources"
    )
    @classmethod
    def check_source_syntax(cls, v: list[str]) -> list[str]:
        """Each source must read "kind" or "kind:argument"."""
        for source in v:
            if not SOURCE_PATTERN.match(source):
                raise ValueError(f"Invalid value source '{source}'")
        return v

    @model_validator(mode="after")
    def check_store_path(self) -> "PartnerRule":
        """Direct quantities need a store location."""
        if self.quantity_source == "field" and not self.store_path:
            raise ValueError("store_path is required when quantity_source is 'field'")
        return self

    @property
    def key(self) -> tuple[str, str]:
        return (self.company.upper(), self.order_type.upper())

    class Config:
        json_schema_extra = {
            "example": {
                "company": "Maurices",
                "order_type": "SO",
                "po_type_path": "PurchaseOrderHeader.PurchaseOrder.ReferencePOType",
                "upc_field": None,
                "sku_field": "ProductId",
                "size_sources": ["field:VendorSizeDescription[1]", "second_word:VendorSizeDescription"],
                "bom_size_sources": ["literal:CA"],
                "bom_expansion": "parent",
                "quantity_source": "field",
                "store_path": "PurchaseOrderHeader.PurchaseOrder.DivisionIdentifier",
                "quantity_coercion": "decimal_truncate",
            }
        }
