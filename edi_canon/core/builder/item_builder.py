"""
CanonicalItemBuilder: turns one purchase-order document into canonical rows.

Flow per document:
    ReadDocument -> ExtractHeaderFields -> ExpandLineItems
      -> per item: DetectBOM -> ResolveFields -> DecodeAllocations
    -> EmitLineItems -> Done

Malformed documents end in ``DocumentRejected`` and produce nothing.
"""

import json
from decimal import Decimal
from typing import Any, Callable

from edi_canon.core.bom import BOMExpander
from edi_canon.core.catalog import CatalogCache, ProductCatalog
from edi_canon.core.decoders import SDQDecoder
from edi_canon.core.errors import DocumentRejected
from edi_canon.core.models import (
    BOMComposition,
    CanonicalDocument,
    CanonicalHeader,
    CanonicalLineItem,
    PartnerRule,
    SourceRecord,
    StoreAllocation,
)
from edi_canon.core.normalize import as_node_list, node_at, text_or_none, value_at
from edi_canon.core.rules import PartnerRuleSet, ResolveContext, resolve_first
from edi_canon.core.validators import (
    RequiredFieldValidator,
    TypeValidator,
    ValidationError,
    parse_decimal_truncate,
    parse_integer,
)
from edi_canon.observability.logger import get_logger
from edi_canon.observability.metrics import (
    allocations_dropped_total,
    increment_counter,
    line_items_emitted_total,
)

logger = get_logger(__name__)

COMPANY_PATH = "PurchaseOrderHeader.CompanyCode"
PO_NUMBER_PATH = "PurchaseOrderHeader.PurchaseOrderNumber"

QUANTITY_PARSERS: dict[str, Callable[[Any], int]] = {
    "integer": parse_integer,
    "decimal_truncate": parse_decimal_truncate,
}

_REQUIRED_HEADER_FIELDS = [
    RequiredFieldValidator(PO_NUMBER_PATH),
    RequiredFieldValidator(COMPANY_PATH),
]
_DATE = TypeValidator("date", {"expected_type": "date"})
_PRICE = TypeValidator("price", {"expected_type": "decimal"})
_PACK = TypeValidator("pack", {"expected_type": "integer"})


class _ResolvedItem:
    """Parent-level values shared by every line emitted for one item."""

    def __init__(self, **values: Any):
        self.base_style: str | None = values["base_style"]
        self.style: str | None = values["style"]
        self.color: str | None = values["color"]
        self.size: str | None = values["size"]
        self.upc: str | None = values["upc"]
        self.sku: str | None = values["sku"]
        self.uom: str | None = values["uom"]
        self.unit_price: Decimal | None = values["unit_price"]
        self.retail_price: Decimal | None = values["retail_price"]
        self.inner_pack: int | None = values["inner_pack"]
        self.qty_per_inner_pack: int | None = values["qty_per_inner_pack"]


class CanonicalItemBuilder:
    """
    Builds a CanonicalDocument from a SourceRecord using partner rules.

    The builder holds no per-document state and can be shared by worker
    threads; the per-document catalog cache is created inside ``build``.
    """

    def __init__(self, rule_set: PartnerRuleSet, catalog: ProductCatalog | None = None):
        """
        Initialize builder.

        Args:
            rule_set: Partner rule table
            catalog: Optional product catalog for color/size fallbacks
        """
        self.rule_set = rule_set
        self.catalog = catalog

    def build(self, record: SourceRecord, version: int = 1) -> CanonicalDocument:
        """
        Canonicalize one source record.

        Args:
            record: Source record to process
            version: Version to stamp on the header (the assigner overwrites it)

        Returns:
            Header, positive-quantity line items and prepack compositions

        Raises:
            DocumentRejected: On invalid JSON, missing mandatory header fields,
                or when no partner rule matches the document
        """
        document = self._read_document(record)
        company, customer_po = self._required_header_fields(document)
        rule, order_type = self._select_rule(record, document, company)
        # version groups, lock keys and catalog lookups use the configured spelling
        company = rule.company

        catalog_cache = None
        if self.catalog is not None and _uses_catalog(rule):
            catalog_cache = CatalogCache(self.catalog, company)

        items = as_node_list(node_at(document, rule.line_items_path))
        if catalog_cache is not None:
            catalog_cache.prefetch(value_at(item, rule.catalog_product_field) for item in items)

        line_items: list[CanonicalLineItem] = []
        compositions: list[BOMComposition] = []
        for position, item in enumerate(items, start=1):
            lines, composition = self._expand_item(item, position, rule, document, catalog_cache)
            line_items.extend(lines)
            if composition is not None:
                compositions.append(composition)

        header = CanonicalHeader(
            company=company,
            customer_po=customer_po,
            po_type=order_type,
            download_date=record.download_timestamp.date(),
            download_timestamp=record.download_timestamp,
            version=version,
            source_record_id=record.id,
            department=text_or_none(value_at(document, rule.department_path)),
            order_date=_DATE.coerce_or_none(value_at(document, rule.order_date_path)),
            start_date=_DATE.coerce_or_none(value_at(document, rule.start_date_path)),
            cancel_date=_DATE.coerce_or_none(value_at(document, rule.cancel_date_path)),
            total_items=_count_items(line_items),
            total_qty=sum(line.qty for line in line_items),
        )

        logger.debug(
            f"Built {len(line_items)} line items for PO {customer_po}",
            extra={
                "source_record_id": record.id,
                "company": company,
                "customer_po": customer_po,
                "compositions": len(compositions),
            },
        )
        return CanonicalDocument(header=header, line_items=line_items, compositions=compositions)

    # ---------------------------------------------------------------
    # ReadDocument / ExtractHeaderFields
    # ---------------------------------------------------------------

    def _read_document(self, record: SourceRecord) -> dict[str, Any]:
        try:
            document = json.loads(record.json_content)
        except (json.JSONDecodeError, TypeError) as e:
            raise DocumentRejected("invalid_json", str(e)) from e

        if not isinstance(document, dict):
            raise DocumentRejected("invalid_document", "Top-level JSON value is not an object")
        return document

    def _required_header_fields(self, document: dict[str, Any]) -> tuple[str, str]:
        values = {}
        for validator in _REQUIRED_HEADER_FIELDS:
            value = value_at(document, validator.field_name)
            try:
                validator.validate(value, document)
            except ValidationError as e:
                raise DocumentRejected("missing_header_field", str(e)) from e
            values[validator.field_name] = value.strip()
        return values[COMPANY_PATH], values[PO_NUMBER_PATH]

    def _select_rule(
        self,
        record: SourceRecord,
        document: dict[str, Any],
        company: str,
    ) -> tuple[PartnerRule, str | None]:
        candidates = [text_or_none(record.partner_order_type)]
        candidates.extend(
            text_or_none(value_at(document, path))
            for path in self.rule_set.order_type_paths(company)
        )

        for order_type in candidates:
            rule = self.rule_set.lookup(company, order_type)
            if rule is not None:
                return rule, order_type

        seen = [candidate for candidate in candidates if candidate]
        raise DocumentRejected(
            "no_partner_rule",
            f"No partner rule for company '{company}' and order type {seen or 'missing'}",
        )

    # ---------------------------------------------------------------
    # ExpandLineItems
    # ---------------------------------------------------------------

    def _expand_item(
        self,
        item: dict[str, Any],
        position: int,
        rule: PartnerRule,
        document: dict[str, Any],
        catalog_cache: CatalogCache | None,
    ) -> tuple[list[CanonicalLineItem], BOMComposition | None]:
        line_key = text_or_none(value_at(item, rule.line_id_field)) or str(position)
        upc = text_or_none(value_at(item, rule.upc_field))
        owner_key = f"{line_key}|{upc or ''}"

        # DetectBOM
        expander = BOMExpander(rule.component_fields, rule.bom_field)
        composition = expander.expand(item, owner_key)

        # ResolveFields
        resolved = self._resolve_fields(item, upc, rule, composition, catalog_cache)
        if composition is not None:
            composition = composition.model_copy(update={
                "parent_style": resolved.style,
                "parent_color": resolved.color,
                "parent_size": resolved.size,
                "parent_upc": resolved.upc,
                "parent_sku": resolved.sku,
            })

        # DecodeAllocations
        allocations = self._decode_allocations(item, owner_key, rule, document)

        # EmitLineItems
        if composition is not None and rule.bom_expansion == "components":
            lines = self._emit_components(allocations, resolved, composition, rule)
            kind = "component"
        else:
            lines = [
                self._line(resolved, allocation.store_number, allocation.quantity)
                for allocation in allocations
            ]
            kind = "parent" if composition is not None else "plain"

        if lines:
            increment_counter(line_items_emitted_total, len(lines), company=rule.company, kind=kind)
        return lines, composition

    def _resolve_fields(
        self,
        item: dict[str, Any],
        upc: str | None,
        rule: PartnerRule,
        composition: BOMComposition | None,
        catalog_cache: CatalogCache | None,
    ) -> _ResolvedItem:
        context = ResolveContext(
            item,
            "color",
            composition=composition,
            catalog=catalog_cache,
            product_id=text_or_none(value_at(item, rule.catalog_product_field)),
        )

        base_style = text_or_none(value_at(item, rule.style_field))
        style = base_style
        if composition is not None:
            color = resolve_first(rule.bom_color_sources, context)
            size = resolve_first(rule.bom_size_sources, context.for_target("size"))
            if rule.style_suffix == "pack_total" and base_style is not None:
                style = f"{base_style} P{composition.pack_total}"
        else:
            color = resolve_first(rule.color_sources, context)
            size = resolve_first(rule.size_sources, context.for_target("size"))

        with_packs = rule.inner_pack_policy == "always" or (
            rule.inner_pack_policy == "bom_only" and composition is not None
        )

        return _ResolvedItem(
            base_style=base_style,
            style=style,
            color=color,
            size=size,
            upc=upc,
            sku=text_or_none(value_at(item, rule.sku_field)),
            uom=text_or_none(value_at(item, rule.uom_field)),
            unit_price=_PRICE.coerce_or_none(text_or_none(value_at(item, rule.unit_price_field))),
            retail_price=_PRICE.coerce_or_none(text_or_none(value_at(item, rule.retail_price_field))),
            inner_pack=_PACK.coerce_or_none(value_at(item, rule.inner_pack_field)) if with_packs else None,
            qty_per_inner_pack=(
                _PACK.coerce_or_none(value_at(item, rule.qty_per_inner_pack_field)) if with_packs else None
            ),
        )

    def _decode_allocations(
        self,
        item: dict[str, Any],
        owner_key: str,
        rule: PartnerRule,
        document: dict[str, Any],
    ) -> list[StoreAllocation]:
        parse_quantity = QUANTITY_PARSERS[rule.quantity_coercion]

        if rule.quantity_source == "sdq":
            decoded = SDQDecoder(parse_quantity).decode_node(node_at(item, rule.sdq_path), owner_key)
        else:
            raw_quantity = value_at(item, rule.quantity_field)
            try:
                quantity = parse_quantity(raw_quantity)
            except (ValueError, TypeError):
                increment_counter(allocations_dropped_total, reason="unparsable_quantity")
                logger.debug(
                    f"Dropping line quantity '{raw_quantity}'",
                    extra={"owner_key": owner_key},
                )
                return []
            decoded = [StoreAllocation(
                owner_key=owner_key,
                segment_index=0,
                store_number=text_or_none(value_at(document, rule.store_path)),
                quantity=quantity,
            )]

        allocations = [allocation for allocation in decoded if allocation.quantity > 0]
        dropped = len(decoded) - len(allocations)
        if dropped:
            increment_counter(allocations_dropped_total, dropped, reason="non_positive")
        return allocations

    # ---------------------------------------------------------------
    # EmitLineItems
    # ---------------------------------------------------------------

    def _emit_components(
        self,
        allocations: list[StoreAllocation],
        resolved: _ResolvedItem,
        composition: BOMComposition,
        rule: PartnerRule,
    ) -> list[CanonicalLineItem]:
        inherit = set(rule.component_inherit)
        lines = []
        for allocation in allocations:
            for component in composition.components:
                qty = allocation.quantity * (component.quantity or 0)
                if qty <= 0:
                    increment_counter(allocations_dropped_total, reason="non_positive")
                    continue
                lines.append(CanonicalLineItem(
                    style=resolved.base_style if "style" in inherit else (component.style or resolved.base_style),
                    color=component.color,
                    size=component.size,
                    upc=resolved.upc if "upc" in inherit else component.upc,
                    sku=resolved.sku if "sku" in inherit else component.sku,
                    uom=resolved.uom,
                    unit_price=resolved.unit_price,
                    retail_price=resolved.retail_price,
                    inner_pack=resolved.inner_pack,
                    qty_per_inner_pack=resolved.qty_per_inner_pack,
                    store_number=allocation.store_number,
                    qty=qty,
                    is_bom_component=True,
                    parent_line_key=composition.parent_line_key,
                ))
        return lines

    @staticmethod
    def _line(resolved: _ResolvedItem, store_number: str | None, qty: int) -> CanonicalLineItem:
        return CanonicalLineItem(
            style=resolved.style,
            color=resolved.color,
            size=resolved.size,
            upc=resolved.upc,
            sku=resolved.sku,
            uom=resolved.uom,
            unit_price=resolved.unit_price,
            retail_price=resolved.retail_price,
            inner_pack=resolved.inner_pack,
            qty_per_inner_pack=resolved.qty_per_inner_pack,
            store_number=store_number,
            qty=qty,
        )


def _uses_catalog(rule: PartnerRule) -> bool:
    sources = rule.color_sources + rule.size_sources + rule.bom_color_sources + rule.bom_size_sources
    return "catalog" in sources


def _count_items(lines: list[CanonicalLineItem]) -> int:
    """Distinct UPCs, or distinct SKUs when the partner sends no UPC."""
    upcs = {line.upc for line in lines if line.upc}
    if upcs:
        return len(upcs)
    return len({line.sku for line in lines if line.sku})
