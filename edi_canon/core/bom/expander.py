"""
Prepack (BOM) expansion and composition deduplication.
"""

from typing import Any, Callable, Iterable

from edi_canon.core.models import BOMComponent, BOMComposition, ComponentFields
from edi_canon.core.normalize import as_node_list, text_or_none, value_at
from edi_canon.core.validators import parse_integer

FIELD_SEPARATOR = "|"
COMPONENT_SEPARATOR = "~"


def _signature_part(value: Any) -> str:
    return "" if value is None else str(value)


def _sort_key(component: BOMComponent) -> tuple[str, str, str, str]:
    # style and size order the signature; color and quantity only break ties
    return (
        _signature_part(component.style),
        _signature_part(component.size),
        _signature_part(component.color),
        _signature_part(component.quantity),
    )


def composition_signature(components: Iterable[BOMComponent]) -> str:
    """
    Order-independent signature of a prepack composition.

    Components are sorted by (style, size) and rendered as
    ``style|color|size|quantity``, joined by ``~``. Missing values
    render as empty strings. Quantities are the parsed integers, so
    ``"4.0"`` renders as ``4`` while a missing quantity and one that does
    not parse (``"x"``) both render empty and compare equal.
    """
    parts = []
    for component in sorted(components, key=_sort_key):
        parts.append(FIELD_SEPARATOR.join(
            _signature_part(value)
            for value in (component.style, component.color, component.size, component.quantity)
        ))
    return COMPONENT_SEPARATOR.join(parts)


def deduplicate_compositions(compositions: Iterable[BOMComposition]) -> list[BOMComposition]:
    """
    Keep the first composition per distinct signature, in encounter order.
    """
    seen: set[str] = set()
    unique = []
    for composition in compositions:
        if composition.signature in seen:
            continue
        seen.add(composition.signature)
        unique.append(composition)
    return unique


class BOMExpander:
    """
    Detects and expands the BOM details node of a line item.
    """

    def __init__(
        self,
        component_fields: ComponentFields | None = None,
        bom_field: str = "BOMDetails",
        parse_quantity: Callable[[Any], int] = parse_integer,
    ):
        """
        Initialize expander.

        Args:
            component_fields: Field names read from each component node
            bom_field: Name of the BOM child node on a line item
            parse_quantity: Parser for the per-pack component quantity
        """
        self.component_fields = component_fields or ComponentFields()
        self.bom_field = bom_field
        self.parse_quantity = parse_quantity

    def components(self, item: dict[str, Any]) -> list[BOMComponent]:
        """
        Component descriptors of a line item, in source order.

        Returns an empty list for plain items, including items whose
        BOM node holds no component objects.
        """
        fields = self.component_fields
        components = []
        for node in as_node_list(item.get(self.bom_field)):
            components.append(BOMComponent(
                style=text_or_none(value_at(node, fields.style)),
                color=text_or_none(value_at(node, fields.color)),
                size=text_or_none(value_at(node, fields.size)),
                upc=text_or_none(value_at(node, fields.upc)),
                sku=text_or_none(value_at(node, fields.sku)),
                quantity=self._quantity(value_at(node, fields.quantity)),
            ))
        return components

    def expand(self, item: dict[str, Any], parent_line_key: str) -> BOMComposition | None:
        """
        Expand a line item into its prepack composition.

        Args:
            item: Line item node
            parent_line_key: Key linking component lines to this parent

        Returns:
            The composition, or None for a plain item
        """
        components = self.components(item)
        if not components:
            return None

        return BOMComposition(
            parent_line_key=parent_line_key,
            components=components,
            signature=composition_signature(components),
            pack_total=sum(component.quantity or 0 for component in components),
        )

    def _quantity(self, value: str | None) -> int | None:
        if value is None:
            return None
        try:
            return self.parse_quantity(value)
        except (ValueError, TypeError):
            return None
