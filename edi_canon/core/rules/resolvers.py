"""
Value sources for color and size resolution.

A partner rule lists sources as ``kind`` or ``kind:argument`` strings.
Each kind maps to a resolver in ``RESOLVER_REGISTRY``; the first source
producing a non-empty value wins.
"""

from typing import Any, Callable

from edi_canon.core.catalog import CatalogCache
from edi_canon.core.models import BOMComposition
from edi_canon.core.normalize import text_or_none, value_at


class ResolveContext:
    """
    Inputs available to a resolver for one line item.

    Attributes:
        item: The line item node
        target: Attribute being resolved ("color" or "size")
        composition: Prepack composition when the item is a BOM parent
        catalog: Per-document catalog cache (None when no catalog is wired)
        product_id: Id used for catalog lookups
    """

    def __init__(
        self,
        item: dict[str, Any],
        target: str,
        composition: BOMComposition | None = None,
        catalog: CatalogCache | None = None,
        product_id: str | None = None,
    ):
        self.item = item
        self.target = target
        self.composition = composition
        self.catalog = catalog
        self.product_id = product_id

    def for_target(self, target: str) -> "ResolveContext":
        return ResolveContext(self.item, target, self.composition, self.catalog, self.product_id)


def resolve_field(argument: str | None, context: ResolveContext) -> str | None:
    return text_or_none(value_at(context.item, argument))


def resolve_literal(argument: str | None, context: ResolveContext) -> str | None:
    return argument


def resolve_bom_first_component(argument: str | None, context: ResolveContext) -> str | None:
    if context.composition is None or not context.composition.components:
        return None
    return getattr(context.composition.components[0], context.target)


def resolve_catalog(argument: str | None, context: ResolveContext) -> str | None:
    if context.catalog is None:
        return None
    entry = context.catalog.get(context.product_id)
    if entry is None:
        return None
    return text_or_none(getattr(entry, context.target))


def resolve_second_word(argument: str | None, context: ResolveContext) -> str | None:
    """``"WOMENS M REG"`` -> ``"M"``."""
    text = value_at(context.item, argument)
    words = text.split() if text else []
    return words[1] if len(words) >= 2 else None


def resolve_last_word_initial(argument: str | None, context: ResolveContext) -> str | None:
    """Cut code notation: ``"M PETITE"`` -> ``"P"``."""
    text = value_at(context.item, argument)
    words = text.split() if text else []
    return words[-1][0].upper() if words else None


def resolve_pack_total_size(argument: str | None, context: ResolveContext) -> str | None:
    if context.composition is None:
        return None
    return f"PPK{context.composition.pack_total}"


Resolver = Callable[[str | None, ResolveContext], str | None]

RESOLVER_REGISTRY: dict[str, Resolver] = {
    "field": resolve_field,
    "literal": resolve_literal,
    "bom_first_component": resolve_bom_first_component,
    "catalog": resolve_catalog,
    "second_word": resolve_second_word,
    "last_word_initial": resolve_last_word_initial,
    "pack_total_size": resolve_pack_total_size,
}

# Kinds that cannot work without an argument
ARGUMENT_REQUIRED = {"field", "literal", "second_word", "last_word_initial"}


def parse_source(source: str) -> tuple[str, str | None]:
    """Split ``"kind:argument"`` into its parts."""
    kind, _, argument = source.partition(":")
    return kind, (argument or None)


def check_source(source: str) -> None:
    """
    Validate one source string.

    Raises:
        ValueError: If the kind is unknown or a required argument is missing
    """
    kind, argument = parse_source(source)
    if kind not in RESOLVER_REGISTRY:
        raise ValueError(f"Unknown value source kind '{kind}'")
    if kind in ARGUMENT_REQUIRED and not argument:
        raise ValueError(f"Value source '{kind}' requires an argument")


def resolve_first(sources: list[str], context: ResolveContext) -> str | None:
    """Try each source in order and return the first non-empty value."""
    for source in sources:
        kind, argument = parse_source(source)
        value = RESOLVER_REGISTRY[kind](argument, context)
        if value is not None and str(value).strip():
            return value
    return None
