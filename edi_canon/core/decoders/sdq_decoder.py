"""
SDQ (store distribution quantity) decoding.

An SDQ segment is a flat map of positionally indexed keys::

    {"SDQ01": "EA", "SDQ02": "92", "SDQ03": "00108", "SDQ04": "2", ...}

The two digits after the ``SDQ`` prefix are the element position.
Positions 1 and 2 carry the unit of measure and id qualifier. From
position 3 on, odd positions hold a store and the following even
position holds the quantity for that store.
"""

from typing import Any, Callable

from edi_canon.core.models import StoreAllocation
from edi_canon.core.normalize import as_node_list, text_or_none
from edi_canon.core.validators import parse_integer
from edi_canon.observability.logger import get_logger
from edi_canon.observability.metrics import (
    allocations_dropped_total,
    increment_counter,
    sdq_dangling_stores_total,
)

logger = get_logger(__name__)

SDQ_PREFIX = "SDQ"
FIRST_STORE_INDEX = 3


def element_index(key: str) -> int | None:
    """
    Position encoded in an SDQ key (``"SDQ07"`` -> 7).

    Returns:
        The position, or None when the key is not an SDQ element.
    """
    if not key.upper().startswith(SDQ_PREFIX):
        return None
    digits = key[len(SDQ_PREFIX):len(SDQ_PREFIX) + 2]
    if not digits.isdigit():
        return None
    return int(digits)


def _scalar_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


class SDQDecoder:
    """
    Decodes SDQ segments into raw store allocations.

    Pairs never cross a segment boundary. Allocations with a zero or
    negative quantity are returned as decoded; the caller filters them.
    """

    def __init__(self, parse_quantity: Callable[[Any], int] = parse_integer):
        """
        Initialize decoder.

        Args:
            parse_quantity: Quantity parser; raises ValueError on bad input
        """
        self.parse_quantity = parse_quantity

    def decode_node(self, node: Any, owner_key: str) -> list[StoreAllocation]:
        """Decode an SDQ node that may be one segment or an array of segments."""
        return self.decode(as_node_list(node), owner_key)

    def decode(self, segments: list[dict[str, Any]], owner_key: str) -> list[StoreAllocation]:
        """
        Decode normalized SDQ segments belonging to one owner.

        Args:
            segments: SDQ segment maps in source order
            owner_key: Identity of the owning line item (line id + UPC)

        Returns:
            Allocations in segment order, then ascending position order
        """
        allocations: list[StoreAllocation] = []
        for segment_index, segment in enumerate(segments):
            allocations.extend(self._decode_segment(segment, segment_index, owner_key))
        return allocations

    def _decode_segment(
        self,
        segment: dict[str, Any],
        segment_index: int,
        owner_key: str,
    ) -> list[StoreAllocation]:
        elements: dict[int, str | None] = {}
        for key, value in segment.items():
            index = element_index(str(key))
            if index is None or index in elements:
                continue
            elements[index] = _scalar_text(value)

        allocations = []
        for index in sorted(elements):
            if index < FIRST_STORE_INDEX or index % 2 == 0:
                continue

            if index + 1 not in elements:
                increment_counter(sdq_dangling_stores_total)
                logger.debug(
                    f"Dropping dangling SDQ store at position {index}",
                    extra={"owner_key": owner_key, "segment_index": segment_index},
                )
                continue

            raw_quantity = elements[index + 1]
            try:
                quantity = self.parse_quantity(raw_quantity)
            except (ValueError, TypeError):
                increment_counter(allocations_dropped_total, reason="unparsable_quantity")
                logger.debug(
                    f"Dropping SDQ allocation with unparsable quantity '{raw_quantity}'",
                    extra={"owner_key": owner_key, "segment_index": segment_index},
                )
                continue

            allocations.append(StoreAllocation(
                owner_key=owner_key,
                segment_index=segment_index,
                store_number=text_or_none(elements[index]),
                quantity=quantity,
            ))
        return allocations
