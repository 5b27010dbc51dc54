"""
Shape normalization for "one item or an array of items" JSON nodes.

The gateway renders a repeated element as a JSON array when it occurs more
than once and as a bare object when it occurs once. Line items, SDQ
segments and BOM components all have this ambiguity; every consumer goes
through ``as_node_list`` so none of them has to care.
"""

import re
from typing import Any

_INDEX_PATTERN = re.compile(r"^(?P<name>[^\[\]]*)(?P<indexes>(\[\d+\])*)$")


def as_node_list(node: Any) -> list[dict[str, Any]]:
    """
    Normalize a node into an ordered list of object nodes.

    Args:
        node: Parsed JSON node (object, array, scalar or None)

    Returns:
        ``[]`` for None and scalars, ``[node]`` for an object, the object
        elements of an array in order (null and scalar elements skipped).
    """
    if node is None:
        return []
    if isinstance(node, dict):
        return [node]
    if isinstance(node, list):
        return [element for element in node if isinstance(element, dict)]
    return []


def _split_path(path: str) -> list[str | int]:
    steps: list[str | int] = []
    for token in path.split("."):
        match = _INDEX_PATTERN.match(token)
        if not match:
            raise ValueError(f"Invalid JSON path segment '{token}' in '{path}'")
        if match.group("name"):
            steps.append(match.group("name"))
        for index in re.findall(r"\[(\d+)\]", match.group("indexes")):
            steps.append(int(index))
    return steps


def node_at(node: Any, path: str | None) -> Any:
    """
    Resolve a dotted path (``A.B[1].C``) against a parsed JSON node.

    Returns:
        The node found at the path, or None when any step is missing.
    """
    if not path:
        return None

    current = node
    for step in _split_path(path):
        if isinstance(step, int):
            if not isinstance(current, list) or step >= len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def value_at(node: Any, path: str | None) -> str | None:
    """
    Resolve a dotted path to a scalar rendered as text.

    Objects and arrays resolve to None, matching how the gateway's
    consumers have always read scalar values.
    """
    value = node_at(node, path)
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def text_or_none(value: str | None) -> str | None:
    """Trim a value; blank strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
