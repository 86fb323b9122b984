"""
Structured-data serializer.

Renders arbitrary JSON-like values (dicts, lists, strings, numbers, booleans,
None) into an indented bullet list suitable for an instruction payload.
Tool results are attacker-adjacent: they can be deep, huge or cyclic. The
renderer is bounded by MAX_DEPTH levels and MAX_ARRAY_ITEMS elements per
array, and guards cycles with an explicit visited set of container ids that
is threaded through the recursion.

Example:
    >>> print(serialize({"items": [{"id": 1}, {"id": 2}]}))
    - items:
      - item #1:
        - id: 1
      - item #2:
        - id: 2
"""

import dataclasses
from typing import Any

MAX_DEPTH = 15
MAX_ARRAY_ITEMS = 100
INDENT = "  "

MAX_DEPTH_MARKER = "[max depth exceeded]"
CIRCULAR_MARKER = "[circular reference]"

_SINGULAR_LABELS = {
    "intents": "intent",
    "results": "result",
    "targets": "target",
    "edits": "edit",
    "warnings": "warning",
    "errors": "error",
    "failedintents": "failed intent",
    "appliedintents": "applied intent",
    "items": "item",
    "values": "value",
    "entries": "entry",
    "sections": "section",
    "files": "file",
    "children": "child",
    "toolcalls": "tool call",
}


def singularize(key: str | None) -> str | None:
    """
    Derive an element label from the key that holds an array.

    Only recognised plurals get a label; everything else falls back to
    positional indices in the caller.

    Returns:
        The singular label ("items" -> "item", "failedIntents" ->
        "failed intent") or None when the key is not recognised.
    """
    if not key:
        return None
    return _SINGULAR_LABELS.get(key.lower().replace("_", ""))


def serialize(
    value: Any,
    indent: int = 0,
    array_context: str | None = None,
    visited: set[int] | None = None,
    max_depth: int = MAX_DEPTH,
    depth: int = 0,
) -> str:
    """
    Render a JSON-like value as indented bullet text.

    Args:
        value: Value to render
        indent: Indent level of the top-level bullets
        array_context: Key that holds the value when it is an array; used to
            label elements ("items" -> "item #1")
        visited: Ids of containers on the current path (cycle guard)
        max_depth: Number of levels rendered before the depth marker
        depth: Current level (callers normally leave it at 0)

    Returns:
        One bullet per scalar or container key, newline separated.
    """
    return "\n".join(
        _render(value, indent, array_context, visited if visited is not None else set(), max_depth, depth)
    )


def _render(
    value: Any,
    indent: int,
    array_context: str | None,
    visited: set[int],
    max_depth: int,
    depth: int,
) -> list[str]:
    pad = INDENT * indent
    if depth >= max_depth:
        return [f"{pad}- {MAX_DEPTH_MARKER}"]

    # Track the caller's object: normalising a dataclass or model builds a fresh dict.
    marker = id(value)
    value = _normalize(value)
    if not isinstance(value, (dict, list, tuple)):
        return _render_scalar(value, pad)

    if marker in visited:
        return [f"{pad}- {CIRCULAR_MARKER}"]
    if not value:
        return [f"{pad}- {'(empty object)' if isinstance(value, dict) else '(empty list)'}"]

    visited.add(marker)
    try:
        if isinstance(value, dict):
            lines: list[str] = []
            for key, item in value.items():
                lines.extend(_render_member(str(key), item, indent, visited, max_depth, depth))
            return lines
        return _render_array(value, indent, array_context, visited, max_depth, depth)
    finally:
        visited.discard(marker)


def _render_member(
    key: str,
    item: Any,
    indent: int,
    visited: set[int],
    max_depth: int,
    depth: int,
) -> list[str]:
    """Render one `key: value` bullet of an object."""
    pad = INDENT * indent
    normalized = _normalize(item)
    if isinstance(normalized, (dict, list, tuple)) and normalized:
        return [f"{pad}- {key}:"] + _render(item, indent + 1, key, visited, max_depth, depth + 1)
    if isinstance(normalized, (dict, list, tuple)):
        return [f"{pad}- {key}: {'(empty object)' if isinstance(normalized, dict) else '(empty list)'}"]
    return _render_scalar(normalized, pad, label=key)


def _render_array(
    items: list[Any] | tuple[Any, ...],
    indent: int,
    array_context: str | None,
    visited: set[int],
    max_depth: int,
    depth: int,
) -> list[str]:
    pad = INDENT * indent
    singular = singularize(array_context)
    lines: list[str] = []

    for index, item in enumerate(items[:MAX_ARRAY_ITEMS]):
        label = f"{singular} #{index + 1}" if singular else f"[{index}]"
        lines.extend(_render_member(label, item, indent, visited, max_depth, depth))

    if len(items) > MAX_ARRAY_ITEMS:
        lines.append(f"{pad}- ... {len(items) - MAX_ARRAY_ITEMS} more items")
    return lines


def _render_scalar(value: Any, pad: str, label: str | None = None) -> list[str]:
    prefix = f"{pad}- {label}: " if label is not None else f"{pad}- "
    text = _scalar_text(value)

    if "\n" not in text:
        return [prefix + text]

    first, *rest = text.split("\n")
    continuation = pad + INDENT + INDENT
    return [prefix + first] + [continuation + line for line in rest]


def _scalar_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _normalize(value: Any) -> Any:
    """Convert dataclasses and pydantic models to plain containers."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump) and not isinstance(value, type):
        return model_dump()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return value
