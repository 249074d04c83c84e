"""Schema synthesis from accessed properties and result unwrapping."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Iterable

from deferred_ai.errors import MalformedResultError
from deferred_ai.types import OutputKind, SimpleSchema

__all__ = [
    "AccessTree",
    "build_schema",
    "infer_field",
    "default_schema",
    "unwrap_result",
    "get_nested_value",
]

AccessTree = dict[str, "AccessTree"]

_LIST_MARKERS = ("list", "items", "array")
_BOOLEAN_MARKERS = ("is", "has", "can", "should")
_NUMBER_MARKERS = ("count", "number", "total", "amount")

_DEFAULT_SCHEMAS: dict[OutputKind, dict[str, Any]] = {
    OutputKind.LIST: {"items": ["List items"]},
    OutputKind.EXTRACT: {"items": ["Extracted items"]},
    OutputKind.LISTS: {
        "categories": ["Category names"],
        "data": "JSON object with categorized lists (object)",
    },
    OutputKind.BOOLEAN: {"answer": "true | false"},
    OutputKind.TEXT: {"text": "The generated text"},
}

_UNWRAP_FIELDS = {
    OutputKind.TEXT: "text",
    OutputKind.BOOLEAN: "answer",
    OutputKind.LIST: "items",
    OutputKind.EXTRACT: "items",
}


def default_schema(output_kind: OutputKind) -> dict[str, Any]:
    """Schema requested when nothing was accessed and nothing was declared."""
    return dict(_DEFAULT_SCHEMAS.get(OutputKind(output_kind), {"result": "The result"}))


def infer_field(name: str) -> SimpleSchema:
    """Classify a property name into a simple-schema field.

    Examples:
        ```python
        >>> infer_field("keyPoints")
        ['List of keyPoints']
        >>> infer_field("isUrgent")
        'Whether isUrgent (true/false)'
        >>> infer_field("wordCount")
        'The wordCount (number)'
        >>> infer_field("summary")
        'The summary'

        ```
    """
    lowered = name.lower()
    if lowered.endswith("s") or any(marker in lowered for marker in _LIST_MARKERS):
        return [f"List of {name}"]
    if any(marker in lowered for marker in _BOOLEAN_MARKERS):
        return f"Whether {name} (true/false)"
    if any(marker in lowered for marker in _NUMBER_MARKERS):
        return f"The {name} (number)"
    return f"The {name}"


def _as_tree(accessed: Mapping[str, Any] | Iterable[str]) -> Mapping[str, Any]:
    if isinstance(accessed, Mapping):
        return accessed
    return {name: {} for name in accessed}


def _nested_field(name: str, children: Mapping[str, Any]) -> SimpleSchema:
    if not children:
        return infer_field(name)
    if all(key.lstrip("-").isdigit() for key in children):
        # indexed reads: describe the element shape instead
        merged: dict[str, Any] = {}
        for grandchildren in children.values():
            merged.update(grandchildren)
        if merged:
            return [{key: _nested_field(key, value) for key, value in merged.items()}]
        return [f"List of {name}"]
    return {key: _nested_field(key, value) for key, value in children.items()}


def build_schema(
    accessed: Mapping[str, Any] | Iterable[str],
    base_schema: SimpleSchema | None = None,
    output_kind: OutputKind = OutputKind.OBJECT,
) -> SimpleSchema:
    """Synthesize the shape to request from the accessed property names.

    The function is pure: the same inputs always yield the same schema.

    Args:
        accessed (Mapping[str, Any] | Iterable[str]): Top-level names that were
            read, either flat or as an access tree whose values hold the nested
            reads made beneath each name.
        base_schema (SimpleSchema | None): Declared shape. Used verbatim when
            nothing was accessed, and per field otherwise.
        output_kind (OutputKind): Picks the fallback shape when nothing was
            accessed and nothing was declared.

    Returns:
        SimpleSchema: The shape handed to the backend.

    Examples:
        ```python
        >>> build_schema({"summary", "isUrgent"}) == {
        ...     "summary": "The summary",
        ...     "isUrgent": "Whether isUrgent (true/false)",
        ... }
        True
        >>> build_schema({}, None, OutputKind.BOOLEAN)
        {'answer': 'true | false'}
        >>> build_schema({"author": {"name": {}}})
        {'author': {'name': 'The name'}}

        ```
    """
    tree = _as_tree(accessed)
    declared = base_schema if isinstance(base_schema, dict) else {}

    if not tree:
        if isinstance(base_schema, dict) and base_schema:
            return base_schema
        return default_schema(output_kind)

    schema: dict[str, Any] = {}
    for name, children in tree.items():
        if declared.get(name) is not None:
            schema[name] = declared[name]
        else:
            schema[name] = _nested_field(name, children or {})
    return schema


def unwrap_result(
    value: Any,
    output_kind: OutputKind,
    schema: SimpleSchema | None = None,
    strict: bool = False,
) -> Any:
    """Turn the raw structured result into the caller-visible value.

    ``text`` unwraps ``{"text"}``, ``list`` and ``extract`` unwrap ``{"items"}``
    and ``boolean`` coerces ``{"answer"}``. A result without the field is
    returned as-is, or rejected when ``strict`` is set and the field was part of
    the requested ``schema``.

    Raises:
        MalformedResultError: In strict mode, if the unwrapped field is missing.

    Examples:
        ```python
        >>> unwrap_result({"answer": "true"}, OutputKind.BOOLEAN)
        True
        >>> unwrap_result({"items": ["a", "b"]}, OutputKind.LIST)
        ['a', 'b']
        >>> unwrap_result({"title": "x"}, OutputKind.TEXT)
        {'title': 'x'}

        ```
    """
    kind = OutputKind(output_kind)
    field = _UNWRAP_FIELDS.get(kind)
    if field is None:
        return value

    if isinstance(value, Mapping) and field in value:
        inner = value[field]
        if kind is OutputKind.BOOLEAN:
            if isinstance(inner, bool):
                return inner
            if isinstance(inner, str):
                return inner.strip().lower() == "true"
            return False
        return inner

    requested = schema is None or (isinstance(schema, dict) and field in schema)
    if strict and requested:
        raise MalformedResultError(kind.value, field, value)
    return value


def get_nested_value(value: Any, path: Sequence[str]) -> Any:
    """Follow ``path`` into ``value``; any missing step yields ``None``.

    Mappings are read by key, lists and tuples by integer-like key and other
    objects by attribute.

    Examples:
        ```python
        >>> get_nested_value({"a": {"b": 5}}, ["a", "b"])
        5
        >>> get_nested_value({"a": {"b": 5}}, ["a", "c"]) is None
        True
        >>> get_nested_value({"tags": ["x", "y"]}, ["tags", "1"])
        'y'

        ```
    """
    current = value
    for key in path:
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(key)]
            except (ValueError, IndexError):
                return None
        elif isinstance(current, str):
            return None
        else:
            current = getattr(current, str(key), None)
    return current
