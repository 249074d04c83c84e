"""Utilities for working with JSON, simple schemas and LLM output."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, create_model

from deferred_ai.types import SimpleSchema

__all__ = [
    "SchemaFormatter",
    "SimpleSchemaConverter",
    "JsonParser",
    "JSON_FORMAT_TMPL",
    "marshal_llm_to_json",
]

logger = logging.getLogger(__name__)

JSON_FORMAT_TMPL = """
Here's a JSON schema to follow strictly:
{schema}

IMPORTANT: Return ONLY a valid JSON object with the actual data, NOT the schema itself.
Do not include "properties", "required", "title", or "type" fields in your response.
"""

_TYPE_HINT_PATTERN = re.compile(r"\((number|integer|boolean|true/false|object)\)\s*$")


def marshal_llm_to_json(output: str) -> str:
    """Extract a substring containing a JSON object or array from a string."""
    output = output.strip()

    left_square = output.find("[")
    left_brace = output.find("{")

    if (left_square < left_brace and left_square != -1) or left_brace == -1:
        left = left_square
        right = output.rfind("]")
    else:
        left = left_brace
        right = output.rfind("}")

    if left == -1:
        return output
    if right < left:
        return output[left:]
    return output[left : right + 1]


class JsonParser:
    """Parse possibly malformed or truncated JSON emitted by LLMs."""

    @staticmethod
    def parse(json_str: str) -> Any:
        r"""Parse a JSON string, escaping raw control characters on a retry.

        Raises:
            ValueError: If the JSON cannot be parsed even after the fix.

        Examples:
            ```python
            >>> JsonParser.parse('{"name": "test"}')
            {'name': 'test'}
            >>> JsonParser.parse('{"text": "line1\nline2"}')
            {'text': 'line1\nline2'}

            ```
        """
        try:
            return json.loads(json_str)
        except json.JSONDecodeError as e:
            try:
                return json.loads(JsonParser.escape_control_chars(json_str))
            except json.JSONDecodeError as retry_error:
                raise ValueError(
                    f"Failed to parse JSON from LLM output. "
                    f"Original error: {e}. Retry error: {retry_error}. "
                    f"JSON string (first 500 chars): {json_str[:500]}"
                ) from retry_error

    @staticmethod
    def escape_control_chars(json_str: str) -> str:
        """Escape newlines, tabs and other control characters inside strings."""
        result = []
        in_string = False
        escape_next = False

        for char in json_str:
            if escape_next:
                result.append(char)
                escape_next = False
            elif char == "\\":
                result.append(char)
                escape_next = True
            elif char == '"':
                in_string = not in_string
                result.append(char)
            elif in_string and ord(char) < 32:
                result.append(
                    {"\n": "\\n", "\r": "\\r", "\t": "\\t"}.get(char, f"\\u{ord(char):04x}")
                )
            else:
                result.append(char)

        return "".join(result)

    @staticmethod
    def repair_incomplete(json_str: str) -> str:
        """Close the strings, arrays and objects left open by a truncated stream.

        Examples:
            ```python
            >>> JsonParser.repair_incomplete('{"items": ["a", "b')
            '{"items": ["a", "b"]}'

            ```
        """
        stack: list[str] = []
        in_string = False
        escape_next = False

        for char in json_str:
            if escape_next:
                escape_next = False
            elif in_string:
                if char == "\\":
                    escape_next = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char in "{[":
                stack.append("}" if char == "{" else "]")
            elif char in "}]" and stack:
                stack.pop()

        repaired = json_str
        if escape_next:
            repaired = repaired[:-1]
        if in_string:
            repaired += '"'
        repaired = re.sub(r"[,:]\s*$", "", repaired.rstrip())
        return repaired + "".join(reversed(stack))

    @staticmethod
    def parse_partial(text: str) -> Any | None:
        """Best-effort parse of a JSON prefix; ``None`` until one is readable.

        A dangling key without a value is dropped.

        Examples:
            ```python
            >>> JsonParser.parse_partial('{"title": "Hel')
            {'title': 'Hel'}
            >>> JsonParser.parse_partial('{"title": "Hello", "bo') is None
            False
            >>> JsonParser.parse_partial('no json yet') is None
            True

            ```
        """
        start = min(
            (idx for idx in (text.find("{"), text.find("[")) if idx != -1),
            default=-1,
        )
        if start == -1:
            return None

        candidate = JsonParser.repair_incomplete(text[start:])
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            pass

        # a trailing key without a value: cut back to the last complete member
        cut = candidate.rfind(",")
        while cut > 0:
            try:
                return json.loads(JsonParser.repair_incomplete(candidate[:cut]))
            except json.JSONDecodeError:
                cut = candidate.rfind(",", 0, cut)
        logger.debug("Partial JSON not yet parseable: %s", text[:80])
        return None


class SchemaFormatter:
    """Format JSON schemas into compact, LLM-friendly instructions."""

    @staticmethod
    def simplify(schema_dict: dict, indent: int = 2) -> str:
        """Create a simplified, example-based schema representation.

        Nested objects are expanded in place and ``$ref`` definitions are
        followed so the model sees the full structure.

        Examples:
            ```python
            >>> from pydantic import BaseModel
            >>> class Person(BaseModel):
            ...     name: str
            ...     age: int
            >>> print(SchemaFormatter.simplify(Person.model_json_schema()))
            Expected JSON structure:
            {
              "name": <string> [REQUIRED],
              "age": <integer> [REQUIRED]
            }

            ```
        """
        defs = schema_dict.get("$defs", {})
        lines = ["Expected JSON structure:"]
        lines.extend(SchemaFormatter._object_lines(schema_dict, defs, indent, 0))
        return "\n".join(lines)

    @staticmethod
    def _resolve(node: dict, defs: dict) -> dict:
        ref = node.get("$ref")
        if isinstance(ref, str):
            return defs.get(ref.split("/")[-1], node)
        return node

    @staticmethod
    def _type_label(node: dict, defs: dict) -> str:
        node = SchemaFormatter._resolve(node, defs)
        if "enum" in node:
            return " | ".join(json.dumps(v) for v in node["enum"])
        if "const" in node:
            return json.dumps(node["const"])
        if "anyOf" in node:
            return " | ".join(SchemaFormatter._type_label(n, defs) for n in node["anyOf"])
        if node.get("type") == "array":
            return f"array of {SchemaFormatter._type_label(node.get('items', {}), defs)}"
        return node.get("type", "any")

    @staticmethod
    def _object_lines(node: dict, defs: dict, indent: int, depth: int) -> list[str]:
        pad = " " * (indent * depth)
        inner = " " * (indent * (depth + 1))
        properties = node.get("properties", {})
        required = node.get("required", [])
        lines = [f"{pad}{{"]
        for i, (field_name, field_info) in enumerate(properties.items()):
            comma = "," if i < len(properties) - 1 else ""
            req_marker = " [REQUIRED]" if field_name in required else " [OPTIONAL]"
            resolved = SchemaFormatter._resolve(field_info, defs)
            desc = field_info.get("description") or resolved.get("description", "")
            desc_marker = f" - {desc}" if desc else ""
            if resolved.get("type") == "object" and resolved.get("properties"):
                nested = SchemaFormatter._object_lines(resolved, defs, indent, depth + 1)
                nested[0] = f'{inner}"{field_name}":{req_marker}{desc_marker} {{'
                nested[-1] += comma
                lines.extend(nested)
                continue
            label = SchemaFormatter._type_label(field_info, defs)
            lines.append(f'{inner}"{field_name}": <{label}>{req_marker}{desc_marker}{comma}')
        lines.append(f"{pad}}}")
        return lines

    @staticmethod
    def format_for_llm(schema_dict: dict, template: str = JSON_FORMAT_TMPL) -> str:
        """Format a schema dictionary for inclusion in an LLM prompt."""
        return template.format(schema=SchemaFormatter.simplify(schema_dict))


class SimpleSchemaConverter:
    """Turn a human-readable shape description into a pydantic model.

    Leaves are descriptions. A trailing ``(number)``, ``(integer)``,
    ``(boolean)``/``(true/false)`` or ``(object)`` hint picks the field type,
    ``"a | b | c"`` becomes a ``Literal``, a single-element list becomes a list
    of that element and a dict becomes a nested model.

    Examples:
        ```python
        >>> Recipe = SimpleSchemaConverter.to_model(
        ...     {"name": "Recipe name", "servings": "How many (integer)", "steps": ["A step"]},
        ...     name="Recipe",
        ... )
        >>> Recipe(name="Soup", servings=2, steps=["boil"]).model_dump()
        {'name': 'Soup', 'servings': 2, 'steps': ['boil']}

        ```
    """

    @classmethod
    def to_model(cls, schema: SimpleSchema, name: str = "GeneratedObject") -> type[BaseModel]:
        """Build a pydantic model class for ``schema``.

        Non-dict schemas are wrapped in a single ``value`` field.
        """
        if not isinstance(schema, dict):
            schema = {"value": schema}

        field_definitions: dict[str, Any] = {}
        for index, (key, spec) in enumerate(schema.items()):
            annotation = cls.annotation_for(spec, f"{name}_{cls._title(str(key))}")
            description = cls._description(spec)
            plain = key.isidentifier() and not key.startswith("_")
            if plain and not hasattr(BaseModel, key):
                field_definitions[key] = (annotation, Field(..., description=description))
            else:
                field_definitions[f"field_{index}"] = (
                    annotation,
                    Field(..., alias=key, description=description),
                )

        return create_model(
            name,
            __config__=ConfigDict(populate_by_name=True, extra="allow"),
            **field_definitions,
        )

    @classmethod
    def annotation_for(cls, spec: Any, name: str) -> Any:
        """Return the type annotation that ``spec`` describes."""
        if isinstance(spec, dict):
            return cls.to_model(spec, name)
        if isinstance(spec, list):
            if not spec:
                return list[Any]
            return list[cls.annotation_for(spec[0], f"{name}Item")]
        if not isinstance(spec, str):
            return Any

        text = spec.strip()
        hint = _TYPE_HINT_PATTERN.search(text)
        if hint:
            return {
                "number": float,
                "integer": int,
                "boolean": bool,
                "true/false": bool,
                "object": dict[str, Any],
            }[hint.group(1)]
        if " | " in text:
            options = tuple(option.strip() for option in text.split("|"))
            if set(options) == {"true", "false"}:
                return Union[bool, Literal["true", "false"]]
            return Literal[options]  # type: ignore[valid-type]
        return str

    @staticmethod
    def _description(spec: Any) -> str | None:
        if isinstance(spec, str):
            return _TYPE_HINT_PATTERN.sub("", spec).strip() or None
        if isinstance(spec, list) and spec and isinstance(spec[0], str):
            return _TYPE_HINT_PATTERN.sub("", spec[0]).strip() or None
        return None

    @staticmethod
    def _title(key: str) -> str:
        return "".join(part.capitalize() for part in re.split(r"[^0-9a-zA-Z]+", key) if part)
