"""Utility helpers used across the deferred-ai codebase."""

from deferred_ai.utils.schemas import (
    JSON_FORMAT_TMPL,
    JsonParser,
    SchemaFormatter,
    SimpleSchemaConverter,
    marshal_llm_to_json,
)

__all__ = [
    "SchemaFormatter",
    "SimpleSchemaConverter",
    "JsonParser",
    "JSON_FORMAT_TMPL",
    "marshal_llm_to_json",
]
