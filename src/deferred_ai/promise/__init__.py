"""Deferred generations: awaitable, navigable model calls."""

from deferred_ai.promise.deferred import (
    DeferredGeneration,
    Dependency,
    pending_generations,
)
from deferred_ai.promise.factories import (
    GenerationFunction,
    ai,
    create_boolean,
    create_extract,
    create_list,
    create_lists,
    create_object,
    create_text,
    extract,
    is_,
    list_,
    lists,
    write,
)
from deferred_ai.promise.proxy import (
    RESERVED_NAMES,
    DeferredProxy,
    get_raw,
    is_deferred,
)
from deferred_ai.promise.schema import build_schema, get_nested_value, unwrap_result
from deferred_ai.promise.streaming import StreamingGeneration
from deferred_ai.promise.template import ParsedTemplate, parse_template

__all__ = [
    "DeferredGeneration",
    "DeferredProxy",
    "Dependency",
    "GenerationFunction",
    "ParsedTemplate",
    "RESERVED_NAMES",
    "StreamingGeneration",
    "ai",
    "build_schema",
    "create_boolean",
    "create_extract",
    "create_list",
    "create_lists",
    "create_object",
    "create_text",
    "extract",
    "get_nested_value",
    "get_raw",
    "is_",
    "is_deferred",
    "list_",
    "lists",
    "parse_template",
    "pending_generations",
    "unwrap_result",
    "write",
]
