"""deferred-ai."""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from deferred_ai.promise import (
    DeferredGeneration,
    DeferredProxy,
    GenerationFunction,
    StreamingGeneration,
    ai,
    create_boolean,
    create_extract,
    create_list,
    create_lists,
    create_object,
    create_text,
    extract,
    get_raw,
    is_,
    is_deferred,
    list_,
    lists,
    parse_template,
    pending_generations,
    write,
)
from deferred_ai.types import OutputKind

try:
    __version__ = get_version("deferred-ai")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"

__doc__ = """
deferred-ai - deferred, schema-learning model calls
"""

__all__ = [
    "DeferredGeneration",
    "DeferredProxy",
    "GenerationFunction",
    "OutputKind",
    "StreamingGeneration",
    "ai",
    "create_boolean",
    "create_extract",
    "create_list",
    "create_lists",
    "create_object",
    "create_text",
    "extract",
    "get_raw",
    "is_",
    "is_deferred",
    "list_",
    "lists",
    "parse_template",
    "pending_generations",
    "write",
]
