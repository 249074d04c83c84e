"""Core Pydantic base models and shared typed abstractions."""

from deferred_ai.types.base import (
    OPTION_NAMES,
    GenerationOptions,
    OutputKind,
    SimpleSchema,
)

__all__ = ["GenerationOptions", "OutputKind", "SimpleSchema", "OPTION_NAMES"]
