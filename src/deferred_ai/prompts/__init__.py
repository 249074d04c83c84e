"""Prompt formatting helpers."""

from deferred_ai.prompts.utils import (
    SafeFormatter,
    find_placeholders,
    substitute_placeholders,
    to_prompt_string,
)

__all__ = [
    "SafeFormatter",
    "find_placeholders",
    "substitute_placeholders",
    "to_prompt_string",
]
