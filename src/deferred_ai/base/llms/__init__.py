"""LLM interface and response types consumed by the LLM backend."""

from deferred_ai.base.llms.base import BaseLLM
from deferred_ai.base.llms.types import (
    CompletionResponse,
    CompletionResponseAsyncGen,
    CompletionResponseGen,
    Metadata,
)

__all__ = [
    "BaseLLM",
    "CompletionResponse",
    "CompletionResponseAsyncGen",
    "CompletionResponseGen",
    "Metadata",
]
