"""Model-call backends consumed by deferred generations."""

from deferred_ai.backends.llm_backend import LLMBackend
from deferred_ai.backends.types import (
    GenerationBackend,
    GenerationRequest,
    ObjectResult,
    ObjectStreamPart,
    TextResult,
)

__all__ = [
    "GenerationBackend",
    "GenerationRequest",
    "LLMBackend",
    "ObjectResult",
    "ObjectStreamPart",
    "TextResult",
]
