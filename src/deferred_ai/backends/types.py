"""Request/response models and the abstract model-call backend."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from pydantic import BaseModel, ConfigDict, Field

from deferred_ai.types import SimpleSchema

__all__ = [
    "GenerationRequest",
    "ObjectResult",
    "TextResult",
    "ObjectStreamPart",
    "GenerationBackend",
]


class GenerationRequest(BaseModel):
    """Everything a backend needs to run one model call.

    Attributes:
        model (str): Model name; resolving it to a provider is the backend's job.
        prompt (str): Final prompt with dependencies already substituted.
        schema (SimpleSchema | None): Shape to request; ``None`` for text calls.
        system (str | None): System prompt.
        temperature (float | None): Sampling temperature.
        max_tokens (int | None): Generation length limit.
        abort_event (asyncio.Event | None): Set by the caller to stop a stream.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    model: str
    prompt: str
    output_schema: SimpleSchema | None = Field(default=None, alias="schema")
    system: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    abort_event: asyncio.Event | None = Field(default=None, exclude=True)

    @property
    def aborted(self) -> bool:
        """Whether the caller asked to stop."""
        return self.abort_event is not None and self.abort_event.is_set()

    def llm_kwargs(self) -> dict[str, Any]:
        """Sampling options that were set, ready to forward to an LLM."""
        return {
            key: value
            for key, value in (
                ("temperature", self.temperature),
                ("max_tokens", self.max_tokens),
            )
            if value is not None
        }


class ObjectResult(BaseModel):
    """Structured result of a non-streaming object call."""

    object: Any
    raw: Any | None = None


class TextResult(BaseModel):
    """Result of a non-streaming text call."""

    text: str
    raw: Any | None = None


class ObjectStreamPart(BaseModel):
    """One step of a streaming object call.

    Attributes:
        text_delta (str): Raw text received since the previous part.
        partial_object (Any): Best snapshot of the object so far.
    """

    text_delta: str = ""
    partial_object: Any = None


class GenerationBackend(ABC):
    """The model-call collaborator used by deferred generations.

    Implementations own model-name resolution, retries and transport. The
    streaming methods are async generators.
    """

    @abstractmethod
    async def generate_object(self, request: GenerationRequest) -> ObjectResult:
        """Run a structured call and return the parsed object."""

    @abstractmethod
    async def generate_text(self, request: GenerationRequest) -> TextResult:
        """Run a plain text call."""

    @abstractmethod
    def stream_text(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Yield text chunks as they arrive."""

    @abstractmethod
    def stream_object(self, request: GenerationRequest) -> AsyncIterator[ObjectStreamPart]:
        """Yield growing partial snapshots of a structured call."""
