"""Core data models for completion-style LLM interactions."""

from __future__ import annotations

from typing import Any, AsyncGenerator, Generator

from pydantic import BaseModel, ConfigDict, Field

from deferred_ai.configs.defaults import DEFAULT_CONTEXT_WINDOW, DEFAULT_NUM_OUTPUTS


class CompletionResponse(BaseModel):
    """
    Completion response.

    Fields:
        text: Text content of the response if not streaming, or if streaming,
            the current extent of streamed text.
        delta: New text that just streamed in (only relevant when streaming).
        raw: Optional raw payload that was parsed to populate text.
        additional_kwargs: Provider specific extras (token counts and the like).
    """

    text: str
    delta: str | None = None
    raw: Any | None = None
    additional_kwargs: dict = Field(default_factory=dict)

    def __str__(self) -> str:
        """Return the textual content of the completion response."""
        return self.text


CompletionResponseGen = Generator[CompletionResponse, None, None]
CompletionResponseAsyncGen = AsyncGenerator[CompletionResponse, None]


class Metadata(BaseModel):
    """Model capabilities and defaults."""

    model_config = ConfigDict(protected_namespaces=("pydantic_model_",))
    context_window: int = Field(
        default=DEFAULT_CONTEXT_WINDOW,
        description=(
            "Total number of tokens the model can be input and output for one response."
        ),
    )
    num_output: int = Field(
        default=DEFAULT_NUM_OUTPUTS,
        description="Number of tokens the model can output when generating a response.",
    )
    model_name: str = Field(
        default="unknown",
        description="The model's name used for logging, testing, and sanity checking.",
    )
