"""Deterministic in-process LLM for examples and tests."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from deferred_ai.base.llms import CompletionResponse, CompletionResponseGen, Metadata
from deferred_ai.llms.custom import CustomLLM


class MockLLM(CustomLLM):
    """LLM that answers from a fixed script.

    Each call pops the next entry of ``responses``; once the script runs out
    the prompt itself is echoed back. Streaming splits the answer into
    ``chunk_size`` character pieces.

    Attributes:
        responses (list[str]): Scripted completions, consumed in order.
        chunk_size (int): Characters per streamed chunk.
        prompts (list[str]): Every prompt received, in call order.

    Examples:
        ```python
        >>> from deferred_ai.llms import MockLLM
        >>> llm = MockLLM(responses=['{"text": "hi"}'])
        >>> llm.complete("say hi").text
        '{"text": "hi"}'
        >>> llm.complete("again").text
        'again'

        ```
    """

    _metadata: ClassVar[Metadata] = Metadata(model_name="mock")

    responses: list[str] = Field(default_factory=list)
    chunk_size: int = 8
    prompts: list[str] = Field(default_factory=list)

    @property
    def metadata(self) -> Metadata:
        return self._metadata

    def _next(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.responses:
            return self.responses.pop(0)
        return prompt

    def complete(
        self, prompt: str, formatted: bool = False, **kwargs: Any
    ) -> CompletionResponse:
        text = self._next(prompt)
        return CompletionResponse(text=text, delta=text)

    def stream_complete(
        self, prompt: str, formatted: bool = False, **kwargs: Any
    ) -> CompletionResponseGen:
        text = self._next(prompt)
        size = max(self.chunk_size, 1)

        def gen() -> CompletionResponseGen:
            for start in range(0, len(text), size):
                yield CompletionResponse(
                    text=text[: start + size], delta=text[start : start + size]
                )

        return gen()

    @classmethod
    def class_name(cls) -> str:
        return "mock_llm"
