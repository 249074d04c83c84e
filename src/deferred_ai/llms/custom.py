from typing import Any

from deferred_ai.base.llms import (
    BaseLLM,
    CompletionResponse,
    CompletionResponseAsyncGen,
)


class CustomLLM(BaseLLM):
    """
    Simple abstract base class for custom LLMs.

    Subclasses must implement the `complete`, `stream_complete`, and
    `metadata` members; the async variants run them inline.
    """

    async def acomplete(
        self, prompt: str, formatted: bool = False, **kwargs: Any
    ) -> CompletionResponse:
        return self.complete(prompt, formatted=formatted, **kwargs)

    async def astream_complete(
        self, prompt: str, formatted: bool = False, **kwargs: Any
    ) -> CompletionResponseAsyncGen:
        async def gen() -> CompletionResponseAsyncGen:
            for message in self.stream_complete(prompt, formatted=formatted, **kwargs):
                yield message

        # NOTE: convert generator to async generator
        return gen()

    @classmethod
    def class_name(cls) -> str:
        return "custom_llm"
