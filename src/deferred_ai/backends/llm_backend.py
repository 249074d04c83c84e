"""Backend that runs generations on a completion-style LLM."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Mapping, Optional

from pydantic import ValidationError

from deferred_ai.backends.types import (
    GenerationBackend,
    GenerationRequest,
    ObjectResult,
    ObjectStreamPart,
    TextResult,
)
from deferred_ai.base.llms import BaseLLM
from deferred_ai.errors import GenerationAbortedError
from deferred_ai.output_parsers import OutputParserException, parse_json_markdown
from deferred_ai.utils.schemas import JsonParser, SchemaFormatter, SimpleSchemaConverter

logger = logging.getLogger(__name__)


class LLMBackend(GenerationBackend):
    """Run structured and text generations on :class:`BaseLLM` instances.

    Structured calls render the requested simple schema into a pydantic model,
    append its JSON-format instructions to the prompt, parse the completion and
    validate it. Streaming object calls re-parse the accumulated text after
    every chunk and emit a part whenever the snapshot changes.

    Args:
        llm (BaseLLM): LLM used for every model name without its own entry.
        models (Mapping[str, BaseLLM] | None): Per-model-name overrides.

    Examples:
        ```python
        >>> import asyncio
        >>> from deferred_ai.backends import GenerationRequest, LLMBackend
        >>> from deferred_ai.llms import MockLLM
        >>> backend = LLMBackend(MockLLM(responses=['{"answer": "true"}']))
        >>> request = GenerationRequest(model="sonnet", prompt="Is water wet?", schema={"answer": "true | false"})
        >>> asyncio.run(backend.generate_object(request)).object
        {'answer': 'true'}

        ```
    """

    def __init__(self, llm: BaseLLM, models: Optional[Mapping[str, BaseLLM]] = None) -> None:
        self._llm = llm
        self._models = dict(models or {})

    def llm_for(self, model: str) -> BaseLLM:
        """Return the LLM serving ``model``."""
        return self._models.get(model, self._llm)

    @staticmethod
    def _render_prompt(request: GenerationRequest, with_schema: bool) -> str:
        parts = []
        if request.system:
            parts.append(request.system)
        parts.append(request.prompt)
        if with_schema and request.output_schema is not None:
            output_cls = SimpleSchemaConverter.to_model(request.output_schema)
            parts.append(SchemaFormatter.format_for_llm(output_cls.model_json_schema()))
        return "\n\n".join(parts)

    @staticmethod
    def _validate(request: GenerationRequest, parsed: object) -> object:
        if request.output_schema is None:
            return parsed
        output_cls = SimpleSchemaConverter.to_model(request.output_schema)
        try:
            return output_cls.model_validate(parsed).model_dump(by_alias=True)
        except ValidationError as exc:
            raise OutputParserException(
                f"Model output does not match the requested schema: {exc}"
            ) from exc

    async def generate_object(self, request: GenerationRequest) -> ObjectResult:
        llm = self.llm_for(request.model)
        prompt = self._render_prompt(request, with_schema=True)
        logger.debug("Structured call to %s (%d prompt chars)", request.model, len(prompt))
        response = await llm.acomplete(prompt, **request.llm_kwargs())
        parsed = parse_json_markdown(response.text)
        return ObjectResult(object=self._validate(request, parsed), raw=response)

    async def generate_text(self, request: GenerationRequest) -> TextResult:
        llm = self.llm_for(request.model)
        prompt = self._render_prompt(request, with_schema=False)
        logger.debug("Text call to %s (%d prompt chars)", request.model, len(prompt))
        response = await llm.acomplete(prompt, **request.llm_kwargs())
        return TextResult(text=response.text, raw=response)

    async def stream_text(self, request: GenerationRequest) -> AsyncIterator[str]:
        llm = self.llm_for(request.model)
        prompt = self._render_prompt(request, with_schema=False)
        logger.debug("Streaming text call to %s", request.model)
        async for response in await llm.astream_complete(prompt, **request.llm_kwargs()):
            if request.aborted:
                raise GenerationAbortedError(f"Stream for {request.model!r} aborted")
            if response.delta:
                yield response.delta

    async def stream_object(self, request: GenerationRequest) -> AsyncIterator[ObjectStreamPart]:
        llm = self.llm_for(request.model)
        prompt = self._render_prompt(request, with_schema=True)
        logger.debug("Streaming structured call to %s", request.model)
        text = ""
        last = None
        pending_delta = ""
        async for response in await llm.astream_complete(prompt, **request.llm_kwargs()):
            if request.aborted:
                raise GenerationAbortedError(f"Stream for {request.model!r} aborted")
            delta = response.delta or ""
            text += delta
            pending_delta += delta
            snapshot = JsonParser.parse_partial(text)
            if snapshot is None or snapshot == last:
                continue
            last = snapshot
            yield ObjectStreamPart(text_delta=pending_delta, partial_object=snapshot)
            pending_delta = ""

        if pending_delta:
            yield ObjectStreamPart(text_delta=pending_delta, partial_object=last)
