import asyncio
from typing import Any, AsyncIterator, Callable, Optional, Union

import pytest

from deferred_ai.backends import (
    GenerationBackend,
    GenerationRequest,
    ObjectResult,
    ObjectStreamPart,
    TextResult,
)
from deferred_ai.configs import Configs

Responder = Union[Any, Callable[[GenerationRequest], Any]]


class RecordingBackend(GenerationBackend):
    """In-memory backend that records every request it receives.

    ``result`` is returned by ``generate_object`` (a callable receives the
    request), ``chunks`` are streamed by ``stream_text`` and ``parts`` by
    ``stream_object``. ``error`` is raised after the scripted output, and
    ``hang`` blocks a stream after its scripted output until it is cancelled.
    """

    def __init__(
        self,
        result: Responder = None,
        chunks: Optional[list[str]] = None,
        parts: Optional[list[Any]] = None,
        error: Optional[Exception] = None,
        hang: bool = False,
    ) -> None:
        self.result = result if result is not None else {"result": "ok"}
        self.chunks = chunks or []
        self.parts = parts or []
        self.error = error
        self.hang = hang
        self.requests: list[GenerationRequest] = []
        self.calls: list[str] = []

    def _record(self, method: str, request: GenerationRequest) -> None:
        self.calls.append(method)
        self.requests.append(request)

    def _respond(self, request: GenerationRequest) -> Any:
        if callable(self.result):
            return self.result(request)
        return self.result

    async def generate_object(self, request: GenerationRequest) -> ObjectResult:
        self._record("generate_object", request)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return ObjectResult(object=self._respond(request))

    async def generate_text(self, request: GenerationRequest) -> TextResult:
        self._record("generate_text", request)
        if self.error is not None:
            raise self.error
        return TextResult(text="".join(self.chunks))

    async def stream_text(self, request: GenerationRequest) -> AsyncIterator[str]:
        self._record("stream_text", request)
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk
        await self._finish()

    async def stream_object(self, request: GenerationRequest) -> AsyncIterator[ObjectStreamPart]:
        self._record("stream_object", request)
        for part in self.parts:
            await asyncio.sleep(0)
            if not isinstance(part, ObjectStreamPart):
                part = ObjectStreamPart(partial_object=part)
            yield part
        await self._finish()

    async def _finish(self) -> None:
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()


@pytest.fixture(autouse=True)
def reset_configs():
    Configs.reset()
    yield
    Configs.reset()


@pytest.fixture()
def backend() -> RecordingBackend:
    """A recording backend installed as the global default."""
    recording = RecordingBackend()
    Configs.backend = recording
    return recording
