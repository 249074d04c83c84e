"""Incremental consumption of a deferred generation."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Generator, Optional

from deferred_ai.configs import Configs
from deferred_ai.errors import GenerationAbortedError
from deferred_ai.promise.schema import get_nested_value, unwrap_result
from deferred_ai.types import OutputKind, SimpleSchema

if TYPE_CHECKING:
    from deferred_ai.promise.deferred import DeferredGeneration

__all__ = ["StreamingGeneration"]

logger = logging.getLogger(__name__)


class StreamingGeneration:
    """Stream a generation through text chunks, partial objects or its final value.

    One streaming call is made per instance, started by whichever surface is
    used first. Its parts are buffered, so every later iteration replays from
    the beginning without calling the model again. An error raised by the
    backend rejects :attr:`result` and is re-raised at the end of every
    iteration.

    The stream does not share the cache of ``await generation``: using both
    makes two model calls.

    Args:
        generation (DeferredGeneration): The generation to stream. A derived
            generation streams its root and navigates into each snapshot.
        abort_event (asyncio.Event | None): Event forwarded to the backend;
            setting it stops the stream.

    Examples:
        ```python
        >>> import asyncio
        >>> from deferred_ai import write
        >>> from deferred_ai.backends import LLMBackend
        >>> from deferred_ai.llms import MockLLM
        >>> async def main():
        ...     story = write("Tell a story", backend=LLMBackend(MockLLM(responses=["Once upon a time"])))
        ...     stream = story.stream()
        ...     chunks = [chunk async for chunk in stream.text_stream]
        ...     return chunks, await stream.result
        >>> asyncio.run(main())
        (['Once upo', 'n a time'], 'Once upon a time')

        ```
    """

    def __init__(
        self,
        generation: "DeferredGeneration",
        *,
        abort_event: Optional[asyncio.Event] = None,
    ) -> None:
        self._generation = generation
        self._root = generation.root
        self._path = generation.path
        self._abort_event = abort_event or asyncio.Event()
        self._parts: list[Any] = []
        self._done = False
        self._error: Optional[BaseException] = None
        self._condition = asyncio.Condition()
        self._pump: Optional[asyncio.Task] = None
        self._finisher: Optional[asyncio.Task] = None
        self._result: Optional[asyncio.Future] = None
        self._schema: Optional[SimpleSchema] = None
        self._text_mode = False

    @property
    def generation(self) -> "DeferredGeneration":
        return self._generation

    @property
    def output_kind(self) -> OutputKind:
        return self._root.output_kind

    @property
    def done(self) -> bool:
        return self._done

    def _start(self) -> None:
        if self._pump is not None:
            return
        if self._root.is_resolved or self._root._inflight is not None:
            logger.warning(
                "Streaming %r makes a second model call; the awaited value is cached separately",
                self._root,
            )
        self._pump = asyncio.ensure_future(self._run())
        self._pump.add_done_callback(self._on_pump_done)

    def _on_pump_done(self, pump: asyncio.Task) -> None:
        # a pump cancelled before its first step never reaches the finally in _run
        if self._done:
            return
        if self._error is None:
            self._error = GenerationAbortedError("Stream was cancelled")
        self._finisher = asyncio.ensure_future(self._finish())

    async def _finish(self) -> None:
        async with self._condition:
            self._done = True
            self._condition.notify_all()

    async def _run(self) -> None:
        try:
            backend = self._root.get_backend()
            request, schema = await self._root.prepare_request(abort_event=self._abort_event)
            self._schema = schema
            self._text_mode = (
                self.output_kind is OutputKind.TEXT
                and isinstance(schema, dict)
                and set(schema) == {"text"}
            )
            mode = "text" if self._text_mode else "object"
            logger.debug("Starting %s stream on %s", mode, request.model)
            if self._text_mode:
                source = backend.stream_text(request)
            else:
                source = backend.stream_object(request)
            async for part in source:
                async with self._condition:
                    self._parts.append(part)
                    self._condition.notify_all()
        except asyncio.CancelledError:
            self._error = GenerationAbortedError("Stream was cancelled")
            raise
        except Exception as exc:
            logger.debug("Stream failed: %s", exc)
            self._error = exc
        finally:
            await self._finish()
            logger.debug("Stream finished with %d parts", len(self._parts))

    async def _replay(self) -> AsyncIterator[Any]:
        self._start()
        index = 0
        while True:
            async with self._condition:
                await self._condition.wait_for(lambda: index < len(self._parts) or self._done)
                batch = self._parts[index:]
                finished = self._done
            for part in batch:
                yield part
            index += len(batch)
            if finished and index >= len(self._parts):
                if self._error is not None:
                    raise self._error
                return

    def _project(self, snapshot: Any) -> Any:
        if self._path:
            return get_nested_value(snapshot, self._path)
        return unwrap_result(snapshot, self.output_kind, schema=self._schema)

    @property
    def text_stream(self) -> AsyncIterator[str]:
        """Text chunks as they arrive; raw JSON deltas for structured streams."""
        return self._text_chunks()

    async def _text_chunks(self) -> AsyncIterator[str]:
        async for part in self._replay():
            if self._text_mode:
                yield part
            elif part.text_delta:
                yield part.text_delta

    @property
    def partial_object_stream(self) -> AsyncIterator[Any]:
        """Growing snapshots of the result; ``{"text": ...}`` for text streams."""
        return self._partial_objects()

    async def _partial_objects(self) -> AsyncIterator[Any]:
        text = ""
        async for part in self._replay():
            if self._text_mode:
                text += part
                yield {"text": text}
                continue
            if part.partial_object is None:
                continue
            if self._path:
                yield get_nested_value(part.partial_object, self._path)
            else:
                yield part.partial_object

    async def __aiter__(self) -> AsyncIterator[Any]:
        if self.output_kind is OutputKind.LIST:
            async for item in self._list_items():
                yield item
            return
        async for part in self._replay():
            if self._text_mode:
                yield part
            elif part.partial_object is not None:
                yield self._project(part.partial_object)

    async def _list_items(self) -> AsyncIterator[Any]:
        emitted = 0
        items: list[Any] = []
        async for part in self._replay():
            if self._text_mode or part.partial_object is None:
                continue
            projected = self._project(part.partial_object)
            if not isinstance(projected, list):
                continue
            items = projected
            # the last element may still be growing
            while emitted < len(items) - 1:
                yield items[emitted]
                emitted += 1
        for item in items[emitted:]:
            yield item

    @property
    def result(self) -> asyncio.Future:
        """Future of the final value, unwrapped like the awaited path."""
        if self._result is None:
            self._start()
            self._result = asyncio.ensure_future(self._collect())
        return self._result

    async def _collect(self) -> Any:
        chunks = []
        last = None
        async for part in self._replay():
            if self._text_mode:
                chunks.append(part)
            elif part.partial_object is not None:
                last = part.partial_object
        if self._text_mode:
            return "".join(chunks)
        if self._path:
            return get_nested_value(last, self._path)
        return unwrap_result(
            last, self.output_kind, schema=self._schema, strict=Configs.strict_unwrap
        )

    def __await__(self) -> Generator[Any, None, Any]:
        return asyncio.shield(self.result).__await__()

    def cancel(self) -> None:
        """Stop the underlying call; readers see :class:`GenerationAbortedError`."""
        self._abort_event.set()
        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
