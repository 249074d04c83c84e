"""Deferred generation: a future over a model call that learns its own schema."""

from __future__ import annotations

import asyncio
import inspect
import logging
import weakref
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Callable,
    Generator,
    Generic,
    NamedTuple,
    Optional,
    Sequence,
)

from deferred_ai.backends.types import GenerationBackend, GenerationRequest
from deferred_ai.configs import Configs
from deferred_ai.errors import UnresolvedPlaceholderError
from deferred_ai.promise.schema import (
    AccessTree,
    build_schema,
    get_nested_value,
    unwrap_result,
)
from deferred_ai.prompts.utils import find_placeholders, substitute_placeholders
from deferred_ai.types import GenerationOptions, OutputKind, SimpleSchema
from deferred_ai.types.base import T

if TYPE_CHECKING:
    from deferred_ai.promise.streaming import StreamingGeneration

__all__ = ["DeferredGeneration", "Dependency", "pending_generations"]

logger = logging.getLogger(__name__)

_PENDING: "weakref.WeakSet[DeferredGeneration]" = weakref.WeakSet()


def pending_generations() -> list["DeferredGeneration"]:
    """Snapshot of the generations that were created but not yet resolved."""
    return list(_PENDING)


class Dependency(NamedTuple):
    """A generation whose value is substituted into another prompt.

    Attributes:
        generation (DeferredGeneration): The generation to resolve first.
        path (tuple[str, ...]): Property path of ``generation`` below its root.
        key (str): Placeholder name; ``${key}`` in the prompt is replaced.
    """

    generation: "DeferredGeneration"
    path: tuple[str, ...]
    key: str


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class DeferredGeneration(Generic[T]):
    """A not-yet-executed model call that is both awaitable and navigable.

    A root generation holds a prompt and options. Reading a property through
    its :class:`~deferred_ai.promise.proxy.DeferredProxy` records the name on
    the root and returns a derived generation; when the root is finally
    awaited, the union of names read so far becomes the requested schema and
    a single model call is made. Derived generations never call the model:
    they resolve their parent and navigate into its value.

    Resolution runs at most once. The first ``await``/:meth:`then` schedules
    it as an ``asyncio`` task, so every read and dependency registration made
    before control returns to the event loop is included.

    Args:
        prompt (str): Prompt text, possibly holding ``${key}`` placeholders.
        options (GenerationOptions | None): Model and output options.
        parent (DeferredGeneration | None): Generation this one was derived from.
        property_path (Sequence[str]): Full path from the root to this value.
        dependencies (Sequence[Dependency]): Generations substituted into the prompt.

    Examples:
        ```python
        >>> gen = DeferredGeneration("Summarize the report")
        >>> child = gen.access("summary")
        >>> child.path, gen.accessed_props
        (('summary',), {'summary'})

        ```
    """

    def __init__(
        self,
        prompt: str,
        options: Optional[GenerationOptions] = None,
        *,
        parent: Optional["DeferredGeneration"] = None,
        property_path: Sequence[str] = (),
        dependencies: Sequence[Dependency] = (),
    ) -> None:
        self._prompt = prompt
        self._options = options or GenerationOptions()
        self._parent = parent
        self._property_path: tuple[str, ...] = tuple(property_path)
        self._access_tree: AccessTree = {}
        self._dependencies: list[Dependency] = list(dependencies)
        self._resolved = False
        self._resolved_value: Any = None
        self._inflight: Optional[asyncio.Future] = None
        self._resolver: Optional[asyncio.Future] = None
        self._call: Optional[Callable[..., Any]] = None
        _PENDING.add(self)

    def __repr__(self) -> str:
        state = "resolved" if self._resolved else "pending"
        path = ".".join(self._property_path)
        suffix = f" path={path!r}" if path else ""
        return f"<{type(self).__name__} {self.output_kind.value} {state}{suffix}>"

    @property
    def prompt(self) -> str:
        return self._prompt

    @property
    def options(self) -> GenerationOptions:
        return self._options

    @property
    def output_kind(self) -> OutputKind:
        return self._options.output_kind

    @property
    def parent(self) -> Optional["DeferredGeneration"]:
        return self._parent

    @property
    def path(self) -> tuple[str, ...]:
        """Property path from the root generation to this one."""
        return self._property_path

    @property
    def root(self) -> "DeferredGeneration":
        """The generation at the top of the derivation chain."""
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    @property
    def dependencies(self) -> tuple[Dependency, ...]:
        return tuple(self._dependencies)

    @property
    def is_resolved(self) -> bool:
        return self._resolved

    @property
    def accessed_props(self) -> set[str]:
        """Names read directly on this generation, as recorded on the root."""
        node = self.root._access_tree
        for key in self._property_path:
            node = node.get(key, {})
        return set(node)

    @property
    def access_tree(self) -> AccessTree:
        """Copy of every access path recorded on the root."""
        return _copy_tree(self.root._access_tree)

    def access(self, name: str) -> "DeferredGeneration":
        """Record a read of ``name`` and return the derived generation for it."""
        name = str(name)
        node = self.root._access_tree
        for key in self._property_path:
            node = node.setdefault(key, {})
        node.setdefault(name, {})
        if self.root._inflight is not None:
            logger.debug(
                "Property %r read after resolution started; it may not be part of the schema",
                name,
            )
        return type(self)(
            self._prompt,
            self._options,
            parent=self,
            property_path=(*self._property_path, name),
        )

    def add_dependency(
        self,
        generation: Any,
        path: Sequence[str] = (),
        key: Optional[str] = None,
    ) -> Dependency:
        """Register a generation whose value replaces ``${key}`` in the prompt.

        Args:
            generation: A deferred generation or its proxy.
            path (Sequence[str]): Property path recorded for the dependency.
            key (str | None): Placeholder name. Defaults to the dotted ``path``
                when one is given and to ``dep_<index>`` otherwise.

        Returns:
            Dependency: The registered entry.
        """
        from deferred_ai.promise.proxy import get_raw

        path = tuple(path)
        if key is None:
            key = ".".join(path) if path else f"dep_{len(self._dependencies)}"
        dependency = Dependency(get_raw(generation), path, key)
        self._dependencies.append(dependency)
        return dependency

    def with_options(self, **options: Any) -> "DeferredGeneration":
        """Return a new root with the same prompt and dependencies and merged options."""
        return type(self)(
            self._prompt,
            self._options.merge(**options),
            dependencies=self._dependencies,
        )

    async def resolve(self) -> Any:
        """Resolve the generation, running the model call at most once.

        Concurrent callers share one in-flight resolution; a failure is
        re-raised to every caller and is not retried.
        """
        if self._resolved:
            return self._resolved_value
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._run_resolution())
        return await asyncio.shield(self._inflight)

    def _ensure_resolver(self) -> asyncio.Future:
        if self._resolver is None:
            self._resolver = asyncio.ensure_future(self.resolve())
        return self._resolver

    def __await__(self) -> Generator[Any, None, Any]:
        return asyncio.shield(self._ensure_resolver()).__await__()

    def then(
        self,
        on_fulfilled: Optional[Callable[[Any], Any]] = None,
        on_rejected: Optional[Callable[[BaseException], Any]] = None,
    ) -> asyncio.Future:
        """Schedule callbacks on the settled value and return a future of their result.

        Callbacks may be plain functions or coroutine functions. Every call
        shares the same underlying resolution.

        Each call returns its own task. When it ends with an exception and
        is never awaited, ``asyncio`` logs "Task exception was never
        retrieved"; pass ``on_rejected`` or await the returned future.
        """
        resolver = self._ensure_resolver()

        async def _settle() -> Any:
            try:
                value = await asyncio.shield(resolver)
            except Exception as exc:
                if on_rejected is None:
                    raise
                return await _maybe_await(on_rejected(exc))
            if on_fulfilled is None:
                return value
            return await _maybe_await(on_fulfilled(value))

        return asyncio.ensure_future(_settle())

    def catch(self, on_rejected: Callable[[BaseException], Any]) -> asyncio.Future:
        return self.then(None, on_rejected)

    def finally_(self, callback: Callable[[], Any]) -> asyncio.Future:
        """Run ``callback`` once settled; the original outcome passes through."""

        async def _after_value(value: Any) -> Any:
            await _maybe_await(callback())
            return value

        async def _after_error(exc: BaseException) -> Any:
            await _maybe_await(callback())
            raise exc

        return self.then(_after_value, _after_error)

    async def for_each(self, callback: Callable[..., Any]) -> None:
        """Resolve, then call ``callback(item, index)`` for each item.

        A non-list value is passed once, with index ``0``.
        """
        value = await self.resolve()
        items = value if isinstance(value, (list, tuple)) else [value]
        for index, item in enumerate(items):
            await _maybe_await(callback(item, index))

    async def __aiter__(self) -> AsyncIterator[Any]:
        value = await self.resolve()
        if isinstance(value, (list, tuple)):
            for item in value:
                yield item
        else:
            yield value

    def stream(self, abort_event: Optional[asyncio.Event] = None) -> "StreamingGeneration":
        """Open an incremental view of this generation.

        The stream makes its own model call and does not share the cache used
        by ``await``.
        """
        from deferred_ai.promise.streaming import StreamingGeneration

        return StreamingGeneration(self, abort_event=abort_event)

    async def resolve_dependencies(self) -> dict[str, Any]:
        """Resolve every dependency in registration order, one at a time."""
        values: dict[str, Any] = {}
        for dependency in self._dependencies:
            logger.debug("Resolving dependency %s", dependency.key)
            values[dependency.key] = await dependency.generation.resolve()
        return values

    def build_schema(self) -> SimpleSchema:
        """Schema for the current access state of this root."""
        return build_schema(self._access_tree, self._options.base_schema, self.output_kind)

    def get_backend(self) -> GenerationBackend:
        backend = self._options.backend or Configs.backend
        if backend is None:
            raise AssertionError("backend must be provided or set in Configs.")
        return backend

    async def prepare_request(
        self, abort_event: Optional[asyncio.Event] = None
    ) -> tuple[GenerationRequest, SimpleSchema]:
        """Resolve dependencies, substitute them and freeze the schema.

        Returns:
            tuple[GenerationRequest, SimpleSchema]: The request for the backend
            and the schema it carries.

        Raises:
            UnresolvedPlaceholderError: If ``Configs.strict_placeholders`` is
                set and ``${...}`` tokens remain after substitution.
        """
        values = await self.resolve_dependencies()
        prompt = substitute_placeholders(self._prompt, values)
        leftover = find_placeholders(prompt)
        if leftover:
            if Configs.strict_placeholders:
                raise UnresolvedPlaceholderError(leftover, prompt)
            logger.debug("Prompt keeps unresolved placeholders %s", leftover)

        schema = self.build_schema()
        options = self._options
        request = GenerationRequest(
            model=options.model or Configs.default_model,
            prompt=prompt,
            schema=schema,
            system=options.system,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
            abort_event=abort_event,
        )
        return request, schema

    async def _generate(self) -> Any:
        backend = self.get_backend()
        request, schema = await self.prepare_request()
        logger.debug(
            "Calling %s for a %s generation with fields %s",
            request.model,
            self.output_kind.value,
            list(schema) if isinstance(schema, dict) else schema,
        )
        result = await backend.generate_object(request)
        return unwrap_result(
            result.object, self.output_kind, schema=schema, strict=Configs.strict_unwrap
        )

    async def _run_resolution(self) -> Any:
        if self._parent is not None:
            parent_value = await self._parent.resolve()
            relative = self._property_path[len(self._parent.path):]
            value = get_nested_value(parent_value, relative)
        else:
            value = await self._generate()

        self._resolved_value = value
        self._resolved = True
        _PENDING.discard(self)
        logger.debug("Resolved %r", self)
        return value


def _copy_tree(tree: AccessTree) -> AccessTree:
    return {key: _copy_tree(value) for key, value in tree.items()}
