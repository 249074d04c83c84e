"""Factory functions producing deferred generations for each output kind."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from deferred_ai.promise.deferred import DeferredGeneration, Dependency
from deferred_ai.promise.proxy import DeferredProxy
from deferred_ai.promise.template import parse_prompt
from deferred_ai.types import OPTION_NAMES, GenerationOptions, OutputKind

__all__ = [
    "GenerationFunction",
    "ai",
    "write",
    "list_",
    "lists",
    "is_",
    "extract",
    "create_text",
    "create_object",
    "create_list",
    "create_lists",
    "create_boolean",
    "create_extract",
]

logger = logging.getLogger(__name__)


def _check_options(options: dict[str, Any]) -> None:
    unknown = set(options) - OPTION_NAMES
    if unknown:
        raise TypeError(f"Unknown generation option(s): {sorted(unknown)}")


def _install_call_slot(generation: DeferredGeneration) -> None:
    def _chain(**options: Any) -> DeferredProxy:
        _check_options(options)
        chained = generation.with_options(**options)
        _install_call_slot(chained)
        logger.debug("Chained options %s onto %r", sorted(options), generation)
        return DeferredProxy(chained)

    generation._call = _chain


def new_root(
    prompt: str,
    options: GenerationOptions,
    dependencies: Sequence[Dependency] = (),
) -> DeferredProxy:
    """Create a root generation, give it an options-chaining call slot and wrap it."""
    generation = DeferredGeneration(prompt, options, dependencies=dependencies)
    _install_call_slot(generation)
    return DeferredProxy(generation)


class GenerationFunction:
    """Callable that turns a prompt into a deferred generation of one output kind.

    The prompt may be a plain string, a ``{name}`` format string whose values
    are passed as keywords, a sequence of literal fragments followed by the
    values interpolated between them, or a template string. Deferred values
    interpolated into the prompt become dependencies resolved before the call.
    Keywords named like an option (``model``, ``temperature``, ``max_tokens``,
    ``system``, ``schema``, ``backend``) are options, never format values.

    Args:
        output_kind (OutputKind): How the result is unwrapped.
        **base_options: Options applied to every call of this function.

    Examples:
        ```python
        >>> summarize = GenerationFunction(OutputKind.OBJECT, model="opus")
        >>> post = summarize("Summarize {title}", title="Deferred calls")
        >>> post.prompt
        'Summarize Deferred calls'
        >>> post(temperature=0.2).prompt
        'Summarize Deferred calls'

        ```
    """

    def __init__(self, output_kind: OutputKind = OutputKind.OBJECT, **base_options: Any) -> None:
        _check_options(base_options)
        self.output_kind = OutputKind(output_kind)
        self.base_options = GenerationOptions(output_kind=self.output_kind).merge(**base_options)

    def __repr__(self) -> str:
        return f"GenerationFunction(output_kind={self.output_kind.value!r})"

    def __call__(self, prompt: Any, /, *values: Any, **kwargs: Any) -> DeferredProxy:
        options = {key: kwargs.pop(key) for key in list(kwargs) if key in OPTION_NAMES}
        parsed = parse_prompt(prompt, values, kwargs)
        return new_root(
            parsed.prompt, self.base_options.merge(**options), parsed.dependencies
        )

    def create(self, prompt: str, **options: Any) -> DeferredProxy:
        """Create a generation from a plain prompt, without any template processing."""
        _check_options(options)
        return new_root(prompt, self.base_options.merge(**options))

    def options(self, **options: Any) -> "GenerationFunction":
        """Return a function of the same kind with ``options`` merged into its defaults."""
        _check_options(options)
        merged = self.base_options.merge(**options)
        function = type(self)(self.output_kind)
        function.base_options = merged
        return function


ai = GenerationFunction(OutputKind.OBJECT)
write = GenerationFunction(OutputKind.TEXT)
list_ = GenerationFunction(OutputKind.LIST)
lists = GenerationFunction(OutputKind.LISTS)
is_ = GenerationFunction(OutputKind.BOOLEAN)
extract = GenerationFunction(OutputKind.EXTRACT)


def create_text(prompt: str, **options: Any) -> DeferredProxy:
    """Deferred text generation; resolves to a string."""
    return write.create(prompt, **options)


def create_object(prompt: str, **options: Any) -> DeferredProxy:
    """Deferred object generation whose schema follows the properties read."""
    return ai.create(prompt, **options)


def create_list(prompt: str, **options: Any) -> DeferredProxy:
    """Deferred list generation; resolves to a list of items."""
    return list_.create(prompt, **options)


def create_lists(prompt: str, **options: Any) -> DeferredProxy:
    """Deferred generation of several named lists."""
    return lists.create(prompt, **options)


def create_boolean(prompt: str, **options: Any) -> DeferredProxy:
    """Deferred yes/no question; resolves to ``True`` or ``False``."""
    return is_.create(prompt, **options)


def create_extract(prompt: str, **options: Any) -> DeferredProxy:
    """Deferred extraction; resolves to the list of extracted items."""
    return extract.create(prompt, **options)
