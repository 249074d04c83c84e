"""Read-only facade that turns attribute reads into derived generations."""

from __future__ import annotations

from typing import Any, AsyncIterator, Generator, NoReturn

from deferred_ai.errors import NotCallableError, ReadOnlyGenerationError
from deferred_ai.promise.deferred import DeferredGeneration

__all__ = ["DeferredProxy", "RESERVED_NAMES", "is_deferred", "get_raw"]

RESERVED_NAMES = frozenset(
    {
        "then",
        "catch",
        "finally_",
        "resolve",
        "for_each",
        "stream",
        "add_dependency",
        "prompt",
        "path",
        "is_resolved",
        "accessed_props",
    }
)
"""Names bound to the underlying generation instead of becoming schema fields."""


class DeferredProxy:
    """Facade over a :class:`DeferredGeneration`.

    Any public attribute that is not in :data:`RESERVED_NAMES` is treated as a
    field of the eventual result: the read is recorded on the root generation
    and a proxy for the derived generation is returned. ``proxy["name"]`` does
    the same for any name, reserved or not. The facade is read-only.

    Examples:
        ```python
        >>> proxy = DeferredProxy(DeferredGeneration("Write a post"))
        >>> title = proxy.title
        >>> proxy.accessed_props, title.path
        ({'title'}, ('title',))
        >>> proxy.title = "x"
        Traceback (most recent call last):
        ...
        deferred_ai.errors.ReadOnlyGenerationError: Cannot set 'title' on a deferred generation

        ```
    """

    __slots__ = ("_target",)

    def __init__(self, target: DeferredGeneration) -> None:
        object.__setattr__(self, "_target", target)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in RESERVED_NAMES:
            return getattr(self._target, name)
        return DeferredProxy(self._target.access(name))

    def __getitem__(self, key: str | int) -> "DeferredProxy":
        return DeferredProxy(self._target.access(str(key)))

    def __setattr__(self, name: str, value: Any) -> NoReturn:
        raise ReadOnlyGenerationError(f"Cannot set {name!r} on a deferred generation")

    def __delattr__(self, name: str) -> NoReturn:
        raise ReadOnlyGenerationError(f"Cannot delete {name!r} on a deferred generation")

    def __setitem__(self, key: Any, value: Any) -> NoReturn:
        raise ReadOnlyGenerationError(f"Cannot set {key!r} on a deferred generation")

    def __delitem__(self, key: Any) -> NoReturn:
        raise ReadOnlyGenerationError(f"Cannot delete {key!r} on a deferred generation")

    def __iter__(self) -> NoReturn:
        raise TypeError("Deferred generations are not iterable; use 'async for'")

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        call = self._target._call
        if call is None:
            raise NotCallableError("Deferred generation is not callable")
        return call(*args, **kwargs)

    def __await__(self) -> Generator[Any, None, Any]:
        return self._target.__await__()

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._target.__aiter__()

    def __repr__(self) -> str:
        return repr(self._target)

    def __dir__(self) -> list[str]:
        return sorted(RESERVED_NAMES)


def is_deferred(value: Any) -> bool:
    """Whether ``value`` is a deferred generation or its facade."""
    return isinstance(value, (DeferredProxy, DeferredGeneration))


def get_raw(value: Any) -> Any:
    """Return the generation behind a facade; other values pass through unchanged."""
    if isinstance(value, DeferredProxy):
        return object.__getattribute__(value, "_target")
    return value
