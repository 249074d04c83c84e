"""Configuration helpers and runtime settings for deferred-ai."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Iterator, Optional

from deferred_ai.configs.defaults import DEFAULT_MODEL, DEFAULT_MODEL_ENV_VAR

if TYPE_CHECKING:
    from deferred_ai.backends.types import GenerationBackend

logger = logging.getLogger(__name__)

_LOCAL_OVERRIDES: ContextVar[dict[str, Any]] = ContextVar(
    "deferred_ai_local_overrides", default={}
)


@dataclass
class _Configs:
    """Process-wide settings, lazily initialized.

    Every property consults, in order: the overrides installed by
    :meth:`context` for the current task, the value set globally on this
    object, and finally its environment/default fallback.
    """

    _backend: Optional["GenerationBackend"] = None
    _default_model: Optional[str] = None
    _strict_unwrap: bool = False
    _strict_placeholders: bool = False

    def _lookup(self, name: str) -> Any:
        overrides = _LOCAL_OVERRIDES.get()
        if name in overrides:
            return overrides[name]
        return getattr(self, f"_{name}")

    @property
    def backend(self) -> Optional["GenerationBackend"]:
        """Get the model-call backend."""
        return self._lookup("backend")

    @backend.setter
    def backend(self, backend: Optional["GenerationBackend"]) -> None:
        """Set the model-call backend."""
        self._backend = backend

    @property
    def default_model(self) -> str:
        """Get the model name used when a call does not name one."""
        model = self._lookup("default_model")
        return model or os.environ.get(DEFAULT_MODEL_ENV_VAR) or DEFAULT_MODEL

    @default_model.setter
    def default_model(self, model: Optional[str]) -> None:
        """Set the model name used when a call does not name one."""
        self._default_model = model

    @property
    def strict_unwrap(self) -> bool:
        """Raise instead of returning the raw object when a result lacks its field."""
        return self._lookup("strict_unwrap")

    @strict_unwrap.setter
    def strict_unwrap(self, value: bool) -> None:
        self._strict_unwrap = value

    @property
    def strict_placeholders(self) -> bool:
        """Raise instead of sending a prompt that still holds ``${...}`` tokens."""
        return self._lookup("strict_placeholders")

    @strict_placeholders.setter
    def strict_placeholders(self, value: bool) -> None:
        self._strict_placeholders = value

    @contextmanager
    def context(self, **overrides: Any) -> Iterator["_Configs"]:
        """Temporarily override settings for the current task.

        Overrides are stored in a ``ContextVar`` so concurrent asyncio tasks
        each see their own values; tasks created inside the block inherit them.

        Args:
            **overrides: Any of ``backend``, ``default_model``, ``strict_unwrap``
                or ``strict_placeholders``.

        Raises:
            ValueError: If an unknown setting name is passed.

        Examples:
            ```python
            >>> from deferred_ai.configs import Configs
            >>> with Configs.context(default_model="opus"):
            ...     Configs.default_model
            'opus'

            ```
        """
        known = {f.name.lstrip("_") for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown setting(s): {sorted(unknown)}")

        merged = {**_LOCAL_OVERRIDES.get(), **overrides}
        token = _LOCAL_OVERRIDES.set(merged)
        logger.debug("Entering configs context with overrides %s", sorted(overrides))
        try:
            yield self
        finally:
            _LOCAL_OVERRIDES.reset(token)

    def reset(self) -> None:
        """Restore every global setting to its default."""
        self._backend = None
        self._default_model = None
        self._strict_unwrap = False
        self._strict_placeholders = False


# Singleton
Configs = _Configs()
