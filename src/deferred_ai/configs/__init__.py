"""Configuration package for default settings and runtime overrides.

``Configs`` is provided lazily via PEP 562 module ``__getattr__`` so importing
this package does not import the backend layer, which itself reads defaults
from here.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from deferred_ai.configs.configs import Configs as Configs

from deferred_ai.configs.defaults import (
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_MODEL,
    DEFAULT_MODEL_ENV_VAR,
    DEFAULT_NUM_OUTPUTS,
)

__all__ = [
    "Configs",
    "DEFAULT_CONTEXT_WINDOW",
    "DEFAULT_MODEL",
    "DEFAULT_MODEL_ENV_VAR",
    "DEFAULT_NUM_OUTPUTS",
]


def __getattr__(name: str):
    """Lazily expose Configs to avoid import-time side effects/cycles."""
    if name == "Configs":
        from deferred_ai.configs.configs import Configs as _Configs

        return _Configs
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    """Ensure introspection/autocomplete reflects the public API in __all__."""
    return sorted(__all__)
