"""Pydantic base models and shared typed abstractions."""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

SimpleSchema = Union[str, list[Any], dict[str, Any]]

__all__ = ["OutputKind", "GenerationOptions", "SimpleSchema", "OPTION_NAMES", "T"]


class OutputKind(str, Enum):
    """How the raw structured result of a generation is unwrapped."""

    TEXT = "text"
    OBJECT = "object"
    LIST = "list"
    LISTS = "lists"
    BOOLEAN = "boolean"
    EXTRACT = "extract"


class GenerationOptions(BaseModel):
    """Options shared by a root generation and everything derived from it.

    Attributes:
        model (str | None): Model name handed to the backend. Falls back to
            ``Configs.default_model``.
        temperature (float | None): Sampling temperature.
        max_tokens (int | None): Generation length limit.
        system (str | None): System prompt.
        output_kind (OutputKind): Selects schema defaults and result unwrapping.
        base_schema (SimpleSchema | None): Declared shape that takes precedence
            over name-based inference.
        backend (Any): Backend for this call only; ``Configs.backend`` otherwise.
    """

    model_config = ConfigDict(
        frozen=True, arbitrary_types_allowed=True, populate_by_name=True
    )

    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    system: str | None = None
    output_kind: OutputKind = OutputKind.OBJECT
    base_schema: SimpleSchema | None = Field(default=None, alias="schema")
    backend: Any = Field(default=None, exclude=True)

    def merge(self, **overrides: Any) -> "GenerationOptions":
        """Return a copy with the non-None overrides applied."""
        update = {k: v for k, v in overrides.items() if v is not None}
        if "schema" in update:
            update["base_schema"] = update.pop("schema")
        return self.model_copy(update=update)


OPTION_NAMES = frozenset(
    {"model", "temperature", "max_tokens", "system", "schema", "backend"}
)
