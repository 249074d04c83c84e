"""Exceptions raised by deferred generations."""

__all__ = [
    "DeferredGenerationError",
    "ReadOnlyGenerationError",
    "NotCallableError",
    "MalformedResultError",
    "UnresolvedPlaceholderError",
    "GenerationAbortedError",
]


class DeferredGenerationError(Exception):
    """Base class for errors raised by this package."""


class ReadOnlyGenerationError(DeferredGenerationError, AttributeError):
    """Raised on any attempt to set or delete a property of a generation."""


class NotCallableError(DeferredGenerationError, TypeError):
    """Raised when calling a generation that carries no callable slot."""


class MalformedResultError(DeferredGenerationError, ValueError):
    """Raised in strict mode when a result lacks the field its kind unwraps."""

    def __init__(self, output_kind: str, field: str, value: object) -> None:
        self.output_kind = output_kind
        self.field = field
        self.value = value
        super().__init__(
            f"Result for output kind {output_kind!r} has no {field!r} field: {value!r}"
        )


class UnresolvedPlaceholderError(DeferredGenerationError, ValueError):
    """Raised in strict mode when a prompt still holds ``${...}`` tokens."""

    def __init__(self, placeholders: list[str], prompt: str) -> None:
        self.placeholders = placeholders
        self.prompt = prompt
        super().__init__(f"Unresolved placeholders in prompt: {placeholders}")


class GenerationAbortedError(DeferredGenerationError):
    """Raised when a streaming call is stopped through its abort event."""
