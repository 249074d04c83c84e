"""Build prompts from templates, tracking interpolated generations as dependencies."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple

from deferred_ai.promise.deferred import Dependency
from deferred_ai.promise.proxy import get_raw, is_deferred
from deferred_ai.prompts.utils import SafeFormatter, to_prompt_string

__all__ = ["ParsedTemplate", "parse_template", "parse_format_string", "parse_prompt"]


class ParsedTemplate(NamedTuple):
    """Prompt text with ``${dep_<i>}`` placeholders and the generations they stand for."""

    prompt: str
    dependencies: list[Dependency]


def parse_template(strings: Sequence[str], *values: Any) -> ParsedTemplate:
    """Interleave literal fragments with values.

    A deferred value is not inlined: it becomes a dependency keyed
    ``dep_<i>``, ``i`` being its position among the values, and the
    placeholder ``${dep_<i>}`` is spliced in. Every other value is inlined in
    its prompt string form.

    Args:
        strings (Sequence[str]): Literal fragments, one more than ``values``.
        *values: Values interpolated between the fragments.

    Returns:
        ParsedTemplate: The prompt and its dependencies in order.

    Raises:
        ValueError: If the fragment count does not match the value count.

    Examples:
        ```python
        >>> from deferred_ai.promise.deferred import DeferredGeneration
        >>> topic = DeferredGeneration("Pick a topic")
        >>> parsed = parse_template(["Write about ", " in ", " words"], topic, 100)
        >>> parsed.prompt
        'Write about ${dep_0} in 100 words'
        >>> [dependency.key for dependency in parsed.dependencies]
        ['dep_0']

        ```
    """
    strings = list(strings)
    if len(strings) != len(values) + 1:
        raise ValueError(
            f"Expected {len(values) + 1} template fragments for {len(values)} values, "
            f"got {len(strings)}"
        )

    parts = [strings[0]]
    dependencies: list[Dependency] = []
    for index, (value, literal) in enumerate(zip(values, strings[1:])):
        if is_deferred(value):
            generation = get_raw(value)
            key = f"dep_{index}"
            dependencies.append(Dependency(generation, generation.path, key))
            parts.append("${" + key + "}")
        else:
            parts.append(to_prompt_string(value))
        parts.append(literal)
    return ParsedTemplate("".join(parts), dependencies)


def parse_format_string(template: str, values: Mapping[str, Any]) -> ParsedTemplate:
    """Parse a ``{name}`` format string; names without a value stay as text.

    Examples:
        ```python
        >>> parse_format_string("Compare {a} with {b}", {"a": "tea", "b": "coffee"}).prompt
        'Compare tea with coffee'

        ```
    """
    fragments, interpolated = SafeFormatter(dict(values)).split(template)
    return parse_template(fragments, *interpolated)


def _is_template_string(value: Any) -> bool:
    return hasattr(value, "strings") and hasattr(value, "interpolations")


def parse_prompt(
    prompt: Any,
    values: Sequence[Any] = (),
    format_values: Mapping[str, Any] | None = None,
) -> ParsedTemplate:
    """Accept any supported prompt form and return the parsed template.

    Supported forms are a plain or ``{name}`` format string, a sequence of
    literal fragments used with positional ``values`` and a template-string
    object exposing ``strings`` and ``interpolations``.

    Raises:
        TypeError: If positional values are given with a plain string, or the
            prompt has an unsupported type.
    """
    format_values = format_values or {}
    if isinstance(prompt, str):
        if values:
            raise TypeError(
                "Positional values need a sequence of template fragments, not a string"
            )
        return parse_format_string(prompt, format_values)
    if is_deferred(prompt):
        raise TypeError("A deferred generation cannot be used as a prompt template")
    if _is_template_string(prompt):
        if values:
            raise TypeError("Positional values cannot be combined with a template string")
        interpolations = [item.value for item in prompt.interpolations]
        return parse_template(prompt.strings, *interpolations)
    if isinstance(prompt, Sequence) and all(isinstance(part, str) for part in prompt):
        return parse_template(prompt, *values)
    raise TypeError(f"Unsupported prompt type: {type(prompt).__name__}")
