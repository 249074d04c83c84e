"""Prompt splitting and placeholder substitution."""

import json
import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from deferred_ai.configs.defaults import PLACEHOLDER_PATTERN

_VARIABLE_PATTERN = re.compile(r"{([a-zA-Z_][a-zA-Z0-9_]*)}")
_PLACEHOLDER = re.compile(PLACEHOLDER_PATTERN)


class SafeFormatter:
    """Splits ``{name}`` format strings without raising on missing keys."""

    def __init__(self, format_dict: Optional[Dict[str, Any]] = None):
        """Initialize SafeFormatter with an optional format dictionary."""
        self.format_dict = format_dict or {}

    def split(self, format_string: str) -> Tuple[List[str], List[Any]]:
        """Split a format string into literal fragments and the values between them.

        Variables with no entry in the format dictionary stay in the literal
        text, so ``len(fragments) == len(values) + 1`` always holds.

        Examples:
            ```python
            >>> SafeFormatter({"who": "world"}).split("Hello {who}, {missing}!")
            (['Hello ', ', {missing}!'], ['world'])

            ```
        """
        fragments: List[str] = []
        values: List[Any] = []
        current = ""
        position = 0
        for match in _VARIABLE_PATTERN.finditer(format_string):
            current += format_string[position : match.start()]
            key = match.group(1)
            if key in self.format_dict:
                fragments.append(current)
                values.append(self.format_dict[key])
                current = ""
            else:
                current += match.group(0)
            position = match.end()
        fragments.append(current + format_string[position:])
        return fragments, values


def to_prompt_string(value: Any) -> str:
    """Render a value the way it is spliced into a prompt.

    Examples:
        ```python
        >>> to_prompt_string(True), to_prompt_string(None), to_prompt_string(["a", "b"])
        ('true', '', 'a, b')

        ```
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(to_prompt_string(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(dict(value), default=str)
    return str(value)


def substitute_placeholders(prompt: str, values: Mapping[str, Any]) -> str:
    """Replace every ``${key}`` token with the prompt string of its value.

    Tokens without a value are left untouched.

    Examples:
        ```python
        >>> substitute_placeholders("Hello ${dep_0} and ${dep_1}", {"dep_0": "World"})
        'Hello World and ${dep_1}'

        ```
    """
    for key, value in values.items():
        prompt = prompt.replace("${" + key + "}", to_prompt_string(value))
    return prompt


def find_placeholders(prompt: str) -> List[str]:
    """Return the ``${...}`` tokens still present in ``prompt``."""
    return _PLACEHOLDER.findall(prompt)
