"""Helpers for extracting structured data from LLM text.

This module parses JSON embedded in model outputs and defines the exception
raised when nothing usable can be recovered.
"""

from typing import Any

import yaml

from deferred_ai.utils.schemas import JsonParser, marshal_llm_to_json

__all__ = ["OutputParserException", "parse_json_markdown"]


class OutputParserException(Exception):
    """Exception raised for errors encountered during output parsing."""

    pass


def parse_json_markdown(text: str) -> Any:
    r"""Parse a JSON object/array embedded in fenced markdown.

    If the text contains a fenced block marked as JSON (```json), the content
    of that block is parsed. Otherwise, the function attempts to extract the
    first JSON object/array substring and deserialize it, falling back to a
    lenient YAML parse for slightly invalid JSON.

    Raises:
        OutputParserException: If neither JSON nor YAML parsing succeeds.
    """
    if "```json" in text:
        text = text.split("```json", 1)[1].strip()
        while text.startswith("```"):
            text = text.removeprefix("```").lstrip()
        while text.endswith("```"):
            text = text.removesuffix("```").rstrip()

    json_string = marshal_llm_to_json(text)

    try:
        json_obj = JsonParser.parse(json_string)
    except ValueError as e_json:
        try:
            json_obj = yaml.safe_load(json_string)
        except yaml.YAMLError as e_yaml:
            raise OutputParserException(
                f"Got invalid JSON object. Error: {e_json} {e_yaml}. "
                f"Got JSON string: {json_string}"
            ) from e_yaml
        if not isinstance(json_obj, (dict, list)):
            raise OutputParserException(
                f"Got invalid JSON object. Error: {e_json}. Got JSON string: {json_string}"
            ) from e_json

    return json_obj
