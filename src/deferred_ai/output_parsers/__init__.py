"""Utilities for parsing LLM outputs."""

from deferred_ai.output_parsers.utils import OutputParserException, parse_json_markdown

__all__ = ["OutputParserException", "parse_json_markdown"]
