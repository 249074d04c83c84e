"""Concrete LLM implementations."""

from deferred_ai.llms.custom import CustomLLM
from deferred_ai.llms.mock import MockLLM

__all__ = ["CustomLLM", "MockLLM"]
