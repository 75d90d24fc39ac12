"""LLM provider module."""

from musebot.providers.base import LLMResponse
from musebot.providers.litellm_provider import LiteLLMProvider

__all__ = ["LLMResponse", "LiteLLMProvider"]
