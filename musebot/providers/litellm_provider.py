"""LiteLLM provider: a single ``litellm.acompletion()`` layer.

Passes ``api_key`` directly to litellm, no env var setup needed.
"""

from typing import Any

import litellm
from litellm import acompletion

from musebot.errors import ProviderCallError
from musebot.providers.base import LLMResponse


class LiteLLMProvider:
    """LLM access for the decision oracle."""

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4",
    ):
        self.api_key = api_key
        self.api_base = api_base
        self.default_model = default_model
        litellm.suppress_debug_info = True

    @classmethod
    def from_config(cls, config: Any) -> "LiteLLMProvider":
        return cls(
            api_key=config.get_api_key(),
            api_base=config.get_api_base(),
            default_model=config.agent.model,
        )

    def get_default_model(self) -> str:
        return self.default_model

    def _kwargs(
        self,
        model: str,
        messages: list[dict[str, Any]],
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        """Build kwargs for litellm.acompletion()."""
        kw: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if self.api_key:
            kw["api_key"] = self.api_key
        if self.api_base:
            kw["api_base"] = self.api_base
        return kw

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Send a chat completion request."""
        kw = self._kwargs(model or self.default_model, messages, max_tokens, temperature)
        try:
            return self._parse(await acompletion(**kw))
        except Exception as e:
            raise ProviderCallError(str(e)) from e

    def _parse(self, response: Any) -> LLMResponse:
        choice = response.choices[0]
        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return LLMResponse(
            content=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )
