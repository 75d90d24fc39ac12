"""Provider data types."""

from dataclasses import dataclass, field


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)
