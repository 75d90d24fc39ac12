"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentDefaults(BaseModel):
    """Default agent configuration."""
    model: str = "gpt-4"
    temperature: float = 0.7
    max_tokens: int = 1000
    sleep_interval: float = Field(default=15.0, ge=0.0, description="Seconds to sleep between cycles")
    max_actions_per_cycle: int = Field(default=1, ge=1, le=20)
    action_delay: float = Field(default=0.5, ge=0.0, description="Pause between actions within a cycle")
    autonomous_mode: bool = False
    consolidation_probability: float = Field(default=0.1, ge=0.0, le=1.0)


class SandboxConfig(BaseModel):
    """Sandboxed workspace configuration."""
    root: str = "./sandbox"
    max_file_size: int = Field(default=10 * 1024 * 1024, ge=1)
    command_timeout: float = Field(default=5.0, gt=0.0)
    max_output_bytes: int = Field(default=1024 * 1024, ge=1)
    max_walk_depth: int = Field(default=32, ge=1)


class MemoryConfig(BaseModel):
    """Memory store configuration."""
    root: str = "./memory"
    session_high_water: int = Field(default=50, ge=1)
    session_low_water: int = Field(default=30, ge=1)
    experience_high_water: int = Field(default=200, ge=1)
    experience_low_water: int = Field(default=150, ge=1)
    archive_high_water: int = Field(default=100, ge=1)
    archive_low_water: int = Field(default=80, ge=1)
    max_active_projects: int = Field(default=2, ge=1)


class PostingConfig(BaseModel):
    """External posting (rate-gated) configuration."""
    enabled: bool = False
    api_key: str = ""  # TwitterAPI.io API key
    auth_session: str = ""  # Issued by the login flow, opaque here
    proxy: str = ""
    base_url: str = "https://api.twitterapi.io"
    min_interval: float = Field(default=1800.0, ge=0.0, description="Seconds between posts")
    daily_limit: int = Field(default=10, ge=0)
    max_length: int = Field(default=280, ge=10)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.auth_session and self.proxy)


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""
    model_config = ConfigDict(extra="ignore")  # Allow unknown fields for backwards compat

    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)


class Config(BaseSettings):
    """Root configuration for musebot."""
    model_config = SettingsConfigDict(env_prefix="MUSEBOT_", env_nested_delimiter="__")

    agent: AgentDefaults = Field(default_factory=AgentDefaults)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    posting: PostingConfig = Field(default_factory=PostingConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)

    @property
    def sandbox_path(self) -> Path:
        """Get expanded sandbox root path."""
        return Path(self.sandbox.root).expanduser()

    @property
    def memory_path(self) -> Path:
        """Get expanded memory root path."""
        return Path(self.memory.root).expanduser()

    def get_api_key(self) -> str | None:
        """Get API key in priority order: OpenRouter > Anthropic > OpenAI."""
        return (
            self.providers.openrouter.api_key or
            self.providers.anthropic.api_key or
            self.providers.openai.api_key or
            None
        )

    def get_api_base(self) -> str | None:
        """Get API base URL if one is configured."""
        if self.providers.openrouter.api_key:
            return self.providers.openrouter.api_base or "https://openrouter.ai/api/v1"
        return self.providers.anthropic.api_base or self.providers.openai.api_base
