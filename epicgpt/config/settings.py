"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotSettings(BaseSettings):
    """Discord bot configuration."""

    name: str = Field(default="EpicGPT", description="Bot display name")
    token: str = Field(default="", description="Discord bot token")
    allowed_channel_ids: list[int] = Field(
        default_factory=list,
        description="If non-empty, bot only responds in these channel IDs. "
                    "Set via BOT__ALLOWED_CHANNEL_IDS='[123456,789012]'",
    )
    dev_guild_id: int | None = Field(
        default=None,
        description="If set, syncs slash commands to this guild instantly (dev mode). "
                    "If None, syncs globally (up to 1 hour propagation).",
    )
    admin_role_id: int | None = Field(
        default=None,
        description="Role allowed to run knowledge base commands in addition to "
                    "members with the 'Manage Server' permission.",
    )
    color: int = Field(default=0x7C3AED, description="Embed accent color")
    footer: str = Field(default="Powered by Epicentral Labs", description="Embed footer text")


class LLMSettings(BaseSettings):
    """LLM API configuration."""

    model: str = Field(
        default="openai/gpt-5-mini",
        description="LiteLLM model string, e.g. 'openai/gpt-5-mini', 'openai/gpt-4.1'. "
                    "The provider prefix tells LiteLLM which API to route the request to.",
    )
    max_tokens: int = Field(default=2048, description="Maximum tokens in response")
    temperature: float = Field(default=1.0, description="Sampling temperature")
    api_key: str = Field(default="", description="API key for the model's provider")
    prompt_cache_retention: Literal["in_memory", "24h"] = Field(
        default="24h",
        description="Prompt cache retention. '24h' is only sent to models that support it.",
    )
    max_tool_rounds: int = Field(
        default=5,
        ge=0,
        description="Tool-call rounds allowed per run before a final tool-free call is forced",
    )
    request_timeout: float = Field(
        default=120.0, description="Timeout in seconds for a single completion call"
    )

    model_config = SettingsConfigDict(env_prefix="LLM_")


class KnowledgeBaseSettings(BaseSettings):
    """Knowledge base (OpenAI vector store) configuration."""

    api_key: str = Field(
        default="",
        description="OpenAI API key for vector stores. Falls back to LLM__API_KEY when empty.",
    )
    assistant_model: str = Field(
        default="gpt-4.1-2025-04-14",
        description="Model used by the temporary file_search assistant",
    )
    search_timeout: float = Field(
        default=45.0, description="Overall timeout in seconds for one knowledge base search"
    )
    poll_interval: float = Field(default=1.0, description="Seconds between run status polls")
    max_poll_attempts: int = Field(default=30, description="Run status polls before giving up")
    supported_file_types: list[str] = Field(
        default_factory=lambda: [".pdf", ".md", ".txt", ".docx"],
        description="File extensions accepted by /kb_add_file",
    )
    max_file_size_mb: int = Field(default=25, description="Largest accepted upload")
    fetch_timeout: float = Field(default=30.0, description="Timeout in seconds for fetching a URL")
    min_content_length: int = Field(
        default=100, ge=1, description="Shortest page text accepted by /kb_add_url"
    )

    model_config = SettingsConfigDict(env_prefix="KB_")


class SessionSettings(BaseSettings):
    """Conversation memory configuration."""

    db_path: str = Field(default="data/epicgpt.db", description="SQLite database path")
    ttl_seconds: int = Field(default=3600, description="Session lifetime after last save")
    max_messages: int = Field(
        default=10, ge=1, description="Most-recent turns kept in context and in storage"
    )
    cleanup_interval: float = Field(
        default=300.0, description="Seconds between expired-session sweeps"
    )

    model_config = SettingsConfigDict(env_prefix="SESSION_")


class RateLimitSettings(BaseSettings):
    """Per-user sliding window limits for each operation class."""

    chat_max_requests: int = Field(default=10, description="/chat requests per window")
    chat_window_seconds: float = Field(default=10.0, description="/chat window length")
    search_max_requests: int = Field(default=10, description="/search requests per window")
    search_window_seconds: float = Field(default=10.0, description="/search window length")
    tools_max_requests: int = Field(default=30, description="Tool invocations per window")
    tools_window_seconds: float = Field(default=60.0, description="Tool window length")
    cleanup_interval: float = Field(
        default=60.0, description="Seconds between sweeps of empty rate limit entries"
    )

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_")


class ToolSettings(BaseSettings):
    """External tool configuration."""

    serper_api_key: str = Field(default="", description="Serper.dev API key for web search")
    birdeye_api_key: str = Field(default="", description="Birdeye API key for token prices")
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com", description="Solana JSON-RPC endpoint"
    )
    web_search_max_results: int = Field(default=5, description="Results requested per search")
    web_search_timeout: float = Field(
        default=20.0, description="Overall timeout in seconds for one web search"
    )
    http_timeout: float = Field(default=15.0, description="Timeout for tool HTTP requests")

    model_config = SettingsConfigDict(env_prefix="TOOL_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    bot: BotSettings = Field(default_factory=BotSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    kb: KnowledgeBaseSettings = Field(default_factory=KnowledgeBaseSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
