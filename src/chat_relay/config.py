"""Configuration management for chat_relay.

This module provides typed configuration classes using pydantic-settings.
Configuration is loaded from environment variables with optional .env file support.
"""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "AnthropicSettings",
    "GoogleSettings",
    "MistralSettings",
    "MongoSettings",
    "OllamaSettings",
    "OpenAISettings",
    "RelayConfig",
]


class OpenAISettings(BaseSettings):
    """OpenAI provider settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_OPENAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: SecretStr | None = None
    base_url: str | None = None


class AnthropicSettings(BaseSettings):
    """Anthropic provider settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_ANTHROPIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: SecretStr | None = None
    max_tokens: int = 4096


class GoogleSettings(BaseSettings):
    """Google Gemini provider settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_GOOGLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: SecretStr | None = None


class MistralSettings(BaseSettings):
    """Mistral provider settings.

    Mistral exposes an OpenAI-compatible chat endpoint, reached over httpx.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_MISTRAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: SecretStr | None = None
    base_url: str = "https://api.mistral.ai/v1"
    max_tokens: int = 2048


class OllamaSettings(BaseSettings):
    """Locally-hosted Ollama settings.

    Ollama needs no credential; its availability is a liveness probe
    against base_url bounded by probe_timeout seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_OLLAMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = "http://localhost:11434"
    probe_timeout: float = 2.0
    enabled: bool = True


class MongoSettings(BaseSettings):
    """MongoDB connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_MONGO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    uri: SecretStr = SecretStr("mongodb://localhost:27017")
    database: str = "chat_relay"
    collection_prefix: str = ""
    server_selection_timeout_ms: int = 5000


class RelayConfig(BaseSettings):
    """Main configuration aggregating all settings.

    Example usage:
        config = RelayConfig()
        timeout = config.ollama.probe_timeout
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Component settings (nested)
    openai: OpenAISettings = OpenAISettings()
    anthropic: AnthropicSettings = AnthropicSettings()
    google: GoogleSettings = GoogleSettings()
    mistral: MistralSettings = MistralSettings()
    ollama: OllamaSettings = OllamaSettings()
    mongo: MongoSettings = MongoSettings()

    # Credential validity
    min_credential_length: int = 8

    # Streaming
    default_temperature: float = 0.7
    request_timeout: float = 120.0

    # Chat bookkeeping
    persist_debounce_seconds: float = 2.0
    default_chat_title: str = "New Chat"
    max_cached_chats: int = 256

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
