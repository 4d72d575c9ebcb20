"""Credential sources for chat_relay.

SettingsCredentialSource reads credentials from pydantic-settings on
every lookup so environment changes are picked up at runtime.
"""

from collections.abc import Callable, Mapping

from pydantic import SecretStr
from pydantic_settings import BaseSettings

from chat_relay.config import AnthropicSettings, GoogleSettings, MistralSettings, OpenAISettings

__all__ = [
    "InMemoryCredentialSource",
    "SettingsCredentialSource",
]

_SETTINGS_BY_PROVIDER: dict[str, Callable[[], BaseSettings]] = {
    "openai": OpenAISettings,
    "anthropic": AnthropicSettings,
    "google": GoogleSettings,
    "mistral": MistralSettings,
}


class SettingsCredentialSource:
    """Credential source backed by environment variables and ``.env``.

    Settings are instantiated per call; nothing is cached.
    """

    def __init__(
        self,
        settings_factories: Mapping[str, Callable[[], BaseSettings]] | None = None,
    ) -> None:
        self._factories = dict(settings_factories or _SETTINGS_BY_PROVIDER)

    def get_credential(self, provider: str) -> str | None:
        factory = self._factories.get(provider)
        if factory is None:
            return None
        api_key = getattr(factory(), "api_key", None)
        if isinstance(api_key, SecretStr):
            return api_key.get_secret_value()
        return api_key


class InMemoryCredentialSource:
    """Mutable credential source, for runtime key entry and tests."""

    def __init__(self, credentials: Mapping[str, str] | None = None) -> None:
        self._credentials: dict[str, str] = dict(credentials or {})

    def get_credential(self, provider: str) -> str | None:
        return self._credentials.get(provider)

    def set_credential(self, provider: str, secret: str | None) -> None:
        """Set or clear (``None``) the credential of a provider."""
        if secret is None:
            self._credentials.pop(provider, None)
        else:
            self._credentials[provider] = secret
