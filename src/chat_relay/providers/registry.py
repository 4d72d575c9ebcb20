"""Provider adapter registry for chat_relay.

Adapters are looked up by the explicit provider key stored on each
catalog model.
"""

from collections.abc import Iterable
from typing import Self

from chat_relay.config import RelayConfig
from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.providers.base import ProviderAdapter

__all__ = [
    "ProviderRegistry",
]


class ProviderRegistry:
    """Registry of provider adapter instances.

    Example:
        registry = ProviderRegistry()
        registry.register(OllamaAdapter(OllamaSettings()))
        adapter = registry.get("ollama")
    """

    def __init__(self, adapters: Iterable[ProviderAdapter] = ()) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    @classmethod
    def from_config(cls, config: RelayConfig, credentials: CredentialSource) -> Self:
        """Build a registry holding the five built-in adapters.

        Args:
            config: Relay configuration
            credentials: Credential source shared with the availability oracle

        Returns:
            ProviderRegistry instance
        """
        from chat_relay.providers.anthropic import AnthropicAdapter
        from chat_relay.providers.google import GoogleAdapter
        from chat_relay.providers.mistral import MistralAdapter
        from chat_relay.providers.ollama import OllamaAdapter
        from chat_relay.providers.openai import OpenAIAdapter

        return cls(
            [
                OpenAIAdapter(config.openai, credentials, timeout=config.request_timeout),
                AnthropicAdapter(config.anthropic, credentials, timeout=config.request_timeout),
                GoogleAdapter(config.google, credentials),
                MistralAdapter(config.mistral, credentials, timeout=config.request_timeout),
                OllamaAdapter(config.ollama, timeout=config.request_timeout),
            ]
        )

    def register(self, adapter: ProviderAdapter) -> ProviderAdapter:
        """Register an adapter.

        Raises:
            ValueError: If an adapter is already registered for the provider
        """
        name = adapter.provider_name
        if name in self._adapters:
            raise ValueError(f"Adapter already registered for provider: {name}")
        self._adapters[name] = adapter
        return adapter

    def get(self, provider: str) -> ProviderAdapter:
        """Get the adapter for a provider.

        Raises:
            KeyError: If no adapter is registered for the provider
        """
        if provider not in self._adapters:
            available = ", ".join(self._adapters) or "none"
            raise KeyError(
                f"No adapter registered for provider: {provider}. Available: {available}"
            )
        return self._adapters[provider]

    def list_providers(self) -> list[str]:
        return list(self._adapters)

    def is_registered(self, provider: str) -> bool:
        return provider in self._adapters

    def __contains__(self, provider: object) -> bool:
        return provider in self._adapters
