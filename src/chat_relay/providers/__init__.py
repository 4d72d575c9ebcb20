"""Provider streaming adapters for chat_relay."""

from chat_relay.providers.anthropic import AnthropicAdapter
from chat_relay.providers.base import ProviderAdapter, StreamItem
from chat_relay.providers.google import GoogleAdapter
from chat_relay.providers.mistral import MistralAdapter
from chat_relay.providers.ollama import OllamaAdapter
from chat_relay.providers.openai import OpenAIAdapter
from chat_relay.providers.registry import ProviderRegistry

__all__ = [
    "AnthropicAdapter",
    "GoogleAdapter",
    "MistralAdapter",
    "OllamaAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "ProviderRegistry",
    "StreamItem",
]
