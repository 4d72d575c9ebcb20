"""chat_relay - Routing and streaming core for multi-provider chat.

This package provides tools for:
- Classifying prompts and selecting a model by task, tier and availability
- Splitting oversized prompts along paragraph and sentence boundaries
- Streaming from OpenAI, Anthropic, Gemini, Mistral and Ollama through one adapter interface
- Driving a per-response state machine and persisting settled chats

Example usage:
    from chat_relay import ChatRelay, MongoChatRepository, SubscriptionTier

    # Simple usage - config loaded from .env automatically
    async with ChatRelay(storage_class=MongoChatRepository) as relay:
        chat = await relay.new_chat("user-1")
        async for event in relay.send_message(chat, "Summarize this", SubscriptionTier.PRO):
            print(event.to_sse())
"""

__version__ = "0.1.0"

# Implementations
from chat_relay.infra.credentials import InMemoryCredentialSource, SettingsCredentialSource
from chat_relay.infra.mongo.repositories import MongoChatRepository

# Interfaces
from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.interfaces.storage import ChatStorageInterface

# Models
from chat_relay.models.catalog import ModelInfo, SubscriptionTier, TaskCategory
from chat_relay.models.routing import RouterInput, RouterOutput
from chat_relay.models.stream import StreamEvent, StreamEventType, TextDelta

# Providers
from chat_relay.providers.base import ProviderAdapter
from chat_relay.providers.registry import ProviderRegistry

# Facade
from chat_relay.relay import ChatRelay

# Services
from chat_relay.services.availability import AvailabilityOracle
from chat_relay.services.catalog import ModelCatalog
from chat_relay.services.selector import ModelSelector

__all__ = [  # noqa: RUF022
    # Facade
    "ChatRelay",
    # Services
    "AvailabilityOracle",
    "ModelCatalog",
    "ModelSelector",
    "ProviderRegistry",
    # Implementations
    "InMemoryCredentialSource",
    "MongoChatRepository",
    "SettingsCredentialSource",
    # Interfaces
    "ChatStorageInterface",
    "CredentialSource",
    "ProviderAdapter",
    # Models
    "ModelInfo",
    "RouterInput",
    "RouterOutput",
    "StreamEvent",
    "StreamEventType",
    "SubscriptionTier",
    "TaskCategory",
    "TextDelta",
]
