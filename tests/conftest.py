"""Shared test fixtures for chat_relay.

This module provides pytest fixtures used across all tests.
"""

from unittest.mock import AsyncMock

import pytest

from chat_relay.config import RelayConfig
from chat_relay.domain.chat import Chat
from chat_relay.domain.message import Message
from chat_relay.infra.credentials import InMemoryCredentialSource
from chat_relay.models.catalog import ModelInfo, SubscriptionTier, TaskCategory
from chat_relay.models.message import MessageRole
from chat_relay.providers.registry import ProviderRegistry
from chat_relay.relay import ChatRelay
from chat_relay.services.availability import AvailabilityOracle
from chat_relay.services.catalog import ModelCatalog
from tests.mocks.mock_provider import ScriptedAdapter

OPENAI_KEY = "sk-test-openai-0123456789"
ANTHROPIC_KEY = "sk-ant-test-0123456789"


# Mock fixtures
@pytest.fixture
def mock_storage() -> AsyncMock:
    """Create mock chat storage."""
    storage = AsyncMock()
    storage.get_chat.return_value = None
    storage.create_chat.return_value = "test-chat-id"
    storage.delete_chat.return_value = True
    storage.find_chats_by_owner.return_value = []
    return storage


@pytest.fixture
def credentials() -> InMemoryCredentialSource:
    """Credentials for OpenAI and Anthropic only."""
    return InMemoryCredentialSource({"openai": OPENAI_KEY, "anthropic": ANTHROPIC_KEY})


@pytest.fixture
def oracle(credentials: InMemoryCredentialSource) -> AvailabilityOracle:
    """Availability oracle with the local provider disabled."""
    return AvailabilityOracle(credentials, local_base_url=None)


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig(persist_debounce_seconds=0.01)


# Sample data fixtures
@pytest.fixture
def small_catalog() -> ModelCatalog:
    """Catalog with two free models of different providers and one pro model."""
    return ModelCatalog(
        [
            ModelInfo(
                id="alpha-free",
                name="Alpha Free",
                provider="alpha",
                capabilities=(TaskCategory.GENERAL, TaskCategory.CODING),
                tier=SubscriptionTier.FREE,
                max_tokens=4096,
            ),
            ModelInfo(
                id="beta-free",
                name="Beta Free",
                provider="beta",
                capabilities=(TaskCategory.GENERAL, TaskCategory.CODING),
                tier=SubscriptionTier.FREE,
                max_tokens=4096,
            ),
            ModelInfo(
                id="beta-pro",
                name="Beta Pro",
                provider="beta",
                capabilities=tuple(TaskCategory),
                tier=SubscriptionTier.PRO,
                max_tokens=8192,
                supports_images=True,
            ),
        ]
    )


@pytest.fixture
def default_catalog() -> ModelCatalog:
    return ModelCatalog()


@pytest.fixture
def sample_chat() -> Chat:
    """Chat with one completed exchange."""
    chat = Chat(owner_id="user-1")
    chat.append(Message(role=MessageRole.USER, content="How do I reverse a list in Python?"))
    chat.append(
        Message(
            role=MessageRole.ASSISTANT,
            content="Use reversed() or slicing with [::-1].",
            model_id="gpt-3.5-turbo",
        )
    )
    return chat


@pytest.fixture
def alpha_adapter() -> ScriptedAdapter:
    return ScriptedAdapter("alpha", ["Hello", ", ", "world"])


@pytest.fixture
def beta_adapter() -> ScriptedAdapter:
    return ScriptedAdapter("beta", ["Beta says hi"], supports_images=True)


@pytest.fixture
def scripted_relay(
    small_catalog: ModelCatalog,
    alpha_adapter: ScriptedAdapter,
    beta_adapter: ScriptedAdapter,
    relay_config: RelayConfig,
    mock_storage: AsyncMock,
) -> ChatRelay:
    """Relay over the small catalog where only the alpha provider is available."""
    credentials = InMemoryCredentialSource({"alpha": "alpha-key-0123456789"})
    return ChatRelay(
        config=relay_config,
        credentials=credentials,
        catalog=small_catalog,
        registry=ProviderRegistry([alpha_adapter, beta_adapter]),
        oracle=AvailabilityOracle(
            credentials, hosted_providers=("alpha", "beta"), local_base_url=None
        ),
        storage=mock_storage,
    )
