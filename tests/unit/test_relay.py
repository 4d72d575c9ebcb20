"""Unit tests for the ChatRelay facade."""

import asyncio
from contextlib import aclosing
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from chat_relay.config import RelayConfig
from chat_relay.domain.chat import Chat
from chat_relay.errors import ModelNotFound, UpstreamRateLimited, UpstreamTransportError
from chat_relay.infra.credentials import InMemoryCredentialSource
from chat_relay.models.catalog import SubscriptionTier
from chat_relay.models.message import ImageAttachment, MessageRole
from chat_relay.models.stream import StreamEvent, StreamEventType
from chat_relay.providers.registry import ProviderRegistry
from chat_relay.relay import ChatRelay
from chat_relay.services.aggregator import StreamState
from chat_relay.services.availability import AvailabilityOracle
from chat_relay.services.catalog import ModelCatalog
from tests.mocks.mock_provider import ScriptedAdapter

IMAGE = ImageAttachment(data="aGVsbG8=", media_type="image/png")


def build_relay(
    catalog: ModelCatalog,
    storage: AsyncMock | None,
    adapters: list[ScriptedAdapter],
    credentials: dict[str, str] | None = None,
    max_cached_chats: int = 256,
) -> ChatRelay:
    source = InMemoryCredentialSource(credentials or {"alpha": "alpha-key-0123456789"})
    return ChatRelay(
        config=RelayConfig(persist_debounce_seconds=0.01, max_cached_chats=max_cached_chats),
        credentials=source,
        catalog=catalog,
        registry=ProviderRegistry(adapters),
        oracle=AvailabilityOracle(
            source, hosted_providers=("alpha", "beta"), local_base_url=None
        ),
        storage=storage,
    )


async def collect(relay: ChatRelay, chat: Chat, prompt: str, **kwargs: Any) -> list[StreamEvent]:
    stream = relay.send_message(chat, prompt, SubscriptionTier.FREE, **kwargs)
    return [event async for event in stream]


def event_types(events: list[StreamEvent]) -> list[StreamEventType]:
    return [e.event for e in events]


class TestSendMessage:
    """Tests for the streaming happy path."""

    @pytest.mark.asyncio
    async def test_events_and_final_message(
        self, scripted_relay: ChatRelay, alpha_adapter: ScriptedAdapter
    ) -> None:
        async with scripted_relay as relay:
            chat = await relay.new_chat("user-1")
            events = await collect(relay, chat, "Hello there")

        assert event_types(events) == [
            StreamEventType.METADATA,
            StreamEventType.CHUNK,
            StreamEventType.CHUNK,
            StreamEventType.CHUNK,
            StreamEventType.USAGE,
            StreamEventType.DONE,
        ]
        metadata = events[0].data
        assert metadata["model_id"] == "alpha-free"
        assert metadata["provider"] == "alpha"
        assert metadata["task"] == "general"
        assert metadata["substituted"] is False
        assert "".join(e.data["text"] for e in events[1:4]) == "Hello, world"
        assert events[4].data["total_tokens"] == (
            events[4].data["prompt_tokens"] + events[4].data["completion_tokens"]
        )
        assert events[-1].data["state"] == "completed"
        assert events[-1].data["title"] == "Hello there"

        user, assistant = chat.messages
        assert user.role == MessageRole.USER
        assert assistant.role == MessageRole.ASSISTANT
        assert assistant.content == "Hello, world"
        assert assistant.loading is False
        assert assistant.model_id == "alpha-free"
        assert assistant.usage is not None

        sent = alpha_adapter.calls[0]
        assert [m.content for m in sent["messages"]] == ["Hello there"]
        assert sent["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_persists_created_and_final_chat(
        self, scripted_relay: ChatRelay, mock_storage: AsyncMock
    ) -> None:
        async with scripted_relay as relay:
            chat = await relay.new_chat("user-1")
            await collect(relay, chat, "Hello there")

        mock_storage.create_chat.assert_awaited_once()
        final = mock_storage.update_chat.call_args.args[0]
        assert final.title == "Hello there"
        assert final.messages[-1].content == "Hello, world"
        assert final.messages[-1].loading is False

    @pytest.mark.asyncio
    async def test_title_derived_once(self, scripted_relay: ChatRelay) -> None:
        async with scripted_relay as relay:
            chat = await relay.new_chat("user-1")
            await collect(relay, chat, "First question about lists and tuples")
            await collect(relay, chat, "Second question")

        assert chat.title == "First question about lists and..."
        assert len(chat.messages) == 4

    @pytest.mark.asyncio
    async def test_observer_sees_states(self, scripted_relay: ChatRelay) -> None:
        states: list[StreamState] = []

        async with scripted_relay as relay:
            chat = await relay.new_chat("user-1")
            await collect(
                relay, chat, "Hello", observer=lambda message, state: states.append(state)
            )

        assert states[0] == StreamState.STREAMING
        assert states[-1] == StreamState.COMPLETED

    @pytest.mark.asyncio
    async def test_explicit_temperature(
        self, scripted_relay: ChatRelay, alpha_adapter: ScriptedAdapter
    ) -> None:
        chat = await scripted_relay.new_chat("user-1")
        await collect(scripted_relay, chat, "Hello", temperature=0.1)

        assert alpha_adapter.calls[0]["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_works_without_storage(self, small_catalog: ModelCatalog) -> None:
        relay = build_relay(small_catalog, None, [ScriptedAdapter("alpha", ["ok"])])

        async with relay:
            chat = await relay.new_chat("user-1")
            events = await collect(relay, chat, "Hello")

        assert events[-1].data["state"] == "completed"

    @pytest.mark.asyncio
    async def test_segmented_prompt(
        self, scripted_relay: ChatRelay, alpha_adapter: ScriptedAdapter
    ) -> None:
        prompt = "\n\n".join(letter * 5000 for letter in "abc")

        async with scripted_relay as relay:
            chat = await relay.new_chat("user-1")
            events = await collect(relay, chat, prompt)

        assert events[0].data["segments"] == 3
        assert len(alpha_adapter.calls) == 3
        for index, call in enumerate(alpha_adapter.calls, start=1):
            assert call["messages"][-1].content.startswith(f"Part {index} of 3:\n\n")
        assert chat.messages[-1].content == "\n\n".join(["Hello, world"] * 3)
        usage = next(e for e in events if e.event == StreamEventType.USAGE)
        assert usage.data["completion_tokens"] == 9


class TestRoutingFailures:
    """Tests for failures raised before any upstream call."""

    @pytest.mark.asyncio
    async def test_unavailable_provider_suggests_alternative(
        self, scripted_relay: ChatRelay, beta_adapter: ScriptedAdapter
    ) -> None:
        async with scripted_relay as relay:
            chat = await relay.new_chat("user-1")
            events = await collect(relay, chat, "Hello", model_id="beta-free")

        assert event_types(events) == [StreamEventType.ERROR, StreamEventType.DONE]
        error = events[0].data
        assert error["type"] == "ProviderUnavailable"
        assert "beta" in error["message"]
        assert "alpha-free" in error["message"]
        assert events[-1].data["state"] == "failed"
        assert chat.messages[-1].role == MessageRole.ERROR
        assert chat.messages[-1].loading is False
        assert beta_adapter.calls == []

    @pytest.mark.asyncio
    async def test_images_not_supported(self, scripted_relay: ChatRelay) -> None:
        async with scripted_relay as relay:
            chat = await relay.new_chat("user-1")
            events = await collect(relay, chat, "What is this?", images=[IMAGE])

        assert events[0].data["type"] == "ImagesNotSupported"
        assert chat.title == "New Chat"

    @pytest.mark.asyncio
    async def test_images_routed_to_capable_model(self, small_catalog: ModelCatalog) -> None:
        beta = ScriptedAdapter("beta", ["A cat"], supports_images=True)
        relay = build_relay(
            small_catalog,
            None,
            [ScriptedAdapter("alpha"), beta],
            credentials={"alpha": "alpha-key-0123456789", "beta": "beta-key-0123456789"},
        )
        chat = await relay.new_chat("user-1")

        events = [
            e
            async for e in relay.send_message(
                chat, "What is this?", SubscriptionTier.PRO, images=[IMAGE]
            )
        ]

        assert events[0].data["model_id"] == "beta-pro"
        assert beta.calls[0]["messages"][-1].images == [IMAGE]

    @pytest.mark.asyncio
    async def test_provider_without_adapter(self, small_catalog: ModelCatalog) -> None:
        relay = build_relay(
            small_catalog,
            None,
            [ScriptedAdapter("beta")],
            credentials={"alpha": "alpha-key-0123456789"},
        )
        chat = await relay.new_chat("user-1")

        events = await collect(relay, chat, "Hello")

        assert events[0].data["type"] == "ProviderUnavailable"

    @pytest.mark.asyncio
    async def test_new_chat_unknown_model(self, scripted_relay: ChatRelay) -> None:
        with pytest.raises(ModelNotFound):
            await scripted_relay.new_chat("user-1", model_id="nope")


class TestStreamingFailures:
    """Tests for failures once a stream is open."""

    @pytest.mark.asyncio
    async def test_mid_stream_failure_keeps_partial(
        self, small_catalog: ModelCatalog, mock_storage: AsyncMock
    ) -> None:
        error = UpstreamTransportError("connection reset", provider="alpha")
        relay = build_relay(small_catalog, mock_storage, [ScriptedAdapter("alpha", ["Par", error])])

        async with relay:
            chat = await relay.new_chat("user-1")
            events = await collect(relay, chat, "Hello")

        assert event_types(events) == [
            StreamEventType.METADATA,
            StreamEventType.CHUNK,
            StreamEventType.ERROR,
            StreamEventType.DONE,
        ]
        message = chat.messages[-1]
        assert message.role == MessageRole.ERROR
        assert message.content == f"Par\n\n{error.user_message}"
        assert chat.title == "New Chat"
        assert mock_storage.update_chat.call_args.args[0].messages[-1].role == MessageRole.ERROR

    @pytest.mark.asyncio
    async def test_rate_limited_before_first_delta(self, small_catalog: ModelCatalog) -> None:
        error = UpstreamRateLimited("rate limit exceeded", provider="alpha", status_code=429)
        relay = build_relay(small_catalog, None, [ScriptedAdapter("alpha", [error])])
        chat = await relay.new_chat("user-1")

        events = await collect(relay, chat, "Hello")

        assert events[1].data["message"] == error.user_message
        assert chat.messages[-1].content == error.user_message

    @pytest.mark.asyncio
    async def test_consumer_stops_early(self, small_catalog: ModelCatalog) -> None:
        adapter = ScriptedAdapter("alpha", ["Par", "tial", " answer"])
        relay = build_relay(small_catalog, None, [adapter])
        chat = await relay.new_chat("user-1")

        async with aclosing(relay.send_message(chat, "Hello", SubscriptionTier.FREE)) as events:
            async for event in events:
                if event.event == StreamEventType.CHUNK:
                    break

        message = chat.messages[-1]
        assert adapter.closed == 1
        assert message.role == MessageRole.ERROR
        assert message.loading is False
        assert message.content == "Par\n\nResponse generation was cancelled."

    @pytest.mark.asyncio
    async def test_task_cancellation(self, small_catalog: ModelCatalog) -> None:
        adapter = ScriptedAdapter("alpha", ["Par", None])
        relay = build_relay(small_catalog, None, [adapter])
        chat = await relay.new_chat("user-1")
        first_chunk = asyncio.Event()

        async def consume() -> None:
            async for event in relay.send_message(chat, "Hello", SubscriptionTier.FREE):
                if event.event == StreamEventType.CHUNK:
                    first_chunk.set()

        task = asyncio.create_task(consume())
        await first_chunk.wait()
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert adapter.closed == 1
        assert chat.messages[-1].role == MessageRole.ERROR
        assert chat.messages[-1].loading is False


class TestChats:
    """Tests for chat bookkeeping."""

    @pytest.mark.asyncio
    async def test_get_chat_falls_back_to_storage(
        self, scripted_relay: ChatRelay, mock_storage: AsyncMock, sample_chat: Chat
    ) -> None:
        sample_chat.derive_title()
        mock_storage.get_chat.return_value = sample_chat.to_dto()

        chat = await scripted_relay.get_chat(sample_chat.id)

        assert chat is not None
        assert chat.id == sample_chat.id
        assert len(chat.messages) == 2
        assert chat.has_placeholder_title is False
        assert await scripted_relay.get_chat(sample_chat.id) is chat
        mock_storage.get_chat.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_missing_chat(self, scripted_relay: ChatRelay) -> None:
        assert await scripted_relay.get_chat("missing") is None

    @pytest.mark.asyncio
    async def test_list_chats_in_memory(self, small_catalog: ModelCatalog) -> None:
        relay = build_relay(small_catalog, None, [ScriptedAdapter("alpha")])
        first = await relay.new_chat("user-1")
        second = await relay.new_chat("user-1")
        await relay.new_chat("user-2")
        first.updated_at = datetime(2024, 1, 1, tzinfo=UTC)

        chats = await relay.list_chats("user-1")

        assert [c.id for c in chats] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_chat_cache_is_bounded(self, small_catalog: ModelCatalog) -> None:
        relay = build_relay(small_catalog, None, [ScriptedAdapter("alpha")], max_cached_chats=100)
        chats = [await relay.new_chat(f"user-{i % 5}") for i in range(500)]

        remaining = [c for i in range(5) for c in await relay.list_chats(f"user-{i}")]

        assert len(remaining) == 100
        assert await relay.get_chat(chats[0].id) is None
        assert await relay.get_chat(chats[-1].id) is chats[-1]

    @pytest.mark.asyncio
    async def test_chat_cache_keeps_recently_used(self, small_catalog: ModelCatalog) -> None:
        relay = build_relay(small_catalog, None, [ScriptedAdapter("alpha")], max_cached_chats=2)
        first = await relay.new_chat("user-1")
        second = await relay.new_chat("user-1")

        assert await relay.get_chat(first.id) is first
        await relay.new_chat("user-1")

        assert await relay.get_chat(first.id) is first
        assert await relay.get_chat(second.id) is None

    @pytest.mark.asyncio
    async def test_evicted_chat_reloads_from_storage(
        self, small_catalog: ModelCatalog, mock_storage: AsyncMock
    ) -> None:
        relay = build_relay(
            small_catalog, mock_storage, [ScriptedAdapter("alpha")], max_cached_chats=1
        )
        first = await relay.new_chat("user-1")
        await relay.new_chat("user-1")
        mock_storage.get_chat.return_value = first.to_dto()

        reloaded = await relay.get_chat(first.id)

        assert reloaded is not None
        assert reloaded is not first
        assert reloaded.id == first.id
        mock_storage.get_chat.assert_awaited_once_with(first.id)

    @pytest.mark.asyncio
    async def test_delete_chat(self, scripted_relay: ChatRelay, mock_storage: AsyncMock) -> None:
        chat = await scripted_relay.new_chat("user-1")

        assert await scripted_relay.delete_chat(chat.id) is True
        mock_storage.delete_chat.assert_awaited_once_with(chat.id)
        assert await scripted_relay.get_chat(chat.id) is None


class TestStorageLifecycle:
    """Tests for storage instantiation on connect."""

    @pytest.mark.asyncio
    async def test_storage_status(
        self, small_catalog: ModelCatalog, mock_storage: AsyncMock
    ) -> None:
        without = build_relay(small_catalog, None, [ScriptedAdapter("alpha")])
        with_storage = build_relay(small_catalog, mock_storage, [ScriptedAdapter("alpha")])

        assert await without.storage_status() == "disabled"
        assert await with_storage.storage_status() == "ok"
        mock_storage.ping.return_value = False
        assert await with_storage.storage_status() == "unavailable"

    @pytest.mark.asyncio
    async def test_custom_config_storage(self, small_catalog: ModelCatalog) -> None:
        created: dict[str, Any] = {}

        class DictStorage:
            config_class = None

            @classmethod
            async def from_dict(cls, config: dict[str, Any]) -> AsyncMock:
                created.update(config)
                storage = AsyncMock()
                storage.get_chat.return_value = None
                return storage

        relay = ChatRelay(
            DictStorage,  # type: ignore[arg-type]
            storage_custom_config={"path": "/tmp/chats"},
            config=RelayConfig(),
            credentials=InMemoryCredentialSource(),
            catalog=small_catalog,
            registry=ProviderRegistry([ScriptedAdapter("alpha")]),
        )

        async with relay:
            chat = await relay.new_chat("user-1")
            assert await relay.get_chat(chat.id) is chat

        assert created == {"path": "/tmp/chats"}

    @pytest.mark.asyncio
    async def test_missing_custom_config(self, small_catalog: ModelCatalog) -> None:
        class DictStorage:
            config_class = None

        relay = ChatRelay(
            DictStorage,  # type: ignore[arg-type]
            config=RelayConfig(),
            credentials=InMemoryCredentialSource(),
            catalog=small_catalog,
            registry=ProviderRegistry([ScriptedAdapter("alpha")]),
        )

        with pytest.raises(ValueError, match="no custom_config"):
            async with relay:
                pass
