"""ChatRelay facade for routing and streaming chat responses.

This module provides the main entry point for the chat_relay package,
wiring the catalog, availability oracle, selector, provider adapters
and persistence into one streaming operation.
"""

import asyncio
from collections import OrderedDict
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from chat_relay.config import RelayConfig
from chat_relay.domain.chat import Chat
from chat_relay.domain.message import Message
from chat_relay.errors import (
    ChatRelayError,
    ImagesNotSupported,
    ProviderUnavailable,
    StreamCancelled,
)
from chat_relay.infra.credentials import SettingsCredentialSource
from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.interfaces.storage import ChatStorageInterface
from chat_relay.logging import get_logger
from chat_relay.models.catalog import ModelInfo, SubscriptionTier
from chat_relay.models.message import ImageAttachment, MessageRole, Usage
from chat_relay.models.routing import RouterInput, RouterOutput
from chat_relay.models.stream import StreamEvent, StreamEventType, TextDelta
from chat_relay.providers.base import ProviderAdapter
from chat_relay.providers.registry import ProviderRegistry
from chat_relay.services.aggregator import ResponseStream, StreamObserver, StreamState
from chat_relay.services.availability import AvailabilityOracle
from chat_relay.services.catalog import ModelCatalog
from chat_relay.services.persistence import DebouncedChatWriter
from chat_relay.services.selector import ModelSelector

__all__ = ["ChatRelay"]

logger = get_logger(__name__)

SEGMENT_SEPARATOR = "\n\n"


def _segment_prompt(index: int, total: int, text: str) -> str:
    return f"Part {index} of {total}:\n\n{text}"


class ChatRelay:
    """Routes prompts to a provider and streams the answer back.

    Storage is optional. When a storage class is given it is instantiated
    on connect from its ``config_class`` (loaded from .env) or, when that
    is None, from ``storage_custom_config``.

    Example:
        async with ChatRelay(storage_class=MongoChatRepository) as relay:
            chat = await relay.new_chat("user-1")
            async for event in relay.send_message(chat, "hello", SubscriptionTier.FREE):
                print(event.to_sse())
    """

    def __init__(
        self,
        storage_class: type[ChatStorageInterface] | None = None,
        *,
        storage_custom_config: dict[str, Any] | None = None,
        config: RelayConfig | None = None,
        credentials: CredentialSource | None = None,
        catalog: ModelCatalog | None = None,
        registry: ProviderRegistry | None = None,
        oracle: AvailabilityOracle | None = None,
        storage: ChatStorageInterface | None = None,
    ) -> None:
        """Initialize ChatRelay.

        Args:
            storage_class: Storage implementation class, instantiated on connect
            storage_custom_config: Custom config dict if storage_class.config_class is None
            config: Relay configuration (loaded from .env when omitted)
            credentials: Credential source (environment-backed when omitted)
            catalog: Model catalog (built-in models when omitted)
            registry: Provider adapters (the five built-in adapters when omitted)
            oracle: Availability oracle (built from config when omitted)
            storage: Ready storage instance, used instead of storage_class
        """
        self._config = config or RelayConfig()
        self._credentials = credentials or SettingsCredentialSource()
        self._catalog = catalog or ModelCatalog()
        self._selector = ModelSelector(self._catalog)
        self._registry = registry or ProviderRegistry.from_config(self._config, self._credentials)
        self._oracle = oracle or AvailabilityOracle(
            self._credentials,
            min_credential_length=self._config.min_credential_length,
            local_base_url=self._config.ollama.base_url if self._config.ollama.enabled else None,
            probe_timeout=self._config.ollama.probe_timeout,
        )

        self._storage_class = storage_class
        self._storage_custom_config = storage_custom_config
        self._storage = storage
        self._owns_storage = False
        self._writer: DebouncedChatWriter | None = None
        # Most recently used chats, bounded by config.max_cached_chats
        self._chats: OrderedDict[str, Chat] = OrderedDict()
        self._connected = False

    @property
    def config(self) -> RelayConfig:
        return self._config

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    @property
    def selector(self) -> ModelSelector:
        return self._selector

    @property
    def oracle(self) -> AvailabilityOracle:
        return self._oracle

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def _instantiate_storage(self) -> ChatStorageInterface:
        cls = self._storage_class
        config_class = getattr(cls, "config_class", None)
        if config_class is None:
            if self._storage_custom_config is None:
                raise ValueError(
                    f"{cls.__name__} has config_class=None but no custom_config provided"
                )
            return await cls.from_dict(self._storage_custom_config)  # type: ignore[attr-defined]
        return await cls.from_config(config_class())  # type: ignore[attr-defined]

    async def _connect(self) -> None:
        """Instantiate storage and the debounced writer."""
        if self._connected:
            return
        if self._storage is None and self._storage_class is not None:
            self._storage = await self._instantiate_storage()
            self._owns_storage = True
        if self._storage is not None:
            self._writer = DebouncedChatWriter(
                self._storage, delay=self._config.persist_debounce_seconds
            )
        self._connected = True
        logger.info("chat_relay_connected", providers=self._registry.list_providers())

    async def _disconnect(self) -> None:
        """Flush pending writes and close owned resources."""
        if self._writer is not None:
            await self._writer.close()
        if self._owns_storage and hasattr(self._storage, "close"):
            await self._storage.close()
        self._connected = False
        logger.info("chat_relay_disconnected")

    async def storage_status(self) -> str:
        """"ok", "unavailable" or "disabled" when no storage is configured."""
        if self._storage is None:
            return "disabled"
        ping = getattr(self._storage, "ping", None)
        if ping is None or await ping():
            return "ok"
        return "unavailable"

    async def __aenter__(self) -> "ChatRelay":
        await self._connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self._disconnect()

    # Routing

    async def route(self, router_input: RouterInput) -> RouterOutput:
        """Evaluate availability and select a model.

        Raises:
            NoEligibleModel: If the caller's tier allows no model
        """
        available = await self._oracle.available_providers()
        return self._selector.select(router_input, available)

    def _alternative_for(self, tier: SubscriptionTier, available: frozenset[str]) -> str | None:
        model = next(
            (m for m in self._catalog.models_for_tier(tier) if m.provider in available), None
        )
        return model.id if model else None

    async def _resolve_adapter(
        self,
        routing: RouterOutput,
        tier: SubscriptionTier,
        images: list[ImageAttachment],
    ) -> ProviderAdapter:
        """Caller-side checks run before any network call."""
        model = routing.model
        if not routing.is_available or not self._registry.is_registered(model.provider):
            available = await self._oracle.available_providers()
            raise ProviderUnavailable(model.provider, self._alternative_for(tier, available))
        adapter = self._registry.get(model.provider)
        if images and not (model.supports_images and adapter.supports_images):
            raise ImagesNotSupported(model.id)
        return adapter

    # Chats

    def _remember(self, chat: Chat) -> None:
        """Cache a chat, evicting the least recently used past the bound.

        Without storage an evicted chat is gone; with storage it is
        reloaded on the next ``get_chat``.
        """
        self._chats[chat.id] = chat
        self._chats.move_to_end(chat.id)
        while len(self._chats) > self._config.max_cached_chats:
            evicted, _ = self._chats.popitem(last=False)
            logger.debug("chat_evicted", chat_id=evicted, persisted=self._storage is not None)

    async def new_chat(self, owner_id: str, model_id: str | None = None) -> Chat:
        """Create a chat with the placeholder title.

        Raises:
            ModelNotFound: If model_id is not in the catalog
        """
        if model_id is not None:
            self._catalog.get_model(model_id)
        title = self._config.default_chat_title
        chat = Chat(owner_id=owner_id, model_id=model_id, title=title, placeholder_title=title)
        self._remember(chat)
        if self._writer is not None:
            await self._writer.create(chat)
        return chat

    async def get_chat(self, chat_id: str) -> Chat | None:
        """Get a chat from this process, falling back to storage."""
        chat = self._chats.get(chat_id)
        if chat is None and self._storage is not None:
            dto = await self._storage.get_chat(chat_id)
            if dto is not None:
                chat = Chat.from_dto(dto, placeholder_title=self._config.default_chat_title)
        if chat is not None:
            self._remember(chat)
        return chat

    async def list_chats(self, owner_id: str) -> list[Chat]:
        """Chats of an owner, most recently updated first."""
        if self._storage is not None:
            dtos = await self._storage.find_chats_by_owner(owner_id)
            placeholder = self._config.default_chat_title
            return [self._chats.get(d.id) or Chat.from_dto(d, placeholder) for d in dtos]
        chats = [c for c in self._chats.values() if c.owner_id == owner_id]
        return sorted(chats, key=lambda c: c.updated_at, reverse=True)

    async def delete_chat(self, chat_id: str) -> bool:
        removed = self._chats.pop(chat_id, None) is not None
        if self._storage is not None:
            removed = await self._storage.delete_chat(chat_id) or removed
        return removed

    # Streaming

    async def send_message(
        self,
        chat: Chat,
        content: str,
        caller_tier: SubscriptionTier,
        *,
        model_id: str | None = None,
        provider: str | None = None,
        temperature: float | None = None,
        images: list[ImageAttachment] | None = None,
        observer: StreamObserver | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Send a user turn and stream the assistant response.

        Appends the user message and a loading placeholder to the chat,
        routes, streams through the selected adapter and finalizes the
        placeholder. The placeholder always ends Completed or Failed,
        including when the consumer stops iterating.

        Args:
            chat: Chat to append to
            content: Prompt text
            caller_tier: Caller's subscription tier, trusted as supplied
            model_id: Explicit model request (defaults to the chat's model)
            provider: Preferred provider
            temperature: Sampling temperature (config default when omitted)
            images: Images attached to the prompt
            observer: Called synchronously after every state change

        Yields:
            StreamEvent values: metadata, chunk..., usage, done on success;
            error, done on failure
        """
        images = list(images or [])
        chat.append(Message(role=MessageRole.USER, content=content, images=images))
        history = list(chat.messages)
        placeholder = chat.append(Message.placeholder(model_id or chat.model_id))
        stream = ResponseStream(placeholder, [observer] if observer else [])

        try:
            try:
                routing = await self.route(
                    RouterInput(
                        prompt=content,
                        tier=caller_tier,
                        model_id=model_id or chat.model_id,
                        provider=provider,
                        images=images,
                    )
                )
                adapter = await self._resolve_adapter(routing, caller_tier, images)
            except ChatRelayError as e:
                stream.fail(e)
                yield self._error_event(e)
            else:
                placeholder.model_id = routing.model.id
                yield self._metadata_event(routing, requested=model_id or chat.model_id)
                async with aclosing(
                    self._stream_response(chat, stream, adapter, routing, history, temperature)
                ) as events:
                    async for event in events:
                        yield event
        except BaseException as e:
            if not stream.state.is_terminal:
                cancelled = isinstance(e, asyncio.CancelledError | GeneratorExit)
                stream.fail(StreamCancelled() if cancelled else e)
            if self._writer is not None:
                self._writer.schedule(chat)
            raise

        if stream.state == StreamState.COMPLETED:
            chat.derive_title()
        chat.touch()
        if self._writer is not None:
            await self._writer.flush(chat)
        yield StreamEvent(
            event=StreamEventType.DONE,
            data={
                "chat_id": chat.id,
                "message_id": placeholder.id,
                "title": chat.title,
                "state": stream.state.value,
            },
        )

    async def _stream_response(
        self,
        chat: Chat,
        stream: ResponseStream,
        adapter: ProviderAdapter,
        routing: RouterOutput,
        history: list[Message],
        temperature: float | None,
    ) -> AsyncIterator[StreamEvent]:
        temperature = self._config.default_temperature if temperature is None else temperature
        model = routing.model
        usage: Usage | None = None
        try:
            for index, turn in enumerate(self._request_turns(routing, history)):
                if index:
                    stream.feed(TextDelta(text=SEGMENT_SEPARATOR))
                    yield self._chunk_event(SEGMENT_SEPARATOR)
                async with aclosing(adapter.stream(turn, model.id, temperature)) as items:
                    async for item in items:
                        if isinstance(item, Usage):
                            usage = item if usage is None else usage + item
                            continue
                        stream.feed(item)
                        if self._writer is not None:
                            self._writer.schedule(chat)
                        yield self._chunk_event(item.text)
        except ChatRelayError as e:
            stream.fail(e)
            yield self._error_event(e)
            return

        message = stream.complete(usage)
        if message.usage is not None:
            yield StreamEvent(event=StreamEventType.USAGE, data=message.usage.model_dump())

    @staticmethod
    def _request_turns(routing: RouterOutput, history: list[Message]) -> list[list[Message]]:
        """One message list per upstream request.

        A segmented prompt is sent as consecutive requests, each replacing
        the final user turn with one labelled segment.
        """
        if not routing.segments or len(routing.segments) == 1:
            return [history]
        prior, last = history[:-1], history[-1]
        total = len(routing.segments)
        return [
            [
                *prior,
                Message(
                    role=MessageRole.USER,
                    content=_segment_prompt(index, total, segment),
                    images=last.images if index == 1 else [],
                ),
            ]
            for index, segment in enumerate(routing.segments, start=1)
        ]

    @staticmethod
    def _metadata_event(routing: RouterOutput, requested: str | None) -> StreamEvent:
        model: ModelInfo = routing.model
        return StreamEvent(
            event=StreamEventType.METADATA,
            data={
                "model_id": model.id,
                "model_name": model.name,
                "provider": model.provider,
                "task": routing.task.value,
                "segments": len(routing.segments or []),
                "substituted": requested is not None and requested != model.id,
                "requested_model_id": requested,
            },
        )

    @staticmethod
    def _chunk_event(text: str) -> StreamEvent:
        return StreamEvent(event=StreamEventType.CHUNK, data={"text": text})

    @staticmethod
    def _error_event(error: ChatRelayError) -> StreamEvent:
        return StreamEvent(
            event=StreamEventType.ERROR,
            data={"type": type(error).__name__, "message": error.user_message},
        )
