"""Anthropic streaming adapter for chat_relay.

Anthropic streams typed server events; token counts arrive split
across the ``message_start`` and ``message_delta`` events.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from chat_relay.config import AnthropicSettings
from chat_relay.domain.message import Message
from chat_relay.errors import UpstreamError, UpstreamTransportError
from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.models.message import MessageRole, Usage
from chat_relay.models.stream import TextDelta
from chat_relay.providers.base import ProviderAdapter, StreamItem, error_for_status

__all__ = [
    "AnthropicAdapter",
    "AnthropicTally",
    "anthropic_event_items",
    "anthropic_messages",
]


def anthropic_messages(
    messages: list[Message],
    with_images: bool = True,
) -> tuple[str | None, list[dict[str, Any]]]:
    """Translate messages into a system prompt and alternating turns.

    System messages are lifted into the ``system`` parameter. Consecutive
    turns of the same role are merged, as the API requires alternation.

    Returns:
        Tuple of (system prompt or None, message list)
    """
    system_parts: list[str] = []
    turns: list[dict[str, Any]] = []
    for message in messages:
        if message.role == MessageRole.SYSTEM:
            system_parts.append(message.content)
            continue
        blocks: list[dict[str, Any]] = [{"type": "text", "text": message.content}]
        if with_images and message.role == MessageRole.USER:
            blocks.extend(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image.media_type,
                        "data": image.data,
                    },
                }
                for image in message.images
            )
        role = message.role.value
        if turns and turns[-1]["role"] == role:
            turns[-1]["content"].extend(blocks)
        else:
            turns.append({"role": role, "content": blocks})
    system = "\n\n".join(system_parts) if system_parts else None
    return system, turns


@dataclass
class AnthropicTally:
    """Token counts collected across one event stream."""

    input_tokens: int | None = None
    output_tokens: int | None = None


def anthropic_event_items(event: Any, tally: AnthropicTally) -> list[StreamItem]:
    """Translate one server event into deltas and, at the end, usage."""
    event_type = getattr(event, "type", None)
    if event_type == "message_start":
        usage = getattr(event.message, "usage", None)
        if usage is not None:
            tally.input_tokens = usage.input_tokens
    elif event_type == "content_block_delta":
        if getattr(event.delta, "type", None) == "text_delta" and event.delta.text:
            return [TextDelta(text=event.delta.text)]
    elif event_type == "message_delta":
        usage = getattr(event, "usage", None)
        if usage is not None:
            tally.output_tokens = usage.output_tokens
    elif event_type == "message_stop":
        if tally.input_tokens is not None and tally.output_tokens is not None:
            return [
                Usage(
                    prompt_tokens=tally.input_tokens,
                    completion_tokens=tally.output_tokens,
                    estimated=False,
                )
            ]
    return []


class AnthropicAdapter(ProviderAdapter):
    """Anthropic messages API adapter."""

    supports_images = True

    config_class = AnthropicSettings

    def __init__(
        self,
        settings: AnthropicSettings,
        credentials: CredentialSource | None = None,
        *,
        timeout: float = 120.0,
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            settings: Anthropic settings
            credentials: Runtime credential source, consulted before settings
            timeout: Request timeout in seconds
            client: Preconfigured client; built per request when omitted
        """
        super().__init__(credentials)
        self._settings = settings
        self._timeout = timeout
        self._client = client

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @asynccontextmanager
    async def _open_client(self) -> AsyncIterator[AsyncAnthropic]:
        if self._client is not None:
            yield self._client
            return
        fallback = self._settings.api_key.get_secret_value() if self._settings.api_key else None
        async with AsyncAnthropic(
            api_key=self.require_credential(fallback),
            timeout=self._timeout,
        ) as client:
            yield client

    async def _stream(
        self,
        messages: list[Message],
        model_id: str,
        temperature: float,
    ) -> AsyncIterator[StreamItem]:
        system, turns = anthropic_messages(messages, self.supports_images)
        params: dict[str, Any] = {
            "model": model_id,
            "max_tokens": self._settings.max_tokens,
            "temperature": temperature,
            "messages": turns,
            "stream": True,
        }
        if system:
            params["system"] = system

        tally = AnthropicTally()
        async with self._open_client() as client:
            response = await client.messages.create(**params)
            async with response as events:
                async for event in events:
                    for item in anthropic_event_items(event, tally):
                        yield item

    def translate_error(self, exc: Exception) -> UpstreamError | None:
        if isinstance(exc, anthropic.APIStatusError):
            return error_for_status(self.provider_name, exc.status_code)
        if isinstance(exc, anthropic.APIConnectionError):
            return UpstreamTransportError(
                "connection to provider failed", provider=self.provider_name
            )
        if isinstance(exc, anthropic.AnthropicError):
            return UpstreamTransportError("malformed response", provider=self.provider_name)
        return None
