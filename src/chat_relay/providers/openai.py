"""OpenAI streaming adapter for chat_relay.

OpenAI streams typed chunk objects from the chat completions API.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import openai
from openai import AsyncOpenAI

from chat_relay.config import OpenAISettings
from chat_relay.domain.message import Message
from chat_relay.errors import UpstreamError, UpstreamTransportError
from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.models.message import MessageRole, Usage
from chat_relay.models.stream import TextDelta
from chat_relay.providers.base import ProviderAdapter, StreamItem, error_for_status

__all__ = [
    "OpenAIAdapter",
    "openai_chunk_items",
    "openai_messages",
]


def openai_messages(messages: list[Message], with_images: bool = True) -> list[dict[str, Any]]:
    """Translate messages into chat completion messages.

    Roles map one to one. Images on user turns become ``image_url``
    parts next to the text part.
    """
    translated = []
    for message in messages:
        if with_images and message.role == MessageRole.USER and message.images:
            content: Any = [{"type": "text", "text": message.content}]
            content.extend(
                {"type": "image_url", "image_url": {"url": image.data_url}}
                for image in message.images
            )
        else:
            content = message.content
        translated.append({"role": message.role.value, "content": content})
    return translated


def openai_chunk_items(chunk: Any) -> list[StreamItem]:
    """Translate one streamed chunk into deltas and usage.

    With ``include_usage`` the final chunk has no choices and carries
    exact token counts.
    """
    items: list[StreamItem] = []
    choices = getattr(chunk, "choices", None) or []
    if choices:
        text = getattr(choices[0].delta, "content", None)
        if text:
            items.append(TextDelta(text=text))
    usage = getattr(chunk, "usage", None)
    if usage is not None:
        items.append(
            Usage(
                prompt_tokens=usage.prompt_tokens or 0,
                completion_tokens=usage.completion_tokens or 0,
                estimated=False,
            )
        )
    return items


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat completions adapter."""

    supports_images = True

    config_class = OpenAISettings

    def __init__(
        self,
        settings: OpenAISettings,
        credentials: CredentialSource | None = None,
        *,
        timeout: float = 120.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            settings: OpenAI settings
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
        return "openai"

    @asynccontextmanager
    async def _open_client(self) -> AsyncIterator[AsyncOpenAI]:
        if self._client is not None:
            yield self._client
            return
        fallback = self._settings.api_key.get_secret_value() if self._settings.api_key else None
        async with AsyncOpenAI(
            api_key=self.require_credential(fallback),
            base_url=self._settings.base_url,
            timeout=self._timeout,
        ) as client:
            yield client

    async def _stream(
        self,
        messages: list[Message],
        model_id: str,
        temperature: float,
    ) -> AsyncIterator[StreamItem]:
        async with self._open_client() as client:
            response = await client.chat.completions.create(
                model=model_id,
                messages=openai_messages(messages, self.supports_images),
                temperature=temperature,
                stream=True,
                stream_options={"include_usage": True},
            )
            async with response as chunks:
                async for chunk in chunks:
                    for item in openai_chunk_items(chunk):
                        yield item

    def translate_error(self, exc: Exception) -> UpstreamError | None:
        if isinstance(exc, openai.APIStatusError):
            return error_for_status(self.provider_name, exc.status_code)
        if isinstance(exc, openai.APIConnectionError):
            return UpstreamTransportError(
                "connection to provider failed", provider=self.provider_name
            )
        if isinstance(exc, openai.OpenAIError):
            return UpstreamTransportError("malformed response", provider=self.provider_name)
        return None
