"""Ollama streaming adapter for chat_relay.

Ollama serves locally and streams newline-delimited JSON records; the
final record (``"done": true``) carries evaluation counts.
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx

from chat_relay.config import OllamaSettings
from chat_relay.domain.message import Message
from chat_relay.errors import UpstreamError, UpstreamTransportError
from chat_relay.models.message import MessageRole, Usage
from chat_relay.models.stream import TextDelta
from chat_relay.providers.base import ProviderAdapter, StreamItem
from chat_relay.providers.http import check_stream_status, translate_httpx_error

__all__ = [
    "OllamaAdapter",
    "ollama_line_items",
    "ollama_messages",
]


def ollama_messages(messages: list[Message], with_images: bool = True) -> list[dict[str, Any]]:
    """Translate messages; images ride along as raw base64 on user turns."""
    translated = []
    for message in messages:
        entry: dict[str, Any] = {"role": message.role.value, "content": message.content}
        if with_images and message.role == MessageRole.USER and message.images:
            entry["images"] = [image.data for image in message.images]
        translated.append(entry)
    return translated


def ollama_line_items(line: str) -> list[StreamItem]:
    """Translate one NDJSON record.

    Raises:
        UpstreamTransportError: If the record reports an error
        json.JSONDecodeError: If the line is not valid JSON
    """
    if not line.strip():
        return []
    data = json.loads(line)
    if data.get("error"):
        raise UpstreamTransportError("local model reported an error", provider="ollama")
    items: list[StreamItem] = []
    text = (data.get("message") or {}).get("content")
    if text:
        items.append(TextDelta(text=text))
    if data.get("done") and "prompt_eval_count" in data and "eval_count" in data:
        items.append(
            Usage(
                prompt_tokens=data["prompt_eval_count"],
                completion_tokens=data["eval_count"],
                estimated=False,
            )
        )
    return items


class OllamaAdapter(ProviderAdapter):
    """Locally hosted Ollama adapter over httpx."""

    supports_images = True

    config_class = OllamaSettings

    def __init__(
        self,
        settings: OllamaSettings,
        *,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(None)
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    @property
    def provider_name(self) -> str:
        return "ollama"

    async def _stream(
        self,
        messages: list[Message],
        model_id: str,
        temperature: float,
    ) -> AsyncIterator[StreamItem]:
        payload = {
            "model": model_id,
            "messages": ollama_messages(messages, self.supports_images),
            "stream": True,
            "options": {"temperature": temperature},
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            async with client.stream(
                "POST",
                f"{self._settings.base_url.rstrip('/')}/api/chat",
                json=payload,
            ) as response:
                check_stream_status(response, self.provider_name)
                async for line in response.aiter_lines():
                    for item in ollama_line_items(line):
                        yield item

    def translate_error(self, exc: Exception) -> UpstreamError | None:
        return translate_httpx_error(exc, self.provider_name)
