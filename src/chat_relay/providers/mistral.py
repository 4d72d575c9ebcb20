"""Mistral streaming adapter for chat_relay.

Mistral's chat endpoint is OpenAI-compatible and streams server-sent
event lines (``data: {...}``, terminated by ``data: [DONE]``).
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx

from chat_relay.config import MistralSettings
from chat_relay.domain.message import Message
from chat_relay.errors import UpstreamError
from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.models.message import Usage
from chat_relay.models.stream import TextDelta
from chat_relay.providers.base import ProviderAdapter, StreamItem
from chat_relay.providers.http import check_stream_status, translate_httpx_error

__all__ = [
    "MistralAdapter",
    "mistral_line_items",
    "mistral_messages",
]

_DONE = "[DONE]"


def mistral_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Translate messages; Mistral understands user, assistant and system."""
    return [{"role": m.role.value, "content": m.content} for m in messages]


def mistral_line_items(line: str) -> list[StreamItem]:
    """Translate one server-sent event line.

    Comment lines, blank keep-alives and the ``[DONE]`` sentinel yield
    nothing.

    Raises:
        json.JSONDecodeError: If a data line does not carry valid JSON
    """
    line = line.strip()
    if not line.startswith("data:"):
        return []
    payload = line[len("data:") :].strip()
    if not payload or payload == _DONE:
        return []
    data = json.loads(payload)
    items: list[StreamItem] = []
    choices = data.get("choices") or []
    if choices:
        text = (choices[0].get("delta") or {}).get("content")
        if text:
            items.append(TextDelta(text=text))
    usage = data.get("usage")
    if usage:
        items.append(
            Usage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                estimated=False,
            )
        )
    return items


class MistralAdapter(ProviderAdapter):
    """Mistral chat completions adapter over httpx."""

    config_class = MistralSettings

    def __init__(
        self,
        settings: MistralSettings,
        credentials: CredentialSource | None = None,
        *,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(credentials)
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    @property
    def provider_name(self) -> str:
        return "mistral"

    async def _stream(
        self,
        messages: list[Message],
        model_id: str,
        temperature: float,
    ) -> AsyncIterator[StreamItem]:
        fallback = self._settings.api_key.get_secret_value() if self._settings.api_key else None
        api_key = self.require_credential(fallback)
        payload = {
            "model": model_id,
            "messages": mistral_messages(messages),
            "temperature": temperature,
            "max_tokens": self._settings.max_tokens,
            "stream": True,
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            async with client.stream(
                "POST",
                f"{self._settings.base_url.rstrip('/')}/chat/completions",
                json=payload,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Accept": "text/event-stream",
                },
            ) as response:
                check_stream_status(response, self.provider_name)
                async for line in response.aiter_lines():
                    for item in mistral_line_items(line):
                        yield item

    def translate_error(self, exc: Exception) -> UpstreamError | None:
        return translate_httpx_error(exc, self.provider_name)
