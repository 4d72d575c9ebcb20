"""Scripted provider adapter for testing."""

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import Any

from chat_relay.domain.message import Message
from chat_relay.errors import UpstreamError
from chat_relay.models.message import Usage
from chat_relay.models.stream import TextDelta
from chat_relay.providers.base import ProviderAdapter, StreamItem


class ScriptedAdapter(ProviderAdapter):
    """Adapter that replays a fixed script instead of calling a provider.

    Script entries are strings (deltas), Usage records, exceptions
    (raised at that point) or ``None`` (hang until cancelled).
    """

    def __init__(
        self,
        name: str,
        script: Sequence[Any] = ("Hello", " world"),
        *,
        supports_images: bool = False,
    ) -> None:
        super().__init__(None)
        self._name = name
        self._script = list(script)
        self.supports_images = supports_images  # type: ignore[misc]
        self.calls: list[dict[str, Any]] = []
        self.closed = 0

    @property
    def provider_name(self) -> str:
        return self._name

    async def _stream(
        self,
        messages: list[Message],
        model_id: str,
        temperature: float,
    ) -> AsyncIterator[StreamItem]:
        self.calls.append(
            {"messages": list(messages), "model_id": model_id, "temperature": temperature}
        )
        try:
            for entry in self._script:
                if entry is None:
                    await asyncio.Event().wait()
                elif isinstance(entry, BaseException):
                    raise entry
                elif isinstance(entry, Usage):
                    yield entry
                else:
                    yield TextDelta(text=entry)
        finally:
            self.closed += 1

    def translate_error(self, exc: Exception) -> UpstreamError | None:
        return None
