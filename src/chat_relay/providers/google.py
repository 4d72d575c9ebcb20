"""Google Gemini streaming adapter for chat_relay.

Gemini recognises only the ``user`` and ``model`` roles, so system
text is folded into the first user turn.
"""

import base64
from collections.abc import AsyncIterator, Callable
from typing import Any

from chat_relay.config import GoogleSettings
from chat_relay.domain.message import Message
from chat_relay.errors import UpstreamError, UpstreamRejected, UpstreamTransportError
from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.models.message import MessageRole, Usage
from chat_relay.models.stream import TextDelta
from chat_relay.providers.base import ProviderAdapter, StreamItem, error_for_status
from chat_relay.utils.lazy_import import lazy_import

__all__ = [
    "GoogleAdapter",
    "google_chunk_items",
    "google_contents",
]

_genai = lazy_import("google.generativeai")
_api_exceptions = lazy_import("google.api_core.exceptions")

_ROLE_MAP = {MessageRole.USER: "user", MessageRole.ASSISTANT: "model"}


def google_contents(messages: list[Message], with_images: bool = True) -> list[dict[str, Any]]:
    """Translate messages into Gemini contents.

    System messages are prepended to the first user turn; assistant
    becomes ``model``. Consecutive same-role turns are merged.
    """
    system_text = "\n\n".join(m.content for m in messages if m.role == MessageRole.SYSTEM)
    contents: list[dict[str, Any]] = []
    for message in messages:
        role = _ROLE_MAP.get(message.role)
        if role is None:
            continue
        text = message.content
        if system_text and role == "user":
            text = f"{system_text}\n\n{text}"
            system_text = ""
        parts: list[Any] = [text]
        if with_images and message.role == MessageRole.USER:
            parts.extend(
                {"mime_type": image.media_type, "data": base64.b64decode(image.data)}
                for image in message.images
            )
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].extend(parts)
        else:
            contents.append({"role": role, "parts": parts})
    if system_text:
        contents.insert(0, {"role": "user", "parts": [system_text]})
    return contents


def google_chunk_items(chunk: Any) -> list[StreamItem]:
    """Translate one streamed response chunk.

    Usage metadata is cumulative, so every chunk that carries it yields
    a Usage and the last one wins.
    """
    items: list[StreamItem] = []
    candidates = getattr(chunk, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            text = getattr(part, "text", None)
            if text:
                items.append(TextDelta(text=text))
    metadata = getattr(chunk, "usage_metadata", None)
    if metadata is not None and getattr(metadata, "prompt_token_count", None):
        items.append(
            Usage(
                prompt_tokens=metadata.prompt_token_count or 0,
                completion_tokens=getattr(metadata, "candidates_token_count", 0) or 0,
                estimated=False,
            )
        )
    return items


class GoogleAdapter(ProviderAdapter):
    """Gemini adapter built on google-generativeai."""

    supports_images = True

    config_class = GoogleSettings

    def __init__(
        self,
        settings: GoogleSettings,
        credentials: CredentialSource | None = None,
        *,
        model_factory: Callable[[str], Any] | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            settings: Google settings
            credentials: Runtime credential source, consulted before settings
            model_factory: Builds a GenerativeModel-like object for a model id
        """
        super().__init__(credentials)
        self._settings = settings
        self._model_factory = model_factory

    @property
    def provider_name(self) -> str:
        return "google"

    def _model(self, model_id: str) -> Any:
        if self._model_factory is not None:
            return self._model_factory(model_id)
        genai = _genai()
        fallback = self._settings.api_key.get_secret_value() if self._settings.api_key else None
        genai.configure(api_key=self.require_credential(fallback))
        return genai.GenerativeModel(model_id)

    async def _stream(
        self,
        messages: list[Message],
        model_id: str,
        temperature: float,
    ) -> AsyncIterator[StreamItem]:
        model = self._model(model_id)
        response = await model.generate_content_async(
            google_contents(messages, self.supports_images),
            generation_config={"temperature": temperature},
            stream=True,
        )
        async for chunk in response:
            for item in google_chunk_items(chunk):
                yield item

    def translate_error(self, exc: Exception) -> UpstreamError | None:
        exceptions = _api_exceptions()
        if isinstance(exc, exceptions.GoogleAPICallError):
            return error_for_status(self.provider_name, exc.code)
        if isinstance(exc, exceptions.GoogleAPIError):
            return UpstreamTransportError(
                "connection to provider failed", provider=self.provider_name
            )
        types = _genai().types
        if isinstance(exc, (types.BlockedPromptException, types.StopCandidateException)):
            return UpstreamRejected(
                "response blocked by safety filters", provider=self.provider_name
            )
        return None
