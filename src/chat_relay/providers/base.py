"""Base streaming adapter for chat_relay.

This module defines the abstract base class every provider adapter
derives from, plus the shared error translation helpers.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import ClassVar

from chat_relay.domain.message import Message
from chat_relay.errors import (
    ChatRelayError,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamRejected,
    UpstreamTransportError,
)
from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.logging import get_logger
from chat_relay.models.message import MessageRole, Usage
from chat_relay.models.stream import TextDelta

__all__ = [
    "ProviderAdapter",
    "StreamItem",
    "error_for_status",
    "sendable_messages",
]

logger = get_logger(__name__)

StreamItem = TextDelta | Usage

_REJECTED_STATUSES = frozenset({400, 401, 403, 404, 409, 413, 422})

_STATUS_MESSAGES = {
    400: "invalid request",
    401: "authentication failed",
    403: "access denied",
    404: "model not found",
    413: "request too large",
    422: "invalid request",
    429: "rate limit exceeded",
}


def error_for_status(
    provider: str,
    status_code: int | None,
    message: str | None = None,
) -> UpstreamError:
    """Map an upstream HTTP status onto the error taxonomy.

    Provider response bodies are never echoed; the message is derived
    from the status code unless one is given.

    Args:
        provider: Provider key
        status_code: HTTP status returned by the provider, if any
        message: Optional sanitized message

    Returns:
        UpstreamRateLimited for 429, UpstreamRejected for client errors,
        UpstreamTransportError otherwise
    """
    if message is None:
        fallback = f"HTTP {status_code}" if status_code else "no response"
        message = _STATUS_MESSAGES.get(status_code or 0, fallback)
    if status_code == 429:
        return UpstreamRateLimited(message, provider=provider, status_code=status_code)
    if status_code in _REJECTED_STATUSES:
        return UpstreamRejected(message, provider=provider, status_code=status_code)
    return UpstreamTransportError(message, provider=provider, status_code=status_code)


def sendable_messages(messages: Sequence[Message]) -> list[Message]:
    """Messages that may be sent upstream.

    Error turns and still-loading placeholders are dropped.
    """
    return [m for m in messages if m.role != MessageRole.ERROR and not m.loading]


class ProviderAdapter(ABC):
    """Abstract base class for provider streaming adapters.

    An adapter translates one provider's wire protocol into TextDelta
    values followed by exactly one Usage record. Subclasses implement
    ``_stream`` (yielding deltas, and a Usage when the provider reports
    exact counts) and ``translate_error``; the base class accumulates
    text, estimates usage when none was reported and guarantees that
    nothing provider-specific escapes.

    Example:
        class MyAdapter(ProviderAdapter):
            @property
            def provider_name(self) -> str:
                return "my_provider"

            async def _stream(self, messages, model_id, temperature):
                yield TextDelta(text="hello")

            def translate_error(self, exc):
                return None
    """

    supports_images: ClassVar[bool] = False

    def __init__(self, credentials: CredentialSource | None = None) -> None:
        self._credentials = credentials

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider key this adapter serves.

        The key matches ModelInfo.provider and is used for registry
        lookup and availability checks.
        """
        ...

    def credential(self, fallback: str | None = None) -> str | None:
        """Current credential for this provider, re-read on every call."""
        if self._credentials is not None:
            secret = self._credentials.get_credential(self.provider_name)
            if secret:
                return secret
        return fallback

    def require_credential(self, fallback: str | None = None) -> str:
        """Current credential, or UpstreamRejected when none is configured."""
        secret = self.credential(fallback)
        if not secret:
            raise UpstreamRejected(
                "missing credential", provider=self.provider_name, status_code=401
            )
        return secret

    @abstractmethod
    def _stream(
        self,
        messages: list[Message],
        model_id: str,
        temperature: float,
    ) -> AsyncIterator[StreamItem]:
        """Provider-specific stream of deltas and, optionally, exact usage."""
        ...

    @abstractmethod
    def translate_error(self, exc: Exception) -> UpstreamError | None:
        """Translate a provider exception, or return None if unrecognised."""
        ...

    async def stream(
        self,
        messages: Sequence[Message],
        model_id: str,
        temperature: float = 0.7,
    ) -> AsyncIterator[StreamItem]:
        """Stream a response.

        Args:
            messages: Conversation in chronological order
            model_id: Provider model identifier
            temperature: Sampling temperature

        Yields:
            TextDelta values in upstream order, then one final Usage

        Raises:
            UpstreamError: On any provider-side failure; deltas already
                yielded remain valid
        """
        outgoing = sendable_messages(messages)
        parts: list[str] = []
        reported: Usage | None = None
        try:
            async for item in self._stream(outgoing, model_id, temperature):
                if isinstance(item, Usage):
                    reported = item
                elif item.text:
                    parts.append(item.text)
                    yield item
        except ChatRelayError:
            raise
        except Exception as e:
            error = self.translate_error(e) or UpstreamTransportError(
                f"Unexpected {type(e).__name__} from {self.provider_name}",
                provider=self.provider_name,
            )
            logger.debug(
                "provider_error_translated",
                provider=self.provider_name,
                error_type=type(e).__name__,
                translated=type(error).__name__,
            )
            raise error from e

        yield reported or Usage.estimate((m.content for m in outgoing), "".join(parts))
