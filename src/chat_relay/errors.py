"""Error taxonomy for chat_relay.

Routing failures (NoEligibleModel, ProviderUnavailable, ImagesNotSupported)
are raised before any upstream call. Streaming failures (UpstreamError and
its subclasses) are raised by provider adapters once a stream is open.
Every error knows the text a caller should see via ``user_message``.
"""

from typing import Any

__all__ = [
    "ChatRelayError",
    "ImagesNotSupported",
    "InvalidStreamTransition",
    "ModelNotFound",
    "NoEligibleModel",
    "ProviderUnavailable",
    "StreamCancelled",
    "UpstreamError",
    "UpstreamRateLimited",
    "UpstreamRejected",
    "UpstreamTransportError",
]


class ChatRelayError(Exception):
    """Base exception for all chat_relay errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}

    @property
    def user_message(self) -> str:
        """Message safe to show to the caller."""
        return "Sorry, something went wrong. Please try again."


class NoEligibleModel(ChatRelayError):
    """The catalog has no model the caller's tier may use."""

    def __init__(self, tier: str, task: str | None = None) -> None:
        super().__init__(
            f"No eligible model for tier={tier!r} task={task!r}",
            details={"tier": tier, "task": task},
        )
        self.tier = tier
        self.task = task

    @property
    def user_message(self) -> str:
        return "No model is available for your subscription tier."


class ModelNotFound(ChatRelayError, KeyError):
    """A model identifier is not present in the catalog."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f"Model with ID {model_id} not found", details={"model_id": model_id})
        self.model_id = model_id

    def __str__(self) -> str:
        return self.args[0]

    @property
    def user_message(self) -> str:
        return f"The model {self.model_id} does not exist."


class ProviderUnavailable(ChatRelayError):
    """The selected model's provider has no usable credential or endpoint."""

    def __init__(self, provider: str, alternative: str | None = None) -> None:
        super().__init__(
            f"The selected AI provider ({provider}) is not available",
            details={"provider": provider, "alternative": alternative},
        )
        self.provider = provider
        self.alternative = alternative

    @property
    def user_message(self) -> str:
        suggestion = (
            f"select a different model such as {self.alternative}"
            if self.alternative
            else "select a different model"
        )
        return (
            f"The selected AI provider ({self.provider}) is not available. "
            f"Please set up a valid API key for {self.provider} or {suggestion}."
        )


class ImagesNotSupported(ChatRelayError):
    """Images were attached but the selected model cannot accept them."""

    def __init__(self, model_id: str) -> None:
        super().__init__(
            f"Model {model_id} does not accept image attachments",
            details={"model_id": model_id},
        )
        self.model_id = model_id

    @property
    def user_message(self) -> str:
        return (
            f"The model {self.model_id} cannot read images. "
            "Please remove the attachments or select a different model."
        )


class UpstreamError(ChatRelayError):
    """Base class for failures reported by, or on the way to, a provider."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.provider = provider
        self.status_code = status_code


class UpstreamRejected(UpstreamError):
    """The provider refused the request (authentication, authorization, validation)."""

    @property
    def user_message(self) -> str:
        return (
            f"The {self.provider} service rejected the request: {self}. "
            "Please check the provider configuration or try a different model."
        )


class UpstreamRateLimited(UpstreamError):
    """The provider signalled throttling."""

    @property
    def user_message(self) -> str:
        return "The AI provider is experiencing high traffic. Please try again later."


class UpstreamTransportError(UpstreamError):
    """The connection dropped or the stream could not be decoded."""

    @property
    def user_message(self) -> str:
        return (
            "The AI provider encountered an error while responding. "
            "Please try again or select a different model."
        )


class StreamCancelled(ChatRelayError):
    """The consumer of a stream went away before it finished."""

    def __init__(self) -> None:
        super().__init__("Stream cancelled by the caller")

    @property
    def user_message(self) -> str:
        return "Response generation was cancelled."


class InvalidStreamTransition(ChatRelayError):
    """A response stream was driven after reaching a terminal state."""

    def __init__(self, state: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} a response stream in state {state}",
            details={"state": state, "action": action},
        )
        self.state = state
        self.action = action
