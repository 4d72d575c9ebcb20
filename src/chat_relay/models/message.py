"""Message models for chat_relay.

These models represent chat messages, their attachments and
the token accounting of a single exchange.
"""

import math
from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

__all__ = [
    "ImageAttachment",
    "MessageDTO",
    "MessageRole",
    "Usage",
]


class MessageRole(StrEnum):
    """Author role of a message.

    ``error`` is never sent to a provider; it marks an assistant turn
    that ended in failure.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    ERROR = "error"


class ImageAttachment(BaseModel, frozen=True):
    """Base64-encoded image attached to a user message."""

    data: str = Field(min_length=1, description="Base64 payload")
    media_type: str = Field(default="image/png")

    @property
    def data_url(self) -> str:
        """Inline ``data:`` URL form used by OpenAI-style APIs."""
        return f"data:{self.media_type};base64,{self.data}"


class Usage(BaseModel, frozen=True):
    """Token accounting for one exchange.

    The total is derived, so ``total_tokens == prompt_tokens + completion_tokens``
    holds by construction. Counts are estimates (characters / 4, rounded up)
    unless a provider reported exact figures.

    Attributes:
        prompt_tokens: Tokens consumed by the input messages
        completion_tokens: Tokens produced by the model
        estimated: True when the counts are character-based estimates
    """

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    estimated: bool = Field(default=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @classmethod
    def estimate(cls, prompt_texts: Iterable[str], completion_text: str) -> "Usage":
        """Estimate usage from the raw input texts and the generated text."""
        prompt_chars = sum(len(text) for text in prompt_texts)
        return cls(
            prompt_tokens=math.ceil(prompt_chars / 4),
            completion_tokens=math.ceil(len(completion_text) / 4),
            estimated=True,
        )

    def __add__(self, other: "Usage") -> "Usage":
        if not isinstance(other, Usage):
            return NotImplemented
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            estimated=self.estimated or other.estimated,
        )


class MessageDTO(BaseModel, frozen=True):
    """Public Message data transfer object.

    Snapshot of a message as handed to the persistence collaborator.

    Attributes:
        id: Message identifier (uuid4 hex)
        role: Author role
        content: Text content
        images: Attached images (user messages only)
        content_type: "text" or "multimodal"
        created_at: Creation timestamp (UTC)
        model_id: Model that produced the message, if any
        usage: Token usage for assistant messages
        loading: True only while a response is streaming
        schema_version: Schema version for forward compatibility
    """

    id: str
    role: MessageRole
    content: str = ""
    images: list[ImageAttachment] = Field(default_factory=list)
    content_type: str = Field(default="text")
    created_at: datetime
    model_id: str | None = None
    usage: Usage | None = None
    loading: bool = False
    schema_version: int = Field(default=1)
