"""Internal Message entity for chat_relay.

This module contains the mutable Message domain model that a
response stream updates in place.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from chat_relay.models.message import ImageAttachment, MessageDTO, MessageRole, Usage

__all__ = [
    "Message",
    "new_message_id",
]


def new_message_id() -> str:
    """Generate a fresh message identifier."""
    return uuid.uuid4().hex


@dataclass
class Message:
    """Internal Message entity.

    This is a mutable internal representation used while a response
    streams. Convert to MessageDTO for persistence and external use.
    """

    role: MessageRole
    content: str = ""
    id: str = field(default_factory=new_message_id)
    images: list[ImageAttachment] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    model_id: str | None = None
    usage: Usage | None = None
    loading: bool = False

    @classmethod
    def placeholder(cls, model_id: str | None = None) -> "Message":
        """Create the empty, loading assistant message shown while streaming."""
        return cls(role=MessageRole.ASSISTANT, content="", model_id=model_id, loading=True)

    @property
    def content_type(self) -> str:
        return "multimodal" if self.images else "text"

    @property
    def is_error(self) -> bool:
        return self.role == MessageRole.ERROR

    def to_dto(self) -> MessageDTO:
        """Convert to immutable DTO for persistence."""
        return MessageDTO(
            id=self.id,
            role=self.role,
            content=self.content,
            images=list(self.images),
            content_type=self.content_type,
            created_at=self.created_at,
            model_id=self.model_id,
            usage=self.usage,
            loading=self.loading,
        )

    @classmethod
    def from_dto(cls, dto: MessageDTO) -> "Message":
        """Create from DTO."""
        return cls(
            id=dto.id,
            role=dto.role,
            content=dto.content,
            images=list(dto.images),
            created_at=dto.created_at,
            model_id=dto.model_id,
            usage=dto.usage,
            loading=dto.loading,
        )
