"""Internal Chat entity for chat_relay.

This module contains the internal Chat domain model with business logic.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from chat_relay.domain.message import Message
from chat_relay.models.chat import ChatDTO
from chat_relay.models.message import MessageRole

__all__ = [
    "DEFAULT_CHAT_TITLE",
    "Chat",
    "generate_chat_title",
]

DEFAULT_CHAT_TITLE = "New Chat"

_TITLE_LENGTH = 30


def generate_chat_title(content: str) -> str:
    """Derive a chat title from the first user message.

    Short messages are used as-is; longer ones are cut to 30 characters
    and suffixed with ``...``.
    """
    title = (content or "").strip()
    if not title:
        return DEFAULT_CHAT_TITLE
    if len(title) < _TITLE_LENGTH:
        return title
    return title[:_TITLE_LENGTH] + "..."


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class Chat:
    """Internal Chat entity with business logic.

    Messages are append-only and chronological. The title moves once
    from the placeholder to a derived value; it never reverts.
    """

    owner_id: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    title: str = DEFAULT_CHAT_TITLE
    messages: list[Message] = field(default_factory=list)
    model_id: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    placeholder_title: str = DEFAULT_CHAT_TITLE
    _title_derived: bool = field(default=False, repr=False)

    def append(self, message: Message) -> Message:
        """Append a message and bump the update timestamp."""
        self.messages.append(message)
        self.touch()
        return message

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def get_message(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    @property
    def has_placeholder_title(self) -> bool:
        return not self._title_derived and self.title == self.placeholder_title

    def derive_title(self) -> bool:
        """Replace the placeholder title after the first completed exchange.

        Returns:
            True if the title changed
        """
        if not self.has_placeholder_title:
            return False
        first_user = next((m for m in self.messages if m.role == MessageRole.USER), None)
        if first_user is None:
            return False
        if not any(m.role == MessageRole.ASSISTANT and not m.loading for m in self.messages):
            return False
        self.title = generate_chat_title(first_user.content)
        self._title_derived = True
        self.touch()
        return True

    def to_dto(self) -> ChatDTO:
        """Convert to immutable DTO for persistence."""
        return ChatDTO(
            id=self.id,
            owner_id=self.owner_id,
            title=self.title,
            messages=[m.to_dto() for m in self.messages],
            model_id=self.model_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: ChatDTO, placeholder_title: str = DEFAULT_CHAT_TITLE) -> "Chat":
        """Create from DTO."""
        return cls(
            id=dto.id,
            owner_id=dto.owner_id,
            title=dto.title,
            messages=[Message.from_dto(m) for m in dto.messages],
            model_id=dto.model_id,
            created_at=dto.created_at,
            updated_at=dto.updated_at,
            placeholder_title=placeholder_title,
            _title_derived=dto.title != placeholder_title,
        )
