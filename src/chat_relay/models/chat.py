"""Chat models for chat_relay.

These models represent chat snapshots exchanged with the
persistence collaborator.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from chat_relay.models.message import MessageDTO

__all__ = [
    "ChatDTO",
]


class ChatDTO(BaseModel, frozen=True):
    """Public Chat data transfer object.

    Attributes:
        id: Chat identifier
        owner_id: Identifier of the owning caller
        title: Chat title ("New Chat" until the first exchange completes)
        messages: Messages in chronological order
        model_id: Default model for the chat, if chosen
        created_at: Creation timestamp (UTC)
        updated_at: Last mutation timestamp (UTC)
        schema_version: Schema version for forward compatibility
    """

    id: str
    owner_id: str
    title: str
    messages: list[MessageDTO] = Field(default_factory=list)
    model_id: str | None = None
    created_at: datetime
    updated_at: datetime
    schema_version: int = Field(default=1)

    @property
    def message_count(self) -> int:
        """Get the number of messages in this chat."""
        return len(self.messages)
