"""Storage interface for chat_relay.

This module defines the Protocol for persisting chat snapshots.
"""

from typing import ClassVar, Protocol, runtime_checkable

from chat_relay.models.chat import ChatDTO

__all__ = [
    "ChatStorageInterface",
]


@runtime_checkable
class ChatStorageInterface(Protocol):
    """Contract for persistent chat storage.

    Implementations store whole chat snapshots (chat plus embedded
    messages) keyed by chat identifier.
    """

    config_class: ClassVar[type | None] = None

    async def create_chat(self, chat: ChatDTO) -> str:
        """Create a chat.

        Args:
            chat: Chat snapshot to store

        Returns:
            Chat ID
        """
        ...

    async def update_chat(self, chat: ChatDTO) -> None:
        """Replace the stored snapshot of a chat, creating it if missing.

        Args:
            chat: Updated chat snapshot
        """
        ...

    async def delete_chat(self, chat_id: str) -> bool:
        """Delete a chat.

        Args:
            chat_id: Chat ID to delete

        Returns:
            True if a chat was deleted
        """
        ...

    async def get_chat(self, chat_id: str) -> ChatDTO | None:
        """Get a chat by ID.

        Args:
            chat_id: Chat ID to retrieve

        Returns:
            ChatDTO if found, None otherwise
        """
        ...

    async def find_chats_by_owner(self, owner_id: str) -> list[ChatDTO]:
        """Find all chats of a caller, most recently updated first.

        Args:
            owner_id: Owning caller identifier

        Returns:
            List of chats
        """
        ...
