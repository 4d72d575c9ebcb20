"""Debounced chat persistence for chat_relay.

Streaming mutates a chat many times per second; only settled snapshots
are written to storage.
"""

import asyncio

from chat_relay.domain.chat import Chat
from chat_relay.interfaces.storage import ChatStorageInterface
from chat_relay.logging import get_logger
from chat_relay.models.chat import ChatDTO

__all__ = [
    "DebouncedChatWriter",
]

logger = get_logger(__name__)


class DebouncedChatWriter:
    """Coalesces chat snapshots and writes them after an idle period.

    ``schedule`` restarts the idle timer of a chat; ``flush`` writes the
    latest snapshot right away. Storage failures are logged and never
    raised, so a slow or failing store cannot break a response that has
    already completed in memory.

    Example:
        writer = DebouncedChatWriter(storage, delay=2.0)
        writer.schedule(chat)      # during streaming
        await writer.flush(chat)   # on completion
    """

    def __init__(self, storage: ChatStorageInterface, delay: float = 2.0) -> None:
        """Initialize the writer.

        Args:
            storage: Chat storage collaborator
            delay: Idle period in seconds before a scheduled write
        """
        self._storage = storage
        self._delay = delay
        self._pending: dict[str, asyncio.Task[bool]] = {}

    @property
    def pending_chat_ids(self) -> list[str]:
        return [chat_id for chat_id, task in self._pending.items() if not task.done()]

    async def create(self, chat: Chat) -> bool:
        """Store a new chat immediately."""
        snapshot = chat.to_dto()
        try:
            await self._storage.create_chat(snapshot)
        except Exception as e:
            logger.warning("chat_persist_failed", chat_id=chat.id, operation="create", error=str(e))
            return False
        return True

    def schedule(self, chat: Chat) -> None:
        """Write the chat once it has been idle for the debounce delay.

        Must be called from within a running event loop.
        """
        self._cancel(chat.id)
        self._pending[chat.id] = asyncio.create_task(self._write_later(chat))

    async def flush(self, chat: Chat) -> bool:
        """Cancel any pending write and store the current snapshot now.

        Returns:
            True if the write succeeded
        """
        self._cancel(chat.id)
        return await self._write(chat.to_dto())

    async def close(self) -> None:
        """Wait for all scheduled writes to finish."""
        tasks = [task for task in self._pending.values() if not task.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()

    def _cancel(self, chat_id: str) -> None:
        task = self._pending.pop(chat_id, None)
        if task is not None and not task.done():
            task.cancel()

    async def _write_later(self, chat: Chat) -> bool:
        await asyncio.sleep(self._delay)
        # Snapshot once the chat has settled, not per scheduled delta
        written = await self._write(chat.to_dto())
        self._pending.pop(chat.id, None)
        return written

    async def _write(self, snapshot: ChatDTO) -> bool:
        try:
            await self._storage.update_chat(snapshot)
        except Exception as e:
            logger.warning(
                "chat_persist_failed", chat_id=snapshot.id, operation="update", error=str(e)
            )
            return False
        logger.debug("chat_persisted", chat_id=snapshot.id, messages=snapshot.message_count)
        return True
