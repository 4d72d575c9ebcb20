"""MongoDB chat storage for chat_relay."""

from typing import Any, Self

from chat_relay.config import MongoSettings
from chat_relay.infra.mongo.client import MongoClient
from chat_relay.interfaces.storage import ChatStorageInterface
from chat_relay.logging import get_logger
from chat_relay.models.chat import ChatDTO

__all__ = [
    "MongoChatRepository",
]

logger = get_logger(__name__)

# Mongo's own key is never part of a ChatDTO
_PROJECTION = {"_id": 0}


class MongoChatRepository(ChatStorageInterface):
    """MongoDB implementation of ChatStorageInterface.

    One document per chat with its messages embedded. Updates replace
    the whole document, so the stored chat is always a consistent
    snapshot of what the relay held at write time.
    """

    config_class = MongoSettings

    def __init__(self, client: MongoClient, *, owns_client: bool = False) -> None:
        """Initialize repository.

        Args:
            client: Connected MongoClient instance
            owns_client: Disconnect the client on close
        """
        self._client = client
        self._owns_client = owns_client

    @classmethod
    async def from_config(cls, config: MongoSettings) -> Self:
        """Connect, ensure indexes and return a repository owning the client."""
        client = MongoClient(config)
        await client.connect()
        await client.create_indexes()
        return cls(client, owns_client=True)

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        return await cls.from_config(MongoSettings(**config))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.disconnect()

    async def ping(self) -> bool:
        return await self._client.ping()

    async def create_chat(self, chat: ChatDTO) -> str:
        await self._client.chats.insert_one(chat.model_dump(mode="python"))
        logger.debug("chat_created", chat_id=chat.id, owner_id=chat.owner_id)
        return chat.id

    async def update_chat(self, chat: ChatDTO) -> None:
        await self._client.chats.replace_one(
            {"id": chat.id}, chat.model_dump(mode="python"), upsert=True
        )

    async def delete_chat(self, chat_id: str) -> bool:
        result = await self._client.chats.delete_one({"id": chat_id})
        deleted = result.deleted_count > 0
        if deleted:
            logger.debug("chat_deleted", chat_id=chat_id)
        return deleted

    async def get_chat(self, chat_id: str) -> ChatDTO | None:
        doc = await self._client.chats.find_one({"id": chat_id}, _PROJECTION)
        return ChatDTO.model_validate(doc) if doc else None

    async def find_chats_by_owner(self, owner_id: str) -> list[ChatDTO]:
        """Chats of an owner, most recently updated first."""
        cursor = self._client.chats.find({"owner_id": owner_id}, _PROJECTION)
        return [ChatDTO.model_validate(doc) async for doc in cursor.sort("updated_at", -1)]
