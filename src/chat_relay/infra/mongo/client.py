"""MongoDB client for chat_relay.

Thin Motor wrapper owning one connection pool and the single ``chats``
collection, in which each chat document embeds its messages.
"""

from typing import TYPE_CHECKING, Any

from chat_relay.config import MongoSettings
from chat_relay.logging import get_logger
from chat_relay.utils.lazy_import import lazy_import

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase

__all__ = [
    "MongoClient",
]

logger = get_logger(__name__)

get_async_motor = lazy_import("motor.motor_asyncio", "AsyncIOMotorClient")

_APP_NAME = "chat-relay"


class MongoClient:
    """Async MongoDB client wrapper.

    Datetimes are read back timezone-aware so stored chats compare equal
    to the in-memory ones.

    Example:
        async with MongoClient(settings) as client:
            await client.chats.replace_one({"id": doc["id"]}, doc, upsert=True)
    """

    def __init__(self, settings: MongoSettings) -> None:
        self._settings = settings
        self._motor: Any = None
        self._db: Any = None

    @property
    def is_connected(self) -> bool:
        return self._motor is not None

    async def connect(self) -> None:
        """Open the pool and verify the server answers.

        Raises:
            pymongo.errors.ServerSelectionTimeoutError: If no server is reachable
        """
        if self.is_connected:
            return
        motor_client_cls = get_async_motor()
        self._motor = motor_client_cls(
            self._settings.uri.get_secret_value(),
            tz_aware=True,
            appname=_APP_NAME,
            serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
        )
        self._db = self._motor[self._settings.database]
        await self.ping(raise_on_error=True)
        logger.info("connected_to_mongodb", database=self._settings.database)

    async def disconnect(self) -> None:
        if not self.is_connected:
            return
        self._motor.close()
        self._motor = None
        self._db = None
        logger.info("disconnected_from_mongodb")

    async def ping(self, raise_on_error: bool = False) -> bool:
        """Round-trip to the server.

        Args:
            raise_on_error: Propagate the driver error instead of returning False
        """
        try:
            await self.db.command("ping")
        except Exception as e:
            if raise_on_error:
                raise
            logger.warning("mongodb_ping_failed", error=str(e))
            return False
        return True

    @property
    def db(self) -> "AsyncIOMotorDatabase[dict[str, Any]]":
        """Database handle.

        Raises:
            RuntimeError: If not connected
        """
        if self._db is None:
            raise RuntimeError("MongoClient not connected. Call connect() first.")
        return self._db

    @property
    def chats(self) -> "AsyncIOMotorCollection[dict[str, Any]]":
        return self.db[f"{self._settings.collection_prefix}chats"]

    async def create_indexes(self) -> None:
        """Index chats by id (unique) and by owner, newest first."""
        await self.chats.create_index("id", unique=True)
        await self.chats.create_index([("owner_id", 1), ("updated_at", -1)])
        logger.info("created_mongodb_indexes", collection=self.chats.name)

    async def __aenter__(self) -> "MongoClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
