import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from ..chat_models import MessageRecord
from .message_sink import MessageSink, MessageSinkError

logger = logging.getLogger(__name__)


class MongoDBMessageSink(MessageSink):
    """Message sink writing one document per record to a MongoDB collection."""
    def __init__(
        self,
        *,
        mongo_uri: str,
        mongo_db: str,
        mongo_collection: str,
        collection: Optional[Any] = None,
    ):
        super().__init__(name="mongodb")
        if not mongo_uri or not mongo_db or not mongo_collection:
            raise ValueError("MongoDB URI, database, and collection are required")
        self.mongo_uri = mongo_uri
        self.mongo_db = mongo_db
        self.mongo_collection = mongo_collection
        if collection is not None:
            # Pre-built async collection, e.g. one shared with the host app
            self._async_client = None
            self._async_coll = collection
        else:
            self._async_client = AsyncIOMotorClient(mongo_uri)
            self._async_coll = self._async_client[mongo_db][mongo_collection]

    @staticmethod
    def to_document(record: MessageRecord) -> dict:
        """Map a record to the stored document layout."""
        return {
            "_id": record.id,
            "timestamp": record.timestamp,
            "username": record.sender_name,
            "message": record.body,
        }

    async def append(self, record: MessageRecord) -> None:
        try:
            await self._async_coll.insert_one(self.to_document(record))
        except PyMongoError as e:
            raise MessageSinkError(f"Failed to save message to MongoDB: {e}") from e
        logger.info(f"[SINK] Saved message: {record.sender_name}: {record.body}")

    async def close(self) -> None:
        if self._async_client is not None:
            self._async_client.close()
            self._async_client = None
