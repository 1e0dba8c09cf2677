"""
Snapshot stores.
Hold at most one page snapshot per source id. A MongoDB backend keeps them
across runs; the in-memory backend lives only as long as the process.
Stores never retry: callers decide how often to ask again.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from .document import Document
from .exceptions import ParseFailure, StartupError, StoreFailure
from .models import SnapshotRecord

logger = structlog.get_logger(__name__)


class SnapshotStore:
    """Interface shared by the snapshot store backends."""

    durable = False

    async def connect(self) -> None:
        """Open the backing connection, if any."""

    async def disconnect(self) -> None:
        """Release the backing connection, if any."""

    async def get(self, source_id: str) -> Optional[Document]:
        """
        Read the last snapshot of a source.

        Returns:
            The stored Document, or None when nothing was stored yet

        Raises:
            StoreFailure: If the store cannot be read
        """
        raise NotImplementedError

    async def put(self, source_id: str, document: Document) -> None:
        """
        Replace the snapshot of a source.

        Raises:
            StoreFailure: If the store cannot be written
        """
        raise NotImplementedError


class MongoSnapshotStore(SnapshotStore):
    """
    Async MongoDB snapshot store.
    One record per source: {name, dom, updatedAt}.
    """

    durable = True

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        collection_name: str,
        timeout_ms: int = 10000
    ):
        """
        Initialize the MongoDB store.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the collection
            timeout_ms: Server selection and socket timeout in milliseconds
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(
                self.connection_url,
                serverSelectionTimeoutMS=self.timeout_ms,
                socketTimeoutMS=self.timeout_ms,
            )
            self.database = self.client[self.database_name]
            self.collection = self.database[self.collection_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

            await self.collection.create_index("name", unique=True)

        except PyMongoError as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise StartupError(f"Cannot connect to MongoDB: {e}") from e

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            self.collection = None
            logger.info("Disconnected from MongoDB")

    async def get(self, source_id: str) -> Optional[Document]:
        if self.collection is None:
            raise StoreFailure("read", source_id, "store is not connected")

        try:
            raw = await self.collection.find_one({"name": source_id})
        except PyMongoError as e:
            logger.error("Failed to read snapshot", source_id=source_id, error=str(e))
            raise StoreFailure("read", source_id, str(e)) from e

        if raw is None:
            logger.warning("No snapshot stored yet", source_id=source_id)
            return None

        raw.pop("_id", None)
        try:
            record = SnapshotRecord(**raw)
            document = Document.from_html(record.dom)
        except (ValidationError, ParseFailure) as e:
            logger.error("Stored snapshot is unreadable", source_id=source_id, error=str(e))
            raise StoreFailure("read", source_id, str(e)) from e

        logger.info("Successfully fetched old snapshot",
                    source_id=source_id,
                    updated_at=record.updated_at.isoformat())
        return document

    async def put(self, source_id: str, document: Document) -> None:
        if self.collection is None:
            raise StoreFailure("write", source_id, "store is not connected")

        record = SnapshotRecord(name=source_id, dom=document.outer_html())
        update = record.to_mongo()
        update.pop("name")

        try:
            await self.collection.update_one(
                {"name": source_id},
                {"$set": update},
                upsert=True
            )
        except PyMongoError as e:
            logger.error("Failed to save snapshot", source_id=source_id, error=str(e))
            raise StoreFailure("write", source_id, str(e)) from e

        logger.debug("Saved snapshot", source_id=source_id)


class MemorySnapshotStore(SnapshotStore):
    """
    Process-memory snapshot store.
    Seeded with an initial fetch at startup; nothing survives a restart.
    """

    def __init__(self):
        self._snapshots: Dict[str, Document] = {}
        self.updated_at: Dict[str, datetime] = {}

    async def get(self, source_id: str) -> Optional[Document]:
        return self._snapshots.get(source_id)

    async def put(self, source_id: str, document: Document) -> None:
        self._snapshots[source_id] = document
        self.updated_at[source_id] = datetime.now(timezone.utc)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._snapshots
