"""
MongoDB adapter for document-based operations.
Exposes the users and files collections and keeps a live connection flag
fed by the driver's server heartbeat events.
"""

import logging
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from pymongo.monitoring import ServerHeartbeatListener

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
FILES_COLLECTION = "files"


class _HeartbeatMonitor(ServerHeartbeatListener):
    """Flips the adapter's liveness flag as heartbeats succeed or fail"""

    def __init__(self, adapter: "MongoAdapter"):
        self.adapter = adapter

    def started(self, event):
        pass

    def succeeded(self, event):
        self.adapter._mark_connected()

    def failed(self, event):
        self.adapter._mark_disconnected(event.reply)


class MongoAdapter:
    """MongoDB adapter for document-based database operations"""

    def __init__(
        self,
        connection_string: Optional[str] = None,
        db_name: str = "files_manager",
        client: Optional[MongoClient] = None,
    ):
        if client is None and not connection_string:
            raise ValueError("MongoDB connection string required when no client is supplied")

        self.connection_string = connection_string
        self.db_name = db_name
        self._connected = False
        self.client = client or MongoClient(
            connection_string,
            serverSelectionTimeoutMS=5000,
            event_listeners=[_HeartbeatMonitor(self)],
        )
        self.db = self.client[db_name]
        self._connect()

    def _connect(self) -> None:
        """Perform the initial handshake; failure leaves the adapter marked down."""
        try:
            self.client.server_info()
            self._mark_connected()
        except PyMongoError as e:
            self._mark_disconnected(e)

    def _mark_connected(self) -> None:
        if not self._connected:
            logger.info(f"Connected to MongoDB database: {self.db_name}")
        self._connected = True

    def _mark_disconnected(self, error) -> None:
        if self._connected:
            logger.error(f"MongoDB connection error: {error}")
        self._connected = False

    def is_alive(self) -> bool:
        return self._connected

    def init_collections(self) -> None:
        """Create the indexes the users and files collections rely on"""
        try:
            self.users.create_index([("email", ASCENDING)], unique=True)
            self.files.create_index([("userId", ASCENDING), ("parentId", ASCENDING), ("_id", ASCENDING)])
            logger.info("MongoDB collections and indexes initialized successfully")
        except PyMongoError as e:
            logger.error(f"Error initializing MongoDB collections: {e}")
            raise

    def get_collection(self, name: str) -> Collection:
        return self.db[name]

    @property
    def users(self) -> Collection:
        return self.db[USERS_COLLECTION]

    @property
    def files(self) -> Collection:
        return self.db[FILES_COLLECTION]

    def count_users(self) -> int:
        """Number of documents in the users collection"""
        return self.users.count_documents({})

    def count_files(self) -> int:
        """Number of documents in the files collection"""
        return self.files.count_documents({})

    def close(self) -> None:
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self._connected = False
            logger.info("MongoDB connection closed")
