"""MongoDB Client - Async (Motor) connection and index management"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING

from ..config.settings import settings
from ..utils.logger import get_logger
from ..utils.time import to_storage, from_storage

logger = get_logger(__name__)

# Collection names
USERS = "users"
ROLES = "roles"
RESOURCE_LOCKS = "resource_locks"
SYSTEM_SETTINGS = "system_settings"
MEMOS = "memos"
MEMO_ACKNOWLEDGMENTS = "memo_acknowledgments"
ACTIVITY_LOGS = "activity_logs"
CALENDAR_EVENTS = "calendar_events"

# Global client instance
_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


def get_client() -> AsyncIOMotorClient:
    """Get or create the Motor client"""
    global _client
    if _client is None:
        logger.info(f"Creating async MongoDB client for: {settings.mongo_uri}")
        _client = AsyncIOMotorClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
            tz_aware=False,
        )
    return _client


def get_database() -> AsyncIOMotorDatabase:
    """Get the application database"""
    global _database
    if _database is None:
        _database = get_client()[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str, db: Optional[AsyncIOMotorDatabase] = None) -> AsyncIOMotorCollection:
    """Get a collection from the given database (application database by default)"""
    return (db if db is not None else get_database())[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def create_indexes(db: Optional[AsyncIOMotorDatabase] = None) -> None:
    """Create all required indexes"""
    db = db if db is not None else get_database()
    logger.info("Creating MongoDB indexes...")

    users = db[USERS]
    await users.create_index("user_id", unique=True)
    await users.create_index("email", unique=True)
    await users.create_index([("role", ASCENDING), ("department", ASCENDING)])

    roles = db[ROLES]
    await roles.create_index("name", unique=True)

    # One lock document per resource; acquisition races resolve on this index
    locks = db[RESOURCE_LOCKS]
    await locks.create_index(
        [("resource_type", ASCENDING), ("resource_id", ASCENDING)],
        unique=True,
        name="uniq_resource"
    )
    await locks.create_index("lock_id", unique=True)
    await locks.create_index("locked_by.id")
    await locks.create_index("expires_at")

    system_settings = db[SYSTEM_SETTINGS]
    await system_settings.create_index("key", unique=True)

    memos = db[MEMOS]
    await memos.create_index("memo_id", unique=True)
    await memos.create_index([("sender_id", ASCENDING), ("status", ASCENDING)])
    await memos.create_index("department")
    await memos.create_index("updated_at", background=True)

    acks = db[MEMO_ACKNOWLEDGMENTS]
    await acks.create_index([("memo_id", ASCENDING), ("recipient_id", ASCENDING)], unique=True)

    activity = db[ACTIVITY_LOGS]
    await activity.create_index("activity_id", unique=True)
    await activity.create_index([("actor.id", ASCENDING), ("timestamp", DESCENDING)])
    await activity.create_index("action")
    await activity.create_index("timestamp", background=True)

    events = db[CALENDAR_EVENTS]
    await events.create_index("event_id", unique=True)
    await events.create_index("start")

    logger.info("MongoDB indexes created successfully")


async def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        await get_client().admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }


def to_document(value: Any) -> Any:
    """Prepare a python value for storage: enums become values, aware datetimes naive UTC"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_storage(value)
    if isinstance(value, dict):
        return {k: to_document(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document(v) for v in value]
    return value


def from_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Strip the Mongo _id and re-attach UTC to stored datetimes"""
    if doc is None:
        return None

    def _convert(value: Any) -> Any:
        if isinstance(value, datetime):
            return from_storage(value)
        if isinstance(value, dict):
            return {k: _convert(v) for k, v in value.items()}
        if isinstance(value, list):
            return [_convert(v) for v in value]
        return value

    return {k: _convert(v) for k, v in doc.items() if k != "_id"}
