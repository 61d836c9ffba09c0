"""Lock Repository - Data access for resource edit locks"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from .mongo_client import get_collection, to_document, from_document, RESOURCE_LOCKS
from ..domain.enums import ResourceType
from ..domain.models import ResourceLock
from ..utils.logger import get_logger

logger = get_logger(__name__)


class LockRepository:
    """
    Repository for resource locks

    A single document per (resource_type, resource_id), guarded by a unique
    compound index. Every write is one conditional operation; an expired lock
    is one whose expires_at <= now.
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self._locks = get_collection(RESOURCE_LOCKS, db)

    @staticmethod
    def _key(resource_type: ResourceType, resource_id: str) -> Dict[str, Any]:
        return {"resource_type": ResourceType(resource_type).value, "resource_id": str(resource_id)}

    @staticmethod
    def _to_model(doc: Optional[Dict[str, Any]]) -> Optional[ResourceLock]:
        if doc is None:
            return None
        return ResourceLock.model_validate(from_document(doc))

    async def get(self, resource_type: ResourceType, resource_id: str) -> Optional[ResourceLock]:
        """Get the lock document for a resource, expired or not"""
        doc = await self._locks.find_one(self._key(resource_type, resource_id))
        return self._to_model(doc)

    async def refresh_owned(
        self,
        resource_type: ResourceType,
        resource_id: str,
        owner_id: str,
        now: datetime,
        expires_at: datetime
    ) -> Optional[ResourceLock]:
        """Move expiry of an unexpired lock held by owner_id to expires_at, never earlier"""
        query = self._key(resource_type, resource_id)
        query["locked_by.id"] = owner_id
        query["expires_at"] = {"$gt": to_document(now)}

        doc = await self._locks.find_one_and_update(
            query,
            {"$max": {"expires_at": to_document(expires_at)}},
            return_document=ReturnDocument.AFTER
        )
        return self._to_model(doc)

    async def claim(self, lock: ResourceLock, now: datetime) -> ResourceLock:
        """
        Atomically create the lock, or take over an expired one.

        Matches only an expired document for the resource; when an unexpired
        one exists the upsert collides with the unique index and pymongo raises
        DuplicateKeyError, which the caller turns into a conflict.
        """
        query = self._key(lock.resource_type, lock.resource_id)
        query["expires_at"] = {"$lte": to_document(now)}

        doc = await self._locks.find_one_and_update(
            query,
            {"$set": to_document(lock.model_dump())},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return self._to_model(doc)

    async def extend_owned(
        self,
        resource_type: ResourceType,
        resource_id: str,
        owner_id: str,
        current_expires_at: datetime,
        new_expires_at: datetime
    ) -> Optional[ResourceLock]:
        """Compare-and-set the expiry of an owned lock"""
        query = self._key(resource_type, resource_id)
        query["locked_by.id"] = owner_id
        query["expires_at"] = to_document(current_expires_at)

        doc = await self._locks.find_one_and_update(
            query,
            {"$set": {"expires_at": to_document(new_expires_at)}},
            return_document=ReturnDocument.AFTER
        )
        return self._to_model(doc)

    async def delete_owned(self, resource_type: ResourceType, resource_id: str, owner_id: str) -> bool:
        """Delete the lock only if owner_id holds it"""
        query = self._key(resource_type, resource_id)
        query["locked_by.id"] = owner_id
        result = await self._locks.delete_one(query)
        return result.deleted_count > 0

    async def delete(self, resource_type: ResourceType, resource_id: str) -> Optional[ResourceLock]:
        """Delete the lock regardless of owner; returns what was removed"""
        doc = await self._locks.find_one_and_delete(self._key(resource_type, resource_id))
        return self._to_model(doc)

    async def delete_if_expired(self, resource_type: ResourceType, resource_id: str, now: datetime) -> bool:
        """Lazily remove an expired lock"""
        query = self._key(resource_type, resource_id)
        query["expires_at"] = {"$lte": to_document(now)}
        result = await self._locks.delete_one(query)
        if result.deleted_count:
            logger.info(
                "Removed expired lock",
                extra={"resource_type": query["resource_type"], "resource_id": query["resource_id"]}
            )
        return result.deleted_count > 0

    async def list_locks(self, owner_id: Optional[str] = None) -> List[ResourceLock]:
        """All lock documents, optionally for one owner"""
        query: Dict[str, Any] = {}
        if owner_id:
            query["locked_by.id"] = owner_id

        cursor = self._locks.find(query).sort("locked_at", ASCENDING)
        return [self._to_model(doc) async for doc in cursor]

    async def delete_expired(self, now: datetime) -> int:
        """Bulk delete expired locks"""
        result = await self._locks.delete_many({"expires_at": {"$lte": to_document(now)}})
        return result.deleted_count
