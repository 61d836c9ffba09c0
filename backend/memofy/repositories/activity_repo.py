"""Activity Log Repository - Data access for activity entries"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from .mongo_client import get_collection, to_document, from_document, ACTIVITY_LOGS
from ..domain.models import ActivityLogEntry
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ActivityLogRepository:
    """Repository for activity entries (append-only, admin bulk purge)"""

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self._activity = get_collection(ACTIVITY_LOGS, db)

    async def create_entry(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        """Append an activity entry"""
        doc = to_document(entry.model_dump())
        doc["_id"] = entry.activity_id

        await self._activity.insert_one(doc)
        logger.debug(
            f"Created activity entry: {entry.action}",
            extra={"action": entry.action, "actor_id": entry.actor.id}
        )
        return entry

    async def list_entries(
        self,
        actor_id: Optional[str] = None,
        action: Optional[str] = None,
        target_id: Optional[str] = None,
        department: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[ActivityLogEntry]:
        """Newest first"""
        query = self._build_query(actor_id, action, target_id, department)
        cursor = self._activity.find(query).sort("timestamp", DESCENDING).skip(skip).limit(limit)
        return [ActivityLogEntry.model_validate(from_document(doc)) async for doc in cursor]

    async def count_entries(
        self,
        actor_id: Optional[str] = None,
        action: Optional[str] = None,
        target_id: Optional[str] = None,
        department: Optional[str] = None
    ) -> int:
        return await self._activity.count_documents(
            self._build_query(actor_id, action, target_id, department)
        )

    async def purge(self, before: Optional[datetime] = None) -> int:
        """Bulk delete entries (all, or older than `before`)"""
        query: Dict[str, Any] = {}
        if before is not None:
            query["timestamp"] = {"$lt": to_document(before)}
        result = await self._activity.delete_many(query)
        logger.warning(f"Purged {result.deleted_count} activity entries")
        return result.deleted_count

    @staticmethod
    def _build_query(
        actor_id: Optional[str],
        action: Optional[str],
        target_id: Optional[str],
        department: Optional[str]
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if actor_id:
            query["actor.id"] = actor_id
        if action:
            query["action"] = action
        if target_id:
            query["target_id"] = target_id
        if department:
            query["actor.department"] = department
        return query
