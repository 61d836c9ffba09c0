"""User Repository - Data access for portal users"""
from datetime import datetime
from typing import Any, Dict, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from .mongo_client import get_collection, to_document, from_document, USERS
from ..domain.models import User


class UserRepository:
    """Repository for user documents"""

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self._users = get_collection(USERS, db)

    @staticmethod
    def _to_model(doc: Optional[Dict[str, Any]]) -> Optional[User]:
        if doc is None:
            return None
        return User.model_validate(from_document(doc))

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._to_model(await self._users.find_one({"user_id": user_id}))

    async def create_user(self, user: User) -> User:
        doc = to_document(user.model_dump())
        doc["email"] = doc["email"].lower()
        await self._users.insert_one(doc)
        return user

    async def update_user(
        self,
        user_id: str,
        changes: Dict[str, Any],
        updated_at: datetime
    ) -> Optional[User]:
        """Apply a partial update and return the stored result"""
        update = to_document(dict(changes))
        update["updated_at"] = to_document(updated_at)
        doc = await self._users.find_one_and_update(
            {"user_id": user_id},
            {"$set": update},
            return_document=ReturnDocument.AFTER
        )
        return self._to_model(doc)
