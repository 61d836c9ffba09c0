"""Role Repository - Data access for RBAC role records"""
from typing import List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from .mongo_client import get_collection, to_document, from_document, ROLES
from ..domain.enums import UserRole
from ..domain.models import RoleRecord
from ..utils.logger import get_logger

logger = get_logger(__name__)


class RoleRepository:
    """Repository for role records (read-mostly)"""

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self._roles = get_collection(ROLES, db)

    async def get_role(self, name: UserRole) -> Optional[RoleRecord]:
        """Get a role by name"""
        doc = await self._roles.find_one({"name": UserRole(name).value})
        if doc is None:
            return None
        return RoleRecord.model_validate(from_document(doc))

    async def list_roles(self) -> List[RoleRecord]:
        cursor = self._roles.find({}).sort("name", 1)
        return [RoleRecord.model_validate(from_document(doc)) async for doc in cursor]

    async def upsert_role(self, role: RoleRecord) -> RoleRecord:
        """Create or replace a role record"""
        doc = to_document(role.model_dump())
        await self._roles.update_one({"name": doc["name"]}, {"$set": doc}, upsert=True)
        logger.info(
            f"Upserted role {doc['name']} with {len(role.permissions)} permissions",
            extra={"role": doc["name"]}
        )
        return role
