"""System Settings Repository - key/value settings"""
from datetime import datetime
from typing import Any, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from .mongo_client import get_collection, to_document, from_document, SYSTEM_SETTINGS
from ..domain.models import SystemSetting


class SystemSettingsRepository:
    """Repository for the system_settings collection"""

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self._settings = get_collection(SYSTEM_SETTINGS, db)

    async def get_setting(self, key: str) -> Optional[SystemSetting]:
        doc = await self._settings.find_one({"key": key})
        if doc is None:
            return None
        return SystemSetting.model_validate(from_document(doc))

    async def get_value(self, key: str, default: Any = None) -> Any:
        setting = await self.get_setting(key)
        if setting is None or setting.value is None:
            return default
        return setting.value

    async def set_value(
        self,
        key: str,
        value: Any,
        updated_by: Optional[str] = None,
        updated_at: Optional[datetime] = None,
        description: Optional[str] = None
    ) -> None:
        update = {"value": value, "updated_by": updated_by, "updated_at": to_document(updated_at)}
        if description is not None:
            update["description"] = description
        await self._settings.update_one({"key": key}, {"$set": update}, upsert=True)
