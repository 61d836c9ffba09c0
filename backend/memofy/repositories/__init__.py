"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection, create_indexes
from .lock_repo import LockRepository
from .role_repo import RoleRepository
from .user_repo import UserRepository
from .memo_repo import MemoRepository, AcknowledgmentRepository
from .activity_repo import ActivityLogRepository
from .settings_repo import SystemSettingsRepository

__all__ = [
    "get_database",
    "get_collection",
    "create_indexes",
    "LockRepository",
    "RoleRepository",
    "UserRepository",
    "MemoRepository",
    "AcknowledgmentRepository",
    "ActivityLogRepository",
    "SystemSettingsRepository",
]
