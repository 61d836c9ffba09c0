"""API Dependencies - Common dependencies for routes

Builds the per-request object graph (repositories, resolver, lock manager,
workflow) from the database and clock providers, so tests can swap either
through `app.dependency_overrides`.
"""
from datetime import datetime
from typing import Callable, Optional
from fastapi import Depends, Header, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..domain.errors import AuthenticationError, InactiveUserError
from ..domain.models import User, RequestInfo
from ..engine.activity_logger import ActivityLogger
from ..engine.lock_manager import LockManager
from ..engine.memo_workflow import MemoWorkflow
from ..rbac.resolver import PermissionResolver
from ..repositories.activity_repo import ActivityLogRepository
from ..repositories.lock_repo import LockRepository
from ..repositories.memo_repo import MemoRepository, AcknowledgmentRepository
from ..repositories.mongo_client import get_database
from ..repositories.role_repo import RoleRepository
from ..repositories.settings_repo import SystemSettingsRepository
from ..repositories.user_repo import UserRepository
from ..services.user_service import UserService
from ..utils.jwt import get_user_id
from ..utils.time import utc_now


# =============================================================================
# Providers
# =============================================================================

def get_db_dep() -> AsyncIOMotorDatabase:
    return get_database()


def get_clock_dep() -> Callable[[], datetime]:
    return utc_now


def get_activity_logger_dep(
    db: AsyncIOMotorDatabase = Depends(get_db_dep),
    clock: Callable[[], datetime] = Depends(get_clock_dep)
) -> ActivityLogger:
    return ActivityLogger(ActivityLogRepository(db), clock=clock)


def get_resolver_dep(
    db: AsyncIOMotorDatabase = Depends(get_db_dep),
    activity_logger: ActivityLogger = Depends(get_activity_logger_dep)
) -> PermissionResolver:
    return PermissionResolver(RoleRepository(db), activity_logger=activity_logger)


def get_lock_manager_dep(
    db: AsyncIOMotorDatabase = Depends(get_db_dep),
    resolver: PermissionResolver = Depends(get_resolver_dep),
    activity_logger: ActivityLogger = Depends(get_activity_logger_dep),
    clock: Callable[[], datetime] = Depends(get_clock_dep)
) -> LockManager:
    return LockManager(
        LockRepository(db),
        SystemSettingsRepository(db),
        resolver=resolver,
        activity_logger=activity_logger,
        clock=clock
    )


def get_memo_workflow_dep(
    db: AsyncIOMotorDatabase = Depends(get_db_dep),
    resolver: PermissionResolver = Depends(get_resolver_dep),
    activity_logger: ActivityLogger = Depends(get_activity_logger_dep),
    clock: Callable[[], datetime] = Depends(get_clock_dep)
) -> MemoWorkflow:
    return MemoWorkflow(
        MemoRepository(db),
        AcknowledgmentRepository(db),
        activity_logger=activity_logger,
        resolver=resolver,
        clock=clock
    )


def get_user_service_dep(
    db: AsyncIOMotorDatabase = Depends(get_db_dep),
    lock_manager: LockManager = Depends(get_lock_manager_dep),
    resolver: PermissionResolver = Depends(get_resolver_dep),
    activity_logger: ActivityLogger = Depends(get_activity_logger_dep),
    clock: Callable[[], datetime] = Depends(get_clock_dep)
) -> UserService:
    return UserService(
        UserRepository(db),
        lock_manager=lock_manager,
        resolver=resolver,
        activity_logger=activity_logger,
        clock=clock
    )


# =============================================================================
# Authentication & Authorization
# =============================================================================

async def get_current_user_dep(
    authorization: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db_dep)
) -> User:
    """
    Dependency to get current user from Authorization header

    Validates the session token and loads the user record.

    Raises:
        AuthenticationError: 401 if token is invalid or missing, or the user is unknown
        InactiveUserError: 403 if the account is deactivated
    """
    user_id = get_user_id(authorization)
    user = await UserRepository(db).get_user(user_id)
    if user is None:
        raise AuthenticationError("User no longer exists")
    if not user.is_active:
        raise InactiveUserError("Your account has been deactivated", details={"user_id": user_id})
    return user


def require_permission(permission_key: str):
    """Dependency factory: current user must hold permission_key"""

    async def _dependency(
        actor: User = Depends(get_current_user_dep),
        resolver: PermissionResolver = Depends(get_resolver_dep)
    ) -> User:
        await resolver.require(actor, permission_key)
        return actor

    return _dependency


def get_request_info_dep(request: Request) -> RequestInfo:
    """Client IP and user agent for activity entries"""
    return RequestInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )
