"""Edit Lock API Routes - acquire, heartbeat, release and inspect locks"""
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_lock_manager_dep, require_permission
from ...domain.enums import ResourceType
from ...domain.models import User, LockResult
from ...engine.lock_manager import LockManager
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================

class LockRequest(BaseModel):
    """Identifies the locked resource"""
    resource_type: ResourceType = Field(default=ResourceType.USER)
    resource_id: str = Field(..., min_length=1)


class ExtendLockRequest(LockRequest):
    """Extra time to add to the current expiry"""
    extra_minutes: int = Field(default=0, ge=0, le=60)
    extra_seconds: int = Field(default=0, ge=0, le=59)


class LockDurationRequest(BaseModel):
    """New lock duration"""
    minutes: int = Field(..., ge=0, le=60)
    seconds: int = Field(..., ge=0, le=59)


def _respond(result: LockResult, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json", exclude_none=True))


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/acquire")
async def acquire_lock(
    request: LockRequest,
    actor: User = Depends(get_current_user_dep),
    locks: LockManager = Depends(get_lock_manager_dep)
):
    """
    Acquire or refresh the edit lock on a resource.

    409 with the current owner and seconds remaining when another user holds it,
    403 when the user may not edit this kind of resource.
    """
    result = await locks.acquire(request.resource_type, request.resource_id, actor)
    return _respond(result, 200 if result.success else 409)


@router.post("/heartbeat")
async def heartbeat(
    request: LockRequest,
    actor: User = Depends(get_current_user_dep),
    locks: LockManager = Depends(get_lock_manager_dep)
):
    """Keep-alive sent periodically by an open edit form."""
    result = await locks.heartbeat(request.resource_type, request.resource_id, actor)
    return _respond(result, 200 if result.success else 409)


@router.post("/release")
async def release_lock(
    request: LockRequest,
    actor: User = Depends(get_current_user_dep),
    locks: LockManager = Depends(get_lock_manager_dep)
):
    """Release a lock the current user holds. 403 if someone else owns it."""
    result = await locks.release(request.resource_type, request.resource_id, actor)
    return _respond(result, 200 if result.success else 403)


@router.post("/force-release")
async def force_release_lock(
    request: LockRequest,
    actor: User = Depends(require_permission("locks.force_release")),
    locks: LockManager = Depends(get_lock_manager_dep)
):
    """Administrative override: release regardless of owner."""
    result = await locks.force_release(request.resource_type, request.resource_id, actor)
    return _respond(result)


@router.post("/extend")
async def extend_lock(
    request: ExtendLockRequest,
    actor: User = Depends(get_current_user_dep),
    locks: LockManager = Depends(get_lock_manager_dep)
):
    """Add time to a held lock (owner only)."""
    result = await locks.extend(
        request.resource_type,
        request.resource_id,
        actor,
        extra_minutes=request.extra_minutes,
        extra_seconds=request.extra_seconds
    )
    if result.success:
        return _respond(result)
    return _respond(result, 403 if result.locked else 404)


@router.get("/status")
async def lock_status(
    resource_id: str = Query(..., min_length=1),
    resource_type: ResourceType = Query(ResourceType.USER),
    actor: User = Depends(get_current_user_dep),
    locks: LockManager = Depends(get_lock_manager_dep)
):
    """Who holds the lock and for how long."""
    return _respond(await locks.status(resource_type, resource_id))


@router.get("/mine")
async def my_locks(
    actor: User = Depends(get_current_user_dep),
    locks: LockManager = Depends(get_lock_manager_dep)
) -> Dict[str, Any]:
    """Active locks held by the current user."""
    active = await locks.list_active(owner_id=actor.user_id)
    return {
        "items": [lock.model_dump(mode="json", exclude_none=True) for lock in active],
        "total": len(active)
    }


@router.get("")
async def all_locks(
    actor: User = Depends(require_permission("locks.view_all")),
    locks: LockManager = Depends(get_lock_manager_dep)
) -> Dict[str, Any]:
    """Every active lock."""
    active: List[LockResult] = await locks.list_active()
    return {
        "items": [lock.model_dump(mode="json", exclude_none=True) for lock in active],
        "total": len(active)
    }


@router.post("/cleanup")
async def cleanup_locks(
    actor: User = Depends(require_permission("locks.force_release")),
    locks: LockManager = Depends(get_lock_manager_dep)
) -> Dict[str, Any]:
    """Delete every expired lock now."""
    deleted = await locks.cleanup_expired(actor)
    return {"success": True, "deleted": deleted}


@router.get("/settings")
async def get_lock_settings(
    actor: User = Depends(get_current_user_dep),
    locks: LockManager = Depends(get_lock_manager_dep)
) -> Dict[str, Any]:
    """Configured lock duration."""
    duration = await locks.get_lock_duration()
    return {
        "minutes": duration.minutes,
        "seconds": duration.seconds,
        "total_seconds": duration.total_seconds
    }


@router.put("/settings")
async def update_lock_settings(
    request: LockDurationRequest,
    actor: User = Depends(get_current_user_dep),
    locks: LockManager = Depends(get_lock_manager_dep)
):
    """Change the lock duration (needs settings.lock_duration)."""
    result = await locks.set_lock_duration(request.minutes, request.seconds, actor)
    return _respond(result)
