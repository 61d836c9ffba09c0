"""Activity Log API Routes - browse and purge the activity trail"""
from datetime import datetime
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query

from ..deps import get_current_user_dep, get_resolver_dep, get_activity_logger_dep, require_permission
from ...config.settings import settings
from ...domain.models import User
from ...engine.activity_logger import ActivityLogger
from ...rbac.resolver import PermissionResolver

router = APIRouter()


@router.get("")
async def list_activity(
    action: Optional[str] = Query(None),
    target_id: Optional[str] = Query(None),
    actor_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.activity_log_page_size, ge=1, le=200),
    actor: User = Depends(get_current_user_dep),
    resolver: PermissionResolver = Depends(get_resolver_dep),
    activity: ActivityLogger = Depends(get_activity_logger_dep)
) -> Dict[str, Any]:
    """
    Activity entries, newest first.

    Scope follows the caller's permissions: everything (activity.view_all),
    their department (activity.view_department) or only their own entries.
    """
    department: Optional[str] = None
    if not await resolver.can(actor, "activity.view_all"):
        if await resolver.can(actor, "activity.view_department"):
            department = actor.department
        else:
            await resolver.require(actor, "activity.view")
            actor_id = actor.user_id

    filters = dict(actor_id=actor_id, action=action, target_id=target_id, department=department)
    entries = await activity.repo.list_entries(skip=skip, limit=limit, **filters)
    total = await activity.repo.count_entries(**filters)
    return {
        "items": [entry.model_dump(mode="json") for entry in entries],
        "total": total,
        "skip": skip,
        "limit": limit
    }


@router.delete("")
async def purge_activity(
    before: Optional[datetime] = Query(None, description="Only delete entries older than this"),
    actor: User = Depends(require_permission("activity.clear")),
    activity: ActivityLogger = Depends(get_activity_logger_dep)
) -> Dict[str, Any]:
    """Bulk purge (admin)."""
    deleted = await activity.purge(actor, before)
    return {"success": True, "deleted": deleted}
