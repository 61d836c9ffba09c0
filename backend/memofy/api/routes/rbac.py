"""RBAC API Routes - permission catalogue, roles and self checks"""
from typing import Any, Dict, List
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_resolver_dep
from ...domain.enums import UserRole
from ...domain.models import User
from ...rbac.registry import permissions_by_category, DEFAULT_ROLES
from ...rbac.resolver import PermissionResolver, resolve_secretary_controls

router = APIRouter()


class PermissionCheckRequest(BaseModel):
    permissions: List[str] = Field(..., min_length=1)


@router.get("/permissions")
async def list_permission_catalogue(
    actor: User = Depends(get_current_user_dep)
) -> Dict[str, Any]:
    """All permissions grouped by category."""
    grouped = permissions_by_category()
    return {
        "categories": [
            {"category": category, "permissions": [p.model_dump() for p in items]}
            for category, items in grouped.items()
        ],
        "total": sum(len(items) for items in grouped.values())
    }


@router.get("/roles")
async def list_role_records(
    actor: User = Depends(get_current_user_dep),
    resolver: PermissionResolver = Depends(get_resolver_dep)
) -> Dict[str, Any]:
    """The three roles with their stored (or default) permission lists."""
    stored = {record.name: record for record in await resolver.role_repo.list_roles()}
    items = []
    for role in UserRole:
        record = stored.get(role) or DEFAULT_ROLES[role]
        items.append({**record.model_dump(mode="json"), "is_default": role not in stored})
    return {"items": items}


@router.get("/me")
async def my_permissions(
    actor: User = Depends(get_current_user_dep),
    resolver: PermissionResolver = Depends(get_resolver_dep)
) -> Dict[str, Any]:
    """Effective permissions for the current user (drives the UI)."""
    response: Dict[str, Any] = {
        "user_id": actor.user_id,
        "role": actor.role.value,
        "department": actor.department,
        "permissions": await resolver.effective_permissions(actor),
    }
    if actor.role == UserRole.SECRETARY:
        response["secretary_controls"] = resolve_secretary_controls(actor.secretary_controls).model_dump()
    return response


@router.post("/check")
async def check_permissions(
    request: PermissionCheckRequest,
    actor: User = Depends(get_current_user_dep),
    resolver: PermissionResolver = Depends(get_resolver_dep)
) -> Dict[str, Any]:
    """Check one or more permission keys (dotted or legacy) for the current user."""
    results = {key: await resolver.can(actor, key) for key in request.permissions}
    return {"results": results, "all": all(results.values()), "any": any(results.values())}
