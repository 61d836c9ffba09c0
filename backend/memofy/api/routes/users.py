"""User API Routes - lock-guarded profile edits"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from ..deps import get_current_user_dep, get_user_service_dep, require_permission
from ...domain.enums import UserRole
from ...domain.models import User
from ...services.user_service import UserService

router = APIRouter()


class UserUpdateRequest(BaseModel):
    """Partial update; only fields sent are changed"""
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    secretary_controls: Optional[Dict[str, bool]] = None


def _public(user: User) -> Dict[str, Any]:
    data = user.model_dump(mode="json", exclude={"login_attempts", "lock_until"})
    data["full_name"] = user.full_name
    return data


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    actor: User = Depends(require_permission("faculty.view")),
    service: UserService = Depends(get_user_service_dep)
) -> Dict[str, Any]:
    return _public(await service.get_user(user_id))


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    request: UserUpdateRequest,
    actor: User = Depends(get_current_user_dep),
    service: UserService = Depends(get_user_service_dep)
) -> Dict[str, Any]:
    """
    Edit a user.

    The caller must hold the edit lock on this user (POST /locks/acquire first).
    409 if another administrator holds it, 403 if nobody does.
    """
    changes = request.model_dump(exclude_unset=True)
    updated = await service.update_user(actor, user_id, changes)
    return _public(updated)
