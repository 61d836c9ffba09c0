"""User Service - lock- and permission-guarded user edits"""
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..domain.enums import UserRole, ResourceType, ActivityAction
from ..domain.errors import UserNotFoundError, ValidationError, PermissionDeniedError
from ..domain.models import User
from ..engine.activity_logger import ActivityLogger
from ..engine.lock_manager import LockManager
from ..rbac.resolver import PermissionResolver
from ..repositories.user_repo import UserRepository
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

EDITABLE_FIELDS = frozenset({
    "first_name", "last_name", "email", "employee_id", "department",
    "role", "is_active", "secretary_controls",
})
# Fields that change what a user may do, not just who they are
PRIVILEGED_FIELDS = frozenset({"role", "is_active", "secretary_controls"})


class UserService:
    """Service for editing user records"""

    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        lock_manager: Optional[LockManager] = None,
        resolver: Optional[PermissionResolver] = None,
        activity_logger: Optional[ActivityLogger] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.user_repo = user_repo or UserRepository()
        self.activity_logger = activity_logger or ActivityLogger(clock=clock)
        self.resolver = resolver or PermissionResolver(activity_logger=self.activity_logger)
        self.lock_manager = lock_manager or LockManager(
            resolver=self.resolver, activity_logger=self.activity_logger, clock=clock
        )
        self._clock = clock

    async def get_user(self, user_id: str) -> User:
        user = await self.user_repo.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found", details={"user_id": user_id})
        return user

    async def update_user(self, actor: User, user_id: str, changes: Dict[str, Any]) -> User:
        """
        Edit a user record

        The actor must hold the edit lock on the user, be granted faculty.edit,
        and (for secretaries) stay within their own department. Role, status
        and secretary control changes also need roles.assign.

        Raises:
            ResourceLockedError / LockNotOwnedError: lock not held by actor
            PermissionDeniedError: actor may not make this edit
            ValidationError: unknown fields or an invalid resulting record
        """
        target = await self.get_user(user_id)

        await self.lock_manager.ensure_held(ResourceType.USER, user_id, actor)
        await self.resolver.require(actor, "faculty.edit")

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                "Some fields cannot be edited",
                details={"fields": sorted(unknown)}
            )

        if PRIVILEGED_FIELDS & set(changes):
            await self.resolver.require(actor, "roles.assign")

        if actor.role == UserRole.SECRETARY:
            if target.department != actor.department or \
                    changes.get("department", actor.department) != actor.department:
                raise PermissionDeniedError(
                    "faculty.edit",
                    role=actor.role.value,
                    message="Secretaries can only edit users in their own department"
                )

        merged = target.model_dump()
        merged.update(changes)
        try:
            validated = User.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid user data",
                details={"errors": [err["msg"] for err in e.errors()]}
            )

        # Persist normalised values (e.g. admin department cleared)
        to_store = {field: getattr(validated, field) for field in changes}
        if "role" in changes:
            to_store["department"] = validated.department
        if "email" in to_store:
            to_store["email"] = str(to_store["email"]).lower()

        updated = await self.user_repo.update_user(user_id, to_store, self._clock())
        if updated is None:
            raise UserNotFoundError(f"User {user_id} not found", details={"user_id": user_id})

        await self.activity_logger.log(
            actor,
            ActivityAction.USER_PROFILE_EDITED,
            target=f"User: {updated.email}",
            target_id=user_id,
            details={"fields": sorted(changes)}
        )
        logger.info(f"User {user_id} updated", extra={"user_id": user_id, "actor_id": actor.user_id})
        return updated
