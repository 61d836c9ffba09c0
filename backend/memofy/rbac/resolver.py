"""Role-Permission Resolver - actor + permission key -> bool"""
import re
from typing import Any, Iterable, List, Optional, TYPE_CHECKING

from ..domain.enums import UserRole, SecretaryControl, ActivityAction
from ..domain.errors import PermissionDeniedError
from ..domain.models import User, SecretaryControls
from ..repositories.role_repo import RoleRepository
from ..utils.logger import get_logger
from .registry import (
    LEGACY_PERMISSION_MAP, ROLE_PERMISSIONS, SECRETARY_CONTROLLED_PERMISSIONS,
    PERMISSIONS, default_permissions
)

if TYPE_CHECKING:
    from ..engine.activity_logger import ActivityLogger

logger = get_logger(__name__)

PERMISSION_KEY_RE = re.compile(r"^[a-z][a-z0-9_]*\.[a-z][a-z0-9_]*$")
_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def _coerce_flag(value: Any) -> Optional[bool]:
    """Stored flag -> bool, or None when it cannot be read"""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def resolve_secretary_controls(raw: Any) -> SecretaryControls:
    """
    Resolve the stored secretary_controls value into explicit flags.

    Accepts camelCase (sendMemo) or snake_case (send_memo) keys. A missing or
    malformed field, or a missing/unreadable flag, defaults to True and is
    listed in `defaulted`.
    """
    stored = raw if isinstance(raw, dict) else {}
    values = {}
    defaulted = []
    for control in SecretaryControl:
        if control.legacy_key in stored:
            flag = _coerce_flag(stored[control.legacy_key])
        else:
            flag = _coerce_flag(stored.get(control.value))
        if flag is None:
            defaulted.append(control.value)
            flag = True
        values[control.value] = flag
    return SecretaryControls(**values, defaulted=defaulted)


class PermissionResolver:
    """
    Resolve whether an actor may perform an action

    Rules, in order:
    - Missing or inactive actor -> denied
    - Admin -> granted, regardless of any permission list
    - Dotted key -> granted when the actor's role record lists it
    - Legacy key (canCreateMemo) -> mapped to a dotted key; if the role store
      fails, answered from the static ROLE_PERMISSIONS table instead
    - Secretary -> controlled keys also need the per-user control flag

    Stateless; never writes to role or user data.
    """

    def __init__(
        self,
        role_repo: Optional[RoleRepository] = None,
        activity_logger: Optional["ActivityLogger"] = None
    ):
        self.role_repo = role_repo or RoleRepository()
        self.activity_logger = activity_logger

    async def can(self, actor: Optional[User], permission_key: str) -> bool:
        """Check whether actor holds permission_key"""
        if actor is None or not actor.is_active:
            return False

        if actor.role == UserRole.ADMIN:
            return True

        if not isinstance(permission_key, str) or not permission_key:
            return False

        if "." not in permission_key:
            return await self._can_legacy(actor, permission_key)

        if not PERMISSION_KEY_RE.match(permission_key):
            logger.debug(f"Malformed permission key: {permission_key!r}")
            return False

        granted = await self.get_role_permissions(actor.role)
        if permission_key not in granted:
            return False

        return await self._passes_secretary_controls(actor, permission_key)

    async def can_any(self, actor: Optional[User], permission_keys: Iterable[str]) -> bool:
        for key in permission_keys:
            if await self.can(actor, key):
                return True
        return False

    async def can_all(self, actor: Optional[User], permission_keys: Iterable[str]) -> bool:
        for key in permission_keys:
            if not await self.can(actor, key):
                return False
        return True

    async def require(self, actor: Optional[User], permission_key: str) -> None:
        """Raise PermissionDeniedError unless the actor holds the permission"""
        if not await self.can(actor, permission_key):
            role = actor.role.value if actor is not None else None
            logger.info(
                f"Permission denied: {permission_key}",
                extra={"permission": permission_key, "role": role,
                       "actor_id": getattr(actor, "user_id", None)}
            )
            raise PermissionDeniedError(permission_key, role=role)

    @staticmethod
    def has_role(actor: Optional[User], *roles: UserRole) -> bool:
        return actor is not None and actor.is_active and actor.role in roles

    async def get_role_permissions(self, role: Any) -> List[str]:
        """
        Permission keys granted to a role

        Unknown role names grant nothing. A missing role record falls back to
        the registry defaults. Store errors propagate.
        """
        try:
            role = UserRole(role)
        except ValueError:
            logger.warning(f"Unknown role: {role!r}")
            return []

        record = await self.role_repo.get_role(role)
        if record is None:
            logger.warning(
                f"Role record '{role.value}' not found, using registry defaults",
                extra={"role": role.value}
            )
            return default_permissions(role)
        return list(record.permissions)

    async def effective_permissions(self, actor: Optional[User]) -> List[str]:
        """Every dotted key the actor currently holds"""
        if actor is None or not actor.is_active:
            return []
        if actor.role == UserRole.ADMIN:
            return [p.key for p in PERMISSIONS]

        granted = await self.get_role_permissions(actor.role)
        if actor.role != UserRole.SECRETARY:
            return granted

        controls = resolve_secretary_controls(actor.secretary_controls)
        return [
            key for key in granted
            if key not in SECRETARY_CONTROLLED_PERMISSIONS
            or getattr(controls, SECRETARY_CONTROLLED_PERMISSIONS[key].value)
        ]

    async def _can_legacy(self, actor: User, legacy_key: str) -> bool:
        mapped = LEGACY_PERMISSION_MAP.get(legacy_key)
        if mapped is None:
            return self._legacy_table(actor.role, legacy_key)

        try:
            return await self.can(actor, mapped)
        except Exception as e:
            logger.warning(
                f"RBAC lookup failed for {legacy_key}, using legacy role table: {e}",
                extra={"permission": legacy_key, "role": actor.role.value}
            )
            return self._legacy_table(actor.role, legacy_key)

    @staticmethod
    def _legacy_table(role: UserRole, legacy_key: str) -> bool:
        return bool(ROLE_PERMISSIONS.get(role, {}).get(legacy_key, False))

    async def _passes_secretary_controls(self, actor: User, permission_key: str) -> bool:
        if actor.role != UserRole.SECRETARY:
            return True

        control = SECRETARY_CONTROLLED_PERMISSIONS.get(permission_key)
        if control is None:
            return True

        controls = resolve_secretary_controls(actor.secretary_controls)
        if control.value in controls.defaulted:
            await self._record_default_applied(actor, permission_key, control)
            return True

        return getattr(controls, control.value)

    async def _record_default_applied(
        self,
        actor: User,
        permission_key: str,
        control: SecretaryControl
    ) -> None:
        reason = "missing" if actor.secretary_controls is None else "malformed_or_missing_flag"
        logger.warning(
            f"Secretary control '{control.legacy_key}' not set, defaulting to allowed",
            extra={"actor_id": actor.user_id, "permission": permission_key}
        )
        if self.activity_logger is not None:
            await self.activity_logger.log(
                actor,
                ActivityAction.SECRETARY_CONTROLS_DEFAULT_APPLIED,
                target=f"User: {actor.email}",
                target_id=actor.user_id,
                details={
                    "permission": permission_key,
                    "control": control.legacy_key,
                    "reason": reason,
                }
            )
