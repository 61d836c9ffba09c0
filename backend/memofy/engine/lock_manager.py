"""Resource Lock Manager - time-boxed exclusive edit locks

Advisory, cooperative locks on (resource_type, resource_id) pairs, stored one
document per resource. Expiry is evaluated lazily on every read and write;
there are no background timers, and the clock is injectable.
"""
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError

from ..config.settings import settings
from ..domain.enums import ResourceType, ActivityAction
from ..domain.errors import ValidationError, ConcurrencyError, ResourceLockedError, LockNotOwnedError
from ..domain.models import User, LockOwner, ResourceLock, LockResult, LockDuration
from ..repositories.lock_repo import LockRepository
from ..repositories.settings_repo import SystemSettingsRepository
from ..rbac.resolver import PermissionResolver
from ..utils.idgen import generate_lock_id
from ..utils.logger import get_logger
from ..utils.time import utc_now, format_iso, seconds_until, format_duration
from .activity_logger import ActivityLogger

logger = get_logger(__name__)

LOCK_MINUTES_KEY = "user_edit_lock_minutes"
LOCK_SECONDS_KEY = "user_edit_lock_seconds"
LOCK_DURATION_PERMISSION = "settings.lock_duration"

MAX_LOCK_MINUTES = 60
MAX_LOCK_SECONDS = 59

# Permission needed to lock (and so to heartbeat) each kind of resource
LOCK_PERMISSIONS = {
    ResourceType.USER: "faculty.edit",
    ResourceType.MEMO: "memo.edit",
}

_CONFLICT_MESSAGES = {
    ResourceType.USER: "This user is currently being edited by another administrator",
    ResourceType.MEMO: "This memo is currently being edited by another user",
}


class LockManager:
    """
    Grant, refresh, release and inspect edit locks

    acquire() is a refresh-if-owned step followed by a claim-if-absent-or-
    expired upsert; the unique (resource_type, resource_id) index makes the
    claim linearizable, so two concurrent acquirers never both win.
    """

    def __init__(
        self,
        lock_repo: Optional[LockRepository] = None,
        settings_repo: Optional[SystemSettingsRepository] = None,
        resolver: Optional[PermissionResolver] = None,
        activity_logger: Optional[ActivityLogger] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.lock_repo = lock_repo or LockRepository()
        self.settings_repo = settings_repo or SystemSettingsRepository()
        self.activity_logger = activity_logger or ActivityLogger(clock=clock)
        self.resolver = resolver or PermissionResolver(activity_logger=self.activity_logger)
        self._clock = clock

    # =========================================================================
    # Configuration
    # =========================================================================

    async def get_lock_duration(self) -> LockDuration:
        """Configured lock duration (system setting, or the built-in default)"""
        default = LockDuration(
            minutes=settings.default_lock_minutes,
            seconds=settings.default_lock_seconds
        )
        minutes = await self.settings_repo.get_value(LOCK_MINUTES_KEY, default.minutes)
        seconds = await self.settings_repo.get_value(LOCK_SECONDS_KEY, default.seconds)
        try:
            duration = LockDuration(minutes=int(minutes), seconds=int(seconds))
        except (TypeError, ValueError, PydanticValidationError):
            logger.warning(f"Invalid stored lock duration {minutes!r}m {seconds!r}s, using default")
            return default
        if duration.total_seconds <= 0:
            return default
        return duration

    async def set_lock_duration(self, minutes: int, seconds: int, actor: User) -> LockResult:
        """
        Store a new lock duration

        Applies to subsequent acquisitions and refreshes only; locks already
        granted keep their expiry.
        """
        await self.resolver.require(actor, LOCK_DURATION_PERMISSION)

        if not isinstance(minutes, int) or not 0 <= minutes <= MAX_LOCK_MINUTES:
            raise ValidationError(
                f"Minutes must be between 0 and {MAX_LOCK_MINUTES}",
                details={"minutes": minutes}
            )
        if not isinstance(seconds, int) or not 0 <= seconds <= MAX_LOCK_SECONDS:
            raise ValidationError(
                f"Seconds must be between 0 and {MAX_LOCK_SECONDS}",
                details={"seconds": seconds}
            )
        if minutes * 60 + seconds <= 0:
            raise ValidationError("Lock duration must be greater than zero")

        now = self._clock()
        previous = await self.get_lock_duration()
        await self.settings_repo.set_value(
            LOCK_MINUTES_KEY, minutes, updated_by=actor.user_id, updated_at=now,
            description="Edit lock duration (minutes part)"
        )
        await self.settings_repo.set_value(
            LOCK_SECONDS_KEY, seconds, updated_by=actor.user_id, updated_at=now,
            description="Edit lock duration (seconds part)"
        )

        duration = LockDuration(minutes=minutes, seconds=seconds)
        await self.activity_logger.log(
            actor,
            ActivityAction.LOCK_DURATION_UPDATED,
            target="System Settings: lock duration",
            details={
                "previous": format_duration(previous.total_seconds),
                "minutes": minutes,
                "seconds": seconds,
            }
        )
        logger.info(f"Lock duration set to {format_duration(duration.total_seconds)}",
                    extra={"actor_id": actor.user_id})
        return LockResult(
            success=True,
            message="Lock duration updated successfully",
            duration_seconds=duration.total_seconds
        )

    # =========================================================================
    # Lock operations
    # =========================================================================

    async def acquire(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: str,
        actor: User
    ) -> LockResult:
        """
        Acquire, refresh, or report who holds the lock

        Raises:
            PermissionDeniedError: actor may not edit this kind of resource
        """
        resource_type = ResourceType(resource_type)
        resource_id = str(resource_id)
        await self.resolver.require(actor, LOCK_PERMISSIONS[resource_type])
        duration = await self.get_lock_duration()

        # A claim can lose to a lock that vanishes or expires before we read it; retry once
        for _ in range(2):
            now = self._clock()
            expires_at = now + timedelta(seconds=duration.total_seconds)

            refreshed = await self.lock_repo.refresh_owned(
                resource_type, resource_id, actor.user_id, now, expires_at
            )
            if refreshed is not None:
                logger.debug(
                    "Lock refreshed",
                    extra={"resource_type": resource_type.value, "resource_id": resource_id,
                           "actor_id": actor.user_id}
                )
                return self._lock_result(refreshed, now, message="Lock refreshed")

            lock = ResourceLock(
                lock_id=generate_lock_id(),
                resource_type=resource_type,
                resource_id=resource_id,
                locked_by=self._owner(actor),
                locked_at=now,
                expires_at=expires_at
            )
            try:
                claimed = await self.lock_repo.claim(lock, now)
            except DuplicateKeyError:
                current = await self.lock_repo.get(resource_type, resource_id)
                if current is None or self._is_expired(current, now):
                    continue
                if current.locked_by.id == actor.user_id:
                    continue
                return self._conflict_result(current, now)

            await self.activity_logger.log(
                actor,
                ActivityAction.LOCK_ACQUIRED,
                target=self._target(resource_type, resource_id),
                target_id=resource_id,
                details={"resource_type": resource_type.value, "expires_at": format_iso(expires_at)}
            )
            logger.info(
                "Lock acquired",
                extra={"resource_type": resource_type.value, "resource_id": resource_id,
                       "actor_id": actor.user_id}
            )
            return self._lock_result(claimed, now, message="Lock acquired successfully")

        now = self._clock()
        current = await self.lock_repo.get(resource_type, resource_id)
        if current is not None and not self._is_expired(current, now) \
                and current.locked_by.id != actor.user_id:
            return self._conflict_result(current, now)
        raise ConcurrencyError(
            "Could not acquire lock due to concurrent updates, please retry",
            details={"resource_type": resource_type.value, "resource_id": resource_id}
        )

    async def heartbeat(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: str,
        actor: User
    ) -> LockResult:
        """Polling keep-alive; same semantics as acquire"""
        return await self.acquire(resource_type, resource_id, actor)

    async def release(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: str,
        actor: User
    ) -> LockResult:
        """Owner-only release; never forces"""
        resource_type = ResourceType(resource_type)
        resource_id = str(resource_id)
        now = self._clock()

        current = await self.lock_repo.get(resource_type, resource_id)
        if current is None or self._is_expired(current, now):
            if current is not None:
                await self.lock_repo.delete_if_expired(resource_type, resource_id, now)
            return LockResult(success=True, message="No active lock found", locked=False)

        if current.locked_by.id != actor.user_id:
            result = self._lock_result(current, now, message="You do not own this lock")
            result.success = False
            return result

        deleted = await self.lock_repo.delete_owned(resource_type, resource_id, actor.user_id)
        if not deleted:
            return LockResult(success=True, message="No active lock found", locked=False)

        await self.activity_logger.log(
            actor,
            ActivityAction.LOCK_RELEASED,
            target=self._target(resource_type, resource_id),
            target_id=resource_id,
            details={"resource_type": resource_type.value}
        )
        return LockResult(
            success=True,
            message="Lock released successfully",
            locked=False,
            resource_type=resource_type,
            resource_id=resource_id
        )

    async def force_release(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: str,
        actor: Optional[User] = None
    ) -> LockResult:
        """Unconditional delete; administrative override"""
        resource_type = ResourceType(resource_type)
        resource_id = str(resource_id)

        removed = await self.lock_repo.delete(resource_type, resource_id)
        if removed is None:
            return LockResult(success=True, message="No lock exists", locked=False)

        await self.activity_logger.log(
            actor,
            ActivityAction.LOCK_FORCE_RELEASED,
            target=self._target(resource_type, resource_id),
            target_id=resource_id,
            details={
                "resource_type": resource_type.value,
                "previous_owner": removed.locked_by.model_dump(),
            }
        )
        logger.warning(
            f"Lock force-released (was held by {removed.locked_by.email})",
            extra={"resource_type": resource_type.value, "resource_id": resource_id,
                   "actor_id": getattr(actor, "user_id", "system")}
        )
        return LockResult(
            success=True,
            message="Lock forcefully released",
            locked=False,
            resource_type=resource_type,
            resource_id=resource_id,
            locked_by=removed.locked_by
        )

    async def status(self, resource_type: Union[ResourceType, str], resource_id: str) -> LockResult:
        """Current lock state; an expired lock is removed and reported as absent"""
        resource_type = ResourceType(resource_type)
        resource_id = str(resource_id)
        now = self._clock()

        current = await self.lock_repo.get(resource_type, resource_id)
        if current is None:
            return LockResult(success=True, message="No lock exists", locked=False)

        if self._is_expired(current, now):
            await self.lock_repo.delete_if_expired(resource_type, resource_id, now)
            return LockResult(success=True, message="Lock has expired", locked=False)

        return self._lock_result(current, now, message="Resource is locked")

    async def extend(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: str,
        actor: User,
        extra_minutes: int = 0,
        extra_seconds: int = 0
    ) -> LockResult:
        """Owner-only; adds the delta to the current expiry"""
        resource_type = ResourceType(resource_type)
        resource_id = str(resource_id)

        if extra_minutes < 0 or extra_seconds < 0 or extra_minutes * 60 + extra_seconds <= 0:
            raise ValidationError(
                "Extension must be a positive amount of time",
                details={"extra_minutes": extra_minutes, "extra_seconds": extra_seconds}
            )

        now = self._clock()
        current = await self.lock_repo.get(resource_type, resource_id)
        if current is None or self._is_expired(current, now):
            if current is not None:
                await self.lock_repo.delete_if_expired(resource_type, resource_id, now)
            return LockResult(success=False, message="No lock found to extend", locked=False)

        if current.locked_by.id != actor.user_id:
            result = self._lock_result(current, now, message="You do not own this lock")
            result.success = False
            return result

        new_expires_at = current.expires_at + timedelta(minutes=extra_minutes, seconds=extra_seconds)
        updated = await self.lock_repo.extend_owned(
            resource_type, resource_id, actor.user_id, current.expires_at, new_expires_at
        )
        if updated is None:
            return LockResult(success=False, message="No lock found to extend", locked=False)

        await self.activity_logger.log(
            actor,
            ActivityAction.LOCK_EXTENDED,
            target=self._target(resource_type, resource_id),
            target_id=resource_id,
            details={
                "resource_type": resource_type.value,
                "extra_minutes": extra_minutes,
                "extra_seconds": extra_seconds,
                "expires_at": format_iso(new_expires_at),
            }
        )
        return self._lock_result(updated, now, message="Lock extended successfully")

    async def list_active(self, owner_id: Optional[str] = None) -> List[LockResult]:
        """Non-expired locks (optionally one owner's); expired ones met are swept"""
        now = self._clock()
        active: List[LockResult] = []
        for lock in await self.lock_repo.list_locks(owner_id):
            if self._is_expired(lock, now):
                await self.lock_repo.delete_if_expired(lock.resource_type, lock.resource_id, now)
                continue
            active.append(self._lock_result(lock, now, message="Resource is locked"))
        return active

    async def cleanup_expired(self, actor: Optional[User] = None) -> int:
        """Bulk delete expired locks; safe to call at any time"""
        deleted = await self.lock_repo.delete_expired(self._clock())
        if deleted:
            logger.info(f"Cleaned up {deleted} expired locks")
            await self.activity_logger.log(
                actor,
                ActivityAction.LOCKS_CLEANED_UP,
                target="Resource Locks",
                details={"deleted": deleted}
            )
        return deleted

    async def ensure_held(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: str,
        actor: User
    ) -> ResourceLock:
        """
        Guard for edits: the actor must currently hold the lock

        Raises:
            ResourceLockedError: someone else holds it
            LockNotOwnedError: nobody holds it
        """
        resource_type = ResourceType(resource_type)
        resource_id = str(resource_id)
        now = self._clock()

        current = await self.lock_repo.get(resource_type, resource_id)
        if current is None or self._is_expired(current, now):
            raise LockNotOwnedError(
                "You must acquire the edit lock before making changes",
                details={"resource_type": resource_type.value, "resource_id": resource_id}
            )
        if current.locked_by.id != actor.user_id:
            raise ResourceLockedError(
                _CONFLICT_MESSAGES[resource_type],
                locked_by=current.locked_by.model_dump(),
                expires_at=format_iso(current.expires_at),
                seconds_remaining=seconds_until(current.expires_at, now)
            )
        return current

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _owner(actor: User) -> LockOwner:
        return LockOwner(id=actor.user_id, name=actor.full_name, email=str(actor.email))

    @staticmethod
    def _is_expired(lock: ResourceLock, now: datetime) -> bool:
        return lock.expires_at <= now

    @staticmethod
    def _target(resource_type: ResourceType, resource_id: str) -> str:
        return f"{resource_type.value.capitalize()}: {resource_id}"

    @staticmethod
    def _lock_result(lock: ResourceLock, now: datetime, message: str) -> LockResult:
        return LockResult(
            success=True,
            message=message,
            locked=True,
            lock_id=lock.lock_id,
            resource_type=lock.resource_type,
            resource_id=lock.resource_id,
            locked_by=lock.locked_by,
            locked_at=format_iso(lock.locked_at),
            expires_at=format_iso(lock.expires_at),
            seconds_remaining=seconds_until(lock.expires_at, now)
        )

    def _conflict_result(self, lock: ResourceLock, now: datetime) -> LockResult:
        result = self._lock_result(lock, now, message=_CONFLICT_MESSAGES[lock.resource_type])
        result.success = False
        return result
