"""Activity Logger - Append-only activity trail

Every core operation that changes something reports here. Writing an entry
must never fail the calling operation: errors are caught and the entry is
written to the fallback log channel instead.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from ..domain.enums import ActivityAction
from ..domain.models import ActivityLogEntry, ActorSnapshot, RequestInfo, User
from ..repositories.activity_repo import ActivityLogRepository
from ..utils.idgen import generate_activity_id
from ..utils.logger import get_logger, get_correlation_id, ACTIVITY_FALLBACK_LOGGER
from ..utils.time import utc_now

logger = get_logger(__name__)
fallback_logger = get_logger(ACTIVITY_FALLBACK_LOGGER)

SYSTEM_ACTOR = ActorSnapshot(id="system", email=None, role="system", department=None)


def describe(action: str, target: str) -> str:
    """Human readable summary, e.g. 'Approve memo - Memo: Budget'"""
    return f"{action.replace('_', ' ').capitalize()} - {target}"


class ActivityLogger:
    """
    Write activity entries (append-only)

    The actor snapshot (id/email/role/department) is captured when the entry
    is written and never re-joined later.
    """

    def __init__(
        self,
        repo: Optional[ActivityLogRepository] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.repo = repo or ActivityLogRepository()
        self._clock = clock

    @staticmethod
    def snapshot(actor: Optional[User]) -> ActorSnapshot:
        if actor is None:
            return SYSTEM_ACTOR.model_copy()
        return ActorSnapshot(
            id=actor.user_id,
            email=str(actor.email),
            role=actor.role.value,
            department=actor.department
        )

    async def log(
        self,
        actor: Optional[User],
        action: Union[str, Enum],
        target: str,
        target_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        request_info: Optional[Union[RequestInfo, Dict[str, Any]]] = None
    ) -> Optional[ActivityLogEntry]:
        """Write one entry; returns None when it could not be stored"""
        action_value = action.value if isinstance(action, Enum) else str(action)
        try:
            if isinstance(request_info, dict):
                request_info = RequestInfo.model_validate(request_info)
            request_info = request_info or RequestInfo()

            entry = ActivityLogEntry(
                activity_id=generate_activity_id(),
                actor=self.snapshot(actor),
                action=action_value,
                target=target,
                target_id=target_id,
                description=describe(action_value, target),
                details=details or {},
                ip_address=request_info.ip_address,
                user_agent=request_info.user_agent,
                timestamp=self._clock(),
                correlation_id=get_correlation_id()
            )
            return await self.repo.create_entry(entry)
        except Exception as e:
            fallback_logger.error(
                f"Failed to write activity entry: {e}",
                extra={
                    "action": action_value,
                    "actor_id": getattr(actor, "user_id", "system"),
                    "resource_id": target_id,
                },
                exc_info=True
            )
            return None

    async def list_entries(self, **filters: Any) -> List[ActivityLogEntry]:
        return await self.repo.list_entries(**filters)

    async def purge(self, actor: User, before: Optional[datetime] = None) -> int:
        """Admin bulk purge; the purge itself is recorded afterwards"""
        deleted = await self.repo.purge(before)
        await self.log(
            actor,
            ActivityAction.ACTIVITY_LOGS_PURGED,
            target="Activity Logs",
            details={"deleted": deleted, "before": before.isoformat() if before else None}
        )
        return deleted
