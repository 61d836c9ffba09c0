"""Memo Workflow - memo lifecycle state machine

Validates that a requested status change is legal, applies its field effects
with a single compare-and-set update, and records the side effects (activity
entry, recipient acknowledgment rows). Authorization is the caller's job;
`authorize()` is provided so callers can ask the resolver with the right key.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..domain.enums import MemoStatus, MemoTransition, ActivityAction, UserRole
from ..domain.errors import (
    InvalidTransitionError, ConcurrencyError, MemoNotFoundError, NotFoundError, ValidationError,
    PermissionDeniedError
)
from ..domain.models import (
    Memo, User, TransitionResult, MemoAcknowledgment, AcknowledgmentStats
)
from ..repositories.memo_repo import MemoRepository, AcknowledgmentRepository
from ..rbac.resolver import PermissionResolver
from ..utils.logger import get_logger
from ..utils.time import utc_now
from .activity_logger import ActivityLogger

logger = get_logger(__name__)


# from_status -> {to_status: transition}; unarchive/restore go to the recorded predecessor
TRANSITIONS: Dict[MemoStatus, Dict[MemoStatus, MemoTransition]] = {
    MemoStatus.DRAFT: {
        MemoStatus.PENDING: MemoTransition.SUBMIT,
        MemoStatus.SENT: MemoTransition.SEND,
        MemoStatus.DELETED: MemoTransition.DELETE,
    },
    MemoStatus.PENDING: {
        MemoStatus.APPROVED: MemoTransition.APPROVE,
        MemoStatus.REJECTED: MemoTransition.REJECT,
        MemoStatus.DELETED: MemoTransition.DELETE,
    },
    MemoStatus.APPROVED: {
        MemoStatus.SENT: MemoTransition.SEND,
        MemoStatus.ARCHIVED: MemoTransition.ARCHIVE,
        MemoStatus.DELETED: MemoTransition.DELETE,
    },
    MemoStatus.REJECTED: {
        MemoStatus.DRAFT: MemoTransition.REVISE,
        MemoStatus.PENDING: MemoTransition.RESUBMIT,
        MemoStatus.DELETED: MemoTransition.DELETE,
    },
    MemoStatus.SENT: {
        MemoStatus.READ: MemoTransition.READ,
        MemoStatus.ARCHIVED: MemoTransition.ARCHIVE,
        MemoStatus.DELETED: MemoTransition.DELETE,
    },
    MemoStatus.READ: {
        MemoStatus.ARCHIVED: MemoTransition.ARCHIVE,
        MemoStatus.DELETED: MemoTransition.DELETE,
    },
    MemoStatus.ARCHIVED: {
        MemoStatus.DELETED: MemoTransition.DELETE,
    },
    MemoStatus.DELETED: {},
}

# Permission the caller should check before each transition
TRANSITION_PERMISSIONS: Dict[MemoTransition, str] = {
    MemoTransition.SUBMIT: "memo.create",
    MemoTransition.SEND: "memo.send",
    MemoTransition.APPROVE: "memo.approve",
    MemoTransition.REJECT: "memo.reject",
    MemoTransition.REVISE: "memo.edit",
    MemoTransition.RESUBMIT: "memo.create",
    MemoTransition.READ: "memo.view",
    MemoTransition.ARCHIVE: "memo.archive",
    MemoTransition.UNARCHIVE: "memo.unarchive",
    MemoTransition.DELETE: "memo.delete",
    MemoTransition.RESTORE: "archive.restore",
}

# Transitions that make the memo visible to recipients
RECIPIENT_VISIBLE = frozenset({MemoTransition.APPROVE, MemoTransition.SEND})

# Roles whose drafts may go out without admin approval
APPROVAL_EXEMPT_ROLES = frozenset({UserRole.ADMIN})

_REJECTION_FIELDS = ("rejected_by", "rejected_at", "rejection_reason")
_APPROVAL_FIELDS = ("approved_by", "approved_at")


def allowed_targets(memo: Memo) -> List[MemoStatus]:
    """Statuses the memo may move to next"""
    targets = list(TRANSITIONS[memo.status])
    if memo.status == MemoStatus.ARCHIVED and memo.archived_from_status is not None:
        targets.insert(0, memo.archived_from_status)
    if memo.status == MemoStatus.DELETED and memo.deleted_from_status is not None:
        targets.insert(0, memo.deleted_from_status)
    return targets


def skips_approval(actor: User) -> bool:
    return actor.role in APPROVAL_EXEMPT_ROLES


def send_target(memo: Memo, actor: User) -> MemoStatus:
    """Where "send" takes this memo: drafts of non-exempt roles go to approval first"""
    if memo.status == MemoStatus.DRAFT and not skips_approval(actor):
        return MemoStatus.PENDING
    return MemoStatus.SENT


def resolve_transition(memo: Memo, target: MemoStatus) -> MemoTransition:
    """
    Name the transition from memo.status to target

    Raises:
        InvalidTransitionError: the move is not allowed from the current status
    """
    if memo.status == MemoStatus.ARCHIVED and target == memo.archived_from_status:
        return MemoTransition.UNARCHIVE
    if memo.status == MemoStatus.DELETED and target == memo.deleted_from_status:
        return MemoTransition.RESTORE

    transition = TRANSITIONS[memo.status].get(target)
    if transition is None:
        raise InvalidTransitionError(
            memo.status.value,
            target.value,
            allowed=[status.value for status in allowed_targets(memo)]
        )
    return transition


class MemoWorkflow:
    """Apply memo transitions and their side effects"""

    def __init__(
        self,
        memo_repo: Optional[MemoRepository] = None,
        ack_repo: Optional[AcknowledgmentRepository] = None,
        activity_logger: Optional[ActivityLogger] = None,
        resolver: Optional[PermissionResolver] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.memo_repo = memo_repo or MemoRepository()
        self.ack_repo = ack_repo or AcknowledgmentRepository()
        self.activity_logger = activity_logger or ActivityLogger(clock=clock)
        self.resolver = resolver or PermissionResolver(activity_logger=self.activity_logger)
        self._clock = clock

    async def get_memo(self, memo_id: str) -> Memo:
        memo = await self.memo_repo.get_memo(memo_id)
        if memo is None:
            raise MemoNotFoundError(f"Memo {memo_id} not found", details={"memo_id": memo_id})
        return memo

    @staticmethod
    def available_transitions(memo: Memo) -> List[MemoStatus]:
        return allowed_targets(memo)

    async def authorize(self, actor: User, memo: Memo, target: Union[MemoStatus, str]) -> MemoTransition:
        """Check legality, then the actor's permission for the transition"""
        transition = resolve_transition(memo, MemoStatus(target))
        await self.resolver.require(actor, TRANSITION_PERMISSIONS[transition])
        if transition == MemoTransition.SEND and memo.status == MemoStatus.DRAFT \
                and not skips_approval(actor):
            raise PermissionDeniedError(
                "memo.approve",
                role=actor.role.value,
                message="This memo must be approved by an administrator before it is sent"
            )
        return transition

    async def authorize_send(self, actor: User, memo: Memo) -> MemoStatus:
        """
        Authorize "send" and return where it takes the memo

        A draft from a role that needs approval is submitted instead; the
        send permission (and the secretary's sendMemo control) still applies.
        """
        target = send_target(memo, actor)
        if target == MemoStatus.PENDING:
            await self.resolver.require(actor, TRANSITION_PERMISSIONS[MemoTransition.SEND])
        await self.authorize(actor, memo, target)
        return target

    async def transition(
        self,
        memo: Memo,
        target: Union[MemoStatus, str],
        actor: User,
        extra: Optional[Dict[str, Any]] = None
    ) -> TransitionResult:
        """
        Move a memo to target status

        Args:
            memo: Memo as the caller last read it
            target: Requested status
            actor: Who is acting (already authorized by the caller)
            extra: Transition input, e.g. {"reason": "..."} for reject

        Returns:
            TransitionResult with the stored memo and the activity entry

        Raises:
            InvalidTransitionError: illegal move; nothing is written
            ConcurrencyError: the memo's status changed since it was read
        """
        target = MemoStatus(target)
        extra = extra or {}
        transition = resolve_transition(memo, target)
        now = self._clock()

        set_fields, unset_fields = self._field_effects(memo, transition, actor, now, extra)
        set_fields["status"] = target
        set_fields["updated_at"] = now

        updated = await self.memo_repo.update_if_status(
            memo.memo_id, memo.status, set_fields, unset_fields
        )
        if updated is None:
            current = await self.memo_repo.get_memo(memo.memo_id)
            if current is None:
                raise MemoNotFoundError(f"Memo {memo.memo_id} not found", details={"memo_id": memo.memo_id})
            raise ConcurrencyError(
                "Memo was modified by another request",
                details={
                    "memo_id": memo.memo_id,
                    "expected_status": memo.status.value,
                    "current_status": current.status.value,
                }
            )

        if transition in RECIPIENT_VISIBLE:
            await self.ack_repo.upsert_sent(updated.memo_id, updated.recipients, now)

        details: Dict[str, Any] = {"from_status": memo.status.value, "to_status": target.value}
        if transition == MemoTransition.REJECT and set_fields.get("rejection_reason"):
            details["reason"] = set_fields["rejection_reason"]
        if transition in RECIPIENT_VISIBLE:
            details["recipients"] = len(updated.recipients)

        log_entry = await self.activity_logger.log(
            actor,
            transition,
            target=f"Memo: {updated.subject}",
            target_id=updated.memo_id,
            details=details,
            request_info=extra.get("request_info")
        )
        logger.info(
            f"Memo {transition.value}: {memo.status.value} -> {target.value}",
            extra={"memo_id": updated.memo_id, "actor_id": actor.user_id, "status": target.value}
        )
        return TransitionResult(memo=updated, log_entry=log_entry)

    @staticmethod
    def _field_effects(
        memo: Memo,
        transition: MemoTransition,
        actor: User,
        now: datetime,
        extra: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], List[str]]:
        set_fields: Dict[str, Any] = {}
        unset_fields: List[str] = []

        if transition == MemoTransition.APPROVE:
            set_fields.update(approved_by=actor.user_id, approved_at=now)
            unset_fields.extend(_REJECTION_FIELDS)
        elif transition == MemoTransition.REJECT:
            reason = extra.get("reason")
            if reason is not None and not isinstance(reason, str):
                raise ValidationError("Rejection reason must be text", details={"reason": reason})
            set_fields.update(rejected_by=actor.user_id, rejected_at=now)
            if reason and reason.strip():
                set_fields["rejection_reason"] = reason.strip()
            else:
                unset_fields.append("rejection_reason")
            unset_fields.extend(_APPROVAL_FIELDS)
        elif transition in (MemoTransition.REVISE, MemoTransition.RESUBMIT):
            unset_fields.extend(_REJECTION_FIELDS)
        elif transition == MemoTransition.ARCHIVE:
            set_fields["archived_from_status"] = memo.status
        elif transition == MemoTransition.UNARCHIVE:
            unset_fields.append("archived_from_status")
        elif transition == MemoTransition.DELETE:
            set_fields["deleted_from_status"] = memo.status
        elif transition == MemoTransition.RESTORE:
            unset_fields.append("deleted_from_status")

        return set_fields, unset_fields

    # =========================================================================
    # Convenience wrappers
    # =========================================================================

    async def submit(self, memo: Memo, actor: User) -> TransitionResult:
        return await self.transition(memo, MemoStatus.PENDING, actor)

    async def approve(self, memo: Memo, actor: User) -> TransitionResult:
        return await self.transition(memo, MemoStatus.APPROVED, actor)

    async def reject(self, memo: Memo, actor: User, reason: Optional[str] = None) -> TransitionResult:
        return await self.transition(memo, MemoStatus.REJECTED, actor, {"reason": reason})

    async def send(self, memo: Memo, actor: User) -> TransitionResult:
        return await self.transition(memo, send_target(memo, actor), actor)

    async def mark_read(self, memo: Memo, actor: User) -> TransitionResult:
        return await self.transition(memo, MemoStatus.READ, actor)

    async def revise(self, memo: Memo, actor: User) -> TransitionResult:
        return await self.transition(memo, MemoStatus.DRAFT, actor)

    async def resubmit(self, memo: Memo, actor: User) -> TransitionResult:
        return await self.transition(memo, MemoStatus.PENDING, actor)

    async def archive(self, memo: Memo, actor: User) -> TransitionResult:
        return await self.transition(memo, MemoStatus.ARCHIVED, actor)

    async def unarchive(self, memo: Memo, actor: User) -> TransitionResult:
        if memo.status != MemoStatus.ARCHIVED or memo.archived_from_status is None:
            raise InvalidTransitionError(memo.status.value, "unarchive",
                                         allowed=[s.value for s in allowed_targets(memo)])
        return await self.transition(memo, memo.archived_from_status, actor)

    async def delete(self, memo: Memo, actor: User) -> TransitionResult:
        return await self.transition(memo, MemoStatus.DELETED, actor)

    async def restore(self, memo: Memo, actor: User) -> TransitionResult:
        if memo.status != MemoStatus.DELETED or memo.deleted_from_status is None:
            raise InvalidTransitionError(memo.status.value, "restore",
                                         allowed=[s.value for s in allowed_targets(memo)])
        return await self.transition(memo, memo.deleted_from_status, actor)

    # =========================================================================
    # Acknowledgments
    # =========================================================================

    async def acknowledge(self, memo_id: str, recipient: User) -> MemoAcknowledgment:
        """Recipient confirms they have read a delivered memo"""
        ack = await self.ack_repo.acknowledge(memo_id, recipient.user_id, self._clock())
        if ack is None:
            raise NotFoundError(
                "This memo was not delivered to you",
                details={"memo_id": memo_id, "recipient_id": recipient.user_id}
            )
        await self.activity_logger.log(
            recipient,
            ActivityAction.MEMO_ACKNOWLEDGED,
            target=f"Memo: {memo_id}",
            target_id=memo_id
        )
        return ack

    async def acknowledgment_stats(self, memo_id: str) -> AcknowledgmentStats:
        total = await self.ack_repo.count(memo_id)
        acknowledged = await self.ack_repo.count(memo_id, acknowledged=True)
        percentage = round(acknowledged / total * 100, 2) if total else 0.0
        return AcknowledgmentStats(
            memo_id=memo_id,
            total=total,
            acknowledged=acknowledged,
            pending=total - acknowledged,
            percentage=percentage
        )
