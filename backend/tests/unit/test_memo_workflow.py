"""Tests for the memo lifecycle state machine"""

import pytest

from memofy.domain.enums import MemoStatus, MemoTransition
from memofy.domain.errors import InvalidTransitionError, ConcurrencyError, PermissionDeniedError, NotFoundError
from memofy.engine.memo_workflow import TRANSITIONS, allowed_targets, resolve_transition


# =============================================================================
# Transition table
# =============================================================================

def test_deleted_is_terminal_except_restore():
    assert TRANSITIONS[MemoStatus.DELETED] == {}


def test_every_live_status_can_be_deleted():
    for status, targets in TRANSITIONS.items():
        if status != MemoStatus.DELETED:
            assert targets.get(MemoStatus.DELETED) == MemoTransition.DELETE


async def test_allowed_targets_include_predecessor(make_memo):
    archived = await make_memo(MemoStatus.ARCHIVED, archived_from_status=MemoStatus.SENT)
    assert allowed_targets(archived) == [MemoStatus.SENT, MemoStatus.DELETED]
    assert resolve_transition(archived, MemoStatus.SENT) == MemoTransition.UNARCHIVE


# =============================================================================
# Approve / reject
# =============================================================================

async def test_approve_sets_approval_and_clears_rejection(workflow, make_memo, admin_user, clock):
    memo = await make_memo(MemoStatus.PENDING)

    result = await workflow.approve(memo, admin_user)

    stored = await workflow.get_memo(memo.memo_id)
    assert stored.status == MemoStatus.APPROVED
    assert stored.approved_by == admin_user.user_id
    assert stored.approved_at == clock()
    assert stored.rejected_by is None
    assert stored.rejected_at is None
    assert stored.rejection_reason is None
    assert result.log_entry.action == MemoTransition.APPROVE.value
    assert result.log_entry.target == "Memo: Faculty meeting schedule"


async def test_reject_sets_rejection_and_clears_approval(workflow, make_memo, admin_user, clock):
    memo = await make_memo(MemoStatus.PENDING)

    result = await workflow.reject(memo, admin_user, reason="  Wrong meeting room  ")

    stored = await workflow.get_memo(memo.memo_id)
    assert stored.status == MemoStatus.REJECTED
    assert stored.rejected_by == admin_user.user_id
    assert stored.rejected_at == clock()
    assert stored.rejection_reason == "Wrong meeting room"
    assert stored.approved_by is None
    assert stored.approved_at is None
    assert result.log_entry.details["reason"] == "Wrong meeting room"


async def test_reject_without_reason(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.PENDING)
    result = await workflow.reject(memo, admin_user)
    assert result.memo.rejection_reason is None
    assert result.memo.rejected_at is not None


async def test_resubmit_clears_previous_rejection(workflow, make_memo, admin_user, secretary_user):
    memo = await make_memo(MemoStatus.PENDING)
    rejected = (await workflow.reject(memo, admin_user, reason="Typo")).memo

    pending = (await workflow.resubmit(rejected, secretary_user)).memo
    approved = (await workflow.approve(pending, admin_user)).memo

    assert approved.status == MemoStatus.APPROVED
    assert approved.rejected_at is None
    assert approved.rejection_reason is None


# =============================================================================
# Illegal moves
# =============================================================================

async def test_rejected_to_sent_is_invalid_and_leaves_status(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.PENDING)
    rejected = (await workflow.reject(memo, admin_user)).memo

    with pytest.raises(InvalidTransitionError) as exc_info:
        await workflow.send(rejected, admin_user)

    assert exc_info.value.details["allowed"] == ["draft", "pending", "deleted"]
    assert (await workflow.get_memo(memo.memo_id)).status == MemoStatus.REJECTED


async def test_draft_cannot_be_approved(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.DRAFT)
    with pytest.raises(InvalidTransitionError):
        await workflow.approve(memo, admin_user)


async def test_stale_memo_raises_concurrency_error(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.PENDING)
    await workflow.approve(memo, admin_user)

    with pytest.raises(ConcurrencyError):
        await workflow.reject(memo, admin_user)

    assert (await workflow.get_memo(memo.memo_id)).status == MemoStatus.APPROVED


async def test_unknown_memo(workflow):
    with pytest.raises(NotFoundError):
        await workflow.get_memo("MEM-missing")


# =============================================================================
# Archive / delete remember their predecessor
# =============================================================================

async def test_archive_and_unarchive_round_trip(workflow, make_memo, secretary_user):
    memo = await make_memo(MemoStatus.SENT)

    archived = (await workflow.archive(memo, secretary_user)).memo
    assert archived.status == MemoStatus.ARCHIVED
    assert archived.archived_from_status == MemoStatus.SENT

    restored = (await workflow.unarchive(archived, secretary_user)).memo
    assert restored.status == MemoStatus.SENT
    assert restored.archived_from_status is None


async def test_delete_and_restore_returns_to_prior_status(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.PENDING)
    rejected = (await workflow.reject(memo, admin_user, reason="Duplicate")).memo

    deleted = (await workflow.delete(rejected, admin_user)).memo
    assert deleted.status == MemoStatus.DELETED
    assert deleted.deleted_from_status == MemoStatus.REJECTED

    restored = (await workflow.restore(deleted, admin_user)).memo
    assert restored.status == MemoStatus.REJECTED
    assert restored.rejection_reason == "Duplicate"
    assert restored.deleted_from_status is None


async def test_deleted_archived_memo_restores_to_archived(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.READ)
    archived = (await workflow.archive(memo, admin_user)).memo
    deleted = (await workflow.delete(archived, admin_user)).memo

    restored = (await workflow.restore(deleted, admin_user)).memo
    assert restored.status == MemoStatus.ARCHIVED
    assert restored.archived_from_status == MemoStatus.READ


async def test_restore_requires_deleted_memo(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.DRAFT)
    with pytest.raises(InvalidTransitionError):
        await workflow.restore(memo, admin_user)


# =============================================================================
# Recipients
# =============================================================================

async def test_send_creates_acknowledgment_rows(workflow, make_memo, admin_user, faculty_user):
    memo = await make_memo(MemoStatus.DRAFT)

    result = await workflow.send(memo, admin_user)
    assert result.memo.status == MemoStatus.SENT

    assert result.log_entry.details["recipients"] == 2
    stats = await workflow.acknowledgment_stats(memo.memo_id)
    assert (stats.total, stats.acknowledged, stats.pending) == (2, 0, 2)

    ack = await workflow.acknowledge(memo.memo_id, faculty_user)
    assert ack.is_acknowledged

    stats = await workflow.acknowledgment_stats(memo.memo_id)
    assert stats.acknowledged == 1
    assert stats.percentage == 50.0


async def test_approval_delivers_to_recipients(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.PENDING, recipients=["U-FAC", "U-FAC", "U-FAC-3"])
    await workflow.approve(memo, admin_user)

    stats = await workflow.acknowledgment_stats(memo.memo_id)
    assert stats.total == 2


async def test_acknowledge_requires_delivery(workflow, make_memo, faculty_user):
    memo = await make_memo(MemoStatus.DRAFT)
    with pytest.raises(NotFoundError):
        await workflow.acknowledge(memo.memo_id, faculty_user)


async def test_stats_for_undelivered_memo(workflow, make_memo):
    memo = await make_memo(MemoStatus.DRAFT)
    stats = await workflow.acknowledgment_stats(memo.memo_id)
    assert stats.total == 0
    assert stats.percentage == 0.0


# =============================================================================
# Authorization
# =============================================================================

async def test_authorize_checks_transition_permission(workflow, make_memo, secretary_user, admin_user):
    memo = await make_memo(MemoStatus.PENDING)

    with pytest.raises(PermissionDeniedError) as exc_info:
        await workflow.authorize(secretary_user, memo, MemoStatus.APPROVED)
    assert exc_info.value.details["permission"] == "memo.approve"

    assert await workflow.authorize(admin_user, memo, "approved") == MemoTransition.APPROVE


async def test_authorize_applies_secretary_controls(workflow, make_memo, secretary_user):
    memo = await make_memo(MemoStatus.DRAFT)
    blocked = secretary_user.model_copy(update={"secretary_controls": {"sendMemo": False}})

    with pytest.raises(PermissionDeniedError):
        await workflow.authorize_send(blocked, memo)

    assert await workflow.authorize_send(secretary_user, memo) == MemoStatus.PENDING


async def test_secretary_cannot_send_draft_past_approval(workflow, make_memo, secretary_user):
    memo = await make_memo(MemoStatus.DRAFT)

    with pytest.raises(PermissionDeniedError) as exc_info:
        await workflow.authorize(secretary_user, memo, MemoStatus.SENT)
    assert exc_info.value.details["permission"] == "memo.approve"


async def test_admin_may_send_draft_directly(workflow, make_memo, admin_user):
    memo = await make_memo(MemoStatus.DRAFT)

    assert await workflow.authorize(admin_user, memo, MemoStatus.SENT) == MemoTransition.SEND
    assert await workflow.authorize_send(admin_user, memo) == MemoStatus.SENT


async def test_secretary_send_submits_draft_for_approval(workflow, make_memo, secretary_user):
    memo = await make_memo(MemoStatus.DRAFT)

    result = await workflow.send(memo, secretary_user)

    assert result.memo.status == MemoStatus.PENDING
    assert result.memo.approved_by is None
    assert result.log_entry.action == MemoTransition.SUBMIT.value
    assert (await workflow.acknowledgment_stats(memo.memo_id)).total == 0


async def test_secretary_sends_approved_memo(workflow, make_memo, secretary_user, admin_user):
    memo = await make_memo(MemoStatus.PENDING)
    approved = (await workflow.approve(memo, admin_user)).memo

    assert await workflow.authorize_send(secretary_user, approved) == MemoStatus.SENT
    sent = (await workflow.send(approved, secretary_user)).memo
    assert sent.status == MemoStatus.SENT
