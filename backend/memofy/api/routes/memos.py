"""Memo Workflow API Routes - status transitions and acknowledgments"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_memo_workflow_dep, get_request_info_dep
from ...domain.enums import MemoStatus
from ...domain.errors import InvalidTransitionError
from ...domain.models import User, RequestInfo, TransitionResult
from ...engine.memo_workflow import MemoWorkflow, allowed_targets
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


class TransitionRequest(BaseModel):
    """Requested status change"""
    target_status: MemoStatus
    reason: Optional[str] = Field(None, max_length=2000, description="Rejection reason")


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


async def _apply(
    workflow: MemoWorkflow,
    memo_id: str,
    target: Optional[MemoStatus],
    actor: User,
    request_info: RequestInfo,
    reason: Optional[str] = None,
    predecessor_of: Optional[MemoStatus] = None
) -> Dict[str, Any]:
    """Load, authorize and transition; target=None means the recorded predecessor"""
    memo = await workflow.get_memo(memo_id)

    if target is None:
        if predecessor_of == MemoStatus.ARCHIVED and memo.status == MemoStatus.ARCHIVED:
            target = memo.archived_from_status
        elif predecessor_of == MemoStatus.DELETED and memo.status == MemoStatus.DELETED:
            target = memo.deleted_from_status
        if target is None:
            action = "unarchive" if predecessor_of == MemoStatus.ARCHIVED else "restore"
            raise InvalidTransitionError(
                memo.status.value, action, allowed=[s.value for s in allowed_targets(memo)]
            )

    await workflow.authorize(actor, memo, target)
    result: TransitionResult = await workflow.transition(
        memo, target, actor, {"reason": reason, "request_info": request_info}
    )
    return result.model_dump(mode="json")


@router.get("/{memo_id}/transitions")
async def available_transitions(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
) -> Dict[str, Any]:
    """Statuses this memo can move to next."""
    memo = await workflow.get_memo(memo_id)
    await workflow.resolver.require(actor, "memo.view")
    targets: List[MemoStatus] = workflow.available_transitions(memo)
    return {"memo_id": memo_id, "status": memo.status.value, "allowed": [t.value for t in targets]}


@router.post("/{memo_id}/transition")
async def transition_memo(
    memo_id: str,
    request: TransitionRequest,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    """
    Move a memo to another status.

    400 for an illegal transition, 403 when the actor lacks the permission,
    409 when the memo changed concurrently.
    """
    return await _apply(workflow, memo_id, request.target_status, actor, request_info, request.reason)


@router.post("/{memo_id}/submit")
async def submit_memo(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    """Submit a draft for approval."""
    return await _apply(workflow, memo_id, MemoStatus.PENDING, actor, request_info)


@router.post("/{memo_id}/approve")
async def approve_memo(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    """Approve a pending memo."""
    return await _apply(workflow, memo_id, MemoStatus.APPROVED, actor, request_info)


@router.post("/{memo_id}/reject")
async def reject_memo(
    memo_id: str,
    request: RejectRequest,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    """Reject a pending memo with an optional reason."""
    return await _apply(workflow, memo_id, MemoStatus.REJECTED, actor, request_info, request.reason)


@router.post("/{memo_id}/send")
async def send_memo(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    """
    Send a memo to its recipients.

    Admins send drafts directly; other roles' drafts are submitted for
    approval instead.
    """
    memo = await workflow.get_memo(memo_id)
    target = await workflow.authorize_send(actor, memo)
    result: TransitionResult = await workflow.transition(memo, target, actor, {"request_info": request_info})
    return result.model_dump(mode="json")


@router.post("/{memo_id}/archive")
async def archive_memo(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    return await _apply(workflow, memo_id, MemoStatus.ARCHIVED, actor, request_info)


@router.post("/{memo_id}/unarchive")
async def unarchive_memo(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    """Return an archived memo to the status it was archived from."""
    return await _apply(workflow, memo_id, None, actor, request_info, predecessor_of=MemoStatus.ARCHIVED)


@router.post("/{memo_id}/delete")
async def delete_memo(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    """Soft delete."""
    return await _apply(workflow, memo_id, MemoStatus.DELETED, actor, request_info)


@router.post("/{memo_id}/restore")
async def restore_memo(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    request_info: RequestInfo = Depends(get_request_info_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
):
    """Undo a soft delete."""
    return await _apply(workflow, memo_id, None, actor, request_info, predecessor_of=MemoStatus.DELETED)


@router.post("/{memo_id}/acknowledge")
async def acknowledge_memo(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
) -> Dict[str, Any]:
    """Recipient confirms receipt."""
    await workflow.resolver.require(actor, "memo.acknowledge")
    ack = await workflow.acknowledge(memo_id, actor)
    return ack.model_dump(mode="json")


@router.get("/{memo_id}/acknowledgments")
async def acknowledgment_stats(
    memo_id: str,
    actor: User = Depends(get_current_user_dep),
    workflow: MemoWorkflow = Depends(get_memo_workflow_dep)
) -> Dict[str, Any]:
    """Acknowledgment totals for a memo."""
    await workflow.get_memo(memo_id)
    await workflow.resolver.require(actor, "memo.view")
    stats = await workflow.acknowledgment_stats(memo_id)
    return stats.model_dump(mode="json")
