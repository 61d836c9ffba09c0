"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict, model_validator

from .enums import (
    UserRole, ResourceType, MemoStatus, MemoPriority, CalendarEventStatus, RoleStatus
)


# ============================================================================
# Users & Actors
# ============================================================================

class User(BaseModel):
    """Portal user; also the actor of every core operation"""
    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., description="Stable user identifier")
    email: EmailStr = Field(..., description="Login email")
    first_name: str = Field(default="", description="Given name")
    last_name: str = Field(default="", description="Family name")
    role: UserRole = Field(..., description="Single highest role")
    department: Optional[str] = Field(None, description="Required for secretary/faculty, empty for admin")
    employee_id: Optional[str] = None
    # Stored as-is; may be missing or malformed (resolved by the RBAC engine)
    secretary_controls: Optional[Any] = Field(None, description="Per-feature toggles for secretaries")
    is_active: bool = Field(default=True)
    login_attempts: int = Field(default=0, ge=0)
    lock_until: Optional[datetime] = Field(None, description="Login lockout expiry")
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_department(self) -> "User":
        department = (self.department or "").strip()
        if self.role == UserRole.ADMIN:
            if department:
                raise ValueError("Admin users cannot belong to a department")
            self.department = None
        elif not department:
            raise ValueError(f"Department is required for role '{self.role.value}'")
        return self

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or str(self.email)


class ActorSnapshot(BaseModel):
    """Actor identity captured at the time an activity entry is written"""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="User id or 'system'")
    email: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None


class RequestInfo(BaseModel):
    """Request metadata recorded with activity entries"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class SecretaryControls(BaseModel):
    """Resolved secretary feature toggles"""
    add_signature: bool = True
    send_memo: bool = True
    archive_memo: bool = True
    add_event: bool = True
    attach_files: bool = True
    change_password: bool = True
    defaulted: List[str] = Field(default_factory=list, description="Flags that fell back to the default")


# ============================================================================
# RBAC
# ============================================================================

class Permission(BaseModel):
    """Grantable capability; purely descriptive"""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Dotted key, e.g. memo.create")
    label: str
    description: str = ""
    category: str


class RoleRecord(BaseModel):
    """Role entity with its ordered permission list"""
    name: UserRole
    label: str = ""
    description: str = ""
    permissions: List[str] = Field(default_factory=list)
    status: RoleStatus = RoleStatus.ACTIVE
    updated_at: Optional[datetime] = None


# ============================================================================
# Resource Locks
# ============================================================================

class LockOwner(BaseModel):
    """Owner snapshot stored on a lock"""
    id: str
    name: str
    email: str


class ResourceLock(BaseModel):
    """Time-boxed exclusive edit claim on (resource_type, resource_id)"""
    lock_id: str
    resource_type: ResourceType
    resource_id: str
    locked_by: LockOwner
    locked_at: datetime
    expires_at: datetime


class LockResult(BaseModel):
    """Plain result object returned by every lock operation"""
    success: bool
    message: str
    locked: Optional[bool] = None
    lock_id: Optional[str] = None
    resource_type: Optional[ResourceType] = None
    resource_id: Optional[str] = None
    locked_by: Optional[LockOwner] = None
    locked_at: Optional[str] = None
    expires_at: Optional[str] = None
    seconds_remaining: Optional[int] = None
    duration_seconds: Optional[int] = None


class LockDuration(BaseModel):
    """Configured lock duration"""
    minutes: int = Field(..., ge=0, le=60)
    seconds: int = Field(..., ge=0, le=59)

    @property
    def total_seconds(self) -> int:
        return self.minutes * 60 + self.seconds


class SystemSetting(BaseModel):
    """Key/value system setting"""
    key: str
    value: Any = None
    description: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# Memos
# ============================================================================

class Memo(BaseModel):
    """Memo document"""
    model_config = ConfigDict(extra="ignore")

    memo_id: str
    subject: str
    content: str = ""
    sender_id: str
    recipients: List[str] = Field(default_factory=list, description="Recipient user ids")
    department: Optional[str] = None
    priority: MemoPriority = MemoPriority.MEDIUM
    status: MemoStatus = MemoStatus.DRAFT
    attachments: List[Dict[str, Any]] = Field(default_factory=list)

    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    scheduled_send_at: Optional[datetime] = None
    archived_from_status: Optional[MemoStatus] = Field(None, description="Status to return to on unarchive")
    deleted_from_status: Optional[MemoStatus] = Field(None, description="Status to return to on restore")

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_status_fields(self) -> "Memo":
        if self.approved_at is not None and self.rejected_at is not None:
            raise ValueError("approved_at and rejected_at are mutually exclusive")
        if self.status == MemoStatus.ARCHIVED and self.archived_from_status is None:
            raise ValueError("Archived memo must record the status it was archived from")
        if self.status == MemoStatus.DELETED and self.deleted_from_status is None:
            raise ValueError("Deleted memo must record the status it was deleted from")
        if self.status == MemoStatus.REJECTED and self.rejected_at is None:
            raise ValueError("Rejected memo must carry rejected_at")
        if self.status == MemoStatus.APPROVED and self.approved_at is None:
            raise ValueError("Approved memo must carry approved_at")
        return self


class MemoAcknowledgment(BaseModel):
    """Per-recipient delivery/acknowledgment row"""
    memo_id: str
    recipient_id: str
    is_acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None


class AcknowledgmentStats(BaseModel):
    """Acknowledgment summary for a memo"""
    memo_id: str
    total: int
    acknowledged: int
    pending: int
    percentage: float


# ============================================================================
# Calendar
# ============================================================================

class EventParticipants(BaseModel):
    """Who an event is for"""
    departments: List[str] = Field(default_factory=list)
    emails: List[EmailStr] = Field(default_factory=list)


class CalendarEvent(BaseModel):
    """Calendar event, optionally linked to a memo"""
    event_id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    category: str = "standard"
    memo_id: Optional[str] = None
    created_by: str
    participants: EventParticipants = Field(default_factory=EventParticipants)
    status: CalendarEventStatus = CalendarEventStatus.SCHEDULED
    google_event_ids: Dict[str, str] = Field(default_factory=dict, description="participant email -> event id")

    @model_validator(mode="after")
    def _check_range(self) -> "CalendarEvent":
        if self.end < self.start:
            raise ValueError("Event end must not be before its start")
        return self


# ============================================================================
# Activity Log
# ============================================================================

class ActivityLogEntry(BaseModel):
    """Immutable activity audit record"""
    model_config = ConfigDict(extra="ignore")

    activity_id: str
    actor: ActorSnapshot
    action: str
    target: str = Field(..., description="Human readable target, e.g. 'Memo: Budget'")
    target_id: Optional[str] = None
    description: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime
    correlation_id: Optional[str] = None


class TransitionResult(BaseModel):
    """Outcome of a memo transition"""
    memo: Memo
    log_entry: Optional[ActivityLogEntry] = None
