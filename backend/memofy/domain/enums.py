"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class UserRole(str, Enum):
    """Closed set of portal roles (single highest-role model)"""
    ADMIN = "admin"
    SECRETARY = "secretary"
    FACULTY = "faculty"


class SecretaryControl(str, Enum):
    """Per-feature toggles an admin can switch off for a single secretary"""
    ADD_SIGNATURE = "add_signature"
    SEND_MEMO = "send_memo"
    ARCHIVE_MEMO = "archive_memo"
    ADD_EVENT = "add_event"
    ATTACH_FILES = "attach_files"
    CHANGE_PASSWORD = "change_password"

    @property
    def legacy_key(self) -> str:
        """camelCase key the portal front-end stores (e.g. sendMemo)"""
        head, *tail = self.value.split("_")
        return head + "".join(part.capitalize() for part in tail)


class ResourceType(str, Enum):
    """Resources that can carry an edit lock"""
    USER = "user"
    MEMO = "memo"


class MemoStatus(str, Enum):
    """Memo lifecycle state"""
    DRAFT = "draft"
    PENDING = "pending"
    SENT = "sent"
    READ = "read"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"  # Parked, remembers its predecessor
    DELETED = "deleted"    # Soft delete, remembers its predecessor


class MemoPriority(str, Enum):
    """Memo priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class MemoTransition(str, Enum):
    """Named memo transitions (also the activity log action)"""
    SUBMIT = "submit_memo"
    SEND = "send_memo"
    APPROVE = "approve_memo"
    REJECT = "reject_memo"
    REVISE = "revise_memo"
    RESUBMIT = "resubmit_memo"
    READ = "read_memo"
    ARCHIVE = "archive_memo"
    UNARCHIVE = "unarchive_memo"
    DELETE = "delete_memo"
    RESTORE = "restore_memo"


class CalendarEventStatus(str, Enum):
    """Calendar event status"""
    SCHEDULED = "scheduled"
    SENT = "sent"
    CANCELLED = "cancelled"


class RoleStatus(str, Enum):
    """Role record status"""
    ACTIVE = "active"
    INACTIVE = "inactive"


class ActivityAction(str, Enum):
    """Activity log actions written outside the memo workflow"""
    LOCK_ACQUIRED = "lock_acquired"
    LOCK_RELEASED = "lock_released"
    LOCK_FORCE_RELEASED = "lock_force_released"
    LOCK_EXTENDED = "lock_extended"
    LOCKS_CLEANED_UP = "locks_cleaned_up"
    LOCK_DURATION_UPDATED = "lock_duration_updated"
    SECRETARY_CONTROLS_DEFAULT_APPLIED = "secretary_controls_default_applied"
    MEMO_ACKNOWLEDGED = "memo_acknowledged"
    USER_PROFILE_EDITED = "user_profile_edited"
    ACTIVITY_LOGS_PURGED = "activity_logs_purged"
