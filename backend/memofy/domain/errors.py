"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Specific permission denied"""
    error_code = "PERMISSION_DENIED"

    def __init__(self, permission: str, role: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            message or f"You do not have permission to perform this action ({permission})",
            details={"permission": permission, "role": role}
        )
        self.permission = permission


class InactiveUserError(AuthorizationError):
    """Account is deactivated"""
    error_code = "USER_INACTIVE"


class LockNotOwnedError(AuthorizationError):
    """Release/extend attempted by someone other than the lock owner"""
    error_code = "LOCK_NOT_OWNED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class InvalidTransitionError(ValidationError):
    """Memo state machine rejects the requested move"""
    error_code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, allowed: Optional[List[str]] = None):
        super().__init__(
            f"Cannot move memo from '{from_status}' to '{to_status}'",
            details={
                "from_status": from_status,
                "to_status": to_status,
                "allowed": allowed or []
            }
        )
        self.from_status = from_status
        self.to_status = to_status


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class UserNotFoundError(NotFoundError):
    """User not found"""
    error_code = "USER_NOT_FOUND"


class MemoNotFoundError(NotFoundError):
    """Memo not found"""
    error_code = "MEMO_NOT_FOUND"


class RoleNotFoundError(NotFoundError):
    """Role record not found"""
    error_code = "ROLE_NOT_FOUND"


class LockNotFoundError(NotFoundError):
    """No lock present where one was required"""
    error_code = "LOCK_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"


class ResourceLockedError(ConflictError):
    """Resource is being edited by another actor"""
    error_code = "RESOURCE_LOCKED"

    def __init__(
        self,
        message: str,
        locked_by: Optional[Dict[str, Any]] = None,
        expires_at: Optional[str] = None,
        seconds_remaining: int = 0
    ):
        super().__init__(
            message,
            details={
                "locked_by": locked_by,
                "expires_at": expires_at,
                "seconds_remaining": seconds_remaining
            }
        )
        self.locked_by = locked_by
        self.seconds_remaining = seconds_remaining
