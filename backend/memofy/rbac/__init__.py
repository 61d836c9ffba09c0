"""RBAC - permission vocabulary and resolution"""
from .registry import list_permissions, list_roles, permissions_by_category
from .resolver import PermissionResolver, resolve_secretary_controls

__all__ = [
    "list_permissions",
    "list_roles",
    "permissions_by_category",
    "PermissionResolver",
    "resolve_secretary_controls",
]
