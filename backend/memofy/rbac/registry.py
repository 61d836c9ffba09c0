"""Permission Registry - the vocabulary of grantable capabilities

Pure data. Dotted keys (category.action) are what role records grant; the
legacy boolean keys and the static per-role table are kept here as constant
inputs to the resolver.
"""
from collections import OrderedDict
from typing import Dict, List, Tuple

from ..domain.enums import UserRole, SecretaryControl
from ..domain.models import Permission, RoleRecord


# (key, label, description, category)
_PERMISSIONS: List[Tuple[str, str, str, str]] = [
    # Dashboard
    ("dashboard.view", "View Dashboard", "Access to view admin dashboard", "dashboard"),
    ("dashboard.view_own", "View Own Dashboard", "Access to view personal dashboard", "dashboard"),
    # Faculty
    ("faculty.view", "View Faculty", "Can view faculty members in department", "faculty"),
    ("faculty.view_all", "View All Faculty", "Can view all faculty members across departments", "faculty"),
    ("faculty.add", "Add Faculty", "Can invite/add new faculty members", "faculty"),
    ("faculty.edit", "Edit Faculty", "Can edit faculty member details", "faculty"),
    ("faculty.archive", "Archive Faculty", "Can archive/deactivate faculty members", "faculty"),
    ("faculty.unarchive", "Unarchive Faculty", "Can restore archived faculty members", "faculty"),
    ("faculty.remove_permanently", "Permanently Remove Faculty", "Can permanently delete faculty members", "faculty"),
    ("faculty.export", "Export Faculty", "Can export faculty list", "faculty"),
    # Roles
    ("roles.view", "View Roles", "Can view roles list", "roles"),
    ("roles.manage", "Manage Roles", "Can create and edit roles", "roles"),
    ("roles.assign", "Assign Roles", "Can assign roles to users", "roles"),
    ("roles.permissions", "Manage Role Permissions", "Can modify role permissions", "roles"),
    ("roles.delete", "Delete Roles", "Can delete roles", "roles"),
    # Activity
    ("activity.view", "View Own Activity", "Can view own activity logs", "activity"),
    ("activity.view_department", "View Department Activity", "Can view department activity logs", "activity"),
    ("activity.view_all", "View All Activity", "Can view all system activity logs", "activity"),
    ("activity.export", "Export Activity Logs", "Can export activity logs", "activity"),
    ("activity.clear", "Clear Activity Logs", "Can clear activity logs", "activity"),
    # Memos
    ("memo.view", "View Memos", "Can view memos", "memo"),
    ("memo.view_all", "View All Memos", "Can view all memos across system", "memo"),
    ("memo.create", "Create Memos", "Can create new memos", "memo"),
    ("memo.edit", "Edit Memos", "Can edit memos", "memo"),
    ("memo.delete", "Delete Memos", "Can delete memos", "memo"),
    ("memo.archive", "Archive Memos", "Can archive memos", "memo"),
    ("memo.unarchive", "Unarchive Memos", "Can restore archived memos", "memo"),
    ("memo.send", "Send Memos", "Can send memos to recipients", "memo"),
    ("memo.send_cross_department", "Send Across Departments", "Can send memos outside own department", "memo"),
    ("memo.approve", "Approve Memos", "Approve memos submitted for review", "memo"),
    ("memo.reject", "Reject Memos", "Reject memos submitted for review", "memo"),
    ("memo.acknowledge", "Acknowledge Memos", "Can acknowledge received memos", "memo"),
    ("memo.attach_files", "Attach Files", "Can attach files to memos", "memo"),
    ("memo.priority", "Set Memo Priority", "Can set memo priority levels", "memo"),
    ("memo.template", "Manage Templates", "Can create and edit memo templates", "memo"),
    ("signature.manage", "Manage Signatures", "Create and edit memo signatures", "memo"),
    # Calendar
    ("calendar.view", "View Calendar", "Can view calendar", "calendar"),
    ("calendar.add_event", "Add Events", "Can add calendar events", "calendar"),
    ("calendar.edit_event", "Edit Events", "Can edit calendar events", "calendar"),
    ("calendar.delete_event", "Delete Events", "Can delete calendar events", "calendar"),
    ("calendar.archive_event", "Archive Events", "Can archive calendar events", "calendar"),
    ("calendar.sync", "Sync Calendar", "Can sync with Google Calendar", "calendar"),
    # Reports
    ("reports.view", "View Reports", "Can view reports and analytics", "reports"),
    ("reports.export", "Export Reports", "Can export reports", "reports"),
    ("reports.view_analytics", "View Analytics", "Can view system analytics", "reports"),
    ("reports.view_memos", "View Memo Reports", "Can view memo statistics", "reports"),
    ("reports.view_users", "View User Reports", "Can view user activity reports", "reports"),
    # Archive
    ("archive.view", "View Archive", "Can view archived items", "archive"),
    ("archive.restore", "Restore Items", "Can restore archived items", "archive"),
    ("archive.delete_permanently", "Permanently Delete", "Can permanently delete archived items", "archive"),
    ("archive.restore_all", "Restore All", "Can restore all archived items at once", "archive"),
    # Settings
    ("settings.view", "View Settings", "Can view system settings", "settings"),
    ("settings.edit", "Edit Settings", "Can modify system settings", "settings"),
    ("settings.lock_duration", "Manage Lock Duration", "Can configure lock timeout settings", "settings"),
    ("settings.departments", "Manage Departments", "Can manage departments", "settings"),
    ("settings.system", "System Settings", "Can access advanced system settings", "settings"),
    ("account.change_password", "Change Password", "Can change own account password", "settings"),
    # Edit locks
    ("locks.view_all", "View All Locks", "Can list every active edit lock", "admin"),
    ("locks.force_release", "Force Release Locks", "Can release edit locks held by others", "admin"),
    # Navigation
    ("nav.dashboard", "Dashboard Navigation", "Can access Dashboard sidebar", "navigation"),
    ("nav.users", "Users Navigation", "Can access Users sidebar", "navigation"),
    ("nav.faculty", "Faculty Navigation", "Can access Faculty sidebar", "navigation"),
    ("nav.memos", "Memos Navigation", "Can access Memos sidebar", "navigation"),
    ("nav.calendar", "Calendar Navigation", "Can access Calendar sidebar", "navigation"),
    ("nav.reports", "Reports Navigation", "Can access Reports sidebar", "navigation"),
    ("nav.activity_logs", "Activity Logs Navigation", "Can access Activity Logs sidebar", "navigation"),
    ("nav.archive", "Archive Navigation", "Can access Archive sidebar", "navigation"),
    ("nav.roles", "Roles Navigation", "Can access Roles sidebar", "navigation"),
    ("nav.settings", "Settings Navigation", "Can access Settings sidebar", "navigation"),
    # Admin
    ("admin.super", "Super Admin", "Full system access", "admin"),
    ("admin.users", "Manage System Users", "Can manage admin users", "admin"),
]

PERMISSIONS: List[Permission] = [
    Permission(key=key, label=label, description=description, category=category)
    for key, label, description, category in _PERMISSIONS
]

PERMISSION_KEYS = frozenset(p.key for p in PERMISSIONS)


_SECRETARY_DEFAULTS = [
    "dashboard.view_own",
    "faculty.view", "faculty.view_all", "faculty.add", "faculty.edit",
    "faculty.archive", "faculty.unarchive",
    "memo.view", "memo.view_all", "memo.create", "memo.edit", "memo.delete", "memo.archive",
    "memo.unarchive", "memo.send", "memo.acknowledge", "memo.attach_files", "memo.priority",
    "memo.template", "signature.manage",
    "calendar.view", "calendar.add_event", "calendar.edit_event", "calendar.delete_event",
    "calendar.archive_event", "calendar.sync",
    "archive.view", "archive.restore",
    "activity.view", "activity.view_department",
    "settings.view", "account.change_password",
    "nav.dashboard", "nav.faculty", "nav.memos", "nav.calendar", "nav.archive", "nav.settings",
]

_FACULTY_DEFAULTS = [
    "dashboard.view_own",
    "memo.view", "memo.acknowledge",
    "calendar.view", "calendar.add_event", "calendar.edit_event", "calendar.delete_event",
    "archive.view",
    "activity.view",
    "settings.view", "account.change_password",
    "nav.dashboard", "nav.memos", "nav.calendar", "nav.archive", "nav.settings",
]

DEFAULT_ROLES: Dict[UserRole, RoleRecord] = {
    UserRole.ADMIN: RoleRecord(
        name=UserRole.ADMIN,
        label="System Administrator",
        description="Full control over the system",
        permissions=[p.key for p in PERMISSIONS],
    ),
    UserRole.SECRETARY: RoleRecord(
        name=UserRole.SECRETARY,
        label="Department Secretary",
        description="Department Secretary with department-level access",
        permissions=list(_SECRETARY_DEFAULTS),
    ),
    UserRole.FACULTY: RoleRecord(
        name=UserRole.FACULTY,
        label="Faculty Member",
        description="Faculty Member with basic access",
        permissions=list(_FACULTY_DEFAULTS),
    ),
}


# Legacy boolean permission -> dotted key
LEGACY_PERMISSION_MAP: Dict[str, str] = {
    "canCreateMemo": "memo.create",
    "canApproveMemo": "memo.approve",
    "canRejectMemo": "memo.reject",
    "canDeleteMemo": "memo.delete",
    "canViewAllMemos": "memo.view_all",
    "canManageUsers": "faculty.edit",
    "canManageSettings": "settings.edit",
    "canCrossDepartmentSend": "memo.send_cross_department",
    "canViewAnalytics": "reports.view_analytics",
}

# Legacy static per-role table; last resort when role records cannot be read
ROLE_PERMISSIONS: Dict[UserRole, Dict[str, bool]] = {
    UserRole.ADMIN: {key: True for key in LEGACY_PERMISSION_MAP},
    UserRole.SECRETARY: {
        "canCreateMemo": True,
        "canApproveMemo": False,
        "canRejectMemo": False,
        "canDeleteMemo": True,
        "canViewAllMemos": False,
        "canManageUsers": False,
        "canManageSettings": False,
        "canCrossDepartmentSend": False,
        "canViewAnalytics": False,
    },
    UserRole.FACULTY: {key: False for key in LEGACY_PERMISSION_MAP},
}

# Dotted keys additionally gated by a secretary's per-user control flag
SECRETARY_CONTROLLED_PERMISSIONS: Dict[str, SecretaryControl] = {
    "signature.manage": SecretaryControl.ADD_SIGNATURE,
    "memo.send": SecretaryControl.SEND_MEMO,
    "memo.archive": SecretaryControl.ARCHIVE_MEMO,
    "calendar.add_event": SecretaryControl.ADD_EVENT,
    "memo.attach_files": SecretaryControl.ATTACH_FILES,
    "account.change_password": SecretaryControl.CHANGE_PASSWORD,
}


def list_permissions() -> List[Permission]:
    """All permissions, in presentation order"""
    return list(PERMISSIONS)


def list_roles() -> List[RoleRecord]:
    """The three fixed roles with their default permission sets"""
    return [DEFAULT_ROLES[role].model_copy(deep=True) for role in UserRole]


def default_permissions(role: UserRole) -> List[str]:
    return list(DEFAULT_ROLES[UserRole(role)].permissions)


def permissions_by_category() -> "OrderedDict[str, List[Permission]]":
    grouped: "OrderedDict[str, List[Permission]]" = OrderedDict()
    for permission in PERMISSIONS:
        grouped.setdefault(permission.category, []).append(permission)
    return grouped
