"""Role-based permissions for the school portal.

The table below is the single source of truth for which modules a role may
open and at what level. Every lookup is a pure function: unknown roles,
modules or access levels answer ``False`` (or an empty list) instead of
raising, so callers can pass raw strings straight from a token or request.
"""
import enum
from dataclasses import dataclass
from typing import Any


class UserRole(str, enum.Enum):
    STUDENT = "student"
    PARENT = "parent"
    SUBJECT_TEACHER = "subject_teacher"
    CLASS_TEACHER = "class_teacher"
    NON_TEACHING_STAFF = "non_teaching_staff"
    ACCOUNTANT = "accountant"
    PRINCIPAL = "principal"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class ModuleName(str, enum.Enum):
    DASHBOARD = "dashboard"
    STUDENTS = "students"
    TEACHERS = "teachers"
    ATTENDANCE = "attendance"
    TIMETABLE = "timetable"
    HOMEWORK = "homework"
    RESULTS = "results"
    REPORTS = "reports"
    FEES = "fees"
    PAYROLL = "payroll"
    ADMISSIONS = "admissions"
    DOCUMENTS = "documents"
    CALENDAR = "calendar"
    SETTINGS = "settings"
    USERS = "users"


class AccessLevel(str, enum.Enum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"


# admin > write > read
ACCESS_RANK = {
    AccessLevel.READ: 1,
    AccessLevel.WRITE: 2,
    AccessLevel.ADMIN: 3,
}


@dataclass(frozen=True)
class ModuleGrant:
    module: ModuleName
    access: AccessLevel
    restrictions: tuple[str, ...] = ()


def _grant(module: ModuleName, access: AccessLevel, *restrictions: str) -> ModuleGrant:
    return ModuleGrant(module=module, access=access, restrictions=tuple(restrictions))


_FAMILY_GRANTS = [
    _grant(ModuleName.DASHBOARD, AccessLevel.READ, "notices", "attendance_graph", "results", "pending_fees", "timetable"),
    _grant(ModuleName.TIMETABLE, AccessLevel.READ),
    _grant(ModuleName.HOMEWORK, AccessLevel.READ),
    _grant(ModuleName.RESULTS, AccessLevel.READ),
    _grant(ModuleName.REPORTS, AccessLevel.READ, "fees", "attendance"),
]

_MANAGEMENT_MODULES = [
    ModuleName.DASHBOARD,
    ModuleName.STUDENTS,
    ModuleName.TEACHERS,
    ModuleName.ATTENDANCE,
    ModuleName.TIMETABLE,
    ModuleName.HOMEWORK,
    ModuleName.RESULTS,
    ModuleName.REPORTS,
    ModuleName.FEES,
    ModuleName.PAYROLL,
    ModuleName.ADMISSIONS,
    ModuleName.DOCUMENTS,
    ModuleName.CALENDAR,
    ModuleName.SETTINGS,
]

_MANAGEMENT_GRANTS = [_grant(module, AccessLevel.ADMIN) for module in _MANAGEMENT_MODULES]


ROLE_PERMISSIONS: dict[UserRole, list[ModuleGrant]] = {
    UserRole.STUDENT: list(_FAMILY_GRANTS),
    UserRole.PARENT: list(_FAMILY_GRANTS),
    UserRole.SUBJECT_TEACHER: [
        _grant(ModuleName.DASHBOARD, AccessLevel.READ, "notices", "holidays", "attendance_own"),
        _grant(ModuleName.TIMETABLE, AccessLevel.READ),
        _grant(ModuleName.HOMEWORK, AccessLevel.WRITE),
        _grant(ModuleName.RESULTS, AccessLevel.WRITE),
        _grant(ModuleName.REPORTS, AccessLevel.READ),
    ],
    UserRole.CLASS_TEACHER: [
        _grant(ModuleName.DASHBOARD, AccessLevel.READ, "notices", "holidays", "attendance"),
        _grant(ModuleName.ATTENDANCE, AccessLevel.WRITE),
        _grant(ModuleName.TIMETABLE, AccessLevel.READ),
        _grant(ModuleName.HOMEWORK, AccessLevel.WRITE),
        _grant(ModuleName.RESULTS, AccessLevel.WRITE),
        _grant(ModuleName.REPORTS, AccessLevel.READ),
        _grant(ModuleName.FEES, AccessLevel.READ),
    ],
    UserRole.NON_TEACHING_STAFF: [
        _grant(ModuleName.DASHBOARD, AccessLevel.READ, "attendance", "notices"),
    ],
    UserRole.ACCOUNTANT: [
        _grant(ModuleName.DASHBOARD, AccessLevel.READ),
        _grant(ModuleName.FEES, AccessLevel.ADMIN),
        _grant(ModuleName.PAYROLL, AccessLevel.ADMIN),
        _grant(ModuleName.ATTENDANCE, AccessLevel.READ, "teachers"),
    ],
    UserRole.PRINCIPAL: list(_MANAGEMENT_GRANTS),
    UserRole.ADMIN: list(_MANAGEMENT_GRANTS),
    UserRole.SUPER_ADMIN: _MANAGEMENT_GRANTS + [_grant(ModuleName.USERS, AccessLevel.ADMIN)],
}


ROLE_LABELS = {
    UserRole.STUDENT: "Student",
    UserRole.PARENT: "Parent",
    UserRole.SUBJECT_TEACHER: "Subject Teacher",
    UserRole.CLASS_TEACHER: "Class Teacher",
    UserRole.NON_TEACHING_STAFF: "Non-Teaching Staff",
    UserRole.ACCOUNTANT: "Accountant",
    UserRole.PRINCIPAL: "Principal",
    UserRole.ADMIN: "Admin",
    UserRole.SUPER_ADMIN: "Super Admin",
}


NAVIGATION_ITEMS = [
    {"name": "Dashboard", "path": "/", "module": ModuleName.DASHBOARD, "icon": "LayoutDashboard"},
    {"name": "Students", "path": "/students", "module": ModuleName.STUDENTS, "icon": "Users"},
    {"name": "Teachers", "path": "/teachers", "module": ModuleName.TEACHERS, "icon": "UserCheck"},
    {"name": "Attendance", "path": "/attendance", "module": ModuleName.ATTENDANCE, "icon": "Calendar"},
    {"name": "Timetable", "path": "/timetable", "module": ModuleName.TIMETABLE, "icon": "Clock"},
    {"name": "Homework", "path": "/homework", "module": ModuleName.HOMEWORK, "icon": "BookOpen"},
    {"name": "Results", "path": "/results", "module": ModuleName.RESULTS, "icon": "Trophy"},
    {"name": "Reports", "path": "/reports", "module": ModuleName.REPORTS, "icon": "FileText"},
    {"name": "Fees", "path": "/fees", "module": ModuleName.FEES, "icon": "CreditCard"},
    {"name": "Payroll", "path": "/payroll", "module": ModuleName.PAYROLL, "icon": "Banknote"},
    {"name": "Admissions", "path": "/admissions", "module": ModuleName.ADMISSIONS, "icon": "UserPlus"},
    {"name": "Documents", "path": "/documents", "module": ModuleName.DOCUMENTS, "icon": "FileCheck"},
    {"name": "Calendar", "path": "/calendar", "module": ModuleName.CALENDAR, "icon": "CalendarDays"},
    {"name": "Settings", "path": "/settings", "module": ModuleName.SETTINGS, "icon": "Settings"},
    {"name": "Users", "path": "/users", "module": ModuleName.USERS, "icon": "Users2"},
]


def _coerce(enum_cls, value: Any):
    if isinstance(value, enum_cls):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return None


def normalize_role(value: Any) -> UserRole | None:
    return _coerce(UserRole, value)


def _find_grant(role: Any, module: Any) -> ModuleGrant | None:
    role = _coerce(UserRole, role)
    module = _coerce(ModuleName, module)
    if role is None or module is None:
        return None
    for grant in ROLE_PERMISSIONS.get(role, []):
        if grant.module == module:
            return grant
    return None


def has_permission(role: Any, module: Any, access: Any = AccessLevel.READ) -> bool:
    required = _coerce(AccessLevel, access)
    if required is None:
        return False
    grant = _find_grant(role, module)
    if grant is None:
        return False
    return ACCESS_RANK[grant.access] >= ACCESS_RANK[required]


def has_module_access(role: Any, module: Any, access: Any = AccessLevel.READ) -> bool:
    return has_permission(role, module, access)


def can_write(role: Any, module: Any) -> bool:
    return has_permission(role, module, AccessLevel.WRITE)


def can_admin(role: Any, module: Any) -> bool:
    return has_permission(role, module, AccessLevel.ADMIN)


def get_accessible_modules(role: Any) -> list[ModuleName]:
    role = _coerce(UserRole, role)
    if role is None:
        return []
    return [grant.module for grant in ROLE_PERMISSIONS.get(role, [])]


def get_module_restrictions(role: Any, module: Any) -> list[str]:
    grant = _find_grant(role, module)
    return list(grant.restrictions) if grant else []


def get_permission_matrix(role: Any, modules=None) -> dict[str, dict[str, bool]]:
    """Map each module to its read/write/admin flags for ``role``."""
    modules = list(modules) if modules is not None else list(ModuleName)
    matrix = {}
    for module in modules:
        key = module.value if isinstance(module, ModuleName) else str(module)
        matrix[key] = {level.value: has_permission(role, module, level) for level in AccessLevel}
    return matrix


def get_navigation_items(role: Any) -> list[dict[str, str]]:
    accessible = set(get_accessible_modules(role))
    return [
        {**item, "module": item["module"].value}
        for item in NAVIGATION_ITEMS
        if item["module"] in accessible
    ]
