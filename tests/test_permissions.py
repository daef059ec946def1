import pytest

from school_portal.permissions import (
    AccessLevel,
    ModuleName,
    UserRole,
    can_admin,
    can_write,
    get_accessible_modules,
    get_module_restrictions,
    get_navigation_items,
    get_permission_matrix,
    has_module_access,
    has_permission,
    normalize_role,
)


def test_access_hierarchy_admin_implies_write_and_read():
    assert has_permission(UserRole.PRINCIPAL, ModuleName.STUDENTS, AccessLevel.ADMIN)
    assert has_permission(UserRole.PRINCIPAL, ModuleName.STUDENTS, AccessLevel.WRITE)
    assert has_permission(UserRole.PRINCIPAL, ModuleName.STUDENTS, AccessLevel.READ)


def test_write_grant_does_not_imply_admin():
    assert can_write(UserRole.CLASS_TEACHER, ModuleName.ATTENDANCE)
    assert not can_admin(UserRole.CLASS_TEACHER, ModuleName.ATTENDANCE)


def test_read_grant_is_read_only():
    assert has_permission("class_teacher", "fees")
    assert not has_permission("class_teacher", "fees", "write")


def test_accepts_string_values():
    assert has_permission("accountant", "payroll", "admin")
    assert has_module_access("student", "homework")


@pytest.mark.parametrize(
    "role, module, access",
    [
        ("janitor", "students", "read"),
        ("admin", "library", "read"),
        ("admin", "students", "owner"),
        (None, "students", "read"),
        ("", "", ""),
        (42, ModuleName.STUDENTS, AccessLevel.READ),
    ],
)
def test_unknown_inputs_answer_false(role, module, access):
    assert has_permission(role, module, access) is False


def test_only_super_admin_manages_users():
    assert can_admin(UserRole.SUPER_ADMIN, ModuleName.USERS)
    assert not has_module_access(UserRole.ADMIN, ModuleName.USERS)
    assert not has_module_access(UserRole.PRINCIPAL, ModuleName.USERS)


def test_student_and_parent_share_grants():
    assert get_accessible_modules("student") == get_accessible_modules("parent")
    assert get_accessible_modules("student") == [
        ModuleName.DASHBOARD,
        ModuleName.TIMETABLE,
        ModuleName.HOMEWORK,
        ModuleName.RESULTS,
        ModuleName.REPORTS,
    ]


def test_accountant_modules():
    assert get_accessible_modules(UserRole.ACCOUNTANT) == [
        ModuleName.DASHBOARD,
        ModuleName.FEES,
        ModuleName.PAYROLL,
        ModuleName.ATTENDANCE,
    ]
    assert get_module_restrictions(UserRole.ACCOUNTANT, ModuleName.ATTENDANCE) == ["teachers"]


def test_non_teaching_staff_sees_dashboard_only():
    assert get_accessible_modules("non_teaching_staff") == [ModuleName.DASHBOARD]
    assert get_module_restrictions("non_teaching_staff", "dashboard") == ["attendance", "notices"]


def test_unknown_role_has_no_modules():
    assert get_accessible_modules("visitor") == []
    assert get_navigation_items("visitor") == []


def test_report_restrictions_for_family_roles():
    assert get_module_restrictions("parent", "reports") == ["fees", "attendance"]
    assert get_module_restrictions("subject_teacher", "reports") == []


def test_permission_matrix_covers_every_module():
    matrix = get_permission_matrix(UserRole.SUBJECT_TEACHER)
    assert set(matrix) == {module.value for module in ModuleName}
    assert matrix["homework"] == {"read": True, "write": True, "admin": False}
    assert matrix["fees"] == {"read": False, "write": False, "admin": False}


def test_permission_matrix_for_selected_modules():
    matrix = get_permission_matrix("accountant", [ModuleName.FEES, "payroll"])
    assert matrix == {
        "fees": {"read": True, "write": True, "admin": True},
        "payroll": {"read": True, "write": True, "admin": True},
    }


def test_navigation_follows_menu_order():
    items = get_navigation_items(UserRole.CLASS_TEACHER)
    assert [item["module"] for item in items] == [
        "dashboard",
        "attendance",
        "timetable",
        "homework",
        "results",
        "reports",
        "fees",
    ]
    assert items[0] == {"name": "Dashboard", "path": "/", "module": "dashboard", "icon": "LayoutDashboard"}


def test_super_admin_navigation_includes_users():
    paths = [item["path"] for item in get_navigation_items("super_admin")]
    assert paths[-1] == "/users"
    assert len(paths) == len(ModuleName)


def test_normalize_role():
    assert normalize_role(" Principal ") == UserRole.PRINCIPAL
    assert normalize_role(UserRole.ADMIN) is UserRole.ADMIN
    assert normalize_role("head_teacher") is None
