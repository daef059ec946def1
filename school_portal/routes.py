from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from .database import get_db_session
from .middleware import get_current_user, require_module_access, require_roles
from .models import CalendarEvent, Notice, User
from .permissions import (
    ROLE_LABELS,
    ROLE_PERMISSIONS,
    AccessLevel,
    ModuleName,
    UserRole,
    get_module_restrictions,
    get_navigation_items,
    get_permission_matrix,
)
from .schemas import (
    CalendarEventCreate,
    CalendarEventOut,
    CalendarEventUpdate,
    FcmTokenRequest,
    LoginRequest,
    LoginResponse,
    ModuleOut,
    ModuleUpdateRequest,
    NoticeCreate,
    NoticeOut,
    RoleRouteResponse,
    StatsOut,
    UserCreateRequest,
    UserModuleOut,
    UserOut,
    UserUpdateRequest,
)
from .services import (
    DEFAULT_USERS,
    create_user,
    delete_user,
    get_user,
    get_user_modules,
    list_modules,
    list_users,
    login_user,
    register_fcm_token,
    set_module_active,
    update_user,
)
from .storage import (
    REPORT_BUILDERS,
    build_dashboard,
    create_row,
    delete_row,
    get_or_404,
    get_stats,
    linked_students,
    update_row,
    update_values,
)


auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])
router = APIRouter(prefix="/api", tags=["School Portal"])


# --- auth ---

@auth_router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db_session)):
    user, token = login_user(db, username=payload.username, password=payload.password)
    return LoginResponse(token=token, user=UserOut.model_validate(user))


@auth_router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@auth_router.post("/logout")
def logout(_: User = Depends(get_current_user)):
    return {"message": "Logout successful"}


@auth_router.get("/permissions")
def permissions(current_user: User = Depends(get_current_user)):
    return {
        "user": UserOut.model_validate(current_user),
        "role_label": ROLE_LABELS[current_user.role],
        "permissions": get_permission_matrix(current_user.role),
    }


@auth_router.get("/navigation")
def navigation(current_user: User = Depends(get_current_user)):
    return {"navigation": get_navigation_items(current_user.role)}


@router.post("/notifications/register")
def register_notifications(
    payload: FcmTokenRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    register_fcm_token(db, current_user, payload.fcm_token)
    return {"message": "Device registered for notifications"}


# --- RBAC demo & role test routes ---

@router.get("/rbac-demo")
def rbac_demo():
    credentials = {role.value: {"username": username, "password": password} for username, password, _, role in DEFAULT_USERS}
    roles = []
    for role, grants in ROLE_PERMISSIONS.items():
        roles.append(
            {
                "role": role.value,
                "label": ROLE_LABELS[role],
                "credentials": credentials.get(role.value),
                "modules": [
                    {"module": grant.module.value, "access": grant.access.value, "restrictions": list(grant.restrictions)}
                    for grant in grants
                ],
            }
        )
    return {
        "message": "Role-based access control overview",
        "roles": roles,
        "usage": [
            "POST /api/auth/login with one of the demo credentials",
            "Send the returned token as 'Authorization: Bearer <token>'",
            "GET /api/auth/permissions to see the caller's module matrix",
            "GET /api/test/student-only, /api/test/teacher-only or /api/test/admin-only to try role guards",
            "Try /api/dashboard, /api/timetable, /api/homework, /api/result, /api/reports, /api/fees, /api/payroll, /api/attendance",
        ],
    }


@router.get("/test/student-only", response_model=RoleRouteResponse)
def student_only(current_user: User = Depends(require_roles(UserRole.STUDENT))):
    return RoleRouteResponse(message="Student protected route", acting_role=current_user.role)


@router.get("/test/teacher-only", response_model=RoleRouteResponse)
def teacher_only(current_user: User = Depends(require_roles(UserRole.CLASS_TEACHER, UserRole.SUBJECT_TEACHER))):
    return RoleRouteResponse(message="Teacher protected route", acting_role=current_user.role)


@router.get("/test/admin-only", response_model=RoleRouteResponse)
def admin_only(current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN))):
    return RoleRouteResponse(message="Admin protected route", acting_role=current_user.role)


# --- users ---

@router.get("/users", response_model=list[UserOut])
def get_users(
    role: UserRole | None = None,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.USERS, AccessLevel.ADMIN)),
):
    return list_users(db, role=role)


@router.get("/users/{user_id}", response_model=UserOut)
def get_user_by_id(
    user_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.USERS, AccessLevel.ADMIN)),
):
    return get_user(db, user_id)


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def add_user(
    payload: UserCreateRequest,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.USERS, AccessLevel.ADMIN)),
):
    return create_user(db, **payload.model_dump())


@router.put("/users/{user_id}", response_model=UserOut)
def edit_user(
    user_id: int,
    payload: UserUpdateRequest,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.USERS, AccessLevel.ADMIN)),
):
    return update_user(db, user_id, update_values(User, payload))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_user(
    user_id: int,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.USERS, AccessLevel.ADMIN)),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- modules ---

@router.get("/modules", response_model=list[ModuleOut])
def get_modules(
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.SETTINGS)),
):
    return list_modules(db)


@router.put("/modules/{name}", response_model=ModuleOut)
def toggle_module(
    name: str,
    payload: ModuleUpdateRequest,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.SETTINGS, AccessLevel.ADMIN)),
):
    return set_module_active(db, name, payload.is_active)


@router.get("/user-modules", response_model=list[UserModuleOut])
def user_modules(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    return get_user_modules(db, current_user)


# --- dashboard, stats, reports ---

@router.get("/dashboard")
def dashboard(
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.DASHBOARD)),
):
    return build_dashboard(db, current_user)


@router.get("/stats", response_model=StatsOut)
def stats(db: Session = Depends(get_db_session), _: User = Depends(get_current_user)):
    return get_stats(db)


def _allowed_report_types(role: UserRole) -> list[str]:
    restrictions = get_module_restrictions(role, ModuleName.REPORTS)
    return [name for name in REPORT_BUILDERS if not restrictions or name in restrictions]


def _report_scope(db: Session, user: User) -> list[int] | None:
    if user.role in (UserRole.STUDENT, UserRole.PARENT):
        return [student.id for student in linked_students(db, user)]
    return None


@router.get("/reports")
def reports_summary(
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.REPORTS)),
):
    scope = _report_scope(db, current_user)
    available = _allowed_report_types(current_user.role)
    return {
        "available_reports": available,
        "summary": {name: REPORT_BUILDERS[name](db, scope) for name in available},
    }


@router.get("/reports/{report_type}")
def report_detail(
    report_type: str,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.REPORTS)),
):
    builder = REPORT_BUILDERS.get(report_type)
    if builder is None:
        raise HTTPException(status_code=404, detail="Report not found")
    if report_type not in _allowed_report_types(current_user.role):
        raise HTTPException(status_code=403, detail=f"Access denied. The {report_type} report is not available for your role")
    return {"type": report_type, "data": builder(db, _report_scope(db, current_user))}


# --- notices ---

@router.get("/notices", response_model=list[NoticeOut])
def get_notices(db: Session = Depends(get_db_session), _: User = Depends(get_current_user)):
    return (
        db.query(Notice)
        .filter(Notice.is_active.is_(True))
        .order_by(Notice.created_at.desc(), Notice.id.desc())
        .all()
    )


@router.post("/notices", response_model=NoticeOut, status_code=status.HTTP_201_CREATED)
def add_notice(
    payload: NoticeCreate,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.DASHBOARD, AccessLevel.WRITE)),
):
    return create_row(db, Notice, {**payload.model_dump(), "created_by": current_user.id})


@router.delete("/notices/{notice_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_notice(
    notice_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.DASHBOARD, AccessLevel.ADMIN)),
):
    notice = get_or_404(db, Notice, notice_id, "Notice")
    update_row(db, notice, {"is_active": False})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- calendar ---

@router.get("/calendar-events", response_model=list[CalendarEventOut])
def get_calendar_events(
    event_type: str | None = None,
    db: Session = Depends(get_db_session),
    _: User = Depends(get_current_user),
):
    query = db.query(CalendarEvent)
    if event_type:
        query = query.filter(CalendarEvent.event_type == event_type)
    return query.order_by(CalendarEvent.start_date).all()


@router.post("/calendar-events", response_model=CalendarEventOut, status_code=status.HTTP_201_CREATED)
def add_calendar_event(
    payload: CalendarEventCreate,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.CALENDAR, AccessLevel.WRITE)),
):
    if payload.end_date and payload.end_date < payload.start_date:
        raise HTTPException(status_code=400, detail="End date cannot be before start date")
    return create_row(db, CalendarEvent, {**payload.model_dump(), "created_by": current_user.id})


@router.put("/calendar-events/{event_id}", response_model=CalendarEventOut)
def edit_calendar_event(
    event_id: int,
    payload: CalendarEventUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.CALENDAR, AccessLevel.WRITE)),
):
    event = get_or_404(db, CalendarEvent, event_id, "Calendar event")
    changes = update_values(CalendarEvent, payload)
    end_date = changes.get("end_date", event.end_date)
    if end_date and end_date < changes.get("start_date", event.start_date):
        raise HTTPException(status_code=400, detail="End date cannot be before start date")
    return update_row(db, event, changes)


@router.delete("/calendar-events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_calendar_event(
    event_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.CALENDAR, AccessLevel.WRITE)),
):
    delete_row(db, get_or_404(db, CalendarEvent, event_id, "Calendar event"))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
