import logging
import re
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from .config import settings
from .models import Module, RoleModule, User
from .permissions import (
    NAVIGATION_ITEMS,
    ROLE_PERMISSIONS,
    AccessLevel,
    ModuleName,
    UserRole,
    has_permission,
)
from .security import create_access_token, hash_password, verify_password


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

DEFAULT_USERS = [
    ("admin", "admin123", "System Administrator", UserRole.SUPER_ADMIN),
    ("principal", "principal123", "School Principal", UserRole.PRINCIPAL),
    ("teacher", "teacher123", "Class Teacher", UserRole.CLASS_TEACHER),
    ("subject_teacher", "subject123", "Subject Teacher", UserRole.SUBJECT_TEACHER),
    ("accountant", "accountant123", "School Accountant", UserRole.ACCOUNTANT),
    ("student", "student123", "Test Student", UserRole.STUDENT),
    ("parent", "parent123", "Test Parent", UserRole.PARENT),
    ("staff", "staff123", "Office Staff", UserRole.NON_TEACHING_STAFF),
]

MODULE_DESCRIPTIONS = {
    ModuleName.DASHBOARD: "Overview and key metrics",
    ModuleName.STUDENTS: "Student records and profiles",
    ModuleName.TEACHERS: "Teacher records and assignments",
    ModuleName.ATTENDANCE: "Daily attendance tracking",
    ModuleName.TIMETABLE: "Class schedules and periods",
    ModuleName.HOMEWORK: "Assignments and submissions",
    ModuleName.RESULTS: "Exams, marks and grades",
    ModuleName.REPORTS: "Attendance, fee and result reports",
    ModuleName.FEES: "Fee structures, invoices and payments",
    ModuleName.PAYROLL: "Staff salaries and payslips",
    ModuleName.ADMISSIONS: "Admission applications",
    ModuleName.DOCUMENTS: "Certificates and document requests",
    ModuleName.CALENDAR: "Holidays, exams and events",
    ModuleName.SETTINGS: "School configuration",
    ModuleName.USERS: "User accounts and roles",
}


def _normalize_email(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    normalized = value.lower().strip()
    if not EMAIL_PATTERN.match(normalized):
        raise HTTPException(status_code=400, detail="Invalid email format")
    return normalized


def login_user(db: Session, *, username: str, password: str) -> tuple[User, str]:
    username = username.strip()
    user = db.query(User).filter(User.username == username).first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login attempt for username={username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        logger.warning(f"Login attempt for disabled account username={username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is disabled")

    user.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(user)

    token = create_access_token(user_id=user.id, username=user.username, role=user.role.value, email=user.email)
    logger.info(f"User {user.username} logged in as {user.role.value}")
    return user, token


def list_users(db: Session, *, role: UserRole | None = None) -> list[User]:
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    return query.order_by(User.id).all()


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def create_user(
    db: Session,
    *,
    username: str,
    password: str,
    name: str,
    role: UserRole,
    email: str | None = None,
    phone: str | None = None,
    assigned_class: str | None = None,
    assigned_subject: str | None = None,
    is_active: bool = True,
) -> User:
    username = username.strip()
    if db.query(User).filter(User.username == username).first():
        raise HTTPException(status_code=409, detail="Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        name=name.strip(),
        role=role,
        email=_normalize_email(email),
        phone=phone,
        assigned_class=assigned_class,
        assigned_subject=assigned_subject,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {user.username} with role {role.value}")
    return user


def update_user(db: Session, user_id: int, changes: dict) -> User:
    user = get_user(db, user_id)
    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
    if "email" in changes:
        changes["email"] = _normalize_email(changes["email"])
    for field_name, value in changes.items():
        setattr(user, field_name, value)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    db.delete(user)
    db.commit()
    logger.info(f"Deleted user {user.username}")


def register_fcm_token(db: Session, user: User, token: str) -> User:
    user.fcm_token = token.strip()
    db.commit()
    db.refresh(user)
    return user


def seed_default_users(db: Session, rounds: int | None = None) -> int:
    created = 0
    for username, password, name, role in DEFAULT_USERS:
        exists = db.query(User).filter(User.username == username).first()
        if exists:
            continue
        db.add(
            User(
                username=username,
                password_hash=hash_password(password, rounds=rounds),
                name=name,
                email=f"{username}@school.local",
                role=role,
                is_active=True,
            )
        )
        created += 1
    db.commit()
    if created:
        logger.info(f"Seeded {created} default user(s)")
    return created


def seed_modules(db: Session) -> None:
    """Mirror the static permission table into the modules / role_modules catalog."""
    modules_by_name = {module.name: module for module in db.query(Module).all()}
    for item in NAVIGATION_ITEMS:
        module_name = item["module"]
        if module_name.value in modules_by_name:
            continue
        module = Module(
            name=module_name.value,
            display_name=item["name"],
            description=MODULE_DESCRIPTIONS.get(module_name),
            icon=item["icon"],
            route=item["path"],
            is_active=True,
        )
        db.add(module)
        modules_by_name[module.name] = module
    db.flush()

    existing = {(row.role, row.module_id) for row in db.query(RoleModule).all()}
    for role, grants in ROLE_PERMISSIONS.items():
        for grant in grants:
            module = modules_by_name[grant.module.value]
            if (role.value, module.id) in existing:
                continue
            db.add(
                RoleModule(
                    role=role.value,
                    module_id=module.id,
                    can_read=True,
                    can_write=has_permission(role, grant.module, AccessLevel.WRITE),
                    can_delete=has_permission(role, grant.module, AccessLevel.ADMIN),
                )
            )
    db.commit()


def seed_database(db: Session) -> None:
    seed_modules(db)
    if settings.seed_test_users:
        seed_default_users(db)


def list_modules(db: Session) -> list[Module]:
    return db.query(Module).order_by(Module.id).all()


def set_module_active(db: Session, name: str, is_active: bool) -> Module:
    module = db.query(Module).filter(Module.name == name).first()
    if not module:
        raise HTTPException(status_code=404, detail="Module not found")
    module.is_active = is_active
    db.commit()
    db.refresh(module)
    logger.info(f"Module {name} set active={is_active}")
    return module


def get_user_modules(db: Session, user: User) -> list[dict]:
    rows = (
        db.query(RoleModule)
        .join(Module, RoleModule.module_id == Module.id)
        .filter(RoleModule.role == user.role.value, Module.is_active.is_(True))
        .order_by(Module.id)
        .all()
    )
    return [
        {
            "id": row.module.id,
            "name": row.module.name,
            "display_name": row.module.display_name,
            "description": row.module.description,
            "icon": row.module.icon,
            "route": row.module.route,
            "can_read": row.can_read,
            "can_write": row.can_write,
            "can_delete": row.can_delete,
        }
        for row in rows
    ]
