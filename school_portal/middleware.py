from collections.abc import Callable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db_session
from .models import User
from .permissions import AccessLevel, ModuleName, UserRole, has_module_access
from .security import AuthError, decode_access_token


def _parse_token(auth_header: str | None) -> str:
    if not auth_header:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing Authorization header")
    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid auth scheme")
    return parts[1].strip()


def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> User:
    token = _parse_token(authorization)
    try:
        payload = decode_access_token(token)
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    user = db.get(User, payload["uid"])
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user")
    return user


def require_roles(*allowed_roles: UserRole) -> Callable:
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            required = ", ".join(role.value for role in allowed_roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {required}",
            )
        return current_user

    return dependency


def require_module_access(module: ModuleName, access: AccessLevel = AccessLevel.READ) -> Callable:
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not has_module_access(current_user.role, module, access):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required: {access.value} access to {module.value} module",
            )
        return current_user

    return dependency


def require_any_module_access(module: ModuleName, *levels: AccessLevel) -> Callable:
    """Pass when the caller holds at least one of ``levels`` on ``module``."""
    levels = levels or (AccessLevel.READ,)

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not any(has_module_access(current_user.role, module, level) for level in levels):
            wanted = " or ".join(level.value for level in levels)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required: {wanted} access to {module.value} module",
            )
        return current_user

    return dependency
