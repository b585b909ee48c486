from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.auth.security import decode_access_token
from app.core.db import bind_row_security, get_db
from app.models.user import User
from app.services.access import (
    BARANGAY_ADMIN,
    BARANGAY_STAFF,
    CITY_ADMIN,
    PROVINCE_ADMIN,
    REGION_ADMIN,
    SUPER_ADMIN,
)

bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLES = (SUPER_ADMIN, REGION_ADMIN, PROVINCE_ADMIN, CITY_ADMIN, BARANGAY_ADMIN)
# Residents hold accounts but cannot read the registry.
READ_ROLES = ADMIN_ROLES + (BARANGAY_STAFF,)
WRITE_ROLES = READ_ROLES
DELETE_ROLES = ADMIN_ROLES
USER_ADMIN_ROLES = (SUPER_ADMIN, BARANGAY_ADMIN)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    try:
        user = db.get(User, int(subject))
    except (TypeError, ValueError):
        user = None

    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    bind_row_security(db, user_id=user.id)
    return user


def require_roles(*roles: str) -> Callable[[User], User]:
    def checker(user: User = Depends(get_current_user)) -> User:
        if user.role_name not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return checker


def require_super_admin(user: User = Depends(get_current_user)) -> User:
    if user.role_name != SUPER_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Super Admin privileges required")
    return user
