from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.auth.deps import USER_ADMIN_ROLES, require_roles
from app.core.config import settings
from app.core.db import get_db
from app.models.user import User
from app.schemas.common import Envelope, PaginatedEnvelope, Pagination
from app.schemas.user_admin import UserAdminSummary, UserCreateRequest, UserUpdateRequest
from app.services.access import (
    ROLE_ACCESS_LEVELS,
    apply_scope,
    can_manage_level,
    ensure_in_scope,
    get_access_level,
    scope_filter,
)
from app.services.geography import GeographicCodes, codes_of, resolve_barangay
from app.services.user_accounts import create_user, ensure_role, set_user_barangay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/users", tags=["users"])


def _check_role_assignment(actor: User, role_name: str) -> None:
    if role_name not in ROLE_ACCESS_LEVELS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Invalid input data", "details": [{"field": "role", "message": f"Unknown role {role_name}"}]},
        )
    if not can_manage_level(actor, role_name):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot assign a role wider than your own")


def _target_codes(db: Session, barangay_code: str | None) -> GeographicCodes:
    if not barangay_code:
        return GeographicCodes(None, None, None, None)
    codes = resolve_barangay(db, barangay_code)
    if codes is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [{"field": "barangay_code", "message": f"Unknown barangay code {barangay_code}"}],
            },
        )
    return codes


def _check_scope_code(role_name: str, codes: GeographicCodes) -> None:
    """A scoped role needs a home barangay that resolves to the code its tier filters on."""

    scope = scope_filter(get_access_level(role_name), codes)
    if scope is not None and scope.matches_nothing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [
                    {"field": "barangay_code", "message": f"Role {role_name} needs a barangay with a known {scope.column}"}
                ],
            },
        )


def _get_user_or_404(db: Session, actor: User, user_id: int) -> User:
    user = apply_scope(db.query(User), User, actor).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("", response_model=PaginatedEnvelope[UserAdminSummary])
def list_users(
    *,
    search: str | None = Query(default=None, max_length=100),
    role: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles(*USER_ADMIN_ROLES)),
) -> PaginatedEnvelope[UserAdminSummary]:
    query = apply_scope(db.query(User), User, actor)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(User.email).like(pattern),
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
            )
        )
    if role:
        query = query.filter(User.role.has(name=role))
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))

    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return PaginatedEnvelope[UserAdminSummary](
        data=[UserAdminSummary.model_validate(user) for user in users],
        pagination=Pagination.build(page, limit, total),
        message="Users retrieved successfully",
    )


@router.post("", response_model=Envelope[UserAdminSummary], status_code=status.HTTP_201_CREATED)
def create_user_account(
    payload: UserCreateRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles(*USER_ADMIN_ROLES)),
) -> Envelope[UserAdminSummary]:
    _check_role_assignment(actor, payload.role)
    codes = _target_codes(db, payload.barangay_code)
    ensure_in_scope(actor, codes)
    _check_scope_code(payload.role, codes)
    if db.query(User.id).filter(User.email == payload.email.lower()).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")

    ensure_role(db, payload.role)
    user = create_user(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        mobile_number=payload.mobile_number,
        role_name=payload.role,
        barangay_code=payload.barangay_code,
    )
    db.commit()
    db.refresh(user)
    logger.info("user provisioned", extra={"actor": actor.email, "user": user.email, "role": payload.role})
    return Envelope[UserAdminSummary](data=UserAdminSummary.model_validate(user), message="User created successfully")


@router.patch("/{user_id}", response_model=Envelope[UserAdminSummary])
def update_user_account(
    user_id: int,
    payload: UserUpdateRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles(*USER_ADMIN_ROLES)),
) -> Envelope[UserAdminSummary]:
    user = _get_user_or_404(db, actor, user_id)
    changes = payload.model_dump(exclude_unset=True)

    if not can_manage_level(actor, user.role_name):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot manage a user with a wider role")
    if user.id == actor.id and (changes.get("is_active") is False or "role" in changes):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate or re-role yourself")

    if changes.get("role"):
        _check_role_assignment(actor, changes["role"])
        user.role = ensure_role(db, changes["role"])
    if "barangay_code" in changes:
        codes = _target_codes(db, changes["barangay_code"])
        ensure_in_scope(actor, codes)
        set_user_barangay(db, user, changes["barangay_code"])
    if "role" in changes or "barangay_code" in changes:
        _check_scope_code(user.role_name, codes_of(user))

    for field in ("first_name", "last_name", "mobile_number"):
        if field in changes:
            setattr(user, field, changes[field])
    if changes.get("is_active") is not None:
        user.is_active = changes["is_active"]

    db.commit()
    db.refresh(user)
    logger.info("user updated", extra={"actor": actor.email, "user": user.email, "fields": sorted(changes)})
    return Envelope[UserAdminSummary](data=UserAdminSummary.model_validate(user), message="User updated successfully")
