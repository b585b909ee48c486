from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.auth.security import hash_password
from app.models.role import Role
from app.models.user import User
from app.services.access import ROLE_ACCESS_LEVELS, ROLE_DESCRIPTIONS
from app.services.geography import apply_geographic_codes, resolve_barangay

logger = logging.getLogger(__name__)

SPECIAL_CHARACTERS = set("!@#$%^&*()_+-={}[]:\";'<>?,./\\")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def validate_password_strength(password: str) -> None:
    if len(password) < 12:
        raise ValueError("Password must be at least 12 characters long.")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must include at least one uppercase letter.")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must include at least one lowercase letter.")
    if not re.search(r"[0-9]", password):
        raise ValueError("Password must include at least one digit.")
    if not any(char in SPECIAL_CHARACTERS for char in password):
        raise ValueError("Password must include at least one symbol.")


def ensure_role(db: Session, name: str) -> Role:
    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        role = Role(name=name, description=ROLE_DESCRIPTIONS.get(name))
        db.add(role)
        db.flush()
    return role


def seed_roles(db: Session) -> list[Role]:
    return [ensure_role(db, name) for name in ROLE_ACCESS_LEVELS]


def load_role(db: Session, role_name: str) -> Role:
    role = db.query(Role).filter(Role.name == role_name).first()
    if role is None:
        raise ValueError(f"Role not found: {role_name}")
    return role


def set_user_barangay(db: Session, user: User, barangay_code: str | None) -> None:
    """Set the home barangay and re-derive its ancestors."""

    if not barangay_code:
        user.barangay_code = None
        apply_geographic_codes(user, None)
        return
    codes = resolve_barangay(db, barangay_code)
    if codes is None:
        raise ValueError(f"Unknown barangay code {barangay_code}")
    user.barangay_code = barangay_code
    apply_geographic_codes(user, codes)


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role_name: str,
    barangay_code: str | None = None,
    mobile_number: str | None = None,
    is_active: bool = True,
) -> User:
    normalized = email.strip().lower()
    if db.query(User.id).filter(User.email == normalized).first():
        raise ValueError("A user with this email already exists.")
    user = User(
        email=normalized,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        mobile_number=mobile_number,
        hashed_password=hash_password(password),
        is_active=is_active,
    )
    user.role = load_role(db, role_name)
    set_user_barangay(db, user, barangay_code)
    db.add(user)
    db.flush()
    logger.info("user created", extra={"email": normalized, "role": role_name, "barangay_code": barangay_code})
    return user
