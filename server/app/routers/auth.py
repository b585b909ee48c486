import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth.security import create_access_token, verify_password
from app.core.config import settings
from app.core.db import get_db
from app.models.user import User
from app.schemas.auth import LoginRequest, SignupRequest, TokenResponse
from app.schemas.common import Envelope
from app.schemas.user_admin import UserAdminSummary
from app.services.access import RESIDENT
from app.services.geography import resolve_barangay
from app.services.user_accounts import create_user, ensure_role, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Envelope[TokenResponse])
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> Envelope[TokenResponse]:
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not verify_password(payload.password, user.hashed_password):
        logger.info("failed login", extra={"email": payload.email})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user.last_login_at = now_utc()
    db.commit()
    token = create_access_token(subject=str(user.id), role=user.role_name)
    return Envelope[TokenResponse](
        data=TokenResponse(access_token=token, expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60),
        message="Login successful",
    )


@router.post("/signup", response_model=Envelope[UserAdminSummary], status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Session = Depends(get_db)) -> Envelope[UserAdminSummary]:
    if resolve_barangay(db, payload.barangay_code) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [{"field": "barangay_code", "message": f"Unknown barangay code {payload.barangay_code}"}],
            },
        )
    if db.query(User.id).filter(User.email == payload.email.lower()).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")

    ensure_role(db, RESIDENT)
    user = create_user(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        mobile_number=payload.mobile_number,
        role_name=RESIDENT,
        barangay_code=payload.barangay_code,
    )
    db.commit()
    db.refresh(user)
    return Envelope[UserAdminSummary](data=UserAdminSummary.model_validate(user), message="Account created successfully")
