from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.deps import READ_ROLES, require_roles
from app.core.db import get_db
from app.models.user import User
from app.schemas.common import Envelope
from app.services.dashboard import dashboard_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=Envelope[dict])
def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
) -> Envelope[dict]:
    return Envelope[dict](data=dashboard_stats(db, current_user), message="Dashboard statistics retrieved successfully")
