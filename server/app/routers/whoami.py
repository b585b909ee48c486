from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user
from app.core.db import get_db
from app.models.user import User
from app.schemas.auth import WhoAmIResponse
from app.schemas.common import Envelope
from app.services.access import get_access_level
from app.services.geography import describe_hierarchy

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/whoami", response_model=Envelope[WhoAmIResponse])
def whoami(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> Envelope[WhoAmIResponse]:
    return Envelope[WhoAmIResponse](
        data=WhoAmIResponse(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role_name,
            access_level=get_access_level(user.role_name).value,
            barangay_code=user.barangay_code,
            city_municipality_code=user.city_municipality_code,
            province_code=user.province_code,
            region_code=user.region_code,
            address=describe_hierarchy(db, user.barangay_code),
        )
    )
