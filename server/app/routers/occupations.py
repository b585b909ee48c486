from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user
from app.core.db import get_db
from app.models.user import User
from app.schemas.common import Envelope
from app.services.occupations import get_occupation_or_404, search_occupations, serialize_occupation

router = APIRouter(prefix="/psoc", tags=["occupations"])


@router.get("/search", response_model=Envelope[list[dict]])
def search(
    q: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Envelope[list[dict]]:
    occupations = search_occupations(db, q, limit=limit)
    return Envelope[list[dict]](
        data=[serialize_occupation(occupation) for occupation in occupations],
        message=f"{len(occupations)} occupations found",
    )


@router.get("/{code}", response_model=Envelope[dict])
def get_occupation(
    code: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Envelope[dict]:
    occupation = get_occupation_or_404(db, code)
    return Envelope[dict](data=serialize_occupation(occupation), message="Occupation retrieved successfully")
