from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from app.models.occupation import PSOC_LEVELS, Occupation

HIERARCHY_SEPARATOR = " › "
MAX_HIERARCHY_DEPTH = len(PSOC_LEVELS)


def hierarchy_chain(occupation: Occupation) -> list[Occupation]:
    chain = [occupation]
    current = occupation.parent
    while current is not None and len(chain) < MAX_HIERARCHY_DEPTH:
        chain.append(current)
        current = current.parent
    return chain


def hierarchy_title(occupation: Occupation) -> str:
    """``"title › parent title › ..."`` from the entry up to its major group."""

    return HIERARCHY_SEPARATOR.join(item.title for item in hierarchy_chain(occupation))


def serialize_occupation(occupation: Occupation) -> dict:
    return {
        "code": occupation.code,
        "title": occupation.title,
        "level": occupation.level,
        "parent_code": occupation.parent_code,
        "hierarchy": hierarchy_title(occupation),
    }


def search_occupations(db: Session, q: str | None, limit: int = 20) -> list[Occupation]:
    if not q or len(q.strip()) < 2:
        return []
    term = q.strip().lower()
    pattern = f"%{term}%"
    # Exact code, then titles starting with the term, then the rest.
    rank = case(
        (Occupation.code == q.strip(), 0),
        (func.lower(Occupation.title).like(f"{term}%"), 1),
        else_=2,
    )
    return (
        db.query(Occupation)
        .filter(or_(Occupation.code.like(f"{q.strip()}%"), func.lower(Occupation.title).like(pattern)))
        .order_by(rank, Occupation.title.asc(), Occupation.code.asc())
        .limit(limit)
        .all()
    )


def get_occupation_or_404(db: Session, code: str) -> Occupation:
    occupation = db.get(Occupation, code)
    if occupation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Occupation not found")
    return occupation
