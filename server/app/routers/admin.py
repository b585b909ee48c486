from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth.deps import require_super_admin
from app.core.db import get_db
from app.models.user import User
from app.schemas.common import Envelope
from app.services.access import GEOGRAPHY_SCOPED_TABLES, ROLE_ACCESS_LEVELS, row_security_statements
from app.services.consistency import check_consistency

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/consistency", response_model=Envelope[dict])
def run_consistency_check(
    repair: bool = Query(default=False),
    db: Session = Depends(get_db),
    actor: User = Depends(require_super_admin),
) -> Envelope[dict]:
    report = check_consistency(db, repair=repair)
    if repair:
        logger.info("consistency repair run", extra={"actor": actor.email, "repaired": report.repaired})
    message = "Geographic codes are consistent" if report.is_consistent else f"{len(report.stale)} stale records found"
    return Envelope[dict](data=report.as_dict(), message=message)


@router.get("/row-security", response_model=Envelope[dict])
def show_row_security(_: User = Depends(require_super_admin)) -> Envelope[dict]:
    return Envelope[dict](
        data={
            "role_access_levels": {role: level.value for role, level in ROLE_ACCESS_LEVELS.items()},
            "statements": {table: row_security_statements(table) for table in GEOGRAPHY_SCOPED_TABLES},
        },
        message="Row-level security policies generated from the role access table",
    )
