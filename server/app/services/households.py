from __future__ import annotations

import logging
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from app.models.household import Household
from app.models.resident import Resident
from app.models.user import User
from app.services.access import apply_scope
from app.services.geography import apply_geographic_codes, codes_of

logger = logging.getLogger(__name__)

# PSA monthly household income brackets, highest first.
INCOME_BRACKETS: tuple[tuple[Decimal, str], ...] = (
    (Decimal("219140"), "rich"),
    (Decimal("131484"), "high_income"),
    (Decimal("76669"), "upper_middle_income"),
    (Decimal("43828"), "middle_class"),
    (Decimal("21194"), "lower_middle_class"),
    (Decimal("9520"), "low_income"),
)
INCOME_CLASS_VALUES = tuple(name for _, name in INCOME_BRACKETS) + ("poor", "not_determined")

DEFAULT_SUBDIVISION_SEGMENT = "0000"
DEFAULT_STREET_SEGMENT = "0001"


def income_class_for(monthly_income: Decimal | float | int | None) -> str:
    if monthly_income is None:
        return "not_determined"
    amount = Decimal(str(monthly_income))
    if amount < 0:
        return "not_determined"
    for threshold, name in INCOME_BRACKETS:
        if amount >= threshold:
            return name
    return "poor"


def generate_household_code(db: Session, barangay_code: str) -> str:
    """Next free ``<barangay>-0000-0001-<seq>`` code for the barangay."""

    sequence = db.query(func.count(Household.id)).filter(Household.barangay_code == barangay_code).scalar() or 0
    while True:
        sequence += 1
        candidate = f"{barangay_code}-{DEFAULT_SUBDIVISION_SEGMENT}-{DEFAULT_STREET_SEGMENT}-{sequence:04d}"
        if not db.query(Household.id).filter(Household.code == candidate).first():
            return candidate


def refresh_member_count(db: Session, household: Household | None) -> None:
    if household is None or household.id is None:
        return
    db.flush()
    household.member_count = (
        db.query(func.count(Resident.id))
        .filter(Resident.household_id == household.id, Resident.deleted_at.is_(None))
        .scalar()
        or 0
    )


def release_household_head(db: Session, resident: Resident, keep: Household | None = None) -> int:
    """Clear ``household_head_id`` wherever ``resident`` heads a household other than ``keep``."""

    query = db.query(Household).filter(Household.household_head_id == resident.id)
    if keep is not None and keep.id is not None:
        query = query.filter(Household.id != keep.id)
    households = query.all()
    for household in households:
        household.household_head_id = None
        logger.info("household head released", extra={"household": household.code, "resident_id": resident.id})
    return len(households)


def propagate_codes_to_residents(db: Session, household: Household) -> int:
    """Copy the household's geographic codes onto every resident it owns."""

    codes = codes_of(household)
    residents = db.query(Resident).filter(Resident.household_id == household.id).all()
    for resident in residents:
        apply_geographic_codes(resident, codes)
    if residents:
        logger.info(
            "household codes propagated",
            extra={"household": household.code, "residents": len(residents)},
        )
    return len(residents)


def build_households_query(db: Session, user: User, *, search: str | None = None) -> Query:
    query: Query = apply_scope(db.query(Household), Household, user).filter(Household.deleted_at.is_(None))
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Household.code).like(pattern),
                func.lower(Household.name).like(pattern),
                func.lower(Household.street_name).like(pattern),
                func.lower(Household.house_number).like(pattern),
            )
        )
    return query


def get_household_or_404(db: Session, user: User, household_id: int) -> Household:
    household = (
        build_households_query(db, user)
        .options(selectinload(Household.head), selectinload(Household.residents))
        .filter(Household.id == household_id)
        .first()
    )
    if household is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Household not found")
    return household
