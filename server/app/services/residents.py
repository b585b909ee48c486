from __future__ import annotations

import hashlib
import logging
import re
from datetime import date

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from app.models.household import Household
from app.models.occupation import Occupation
from app.models.resident import Resident
from app.models.user import User
from app.services.access import apply_scope, ensure_in_scope
from app.services.geography import GeographicCodes, codes_of, require_barangay

logger = logging.getLogger(__name__)

SENIOR_CITIZEN_AGE = 60
MINIMUM_WORKING_AGE = 15
LABOR_FORCE_STATUSES = {"employed", "unemployed", "underemployed", "self_employed", "looking_for_work"}
EMPLOYED_STATUSES = {"employed", "self_employed"}
UNEMPLOYED_STATUSES = {"unemployed", "looking_for_work"}
OUT_OF_SCHOOL_CHILDREN_AGES = range(6, 16)
OUT_OF_SCHOOL_YOUTH_AGES = range(16, 25)

_DIGITS = re.compile(r"\D")


def compute_sectoral_flags(resident: Resident, today: date | None = None) -> None:
    """Recompute the derived sectoral indicators from birthdate, employment and education."""

    age = resident.age_on(today)
    employment = resident.employment_status
    education = resident.education_status

    resident.is_senior_citizen = age >= SENIOR_CITIZEN_AGE
    resident.is_labor_force = employment in LABOR_FORCE_STATUSES and age >= MINIMUM_WORKING_AGE
    resident.is_employed = employment in EMPLOYED_STATUSES
    resident.is_unemployed = employment in UNEMPLOYED_STATUSES
    resident.is_out_of_school_children = (
        age in OUT_OF_SCHOOL_CHILDREN_AGES and education is not None and education != "currently_studying"
    )
    resident.is_out_of_school_youth = (
        age in OUT_OF_SCHOOL_YOUTH_AGES
        and education is not None
        and education not in {"currently_studying", "graduated"}
    )


def hash_philsys(card_number: str) -> tuple[str, str]:
    digits = _DIGITS.sub("", card_number)
    return hashlib.sha256(digits.encode("utf-8")).hexdigest(), digits[-4:]


def set_philsys(resident: Resident, card_number: str | None) -> None:
    if not card_number:
        resident.philsys_card_number_hash = None
        resident.philsys_last4 = None
        return
    resident.philsys_card_number_hash, resident.philsys_last4 = hash_philsys(card_number)


def ensure_occupation(db: Session, occupation_code: str | None) -> None:
    if occupation_code and db.get(Occupation, occupation_code) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [{"field": "occupation_code", "message": f"Unknown PSOC code {occupation_code}"}],
            },
        )


def check_relationship_to_head(household: Household | None, relationship: str | None) -> None:
    if relationship and household is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [{"field": "relationship_to_head", "message": "Relationship to head requires a household"}],
            },
        )


def resolve_resident_location(
    db: Session,
    user: User,
    *,
    barangay_code: str | None,
    household_id: int | None,
) -> tuple[GeographicCodes, Household | None]:
    """Work out the codes a resident must carry.

    With a household the codes are the household's and an explicit barangay
    must agree with it. Without one, the barangay is resolved from reference
    data. Either way the target location must be inside the user's scope.
    """

    household: Household | None = None
    if household_id:
        household = (
            apply_scope(db.query(Household), Household, user)
            .filter(Household.id == household_id, Household.deleted_at.is_(None))
            .first()
        )
        if household is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Invalid input data",
                    "details": [{"field": "household_id", "message": "Household not found"}],
                },
            )
        if barangay_code and barangay_code != household.barangay_code:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Invalid input data",
                    "details": [
                        {"field": "barangay_code", "message": "Barangay must match the household's barangay"}
                    ],
                },
            )
        codes = codes_of(household)
    elif barangay_code:
        codes = require_barangay(db, barangay_code)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [{"field": "barangay_code", "message": "Either barangay_code or household_id is required"}],
            },
        )

    ensure_in_scope(user, codes)
    return codes, household


def build_residents_query(
    db: Session,
    user: User,
    *,
    search: str | None = None,
    sex: str | None = None,
    household_id: int | None = None,
    archived: bool = False,
) -> Query:
    query: Query = apply_scope(db.query(Resident), Resident, user)
    if archived:
        query = query.filter(Resident.deleted_at.isnot(None))
    else:
        query = query.filter(Resident.deleted_at.is_(None))

    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Resident.first_name).like(pattern),
                func.lower(Resident.middle_name).like(pattern),
                func.lower(Resident.last_name).like(pattern),
                func.lower(Resident.email).like(pattern),
                Resident.mobile_number.like(pattern),
                Resident.philsys_last4 == search.strip(),
            )
        )
    if sex:
        query = query.filter(Resident.sex == sex)
    if household_id is not None:
        query = query.filter(Resident.household_id == household_id)
    return query


def get_resident_or_404(db: Session, user: User, resident_id: int, *, archived: bool = False) -> Resident:
    resident = (
        build_residents_query(db, user, archived=archived)
        .options(selectinload(Resident.household), selectinload(Resident.migration_info))
        .filter(Resident.id == resident_id)
        .first()
    )
    if resident is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resident not found")
    return resident
