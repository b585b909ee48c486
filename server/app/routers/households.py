from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload

from app.auth.deps import DELETE_ROLES, READ_ROLES, WRITE_ROLES, require_roles
from app.core.config import settings
from app.core.db import get_db
from app.models.household import Household
from app.models.resident import Resident
from app.models.user import User
from app.schemas.common import Envelope, PaginatedEnvelope, Pagination
from app.schemas.household import HouseholdCreate, HouseholdDetail, HouseholdMemberRef, HouseholdOut, HouseholdUpdate
from app.services.access import ensure_in_scope
from app.services.geography import apply_geographic_codes, describe_hierarchy, require_barangay
from app.services.households import (
    build_households_query,
    generate_household_code,
    get_household_or_404,
    income_class_for,
    propagate_codes_to_residents,
    refresh_member_count,
    release_household_head,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/households", tags=["households"])


def _build_household_detail(household: Household, db: Session) -> HouseholdDetail:
    members = [
        HouseholdMemberRef.model_validate(resident)
        for resident in sorted(
            household.active_residents,
            key=lambda item: (item.last_name.lower(), item.first_name.lower()),
        )
    ]
    summary = HouseholdOut.model_validate(household)
    return HouseholdDetail(
        **summary.model_dump(),
        tenure_others_specify=household.tenure_others_specify,
        address=describe_hierarchy(db, household.barangay_code),
        members=members,
    )


def _demote(resident: Resident | None) -> None:
    if resident is not None and resident.relationship_to_head == "head":
        resident.relationship_to_head = None


def _set_head(db: Session, household: Household, head_id: int | None) -> None:
    previous = household.head
    if not head_id:
        household.household_head_id = None
        _demote(previous)
        return
    head = (
        db.query(Resident)
        .filter(Resident.id == head_id, Resident.deleted_at.is_(None), Resident.household_id == household.id)
        .first()
    )
    if head is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [{"field": "household_head_id", "message": "Head must be an active member of the household"}],
            },
        )
    if previous is not None and previous.id != head.id:
        _demote(previous)
    household.household_head_id = head.id
    head.relationship_to_head = "head"


@router.get("", response_model=PaginatedEnvelope[HouseholdOut])
def list_households(
    *,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
) -> PaginatedEnvelope[HouseholdOut]:
    query = build_households_query(db, current_user, search=search)
    total = query.count()
    households = (
        query.order_by(Household.code.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .options(selectinload(Household.head))
        .all()
    )
    return PaginatedEnvelope[HouseholdOut](
        data=[HouseholdOut.model_validate(household) for household in households],
        pagination=Pagination.build(page, limit, total),
        message="Households retrieved successfully",
    )


@router.post("", response_model=Envelope[HouseholdDetail], status_code=status.HTTP_201_CREATED)
def create_household(
    payload: HouseholdCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
) -> Envelope[HouseholdDetail]:
    codes = require_barangay(db, payload.barangay_code)
    ensure_in_scope(current_user, codes)

    values = payload.model_dump(exclude={"barangay_code", "household_head_id"}, exclude_none=True)
    household = Household(
        **values,
        code=generate_household_code(db, payload.barangay_code),
        income_class=income_class_for(payload.monthly_income),
        created_by_id=current_user.id,
        updated_by_id=current_user.id,
    )
    apply_geographic_codes(household, codes)
    db.add(household)
    db.flush()

    if payload.household_head_id:
        # The head must already live in the same barangay; it joins the new household.
        head = (
            db.query(Resident)
            .filter(
                Resident.id == payload.household_head_id,
                Resident.deleted_at.is_(None),
                Resident.barangay_code == household.barangay_code,
            )
            .first()
        )
        if head is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Invalid input data",
                    "details": [{"field": "household_head_id", "message": "Head resident not found in this barangay"}],
                },
            )
        previous_household = head.household
        head.household = household
        apply_geographic_codes(head, codes)
        head.relationship_to_head = "head"
        household.household_head_id = head.id
        release_household_head(db, head, keep=household)
        refresh_member_count(db, previous_household)
    refresh_member_count(db, household)

    db.commit()
    db.refresh(household)
    logger.info(
        "household created",
        extra={"actor": current_user.email, "household": household.code, "barangay_code": household.barangay_code},
    )
    return Envelope[HouseholdDetail](
        data=_build_household_detail(household, db),
        message="Household created successfully",
    )


@router.get("/{household_id}", response_model=Envelope[HouseholdDetail])
def get_household(
    household_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
) -> Envelope[HouseholdDetail]:
    household = get_household_or_404(db, current_user, household_id)
    return Envelope[HouseholdDetail](
        data=_build_household_detail(household, db),
        message="Household retrieved successfully",
    )


@router.put("/{household_id}", response_model=Envelope[HouseholdDetail])
@router.patch("/{household_id}", response_model=Envelope[HouseholdDetail], include_in_schema=False)
def update_household(
    household_id: int,
    payload: HouseholdUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
) -> Envelope[HouseholdDetail]:
    household = get_household_or_404(db, current_user, household_id)
    changes = payload.model_dump(exclude_unset=True)

    barangay_code = changes.pop("barangay_code", None)
    if barangay_code and barangay_code != household.barangay_code:
        codes = require_barangay(db, barangay_code)
        ensure_in_scope(current_user, codes)
        household.code = generate_household_code(db, barangay_code)
        apply_geographic_codes(household, codes)
        propagate_codes_to_residents(db, household)

    if "household_head_id" in changes:
        _set_head(db, household, changes.pop("household_head_id"))

    for field, value in changes.items():
        setattr(household, field, value)
    if "monthly_income" in changes:
        household.income_class = income_class_for(household.monthly_income)

    household.updated_by_id = current_user.id
    db.commit()
    db.refresh(household)
    logger.info("household updated", extra={"actor": current_user.email, "household": household.code})
    return Envelope[HouseholdDetail](
        data=_build_household_detail(household, db),
        message="Household updated successfully",
    )


@router.delete("/{household_id}", response_model=Envelope[dict])
def delete_household(
    household_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*DELETE_ROLES)),
) -> Envelope[dict]:
    household = get_household_or_404(db, current_user, household_id)
    if household.active_residents:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Remove or transfer active members before deleting the household",
        )
    household.is_active = False
    household.deleted_at = datetime.utcnow()
    household.household_head_id = None
    household.updated_by_id = current_user.id
    db.commit()
    logger.info("household archived", extra={"actor": current_user.email, "household": household.code})
    return Envelope[dict](data={"id": household.id}, message="Household deleted successfully")
