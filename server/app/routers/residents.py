from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.auth.deps import DELETE_ROLES, READ_ROLES, WRITE_ROLES, require_roles
from app.core.config import settings
from app.core.db import get_db
from app.models.resident import SEX_VALUES, Resident, ResidentMigrationInfo
from app.models.user import User
from app.schemas.common import Envelope, PaginatedEnvelope, Pagination
from app.schemas.migration import MigrationInfoIn, MigrationInfoOut
from app.schemas.resident import (
    ResidentAuditOut,
    ResidentCreate,
    ResidentDetail,
    ResidentHouseholdRef,
    ResidentOut,
    ResidentUpdate,
    check_choice,
)
from app.services.audit import empty_resident_snapshot, record_resident_changes, snapshot_resident
from app.services.geography import (
    apply_geographic_codes,
    describe_hierarchy,
    resolve_barangay,
    resolve_city,
    resolve_place,
)
from app.services.households import refresh_member_count, release_household_head
from app.services.occupations import serialize_occupation
from app.services.residents import (
    build_residents_query,
    check_relationship_to_head,
    compute_sectoral_flags,
    ensure_occupation,
    get_resident_or_404,
    resolve_resident_location,
    set_philsys,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/residents", tags=["residents"])

_LOCATION_FIELDS = {"barangay_code", "household_id", "philsys_card_number"}


def _household_ref(resident: Resident) -> ResidentHouseholdRef | None:
    household = resident.household
    if household is None or household.deleted_at is not None:
        return None
    return ResidentHouseholdRef.model_validate(household)


def _build_detail(resident: Resident, db: Session) -> ResidentDetail:
    summary = ResidentOut.model_validate(resident)
    return ResidentDetail(
        **summary.model_dump(),
        age=resident.age_on(),
        birth_place_code=resident.birth_place_code,
        civil_status_others_specify=resident.civil_status_others_specify,
        telephone_number=resident.telephone_number,
        education_attainment=resident.education_attainment,
        education_status=resident.education_status,
        is_graduate=resident.is_graduate,
        height=resident.height,
        weight=resident.weight,
        complexion=resident.complexion,
        blood_type=resident.blood_type,
        religion=resident.religion,
        religion_others_specify=resident.religion_others_specify,
        ethnicity=resident.ethnicity,
        mother_maiden_first=resident.mother_maiden_first,
        mother_maiden_middle=resident.mother_maiden_middle,
        mother_maiden_last=resident.mother_maiden_last,
        is_resident_voter=resident.is_resident_voter,
        last_voted_date=resident.last_voted_date,
        is_registered_senior_citizen=resident.is_registered_senior_citizen,
        household=_household_ref(resident),
        address=describe_hierarchy(db, resident.barangay_code),
        birth_place=resolve_place(db, resident.birth_place_code),
        occupation=serialize_occupation(resident.occupation) if resident.occupation else None,
        has_migration_info=resident.migration_info is not None,
        audit_log=[ResidentAuditOut.model_validate(entry) for entry in resident.audit_entries[:20]],
    )


@router.get("", response_model=PaginatedEnvelope[ResidentOut])
def list_residents(
    *,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: str | None = Query(default=None, max_length=100),
    sex: str | None = Query(default=None),
    household_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
) -> PaginatedEnvelope[ResidentOut]:
    if sex is not None:
        try:
            check_choice(sex, SEX_VALUES, "Sex")
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Invalid input data", "details": [{"field": "sex", "message": str(exc)}]},
            ) from exc

    query = build_residents_query(db, current_user, search=search, sex=sex, household_id=household_id)
    total = query.count()
    residents = (
        query.order_by(Resident.last_name.asc(), Resident.first_name.asc(), Resident.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return PaginatedEnvelope[ResidentOut](
        data=[ResidentOut.model_validate(resident) for resident in residents],
        pagination=Pagination.build(page, limit, total),
        message="Residents retrieved successfully",
    )


@router.post("", response_model=Envelope[ResidentDetail], status_code=status.HTTP_201_CREATED)
def create_resident(
    *,
    payload: ResidentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
) -> Envelope[ResidentDetail]:
    codes, household = resolve_resident_location(
        db,
        current_user,
        barangay_code=payload.barangay_code,
        household_id=payload.household_id,
    )
    check_relationship_to_head(household, payload.relationship_to_head)
    ensure_occupation(db, payload.occupation_code)

    values = payload.model_dump(exclude=_LOCATION_FIELDS, exclude_none=True)
    resident = Resident(**values, created_by_id=current_user.id, updated_by_id=current_user.id)
    apply_geographic_codes(resident, codes)
    resident.household = household
    set_philsys(resident, payload.philsys_card_number)
    compute_sectoral_flags(resident)

    db.add(resident)
    db.flush()
    record_resident_changes(db, resident, empty_resident_snapshot(), current_user.id)
    refresh_member_count(db, household)
    db.commit()
    db.refresh(resident)

    logger.info(
        "resident created",
        extra={"actor": current_user.email, "resident_id": resident.id, "barangay_code": resident.barangay_code},
    )
    return Envelope[ResidentDetail](data=_build_detail(resident, db), message="Resident created successfully")


@router.get("/{resident_id}", response_model=Envelope[ResidentDetail])
def get_resident(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
) -> Envelope[ResidentDetail]:
    resident = get_resident_or_404(db, current_user, resident_id)
    return Envelope[ResidentDetail](data=_build_detail(resident, db), message="Resident retrieved successfully")


@router.put("/{resident_id}", response_model=Envelope[ResidentDetail])
@router.patch("/{resident_id}", response_model=Envelope[ResidentDetail], include_in_schema=False)
def update_resident(
    resident_id: int,
    payload: ResidentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
) -> Envelope[ResidentDetail]:
    resident = get_resident_or_404(db, current_user, resident_id)
    changes = payload.model_dump(exclude_unset=True)
    previous = snapshot_resident(resident)
    previous_household = resident.household

    if "barangay_code" in changes or "household_id" in changes:
        household_id = changes.get("household_id", resident.household_id)
        barangay_code = changes.get("barangay_code")
        if barangay_code is None and not household_id:
            barangay_code = resident.barangay_code
        if "household_id" not in changes and barangay_code and barangay_code != resident.barangay_code:
            # Moving to another barangay detaches the resident from its household.
            household_id = None
        codes, household = resolve_resident_location(
            db,
            current_user,
            barangay_code=barangay_code,
            household_id=household_id,
        )
        apply_geographic_codes(resident, codes)
        resident.household = household
        if household is not previous_household and "relationship_to_head" not in changes:
            resident.relationship_to_head = None
    if "relationship_to_head" in changes:
        check_relationship_to_head(resident.household, changes["relationship_to_head"])

    if "occupation_code" in changes:
        ensure_occupation(db, changes["occupation_code"])
    if "philsys_card_number" in changes:
        set_philsys(resident, changes["philsys_card_number"])

    for field, value in changes.items():
        if field in _LOCATION_FIELDS:
            continue
        if value is None and not Resident.__table__.c[field].nullable:
            continue
        setattr(resident, field, value)

    resident.updated_by_id = current_user.id
    compute_sectoral_flags(resident)

    db.flush()
    changed = record_resident_changes(db, resident, previous, current_user.id)
    if previous_household is not resident.household:
        release_household_head(db, resident, keep=resident.household)
        refresh_member_count(db, previous_household)
    refresh_member_count(db, resident.household)
    db.commit()
    db.refresh(resident)

    logger.info(
        "resident updated",
        extra={"actor": current_user.email, "resident_id": resident.id, "fields_changed": changed},
    )
    return Envelope[ResidentDetail](data=_build_detail(resident, db), message="Resident updated successfully")


@router.delete("/{resident_id}", response_model=Envelope[dict])
def delete_resident(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*DELETE_ROLES)),
) -> Envelope[dict]:
    resident = get_resident_or_404(db, current_user, resident_id)

    previous = snapshot_resident(resident)
    resident.is_active = False
    resident.deleted_at = datetime.utcnow()
    resident.updated_by_id = current_user.id

    db.flush()
    record_resident_changes(db, resident, previous, current_user.id)
    release_household_head(db, resident)
    refresh_member_count(db, resident.household)
    db.commit()

    logger.info("resident archived", extra={"actor": current_user.email, "resident_id": resident.id})
    return Envelope[dict](data={"id": resident.id}, message="Resident deleted successfully")


@router.post("/{resident_id}/restore", response_model=Envelope[ResidentDetail])
def restore_resident(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*DELETE_ROLES)),
) -> Envelope[ResidentDetail]:
    resident = get_resident_or_404(db, current_user, resident_id, archived=True)

    previous = snapshot_resident(resident)
    resident.is_active = True
    resident.deleted_at = None
    resident.updated_by_id = current_user.id
    if resident.household is not None and resident.household.deleted_at is not None:
        # Archived households do not take members back.
        resident.household = None

    db.flush()
    record_resident_changes(db, resident, previous, current_user.id)
    refresh_member_count(db, resident.household)
    db.commit()
    db.refresh(resident)
    return Envelope[ResidentDetail](data=_build_detail(resident, db), message="Resident restored successfully")


def _apply_previous_address(db: Session, info: ResidentMigrationInfo, payload: MigrationInfoIn) -> None:
    if payload.previous_barangay_code:
        codes = resolve_barangay(db, payload.previous_barangay_code)
        if codes is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Invalid input data",
                    "details": [{"field": "previous_barangay_code", "message": "Unknown barangay code"}],
                },
            )
    elif payload.previous_city_municipality_code:
        codes = resolve_city(db, payload.previous_city_municipality_code)
        if codes is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Invalid input data",
                    "details": [{"field": "previous_city_municipality_code", "message": "Unknown city code"}],
                },
            )
    else:
        codes = None

    info.previous_barangay_code = codes.barangay_code if codes else None
    info.previous_city_municipality_code = codes.city_municipality_code if codes else None
    info.previous_province_code = codes.province_code if codes else None
    info.previous_region_code = codes.region_code if codes else None


@router.get("/{resident_id}/migration", response_model=Envelope[MigrationInfoOut | None])
def get_migration_info(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
) -> Envelope[MigrationInfoOut | None]:
    resident = get_resident_or_404(db, current_user, resident_id)
    info = resident.migration_info
    return Envelope[MigrationInfoOut | None](
        data=MigrationInfoOut.model_validate(info) if info else None,
        message="Migration information retrieved successfully" if info else "No migration information recorded",
    )


@router.put("/{resident_id}/migration", response_model=Envelope[MigrationInfoOut])
def upsert_migration_info(
    resident_id: int,
    payload: MigrationInfoIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
) -> Envelope[MigrationInfoOut]:
    resident = get_resident_or_404(db, current_user, resident_id)
    info = resident.migration_info
    if info is None:
        info = ResidentMigrationInfo(resident_id=resident.id)
        resident.migration_info = info

    _apply_previous_address(db, info, payload)
    info.date_of_transfer = payload.date_of_transfer
    info.reason_for_leaving = payload.reason_for_leaving
    info.reason_for_transferring = payload.reason_for_transferring
    info.length_of_stay_previous_months = payload.length_of_stay_previous_months
    info.duration_of_stay_current_months = payload.duration_of_stay_current_months
    info.is_intending_to_return = payload.is_intending_to_return

    previous = snapshot_resident(resident)
    resident.is_migrant = True
    resident.updated_by_id = current_user.id
    db.flush()
    record_resident_changes(db, resident, previous, current_user.id)
    db.commit()
    db.refresh(info)
    return Envelope[MigrationInfoOut](
        data=MigrationInfoOut.model_validate(info),
        message="Migration information saved successfully",
    )


@router.delete("/{resident_id}/migration", response_model=Envelope[dict])
def delete_migration_info(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
) -> Envelope[dict]:
    resident = get_resident_or_404(db, current_user, resident_id)
    if resident.migration_info is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Migration information not found")

    previous = snapshot_resident(resident)
    resident.migration_info = None
    resident.is_migrant = False
    resident.updated_by_id = current_user.id
    db.flush()
    record_resident_changes(db, resident, previous, current_user.id)
    db.commit()
    return Envelope[dict](data={"resident_id": resident.id}, message="Migration information deleted successfully")
