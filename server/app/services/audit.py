from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.orm import Session

from app.models.resident import Resident, ResidentAudit

_TRACKED_FIELDS = {
    "first_name",
    "middle_name",
    "last_name",
    "extension_name",
    "birthdate",
    "birth_place_code",
    "sex",
    "civil_status",
    "citizenship",
    "email",
    "mobile_number",
    "telephone_number",
    "education_attainment",
    "education_status",
    "employment_status",
    "occupation_code",
    "religion",
    "ethnicity",
    "philsys_last4",
    "is_voter",
    "is_resident_voter",
    "is_overseas_filipino_worker",
    "is_person_with_disability",
    "is_solo_parent",
    "is_indigenous_people",
    "is_migrant",
    "household_id",
    "relationship_to_head",
    "barangay_code",
    "city_municipality_code",
    "province_code",
    "region_code",
    "is_active",
    "deleted_at",
}


def snapshot_resident(resident: Resident) -> Dict[str, Any]:
    """Create a snapshot of tracked fields for comparison."""

    return {field: getattr(resident, field) for field in _TRACKED_FIELDS}


def empty_resident_snapshot() -> Dict[str, Any]:
    return {field: None for field in _TRACKED_FIELDS}


def _to_string(value: Any) -> str | None:
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def record_resident_changes(
    db: Session,
    resident: Resident,
    previous_snapshot: Dict[str, Any],
    actor_id: int | None,
) -> int:
    """Persist one audit row per tracked field that changed; returns the row count."""

    current_snapshot = snapshot_resident(resident)
    changed = 0
    for field in sorted(previous_snapshot):
        old_value = previous_snapshot[field]
        new_value = current_snapshot.get(field)
        if old_value == new_value:
            continue
        db.add(
            ResidentAudit(
                resident_id=resident.id,
                field=field,
                old_value=_to_string(old_value),
                new_value=_to_string(new_value),
                changed_by_id=actor_id,
            )
        )
        changed += 1
    return changed
