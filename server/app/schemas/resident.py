from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from app.models.resident import (
    BLOOD_TYPE_VALUES,
    CITIZENSHIP_VALUES,
    CIVIL_STATUS_VALUES,
    EDUCATION_LEVEL_VALUES,
    EDUCATION_STATUS_VALUES,
    EMPLOYMENT_STATUS_VALUES,
    ETHNICITY_VALUES,
    RELIGION_VALUES,
    RELATIONSHIP_TO_HEAD_VALUES,
    SEX_VALUES,
)
from app.schemas.common import CamelInput

EARLIEST_BIRTHDATE = date(1900, 1, 1)
NAME_PATTERN = re.compile(r"^[^\W\d_]+(?:[ \-.'][^\W\d_]*)*$")
MOBILE_PATTERN = re.compile(r"^(\+63|0)?9\d{9}$")
PHILSYS_PATTERN = re.compile(r"^\d{12}$|^\d{16}$")


def check_choice(value: Optional[str], allowed: Iterable[str], label: str) -> Optional[str]:
    if value is None:
        return None
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValueError(f"{label} must be one of: {', '.join(allowed)}")
    return value


def check_person_name(value: Optional[str], label: str, required: bool) -> Optional[str]:
    if value is None:
        if required:
            raise ValueError(f"{label} is required")
        return None
    cleaned = " ".join(value.split())
    if not cleaned:
        if required:
            raise ValueError(f"{label} is required")
        return None
    if len(cleaned) > 100:
        raise ValueError(f"{label} must be at most 100 characters")
    if not NAME_PATTERN.match(cleaned):
        raise ValueError(f"{label} may only contain letters, spaces, hyphens, periods and apostrophes")
    return cleaned


def normalize_mobile(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    compact = re.sub(r"[\s\-()]", "", value)
    if not compact:
        return None
    if not MOBILE_PATTERN.match(compact):
        raise ValueError("Mobile number must be a Philippine mobile number (e.g., 09171234567)")
    return compact


class ResidentFields(CamelInput):
    middle_name: Optional[str] = None
    extension_name: Optional[str] = Field(None, max_length=20)
    birth_place_code: Optional[str] = Field(None, max_length=10)
    civil_status: Optional[str] = None
    civil_status_others_specify: Optional[str] = Field(None, max_length=200)
    citizenship: Optional[str] = None
    email: Optional[EmailStr] = None
    mobile_number: Optional[str] = None
    telephone_number: Optional[str] = Field(None, max_length=20)
    education_attainment: Optional[str] = None
    education_status: Optional[str] = None
    is_graduate: Optional[bool] = None
    employment_status: Optional[str] = None
    occupation_code: Optional[str] = Field(None, max_length=10)
    height: Optional[Decimal] = Field(None, gt=0, lt=300)
    weight: Optional[Decimal] = Field(None, gt=0, lt=500)
    complexion: Optional[str] = Field(None, max_length=50)
    blood_type: Optional[str] = None
    religion: Optional[str] = None
    religion_others_specify: Optional[str] = Field(None, max_length=200)
    ethnicity: Optional[str] = None
    mother_maiden_first: Optional[str] = Field(None, max_length=100)
    mother_maiden_middle: Optional[str] = Field(None, max_length=100)
    mother_maiden_last: Optional[str] = Field(None, max_length=100)
    philsys_card_number: Optional[str] = None
    is_voter: Optional[bool] = None
    is_resident_voter: Optional[bool] = None
    last_voted_date: Optional[date] = None
    is_overseas_filipino_worker: Optional[bool] = None
    is_person_with_disability: Optional[bool] = None
    is_registered_senior_citizen: Optional[bool] = None
    is_solo_parent: Optional[bool] = None
    is_indigenous_people: Optional[bool] = None
    is_migrant: Optional[bool] = None
    household_id: Optional[int] = Field(None, ge=1)
    relationship_to_head: Optional[str] = None
    barangay_code: Optional[str] = Field(None, min_length=9, max_length=10)

    @validator("middle_name")
    def validate_middle_name(cls, value: Optional[str]) -> Optional[str]:
        return check_person_name(value, "Middle name", required=False)

    @validator("sex", check_fields=False)
    def validate_sex(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, SEX_VALUES, "Sex")

    @validator("birthdate", check_fields=False)
    def validate_birthdate(cls, value: Optional[date]) -> Optional[date]:
        if value is None:
            return value
        if value > date.today():
            raise ValueError("Birthdate cannot be in the future")
        if value < EARLIEST_BIRTHDATE:
            raise ValueError("Birthdate cannot be before 1900-01-01")
        return value

    @validator("civil_status")
    def validate_civil_status(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, CIVIL_STATUS_VALUES, "Civil status")

    @validator("citizenship")
    def validate_citizenship(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, CITIZENSHIP_VALUES, "Citizenship")

    @validator("mobile_number")
    def validate_mobile(cls, value: Optional[str]) -> Optional[str]:
        return normalize_mobile(value)

    @validator("education_attainment")
    def validate_education(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, EDUCATION_LEVEL_VALUES, "Education attainment")

    @validator("education_status")
    def validate_education_status(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, EDUCATION_STATUS_VALUES, "Education status")

    @validator("employment_status")
    def validate_employment(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, EMPLOYMENT_STATUS_VALUES, "Employment status")

    @validator("blood_type")
    def validate_blood_type(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, BLOOD_TYPE_VALUES, "Blood type")

    @validator("religion")
    def validate_religion(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, RELIGION_VALUES, "Religion")

    @validator("ethnicity")
    def validate_ethnicity(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, ETHNICITY_VALUES, "Ethnicity")

    @validator("relationship_to_head")
    def validate_relationship_to_head(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, RELATIONSHIP_TO_HEAD_VALUES, "Relationship to head")

    @validator("philsys_card_number")
    def validate_philsys(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        digits = re.sub(r"[\s\-]", "", value)
        if not digits:
            return None
        if not PHILSYS_PATTERN.match(digits):
            raise ValueError("PhilSys card number must have 12 or 16 digits")
        return digits


class ResidentCreate(ResidentFields):
    first_name: str
    last_name: str
    birthdate: date
    sex: str

    @validator("first_name")
    def validate_first_name(cls, value: str) -> str:
        return check_person_name(value, "First name", required=True)

    @validator("last_name")
    def validate_last_name(cls, value: str) -> str:
        return check_person_name(value, "Last name", required=True)


class ResidentUpdate(ResidentFields):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birthdate: Optional[date] = None
    sex: Optional[str] = None

    @validator("first_name")
    def validate_first_name(cls, value: Optional[str]) -> str:
        return check_person_name(value, "First name", required=True)

    @validator("last_name")
    def validate_last_name(cls, value: Optional[str]) -> str:
        return check_person_name(value, "Last name", required=True)

    @validator("sex", "birthdate")
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class ResidentHouseholdRef(BaseModel):
    id: int
    code: str
    name: Optional[str] = None
    street_name: Optional[str] = None
    house_number: Optional[str] = None

    class Config:
        from_attributes = True


class ResidentOut(BaseModel):
    id: int
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    extension_name: Optional[str] = None
    full_name: str
    birthdate: date
    sex: str
    civil_status: Optional[str] = None
    citizenship: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    employment_status: Optional[str] = None
    occupation_code: Optional[str] = None
    philsys_last4: Optional[str] = None
    household_id: Optional[int] = None
    relationship_to_head: Optional[str] = None
    barangay_code: str
    city_municipality_code: Optional[str] = None
    province_code: Optional[str] = None
    region_code: Optional[str] = None
    is_senior_citizen: bool = False
    is_labor_force: bool = False
    is_employed: bool = False
    is_unemployed: bool = False
    is_out_of_school_children: bool = False
    is_out_of_school_youth: bool = False
    is_person_with_disability: bool = False
    is_overseas_filipino_worker: bool = False
    is_solo_parent: bool = False
    is_indigenous_people: bool = False
    is_migrant: bool = False
    is_voter: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ResidentAuditOut(BaseModel):
    id: int
    field: str
    old_value: Optional[str]
    new_value: Optional[str]
    changed_by_id: Optional[int]
    changed_at: datetime

    class Config:
        from_attributes = True


class ResidentDetail(ResidentOut):
    age: int
    birth_place_code: Optional[str] = None
    civil_status_others_specify: Optional[str] = None
    telephone_number: Optional[str] = None
    education_attainment: Optional[str] = None
    education_status: Optional[str] = None
    is_graduate: bool = False
    height: Optional[Decimal] = None
    weight: Optional[Decimal] = None
    complexion: Optional[str] = None
    blood_type: Optional[str] = None
    religion: Optional[str] = None
    religion_others_specify: Optional[str] = None
    ethnicity: Optional[str] = None
    mother_maiden_first: Optional[str] = None
    mother_maiden_middle: Optional[str] = None
    mother_maiden_last: Optional[str] = None
    is_resident_voter: bool = False
    last_voted_date: Optional[date] = None
    is_registered_senior_citizen: bool = False
    household: Optional[ResidentHouseholdRef] = None
    address: Optional[dict] = None
    birth_place: Optional[dict] = None
    occupation: Optional[dict] = None
    has_migration_info: bool = False
    audit_log: List[ResidentAuditOut] = Field(default_factory=list)
