from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from app.models.household import HOUSEHOLD_TYPE_VALUES, HOUSEHOLD_UNIT_VALUES, TENURE_STATUS_VALUES
from app.schemas.common import CamelInput
from app.schemas.resident import check_choice


class HouseholdFields(CamelInput):
    name: Optional[str] = Field(None, max_length=200)
    house_number: Optional[str] = Field(None, max_length=50)
    street_name: Optional[str] = Field(None, max_length=200)
    subdivision: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=10)
    household_type: Optional[str] = None
    tenure_status: Optional[str] = None
    tenure_others_specify: Optional[str] = Field(None, max_length=200)
    household_unit: Optional[str] = None
    monthly_income: Optional[Decimal] = Field(None, ge=0)
    household_head_id: Optional[int] = Field(None, ge=1)

    @validator("household_type")
    def validate_household_type(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, HOUSEHOLD_TYPE_VALUES, "Household type")

    @validator("tenure_status")
    def validate_tenure_status(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, TENURE_STATUS_VALUES, "Tenure status")

    @validator("household_unit")
    def validate_household_unit(cls, value: Optional[str]) -> Optional[str]:
        return check_choice(value, HOUSEHOLD_UNIT_VALUES, "Household unit")


class HouseholdCreate(HouseholdFields):
    barangay_code: str = Field(..., min_length=9, max_length=10)


class HouseholdUpdate(HouseholdFields):
    barangay_code: Optional[str] = Field(None, min_length=9, max_length=10)


class HouseholdMemberRef(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    sex: str
    relationship_to_head: Optional[str] = None

    class Config:
        from_attributes = True


class HouseholdOut(BaseModel):
    id: int
    code: str
    name: Optional[str] = None
    house_number: Optional[str] = None
    street_name: Optional[str] = None
    subdivision: Optional[str] = None
    zip_code: Optional[str] = None
    household_type: Optional[str] = None
    tenure_status: Optional[str] = None
    household_unit: Optional[str] = None
    monthly_income: Optional[Decimal] = None
    income_class: Optional[str] = None
    household_head_id: Optional[int] = None
    head_name: Optional[str] = None
    member_count: int = 0
    barangay_code: str
    city_municipality_code: Optional[str] = None
    province_code: Optional[str] = None
    region_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class HouseholdDetail(HouseholdOut):
    tenure_others_specify: Optional[str] = None
    address: Optional[dict] = None
    members: List[HouseholdMemberRef] = Field(default_factory=list)
