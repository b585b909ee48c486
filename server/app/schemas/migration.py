from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, validator

from app.schemas.common import CamelInput


class MigrationInfoIn(CamelInput):
    """Previous address is given as one code; its ancestors are resolved server-side."""

    previous_barangay_code: Optional[str] = Field(None, max_length=10)
    previous_city_municipality_code: Optional[str] = Field(None, max_length=10)
    date_of_transfer: Optional[date] = None
    reason_for_leaving: Optional[str] = Field(None, max_length=500)
    reason_for_transferring: Optional[str] = Field(None, max_length=500)
    length_of_stay_previous_months: Optional[int] = Field(None, ge=0, le=1500)
    duration_of_stay_current_months: Optional[int] = Field(None, ge=0, le=1500)
    is_intending_to_return: Optional[bool] = None

    @validator("date_of_transfer")
    def validate_date_of_transfer(cls, value: Optional[date]) -> Optional[date]:
        if value and value > date.today():
            raise ValueError("Date of transfer cannot be in the future")
        return value


class MigrationInfoOut(BaseModel):
    id: int
    resident_id: int
    previous_barangay_code: Optional[str] = None
    previous_city_municipality_code: Optional[str] = None
    previous_province_code: Optional[str] = None
    previous_region_code: Optional[str] = None
    date_of_transfer: Optional[date] = None
    reason_for_leaving: Optional[str] = None
    reason_for_transferring: Optional[str] = None
    length_of_stay_previous_months: Optional[int] = None
    duration_of_stay_current_months: Optional[int] = None
    is_intending_to_return: Optional[bool] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
