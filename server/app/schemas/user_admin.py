from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, validator

from app.schemas.common import CamelInput
from app.schemas.resident import check_person_name, normalize_mobile
from app.services.user_accounts import validate_password_strength


class UserAdminSummary(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    full_name: str
    mobile_number: str | None = None
    is_active: bool
    role_name: str | None = None
    barangay_code: str | None = None
    city_municipality_code: str | None = None
    province_code: str | None = None
    region_code: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserCreateRequest(CamelInput):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    mobile_number: str | None = None
    role: str
    barangay_code: str | None = Field(None, min_length=9, max_length=10)

    @validator("password")
    def validate_password(cls, value: str) -> str:
        validate_password_strength(value)
        return value

    @validator("first_name")
    def validate_first_name(cls, value: str) -> str:
        return check_person_name(value, "First name", required=True)

    @validator("last_name")
    def validate_last_name(cls, value: str) -> str:
        return check_person_name(value, "Last name", required=True)

    @validator("mobile_number")
    def validate_mobile(cls, value: str | None) -> str | None:
        return normalize_mobile(value)


class UserUpdateRequest(CamelInput):
    first_name: str | None = None
    last_name: str | None = None
    mobile_number: str | None = None
    is_active: bool | None = None
    role: str | None = None
    barangay_code: str | None = Field(None, min_length=9, max_length=10)

    @validator("first_name")
    def validate_first_name(cls, value: str | None) -> str:
        return check_person_name(value, "First name", required=True)

    @validator("last_name")
    def validate_last_name(cls, value: str | None) -> str:
        return check_person_name(value, "Last name", required=True)

    @validator("mobile_number")
    def validate_mobile(cls, value: str | None) -> str | None:
        return normalize_mobile(value)
