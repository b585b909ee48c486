from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator

from app.schemas.common import CamelInput
from app.schemas.resident import check_person_name, normalize_mobile
from app.services.user_accounts import validate_password_strength


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class SignupRequest(CamelInput):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    mobile_number: Optional[str] = None
    barangay_code: str = Field(..., min_length=9, max_length=10)

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
    def validate_mobile(cls, value: Optional[str]) -> Optional[str]:
        return normalize_mobile(value)


class WhoAmIResponse(BaseModel):
    id: int
    email: EmailStr
    full_name: str
    role: Optional[str] = None
    access_level: str
    barangay_code: Optional[str] = None
    city_municipality_code: Optional[str] = None
    province_code: Optional[str] = None
    region_code: Optional[str] = None
    address: Optional[dict] = None
