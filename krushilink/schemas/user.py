"""User-related Pydantic schemas."""

import re
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def _validate_indian_phone(v: str | None) -> str | None:
    if v is None:
        return v
    # India mobile format: +91XXXXXXXXXX
    if not re.match(r"^\+91[6-9][0-9]{9}$", v):
        raise ValueError("Phone must be in format +91XXXXXXXXXX")
    return v


class UserUpdate(BaseModel):
    """Schema for updating the common profile fields."""

    name: str | None = Field(None, min_length=1, max_length=150)
    email: EmailStr | None = None
    village: str | None = Field(None, max_length=100)
    district: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    language: str | None = Field(None, pattern="^(en|hi|mr)$")
    profile_image: str | None = None


class RoleSelect(BaseModel):
    """One-time role selection during onboarding."""

    role: str = Field(..., pattern="^(farmer|driver)$")


class DriverProfileUpdate(BaseModel):
    """Driver onboarding details."""

    name: str = Field(..., min_length=1, max_length=150)
    tractor_type: str = Field(..., min_length=1, max_length=100)
    tractor_image: str | None = None
    license_image: str | None = None
    village: str | None = Field(None, max_length=100)
    district: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class FarmerProfileUpdate(BaseModel):
    """Farmer onboarding details."""

    name: str = Field(..., min_length=1, max_length=150)
    farm_size: Decimal | None = Field(None, ge=0)
    farm_latitude: float | None = Field(None, ge=-90, le=90)
    farm_longitude: float | None = Field(None, ge=-180, le=180)
    preferred_payment_method: str | None = Field(None, pattern="^(cash|later)$")
    village: str | None = Field(None, max_length=100)
    district: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)


class AvailabilityUpdate(BaseModel):
    """Driver going online/offline, optionally with a fresh location."""

    is_active: bool
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class PushTokenRegister(BaseModel):
    """Device push token registration."""

    token: str = Field(..., min_length=1, max_length=4096)


class UserResponse(BaseModel):
    """Full profile, returned to the account owner and admins."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    phone: str | None
    email: str | None
    name: str | None
    role: str | None
    village: str | None
    district: str | None
    state: str | None
    language: str
    profile_image: str | None
    is_profile_complete: bool
    is_verified: bool
    is_active: bool
    is_suspended: bool

    # Driver
    tractor_type: str | None
    tractor_image: str | None
    license_image: str | None
    latitude: float | None
    longitude: float | None
    rating: Decimal
    total_ratings: int

    # Farmer
    farm_size: Decimal | None
    farm_latitude: float | None
    farm_longitude: float | None
    preferred_payment_method: str | None

    created_at: datetime


class PublicUserResponse(BaseModel):
    """What other users may see of a profile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str | None
    role: str | None
    village: str | None
    district: str | None
    state: str | None
    profile_image: str | None
    is_verified: bool
    tractor_type: str | None
    tractor_image: str | None
    rating: Decimal
    total_ratings: int


class UserProvision(BaseModel):
    """Claims used to create an account from an identity-provider token."""

    phone: str | None = None
    email: EmailStr | None = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _validate_indian_phone(v)
