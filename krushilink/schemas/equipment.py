"""Equipment Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EquipmentCreate(BaseModel):
    """Schema for adding a service offering."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    price_per_acre: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    price_per_hour: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)


class EquipmentUpdate(BaseModel):
    """Schema for editing a service offering."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    price_per_acre: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    price_per_hour: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    is_active: bool | None = None


class EquipmentResponse(BaseModel):
    """Schema for equipment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    driver_id: UUID
    name: str
    description: str | None
    price_per_acre: Decimal
    price_per_hour: Decimal | None
    is_active: bool
    created_at: datetime
