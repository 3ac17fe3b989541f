"""User-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from krushilink.database import Base

if TYPE_CHECKING:
    from krushilink.models.equipment import Equipment


class User(Base):
    """Farmer, driver or admin account.

    Accounts are provisioned on first sight of a valid identity-provider
    token; ``role`` stays empty until the user picks one during onboarding.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    phone: Mapped[str | None] = mapped_column(String(20), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(150))
    role: Mapped[str | None] = mapped_column(String(20), index=True)  # farmer, driver, admin

    # Profile
    village: Mapped[str | None] = mapped_column(String(100))
    district: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(100))
    language: Mapped[str] = mapped_column(String(5), default="en")  # en, hi, mr
    profile_image: Mapped[str | None] = mapped_column(Text)
    is_profile_complete: Mapped[bool] = mapped_column(Boolean, default=False)

    # Status
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)  # admin-approved driver
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)  # driver online and taking bookings
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False)  # admin-disabled account

    # Driver
    tractor_type: Mapped[str | None] = mapped_column(String(100))
    tractor_image: Mapped[str | None] = mapped_column(Text)
    license_image: Mapped[str | None] = mapped_column(Text)
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), default=Decimal("0"))
    total_ratings: Mapped[int] = mapped_column(Integer, default=0)

    # Farmer
    farm_size: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))  # acres
    farm_latitude: Mapped[float | None] = mapped_column(Float)
    farm_longitude: Mapped[float | None] = mapped_column(Float)
    preferred_payment_method: Mapped[str | None] = mapped_column(String(10))  # cash, later

    # Push notification token
    push_token: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    equipment: Mapped[list["Equipment"]] = relationship(
        "Equipment", back_populates="driver", cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        return self.name or self.phone or "KrushiLink user"

    @property
    def is_bookable_driver(self) -> bool:
        """Drivers show up in discovery only once verified and online."""
        return self.role == "driver" and self.is_verified and self.is_active and not self.is_suspended
