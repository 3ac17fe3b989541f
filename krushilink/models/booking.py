"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from krushilink.database import Base

if TYPE_CHECKING:
    from krushilink.models.equipment import Equipment
    from krushilink.models.review import Review
    from krushilink.models.user import User


class Booking(Base):
    """A farmer's service request to a driver.

    ``status`` and ``payment_status`` only change through the booking and
    payment state machines, and every such write bumps ``version``.
    """

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    farmer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    driver_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    equipment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("equipment.id"), nullable=False
    )

    # Service
    service_type: Mapped[str] = mapped_column(String(100), nullable=False)  # equipment name at booking time
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    # Pricing (rupees, fixed at creation)
    acreage: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_per_acre: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="requested", index=True
    )  # requested, accepted, rejected, in_progress, completed, canceled, awaiting_payment
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Payment
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)  # cash, later
    payment_status: Mapped[str] = mapped_column(
        String(10), nullable=False, default="pending", index=True
    )  # pending, paid, failed
    payment_due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reminder_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reminder_sent: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Schedule
    requested_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    scheduled_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    farmer: Mapped["User"] = relationship("User", foreign_keys=[farmer_id])
    driver: Mapped["User"] = relationship("User", foreign_keys=[driver_id])
    equipment: Mapped["Equipment"] = relationship("Equipment")
    reviews: Mapped[list["Review"]] = relationship("Review", back_populates="booking")
    payment_reminder: Mapped["PaymentReminder | None"] = relationship(
        "PaymentReminder", back_populates="booking", uselist=False
    )


class PaymentReminder(Base):
    """Reminder history for a completed, unpaid booking."""

    __tablename__ = "payment_reminders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    farmer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    driver_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(10), default="sent")  # sent, paid
    reminder_count: Mapped[int] = mapped_column(Integer, default=0)
    last_reminder_sent: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="payment_reminder")
