"""Immutable booking state, decision results and the effects they request.

Decision functions in ``booking_state`` and ``payment_state`` never touch the
database or the network. They take a ``BookingSnapshot`` and return either
``Applied`` (the complete next state plus the effects to execute, in order) or
``Rejected``. ``BookingService`` executes the effects.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from krushilink.domain.enums import BookingStatus, NotificationCategory, PaymentMethod, PaymentStatus


@dataclass(frozen=True)
class BookingSnapshot:
    """The booking fields the state machines read and write."""

    id: uuid.UUID
    farmer_id: uuid.UUID
    driver_id: uuid.UUID
    service_type: str
    total_price: Decimal
    status: BookingStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    version: int
    updated_at: datetime | None = None
    completed_time: datetime | None = None
    payment_due_date: datetime | None = None
    reminder_count: int = 0
    last_reminder_sent: datetime | None = None
    payment_reference: str | None = None
    payment_date: datetime | None = None

    @classmethod
    def from_record(cls, record: Any) -> BookingSnapshot:
        """Build a snapshot from a ``Booking`` row (or anything shaped like one)."""
        return cls(
            id=record.id,
            farmer_id=record.farmer_id,
            driver_id=record.driver_id,
            service_type=record.service_type,
            total_price=Decimal(record.total_price),
            status=BookingStatus(record.status),
            payment_method=PaymentMethod(record.payment_method),
            payment_status=PaymentStatus(record.payment_status),
            version=record.version,
            updated_at=record.updated_at,
            completed_time=record.completed_time,
            payment_due_date=record.payment_due_date,
            reminder_count=record.reminder_count or 0,
            last_reminder_sent=record.last_reminder_sent,
            payment_reference=record.payment_reference,
            payment_date=record.payment_date,
        )

    def changes_from(self, previous: BookingSnapshot) -> dict[str, Any]:
        """Column values that differ from ``previous``, ready for an UPDATE."""
        changes: dict[str, Any] = {}
        for f in fields(self):
            if f.name in ("id", "version"):
                continue
            value = getattr(self, f.name)
            if value != getattr(previous, f.name):
                changes[f.name] = value.value if isinstance(value, Enum) else value
        return changes


@dataclass(frozen=True)
class PersistBooking:
    """Write ``changes`` iff the stored version still equals ``expected_version``."""

    booking_id: uuid.UUID
    expected_version: int
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class Notify:
    """Tell a user about a change. Delivery is best-effort."""

    recipient_id: uuid.UUID
    title: str
    body: str
    category: NotificationCategory
    related_id: uuid.UUID | None = None


@dataclass(frozen=True)
class RecordReminder:
    """Create or update the payment reminder record for a booking."""

    booking_id: uuid.UUID
    farmer_id: uuid.UUID
    driver_id: uuid.UUID
    amount: Decimal
    due_date: datetime
    reminder_count: int
    sent_at: datetime


@dataclass(frozen=True)
class SettleReminder:
    """Mark the booking's payment reminder record as paid, if there is one."""

    booking_id: uuid.UUID


Effect = Union[PersistBooking, Notify, RecordReminder, SettleReminder]


class RejectionReason(str, Enum):
    INVALID_TRANSITION = "invalid_transition"
    PRECONDITION_FAILED = "precondition_failed"
    INVALID_INPUT = "invalid_input"


@dataclass(frozen=True)
class Applied:
    """Accepted decision: the next state and the effects to run."""

    booking: BookingSnapshot
    effects: tuple[Effect, ...] = field(default_factory=tuple)

    @property
    def notifications(self) -> tuple[Notify, ...]:
        return tuple(e for e in self.effects if isinstance(e, Notify))


@dataclass(frozen=True)
class Rejected:
    """Refused decision. Nothing is to be written."""

    reason: RejectionReason
    message: str


Outcome = Union[Applied, Rejected]


def persist(previous: BookingSnapshot, updated: BookingSnapshot) -> PersistBooking:
    """Compare-and-swap write taking ``previous`` to ``updated``."""
    return PersistBooking(
        booking_id=previous.id,
        expected_version=previous.version,
        changes=updated.changes_from(previous),
    )
