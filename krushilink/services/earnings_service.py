"""Driver earnings aggregation."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.domain.enums import BookingStatus, PaymentStatus
from krushilink.models.booking import Booking

EARNING_STATUSES = (BookingStatus.COMPLETED.value, BookingStatus.AWAITING_PAYMENT.value)


@dataclass
class EarningsSummary:
    total_earnings: Decimal = Decimal("0")
    paid_earnings: Decimal = Decimal("0")
    pending_earnings: Decimal = Decimal("0")
    completed_bookings: int = 0
    daily: list[tuple[date, Decimal]] = field(default_factory=list)


class EarningsService:
    """Summarises what a driver has earned and is still owed."""

    async def driver_earnings(
        self,
        db: AsyncSession,
        driver_id: UUID,
        days: int = 30,
        today: date | None = None,
    ) -> EarningsSummary:
        """Totals over all completed work plus a per-day series.

        ``pending_earnings`` counts completed work not yet paid (pending or
        failed payment); the daily series covers the last ``days`` days by
        completion date and includes every day, zero or not.
        """
        result = await db.execute(
            select(Booking).where(
                Booking.driver_id == driver_id,
                Booking.status.in_(EARNING_STATUSES),
            )
        )
        bookings = list(result.scalars().all())

        today = today or datetime.now(UTC).date()
        window_start = today - timedelta(days=days - 1)
        per_day: dict[date, Decimal] = defaultdict(lambda: Decimal("0"))

        summary = EarningsSummary(completed_bookings=len(bookings))
        for booking in bookings:
            amount = Decimal(booking.total_price)
            summary.total_earnings += amount
            if booking.payment_status == PaymentStatus.PAID.value:
                summary.paid_earnings += amount
            else:
                summary.pending_earnings += amount

            finished = booking.completed_time or booking.requested_time
            if finished is not None and window_start <= finished.date() <= today:
                per_day[finished.date()] += amount

        summary.daily = [
            (window_start + timedelta(days=offset), per_day[window_start + timedelta(days=offset)])
            for offset in range(days)
        ]
        return summary


earnings_service = EarningsService()
