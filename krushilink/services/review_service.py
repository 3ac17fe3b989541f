"""Reviews between the two parties of a completed booking."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.core.exceptions import AuthorizationError, PreconditionFailed, ValidationError
from krushilink.domain.enums import BookingStatus
from krushilink.models.booking import Booking
from krushilink.models.review import Review
from krushilink.models.user import User

logger = logging.getLogger(__name__)


def updated_rating(current: Decimal, total: int, new_rating: int) -> Decimal:
    """Running average after adding ``new_rating``, to two places."""
    average = (Decimal(current) * total + new_rating) / (total + 1)
    return average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class ReviewService:
    """Creates reviews and keeps the reviewee's rating summary current."""

    async def create_review(
        self,
        db: AsyncSession,
        booking: Booking,
        author: User,
        rating: int,
        comment: str | None = None,
    ) -> Review:
        """Review the other party of ``booking``.

        Raises:
            AuthorizationError: Author is not the booking's farmer or driver
            PreconditionFailed: Booking is not completed
            ValidationError: Author already reviewed this booking
        """
        if author.id == booking.farmer_id:
            reviewee_id = booking.driver_id
        elif author.id == booking.driver_id:
            reviewee_id = booking.farmer_id
        else:
            raise AuthorizationError("Only the farmer or driver of this booking can review it")

        if booking.status != BookingStatus.COMPLETED.value:
            raise PreconditionFailed("Only completed bookings can be reviewed")

        existing = await db.execute(
            select(Review.id).where(
                Review.booking_id == booking.id,
                Review.from_user_id == author.id,
            )
        )
        if existing.scalar_one_or_none():
            raise ValidationError("You have already reviewed this booking")

        result = await db.execute(select(User).where(User.id == reviewee_id).with_for_update())
        reviewee = result.scalar_one()

        review = Review(
            booking_id=booking.id,
            from_user_id=author.id,
            to_user_id=reviewee_id,
            rating=rating,
            comment=comment,
        )
        db.add(review)

        reviewee.rating = updated_rating(reviewee.rating or Decimal("0"), reviewee.total_ratings or 0, rating)
        reviewee.total_ratings = (reviewee.total_ratings or 0) + 1

        await db.flush()
        await db.refresh(review)
        logger.info(f"Review {review.id} on booking {booking.id}: {author.id} -> {reviewee_id} ({rating}/5)")
        return review


review_service = ReviewService()
