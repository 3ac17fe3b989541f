"""Booking endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.api.deps import (
    get_client_ip,
    get_current_farmer,
    get_current_onboarded_user,
    get_db,
)
from krushilink.core.middleware import booking_limiter, reminder_limiter
from krushilink.domain.enums import BookingAction, BookingStatus
from krushilink.models.booking import Booking
from krushilink.models.review import Review
from krushilink.models.user import User
from krushilink.schemas.booking import (
    BookingActionRequest,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    PaymentRecordRequest,
)
from krushilink.schemas.review import ReviewCreate, ReviewResponse
from krushilink.services.booking_service import booking_service
from krushilink.services.review_service import review_service

router = APIRouter()

# Tabs shown in the bookings screen
STATUS_GROUPS = {
    "upcoming": (BookingStatus.ACCEPTED.value, BookingStatus.IN_PROGRESS.value),
    "pending": (BookingStatus.REQUESTED.value, BookingStatus.AWAITING_PAYMENT.value),
    "completed": (BookingStatus.COMPLETED.value,),
    "closed": (BookingStatus.REJECTED.value, BookingStatus.CANCELED.value),
}


async def get_accessible_booking(db: AsyncSession, booking_id: UUID, user: User) -> Booking:
    """Load a booking the user is a party to (or any booking, for admins)."""
    booking = await booking_service.get_booking(db, booking_id)
    booking_service.role_on_booking(booking, user)
    return booking


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_limiter)],
)
async def create_booking(
    booking_data: BookingCreate,
    request: Request,
    current_user: Annotated[User, Depends(get_current_farmer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Request a service from a driver."""
    return await booking_service.create_booking(
        db, current_user, booking_data, ip_address=get_client_ip(request)
    )


@router.get("/", response_model=BookingListResponse)
async def list_my_bookings(
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    group: str | None = Query(default=None, pattern="^(upcoming|pending|completed|closed)$"),
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> BookingListResponse:
    """List bookings where the current user is the farmer or the driver."""
    query = select(Booking).where(
        or_(Booking.farmer_id == current_user.id, Booking.driver_id == current_user.id)
    )

    if group:
        query = query.where(Booking.status.in_(STATUS_GROUPS[group]))
    if status_filter:
        query = query.where(Booking.status == status_filter.value)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    offset = (page - 1) * page_size
    query = query.order_by(Booking.created_at.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)
    bookings = result.scalars().all()

    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Get booking details."""
    return await get_accessible_booking(db, booking_id, current_user)


async def _apply(
    db: AsyncSession,
    request: Request,
    booking_id: UUID,
    user: User,
    action: BookingAction,
    body: BookingActionRequest | None,
) -> Booking:
    return await booking_service.apply_action(
        db,
        booking_id,
        user,
        action,
        expected_version=body.expected_version if body else None,
        ip_address=get_client_ip(request),
    )


@router.post("/{booking_id}/accept", response_model=BookingResponse)
async def accept_booking(
    booking_id: UUID,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: BookingActionRequest | None = None,
) -> Booking:
    """Driver accepts a requested booking."""
    return await _apply(db, request, booking_id, current_user, BookingAction.ACCEPT, body)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: UUID,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: BookingActionRequest | None = None,
) -> Booking:
    """Driver declines a requested booking."""
    return await _apply(db, request, booking_id, current_user, BookingAction.REJECT, body)


@router.post("/{booking_id}/start", response_model=BookingResponse)
async def start_booking(
    booking_id: UUID,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: BookingActionRequest | None = None,
) -> Booking:
    """Driver starts work on an accepted booking."""
    return await _apply(db, request, booking_id, current_user, BookingAction.START, body)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: BookingActionRequest | None = None,
) -> Booking:
    """Driver marks the work done."""
    return await _apply(db, request, booking_id, current_user, BookingAction.COMPLETE, body)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: BookingActionRequest | None = None,
) -> Booking:
    """Farmer withdraws a request, or the driver cancels an accepted booking."""
    return await _apply(db, request, booking_id, current_user, BookingAction.CANCEL, body)


@router.post("/{booking_id}/payment", response_model=BookingResponse)
async def record_payment(
    booking_id: UUID,
    payment: PaymentRecordRequest,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Record a payment collected outside the app (driver or admin)."""
    return await booking_service.record_payment(
        db,
        booking_id,
        current_user,
        payment_reference=payment.payment_reference.strip(),
        expected_version=payment.expected_version,
        ip_address=get_client_ip(request),
    )


@router.post(
    "/{booking_id}/payment-reminders",
    response_model=BookingResponse,
    dependencies=[Depends(reminder_limiter)],
)
async def send_payment_reminder(
    booking_id: UUID,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: BookingActionRequest | None = None,
) -> Booking:
    """Driver nudges the farmer about an unpaid completed booking."""
    return await booking_service.send_reminder(
        db,
        booking_id,
        current_user,
        expected_version=body.expected_version if body else None,
        ip_address=get_client_ip(request),
    )


@router.post(
    "/{booking_id}/review",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def review_booking(
    booking_id: UUID,
    review_data: ReviewCreate,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Review:
    """Rate the other party of a completed booking."""
    booking = await booking_service.get_booking(db, booking_id)
    return await review_service.create_review(
        db, booking, current_user, rating=review_data.rating, comment=review_data.comment
    )
