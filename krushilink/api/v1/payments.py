"""Payment endpoints: Razorpay checkout and cash confirmation."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.api.deps import get_client_ip, get_current_onboarded_user, get_db
from krushilink.core.exceptions import PaymentError, PreconditionFailed
from krushilink.domain.enums import ActorRole, BookingStatus, PaymentStatus
from krushilink.gateways.base import GatewayType
from krushilink.models.booking import Booking
from krushilink.models.user import User
from krushilink.schemas.booking import BookingResponse
from krushilink.schemas.payment import (
    CashConfirmRequest,
    RazorpayFailureRequest,
    RazorpayOrderRequest,
    RazorpayOrderResponse,
    RazorpayVerifyRequest,
)
from krushilink.services.booking_service import booking_service
from krushilink.services.gateway_service import gateway_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/razorpay/order", response_model=RazorpayOrderResponse)
async def create_razorpay_order(
    order_request: RazorpayOrderRequest,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RazorpayOrderResponse:
    """Open online checkout for a completed, unpaid booking (farmer only)."""
    booking = await booking_service.get_booking(db, order_request.booking_id)
    if booking_service.role_on_booking(booking, current_user) != ActorRole.FARMER:
        raise PaymentError("Only the farmer can pay for this booking")

    if booking.status != BookingStatus.COMPLETED.value:
        raise PreconditionFailed("Only completed bookings can be paid")
    if booking.payment_status == PaymentStatus.PAID.value:
        raise PreconditionFailed("This booking is already paid")

    # Retrying after a failed attempt
    if booking.payment_status == PaymentStatus.FAILED.value:
        booking = await booking_service.reopen_payment(
            db, booking.id, current_user, ip_address=get_client_ip(request)
        )

    order = await gateway_service.create_order(
        GatewayType.RAZORPAY,
        amount=booking.total_price,
        receipt=str(booking.id),
        notes={"booking_id": str(booking.id), "service": booking.service_type},
    )
    if not order.success:
        raise PaymentError(order.error_message or "Could not start checkout")

    logger.info(f"Razorpay order {order.order_id} created for booking {booking.id}")
    return RazorpayOrderResponse(
        booking_id=booking.id,
        order_id=order.order_id,
        amount=order.amount,
        currency=order.currency,
        key_id=gateway_service.checkout_key_id,
    )


@router.post("/razorpay/verify", response_model=BookingResponse)
async def verify_razorpay_payment(
    verification: RazorpayVerifyRequest,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Verify the checkout signature and mark the booking paid."""
    booking = await booking_service.get_booking(db, verification.booking_id)
    booking_service.role_on_booking(booking, current_user)

    result = await gateway_service.verify_payment(
        GatewayType.RAZORPAY,
        order_id=verification.razorpay_order_id,
        payment_id=verification.razorpay_payment_id,
        signature=verification.razorpay_signature,
    )
    if not result.success:
        logger.warning(
            f"Payment verification failed for booking {booking.id}: {result.error_message}"
        )
        raise PaymentError(result.error_message or "Payment verification failed")

    receipt = (result.raw_response or {}).get("receipt")
    if receipt != str(booking.id):
        logger.warning(
            f"Order {verification.razorpay_order_id} does not belong to booking {booking.id}"
        )
        raise PaymentError("Payment order does not match this booking")

    return await booking_service.record_payment(
        db,
        booking.id,
        current_user,
        payment_reference=result.transaction_id,
        allowed_roles=(ActorRole.FARMER, ActorRole.ADMIN),
        ip_address=get_client_ip(request),
    )


@router.post("/razorpay/failure", response_model=BookingResponse)
async def report_razorpay_failure(
    failure: RazorpayFailureRequest,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Record a failed checkout so the farmer is told and can retry."""
    return await booking_service.record_payment_failure(
        db,
        failure.booking_id,
        current_user,
        reason=failure.reason,
        ip_address=get_client_ip(request),
    )


@router.post("/cash/confirm", response_model=BookingResponse)
async def confirm_cash_payment(
    confirmation: CashConfirmRequest,
    request: Request,
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Driver confirms the farmer paid in cash."""
    booking = await booking_service.get_booking(db, confirmation.booking_id)
    booking_service.role_on_booking(booking, current_user)

    order = await gateway_service.create_order(
        GatewayType.CASH,
        amount=booking.total_price,
        receipt=str(booking.id),
    )

    return await booking_service.record_payment(
        db,
        booking.id,
        current_user,
        payment_reference=order.order_id,
        allowed_roles=(ActorRole.DRIVER, ActorRole.ADMIN),
        expected_version=confirmation.expected_version,
        ip_address=get_client_ip(request),
    )
