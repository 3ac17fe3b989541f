"""Admin panel endpoints."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.api.deps import get_client_ip, get_current_admin, get_db
from krushilink.core.exceptions import NotFoundError, ValidationError
from krushilink.domain.booking_state import ACTIVE_STATUSES
from krushilink.domain.effects import Notify
from krushilink.domain.enums import BookingStatus, NotificationCategory, PaymentStatus
from krushilink.models.admin import AuditLog
from krushilink.models.booking import Booking
from krushilink.models.user import User
from krushilink.schemas.booking import BookingListResponse, BookingResponse
from krushilink.schemas.reporting import AuditLogResponse, DashboardResponse
from krushilink.schemas.user import UserResponse
from krushilink.services.audit_service import audit_service
from krushilink.services.booking_service import booking_service
from krushilink.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter()

DRIVER_FILTERS = {
    "pending": (User.is_verified == False,),  # noqa: E712
    "verified": (User.is_verified == True,),  # noqa: E712
    "active": (User.is_verified == True, User.is_suspended == False),  # noqa: E712
    "inactive": (User.is_verified == True, User.is_suspended == True),  # noqa: E712
}

MODERATION_MESSAGES = {
    "driver_verify": (
        "Account Verified",
        "Your driver account has been verified. You can now go online and accept bookings.",
    ),
    "driver_reject": (
        "Verification Declined",
        "Your driver verification was declined. Please review your profile details.",
    ),
    "driver_activate": (
        "Account Reactivated",
        "Your account has been reactivated.",
    ),
    "driver_deactivate": (
        "Account Deactivated",
        "Your account has been deactivated by an administrator.",
    ),
}


# ============ DASHBOARD ============


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DashboardResponse:
    """Headline counters and the latest bookings."""

    async def count(*criteria) -> int:
        return await db.scalar(select(func.count()).where(*criteria)) or 0

    total_drivers = await count(User.role == "driver")
    pending_drivers = await count(User.role == "driver", User.is_verified == False)  # noqa: E712
    total_farmers = await count(User.role == "farmer")
    active_bookings = await count(Booking.status.in_([s.value for s in ACTIVE_STATUSES]))
    unpaid_completed = await count(
        Booking.status == BookingStatus.COMPLETED.value,
        Booking.payment_status != PaymentStatus.PAID.value,
    )

    result = await db.execute(select(Booking).order_by(Booking.created_at.desc()).limit(5))

    return DashboardResponse(
        total_drivers=total_drivers,
        pending_drivers=pending_drivers,
        total_farmers=total_farmers,
        active_bookings=active_bookings,
        unpaid_completed_bookings=unpaid_completed,
        recent_bookings=[BookingResponse.model_validate(b) for b in result.scalars().all()],
    )


# ============ DRIVER MANAGEMENT ============


@router.get("/drivers", response_model=list[UserResponse])
async def list_drivers(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: str | None = Query(
        default=None, alias="status", pattern="^(pending|verified|active|inactive)$"
    ),
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
) -> list[User]:
    """Drivers, optionally filtered by verification state."""
    query = select(User).where(User.role == "driver")
    if status_filter:
        query = query.where(*DRIVER_FILTERS[status_filter])
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(User.name.ilike(pattern), User.phone.ilike(pattern), User.village.ilike(pattern))
        )

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(User.created_at.desc()).offset(offset).limit(page_size)
    )
    return list(result.scalars().all())


async def _get_driver(db: AsyncSession, driver_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == driver_id))
    driver = result.scalar_one_or_none()
    if not driver or driver.role != "driver":
        raise NotFoundError("Driver", str(driver_id))
    return driver


async def _moderate(
    db: AsyncSession,
    request: Request,
    admin: User,
    driver: User,
    action: str,
    changes: dict,
) -> User:
    """Apply ``changes`` to the driver, audit them and tell the driver."""
    old_values = {field: getattr(driver, field) for field in changes}
    for field, value in changes.items():
        setattr(driver, field, value)

    await audit_service.log_moderation(
        db=db,
        admin_id=admin.id,
        action=action,
        user_id=driver.id,
        old_values=old_values,
        new_values=changes,
        ip_address=get_client_ip(request),
    )
    await db.commit()
    await db.refresh(driver)
    logger.info(f"Admin {admin.id} applied {action} to driver {driver.id}")

    title, body = MODERATION_MESSAGES[action]
    await notification_service.dispatch(
        Notify(
            recipient_id=driver.id,
            title=title,
            body=body,
            category=NotificationCategory.SYSTEM,
        )
    )
    return driver


@router.post("/drivers/{driver_id}/verify", response_model=UserResponse)
async def verify_driver(
    driver_id: UUID,
    request: Request,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Approve a driver's documents."""
    driver = await _get_driver(db, driver_id)
    if driver.is_verified:
        raise ValidationError("Driver is already verified")
    return await _moderate(db, request, admin, driver, "driver_verify", {"is_verified": True})


@router.post("/drivers/{driver_id}/reject", response_model=UserResponse)
async def reject_driver(
    driver_id: UUID,
    request: Request,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Decline (or revoke) a driver's verification."""
    driver = await _get_driver(db, driver_id)
    return await _moderate(
        db, request, admin, driver, "driver_reject", {"is_verified": False, "is_active": False}
    )


@router.post("/drivers/{driver_id}/activate", response_model=UserResponse)
async def activate_driver(
    driver_id: UUID,
    request: Request,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Lift a suspension."""
    driver = await _get_driver(db, driver_id)
    if not driver.is_suspended:
        raise ValidationError("Driver is not deactivated")
    return await _moderate(db, request, admin, driver, "driver_activate", {"is_suspended": False})


@router.post("/drivers/{driver_id}/deactivate", response_model=UserResponse)
async def deactivate_driver(
    driver_id: UUID,
    request: Request,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Suspend a driver and take them offline."""
    driver = await _get_driver(db, driver_id)
    if driver.is_suspended:
        raise ValidationError("Driver is already deactivated")
    return await _moderate(
        db, request, admin, driver, "driver_deactivate", {"is_suspended": True, "is_active": False}
    )


# ============ FARMERS ============


@router.get("/farmers", response_model=list[UserResponse])
async def list_farmers(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
) -> list[User]:
    """All farmer accounts."""
    query = select(User).where(User.role == "farmer")
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(User.name.ilike(pattern), User.phone.ilike(pattern), User.village.ilike(pattern))
        )

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(User.created_at.desc()).offset(offset).limit(page_size)
    )
    return list(result.scalars().all())


# ============ BOOKINGS ============


@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
) -> BookingListResponse:
    """All bookings, by status and free-text search."""
    query = select(Booking)
    if status_filter:
        query = query.where(Booking.status == status_filter.value)

    if search:
        term = search.strip()
        try:
            target = UUID(term)
        except ValueError:
            pattern = f"%{term}%"
            named = select(User.id).where(User.name.ilike(pattern))
            query = query.where(
                or_(
                    Booking.address.ilike(pattern),
                    Booking.service_type.ilike(pattern),
                    Booking.farmer_id.in_(named),
                    Booking.driver_id.in_(named),
                )
            )
        else:
            query = query.where(
                or_(Booking.id == target, Booking.farmer_id == target, Booking.driver_id == target)
            )

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(Booking.created_at.desc()).offset(offset).limit(page_size)
    )

    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/bookings/{booking_id}/payment-reminders", response_model=BookingResponse)
async def send_payment_reminder(
    booking_id: UUID,
    request: Request,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Remind the farmer of an unpaid booking on the driver's behalf."""
    return await booking_service.send_reminder(
        db, booking_id, admin, ip_address=get_client_ip(request)
    )


# ============ AUDIT ============


@router.get("/audit-logs", response_model=list[AuditLogResponse])
async def get_audit_logs(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    resource_type: str | None = Query(default=None, pattern="^(booking|user)$"),
    resource_id: UUID | None = None,
    action: str | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
) -> list[AuditLog]:
    """Audit trail, newest first."""
    query = select(AuditLog)
    if resource_type:
        query = query.where(AuditLog.resource_type == resource_type)
    if resource_id:
        query = query.where(AuditLog.resource_id == resource_id)
    if action:
        query = query.where(AuditLog.action == action)

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(AuditLog.created_at.desc()).offset(offset).limit(page_size)
    )
    return list(result.scalars().all())
