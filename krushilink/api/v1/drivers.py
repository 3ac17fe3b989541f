"""Driver discovery and earnings endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from krushilink.api.deps import get_current_driver, get_current_user, get_db
from krushilink.config import settings
from krushilink.core.exceptions import NotFoundError
from krushilink.models.user import User
from krushilink.schemas.equipment import EquipmentResponse
from krushilink.schemas.reporting import (
    DailyEarning,
    DriverDetailResponse,
    EarningsResponse,
    NearbyDriver,
)
from krushilink.schemas.user import PublicUserResponse
from krushilink.services.discovery_service import discovery_service
from krushilink.services.earnings_service import earnings_service

router = APIRouter()


@router.get("/nearby", response_model=list[NearbyDriver])
async def find_nearby_drivers(
    _: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float | None = Query(None, gt=0, le=200),
    service: str | None = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=100),
) -> list[NearbyDriver]:
    """Verified, online drivers around a point, nearest first."""
    matches = await discovery_service.find_nearby_drivers(
        db,
        latitude=latitude,
        longitude=longitude,
        radius_km=radius_km or settings.driver_search_radius_km,
        service=service,
        limit=limit,
    )
    return [
        NearbyDriver(
            driver=PublicUserResponse.model_validate(m.driver),
            distance_km=m.distance_km,
            latitude=m.driver.latitude,
            longitude=m.driver.longitude,
            equipment=[EquipmentResponse.model_validate(e) for e in m.equipment],
        )
        for m in matches
    ]


@router.get("/me/earnings", response_model=EarningsResponse)
async def get_my_earnings(
    current_user: Annotated[User, Depends(get_current_driver)],
    db: Annotated[AsyncSession, Depends(get_db)],
    days: int = Query(30, ge=1, le=365),
) -> EarningsResponse:
    """Earnings summary with a per-day series."""
    summary = await earnings_service.driver_earnings(db, current_user.id, days=days)
    return EarningsResponse(
        total_earnings=summary.total_earnings,
        paid_earnings=summary.paid_earnings,
        pending_earnings=summary.pending_earnings,
        completed_bookings=summary.completed_bookings,
        daily=[DailyEarning(day=day, amount=amount) for day, amount in summary.daily],
    )


@router.get("/{driver_id}", response_model=DriverDetailResponse)
async def get_driver(
    driver_id: UUID,
    _: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DriverDetailResponse:
    """Public driver profile with active offerings."""
    result = await db.execute(
        select(User).where(User.id == driver_id).options(selectinload(User.equipment))
    )
    driver = result.scalar_one_or_none()

    if not driver or driver.role != "driver" or driver.is_suspended:
        raise NotFoundError("Driver", str(driver_id))

    return DriverDetailResponse(
        driver=PublicUserResponse.model_validate(driver),
        equipment=[EquipmentResponse.model_validate(e) for e in driver.equipment if e.is_active],
    )
