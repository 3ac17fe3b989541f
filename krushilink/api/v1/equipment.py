"""Equipment (driver service offering) endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.api.deps import get_current_driver, get_db
from krushilink.core.exceptions import NotFoundError
from krushilink.models.booking import Booking
from krushilink.models.equipment import Equipment
from krushilink.models.user import User
from krushilink.schemas.equipment import EquipmentCreate, EquipmentResponse, EquipmentUpdate

router = APIRouter()


async def get_own_equipment(db: AsyncSession, equipment_id: UUID, driver: User) -> Equipment:
    result = await db.execute(
        select(Equipment).where(Equipment.id == equipment_id, Equipment.driver_id == driver.id)
    )
    equipment = result.scalar_one_or_none()
    if not equipment:
        raise NotFoundError("Equipment", str(equipment_id))
    return equipment


@router.get("/", response_model=list[EquipmentResponse])
async def list_my_equipment(
    current_user: Annotated[User, Depends(get_current_driver)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[Equipment]:
    """List the current driver's service offerings."""
    result = await db.execute(
        select(Equipment)
        .where(Equipment.driver_id == current_user.id)
        .order_by(Equipment.created_at.desc())
    )
    return list(result.scalars().all())


@router.post("/", response_model=EquipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_equipment(
    data: EquipmentCreate,
    current_user: Annotated[User, Depends(get_current_driver)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Equipment:
    """Add a service offering."""
    equipment = Equipment(driver_id=current_user.id, **data.model_dump())
    db.add(equipment)
    await db.flush()
    await db.refresh(equipment)
    return equipment


@router.patch("/{equipment_id}", response_model=EquipmentResponse)
async def update_equipment(
    equipment_id: UUID,
    updates: EquipmentUpdate,
    current_user: Annotated[User, Depends(get_current_driver)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Equipment:
    """Edit price, description or availability of an offering."""
    equipment = await get_own_equipment(db, equipment_id, current_user)

    for field, value in updates.model_dump(exclude_unset=True).items():
        setattr(equipment, field, value)

    await db.flush()
    await db.refresh(equipment)
    return equipment


@router.delete("/{equipment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_equipment(
    equipment_id: UUID,
    current_user: Annotated[User, Depends(get_current_driver)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Remove an offering.

    Offerings already referenced by bookings are deactivated instead so
    booking history keeps pointing at a real row.
    """
    equipment = await get_own_equipment(db, equipment_id, current_user)

    booked = await db.scalar(
        select(func.count()).select_from(Booking).where(Booking.equipment_id == equipment.id)
    )
    if booked:
        equipment.is_active = False
    else:
        await db.delete(equipment)
