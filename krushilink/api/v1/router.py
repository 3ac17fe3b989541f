"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from krushilink.api.v1 import (
    admin,
    bookings,
    drivers,
    equipment,
    notifications,
    payments,
    users,
)

api_router = APIRouter()

# Users
api_router.include_router(users.router, prefix="/users", tags=["Users"])

# Equipment
api_router.include_router(equipment.router, prefix="/equipment", tags=["Equipment"])

# Drivers
api_router.include_router(drivers.router, prefix="/drivers", tags=["Drivers"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Notifications
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
