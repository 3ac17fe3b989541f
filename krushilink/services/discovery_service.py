"""Driver discovery for the farmer map view."""

import math
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from krushilink.models.equipment import Equipment
from krushilink.models.user import User

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.32


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(latitude: float, longitude: float, radius_km: float) -> tuple[float, float, float, float]:
    """(min_lat, max_lat, min_lon, max_lon) enclosing the search circle."""
    d_lat = radius_km / KM_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
    d_lon = radius_km / (KM_PER_DEGREE_LAT * cos_lat)
    return latitude - d_lat, latitude + d_lat, longitude - d_lon, longitude + d_lon


@dataclass
class DriverMatch:
    driver: User
    distance_km: float
    equipment: list[Equipment]


class DiscoveryService:
    """Finds verified, online drivers near a point."""

    async def find_nearby_drivers(
        self,
        db: AsyncSession,
        latitude: float,
        longitude: float,
        radius_km: float,
        service: str | None = None,
        limit: int = 50,
    ) -> list[DriverMatch]:
        """Nearest bookable drivers first.

        Args:
            db: Database session
            latitude: Search centre latitude
            longitude: Search centre longitude
            radius_km: Search radius
            service: Optional case-insensitive equipment name filter
            limit: Maximum number of drivers returned

        Returns:
            Drivers within ``radius_km`` with their matching active equipment
        """
        min_lat, max_lat, min_lon, max_lon = bounding_box(latitude, longitude, radius_km)

        query = (
            select(User)
            .where(
                User.role == "driver",
                User.is_verified == True,  # noqa: E712
                User.is_active == True,  # noqa: E712
                User.is_suspended == False,  # noqa: E712
                User.latitude.is_not(None),
                User.longitude.is_not(None),
                User.latitude.between(min_lat, max_lat),
                User.longitude.between(min_lon, max_lon),
            )
            .options(selectinload(User.equipment))
        )
        result = await db.execute(query)

        needle = service.strip().lower() if service else None
        matches: list[DriverMatch] = []
        for driver in result.scalars().all():
            distance = haversine(latitude, longitude, driver.latitude, driver.longitude)
            if distance > radius_km:
                continue

            offerings = [e for e in driver.equipment if e.is_active]
            if needle:
                offerings = [e for e in offerings if needle in e.name.lower()]
                if not offerings:
                    continue

            matches.append(DriverMatch(driver=driver, distance_km=round(distance, 2), equipment=offerings))

        matches.sort(key=lambda m: m.distance_km)
        return matches[:limit]


discovery_service = DiscoveryService()
