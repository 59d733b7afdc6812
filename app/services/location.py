"""Location service - branches of a business with their own numbers."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Location
from app.schemas.location import LocationCreate, LocationUpdate


async def get_location(db: AsyncSession, location_id: UUID) -> Location | None:
    """Get location by ID."""
    result = await db.execute(select(Location).where(Location.id == location_id))
    return result.scalar_one_or_none()


async def get_business_location(
    db: AsyncSession, business_id: UUID, location_id: UUID
) -> Location | None:
    """Get a location only if it belongs to the business."""
    result = await db.execute(
        select(Location).where(Location.id == location_id, Location.business_id == business_id)
    )
    return result.scalar_one_or_none()


async def list_locations(db: AsyncSession, business_id: UUID) -> list[Location]:
    """List all locations for a business."""
    query = select(Location).where(Location.business_id == business_id)
    result = await db.execute(query.order_by(Location.name))
    return list(result.scalars().all())


async def create_location(
    db: AsyncSession, business_id: UUID, location_data: LocationCreate
) -> Location:
    """Create a new location."""
    location = Location(business_id=business_id, **location_data.model_dump())
    db.add(location)
    await db.flush()
    await db.refresh(location)
    return location


async def update_location(
    db: AsyncSession, location: Location, location_data: LocationUpdate
) -> Location:
    """Update a location."""
    update_dict = location_data.model_dump(exclude_unset=True)
    for key, value in update_dict.items():
        setattr(location, key, value)
    await db.flush()
    await db.refresh(location)
    return location


async def delete_location(db: AsyncSession, location: Location) -> None:
    """Delete a location.

    Conversations opened through it keep their history; their location is
    cleared by the foreign key.
    """
    await db.delete(location)
    await db.flush()
