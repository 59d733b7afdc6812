"""Location API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_business, get_db
from app.models import Business, Location
from app.schemas.location import (
    LocationCreate,
    LocationResponse,
    LocationUpdate,
)
from app.services import location as location_service

router = APIRouter(prefix="/businesses/me/locations", tags=["locations"])


async def _get_owned_location(db: AsyncSession, business: Business, location_id: UUID) -> Location:
    location = await location_service.get_business_location(db, business.id, location_id)
    if not location:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Location {location_id} not found",
        )
    return location


@router.get(
    "",
    response_model=list[LocationResponse],
    summary="List locations",
)
async def list_locations(
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[Location]:
    """List all locations for the current business."""
    return await location_service.list_locations(db, business.id)


@router.post(
    "",
    response_model=LocationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a location",
)
async def create_location(
    location_data: LocationCreate,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Location:
    """Create a new location.

    Calls and texts to its phone number are answered in its name.
    """
    location = await location_service.create_location(db, business.id, location_data)
    await db.commit()
    return location


@router.get(
    "/{location_id}",
    response_model=LocationResponse,
    summary="Get location by ID",
)
async def get_location(
    location_id: UUID,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Location:
    return await _get_owned_location(db, business, location_id)


@router.patch(
    "/{location_id}",
    response_model=LocationResponse,
    summary="Update location",
)
async def update_location(
    location_id: UUID,
    location_data: LocationUpdate,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Location:
    """Update a location."""
    location = await _get_owned_location(db, business, location_id)
    location = await location_service.update_location(db, location, location_data)
    await db.commit()
    return location


@router.delete(
    "/{location_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete location",
)
async def delete_location(
    location_id: UUID,
    business: Annotated[Business, Depends(get_current_business)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    location = await _get_owned_location(db, business, location_id)
    await location_service.delete_location(db, location)
    await db.commit()
