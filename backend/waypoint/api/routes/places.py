"""Place Routes — read access to the active catalog."""

from fastapi import APIRouter, Depends, Query

from waypoint.api.dependencies import (
    CurrentUser, get_catalog_service, get_current_user,
)
from waypoint.schemas.exploration import PlaceResponse
from waypoint.services.catalog_service import CatalogService

router = APIRouter(prefix="/api/v1/places", tags=["places"])


@router.get("", response_model=list[PlaceResponse])
async def list_places(
    district: str | None = Query(None, max_length=100),
    user: CurrentUser = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    places = await service.list_places(district)
    return [
        PlaceResponse(
            id=p.id, district=p.district, province=p.province, name=p.name,
            type=p.type, latitude=p.latitude, longitude=p.longitude,
        )
        for p in places
    ]
