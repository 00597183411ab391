"""Catalog Service — place seeding and listing.

Invariants:
    - Seeding upserts on (district, name) and reactivates matched places
    - District sizes counted on the normalized key, the same grouping the
      assignment engine uses
    - A seed that leaves any active district under MIN_PLACES_PER_DISTRICT is
      rejected and nothing is committed
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from waypoint.core.errors import ExplorationRejected
from waypoint.core.exploration_rules import (
    MIN_PLACES_PER_DISTRICT, find_underfilled_districts,
)
from waypoint.core.geo import normalize_key
from waypoint.models.place import Place
from waypoint.schemas.exploration import SeedDistrict

logger = logging.getLogger(__name__)


class CatalogService:
    """Reference-data operations on the places catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def seed_places(self, districts: list[SeedDistrict]) -> dict:
        result = await self.db.execute(select(Place))
        existing = {(p.district, p.name): p for p in result.scalars().all()}

        inserted = updated = 0
        for entry in districts:
            for attraction in entry.attractions:
                place = existing.get((entry.district, attraction.name))
                if place is None:
                    place = Place(district=entry.district, name=attraction.name)
                    self.db.add(place)
                    existing[(entry.district, attraction.name)] = place
                    inserted += 1
                else:
                    updated += 1
                place.province = entry.province
                place.type = attraction.type
                place.latitude = attraction.lat
                place.longitude = attraction.lon
                place.is_active = True
        await self.db.flush()

        district_key = func.lower(func.trim(Place.district))
        counts = await self.db.execute(
            select(district_key, func.count(Place.id))
            .where(Place.is_active.is_(True))
            .group_by(district_key),
        )
        underfilled = find_underfilled_districts(dict(counts.all()))
        if underfilled:
            raise ExplorationRejected({
                "status": "rejected",
                "error_code": "CATALOG_UNDERFILLED",
                "message": (
                    f"Some districts have fewer than {MIN_PLACES_PER_DISTRICT} locations"
                ),
                "districts": underfilled,
            })

        await self.db.commit()
        logger.info(f"Seeded places: {inserted} inserted, {updated} updated")
        return {
            "message": "Places seeded",
            "inserted": inserted,
            "updated": updated,
            "districts": len(districts),
        }

    async def list_places(self, district: str | None = None) -> list[Place]:
        query = select(Place).where(Place.is_active.is_(True))
        if district:
            query = query.where(
                func.lower(func.trim(Place.district)) == normalize_key(district),
            )
        result = await self.db.execute(
            query.order_by(Place.district, Place.name),
        )
        return list(result.scalars().all())
