"""Admin Routes — catalog seeding and manual visit overrides.

Invariants:
    - Every route requires the admin claim (require_admin)
    - Overrides still respect assignment containment
"""

import logging

from fastapi import APIRouter, Depends

from waypoint.api.dependencies import (
    CurrentUser, get_catalog_service, get_exploration_service, require_admin,
)
from waypoint.schemas.exploration import AdminOverrideRequest, CatalogSeed
from waypoint.services.catalog_service import CatalogService
from waypoint.services.exploration_service import ExplorationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.post("/places/seed")
async def seed_places(
    body: CatalogSeed,
    admin: CurrentUser = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Upsert the places catalog from seed data."""
    logger.info("Catalog seed requested", extra={"user_id": admin.uid})
    return await service.seed_places(body.districts)


@router.post("/exploration/override")
async def override_visit(
    body: AdminOverrideRequest,
    admin: CurrentUser = Depends(require_admin),
    service: ExplorationService = Depends(get_exploration_service),
):
    """Mark an assigned place visited for a user without GPS proof."""
    return await service.admin_override(body.user_id, body.place_id, body.reason)
