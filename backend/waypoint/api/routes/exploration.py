"""Exploration Routes — the player-facing exploration game.

Invariants:
    - Every route acts on the authenticated caller only (uid from the token)
    - Rejections propagate as ExplorationRejected; the global handler maps status codes
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from waypoint.api.dependencies import (
    CurrentUser, get_current_user, get_exploration_service,
)
from waypoint.schemas.exploration import (
    DistrictsResponse,
    InitializeRequest,
    InitializeResponse,
    RerollRequest,
    VisitRequest,
    VisitResponse,
)
from waypoint.services.exploration_service import ExplorationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/exploration", tags=["exploration"])


@router.post(
    "/initialize", response_model=InitializeResponse,
    status_code=status.HTTP_200_OK,
)
async def initialize_exploration(
    body: InitializeRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ExplorationService = Depends(get_exploration_service),
):
    """Fix the hometown district and draw the first set of assignments."""
    plan = await service.initialize(user.uid, body.hometown_district)
    return InitializeResponse(
        message="Exploration initialized",
        hometown_district=plan.hometown_district,
        total_assigned=plan.total_assigned,
    )


@router.get("/assignments")
async def get_assignments(
    user: CurrentUser = Depends(get_current_user),
    service: ExplorationService = Depends(get_exploration_service),
):
    return {"assignments": await service.get_assignments(user.uid)}


@router.get("/districts", response_model=DistrictsResponse)
async def get_districts(
    user: CurrentUser = Depends(get_current_user),
    service: ExplorationService = Depends(get_exploration_service),
):
    return {"districts": await service.get_districts(user.uid)}


@router.get("/profile")
async def get_profile(
    user: CurrentUser = Depends(get_current_user),
    service: ExplorationService = Depends(get_exploration_service),
):
    """XP total, unlock lists, cooldown and reroll availability."""
    return await service.get_profile(user.uid)


@router.get("/xp-ledger")
async def get_xp_ledger(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    service: ExplorationService = Depends(get_exploration_service),
):
    return await service.get_xp_ledger(user.uid, limit=limit, offset=offset)


@router.post("/visit", response_model=VisitResponse)
async def visit_location(
    body: VisitRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ExplorationService = Depends(get_exploration_service),
):
    """Submit GPS samples taken at an assigned place."""
    return await service.visit_location(user.uid, body.place_id, body.samples)


@router.post("/reroll")
async def reroll_assignments(
    body: RerollRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ExplorationService = Depends(get_exploration_service),
):
    return await service.reroll(user.uid, body.reason, body.reason_detail)
