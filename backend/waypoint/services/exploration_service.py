"""Exploration Service — assignment generation, visit verification, reroll and admin override.

Invariants:
    - Every rule decision delegated to core/exploration_rules.py (pure)
    - Rejections raised as ExplorationRejected BEFORE the first row mutation
    - One commit per successful operation; a raised error rolls the session back
    - Progress fields on ExplorerProfile are only written via _apply_progress

Design Decisions:
    - rng and clock injected: production uses SystemRandom-seeded Random and UTC now,
      tests pass a seeded Random and a frozen clock
    - Assignment lookup by normalized district key, not raw string equality, so
      catalog spelling drift ("Kandy " vs "kandy") cannot orphan a visit
    - Concurrent visits for the same user are read-modify-write on the assignment
      row; last writer wins (no row locking)
"""

import logging
import random
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from waypoint.core.domain_types import PlaceId, UserId, VisitSource, XpSource
from waypoint.core.errors import (
    ErrorContext, ExplorationRejected, ResourceNotFoundError,
)
from waypoint.core.exploration_rules import (
    AssignmentPlan,
    ProgressSummary,
    aggregate_progress,
    build_district_catalog,
    check_cooldown,
    check_hometown_in_catalog,
    check_location_assignable,
    check_sample_count,
    compute_xp,
    cooldown_remaining,
    evaluate_reroll,
    evaluate_visit_samples,
    exploration_xp_total,
    format_reroll_reason,
    plan_assignments,
    progress_percent,
    record_visit,
    resolve_tier,
    REROLL_MAX_PROGRESS_PERCENT,
)
from waypoint.core.geo import normalize_key
from waypoint.models.district_assignment import DistrictAssignment
from waypoint.models.explorer_profile import ExplorerProfile
from waypoint.models.place import Place
from waypoint.models.xp_ledger_entry import XpLedgerEntry

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment else None


class ExplorationService:
    """Exploration operations for a single request (one AsyncSession)."""

    def __init__(
        self,
        db: AsyncSession,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.rng = rng or random.Random()
        self._clock = clock or _utc_now

    # ─── Loading ────────────────────────────────────────────────

    async def _get_profile(self, user_id: UserId) -> ExplorerProfile | None:
        return await self.db.get(ExplorerProfile, user_id)

    async def _require_profile(self, user_id: UserId) -> ExplorerProfile:
        profile = await self._get_profile(user_id)
        if profile is None:
            raise ResourceNotFoundError(
                "User", user_id, ErrorContext(user_id=user_id),
            )
        return profile

    async def _get_or_create_profile(self, user_id: UserId) -> ExplorerProfile:
        profile = await self._get_profile(user_id)
        if profile is None:
            profile = ExplorerProfile(
                user_id=user_id,
                unlocked_districts=[],
                unlocked_provinces=[],
                total_assigned=0,
                total_visited=0,
                xp_total=0,
            )
            self.db.add(profile)
        return profile

    async def _load_assignments(self, user_id: UserId) -> list[DistrictAssignment]:
        result = await self.db.execute(
            select(DistrictAssignment)
            .where(DistrictAssignment.user_id == user_id)
            .order_by(DistrictAssignment.province, DistrictAssignment.district),
        )
        return list(result.scalars().all())

    async def _load_active_places(self) -> list[Place]:
        result = await self.db.execute(
            select(Place).where(Place.is_active.is_(True)).order_by(Place.id),
        )
        return list(result.scalars().all())

    async def _require_place(self, place_id: PlaceId, ctx: ErrorContext) -> Place:
        place = await self.db.get(Place, place_id)
        if place is None:
            raise ResourceNotFoundError("Location", str(place_id), ctx)
        return place

    async def _exploration_xp(self, user_id: UserId) -> int:
        """Refundable XP, summed per source in SQL (one row per source)."""
        result = await self.db.execute(
            select(
                XpLedgerEntry.source,
                func.sum(XpLedgerEntry.amount).label("amount"),
            )
            .where(XpLedgerEntry.user_id == user_id)
            .group_by(XpLedgerEntry.source),
        )
        return int(exploration_xp_total(result.all()))

    @staticmethod
    def _find_assignment(
        assignments: list[DistrictAssignment], district: str,
    ) -> DistrictAssignment | None:
        key = normalize_key(district)
        for assignment in assignments:
            if normalize_key(assignment.district) == key:
                return assignment
        return None

    async def _hometown_province(
        self, profile: ExplorerProfile, assignments: list[DistrictAssignment],
    ) -> str | None:
        hometown = self._find_assignment(assignments, profile.hometown_district)
        if hometown is not None:
            return hometown.province
        for place in await self._load_active_places():
            if normalize_key(place.district) == normalize_key(profile.hometown_district):
                return place.province
        return None

    # ─── Progress ───────────────────────────────────────────────

    @staticmethod
    def _apply_progress(
        profile: ExplorerProfile, assignments: list[DistrictAssignment],
    ) -> ProgressSummary:
        summary = aggregate_progress(assignments)
        profile.unlocked_districts = summary.unlocked_districts
        profile.unlocked_provinces = summary.unlocked_provinces
        profile.total_assigned = summary.total_assigned
        profile.total_visited = summary.total_visited
        return summary

    async def refresh_progress(self, user_id: UserId) -> ProgressSummary:
        """Recompute derived unlock state from the assignment rows. Does not commit."""
        profile = await self._require_profile(user_id)
        assignments = await self._load_assignments(user_id)
        summary = self._apply_progress(profile, assignments)
        await self.db.flush()
        return summary

    # ─── Assignment generation ──────────────────────────────────

    async def assign_for_user(
        self,
        user_id: UserId,
        hometown_district: str | None,
        assignment_fixed_at: datetime | None = None,
    ) -> AssignmentPlan:
        """Replace every assignment of the user with a fresh random draw. Does not commit."""
        catalog = build_district_catalog(await self._load_active_places())
        rejection = check_hometown_in_catalog(catalog, hometown_district)
        if rejection:
            raise ExplorationRejected(rejection, ErrorContext(user_id=user_id))

        plan = plan_assignments(catalog, hometown_district, self.rng)
        profile = await self._get_or_create_profile(user_id)

        await self.db.execute(
            delete(DistrictAssignment)
            .where(DistrictAssignment.user_id == user_id),
        )
        for planned in plan.assignments:
            self.db.add(DistrictAssignment(
                user_id=user_id,
                district=planned.district,
                province=planned.province,
                assigned_place_ids=planned.assigned_place_ids,
                visited_place_ids=[],
                visit_proofs=[],
                assigned_count=planned.assigned_count,
                visited_count=0,
                unlocked_at=None,
            ))

        now = self._clock()
        profile.hometown_district = plan.hometown_district
        profile.unlocked_districts = []
        profile.unlocked_provinces = []
        profile.total_assigned = plan.total_assigned
        profile.total_visited = 0
        profile.last_unlock_at = None
        profile.assignment_fixed_at = assignment_fixed_at or now
        await self.db.flush()

        logger.info(
            f"Generated {len(plan.assignments)} district assignments "
            f"({plan.total_assigned} places)",
            extra={"user_id": user_id, "district": plan.hometown_district},
        )
        return plan

    async def initialize(self, user_id: UserId, hometown_district: str) -> AssignmentPlan:
        """First-time setup: fix the hometown and draw assignments."""
        existing = await self.db.execute(
            select(DistrictAssignment.id)
            .where(DistrictAssignment.user_id == user_id)
            .limit(1),
        )
        if existing.scalar_one_or_none() is not None:
            raise ExplorationRejected(
                {
                    "status": "rejected",
                    "error_code": "EXPLORATION_ALREADY_INITIALIZED",
                    "message": "Exploration already initialized for this user",
                },
                ErrorContext(user_id=user_id),
            )

        plan = await self.assign_for_user(user_id, hometown_district)
        await self.db.commit()
        return plan

    # ─── Read models ────────────────────────────────────────────

    async def get_assignments(self, user_id: UserId) -> list[dict]:
        """Per-district assignment listing; draws assignments on first access."""
        assignments = await self._load_assignments(user_id)
        if not assignments:
            profile = await self._get_profile(user_id)
            hometown = profile.hometown_district if profile else None
            if not hometown:
                raise ExplorationRejected(
                    {
                        "status": "rejected",
                        "error_code": "HOMETOWN_REQUIRED",
                        "message": (
                            "User must set hometown district before starting exploration"
                        ),
                    },
                    ErrorContext(user_id=user_id),
                )
            await self.assign_for_user(user_id, hometown)
            await self.db.commit()
            assignments = await self._load_assignments(user_id)

        place_ids = [
            UUID(pid) for a in assignments for pid in a.assigned_place_ids
        ]
        places: dict[str, Place] = {}
        if place_ids:
            result = await self.db.execute(
                select(Place).where(Place.id.in_(place_ids)),
            )
            places = {str(p.id): p for p in result.scalars().all()}

        payload = []
        for assignment in assignments:
            visited = {str(v) for v in assignment.visited_place_ids}
            locations = []
            for pid in assignment.assigned_place_ids:
                place = places.get(str(pid))
                if place is None:
                    continue
                locations.append({
                    "id": str(place.id),
                    "name": place.name,
                    "type": place.type or "attraction",
                    "latitude": place.latitude,
                    "longitude": place.longitude,
                    "visited": str(pid) in visited,
                })
            payload.append({**assignment.to_summary(), "locations": locations})
        return payload

    async def get_districts(self, user_id: UserId) -> list[dict]:
        return [a.to_summary() for a in await self._load_assignments(user_id)]

    async def get_profile(self, user_id: UserId) -> dict:
        profile = await self._require_profile(user_id)
        now = self._clock()
        percent = progress_percent(profile.total_assigned, profile.total_visited)
        return {
            "user_id": profile.user_id,
            "hometown_district": profile.hometown_district,
            "xp_total": profile.xp_total,
            "stats": {
                "total_assigned": profile.total_assigned,
                "total_visited": profile.total_visited,
                "progress_percent": round(percent, 2),
            },
            "unlocked_districts": list(profile.unlocked_districts or []),
            "unlocked_provinces": list(profile.unlocked_provinces or []),
            "cooldown_remaining_seconds": (
                cooldown_remaining(profile.last_unlock_at, now).total_seconds()
            ),
            "reroll": {
                "used_at": _iso(profile.reroll_used_at),
                "available": (
                    profile.reroll_used_at is None
                    and percent < REROLL_MAX_PROGRESS_PERCENT
                ),
                "last_reason": profile.last_reroll_reason,
            },
            "assignment_fixed_at": _iso(profile.assignment_fixed_at),
        }

    async def get_xp_ledger(
        self, user_id: UserId, limit: int = 50, offset: int = 0,
    ) -> dict:
        profile = await self._require_profile(user_id)
        result = await self.db.execute(
            select(XpLedgerEntry)
            .where(XpLedgerEntry.user_id == user_id)
            .order_by(XpLedgerEntry.created_at.desc())
            .limit(limit)
            .offset(offset),
        )
        return {
            "xp_total": profile.xp_total,
            "entries": [e.to_dict() for e in result.scalars().all()],
            "pagination": {"limit": limit, "offset": offset},
        }

    # ─── Visits ─────────────────────────────────────────────────

    async def visit_location(
        self, user_id: UserId, place_id: PlaceId, samples: list,
    ) -> dict:
        """Verify a GPS visit, award XP and update unlock progress."""
        ctx = ErrorContext(user_id=user_id, place_id=str(place_id))

        rejection = check_sample_count(samples)
        if rejection:
            raise ExplorationRejected(rejection, ctx)

        profile = await self._require_profile(user_id)
        now = self._clock()
        rejection = check_cooldown(profile.last_unlock_at, now)
        if rejection:
            raise ExplorationRejected(rejection, ctx)

        place = await self._require_place(place_id, ctx)
        ctx.district = place.district
        assignments = await self._load_assignments(user_id)
        assignment = self._find_assignment(assignments, place.district)
        if assignment is None:
            raise ResourceNotFoundError("Assignment", place.district, ctx)

        rejection = check_location_assignable(
            assignment.assigned_place_ids, assignment.visited_place_ids, place.id,
        )
        if rejection and rejection["status"] == "already_visited":
            return {
                "message": rejection["message"],
                "district": assignment.district,
                "xp_awarded": 0,
                "district_unlocked": False,
                "progress": None,
            }
        if rejection:
            raise ExplorationRejected(rejection, ctx)

        verdict = evaluate_visit_samples(samples, place.latitude, place.longitude)
        if verdict["status"] != "ok":
            raise ExplorationRejected(verdict, ctx)

        accuracy = verdict["accuracy_meters"]
        unlocked = record_visit(
            assignment, place.id, accuracy, VisitSource.GPS_VERIFIED, now,
        )

        tier = resolve_tier(
            normalize_key(place.district),
            normalize_key(place.province),
            normalize_key(profile.hometown_district),
            normalize_key(await self._hometown_province(profile, assignments)),
        )
        xp = compute_xp(tier, self.rng)
        profile.xp_total = (profile.xp_total or 0) + xp
        self.db.add(XpLedgerEntry(
            user_id=user_id,
            created_at=now,
            source=XpSource.MAP_EXPLORATION.value,
            amount=xp,
            latitude=place.latitude,
            longitude=place.longitude,
            accuracy_meters=accuracy,
            place_id=place.id,
            note="Map exploration visit",
        ))
        profile.last_unlock_at = now
        summary = self._apply_progress(profile, assignments)
        await self.db.commit()

        logger.info(
            f"Visit verified ({tier.value}, +{xp} XP)",
            extra={
                "user_id": user_id, "place_id": str(place.id),
                "district": assignment.district, "xp_awarded": xp,
            },
        )
        return {
            "message": "Location verified",
            "district": assignment.district,
            "xp_awarded": xp,
            "district_unlocked": unlocked,
            "progress": summary.as_dict(),
        }

    # ─── Reroll ─────────────────────────────────────────────────

    async def reroll(
        self, user_id: UserId, reason: str | None, reason_detail: str | None,
    ) -> dict:
        """One-time redraw of all assignments, refunding exploration XP."""
        ctx = ErrorContext(user_id=user_id)
        profile = await self._require_profile(user_id)

        rejection = evaluate_reroll(
            profile.reroll_used_at,
            profile.total_assigned or 0,
            profile.total_visited or 0,
            reason,
            reason_detail,
        )
        if rejection:
            raise ExplorationRejected(rejection, ctx)

        now = self._clock()
        # Regenerate first: a missing hometown or empty catalog rejects here,
        # before the XP ledger is touched.
        plan = await self.assign_for_user(
            user_id, profile.hometown_district,
            assignment_fixed_at=profile.assignment_fixed_at or now,
        )

        refund = await self._exploration_xp(user_id)
        if refund > 0:
            profile.xp_total = max(0, (profile.xp_total or 0) - refund)
            self.db.add(XpLedgerEntry(
                user_id=user_id,
                created_at=now,
                source=XpSource.REROLL_RESET.value,
                amount=-refund,
                note="Reroll reset (map exploration XP removed)",
            ))

        profile.reroll_used_at = now
        profile.last_reroll_at = now
        profile.last_reroll_reason = format_reroll_reason(reason.strip(), reason_detail)
        await self.db.commit()

        logger.info(
            f"Reroll completed, refunded {refund} XP",
            extra={"user_id": user_id},
        )
        return {
            "message": "Reroll completed",
            "xp_refunded": refund,
            "total_assigned": plan.total_assigned,
        }

    # ─── Admin ──────────────────────────────────────────────────

    async def admin_override(
        self, user_id: UserId, place_id: PlaceId, reason: str,
    ) -> dict:
        """Mark an assigned place visited without GPS. No XP, no cooldown."""
        ctx = ErrorContext(user_id=user_id, place_id=str(place_id))
        place = await self._require_place(place_id, ctx)
        ctx.district = place.district

        assignments = await self._load_assignments(user_id)
        assignment = self._find_assignment(assignments, place.district)
        if assignment is None:
            raise ResourceNotFoundError("Assignment", place.district, ctx)

        rejection = check_location_assignable(
            assignment.assigned_place_ids, assignment.visited_place_ids, place.id,
        )
        if rejection and rejection["status"] != "already_visited":
            raise ExplorationRejected(rejection, ctx)

        applied = rejection is None
        unlocked = False
        if applied:
            unlocked = record_visit(
                assignment, place.id, 0.0, VisitSource.ADMIN_OVERRIDE,
                self._clock(), admin_reason=reason,
            )

        profile = await self._get_profile(user_id)
        if profile is not None:
            self._apply_progress(profile, assignments)
        await self.db.commit()

        logger.warning(
            f"Admin override {'applied' if applied else 'skipped (already visited)'}: {reason}",
            extra={
                "user_id": user_id, "place_id": str(place.id),
                "district": assignment.district,
            },
        )
        return {
            "message": "Override applied",
            "applied": applied,
            "district_unlocked": unlocked,
        }
