"""Exploration Rules — assignment sizing, visit verification, XP, reroll and progress.

Invariants:
    - Every function here is PURE except record_visit, which mutates only the
      assignment object it is handed (no IO, no clock, no global RNG)
    - Randomness comes from an injected random.Random; time from an injected `now`
    - Evaluators return a rejection descriptor (dict) or None / an ok descriptor;
      the shell turns descriptors into ExplorationRejected before touching state
    - visited ⊆ assigned: record_visit refuses ids outside the assigned set
    - unlocked_at is set exactly once, when visited_count first reaches assigned_count

Design Decisions:
    - Constants declared once here; routes and services import them rather than
      restating thresholds
    - JSON-backed lists are replaced, never appended in place, so the ORM sees the change
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Protocol

from pydantic import TypeAdapter, ValidationError

from waypoint.core.domain_types import Tier, VisitSource, XpSource
from waypoint.core.geo import distance_meters, normalize_key
from waypoint.schemas.exploration import GpsSample


COOLDOWN = timedelta(minutes=5)
MAX_DISTANCE_METERS: float = 100.0
MAX_ACCURACY_METERS: float = 50.0
MIN_SAMPLE_COUNT: int = 3
SAMPLE_INTERVAL_SECONDS: int = 2
REROLL_MAX_PROGRESS_PERCENT: float = 35.0
MIN_PLACES_PER_DISTRICT: int = 3

XP_CONFIG: dict[Tier, dict[str, int]] = {
    Tier.SAME_DISTRICT: {"base": 10, "bonus_max": 4},
    Tier.SAME_PROVINCE: {"base": 12, "bonus_max": 4},
    Tier.OTHER_PROVINCE: {"base": 15, "bonus_max": 4},
}

COUNT_TIERS: dict[Tier, tuple[int, int]] = {
    Tier.SAME_DISTRICT: (4, 7),
    Tier.SAME_PROVINCE: (4, 6),
    Tier.OTHER_PROVINCE: (3, 5),
}


# ─── Structural contracts ───────────────────────────────────────

class PlaceLike(Protocol):
    id: Any
    district: str
    province: str
    latitude: float
    longitude: float


class AssignmentLike(Protocol):
    district: str
    province: str
    assigned_place_ids: list[str]
    visited_place_ids: list[str]
    visit_proofs: list[dict]
    assigned_count: int
    visited_count: int
    unlocked_at: datetime | None


class LedgerEntryLike(Protocol):
    source: str
    amount: int


# ─── Value objects ──────────────────────────────────────────────

@dataclass
class DistrictEntry:
    """Active catalog places grouped under one district."""
    district: str
    province: str
    place_ids: list[str] = field(default_factory=list)


@dataclass
class PlannedAssignment:
    district: str
    province: str
    tier: Tier
    assigned_place_ids: list[str]

    @property
    def assigned_count(self) -> int:
        return len(self.assigned_place_ids)


@dataclass
class AssignmentPlan:
    hometown_district: str
    hometown_province: str
    assignments: list[PlannedAssignment]

    @property
    def total_assigned(self) -> int:
        return sum(a.assigned_count for a in self.assignments)


@dataclass
class ProgressSummary:
    total_assigned: int
    total_visited: int
    unlocked_districts: list[str]
    unlocked_provinces: list[str]

    def as_dict(self) -> dict:
        return {
            "total_assigned": self.total_assigned,
            "total_visited": self.total_visited,
            "unlocked_districts": self.unlocked_districts,
            "unlocked_provinces": self.unlocked_provinces,
        }


# ─── Catalog & tiers ────────────────────────────────────────────

def build_district_catalog(places: Iterable[PlaceLike]) -> dict[str, DistrictEntry]:
    """Group places by normalized district. First spelling seen wins for display."""
    catalog: dict[str, DistrictEntry] = {}
    for place in places:
        key = normalize_key(place.district)
        if key not in catalog:
            catalog[key] = DistrictEntry(
                district=place.district, province=place.province,
            )
        catalog[key].place_ids.append(str(place.id))
    return catalog


def check_hometown_in_catalog(
    catalog: dict[str, DistrictEntry], hometown_district: str | None,
) -> dict | None:
    """Hometown must name a district that has active places."""
    if not catalog:
        return {
            "status": "rejected",
            "error_code": "CATALOG_EMPTY",
            "message": "No active places in the catalog",
        }
    if not hometown_district or not str(hometown_district).strip():
        return {
            "status": "rejected",
            "error_code": "HOMETOWN_REQUIRED",
            "message": "User must set hometown district before starting exploration",
        }
    if normalize_key(hometown_district) not in catalog:
        return {
            "status": "rejected",
            "error_code": "HOMETOWN_NOT_IN_CATALOG",
            "message": "Hometown district not found in places catalog",
            "hometown_district": hometown_district,
        }
    return None


def resolve_tier(
    district_key: str | None,
    province_key: str | None,
    hometown_key: str | None,
    hometown_province_key: str | None,
) -> Tier:
    """same_district > same_province > other_province on normalized keys."""
    if district_key == hometown_key:
        return Tier.SAME_DISTRICT
    if province_key == hometown_province_key:
        return Tier.SAME_PROVINCE
    return Tier.OTHER_PROVINCE


# ─── Assignment sizing ──────────────────────────────────────────

def choose_assignment_count(tier: Tier, available: int, rng: random.Random) -> int:
    low, high = COUNT_TIERS[tier]
    return min(rng.randint(low, high), available)


def select_places(
    place_ids: list[str], count: int, rng: random.Random,
) -> list[str]:
    """Uniform selection without replacement: shuffle a copy, take the prefix."""
    shuffled = list(place_ids)
    rng.shuffle(shuffled)
    return shuffled[:count]


def plan_assignments(
    catalog: dict[str, DistrictEntry],
    hometown_district: str,
    rng: random.Random,
) -> AssignmentPlan:
    """One planned assignment per catalog district. Caller checks the hometown first."""
    hometown_key = normalize_key(hometown_district)
    hometown = catalog.get(hometown_key)
    if hometown is None:
        raise ValueError(f"hometown district {hometown_district!r} not in catalog")
    hometown_province_key = normalize_key(hometown.province)

    planned: list[PlannedAssignment] = []
    for district_key, entry in catalog.items():
        tier = resolve_tier(
            district_key, normalize_key(entry.province),
            hometown_key, hometown_province_key,
        )
        count = choose_assignment_count(tier, len(entry.place_ids), rng)
        planned.append(PlannedAssignment(
            district=entry.district,
            province=entry.province,
            tier=tier,
            assigned_place_ids=select_places(entry.place_ids, count, rng),
        ))
    return AssignmentPlan(
        hometown_district=hometown.district,
        hometown_province=hometown.province,
        assignments=planned,
    )


# ─── XP ─────────────────────────────────────────────────────────

def compute_xp(tier: Tier, rng: random.Random) -> int:
    """Tier base plus a uniform bonus in [0, bonus_max]."""
    config = XP_CONFIG.get(tier, XP_CONFIG[Tier.OTHER_PROVINCE])
    return config["base"] + rng.randint(0, config["bonus_max"])


def exploration_xp_total(ledger: Iterable[LedgerEntryLike]) -> int:
    """Sum of map-exploration entries: exactly what a reroll refunds."""
    return sum(
        entry.amount for entry in ledger
        if entry.source == XpSource.MAP_EXPLORATION.value
    )


# ─── Visit verification ─────────────────────────────────────────

_SAMPLE_ADAPTER = TypeAdapter(GpsSample)


def filter_valid_samples(
    samples: Iterable[object], target_lat: float, target_lon: float,
) -> list[GpsSample]:
    """Keep well-formed samples with accuracy <= 50 m within 100 m of the target.

    Samples failing GpsSample validation (non-finite, out of range, wrong type)
    are dropped. Limits are inclusive upper bounds.
    """
    valid: list[GpsSample] = []
    for raw in samples:
        try:
            sample = _SAMPLE_ADAPTER.validate_python(raw)
        except ValidationError:
            continue
        distance = distance_meters(
            sample.latitude, sample.longitude, target_lat, target_lon,
        )
        if (
            sample.accuracy_meters <= MAX_ACCURACY_METERS
            and distance <= MAX_DISTANCE_METERS
        ):
            valid.append(sample)
    return valid


def check_sample_count(samples: list) -> dict | None:
    """Cheap pre-check on the raw submission, before any lookup."""
    if len(samples) < MIN_SAMPLE_COUNT:
        return {
            "status": "rejected",
            "error_code": "INSUFFICIENT_SAMPLES",
            "message": f"At least {MIN_SAMPLE_COUNT} samples are required",
            "required_samples": MIN_SAMPLE_COUNT,
        }
    return None


def evaluate_visit_samples(
    samples: list, target_lat: float, target_lon: float,
) -> dict:
    """Verify a physical visit. Pure — returns ok with worst accuracy, or a rejection."""
    too_few = check_sample_count(samples)
    if too_few:
        return too_few

    valid = filter_valid_samples(samples, target_lat, target_lon)
    if len(valid) < MIN_SAMPLE_COUNT:
        return {
            "status": "rejected",
            "error_code": "INVALID_SAMPLES",
            "message": "Not enough valid GPS samples to verify visit",
            "valid_samples": len(valid),
            "required_samples": MIN_SAMPLE_COUNT,
            "sample_interval_seconds": SAMPLE_INTERVAL_SECONDS,
            "radius_meters": MAX_DISTANCE_METERS,
        }

    return {
        "status": "ok",
        "valid_samples": len(valid),
        "accuracy_meters": max(s.accuracy_meters for s in valid),
    }


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands timestamps back naive; they were written as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def cooldown_remaining(
    last_unlock_at: datetime | None, now: datetime,
) -> timedelta:
    if last_unlock_at is None:
        return timedelta(0)
    elapsed = _as_utc(now) - _as_utc(last_unlock_at)
    return max(COOLDOWN - elapsed, timedelta(0))


def check_cooldown(last_unlock_at: datetime | None, now: datetime) -> dict | None:
    """One global per-user timer between successful GPS unlocks."""
    remaining = cooldown_remaining(last_unlock_at, now)
    if remaining > timedelta(0):
        return {
            "status": "rejected",
            "error_code": "COOLDOWN_ACTIVE",
            "message": "Cooldown active. Try again later.",
            "retry_after_seconds": remaining.total_seconds(),
        }
    return None


def check_location_assignable(
    assigned_ids: list[str], visited_ids: list[str], place_id: str,
) -> dict | None:
    """Containment first, then duplicate detection."""
    place_id = str(place_id)
    if place_id not in {str(i) for i in assigned_ids}:
        return {
            "status": "rejected",
            "error_code": "LOCATION_NOT_ASSIGNED",
            "message": "Location not assigned to user",
            "place_id": place_id,
        }
    if place_id in {str(i) for i in visited_ids}:
        return {
            "status": "already_visited",
            "error_code": "ALREADY_VISITED",
            "message": "Location already visited",
            "place_id": place_id,
        }
    return None


def record_visit(
    assignment: AssignmentLike,
    place_id: str,
    accuracy_meters: float,
    source: VisitSource,
    now: datetime,
    admin_reason: str | None = None,
) -> bool:
    """Append a visit and its proof. Returns True when this visit unlocked the district.

    Raises ValueError for ids outside the assigned set — callers must run
    check_location_assignable first, so reaching it is a programming error.
    """
    place_id = str(place_id)
    if place_id not in {str(i) for i in assignment.assigned_place_ids}:
        raise ValueError(f"place {place_id} is not assigned in {assignment.district}")
    if place_id in {str(i) for i in assignment.visited_place_ids}:
        return False

    assignment.visited_place_ids = [*assignment.visited_place_ids, place_id]
    assignment.visit_proofs = [
        *(assignment.visit_proofs or []),
        {
            "place_id": place_id,
            "visited_at": _as_utc(now).isoformat(),
            "accuracy_meters": accuracy_meters,
            "source": source.value,
            "admin_reason": admin_reason,
        },
    ]
    assignment.visited_count = len(assignment.visited_place_ids)

    if (
        assignment.unlocked_at is None
        and assignment.visited_count >= assignment.assigned_count
    ):
        assignment.unlocked_at = now
        return True
    return False


# ─── Reroll ─────────────────────────────────────────────────────

def progress_percent(total_assigned: int, total_visited: int) -> float:
    if not total_assigned:
        return 0.0
    return total_visited / total_assigned * 100


def evaluate_reroll(
    reroll_used_at: datetime | None,
    total_assigned: int,
    total_visited: int,
    reason: str | None,
    reason_detail: str | None,
) -> dict | None:
    """Once per user, under 35% progress, with a reason ("Other" needs detail)."""
    if reroll_used_at is not None:
        return {
            "status": "rejected",
            "error_code": "REROLL_ALREADY_USED",
            "message": "Reroll already used",
        }

    percent = progress_percent(total_assigned, total_visited)
    if percent >= REROLL_MAX_PROGRESS_PERCENT:
        return {
            "status": "rejected",
            "error_code": "REROLL_PROGRESS_EXCEEDED",
            "message": (
                f"Reroll not allowed after {REROLL_MAX_PROGRESS_PERCENT:g}% exploration"
            ),
            "progress_percent": round(percent, 2),
        }

    if not reason or not reason.strip():
        return {
            "status": "rejected",
            "error_code": "REROLL_REASON_REQUIRED",
            "message": "Reroll reason is required",
        }

    if reason.strip().lower() == "other" and not (reason_detail or "").strip():
        return {
            "status": "rejected",
            "error_code": "REROLL_DETAIL_REQUIRED",
            "message": "reason_detail is required when reason is Other",
        }

    return None


def format_reroll_reason(reason: str, reason_detail: str | None) -> str:
    if reason_detail:
        return f"{reason} - {reason_detail}"
    return reason


# ─── Progress ───────────────────────────────────────────────────

def aggregate_progress(assignments: Iterable[AssignmentLike]) -> ProgressSummary:
    """A province unlocks only when every one of its districts is unlocked."""
    total_assigned = 0
    total_visited = 0
    unlocked_districts: list[str] = []
    provinces: dict[str, dict] = {}

    for assignment in assignments:
        total_assigned += assignment.assigned_count
        total_visited += assignment.visited_count
        if assignment.unlocked_at is not None:
            unlocked_districts.append(assignment.district)

        group = provinces.setdefault(
            normalize_key(assignment.province),
            {"province": assignment.province, "total": 0, "unlocked": 0},
        )
        group["total"] += 1
        if assignment.unlocked_at is not None:
            group["unlocked"] += 1

    unlocked_provinces = [
        g["province"] for g in provinces.values()
        if g["total"] > 0 and g["unlocked"] == g["total"]
    ]
    return ProgressSummary(
        total_assigned=total_assigned,
        total_visited=total_visited,
        unlocked_districts=unlocked_districts,
        unlocked_provinces=unlocked_provinces,
    )


# ─── Catalog seeding ────────────────────────────────────────────

def find_underfilled_districts(counts: dict[str, int]) -> list[dict]:
    """Districts with fewer active places than an assignment can sensibly draw from."""
    return [
        {"district": district, "count": count}
        for district, count in counts.items()
        if count < MIN_PLACES_PER_DISTRICT
    ]
