"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId wraps the auth provider uid; PlaceId wraps the catalog UUID
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (visit proofs live in JSON columns)
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", str)
PlaceId = NewType("PlaceId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class Tier(str, Enum):
    """Geographic relation of a place to the user's hometown."""
    SAME_DISTRICT = "same_district"
    SAME_PROVINCE = "same_province"
    OTHER_PROVINCE = "other_province"


class VisitSource(str, Enum):
    """How a visit proof was obtained."""
    GPS = "gps"  # legacy proofs only
    GPS_VERIFIED = "gps_verified"
    ADMIN_OVERRIDE = "admin_override"


class XpSource(str, Enum):
    """XP ledger source tags. MAP_EXPLORATION entries are refundable on reroll."""
    MAP_EXPLORATION = "map_exploration"
    REROLL_RESET = "reroll_reset"
