"""DistrictAssignment ORM — one user's assigned places in one district.

Invariants:
    - (user_id, district) is unique
    - assigned_place_ids is fixed at creation; visited_place_ids only grows
    - visited_place_ids ⊆ assigned_place_ids
    - unlocked_at set iff visited_count == assigned_count; cleared only by
      deleting the row (reroll regenerates every assignment)

Design Decisions:
    - JSON columns for the id sets and visit proofs (document-shaped data);
      mutation goes through core.exploration_rules.record_visit, which
      reassigns the lists so change tracking fires
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from waypoint.db.base import Base


class DistrictAssignment(Base):
    """Assignment aggregate for (user, district)."""
    __tablename__ = "district_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "district", name="uq_assignments_user_district"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    district: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    province: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    assigned_place_ids: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    visited_place_ids: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    visit_proofs: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    assigned_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    visited_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unlocked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_summary(self) -> dict:
        return {
            "district": self.district,
            "province": self.province,
            "assigned_count": self.assigned_count,
            "visited_count": self.visited_count,
            "unlocked_at": (
                self.unlocked_at.isoformat() if self.unlocked_at else None
            ),
        }
