"""Place ORM — immutable reference catalog of points of interest.

Invariants:
    - (district, name) is unique; seeding upserts on that pair
    - The exploration engine reads places, never mutates them

Design Decisions:
    - is_active flag instead of deletes: retired places keep their ids so
      existing assignments and proofs stay resolvable
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Float, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from waypoint.db.base import Base


class Place(Base):
    """Catalog place that can be assigned for exploration."""
    __tablename__ = "places"
    __table_args__ = (
        UniqueConstraint("district", "name", name="uq_places_district_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    district: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    province: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="attraction",
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
