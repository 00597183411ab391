"""XpLedgerEntry ORM — append-only record of every XP change.

Invariants:
    - Rows are only ever inserted; amount is signed
    - source is an XpSource value; map_exploration rows sum to the reroll refund
    - Location fields are null for non-visit entries

Design Decisions:
    - Separate table rather than an embedded array: paging and ordering in SQL
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Float, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from waypoint.db.base import Base


class XpLedgerEntry(Base):
    """One XP delta for one user."""
    __tablename__ = "xp_ledger"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("explorer_profiles.user_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    source: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    accuracy_meters: Mapped[float | None] = mapped_column(Float, nullable=True)
    place_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    note: Mapped[str | None] = mapped_column(String(200), nullable=True)

    profile: Mapped["ExplorerProfile"] = relationship(
        "ExplorerProfile", back_populates="ledger",
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "created_at": self.created_at.isoformat(),
            "source": self.source,
            "amount": self.amount,
            "location": {
                "latitude": self.latitude,
                "longitude": self.longitude,
                "accuracy_meters": self.accuracy_meters,
            },
            "place_id": str(self.place_id) if self.place_id else None,
            "note": self.note,
        }
