"""ExplorerProfile ORM — per-user exploration state and XP balance.

Invariants:
    - user_id is the auth provider uid (primary key, not generated)
    - unlocked_districts / unlocked_provinces / total_* are derived; only
      refresh_progress writes them
    - last_unlock_at anchors the visit cooldown
    - reroll_used_at is written at most once

Design Decisions:
    - JSON lists for unlocked names: read whole, rewritten whole
    - Ledger in its own table (xp_ledger) and never loaded through the profile
      (lazy="raise"); entries are added and summed with their own queries
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from waypoint.db.base import Base


class ExplorerProfile(Base):
    """Exploration fields of a user."""
    __tablename__ = "explorer_profiles"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    hometown_district: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    unlocked_districts: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    unlocked_provinces: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    total_assigned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_visited: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_unlock_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    assignment_fixed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    reroll_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_reroll_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_reroll_reason: Mapped[str | None] = mapped_column(
        String(1000), nullable=True,
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

    ledger: Mapped[list["XpLedgerEntry"]] = relationship(
        "XpLedgerEntry", back_populates="profile",
        cascade="all, delete-orphan", lazy="raise", passive_deletes=True,
        order_by="XpLedgerEntry.created_at",
    )
