"""Initial schema — places, explorer_profiles, xp_ledger, district_assignments.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "places",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("district", sa.String(100), nullable=False),
        sa.Column("province", sa.String(100), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(50), nullable=False, server_default="attraction"),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("district", "name", name="uq_places_district_name"),
    )
    op.create_index("ix_places_district", "places", ["district"])
    op.create_index("ix_places_province", "places", ["province"])

    op.create_table(
        "explorer_profiles",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("hometown_district", sa.String(100), nullable=True),
        sa.Column("unlocked_districts", sa.JSON, nullable=False),
        sa.Column("unlocked_provinces", sa.JSON, nullable=False),
        sa.Column("total_assigned", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_visited", sa.Integer, nullable=False, server_default="0"),
        sa.Column("xp_total", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_unlock_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assignment_fixed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reroll_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_reroll_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_reroll_reason", sa.String(1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "xp_ledger",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id", sa.String(128),
            sa.ForeignKey("explorer_profiles.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("source", sa.String(30), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("accuracy_meters", sa.Float, nullable=True),
        sa.Column("place_id", UUID(as_uuid=True), nullable=True),
        sa.Column("note", sa.String(200), nullable=True),
    )
    op.create_index("ix_xp_ledger_user_id", "xp_ledger", ["user_id"])

    op.create_table(
        "district_assignments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("district", sa.String(100), nullable=False),
        sa.Column("province", sa.String(100), nullable=False),
        sa.Column("assigned_place_ids", sa.JSON, nullable=False),
        sa.Column("visited_place_ids", sa.JSON, nullable=False),
        sa.Column("visit_proofs", sa.JSON, nullable=False),
        sa.Column("assigned_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("visited_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "district", name="uq_assignments_user_district"),
    )
    op.create_index("ix_district_assignments_user_id", "district_assignments", ["user_id"])
    op.create_index("ix_district_assignments_district", "district_assignments", ["district"])
    op.create_index("ix_district_assignments_province", "district_assignments", ["province"])


def downgrade() -> None:
    op.drop_table("district_assignments")
    op.drop_table("xp_ledger")
    op.drop_table("explorer_profiles")
    op.drop_table("places")
