"""Add member moderation status and event teams for the ban cascade."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0002_member_ban_cascade"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Add moderation_status, event_teams, and team links on registrations."""

    op.add_column(
        "profiles",
        sa.Column(
            "moderation_status",
            sa.Text(),
            nullable=False,
            server_default=sa.text("'active'"),
        ),
    )
    with op.batch_alter_table("profiles") as batch_op:
        batch_op.create_check_constraint(
            "ck_profiles_moderation_status",
            "moderation_status IN ('active', 'warned', 'muted', 'suspended', 'banned')",
        )

    op.create_table(
        "event_teams",
        sa.Column("team_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "event_id",
            sa.Uuid(),
            sa.ForeignKey("organizer_events.event_id"),
            nullable=False,
        ),
        sa.Column("team_name", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_event_teams_event_id", "event_teams", ["event_id"])

    op.add_column("event_registrations", sa.Column("team_id", sa.Uuid(), nullable=True))
    with op.batch_alter_table("event_registrations") as batch_op:
        batch_op.create_foreign_key(
            "fk_event_registrations_team_id",
            "event_teams",
            ["team_id"],
            ["team_id"],
        )
    op.create_index("ix_event_registrations_team_id", "event_registrations", ["team_id"])


def downgrade() -> None:
    """Remove team links, event_teams, and moderation_status."""

    op.drop_index("ix_event_registrations_team_id", table_name="event_registrations")
    with op.batch_alter_table("event_registrations") as batch_op:
        batch_op.drop_constraint("fk_event_registrations_team_id", type_="foreignkey")
        batch_op.drop_column("team_id")
    op.drop_index("ix_event_teams_event_id", table_name="event_teams")
    op.drop_table("event_teams")
    with op.batch_alter_table("profiles") as batch_op:
        batch_op.drop_constraint("ck_profiles_moderation_status", type_="check")
        batch_op.drop_column("moderation_status")
