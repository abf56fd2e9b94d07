"""Initial schema for profiles, organizer events, trust scores, roles, audit, and activity."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column[object]:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("profile_id", sa.Text(), primary_key=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        sa.UniqueConstraint("email", name="uq_profiles_email"),
    )

    op.create_table(
        "organizers",
        sa.Column("organizer_id", sa.Text(), primary_key=True, nullable=False),
        sa.Column(
            "profile_id",
            sa.Text(),
            sa.ForeignKey("profiles.profile_id"),
            nullable=True,
        ),
        sa.Column("display_name", sa.Text(), nullable=False),
        _timestamp("created_at"),
    )

    op.create_table(
        "organizer_events",
        sa.Column("event_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "organizer_id",
            sa.Text(),
            sa.ForeignKey("organizers.organizer_id"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "status IN ('draft', 'pending_review', 'published', 'unpublished', "
            "'rejected', 'ended')",
            name="ck_organizer_events_status",
        ),
    )
    op.create_index(
        "ix_organizer_events_organizer_status",
        "organizer_events",
        ["organizer_id", "status"],
    )

    op.create_table(
        "event_registrations",
        sa.Column("registration_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "event_id",
            sa.Uuid(),
            sa.ForeignKey("organizer_events.event_id"),
            nullable=False,
        ),
        sa.Column("profile_id", sa.Text(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        sa.UniqueConstraint("event_id", "profile_id", name="uq_event_registrations_event_profile"),
    )
    op.create_index(
        "ix_event_registrations_profile_id",
        "event_registrations",
        ["profile_id"],
    )

    op.create_table(
        "user_reports",
        sa.Column("report_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("reporter_id", sa.Text(), nullable=False),
        sa.Column("reported_id", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "status IN ('pending', 'valid', 'dismissed')",
            name="ck_user_reports_status",
        ),
    )
    op.create_index("ix_user_reports_reported_id", "user_reports", ["reported_id"])
    op.create_index(
        "ix_user_reports_reporter_status",
        "user_reports",
        ["reporter_id", "status"],
    )

    op.create_table(
        "admin_audit_logs",
        sa.Column("entry_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("action_type", sa.Text(), nullable=False),
        sa.Column("actor_id", sa.Text(), nullable=False),
        sa.Column("actor_email", sa.Text(), nullable=False),
        sa.Column("target_type", sa.Text(), nullable=False),
        sa.Column("target_id", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("before_state", sa.JSON(), nullable=True),
        sa.Column("after_state", sa.JSON(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_admin_audit_logs_target",
        "admin_audit_logs",
        ["target_type", "target_id"],
    )
    op.create_index("ix_admin_audit_logs_action_type", "admin_audit_logs", ["action_type"])
    op.create_index("ix_admin_audit_logs_created_at", "admin_audit_logs", ["created_at"])

    op.create_table(
        "admin_activity_feed",
        sa.Column("event_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("activity_type", sa.Text(), nullable=False),
        sa.Column("actor_id", sa.Text(), nullable=True),
        sa.Column("actor_email", sa.Text(), nullable=True),
        sa.Column("target_type", sa.Text(), nullable=False),
        sa.Column("target_id", sa.Text(), nullable=False),
        sa.Column("target_name", sa.Text(), nullable=True),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("severity", sa.Text(), nullable=False, server_default=sa.text("'info'")),
        _timestamp("occurred_at"),
        sa.CheckConstraint(
            "severity IN ('info', 'warning', 'critical')",
            name="ck_admin_activity_feed_severity",
        ),
    )
    op.create_index(
        "ix_admin_activity_feed_occurred_at_event_id",
        "admin_activity_feed",
        ["occurred_at", "event_id"],
    )
    op.create_index(
        "ix_admin_activity_feed_activity_type",
        "admin_activity_feed",
        ["activity_type"],
    )
    op.create_index("ix_admin_activity_feed_actor_id", "admin_activity_feed", ["actor_id"])

    op.create_table(
        "admin_roles",
        sa.Column("role_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.Text(), nullable=False),
        sa.Column("role_type", sa.Text(), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "role_type IN ('viewer', 'moderator', 'admin', 'super_admin')",
            name="ck_admin_roles_role_type",
        ),
        sa.UniqueConstraint("subject_id", name="uq_admin_roles_subject_id"),
    )

    op.create_table(
        "user_trust_scores",
        sa.Column("subject_id", sa.Text(), primary_key=True, nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("factors", sa.JSON(), nullable=False),
        sa.Column("breakdown", sa.JSON(), nullable=False),
        sa.Column("last_calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_user_trust_scores_score"),
    )
    op.create_index("ix_user_trust_scores_score", "user_trust_scores", ["score"])

    op.create_table(
        "organizer_trust_scores",
        sa.Column("organizer_id", sa.Text(), primary_key=True, nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default=sa.text("50")),
        sa.Column("factors", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("breakdown", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("is_flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("flag_reason", sa.Text(), nullable=True),
        sa.Column("flagged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("flagged_by", sa.Text(), nullable=True),
        sa.Column("last_calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "score >= 0 AND score <= 100",
            name="ck_organizer_trust_scores_score",
        ),
        sa.CheckConstraint(
            "(is_flagged AND flag_reason IS NOT NULL AND flagged_at IS NOT NULL) "
            "OR (NOT is_flagged AND flag_reason IS NULL AND flagged_at IS NULL)",
            name="ck_organizer_trust_scores_flag_consistency",
        ),
    )
    op.create_index(
        "ix_organizer_trust_scores_is_flagged",
        "organizer_trust_scores",
        ["is_flagged"],
    )


def downgrade() -> None:
    op.drop_index("ix_organizer_trust_scores_is_flagged", table_name="organizer_trust_scores")
    op.drop_table("organizer_trust_scores")
    op.drop_index("ix_user_trust_scores_score", table_name="user_trust_scores")
    op.drop_table("user_trust_scores")
    op.drop_table("admin_roles")
    op.drop_index("ix_admin_activity_feed_actor_id", table_name="admin_activity_feed")
    op.drop_index("ix_admin_activity_feed_activity_type", table_name="admin_activity_feed")
    op.drop_index(
        "ix_admin_activity_feed_occurred_at_event_id",
        table_name="admin_activity_feed",
    )
    op.drop_table("admin_activity_feed")
    op.drop_index("ix_admin_audit_logs_created_at", table_name="admin_audit_logs")
    op.drop_index("ix_admin_audit_logs_action_type", table_name="admin_audit_logs")
    op.drop_index("ix_admin_audit_logs_target", table_name="admin_audit_logs")
    op.drop_table("admin_audit_logs")
    op.drop_index("ix_user_reports_reporter_status", table_name="user_reports")
    op.drop_index("ix_user_reports_reported_id", table_name="user_reports")
    op.drop_table("user_reports")
    op.drop_index("ix_event_registrations_profile_id", table_name="event_registrations")
    op.drop_table("event_registrations")
    op.drop_index("ix_organizer_events_organizer_status", table_name="organizer_events")
    op.drop_table("organizer_events")
    op.drop_table("organizers")
    op.drop_table("profiles")
