"""SQLAlchemy metadata definitions for trust and moderation tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()


def _timestamp_column(name: str) -> sa.Column[object]:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


profiles = sa.Table(
    "profiles",
    metadata,
    sa.Column("profile_id", sa.Text(), primary_key=True, nullable=False),
    sa.Column("email", sa.Text(), nullable=False),
    sa.Column("display_name", sa.Text(), nullable=True),
    sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column(
        "moderation_status",
        sa.Text(),
        nullable=False,
        server_default=sa.text("'active'"),
    ),
    _timestamp_column("created_at"),
    sa.UniqueConstraint("email", name="uq_profiles_email"),
    sa.CheckConstraint(
        "moderation_status IN ('active', 'warned', 'muted', 'suspended', 'banned')",
        name="ck_profiles_moderation_status",
    ),
)

organizers = sa.Table(
    "organizers",
    metadata,
    sa.Column("organizer_id", sa.Text(), primary_key=True, nullable=False),
    sa.Column(
        "profile_id",
        sa.Text(),
        sa.ForeignKey("profiles.profile_id"),
        nullable=True,
    ),
    sa.Column("display_name", sa.Text(), nullable=False),
    _timestamp_column("created_at"),
)

organizer_events = sa.Table(
    "organizer_events",
    metadata,
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
    _timestamp_column("created_at"),
    _timestamp_column("updated_at"),
    sa.CheckConstraint(
        "status IN ('draft', 'pending_review', 'published', 'unpublished', "
        "'rejected', 'ended')",
        name="ck_organizer_events_status",
    ),
)

sa.Index(
    "ix_organizer_events_organizer_status",
    organizer_events.c.organizer_id,
    organizer_events.c.status,
)

event_teams = sa.Table(
    "event_teams",
    metadata,
    sa.Column("team_id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column(
        "event_id",
        sa.Uuid(),
        sa.ForeignKey("organizer_events.event_id"),
        nullable=False,
    ),
    sa.Column("team_name", sa.Text(), nullable=False),
    _timestamp_column("created_at"),
)

sa.Index("ix_event_teams_event_id", event_teams.c.event_id)

event_registrations = sa.Table(
    "event_registrations",
    metadata,
    sa.Column("registration_id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column(
        "event_id",
        sa.Uuid(),
        sa.ForeignKey("organizer_events.event_id"),
        nullable=False,
    ),
    sa.Column("profile_id", sa.Text(), nullable=False),
    sa.Column(
        "team_id",
        sa.Uuid(),
        sa.ForeignKey("event_teams.team_id", name="fk_event_registrations_team_id"),
        nullable=True,
    ),
    sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
    _timestamp_column("created_at"),
    sa.UniqueConstraint("event_id", "profile_id", name="uq_event_registrations_event_profile"),
)

sa.Index("ix_event_registrations_profile_id", event_registrations.c.profile_id)
sa.Index("ix_event_registrations_team_id", event_registrations.c.team_id)

user_reports = sa.Table(
    "user_reports",
    metadata,
    sa.Column("report_id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("reporter_id", sa.Text(), nullable=False),
    sa.Column("reported_id", sa.Text(), nullable=False),
    sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
    _timestamp_column("created_at"),
    sa.CheckConstraint(
        "status IN ('pending', 'valid', 'dismissed')",
        name="ck_user_reports_status",
    ),
)

sa.Index("ix_user_reports_reported_id", user_reports.c.reported_id)
sa.Index("ix_user_reports_reporter_status", user_reports.c.reporter_id, user_reports.c.status)

admin_audit_logs = sa.Table(
    "admin_audit_logs",
    metadata,
    sa.Column("entry_id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("action_type", sa.Text(), nullable=False),
    sa.Column("actor_id", sa.Text(), nullable=False),
    sa.Column("actor_email", sa.Text(), nullable=False),
    sa.Column("target_type", sa.Text(), nullable=False),
    sa.Column("target_id", sa.Text(), nullable=False),
    sa.Column("reason", sa.Text(), nullable=False),
    sa.Column("before_state", sa.JSON(), nullable=True),
    sa.Column("after_state", sa.JSON(), nullable=True),
    _timestamp_column("created_at"),
)

sa.Index("ix_admin_audit_logs_target", admin_audit_logs.c.target_type, admin_audit_logs.c.target_id)
sa.Index("ix_admin_audit_logs_action_type", admin_audit_logs.c.action_type)
sa.Index("ix_admin_audit_logs_created_at", admin_audit_logs.c.created_at)

admin_activity_feed = sa.Table(
    "admin_activity_feed",
    metadata,
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
    _timestamp_column("occurred_at"),
    sa.CheckConstraint(
        "severity IN ('info', 'warning', 'critical')",
        name="ck_admin_activity_feed_severity",
    ),
)

sa.Index(
    "ix_admin_activity_feed_occurred_at_event_id",
    admin_activity_feed.c.occurred_at,
    admin_activity_feed.c.event_id,
)
sa.Index("ix_admin_activity_feed_activity_type", admin_activity_feed.c.activity_type)
sa.Index("ix_admin_activity_feed_actor_id", admin_activity_feed.c.actor_id)

admin_roles = sa.Table(
    "admin_roles",
    metadata,
    sa.Column("role_id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("subject_id", sa.Text(), nullable=False),
    sa.Column("role_type", sa.Text(), nullable=False),
    sa.Column("permissions", sa.JSON(), nullable=False),
    sa.Column("created_by", sa.Text(), nullable=True),
    _timestamp_column("created_at"),
    _timestamp_column("updated_at"),
    sa.CheckConstraint(
        "role_type IN ('viewer', 'moderator', 'admin', 'super_admin')",
        name="ck_admin_roles_role_type",
    ),
    sa.UniqueConstraint("subject_id", name="uq_admin_roles_subject_id"),
)

user_trust_scores = sa.Table(
    "user_trust_scores",
    metadata,
    sa.Column("subject_id", sa.Text(), primary_key=True, nullable=False),
    sa.Column("score", sa.Integer(), nullable=False),
    sa.Column("factors", sa.JSON(), nullable=False),
    sa.Column("breakdown", sa.JSON(), nullable=False),
    sa.Column("last_calculated_at", sa.DateTime(timezone=True), nullable=False),
    sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_user_trust_scores_score"),
)

sa.Index("ix_user_trust_scores_score", user_trust_scores.c.score)

organizer_trust_scores = sa.Table(
    "organizer_trust_scores",
    metadata,
    sa.Column("organizer_id", sa.Text(), primary_key=True, nullable=False),
    sa.Column("score", sa.Integer(), nullable=False, server_default=sa.text("50")),
    sa.Column("factors", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
    sa.Column("breakdown", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
    sa.Column("is_flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("flag_reason", sa.Text(), nullable=True),
    sa.Column("flagged_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("flagged_by", sa.Text(), nullable=True),
    sa.Column("last_calculated_at", sa.DateTime(timezone=True), nullable=True),
    sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_organizer_trust_scores_score"),
    sa.CheckConstraint(
        "(is_flagged AND flag_reason IS NOT NULL AND flagged_at IS NOT NULL) "
        "OR (NOT is_flagged AND flag_reason IS NULL AND flagged_at IS NULL)",
        name="ck_organizer_trust_scores_flag_consistency",
    ),
)

sa.Index("ix_organizer_trust_scores_is_flagged", organizer_trust_scores.c.is_flagged)
