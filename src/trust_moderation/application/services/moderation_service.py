"""Organizer revocation, flag and unflag, and member ban workflows.

Revocation runs in one pass: load the organizer and its active events,
unpublish every event concurrently with per-item isolation, audit each
successful transition, flag the organizer, and write the summary audit.
Only loading, flagging, and the summary writes are fatal; per-item failures
are reported on ``RevocationResult.outcomes``.

A ban follows the same shape: the status change is fatal, while each
unpublished event and each team removal is isolated and reported on
``BanResult``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from trust_moderation.application.ports.activity_repository_port import ActivityRepositoryPort
from trust_moderation.application.ports.audit_repository_port import AuditRepositoryPort
from trust_moderation.application.ports.member_repository_port import (
    MemberRepositoryPort,
    ModeratedMember,
    TeamMembership,
)
from trust_moderation.application.ports.moderation_subject_repository_port import (
    DependentEntity,
    ModerationSubject,
    ModerationSubjectRepositoryPort,
)
from trust_moderation.application.ports.trust_score_repository_port import (
    TrustScoreRepositoryPort,
)
from trust_moderation.application.services.trust_score_service import SubjectNotFoundError
from trust_moderation.domain.activity.events import (
    ActivityEventCreateInput,
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
)
from trust_moderation.domain.audit.diff import compute_diff
from trust_moderation.domain.audit.entries import (
    AuditActionType,
    AuditEntryCreateInput,
    AuditTargetType,
)
from trust_moderation.domain.auth.permissions import PermissionEnforcer
from trust_moderation.domain.auth.roles import AdminPermission, AdminRole
from trust_moderation.domain.moderation.ban_cascade import (
    BanCascadeInput,
    BanCascadePlan,
    MemberModerationStatus,
    plan_ban_cascade,
)
from trust_moderation.domain.trust.factors import SubjectKind
from trust_moderation.domain.trust.flag_state import NOT_FLAGGED, Flagged, FlagState

NowCallable = Callable[[], datetime]
logger = logging.getLogger(__name__)

UNPUBLISHED_STATE = "unpublished"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class PermissionDeniedError(PermissionError):
    """Raised when the acting admin lacks the permission an action requires."""

    def __init__(self, *, action: str, reason: str) -> None:
        super().__init__(f"{action} denied: {reason}")
        self.action = action
        self.reason = reason


class InvalidModerationReasonError(ValueError):
    """Raised when a moderation action is requested without a reason."""

    def __init__(self) -> None:
        super().__init__("moderation reason cannot be blank")


class SubjectAlreadyFlaggedError(ValueError):
    """Raised when flagging an organizer that is already flagged."""

    def __init__(self, *, subject_id: str) -> None:
        super().__init__(f"organizer is already flagged: {subject_id}")
        self.subject_id = subject_id


class SubjectNotFlaggedError(ValueError):
    """Raised when unflagging an organizer that carries no flag."""

    def __init__(self, *, subject_id: str) -> None:
        super().__init__(f"organizer is not flagged: {subject_id}")
        self.subject_id = subject_id


class MemberAlreadyBannedError(ValueError):
    """Raised when banning a member whose status is already banned."""

    def __init__(self, *, member_id: str) -> None:
        super().__init__(f"member is already banned: {member_id}")
        self.member_id = member_id


class InvalidActingAdminError(ValueError):
    """Raised when the acting admin identity cannot attribute an audit entry."""

    def __init__(self, *, field_name: str, message: str) -> None:
        super().__init__(f"acting admin {field_name}: {message}")
        self.field_name = field_name


@dataclass(frozen=True)
class ActingAdmin:
    """Identity and role of the admin performing an action."""

    admin_id: str
    email: str
    role: AdminRole | None

    def __post_init__(self) -> None:
        if not self.admin_id.strip():
            raise InvalidActingAdminError(field_name="admin_id", message="cannot be blank")
        if "@" not in self.email:
            raise InvalidActingAdminError(
                field_name="email",
                message="must be a valid email address",
            )


@dataclass(frozen=True)
class ModerationPolicy:
    """Permission required per action and cascade concurrency bound."""

    revoke_permission: AdminPermission = AdminPermission.REVOKE_ORGANIZERS
    flag_permission: AdminPermission = AdminPermission.MODERATE_USERS
    ban_permission: AdminPermission = AdminPermission.BAN_USERS
    cascade_max_concurrency: int = 4

    def __post_init__(self) -> None:
        if self.cascade_max_concurrency < 1:
            raise ValueError("cascade_max_concurrency must be at least 1")


@dataclass(frozen=True)
class CascadeItemOutcome:
    """Result of one dependent transition and its follow-up writes."""

    entity_id: UUID
    entity_name: str
    transitioned: bool
    participant_count: int
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    error: str | None = None
    audit_error: str | None = None
    activity_error: str | None = None

    @property
    def fully_recorded(self) -> bool:
        return self.transitioned and self.audit_error is None and self.activity_error is None


@dataclass(frozen=True)
class RevocationResult:
    subject_id: str
    affected_count: int
    notified_count: int
    success: bool
    message: str
    outcomes: tuple[CascadeItemOutcome, ...] = field(default_factory=tuple)

    @property
    def failed_outcomes(self) -> list[CascadeItemOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.fully_recorded]


@dataclass(frozen=True)
class FlagChangeResult:
    subject_id: str
    state: FlagState


@dataclass(frozen=True)
class TeamRemovalOutcome:
    """Result of detaching a banned member from one team."""

    team_id: UUID
    team_name: str
    event_id: UUID
    removed: bool
    error: str | None = None
    activity_error: str | None = None

    @property
    def fully_recorded(self) -> bool:
        return self.removed and self.activity_error is None


@dataclass(frozen=True)
class BanResult:
    member_id: str
    events_unpublished: int
    teams_removed: int
    notifications_sent: int
    affected_member_ids: tuple[str, ...]
    event_outcomes: tuple[CascadeItemOutcome, ...] = field(default_factory=tuple)
    team_outcomes: tuple[TeamRemovalOutcome, ...] = field(default_factory=tuple)
    notification_error: str | None = None

    @property
    def failed_event_outcomes(self) -> list[CascadeItemOutcome]:
        return [outcome for outcome in self.event_outcomes if not outcome.fully_recorded]

    @property
    def failed_team_outcomes(self) -> list[TeamRemovalOutcome]:
        return [outcome for outcome in self.team_outcomes if not outcome.fully_recorded]


@dataclass(frozen=True)
class BanPreview:
    """What a ban would do, computed without writing anything."""

    member_id: str
    is_organizer: bool
    active_events: tuple[DependentEntity, ...]
    teams: tuple[TeamMembership, ...]
    affected_member_count: int


class ModerationService:
    """Permission-gated moderation actions against organizers and members."""

    def __init__(
        self,
        *,
        subjects: ModerationSubjectRepositoryPort,
        members: MemberRepositoryPort,
        scores: TrustScoreRepositoryPort,
        audit: AuditRepositoryPort,
        activity: ActivityRepositoryPort,
        permissions: PermissionEnforcer | None = None,
        policy: ModerationPolicy | None = None,
        now: NowCallable = _utc_now,
    ) -> None:
        self._subjects = subjects
        self._members = members
        self._scores = scores
        self._audit = audit
        self._activity = activity
        self._permissions = permissions or PermissionEnforcer()
        self._policy = policy or ModerationPolicy()
        self._now = now

    async def revoke(
        self,
        *,
        subject_id: str,
        reason: str,
        acting_admin: ActingAdmin,
    ) -> RevocationResult:
        """Revoke organizer status and unpublish every active event it owns."""

        reason = self._require_reason(reason)
        self._authorize(acting_admin, self._policy.revoke_permission, action="revoke")

        logger.info(
            "revocation_started subject_id=%s admin_id=%s",
            subject_id,
            acting_admin.admin_id,
        )
        subject = await self._load_subject(subject_id)
        dependents = await self._subjects.list_active_dependents(subject_id=subject_id)
        flag_before = await self._scores.get_flag_state(organizer_id=subject_id)
        logger.info(
            "revocation_dependents_loaded subject_id=%s count=%s",
            subject_id,
            len(dependents),
        )

        outcomes = await self._unpublish_dependents(
            dependents,
            note=f"Unpublished due to organizer status revocation: {reason}",
            audit_reason=f"Cascade effect from organizer revocation: {reason}",
            action="Hackathon unpublished due to organizer revocation",
            metadata={"organizer_id": subject_id, "reason": reason},
            acting_admin=acting_admin,
        )

        affected_count = sum(1 for outcome in outcomes if outcome.transitioned)
        notified_count = sum(
            outcome.participant_count for outcome in outcomes if outcome.transitioned
        )

        flag_reason = f"Organizer status revoked: {reason}"
        await self._scores.upsert_flag_state(
            organizer_id=subject_id,
            state=Flagged(reason=flag_reason, flagged_at=self._now()),
            flagged_by=acting_admin.admin_id,
        )

        before_state = {
            "display_name": subject.display_name,
            "total_events": subject.total_dependents,
            "active_events": len(dependents),
            "is_flagged": flag_before.is_flagged,
        }
        after_state = {
            "display_name": subject.display_name,
            "total_events": subject.total_dependents,
            "active_events": len(dependents) - affected_count,
            "is_flagged": True,
            "flag_reason": flag_reason,
            "events_unpublished": affected_count,
        }
        await self._audit.append_entry(
            AuditEntryCreateInput(
                action_type=AuditActionType.ORGANIZER_REVOKED,
                actor_id=acting_admin.admin_id,
                actor_email=acting_admin.email,
                target_type=AuditTargetType.ORGANIZER,
                target_id=subject_id,
                reason=reason,
                before_state=before_state,
                after_state=after_state,
            )
        )
        await self._activity.append_event(
            ActivityEventCreateInput(
                activity_type=ActivityType.ORGANIZER_REVOKED,
                actor_id=acting_admin.admin_id,
                actor_email=acting_admin.email,
                target_type=ActivityTargetType.ORGANIZER,
                target_id=subject_id,
                target_name=subject.display_name,
                action="Organizer status revoked",
                metadata={
                    "reason": reason,
                    "events_unpublished": affected_count,
                    "participants_affected": notified_count,
                    "failed_items": len(outcomes) - affected_count,
                },
                severity=ActivitySeverity.CRITICAL,
            )
        )

        logger.info(
            "revocation_completed subject_id=%s affected=%s notified=%s failed=%s",
            subject_id,
            affected_count,
            notified_count,
            len(outcomes) - affected_count,
        )
        return RevocationResult(
            subject_id=subject_id,
            affected_count=affected_count,
            notified_count=notified_count,
            success=True,
            message=f"Organizer status revoked. {affected_count} hackathons unpublished.",
            outcomes=tuple(outcomes),
        )

    async def flag(
        self,
        *,
        subject_id: str,
        reason: str,
        acting_admin: ActingAdmin,
    ) -> FlagChangeResult:
        """Flag an organizer so its submissions require manual review."""

        reason = self._require_reason(reason)
        self._authorize(acting_admin, self._policy.flag_permission, action="flag")
        subject = await self._load_subject(subject_id)

        current = await self._scores.get_flag_state(organizer_id=subject_id)
        if current.is_flagged:
            raise SubjectAlreadyFlaggedError(subject_id=subject_id)

        state = Flagged(reason=reason, flagged_at=self._now())
        await self._scores.upsert_flag_state(
            organizer_id=subject_id,
            state=state,
            flagged_by=acting_admin.admin_id,
        )
        await self._write_flag_records(
            subject=subject,
            reason=reason,
            acting_admin=acting_admin,
            action_type=AuditActionType.ORGANIZER_FLAGGED,
            before={"is_flagged": False, "flag_reason": None},
            after={"is_flagged": True, "flag_reason": reason},
            action="Organizer flagged for review",
            severity=ActivitySeverity.WARNING,
        )
        logger.info(
            "organizer_flagged subject_id=%s admin_id=%s",
            subject_id,
            acting_admin.admin_id,
        )
        return FlagChangeResult(subject_id=subject_id, state=state)

    async def unflag(
        self,
        *,
        subject_id: str,
        reason: str,
        acting_admin: ActingAdmin,
    ) -> FlagChangeResult:
        """Clear an organizer flag."""

        reason = self._require_reason(reason)
        self._authorize(acting_admin, self._policy.flag_permission, action="unflag")
        subject = await self._load_subject(subject_id)

        current = await self._scores.get_flag_state(organizer_id=subject_id)
        if not isinstance(current, Flagged):
            raise SubjectNotFlaggedError(subject_id=subject_id)

        await self._scores.upsert_flag_state(organizer_id=subject_id, state=NOT_FLAGGED)
        await self._write_flag_records(
            subject=subject,
            reason=reason,
            acting_admin=acting_admin,
            action_type=AuditActionType.ORGANIZER_UNFLAGGED,
            before={"is_flagged": True, "flag_reason": current.reason},
            after={"is_flagged": False, "flag_reason": None},
            action="Organizer flag removed",
            severity=ActivitySeverity.INFO,
        )
        logger.info(
            "organizer_unflagged subject_id=%s admin_id=%s",
            subject_id,
            acting_admin.admin_id,
        )
        return FlagChangeResult(subject_id=subject_id, state=NOT_FLAGGED)

    async def preview_ban(self, *, member_id: str, acting_admin: ActingAdmin) -> BanPreview:
        """Report the events, teams, and members a ban would touch."""

        self._authorize(acting_admin, self._policy.ban_permission, action="preview_ban")
        member = await self._load_member(member_id)
        dependents, memberships, plan = await self._plan_ban(member)
        return BanPreview(
            member_id=member_id,
            is_organizer=member.is_organizer,
            active_events=tuple(dependents),
            teams=tuple(memberships),
            affected_member_count=len(plan.members_to_notify),
        )

    async def ban_user(
        self,
        *,
        member_id: str,
        reason: str,
        acting_admin: ActingAdmin,
    ) -> BanResult:
        """Ban a member, unpublish the events it organizes, and detach it from teams.

        The status change, notification intent, and summary records always run;
        each event and team is isolated and reported on the result.
        """

        reason = self._require_reason(reason)
        self._authorize(acting_admin, self._policy.ban_permission, action="ban")

        logger.info("ban_started member_id=%s admin_id=%s", member_id, acting_admin.admin_id)
        member = await self._load_member(member_id)
        if member.moderation_status == MemberModerationStatus.BANNED:
            raise MemberAlreadyBannedError(member_id=member_id)
        dependents, memberships, plan = await self._plan_ban(member)
        logger.info(
            "ban_cascade_planned member_id=%s events=%s teams=%s affected=%s",
            member_id,
            len(plan.events_to_unpublish),
            len(plan.teams_to_leave),
            len(plan.members_to_notify),
        )

        await self._members.set_moderation_status(
            member_id=member_id,
            status=MemberModerationStatus.BANNED,
        )

        ban_metadata = {"banned_user_id": member_id, "ban_reason": reason}
        event_outcomes = await self._unpublish_dependents(
            [
                dependent
                for dependent in dependents
                if dependent.entity_id in plan.events_to_unpublish
            ],
            note=f"Unpublished due to organizer ban: {reason}",
            audit_reason=f"Cascade effect from user ban: {reason}",
            action="Hackathon unpublished due to organizer ban",
            metadata=ban_metadata,
            acting_admin=acting_admin,
        )

        team_outcomes: list[TeamRemovalOutcome] = []
        for membership in memberships:
            if membership.team_id in plan.teams_to_leave:
                team_outcomes.append(
                    await self._remove_from_team(
                        membership,
                        member_id=member_id,
                        reason=reason,
                        acting_admin=acting_admin,
                    )
                )

        notification_error: str | None = None
        if plan.should_notify:
            try:
                await self._activity.append_event(
                    ActivityEventCreateInput(
                        activity_type=ActivityType.MODERATION_ACTION,
                        actor_id=acting_admin.admin_id,
                        actor_email=acting_admin.email,
                        target_type=ActivityTargetType.USER,
                        target_id=member_id,
                        target_name=member.label,
                        action=(
                            f"Notifications sent to {len(plan.members_to_notify)} affected users"
                        ),
                        metadata={
                            "affected_user_ids": list(plan.members_to_notify),
                            "ban_reason": reason,
                        },
                        severity=ActivitySeverity.INFO,
                    )
                )
            except Exception as error:  # noqa: BLE001
                logger.warning("ban_notification_failed member_id=%s error=%s", member_id, error)
                notification_error = str(error)

        events_unpublished = sum(1 for outcome in event_outcomes if outcome.transitioned)
        teams_removed = sum(1 for outcome in team_outcomes if outcome.removed)
        notifications_sent = len(plan.members_to_notify) if notification_error is None else 0
        cascade_effects = {
            "hackathons_unpublished": events_unpublished,
            "teams_removed": teams_removed,
            "notifications_sent": notifications_sent,
        }

        await self._audit.append_entry(
            AuditEntryCreateInput(
                action_type=AuditActionType.USER_BANNED,
                actor_id=acting_admin.admin_id,
                actor_email=acting_admin.email,
                target_type=AuditTargetType.USER,
                target_id=member_id,
                reason=reason,
                before_state={
                    "is_organizer": member.is_organizer,
                    "moderation_status": member.moderation_status.value,
                },
                after_state={
                    "is_organizer": member.is_organizer,
                    "moderation_status": MemberModerationStatus.BANNED.value,
                    "cascade_effects": cascade_effects,
                },
            )
        )
        await self._activity.append_event(
            ActivityEventCreateInput(
                activity_type=ActivityType.MODERATION_ACTION,
                actor_id=acting_admin.admin_id,
                actor_email=acting_admin.email,
                target_type=ActivityTargetType.USER,
                target_id=member_id,
                target_name=member.label,
                action="User banned with cascade effects",
                metadata={"reason": reason, **cascade_effects},
                severity=ActivitySeverity.CRITICAL,
            )
        )

        logger.info(
            "ban_completed member_id=%s events=%s teams=%s notified=%s",
            member_id,
            events_unpublished,
            teams_removed,
            notifications_sent,
        )
        return BanResult(
            member_id=member_id,
            events_unpublished=events_unpublished,
            teams_removed=teams_removed,
            notifications_sent=notifications_sent,
            affected_member_ids=plan.members_to_notify,
            event_outcomes=tuple(event_outcomes),
            team_outcomes=tuple(team_outcomes),
            notification_error=notification_error,
        )

    def _authorize(
        self,
        acting_admin: ActingAdmin,
        permission: AdminPermission,
        *,
        action: str,
    ) -> None:
        decision = self._permissions.check_permission(acting_admin.role, permission)
        if not decision.allowed:
            logger.warning(
                "moderation_permission_denied action=%s admin_id=%s reason=%s",
                action,
                acting_admin.admin_id,
                decision.reason,
            )
            raise PermissionDeniedError(action=action, reason=decision.reason)

    @staticmethod
    def _require_reason(reason: str) -> str:
        stripped = reason.strip()
        if not stripped:
            raise InvalidModerationReasonError()
        return stripped

    async def _load_subject(self, subject_id: str) -> ModerationSubject:
        subject = await self._subjects.get_subject(subject_id=subject_id)
        if subject is None:
            raise SubjectNotFoundError(kind=SubjectKind.ORGANIZER, subject_id=subject_id)
        return subject

    async def _load_member(self, member_id: str) -> ModeratedMember:
        member = await self._members.get_member(member_id=member_id)
        if member is None:
            raise SubjectNotFoundError(kind=SubjectKind.USER, subject_id=member_id)
        return member

    async def _plan_ban(
        self,
        member: ModeratedMember,
    ) -> tuple[list[DependentEntity], list[TeamMembership], BanCascadePlan]:
        dependents: list[DependentEntity] = []
        if member.organizer_id is not None:
            dependents = await self._subjects.list_active_dependents(
                subject_id=member.organizer_id
            )
        memberships = await self._members.list_team_memberships(member_id=member.member_id)
        team_ids = tuple(membership.team_id for membership in memberships)
        event_ids = tuple(dependent.entity_id for dependent in dependents)
        affected = await self._members.list_affected_member_ids(
            member_id=member.member_id,
            team_ids=team_ids,
            event_ids=event_ids,
        )
        plan = plan_ban_cascade(
            BanCascadeInput(
                member_id=member.member_id,
                is_organizer=member.is_organizer,
                active_event_ids=event_ids,
                team_ids=team_ids,
                affected_member_ids=tuple(affected),
            )
        )
        return dependents, memberships, plan

    async def _remove_from_team(
        self,
        membership: TeamMembership,
        *,
        member_id: str,
        reason: str,
        acting_admin: ActingAdmin,
    ) -> TeamRemovalOutcome:
        outcome = TeamRemovalOutcome(
            team_id=membership.team_id,
            team_name=membership.team_name,
            event_id=membership.event_id,
            removed=False,
        )
        try:
            await self._members.remove_from_team(member_id=member_id, team_id=membership.team_id)
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "ban_team_removal_failed team_id=%s error=%s",
                membership.team_id,
                error,
            )
            return replace(outcome, error=str(error))

        outcome = replace(outcome, removed=True)
        try:
            await self._activity.append_event(
                ActivityEventCreateInput(
                    activity_type=ActivityType.MODERATION_ACTION,
                    actor_id=acting_admin.admin_id,
                    actor_email=acting_admin.email,
                    target_type=ActivityTargetType.TEAM,
                    target_id=str(membership.team_id),
                    target_name=membership.team_name,
                    action="User removed from team due to ban",
                    metadata={
                        "banned_user_id": member_id,
                        "ban_reason": reason,
                        "hackathon_id": str(membership.event_id),
                    },
                    severity=ActivitySeverity.WARNING,
                )
            )
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "ban_team_activity_failed team_id=%s error=%s",
                membership.team_id,
                error,
            )
            outcome = replace(outcome, activity_error=str(error))
        return outcome

    async def _unpublish_dependents(
        self,
        dependents: list[DependentEntity],
        *,
        note: str,
        audit_reason: str,
        action: str,
        metadata: dict[str, Any],
        acting_admin: ActingAdmin,
    ) -> list[CascadeItemOutcome]:
        semaphore = asyncio.Semaphore(self._policy.cascade_max_concurrency)
        transitions = await asyncio.gather(
            *(
                self._transition(dependent, note=note, semaphore=semaphore)
                for dependent in dependents
            )
        )

        outcomes: list[CascadeItemOutcome] = []
        for outcome in transitions:
            if outcome.transitioned:
                outcome = await self._record_cascade_item(
                    outcome,
                    audit_reason=audit_reason,
                    action=action,
                    metadata=metadata,
                    acting_admin=acting_admin,
                )
            outcomes.append(outcome)
        return outcomes

    async def _transition(
        self,
        dependent: DependentEntity,
        *,
        note: str,
        semaphore: asyncio.Semaphore,
    ) -> CascadeItemOutcome:
        async with semaphore:
            try:
                transition = await self._subjects.transition_entity_state(
                    entity_id=dependent.entity_id,
                    new_state=UNPUBLISHED_STATE,
                    note=note,
                )
            except Exception as error:  # noqa: BLE001
                logger.warning(
                    "cascade_transition_failed entity_id=%s error=%s",
                    dependent.entity_id,
                    error,
                )
                return CascadeItemOutcome(
                    entity_id=dependent.entity_id,
                    entity_name=dependent.name,
                    transitioned=False,
                    participant_count=dependent.participant_count,
                    error=str(error),
                )

        return CascadeItemOutcome(
            entity_id=dependent.entity_id,
            entity_name=dependent.name,
            transitioned=True,
            participant_count=dependent.participant_count,
            before=transition.before,
            after=transition.after,
        )

    async def _record_cascade_item(
        self,
        outcome: CascadeItemOutcome,
        *,
        audit_reason: str,
        action: str,
        metadata: dict[str, Any],
        acting_admin: ActingAdmin,
    ) -> CascadeItemOutcome:
        diff = compute_diff(outcome.before, outcome.after)
        entity_id = str(outcome.entity_id)

        try:
            await self._audit.append_entry(
                AuditEntryCreateInput(
                    action_type=AuditActionType.EVENT_UNPUBLISHED,
                    actor_id=acting_admin.admin_id,
                    actor_email=acting_admin.email,
                    target_type=AuditTargetType.EVENT,
                    target_id=entity_id,
                    reason=audit_reason,
                    before_state=outcome.before,
                    after_state=outcome.after,
                )
            )
        except Exception as error:  # noqa: BLE001
            logger.warning("cascade_audit_failed entity_id=%s error=%s", entity_id, error)
            outcome = replace(outcome, audit_error=str(error))

        try:
            await self._activity.append_event(
                ActivityEventCreateInput(
                    activity_type=ActivityType.MODERATION_ACTION,
                    actor_id=acting_admin.admin_id,
                    actor_email=acting_admin.email,
                    target_type=ActivityTargetType.EVENT,
                    target_id=entity_id,
                    target_name=outcome.entity_name,
                    action=action,
                    metadata={**metadata, "changed_fields": diff.changed_fields},
                    severity=ActivitySeverity.WARNING,
                )
            )
        except Exception as error:  # noqa: BLE001
            logger.warning("cascade_activity_failed entity_id=%s error=%s", entity_id, error)
            outcome = replace(outcome, activity_error=str(error))

        return outcome

    async def _write_flag_records(
        self,
        *,
        subject: ModerationSubject,
        reason: str,
        acting_admin: ActingAdmin,
        action_type: AuditActionType,
        before: dict[str, Any],
        after: dict[str, Any],
        action: str,
        severity: ActivitySeverity,
    ) -> None:
        await self._audit.append_entry(
            AuditEntryCreateInput(
                action_type=action_type,
                actor_id=acting_admin.admin_id,
                actor_email=acting_admin.email,
                target_type=AuditTargetType.ORGANIZER,
                target_id=subject.subject_id,
                reason=reason,
                before_state=before,
                after_state=after,
            )
        )
        await self._activity.append_event(
            ActivityEventCreateInput(
                activity_type=ActivityType.MODERATION_ACTION,
                actor_id=acting_admin.admin_id,
                actor_email=acting_admin.email,
                target_type=ActivityTargetType.ORGANIZER,
                target_id=subject.subject_id,
                target_name=subject.display_name,
                action=action,
                metadata={"reason": reason},
                severity=severity,
            )
        )
