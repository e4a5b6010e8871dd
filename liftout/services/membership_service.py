# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Teams, memberships and member profiles.
Coordinates repository writes with authorization, audit and metrics.
"""

import uuid
from typing import Any, Callable, Optional

from liftout.core.config import settings
from liftout.core.errors import ForbiddenError, InvalidOperationError, NotFoundError
from liftout.core.logging import get_logger
from liftout.metrics.prometheus import MEMBERS_REMOVED, TEAMS_CREATED
from liftout.models.domain import (
    AccessLevel,
    MembershipStatus,
    Team,
    TeamMembership,
    UserProfile,
    utcnow,
)
from liftout.repositories.audit_repository import AuditRepository
from liftout.repositories.membership_repository import MembershipRepository
from liftout.services.access import require_team, require_team_admin

logger = get_logger(__name__)


class MembershipService:
    """Business logic for team records and their memberships."""

    def __init__(
        self,
        membership_repo: MembershipRepository,
        audit_repo: AuditRepository,
        clock: Callable[[], Any] = utcnow,
    ) -> None:
        self._repo = membership_repo
        self._audit = audit_repo
        self._clock = clock

    # ── Teams ──

    def create_team(
        self,
        creator_id: str,
        name: str,
        description: Optional[str] = None,
        industry: Optional[str] = None,
        creator_role: Optional[str] = "Team Lead",
    ) -> Team:
        """Create a draft team; the creator becomes its first active lead."""
        now = self._clock()
        team = Team(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            industry=industry,
            size=1,
            created_by=creator_id,
            created_at=now,
            updated_at=now,
        )
        profile = self._repo.get_profile(creator_id)
        creator = TeamMembership(
            id=str(uuid.uuid4()),
            team_id=team.id,
            user_id=creator_id,
            email=profile.email if profile else None,
            role=creator_role,
            access=AccessLevel.LEAD,
            status=MembershipStatus.ACTIVE,
            invited_at=now,
            joined_at=now,
        )
        self._repo.create_team(team, creator)

        TEAMS_CREATED.inc()
        self._audit.record_event("team_created", team.id, creator_id, {"name": name})
        logger.info("Team created: team=%s, creator=%s", team.id, creator_id)
        return team

    def get_team(self, team_id: str) -> Team:
        return require_team(self._repo, team_id)

    def update_team(self, team_id: str, actor_id: str, fields: dict[str, Any]) -> Team:
        """Edit name / description / industry. Creator, admins and leads only."""
        team = require_team(self._repo, team_id)
        require_team_admin(self._repo, team, actor_id, "edit this team")
        if not fields:
            return team
        updated = self._repo.update_team(team_id, {**fields, "updated_at": self._clock()})
        if updated is None:
            raise NotFoundError("Team not found", {"team_id": team_id})
        self._audit.record_event(
            "team_updated", team_id, actor_id, {"fields": sorted(fields)}
        )
        return updated

    # ── Memberships ──

    def list_members(
        self, team_id: str, status: Optional[MembershipStatus] = None
    ) -> list[TeamMembership]:
        require_team(self._repo, team_id)
        return self._repo.list_members(team_id, status)

    def get_membership(self, team_id: str, membership_id: str) -> TeamMembership:
        """Membership scoped to a team. Wrong team is reported as not found."""
        membership = self._repo.get_membership(membership_id)
        if membership is None or membership.team_id != team_id:
            raise NotFoundError("Member not found", {"membership_id": membership_id})
        return membership

    def update_role(
        self,
        team_id: str,
        membership_id: str,
        actor_id: str,
        role: Optional[str] = None,
        is_lead: Optional[bool] = None,
    ) -> TeamMembership:
        """Change a member's descriptive role and/or lead flag.

        Admin rights follow the lead flag: promoting to lead grants admin,
        demoting from lead drops back to plain member.
        """
        team = require_team(self._repo, team_id)
        require_team_admin(self._repo, team, actor_id, "update members of this team")

        membership = self.get_membership(team_id, membership_id)
        if membership.status != MembershipStatus.ACTIVE:
            raise NotFoundError("Member not found", {"membership_id": membership_id})

        changes: dict[str, Any] = {}
        if role is not None:
            changes["role"] = role
        if is_lead is not None:
            changes["access"] = AccessLevel.LEAD if is_lead else AccessLevel.MEMBER
        if not changes:
            return membership

        updated = self._repo.update_membership(membership_id, changes)
        if updated is None:
            raise NotFoundError("Member not found", {"membership_id": membership_id})
        self._audit.record_event(
            "member_updated",
            team_id,
            actor_id,
            {
                "membership_id": membership_id,
                "role": updated.role,
                "access": updated.access.value,
            },
        )
        logger.info(
            "Member updated: team=%s, membership=%s, access=%s",
            team_id, membership_id, updated.access.value,
        )
        return updated

    def remove_member(self, team_id: str, membership_id: str, actor_id: str) -> TeamMembership:
        """Soft-delete an active member, keeping the team at its minimum size."""
        team = require_team(self._repo, team_id)
        require_team_admin(self._repo, team, actor_id, "remove members of this team")
        floor = settings.MIN_ACTIVE_MEMBERS

        def guard(current: Team, target: TeamMembership, active_count: int) -> None:
            if active_count - 1 < floor:
                raise InvalidOperationError(
                    f"Cannot remove member. Team must have at least {floor} members.",
                    {"active_members": active_count, "required": floor},
                )
            if target.user_id is not None and target.user_id == current.created_by:
                raise InvalidOperationError("Cannot remove the team creator")

        removed = self._repo.deactivate_member(team_id, membership_id, guard)
        if removed is None:
            raise NotFoundError("Member not found", {"membership_id": membership_id})

        MEMBERS_REMOVED.inc()
        self._audit.record_event(
            "member_removed",
            team_id,
            actor_id,
            {"membership_id": membership_id, "user_id": removed.user_id},
        )
        logger.info("Member removed: team=%s, membership=%s", team_id, membership_id)
        return removed

    # ── Profiles ──

    def save_profile(
        self,
        user_id: str,
        actor_id: str,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> UserProfile:
        if user_id != actor_id:
            raise ForbiddenError("You can only edit your own profile")
        profile = UserProfile(
            user_id=user_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            bio=bio,
        )
        return self._repo.save_profile(profile)

    def get_profile(self, user_id: str) -> UserProfile:
        profile = self._repo.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found", {"user_id": user_id})
        return profile
