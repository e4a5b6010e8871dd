# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Team invitation lifecycle.

A pending membership carries an opaque token valid for INVITATION_TTL_DAYS.
Resending rotates the token (the old one stops working) and restarts the
validity window. Accepting consumes the token and activates the membership.
"""

import secrets
import uuid
from datetime import timedelta
from typing import Any, Callable, Optional

from liftout.core.config import settings
from liftout.core.errors import (
    ExpiredError,
    InvalidOperationError,
    InvalidStateError,
    NotFoundError,
)
from liftout.core.logging import get_logger
from liftout.metrics.prometheus import INVITATIONS_TOTAL
from liftout.models.domain import (
    AccessLevel,
    MembershipStatus,
    TeamMembership,
    utcnow,
)
from liftout.repositories.audit_repository import AuditRepository
from liftout.repositories.membership_repository import MembershipRepository
from liftout.services.access import require_team, require_team_admin
from liftout.services.notification_client import NotificationClient

logger = get_logger(__name__)

VALID_RESPONSES = ("accept", "decline")


def new_invitation_token() -> str:
    return secrets.token_urlsafe(32)


class InvitationService:
    """Business logic for issuing, resending and answering invitations."""

    def __init__(
        self,
        membership_repo: MembershipRepository,
        audit_repo: AuditRepository,
        notification_client: NotificationClient,
        clock: Callable[[], Any] = utcnow,
    ) -> None:
        self._repo = membership_repo
        self._audit = audit_repo
        self._notifications = notification_client
        self._clock = clock

    def _expiry_from(self, now):
        return now + timedelta(days=settings.INVITATION_TTL_DAYS)

    def _load_pending(self, membership_id: str) -> TeamMembership:
        membership = self._repo.get_membership(membership_id)
        if membership is None:
            raise NotFoundError("Invitation not found", {"membership_id": membership_id})
        if membership.status != MembershipStatus.PENDING:
            raise InvalidStateError(
                "This invitation has already been accepted or is no longer pending",
                {"status": membership.status.value},
            )
        return membership

    # ── Commands ──

    def create_invitation(
        self,
        team_id: str,
        invitee_email: str,
        invited_by: str,
        role: Optional[str] = None,
        access: AccessLevel = AccessLevel.MEMBER,
    ) -> TeamMembership:
        """Issue a pending membership with a fresh token."""
        team = require_team(self._repo, team_id)
        require_team_admin(self._repo, team, invited_by, "invite members to this team")

        if access is AccessLevel.LEAD:
            # leads are designated after joining, through the member role update
            access = AccessLevel.ADMIN

        now = self._clock()
        profile = self._repo.find_profile_by_email(invitee_email)
        membership = TeamMembership(
            id=str(uuid.uuid4()),
            team_id=team_id,
            user_id=profile.user_id if profile else None,
            email=invitee_email,
            role=role,
            access=access,
            status=MembershipStatus.PENDING,
            invited_at=now,
            invitation_token=new_invitation_token(),
            invitation_expires_at=self._expiry_from(now),
            invited_by=invited_by,
        )

        def check(existing: Optional[TeamMembership]) -> None:
            if existing is not None:
                raise InvalidStateError(
                    f"{invitee_email} is already a member or has a pending invitation",
                    {"membership_id": existing.id, "status": existing.status.value},
                )

        self._repo.add_membership(membership, check)

        INVITATIONS_TOTAL.labels(action="created").inc()
        self._audit.record_event(
            "invitation_created",
            team_id,
            invited_by,
            {
                "membership_id": membership.id,
                "invitee_email": invitee_email,
                "expires_at": membership.invitation_expires_at.isoformat(),
            },
        )
        self._notifications.send_invitation(
            email=invitee_email,
            team_name=team.name,
            token=membership.invitation_token,
            expires_at=membership.invitation_expires_at.isoformat(),
        )
        logger.info("Invitation created: team=%s, membership=%s", team_id, membership.id)
        return membership

    def resend_invitation(self, membership_id: str, requesting_user_id: str) -> dict[str, Any]:
        """Rotate the token and restart the validity window."""
        membership = self._load_pending(membership_id)
        team = require_team(self._repo, membership.team_id)
        require_team_admin(
            self._repo, team, requesting_user_id, "resend this invitation",
            invitation=membership,
        )

        now = self._clock()
        expires_at = self._expiry_from(now)
        previous = membership.invitation_expires_at
        if previous is not None and expires_at <= previous:
            # a resend always pushes the deadline forward
            expires_at = previous + timedelta(microseconds=1)
        updated = self._repo.rotate_invitation(
            membership_id, new_invitation_token(), expires_at, now
        )
        if updated is None:
            # accepted or cancelled between the read and the write
            raise InvalidStateError(
                "This invitation has already been accepted or is no longer pending"
            )

        INVITATIONS_TOTAL.labels(action="resent").inc()
        self._audit.record_event(
            "invitation_resent",
            team.id,
            requesting_user_id,
            {
                "membership_id": membership_id,
                "invitee_email": updated.email,
                "expires_at": expires_at.isoformat(),
            },
        )
        logger.info(
            "Invitation resent: team=%s, membership=%s, expires=%s",
            team.id, membership_id, expires_at.isoformat(),
        )
        if updated.email:
            self._notifications.send_invitation(
                email=updated.email,
                team_name=team.name,
                token=updated.invitation_token,
                expires_at=expires_at.isoformat(),
                resend=True,
            )
        return {"membership_id": membership_id, "expires_at": expires_at}

    def cancel_invitation(self, membership_id: str, actor_id: str) -> None:
        membership = self._load_pending(membership_id)
        team = require_team(self._repo, membership.team_id)
        require_team_admin(
            self._repo, team, actor_id, "cancel this invitation", invitation=membership
        )
        if not self._repo.delete_membership(membership_id):
            raise NotFoundError("Invitation not found", {"membership_id": membership_id})

        INVITATIONS_TOTAL.labels(action="cancelled").inc()
        self._audit.record_event(
            "invitation_cancelled",
            team.id,
            actor_id,
            {"membership_id": membership_id, "invitee_email": membership.email},
        )
        logger.info("Invitation cancelled: team=%s, membership=%s", team.id, membership_id)

    def respond(self, token: str, actor_id: str, action: str) -> TeamMembership:
        """Accept or decline the invitation identified by `token`."""
        if action not in VALID_RESPONSES:
            raise InvalidOperationError(
                f"Invalid action. Must be one of {VALID_RESPONSES}"
            )
        membership = self._live_invitation(token)

        if action == "decline":
            if not self._repo.delete_membership(membership.id):
                raise InvalidStateError("Invitation is no longer pending")
            INVITATIONS_TOTAL.labels(action="declined").inc()
            self._audit.record_event(
                "invitation_declined",
                membership.team_id,
                actor_id,
                {"membership_id": membership.id},
            )
            logger.info("Invitation declined: membership=%s", membership.id)
            return membership.model_copy(update={"status": MembershipStatus.INACTIVE})

        def check(invitation: TeamMembership, current: Optional[TeamMembership]) -> None:
            if current is not None:
                raise InvalidStateError(
                    "You are already an active member of this team",
                    {"team_id": invitation.team_id, "membership_id": current.id},
                )

        accepted = self._repo.activate_invitation(token, actor_id, self._clock(), check)
        if accepted is None:
            # rotated, consumed or expired between the read and the write
            raise InvalidStateError("Invitation is no longer valid")
        INVITATIONS_TOTAL.labels(action="accepted").inc()
        self._audit.record_event(
            "invitation_accepted",
            accepted.team_id,
            actor_id,
            {"membership_id": accepted.id},
        )
        logger.info(
            "Invitation accepted: team=%s, membership=%s, user=%s",
            accepted.team_id, accepted.id, actor_id,
        )
        return accepted

    # ── Queries ──

    def _live_invitation(self, token: str) -> TeamMembership:
        membership = self._repo.find_membership_by_token(token)
        if membership is None or membership.status != MembershipStatus.PENDING:
            raise NotFoundError("Invitation not found or already used")
        if membership.is_expired(self._clock()):
            raise ExpiredError(
                "This invitation has expired",
                {"expired_at": membership.invitation_expires_at.isoformat()},
            )
        return membership

    def get_invitation(self, token: str) -> dict[str, Any]:
        """Public lookup of a live invitation by token."""
        membership = self._live_invitation(token)
        team = require_team(self._repo, membership.team_id)

        inviter_name = "Team Member"
        if membership.invited_by:
            inviter = self._repo.get_profile(membership.invited_by)
            if inviter is not None:
                inviter_name = inviter.display_name or inviter.email or inviter_name

        return {
            "id": membership.id,
            "team_id": team.id,
            "team_name": team.name,
            "inviter_name": inviter_name,
            "invitee_email": membership.email,
            "role": membership.role,
            "access": membership.access.value,
            "expires_at": membership.invitation_expires_at,
            "status": membership.status.value,
        }

    def list_invitations(self, team_id: str, actor_id: str) -> list[dict[str, Any]]:
        team = require_team(self._repo, team_id)
        require_team_admin(self._repo, team, actor_id, "view invitations of this team")
        now = self._clock()
        return [
            {
                "id": m.id,
                "email": m.email,
                "role": m.role,
                "access": m.access.value,
                "invited_by": m.invited_by,
                "invited_at": m.invited_at,
                "expires_at": m.invitation_expires_at,
                "expired": m.is_expired(now),
            }
            for m in self._repo.list_members(team_id, MembershipStatus.PENDING)
        ]
