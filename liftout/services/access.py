# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Team-level authorization checks shared by every mutating operation.
"""

from typing import Optional

from liftout.core.errors import ForbiddenError, NotFoundError
from liftout.models.domain import Team, TeamMembership
from liftout.repositories.membership_repository import MembershipRepository


def require_team(repo: MembershipRepository, team_id: str) -> Team:
    team = repo.get_team(team_id)
    if team is None:
        raise NotFoundError("Team not found", {"team_id": team_id})
    return team


def is_team_admin(repo: MembershipRepository, team: Team, user_id: str) -> bool:
    """Creator, or an active membership with admin (or lead) access."""
    if team.created_by == user_id:
        return True
    membership = repo.find_active_membership(team.id, user_id)
    return membership is not None and membership.is_admin


def require_team_admin(
    repo: MembershipRepository,
    team: Team,
    user_id: str,
    action: str,
    invitation: Optional[TeamMembership] = None,
) -> None:
    """Raise ForbiddenError unless `user_id` may perform `action` on the team.

    When `invitation` is given, the user who issued that invitation is also allowed.
    """
    if invitation is not None and invitation.invited_by == user_id:
        return
    if not is_team_admin(repo, team, user_id):
        raise ForbiddenError(
            f"Not authorized to {action}",
            {"team_id": team.id},
        )
