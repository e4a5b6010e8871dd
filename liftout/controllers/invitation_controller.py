# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Invitation and profile endpoints.
Thin HTTP layer - delegates ALL logic to InvitationService / MembershipService.
"""

from fastapi import APIRouter, Depends, Response

from liftout.core.dependencies import (
    get_actor_id,
    get_invitation_service,
    get_membership_service,
)
from liftout.models.domain import UserProfile
from liftout.schemas.team import (
    InvitationCreateRequest,
    InvitationRespondRequest,
    InvitationRespondResponse,
    InvitationResponse,
    MemberResponse,
    ProfileUpdateRequest,
    ResendResponse,
)
from liftout.services.invitation_service import InvitationService
from liftout.services.membership_service import MembershipService

router = APIRouter(prefix="/api/v1", tags=["Invitations"])


# ── Team invitations ──

@router.get("/teams/{team_id}/invitations")
def list_invitations(
    team_id: str,
    actor_id: str = Depends(get_actor_id),
    service: InvitationService = Depends(get_invitation_service),
):
    """Pending invitations of a team, flagged when expired."""
    return service.list_invitations(team_id, actor_id)


@router.post(
    "/teams/{team_id}/invitations", status_code=201, response_model=InvitationResponse
)
def create_invitation(
    team_id: str,
    payload: InvitationCreateRequest,
    actor_id: str = Depends(get_actor_id),
    service: InvitationService = Depends(get_invitation_service),
):
    """Invite someone to join the team by e-mail."""
    membership = service.create_invitation(
        team_id=team_id,
        invitee_email=payload.email,
        invited_by=actor_id,
        role=payload.role,
        access=payload.access,
    )
    return InvitationResponse.from_membership(membership)


@router.post("/invitations/{membership_id}/resend", response_model=ResendResponse)
def resend_invitation(
    membership_id: str,
    actor_id: str = Depends(get_actor_id),
    service: InvitationService = Depends(get_invitation_service),
):
    """Issue a fresh link and restart the validity window."""
    return ResendResponse(**service.resend_invitation(membership_id, actor_id))


@router.delete("/invitations/{membership_id}", status_code=204)
def cancel_invitation(
    membership_id: str,
    actor_id: str = Depends(get_actor_id),
    service: InvitationService = Depends(get_invitation_service),
):
    service.cancel_invitation(membership_id, actor_id)
    return Response(status_code=204)


# ── Invite links (token based) ──

@router.get("/invites/{token}")
def get_invitation(
    token: str,
    service: InvitationService = Depends(get_invitation_service),
):
    """Public lookup used by the invite landing page."""
    return {"success": True, "invitation": service.get_invitation(token)}


@router.post("/invites/{token}", response_model=InvitationRespondResponse)
def respond_to_invitation(
    token: str,
    payload: InvitationRespondRequest,
    actor_id: str = Depends(get_actor_id),
    service: InvitationService = Depends(get_invitation_service),
):
    """Accept or decline an invitation."""
    membership = service.respond(token, actor_id, payload.action)
    message = (
        "You've joined the team!" if payload.action == "accept" else "Invitation declined"
    )
    return InvitationRespondResponse(
        message=message,
        membership=MemberResponse.from_membership(membership),
    )


# ── Profiles ──

@router.put("/users/me/profile", response_model=UserProfile)
def save_my_profile(
    payload: ProfileUpdateRequest,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
):
    """Create or replace the caller's profile."""
    return service.save_profile(
        user_id=actor_id,
        actor_id=actor_id,
        **payload.model_dump(),
    )


@router.get("/users/me/profile", response_model=UserProfile)
def get_my_profile(
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
):
    return service.get_profile(actor_id)
