# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Teams, posting readiness, posting transitions, members.
Thin HTTP layer - delegates ALL logic to the services. Domain errors are
rendered by the LiftoutError handler registered in main.py.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from liftout.core.dependencies import (
    get_actor_id,
    get_audit_repo,
    get_membership_service,
    get_posting_service,
)
from liftout.models.domain import MembershipStatus
from liftout.repositories.audit_repository import AuditRepository
from liftout.schemas.team import (
    MemberRemovedResponse,
    MemberResponse,
    MemberUpdateRequest,
    PostingResponse,
    ReadinessResponse,
    TeamCreateRequest,
    TeamResponse,
    TeamUpdateRequest,
)
from liftout.services.membership_service import MembershipService
from liftout.services.posting_service import (
    ALREADY_DRAFT_MESSAGE,
    ALREADY_POSTED_MESSAGE,
    POSTED_MESSAGE,
    UNPOSTED_MESSAGE,
    PostingService,
)

router = APIRouter(prefix="/api/v1", tags=["Teams"])


# ── Teams ──

@router.post("/teams", status_code=201, response_model=TeamResponse)
def create_team(
    payload: TeamCreateRequest,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
):
    """Create a draft team; the caller becomes its lead."""
    team = service.create_team(
        creator_id=actor_id,
        name=payload.name,
        description=payload.description,
        industry=payload.industry,
        creator_role=payload.creator_role,
    )
    return TeamResponse.from_team(team)


@router.get("/teams/{team_id}", response_model=TeamResponse)
def get_team(
    team_id: str,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
):
    return TeamResponse.from_team(service.get_team(team_id))


@router.patch("/teams/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: str,
    payload: TeamUpdateRequest,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
):
    """Edit name, description or industry."""
    fields = payload.model_dump(exclude_unset=True)
    return TeamResponse.from_team(service.update_team(team_id, actor_id, fields))


# ── Posting ──

@router.get("/teams/{team_id}/posting-requirements", response_model=ReadinessResponse)
def get_posting_requirements(
    team_id: str,
    actor_id: str = Depends(get_actor_id),
    service: PostingService = Depends(get_posting_service),
):
    """Checklist of everything a team needs before it can be posted."""
    team, report = service.readiness(team_id)
    return ReadinessResponse.build(team, report)


@router.post("/teams/{team_id}/post", response_model=PostingResponse)
def post_team(
    team_id: str,
    actor_id: str = Depends(get_actor_id),
    service: PostingService = Depends(get_posting_service),
):
    """Make the team visible to companies."""
    team, changed = service.post(team_id, actor_id)
    return PostingResponse(
        changed=changed,
        message=POSTED_MESSAGE if changed else ALREADY_POSTED_MESSAGE,
        team=TeamResponse.from_team(team),
    )


@router.post("/teams/{team_id}/unpost", response_model=PostingResponse)
def unpost_team(
    team_id: str,
    actor_id: str = Depends(get_actor_id),
    service: PostingService = Depends(get_posting_service),
):
    """Withdraw the team from company discovery."""
    team, changed = service.unpost(team_id, actor_id)
    return PostingResponse(
        changed=changed,
        message=UNPOSTED_MESSAGE if changed else ALREADY_DRAFT_MESSAGE,
        team=TeamResponse.from_team(team),
    )


# ── Members ──

@router.get("/teams/{team_id}/members", response_model=list[MemberResponse])
def list_members(
    team_id: str,
    status: Optional[MembershipStatus] = Query(default=None),
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
):
    return [MemberResponse.from_membership(m) for m in service.list_members(team_id, status)]


@router.patch("/teams/{team_id}/members/{membership_id}", response_model=MemberResponse)
def update_member(
    team_id: str,
    membership_id: str,
    payload: MemberUpdateRequest,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
):
    """Change a member's role text or lead designation."""
    updated = service.update_role(
        team_id,
        membership_id,
        actor_id,
        role=payload.role,
        is_lead=payload.is_lead,
    )
    return MemberResponse.from_membership(updated)


@router.delete(
    "/teams/{team_id}/members/{membership_id}", response_model=MemberRemovedResponse
)
def remove_member(
    team_id: str,
    membership_id: str,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
):
    """Remove (soft-delete) a member from the team."""
    removed = service.remove_member(team_id, membership_id, actor_id)
    return MemberRemovedResponse(
        message="Member has been removed from the team",
        member=MemberResponse.from_membership(removed),
    )


# ── History ──

@router.get("/teams/{team_id}/history")
def get_team_history(
    team_id: str,
    event_type: Optional[str] = None,
    limit: int = Query(default=None, ge=1, description="Max results"),
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service),
    audit_repo: AuditRepository = Depends(get_audit_repo),
):
    """Audit log of lifecycle events for one team."""
    service.get_team(team_id)
    return audit_repo.get_all(team_id=team_id, event_type=event_type, limit=limit)
