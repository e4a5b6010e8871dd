# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas - API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from liftout.models.domain import AccessLevel, Team, TeamMembership
from liftout.services.readiness import ReadinessProgress, ReadinessReport, Requirement


# ── Team Schemas ──

class TeamCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    industry: Optional[str] = Field(default=None, max_length=255)
    creator_role: Optional[str] = Field(default="Team Lead", max_length=255)


class TeamUpdateRequest(BaseModel):
    """Partial update model for PATCH /api/v1/teams/{team_id}."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    industry: Optional[str] = Field(default=None, max_length=255)


class TeamResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    industry: Optional[str] = None
    size: int
    posting_status: str
    posted_at: Optional[datetime] = None
    unposted_at: Optional[datetime] = None
    availability_status: Optional[str] = None
    created_by: str
    created_at: datetime

    @classmethod
    def from_team(cls, team: Team) -> "TeamResponse":
        return cls(**{**team.model_dump(), "posting_status": team.posting_status.value})


# ── Readiness / Posting Schemas ──

class ReadinessResponse(BaseModel):
    team_id: str
    team_name: str
    posting_status: str
    can_post: bool
    progress: ReadinessProgress
    requirements: list[Requirement]
    next_step: str

    @classmethod
    def build(cls, team: Team, report: ReadinessReport) -> "ReadinessResponse":
        return cls(
            team_id=team.id,
            team_name=team.name,
            posting_status=team.posting_status.value,
            **report.model_dump(),
        )


class PostingResponse(BaseModel):
    success: bool = True
    changed: bool
    message: str
    team: TeamResponse


# ── Membership Schemas ──

class MemberResponse(BaseModel):
    id: str
    team_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    access: str
    is_admin: bool
    is_lead: bool
    status: str
    invited_at: Optional[datetime] = None
    joined_at: Optional[datetime] = None

    @classmethod
    def from_membership(cls, m: TeamMembership) -> "MemberResponse":
        return cls(
            id=m.id,
            team_id=m.team_id,
            user_id=m.user_id,
            email=m.email,
            role=m.role,
            access=m.access.value,
            is_admin=m.is_admin,
            is_lead=m.is_lead,
            status=m.status.value,
            invited_at=m.invited_at,
            joined_at=m.joined_at,
        )


class MemberUpdateRequest(BaseModel):
    role: Optional[str] = Field(default=None, min_length=1, max_length=255)
    is_lead: Optional[bool] = None


class MemberRemovedResponse(BaseModel):
    success: bool = True
    message: str
    member: MemberResponse


# ── Invitation Schemas ──

class InvitationCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    role: Optional[str] = Field(default=None, max_length=255)
    access: AccessLevel = AccessLevel.MEMBER

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("email must be a valid e-mail address")
        return v


class InvitationResponse(BaseModel):
    id: str
    team_id: str
    email: Optional[str] = None
    role: Optional[str] = None
    access: str
    status: str
    invited_by: Optional[str] = None
    invited_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_membership(cls, m: TeamMembership) -> "InvitationResponse":
        return cls(
            id=m.id,
            team_id=m.team_id,
            email=m.email,
            role=m.role,
            access=m.access.value,
            status=m.status.value,
            invited_by=m.invited_by,
            invited_at=m.invited_at,
            expires_at=m.invitation_expires_at,
        )


class ResendResponse(BaseModel):
    success: bool = True
    membership_id: str
    expires_at: datetime


class InvitationRespondRequest(BaseModel):
    action: str = Field(..., pattern="^(accept|decline)$")


class InvitationRespondResponse(BaseModel):
    success: bool = True
    message: str
    membership: MemberResponse


# ── Profile Schemas ──

class ProfileUpdateRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=320)
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=5000)


# ── Errors ──

class ErrorResponse(BaseModel):
    error: str
    message: str
    request_id: Optional[str] = None
    details: Optional[dict[str, Any]] = None
