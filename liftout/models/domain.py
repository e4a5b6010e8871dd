# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models - pure data structures, NO FastAPI dependency.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PostingStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class AccessLevel(str, Enum):
    """Privilege tier of a membership. LEAD implies admin rights."""

    MEMBER = "member"
    ADMIN = "admin"
    LEAD = "lead"

    @property
    def is_admin(self) -> bool:
        return self in (AccessLevel.ADMIN, AccessLevel.LEAD)

    @property
    def is_lead(self) -> bool:
        return self is AccessLevel.LEAD


class Team(BaseModel):
    """A collective that can be posted for discovery by companies."""

    id: str
    name: str
    description: Optional[str] = None
    industry: Optional[str] = None
    size: int = 0
    posting_status: PostingStatus = PostingStatus.DRAFT
    posted_at: Optional[datetime] = None
    unposted_at: Optional[datetime] = None
    availability_status: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class TeamMembership(BaseModel):
    """One user's (or invitee's) relationship to one team."""

    id: str
    team_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    access: AccessLevel = AccessLevel.MEMBER
    status: MembershipStatus = MembershipStatus.PENDING
    invited_at: Optional[datetime] = None
    invitation_token: Optional[str] = None
    invitation_expires_at: Optional[datetime] = None
    invited_by: Optional[str] = None
    joined_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.access.is_admin

    @property
    def is_lead(self) -> bool:
        return self.access.is_lead

    def is_expired(self, now: datetime) -> bool:
        return (
            self.invitation_expires_at is not None
            and now > self.invitation_expires_at
        )


class UserProfile(BaseModel):
    """Minimal profile fields needed to judge completeness."""

    user_id: str
    email: Optional[str] = None
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class MemberSnapshot(BaseModel):
    """An active membership joined with its profile (evaluator input)."""

    membership: TeamMembership
    profile: Optional[UserProfile] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
