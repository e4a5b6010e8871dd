# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Posting readiness - pure computation, no side effects.

Every requirement is evaluated on every call so the caller sees everything
outstanding at once.
"""

import math
from typing import Any, Optional

from pydantic import BaseModel

from liftout.core.config import settings
from liftout.models.domain import MemberSnapshot, Team

READY_MESSAGE = "Your team is ready to post!"


class Requirement(BaseModel):
    id: str
    label: str
    description: str
    met: bool
    details: str
    priority: int
    current: Optional[int] = None
    required: Optional[int] = None
    incomplete_members: Optional[list[dict[str, Any]]] = None


class ReadinessProgress(BaseModel):
    met: int
    total: int
    percent: int


class ReadinessReport(BaseModel):
    can_post: bool
    progress: ReadinessProgress
    requirements: list[Requirement]
    next_step: str

    @property
    def unmet(self) -> list[Requirement]:
        return [r for r in self.requirements if not r.met]

    def requirement_dicts(self) -> list[dict[str, Any]]:
        return [r.model_dump() for r in self.requirements]


def is_profile_complete(snapshot: MemberSnapshot, min_bio_length: int) -> bool:
    profile = snapshot.profile
    if profile is None:
        return False
    has_name = bool(profile.first_name) and bool(profile.last_name)
    has_bio = bool(profile.bio) and len(profile.bio) >= min_bio_length
    return has_name and has_bio


def _describe_member(snapshot: MemberSnapshot) -> dict[str, Any]:
    profile = snapshot.profile
    name = profile.display_name if profile else ""
    return {
        "membership_id": snapshot.membership.id,
        "user_id": snapshot.membership.user_id,
        "name": name or "Unnamed",
        "email": (profile.email if profile else None) or snapshot.membership.email,
    }


def evaluate_readiness(
    team: Team,
    members: list[MemberSnapshot],
    min_members: Optional[int] = None,
    min_bio_length: Optional[int] = None,
    min_description_length: Optional[int] = None,
) -> ReadinessReport:
    """
    Build the posting checklist for a team snapshot.
    `members` must hold the ACTIVE memberships only.
    Deterministic: same snapshot in, same report out.
    """
    min_members = min_members if min_members is not None else settings.MIN_ACTIVE_MEMBERS
    min_bio_length = (
        min_bio_length if min_bio_length is not None else settings.MIN_BIO_LENGTH
    )
    min_description_length = (
        min_description_length
        if min_description_length is not None
        else settings.MIN_DESCRIPTION_LENGTH
    )

    active_count = len(members)
    incomplete = [m for m in members if not is_profile_complete(m, min_bio_length)]
    description_length = len(team.description or "")
    has_description = description_length >= min_description_length
    has_industry = bool(team.industry)
    has_lead = any(m.membership.is_lead for m in members)

    requirements = [
        Requirement(
            id="min_members",
            label=f"At least {min_members} team members",
            description=(
                f"Your team needs at least {min_members} members who have "
                "accepted their invitations."
            ),
            met=active_count >= min_members,
            current=active_count,
            required=min_members,
            details=f"{active_count} active member(s)",
            priority=1,
        ),
        Requirement(
            id="complete_profiles",
            label="All members have complete profiles",
            description=(
                "Each team member should have a name and bio "
                f"(at least {min_bio_length} characters)."
            ),
            met=not incomplete,
            current=active_count - len(incomplete),
            required=active_count,
            details=(
                f"{len(incomplete)} member(s) need to complete their profile"
                if incomplete
                else "All profiles complete"
            ),
            incomplete_members=[_describe_member(m) for m in incomplete],
            priority=2,
        ),
        Requirement(
            id="team_description",
            label="Team has a description",
            description=(
                f"Describe your team in at least {min_description_length} characters."
            ),
            met=has_description,
            current=description_length,
            required=min_description_length,
            details=(
                "Description provided"
                if has_description
                else f"Add a team description ({min_description_length}+ characters)"
            ),
            priority=3,
        ),
        Requirement(
            id="team_industry",
            label="Team industry specified",
            description="Select the industry your team operates in.",
            met=has_industry,
            details=team.industry or "No industry set",
            priority=4,
        ),
        Requirement(
            id="has_lead",
            label="Team has a designated lead",
            description="One team member must be designated as the team lead.",
            met=has_lead,
            details="Team lead assigned" if has_lead else "No team lead",
            priority=5,
        ),
    ]
    requirements.sort(key=lambda r: r.priority)

    met_count = sum(1 for r in requirements if r.met)
    total = len(requirements)
    can_post = met_count == total
    first_unmet = next((r for r in requirements if not r.met), None)

    return ReadinessReport(
        can_post=can_post,
        progress=ReadinessProgress(
            met=met_count,
            total=total,
            percent=math.floor(met_count / total * 100 + 0.5),
        ),
        requirements=requirements,
        next_step=READY_MESSAGE if first_unmet is None else first_unmet.label,
    )
