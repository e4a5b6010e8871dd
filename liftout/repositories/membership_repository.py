# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Team, membership and profile data access.

`MembershipRepository` is the storage contract the services depend on.
`InMemoryMembershipRepository` is the dict-backed implementation used by
tests and by local runs without DATABASE_URL. The SQL implementation lives
in sql_membership_repository.py.

NO business rules here. Operations that must read-check-write as a unit
(post, remove, invite, accept) take a callable from the service and run
it under the per-team lock.
"""

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Optional

from liftout.models.domain import (
    MemberSnapshot,
    MembershipStatus,
    PostingStatus,
    Team,
    TeamMembership,
    UserProfile,
)

# check(team, active_members) -> raises to abort the transition
PostCheck = Callable[[Team, list[MemberSnapshot]], None]
# guard(team, target, active_count) -> raises to abort the removal
RemovalGuard = Callable[[Team, TeamMembership, int], None]
# check(existing_open_membership_for_email) -> raises to abort the insert
InviteCheck = Callable[[Optional[TeamMembership]], None]
# check(invitation, accepting_users_active_membership) -> raises to abort the accept
AcceptCheck = Callable[[TeamMembership, Optional[TeamMembership]], None]


class MembershipRepository(ABC):
    """Storage contract for teams, memberships and profiles."""

    # ── Teams ──

    @abstractmethod
    def create_team(self, team: Team, creator: TeamMembership) -> Team: ...

    @abstractmethod
    def get_team(self, team_id: str) -> Optional[Team]: ...

    @abstractmethod
    def update_team(self, team_id: str, fields: dict[str, Any]) -> Optional[Team]: ...

    @abstractmethod
    def count_teams(self) -> int: ...

    @abstractmethod
    def post_team(
        self, team_id: str, check: PostCheck, now: datetime
    ) -> tuple[Optional[Team], bool]:
        """Atomically move draft -> posted. Returns (team, changed)."""

    @abstractmethod
    def unpost_team(self, team_id: str, now: datetime) -> tuple[Optional[Team], bool]:
        """Atomically move posted -> draft. Returns (team, changed)."""

    # ── Memberships ──

    @abstractmethod
    def add_membership(
        self, membership: TeamMembership, check: Optional[InviteCheck] = None
    ) -> TeamMembership:
        """Insert a membership. `check` sees the open membership for the same
        e-mail, if any, inside the same per-team critical section."""

    @abstractmethod
    def get_membership(self, membership_id: str) -> Optional[TeamMembership]: ...

    @abstractmethod
    def list_members(
        self, team_id: str, status: Optional[MembershipStatus] = None
    ) -> list[TeamMembership]: ...

    @abstractmethod
    def get_active_members(self, team_id: str) -> list[MemberSnapshot]: ...

    @abstractmethod
    def find_active_membership(
        self, team_id: str, user_id: str
    ) -> Optional[TeamMembership]: ...

    @abstractmethod
    def find_open_membership(self, team_id: str, email: str) -> Optional[TeamMembership]:
        """Pending or active membership for an e-mail (case-insensitive)."""

    @abstractmethod
    def find_membership_by_token(self, token: str) -> Optional[TeamMembership]: ...

    @abstractmethod
    def update_membership(
        self, membership_id: str, fields: dict[str, Any]
    ) -> Optional[TeamMembership]: ...

    @abstractmethod
    def delete_membership(self, membership_id: str) -> bool: ...

    @abstractmethod
    def deactivate_member(
        self, team_id: str, membership_id: str, guard: RemovalGuard
    ) -> Optional[TeamMembership]:
        """Atomically set an active member inactive and shrink the team size."""

    @abstractmethod
    def rotate_invitation(
        self, membership_id: str, token: str, expires_at: datetime, now: datetime
    ) -> Optional[TeamMembership]:
        """Replace token and expiry, only while the membership is pending."""

    @abstractmethod
    def activate_invitation(
        self, token: str, user_id: str, now: datetime, check: AcceptCheck
    ) -> Optional[TeamMembership]:
        """Consume a live pending token, only while it is still current.

        `check` runs under the team lock with the invitation and the
        accepting user's existing active membership on that team.
        """

    # ── Profiles ──

    @abstractmethod
    def save_profile(self, profile: UserProfile) -> UserProfile: ...

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[UserProfile]: ...

    @abstractmethod
    def find_profile_by_email(self, email: str) -> Optional[UserProfile]: ...


class InMemoryMembershipRepository(MembershipRepository):
    """In-memory storage keyed by id, serialised per team.

    Two lock levels: a per-team RLock serialises read-check-write sequences
    on one team, and `_data_lock` guards the shared dicts themselves. Every
    write and every scan of a shared dict holds `_data_lock`; scans work on
    a copy so writers to other teams never change a dict mid-iteration.
    Lock order is always team lock, then `_data_lock`.
    """

    def __init__(self) -> None:
        self._teams: dict[str, Team] = {}
        self._memberships: dict[str, TeamMembership] = {}
        self._profiles: dict[str, UserProfile] = {}
        self._locks: dict[str, Any] = defaultdict(threading.RLock)
        self._registry_lock = threading.Lock()
        self._data_lock = threading.Lock()

    def _team_lock(self, team_id: str):
        with self._registry_lock:
            return self._locks[team_id]

    def _all_memberships(self) -> list[TeamMembership]:
        with self._data_lock:
            return list(self._memberships.values())

    def _put_membership(self, membership: TeamMembership) -> TeamMembership:
        with self._data_lock:
            self._memberships[membership.id] = membership
        return membership

    def _put_team(self, team: Team) -> Team:
        with self._data_lock:
            self._teams[team.id] = team
        return team

    def _snapshots(self, team_id: str) -> list[MemberSnapshot]:
        active = [
            m for m in self._all_memberships()
            if m.team_id == team_id and m.status == MembershipStatus.ACTIVE
        ]
        with self._data_lock:
            profiles = {m.user_id: self._profiles.get(m.user_id) for m in active if m.user_id}
        return [
            MemberSnapshot(membership=m, profile=profiles.get(m.user_id) if m.user_id else None)
            for m in active
        ]

    # ── Teams ──

    def create_team(self, team: Team, creator: TeamMembership) -> Team:
        with self._team_lock(team.id):
            self._put_team(team)
            self._put_membership(creator)
        return team

    def get_team(self, team_id: str) -> Optional[Team]:
        return self._teams.get(team_id)

    def update_team(self, team_id: str, fields: dict[str, Any]) -> Optional[Team]:
        with self._team_lock(team_id):
            team = self._teams.get(team_id)
            if team is None:
                return None
            return self._put_team(team.model_copy(update=fields))

    def count_teams(self) -> int:
        return len(self._teams)

    def post_team(
        self, team_id: str, check: PostCheck, now: datetime
    ) -> tuple[Optional[Team], bool]:
        with self._team_lock(team_id):
            team = self._teams.get(team_id)
            if team is None:
                return None, False
            if team.posting_status == PostingStatus.POSTED:
                return team, False
            check(team, self._snapshots(team_id))
            team = self._put_team(team.model_copy(update={
                "posting_status": PostingStatus.POSTED,
                "posted_at": now,
                "unposted_at": None,
                "availability_status": team.availability_status or "available",
                "updated_at": now,
            }))
            return team, True

    def unpost_team(self, team_id: str, now: datetime) -> tuple[Optional[Team], bool]:
        with self._team_lock(team_id):
            team = self._teams.get(team_id)
            if team is None:
                return None, False
            if team.posting_status != PostingStatus.POSTED:
                return team, False
            team = self._put_team(team.model_copy(update={
                "posting_status": PostingStatus.DRAFT,
                "unposted_at": now,
                "updated_at": now,
            }))
            return team, True

    # ── Memberships ──

    def add_membership(
        self, membership: TeamMembership, check: Optional[InviteCheck] = None
    ) -> TeamMembership:
        with self._team_lock(membership.team_id):
            if check is not None:
                existing = (
                    self.find_open_membership(membership.team_id, membership.email)
                    if membership.email
                    else None
                )
                check(existing)
            return self._put_membership(membership)

    def get_membership(self, membership_id: str) -> Optional[TeamMembership]:
        return self._memberships.get(membership_id)

    def list_members(
        self, team_id: str, status: Optional[MembershipStatus] = None
    ) -> list[TeamMembership]:
        return [
            m for m in self._all_memberships()
            if m.team_id == team_id and (status is None or m.status == status)
        ]

    def get_active_members(self, team_id: str) -> list[MemberSnapshot]:
        with self._team_lock(team_id):
            return self._snapshots(team_id)

    def find_active_membership(
        self, team_id: str, user_id: str
    ) -> Optional[TeamMembership]:
        for m in self._all_memberships():
            if (
                m.team_id == team_id
                and m.user_id == user_id
                and m.status == MembershipStatus.ACTIVE
            ):
                return m
        return None

    def find_open_membership(self, team_id: str, email: str) -> Optional[TeamMembership]:
        wanted = email.lower()
        for m in self._all_memberships():
            if (
                m.team_id == team_id
                and m.email
                and m.email.lower() == wanted
                and m.status in (MembershipStatus.PENDING, MembershipStatus.ACTIVE)
            ):
                return m
        return None

    def find_membership_by_token(self, token: str) -> Optional[TeamMembership]:
        for m in self._all_memberships():
            if m.invitation_token == token:
                return m
        return None

    def update_membership(
        self, membership_id: str, fields: dict[str, Any]
    ) -> Optional[TeamMembership]:
        current = self._memberships.get(membership_id)
        if current is None:
            return None
        with self._team_lock(current.team_id):
            current = self._memberships.get(membership_id)
            if current is None:
                return None
            return self._put_membership(current.model_copy(update=fields))

    def delete_membership(self, membership_id: str) -> bool:
        current = self._memberships.get(membership_id)
        if current is None:
            return False
        with self._team_lock(current.team_id):
            with self._data_lock:
                return self._memberships.pop(membership_id, None) is not None

    def deactivate_member(
        self, team_id: str, membership_id: str, guard: RemovalGuard
    ) -> Optional[TeamMembership]:
        with self._team_lock(team_id):
            team = self._teams.get(team_id)
            target = self._memberships.get(membership_id)
            if (
                team is None
                or target is None
                or target.team_id != team_id
                or target.status != MembershipStatus.ACTIVE
            ):
                return None
            guard(team, target, len(self._snapshots(team_id)))
            target = self._put_membership(
                target.model_copy(update={"status": MembershipStatus.INACTIVE})
            )
            self._put_team(team.model_copy(update={"size": max(team.size - 1, 0)}))
            return target

    def rotate_invitation(
        self, membership_id: str, token: str, expires_at: datetime, now: datetime
    ) -> Optional[TeamMembership]:
        current = self._memberships.get(membership_id)
        if current is None:
            return None
        with self._team_lock(current.team_id):
            current = self._memberships.get(membership_id)
            if current is None or current.status != MembershipStatus.PENDING:
                return None
            return self._put_membership(current.model_copy(update={
                "invitation_token": token,
                "invitation_expires_at": expires_at,
                "invited_at": now,
            }))

    def activate_invitation(
        self, token: str, user_id: str, now: datetime, check: AcceptCheck
    ) -> Optional[TeamMembership]:
        current = self.find_membership_by_token(token)
        if current is None:
            return None
        with self._team_lock(current.team_id):
            current = self._memberships.get(current.id)
            if (
                current is None
                or current.invitation_token != token
                or current.status != MembershipStatus.PENDING
                or current.is_expired(now)
            ):
                return None
            check(current, self.find_active_membership(current.team_id, user_id))
            updated = self._put_membership(current.model_copy(update={
                "status": MembershipStatus.ACTIVE,
                "user_id": user_id,
                "joined_at": now,
                "invitation_token": None,
            }))
            team = self._teams.get(current.team_id)
            if team is not None:
                self._put_team(team.model_copy(update={"size": team.size + 1}))
            return updated

    # ── Profiles ──

    def save_profile(self, profile: UserProfile) -> UserProfile:
        with self._data_lock:
            self._profiles[profile.user_id] = profile
        return profile

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)

    def find_profile_by_email(self, email: str) -> Optional[UserProfile]:
        wanted = email.lower()
        with self._data_lock:
            profiles = list(self._profiles.values())
        for p in profiles:
            if p.email and p.email.lower() == wanted:
                return p
        return None

    # ── Bulk / internal ──

    def clear(self) -> None:
        with self._data_lock:
            self._teams.clear()
            self._memberships.clear()
            self._profiles.clear()
