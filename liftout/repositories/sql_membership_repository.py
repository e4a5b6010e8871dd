# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Data-access layer for teams, memberships and profiles on a relational store.

Multi-step mutations run inside a single `engine.begin()` transaction and take
a row lock on the team (`SELECT ... FOR UPDATE`, ignored by SQLite, which
serialises writers itself).
"""
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine

from liftout.core.logging import get_logger
from liftout.models.domain import (
    MemberSnapshot,
    MembershipStatus,
    PostingStatus,
    Team,
    TeamMembership,
    UserProfile,
)
from liftout.repositories.membership_repository import (
    MembershipRepository,
    AcceptCheck,
    InviteCheck,
    PostCheck,
    RemovalGuard,
)
from liftout.repositories.tables import metadata, team_memberships, teams, user_profiles

logger = get_logger(__name__)

_TEAM_DATETIMES = ("posted_at", "unposted_at", "created_at", "updated_at")
_MEMBERSHIP_DATETIMES = ("invited_at", "invitation_expires_at", "joined_at")


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_to_team(row) -> Team:
    data = dict(row._mapping)
    for col in _TEAM_DATETIMES:
        data[col] = _aware(data[col])
    return Team.model_validate(data)


def _row_to_membership(row) -> TeamMembership:
    data = dict(row._mapping)
    for col in _MEMBERSHIP_DATETIMES:
        data[col] = _aware(data[col])
    return TeamMembership.model_validate(data)


def _row_to_profile(row) -> UserProfile:
    return UserProfile.model_validate(dict(row._mapping))


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    """Enum members -> their stored string values."""
    return {k: getattr(v, "value", v) for k, v in fields.items()}


class SqlMembershipRepository(MembershipRepository):
    def __init__(self, engine: Engine):
        self._engine = engine

    def create_schema(self) -> None:
        metadata.create_all(self._engine)
        logger.info("Schema ensured (teams, team_memberships, user_profiles)")

    def ping(self) -> None:
        with self._engine.connect() as conn:
            conn.execute(select(1))

    # ── Internal ───────────────────────────────────────────────────────

    def _lock_team(self, conn: Connection, team_id: str) -> Optional[Team]:
        row = conn.execute(
            select(teams).where(teams.c.id == team_id).with_for_update()
        ).fetchone()
        return _row_to_team(row) if row else None

    def _fetch_team(self, conn: Connection, team_id: str) -> Optional[Team]:
        row = conn.execute(select(teams).where(teams.c.id == team_id)).fetchone()
        return _row_to_team(row) if row else None

    def _fetch_membership(self, conn: Connection, membership_id: str) -> Optional[TeamMembership]:
        row = conn.execute(
            select(team_memberships).where(team_memberships.c.id == membership_id)
        ).fetchone()
        return _row_to_membership(row) if row else None

    def _active_snapshots(self, conn: Connection, team_id: str) -> list[MemberSnapshot]:
        stmt = (
            select(
                team_memberships,
                user_profiles.c.email.label("profile_email"),
                user_profiles.c.first_name,
                user_profiles.c.last_name,
                user_profiles.c.bio,
            )
            .select_from(
                team_memberships.outerjoin(
                    user_profiles, team_memberships.c.user_id == user_profiles.c.user_id
                )
            )
            .where(
                and_(
                    team_memberships.c.team_id == team_id,
                    team_memberships.c.status == MembershipStatus.ACTIVE.value,
                )
            )
            .order_by(team_memberships.c.joined_at, team_memberships.c.id)
        )
        snapshots: list[MemberSnapshot] = []
        for row in conn.execute(stmt).fetchall():
            m = row._mapping
            membership = TeamMembership.model_validate({
                **{c.name: m[c.name] for c in team_memberships.columns},
                **{c: _aware(m[c]) for c in _MEMBERSHIP_DATETIMES},
            })
            profile = None
            if membership.user_id and (
                m["first_name"] is not None
                or m["last_name"] is not None
                or m["bio"] is not None
                or m["profile_email"] is not None
            ):
                profile = UserProfile(
                    user_id=membership.user_id,
                    email=m["profile_email"],
                    first_name=m["first_name"],
                    last_name=m["last_name"],
                    bio=m["bio"],
                )
            snapshots.append(MemberSnapshot(membership=membership, profile=profile))
        return snapshots

    def _find_active(
        self, conn: Connection, team_id: str, user_id: str
    ) -> Optional[TeamMembership]:
        row = conn.execute(
            select(team_memberships).where(
                and_(
                    team_memberships.c.team_id == team_id,
                    team_memberships.c.user_id == user_id,
                    team_memberships.c.status == MembershipStatus.ACTIVE.value,
                )
            )
        ).first()
        return _row_to_membership(row) if row else None

    def _find_open(
        self, conn: Connection, team_id: str, email: str
    ) -> Optional[TeamMembership]:
        row = conn.execute(
            select(team_memberships).where(
                and_(
                    team_memberships.c.team_id == team_id,
                    func.lower(team_memberships.c.email) == email.lower(),
                    team_memberships.c.status.in_(
                        [MembershipStatus.PENDING.value, MembershipStatus.ACTIVE.value]
                    ),
                )
            )
        ).first()
        return _row_to_membership(row) if row else None

    def _count_active(self, conn: Connection, team_id: str) -> int:
        return conn.execute(
            select(func.count()).select_from(team_memberships).where(
                and_(
                    team_memberships.c.team_id == team_id,
                    team_memberships.c.status == MembershipStatus.ACTIVE.value,
                )
            )
        ).scalar_one()

    # ── Teams ──────────────────────────────────────────────────────────

    def create_team(self, team: Team, creator: TeamMembership) -> Team:
        with self._engine.begin() as conn:
            conn.execute(insert(teams).values(**_to_columns(team.model_dump())))
            conn.execute(
                insert(team_memberships).values(**_to_columns(creator.model_dump()))
            )
        return team

    def get_team(self, team_id: str) -> Optional[Team]:
        with self._engine.connect() as conn:
            return self._fetch_team(conn, team_id)

    def update_team(self, team_id: str, fields: dict[str, Any]) -> Optional[Team]:
        with self._engine.begin() as conn:
            if self._lock_team(conn, team_id) is None:
                return None
            if fields:
                conn.execute(
                    update(teams).where(teams.c.id == team_id).values(**_to_columns(fields))
                )
            return self._fetch_team(conn, team_id)

    def count_teams(self) -> int:
        with self._engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(teams)).scalar_one()

    def post_team(
        self, team_id: str, check: PostCheck, now: datetime
    ) -> tuple[Optional[Team], bool]:
        with self._engine.begin() as conn:
            team = self._lock_team(conn, team_id)
            if team is None:
                return None, False
            if team.posting_status == PostingStatus.POSTED:
                return team, False
            check(team, self._active_snapshots(conn, team_id))
            result = conn.execute(
                update(teams)
                .where(
                    and_(
                        teams.c.id == team_id,
                        teams.c.posting_status != PostingStatus.POSTED.value,
                    )
                )
                .values(
                    posting_status=PostingStatus.POSTED.value,
                    posted_at=now,
                    unposted_at=None,
                    availability_status=team.availability_status or "available",
                    updated_at=now,
                )
            )
            return self._fetch_team(conn, team_id), result.rowcount == 1

    def unpost_team(self, team_id: str, now: datetime) -> tuple[Optional[Team], bool]:
        with self._engine.begin() as conn:
            team = self._lock_team(conn, team_id)
            if team is None:
                return None, False
            result = conn.execute(
                update(teams)
                .where(
                    and_(
                        teams.c.id == team_id,
                        teams.c.posting_status == PostingStatus.POSTED.value,
                    )
                )
                .values(
                    posting_status=PostingStatus.DRAFT.value,
                    unposted_at=now,
                    updated_at=now,
                )
            )
            return self._fetch_team(conn, team_id), result.rowcount == 1

    # ── Memberships ────────────────────────────────────────────────────

    def add_membership(
        self, membership: TeamMembership, check: Optional[InviteCheck] = None
    ) -> TeamMembership:
        with self._engine.begin() as conn:
            if check is not None:
                self._lock_team(conn, membership.team_id)
                existing = (
                    self._find_open(conn, membership.team_id, membership.email)
                    if membership.email
                    else None
                )
                check(existing)
            conn.execute(
                insert(team_memberships).values(**_to_columns(membership.model_dump()))
            )
        return membership

    def get_membership(self, membership_id: str) -> Optional[TeamMembership]:
        with self._engine.connect() as conn:
            return self._fetch_membership(conn, membership_id)

    def list_members(
        self, team_id: str, status: Optional[MembershipStatus] = None
    ) -> list[TeamMembership]:
        stmt = select(team_memberships).where(team_memberships.c.team_id == team_id)
        if status is not None:
            stmt = stmt.where(team_memberships.c.status == status.value)
        stmt = stmt.order_by(team_memberships.c.invited_at, team_memberships.c.id)
        with self._engine.connect() as conn:
            return [_row_to_membership(r) for r in conn.execute(stmt).fetchall()]

    def get_active_members(self, team_id: str) -> list[MemberSnapshot]:
        with self._engine.connect() as conn:
            return self._active_snapshots(conn, team_id)

    def find_active_membership(
        self, team_id: str, user_id: str
    ) -> Optional[TeamMembership]:
        with self._engine.connect() as conn:
            return self._find_active(conn, team_id, user_id)

    def find_open_membership(self, team_id: str, email: str) -> Optional[TeamMembership]:
        with self._engine.connect() as conn:
            return self._find_open(conn, team_id, email)

    def find_membership_by_token(self, token: str) -> Optional[TeamMembership]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(team_memberships).where(team_memberships.c.invitation_token == token)
            ).first()
        return _row_to_membership(row) if row else None

    def update_membership(
        self, membership_id: str, fields: dict[str, Any]
    ) -> Optional[TeamMembership]:
        with self._engine.begin() as conn:
            if fields:
                result = conn.execute(
                    update(team_memberships)
                    .where(team_memberships.c.id == membership_id)
                    .values(**_to_columns(fields))
                )
                if result.rowcount == 0:
                    return None
            return self._fetch_membership(conn, membership_id)

    def delete_membership(self, membership_id: str) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(
                delete(team_memberships).where(team_memberships.c.id == membership_id)
            )
        return result.rowcount == 1

    def deactivate_member(
        self, team_id: str, membership_id: str, guard: RemovalGuard
    ) -> Optional[TeamMembership]:
        with self._engine.begin() as conn:
            team = self._lock_team(conn, team_id)
            if team is None:
                return None
            target = self._fetch_membership(conn, membership_id)
            if (
                target is None
                or target.team_id != team_id
                or target.status != MembershipStatus.ACTIVE
            ):
                return None
            guard(team, target, self._count_active(conn, team_id))
            conn.execute(
                update(team_memberships)
                .where(team_memberships.c.id == membership_id)
                .values(status=MembershipStatus.INACTIVE.value)
            )
            # team row is locked, so the cached size cannot move underneath us
            conn.execute(
                update(teams)
                .where(teams.c.id == team_id)
                .values(size=max(team.size - 1, 0))
            )
            return self._fetch_membership(conn, membership_id)

    def rotate_invitation(
        self, membership_id: str, token: str, expires_at: datetime, now: datetime
    ) -> Optional[TeamMembership]:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(team_memberships)
                .where(
                    and_(
                        team_memberships.c.id == membership_id,
                        team_memberships.c.status == MembershipStatus.PENDING.value,
                    )
                )
                .values(
                    invitation_token=token,
                    invitation_expires_at=expires_at,
                    invited_at=now,
                )
            )
            if result.rowcount == 0:
                return None
            return self._fetch_membership(conn, membership_id)

    def activate_invitation(
        self, token: str, user_id: str, now: datetime, check: AcceptCheck
    ) -> Optional[TeamMembership]:
        with self._engine.begin() as conn:
            row = conn.execute(
                select(team_memberships.c.id, team_memberships.c.team_id).where(
                    team_memberships.c.invitation_token == token
                )
            ).first()
            if row is None:
                return None
            membership_id, team_id = row
            self._lock_team(conn, team_id)
            pending = self._fetch_membership(conn, membership_id)
            if pending is None or pending.status != MembershipStatus.PENDING:
                return None
            check(pending, self._find_active(conn, team_id, user_id))
            result = conn.execute(
                update(team_memberships)
                .where(
                    and_(
                        team_memberships.c.id == membership_id,
                        team_memberships.c.invitation_token == token,
                        team_memberships.c.status == MembershipStatus.PENDING.value,
                        team_memberships.c.invitation_expires_at >= now,
                    )
                )
                .values(
                    status=MembershipStatus.ACTIVE.value,
                    user_id=user_id,
                    joined_at=now,
                    invitation_token=None,
                )
            )
            if result.rowcount == 0:
                return None
            conn.execute(
                update(teams).where(teams.c.id == team_id).values(size=teams.c.size + 1)
            )
            return self._fetch_membership(conn, membership_id)

    # ── Profiles ───────────────────────────────────────────────────────

    def save_profile(self, profile: UserProfile) -> UserProfile:
        values = profile.model_dump()
        with self._engine.begin() as conn:
            result = conn.execute(
                update(user_profiles)
                .where(user_profiles.c.user_id == profile.user_id)
                .values(**values)
            )
            if result.rowcount == 0:
                conn.execute(insert(user_profiles).values(**values))
        return profile

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(user_profiles).where(user_profiles.c.user_id == user_id)
            ).fetchone()
        return _row_to_profile(row) if row else None

    def find_profile_by_email(self, email: str) -> Optional[UserProfile]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(user_profiles).where(func.lower(user_profiles.c.email) == email.lower())
            ).first()
        return _row_to_profile(row) if row else None
