# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Service-level tests, run against both the in-memory store and the SQL store
(file-backed SQLite). A controllable clock drives invitation expiry.

Run:  pytest test_services.py -v
"""

import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine

from liftout.core.errors import (
    ExpiredError,
    ForbiddenError,
    InvalidOperationError,
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
)
from liftout.models.domain import AccessLevel, MembershipStatus, PostingStatus
from liftout.repositories.audit_repository import AuditRepository
from liftout.repositories.membership_repository import InMemoryMembershipRepository
from liftout.repositories.sql_membership_repository import SqlMembershipRepository
from liftout.services.invitation_service import InvitationService
from liftout.services.membership_service import MembershipService
from liftout.services.notification_client import NotificationClient
from liftout.services.posting_service import PostingService

DESCRIPTION = "Seasoned data science team of five"
BIO = "Ten years shipping ML platforms."


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(params=["memory", "sql"])
def repo(request, tmp_path):
    if request.param == "memory":
        yield InMemoryMembershipRepository()
        return
    engine = create_engine(f"sqlite:///{tmp_path / 'liftout.db'}")
    sql_repo = SqlMembershipRepository(engine)
    sql_repo.create_schema()
    yield sql_repo
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return MagicMock(spec=NotificationClient)


@pytest.fixture
def audit():
    return AuditRepository()


@pytest.fixture
def members(repo, audit, clock):
    return MembershipService(repo, audit, clock=clock)


@pytest.fixture
def posting(repo, audit, clock):
    return PostingService(repo, audit, clock=clock)


@pytest.fixture
def invitations(repo, audit, notifier, clock):
    return InvitationService(repo, audit, notifier, clock=clock)


def _profile(members, user_id, bio=BIO):
    members.save_profile(
        user_id, user_id,
        email=f"{user_id}@example.com",
        first_name=user_id.title(),
        last_name="Doe",
        bio=bio,
    )


def _join(invitations, team_id, user_id, inviter="alice", access=AccessLevel.MEMBER):
    invitation = invitations.create_invitation(
        team_id, f"{user_id}@example.com", inviter, access=access
    )
    return invitations.respond(invitation.invitation_token, user_id, "accept")


@pytest.fixture
def ready_team(members, invitations):
    _profile(members, "alice")
    _profile(members, "bob")
    team = members.create_team("alice", "TechFlow", DESCRIPTION, "Fintech")
    _join(invitations, team.id, "bob")
    return team


# ============================================
# Membership store
# ============================================
class TestMemberships:
    def test_creator_is_lead(self, members, repo):
        team = members.create_team("alice", "TechFlow")
        [creator] = repo.get_active_members(team.id)
        assert creator.membership.user_id == "alice"
        assert creator.membership.access is AccessLevel.LEAD
        assert repo.get_team(team.id).size == 1

    def test_snapshot_carries_profiles(self, ready_team, repo):
        snapshots = repo.get_active_members(ready_team.id)
        assert {s.profile.user_id for s in snapshots} == {"alice", "bob"}

    def test_update_role_flags(self, ready_team, members, repo):
        bob = repo.find_active_membership(ready_team.id, "bob")
        promoted = members.update_role(ready_team.id, bob.id, "alice", is_lead=True)
        assert promoted.is_lead and promoted.is_admin
        demoted = members.update_role(ready_team.id, bob.id, "alice", is_lead=False)
        assert demoted.access is AccessLevel.MEMBER
        assert repo.get_membership(bob.id).access is AccessLevel.MEMBER

    def test_update_role_text_only(self, ready_team, members, repo):
        bob = repo.find_active_membership(ready_team.id, "bob")
        updated = members.update_role(ready_team.id, bob.id, "alice", role="Data Engineer")
        assert updated.role == "Data Engineer"
        assert updated.access is AccessLevel.MEMBER

    def test_remove_respects_floor(self, ready_team, members, repo):
        bob = repo.find_active_membership(ready_team.id, "bob")
        with pytest.raises(InvalidOperationError):
            members.remove_member(ready_team.id, bob.id, "alice")
        assert repo.get_membership(bob.id).status is MembershipStatus.ACTIVE
        assert repo.get_team(ready_team.id).size == 2

    def test_remove_member(self, ready_team, members, invitations, repo):
        _join(invitations, ready_team.id, "carol")
        bob = repo.find_active_membership(ready_team.id, "bob")
        removed = members.remove_member(ready_team.id, bob.id, "alice")
        assert removed.status is MembershipStatus.INACTIVE
        assert repo.get_team(ready_team.id).size == 2
        assert repo.find_active_membership(ready_team.id, "bob") is None

    def test_plain_member_cannot_remove(self, ready_team, members, invitations, repo):
        carol = _join(invitations, ready_team.id, "carol")
        with pytest.raises(ForbiddenError):
            members.remove_member(ready_team.id, carol.id, "bob")

    def test_profile_edit_is_self_only(self, members):
        with pytest.raises(ForbiddenError):
            members.save_profile("bob", "alice", first_name="Bob")


# ============================================
# Posting state machine
# ============================================
class TestPosting:
    def test_post_then_noop(self, ready_team, posting, clock):
        team, changed = posting.post(ready_team.id, "alice")
        assert changed is True
        assert team.posting_status is PostingStatus.POSTED
        assert team.posted_at == clock.now

        clock.advance(minutes=5)
        again, changed = posting.post(ready_team.id, "alice")
        assert changed is False
        assert again.posted_at == team.posted_at

    def test_rejects_unready_team(self, members, posting, repo):
        team = members.create_team("alice", "TechFlow", DESCRIPTION, "Fintech")
        with pytest.raises(PreconditionFailedError) as exc_info:
            posting.post(team.id, "alice")
        assert [r["id"] for r in exc_info.value.unmet_requirements] == [
            "min_members", "complete_profiles",
        ]
        assert len(exc_info.value.requirements) == 5
        assert repo.get_team(team.id).posting_status is PostingStatus.DRAFT

    def test_member_cannot_post(self, ready_team, posting):
        with pytest.raises(ForbiddenError):
            posting.post(ready_team.id, "bob")

    def test_missing_team(self, posting):
        with pytest.raises(NotFoundError):
            posting.post("ghost", "alice")

    def test_unpost_round_trip(self, ready_team, posting, clock):
        posting.post(ready_team.id, "alice")
        clock.advance(days=1)
        team, changed = posting.unpost(ready_team.id, "alice")
        assert changed is True
        assert team.posting_status is PostingStatus.DRAFT
        assert team.unposted_at == clock.now
        _, changed = posting.unpost(ready_team.id, "alice")
        assert changed is False

    def test_audit_records_transitions(self, ready_team, posting, audit):
        posting.post(ready_team.id, "alice")
        posting.post(ready_team.id, "alice")
        posting.unpost(ready_team.id, "alice")
        kinds = [e["event_type"] for e in audit.get_all(team_id=ready_team.id)]
        assert kinds.count("team_posted") == 1
        assert kinds.count("team_unposted") == 1


# ============================================
# Invitations
# ============================================
class TestInvitationLifecycle:
    def test_new_invitation_expires_in_seven_days(self, members, invitations, clock, notifier):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        assert invitation.status is MembershipStatus.PENDING
        assert invitation.invitation_expires_at == clock.now + timedelta(days=7)
        notifier.send_invitation.assert_called_once()

    def test_lead_access_downgraded_to_admin(self, members, invitations):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(
            team.id, "bob@example.com", "alice", access=AccessLevel.LEAD
        )
        assert invitation.access is AccessLevel.ADMIN

    def test_valid_until_the_last_instant(self, members, invitations, clock, repo):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        clock.advance(days=7)
        accepted = invitations.respond(invitation.invitation_token, "bob", "accept")
        assert accepted.status is MembershipStatus.ACTIVE
        assert accepted.invitation_token is None
        assert accepted.joined_at == clock.now
        assert repo.get_team(team.id).size == 2

    def test_expired_invitation(self, members, invitations, clock):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        clock.advance(days=7, seconds=1)
        with pytest.raises(ExpiredError):
            invitations.respond(invitation.invitation_token, "bob", "accept")
        with pytest.raises(ExpiredError):
            invitations.get_invitation(invitation.invitation_token)

    def test_resend_moves_expiry_forward(self, members, invitations, clock, repo, audit):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        clock.advance(days=3)
        result = invitations.resend_invitation(invitation.id, "alice")
        assert result["expires_at"] == clock.now + timedelta(days=7)
        stored = repo.get_membership(invitation.id)
        assert stored.invitation_token != invitation.invitation_token
        assert stored.invitation_expires_at == result["expires_at"]
        assert audit.get_all(team_id=team.id, event_type="invitation_resent")

    def test_resend_in_same_instant_still_later(self, members, invitations):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        result = invitations.resend_invitation(invitation.id, "alice")
        assert result["expires_at"] > invitation.invitation_expires_at

    def test_rotated_token_is_dead(self, members, invitations):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        invitations.resend_invitation(invitation.id, "alice")
        with pytest.raises(NotFoundError):
            invitations.respond(invitation.invitation_token, "bob", "accept")

    def test_resend_after_accept(self, ready_team, invitations, repo):
        bob = repo.find_active_membership(ready_team.id, "bob")
        with pytest.raises(InvalidStateError):
            invitations.resend_invitation(bob.id, "alice")

    def test_resend_unknown(self, invitations):
        with pytest.raises(NotFoundError):
            invitations.resend_invitation("ghost", "alice")

    def test_decline_deletes(self, members, invitations, repo):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        invitations.respond(invitation.invitation_token, "bob", "decline")
        assert repo.get_membership(invitation.id) is None
        assert repo.get_team(team.id).size == 1

    def test_active_member_cannot_take_a_second_seat(self, members, invitations, posting, repo):
        _profile(members, "alice")
        team = members.create_team("alice", "TechFlow", DESCRIPTION, "Fintech")
        invitation = invitations.create_invitation(team.id, "carol@example.com", "alice")

        with pytest.raises(InvalidStateError):
            invitations.respond(invitation.invitation_token, "alice", "accept")

        assert [s.membership.user_id for s in repo.get_active_members(team.id)] == ["alice"]
        assert repo.get_team(team.id).size == 1
        assert repo.get_membership(invitation.id).status is MembershipStatus.PENDING
        with pytest.raises(PreconditionFailedError):
            posting.post(team.id, "alice")

    def test_removed_member_may_rejoin(self, ready_team, members, invitations, repo):
        _join(invitations, ready_team.id, "carol")
        bob = repo.find_active_membership(ready_team.id, "bob")
        members.remove_member(ready_team.id, bob.id, "alice")
        rejoined = _join(invitations, ready_team.id, "bob")
        assert rejoined.status is MembershipStatus.ACTIVE
        assert repo.get_team(ready_team.id).size == 3

    def test_invalid_action(self, members, invitations):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        with pytest.raises(InvalidOperationError):
            invitations.respond(invitation.invitation_token, "bob", "ignore")

    def test_cancel(self, members, invitations, repo):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")
        invitations.cancel_invitation(invitation.id, "alice")
        assert repo.get_membership(invitation.id) is None

    def test_duplicate_open_invitation(self, members, invitations):
        team = members.create_team("alice", "TechFlow")
        invitations.create_invitation(team.id, "bob@example.com", "alice")
        with pytest.raises(InvalidStateError):
            invitations.create_invitation(team.id, "bob@example.com", "alice")

    def test_list_flags_expired(self, members, invitations, clock):
        team = members.create_team("alice", "TechFlow")
        invitations.create_invitation(team.id, "old@example.com", "alice")
        clock.advance(days=5)
        invitations.create_invitation(team.id, "new@example.com", "alice")
        clock.advance(days=3)
        flags = {i["email"]: i["expired"] for i in invitations.list_invitations(team.id, "alice")}
        assert flags == {"old@example.com": True, "new@example.com": False}


# ============================================
# Concurrency (in-memory store, per-team locks)
# ============================================
def _run_concurrently(fn, count):
    barrier = threading.Barrier(count)
    outcomes = []
    lock = threading.Lock()

    def worker(arg):
        barrier.wait()
        try:
            result = fn(arg)
        except Exception as exc:  # collected for assertions
            result = exc
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return outcomes


class TestConcurrency:
    @pytest.fixture
    def repo(self):
        return InMemoryMembershipRepository()

    def test_scans_survive_writes_to_other_teams(self, ready_team, members, invitations, repo):
        others = [members.create_team(f"owner{i}", f"Other {i}").id for i in range(2)]
        stop = threading.Event()
        errors = []

        def invite_elsewhere(n):
            i = 0
            while not stop.is_set() and i < 1000:
                try:
                    invitations.create_invitation(
                        others[n], f"guest{n}-{i}@example.com", f"owner{n}"
                    )
                except Exception as exc:  # collected for assertions
                    errors.append(exc)
                i += 1

        def scan():
            for _ in range(300):
                try:
                    repo.get_active_members(ready_team.id)
                    repo.find_membership_by_token("no-such-token")
                    repo.list_members(ready_team.id)
                    repo.find_open_membership(ready_team.id, "nobody@example.com")
                except Exception as exc:  # collected for assertions
                    errors.append(exc)
            stop.set()

        writers = [threading.Thread(target=invite_elsewhere, args=(n,)) for n in range(2)]
        reader = threading.Thread(target=scan)
        for t in writers + [reader]:
            t.start()
        for t in writers + [reader]:
            t.join()
        assert errors == []
        assert len(repo.get_active_members(ready_team.id)) == 2

    def test_concurrent_duplicate_invites_admit_one(self, members, invitations, repo):
        team = members.create_team("alice", "TechFlow")
        outcomes = _run_concurrently(
            lambda _: invitations.create_invitation(team.id, "bob@example.com", "alice"), 8
        )
        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(failures) == 7
        assert all(isinstance(f, InvalidStateError) for f in failures)
        assert len(repo.list_members(team.id, MembershipStatus.PENDING)) == 1

    def test_concurrent_self_accepts_admit_none(self, members, invitations, repo):
        team = members.create_team("alice", "TechFlow")
        tokens = [
            invitations.create_invitation(team.id, f"alt{i}@example.com", "alice").invitation_token
            for i in range(4)
        ]
        outcomes = _run_concurrently(
            lambda i: invitations.respond(tokens[i], "alice", "accept"), 4
        )
        assert all(isinstance(o, InvalidStateError) for o in outcomes)
        assert repo.get_team(team.id).size == 1

    def test_concurrent_posts_apply_once(self, ready_team, posting, audit):
        outcomes = _run_concurrently(lambda _: posting.post(ready_team.id, "alice"), 8)
        assert sum(1 for _, changed in outcomes if changed) == 1
        assert len(audit.get_all(team_id=ready_team.id, event_type="team_posted")) == 1

    def test_concurrent_removals_keep_floor(self, ready_team, members, invitations, repo):
        _join(invitations, ready_team.id, "carol")
        targets = [
            repo.find_active_membership(ready_team.id, "bob").id,
            repo.find_active_membership(ready_team.id, "carol").id,
        ]
        outcomes = _run_concurrently(
            lambda i: members.remove_member(ready_team.id, targets[i], "alice"), 2
        )
        failures = [o for o in outcomes if isinstance(o, InvalidOperationError)]
        assert len(failures) == 1
        assert len(repo.get_active_members(ready_team.id)) == 2
        assert repo.get_team(ready_team.id).size == 2

    def test_accept_races_resend(self, members, invitations, repo):
        team = members.create_team("alice", "TechFlow")
        invitation = invitations.create_invitation(team.id, "bob@example.com", "alice")

        def act(i):
            if i == 0:
                return invitations.respond(invitation.invitation_token, "bob", "accept")
            return invitations.resend_invitation(invitation.id, "alice")

        outcomes = _run_concurrently(act, 2)
        stored = repo.get_membership(invitation.id)
        errors = [o for o in outcomes if isinstance(o, Exception)]
        if stored.status is MembershipStatus.ACTIVE:
            # accept won; resend must have been refused
            assert len(errors) == 1
            assert isinstance(errors[0], InvalidStateError)
        else:
            # resend won; the old token no longer matches
            assert stored.status is MembershipStatus.PENDING
            assert len(errors) == 1
            assert isinstance(errors[0], (NotFoundError, InvalidStateError))
