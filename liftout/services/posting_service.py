# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Team posting state machine.

    draft ──post──► posted ──unpost──► draft (unposted_at set)

`post` is gated on the readiness checklist, evaluated against the same
locked snapshot the transition writes to. Repeating a transition that has
already happened is a success, not an error.
"""

from typing import Any, Callable

from liftout.core.errors import NotFoundError, PreconditionFailedError
from liftout.core.logging import get_logger
from liftout.metrics.prometheus import POSTING_TRANSITIONS, READINESS_CHECKS
from liftout.models.domain import MemberSnapshot, Team, utcnow
from liftout.repositories.audit_repository import AuditRepository
from liftout.repositories.membership_repository import MembershipRepository
from liftout.services.access import require_team, require_team_admin
from liftout.services.readiness import ReadinessReport, evaluate_readiness

logger = get_logger(__name__)

POSTED_MESSAGE = "Team posted successfully. Your team is now visible to companies."
ALREADY_POSTED_MESSAGE = "Team is already posted."
UNPOSTED_MESSAGE = "Team unposted. Your team is no longer visible to companies."
ALREADY_DRAFT_MESSAGE = "Team is not currently posted."


class PostingService:
    """Readiness checks and posting transitions for teams."""

    def __init__(
        self,
        membership_repo: MembershipRepository,
        audit_repo: AuditRepository,
        clock: Callable[[], Any] = utcnow,
    ) -> None:
        self._repo = membership_repo
        self._audit = audit_repo
        self._clock = clock

    def readiness(self, team_id: str) -> tuple[Team, ReadinessReport]:
        """Evaluate the posting checklist. Any authenticated caller may view it."""
        team = require_team(self._repo, team_id)
        report = evaluate_readiness(team, self._repo.get_active_members(team_id))
        READINESS_CHECKS.labels(can_post=str(report.can_post).lower()).inc()
        return team, report

    def post(self, team_id: str, actor_id: str) -> tuple[Team, bool]:
        """Make a team visible to companies. Returns (team, changed)."""
        team = require_team(self._repo, team_id)
        require_team_admin(self._repo, team, actor_id, "post this team")

        def check(current: Team, members: list[MemberSnapshot]) -> None:
            report = evaluate_readiness(current, members)
            if not report.can_post:
                raise PreconditionFailedError(
                    "Team does not meet posting requirements",
                    report.requirement_dicts(),
                )

        try:
            updated, changed = self._repo.post_team(team_id, check, self._clock())
        except PreconditionFailedError as exc:
            POSTING_TRANSITIONS.labels(transition="post", outcome="rejected").inc()
            logger.info(
                "Post rejected: team=%s, unmet=%s",
                team_id, [r["id"] for r in exc.unmet_requirements],
            )
            raise
        if updated is None:
            raise NotFoundError("Team not found", {"team_id": team_id})

        if not changed:
            POSTING_TRANSITIONS.labels(transition="post", outcome="noop").inc()
            return updated, False

        POSTING_TRANSITIONS.labels(transition="post", outcome="applied").inc()
        self._audit.record_event(
            "team_posted",
            team_id,
            actor_id,
            {"posted_at": updated.posted_at.isoformat()},
        )
        logger.info("Team posted: team=%s, actor=%s", team_id, actor_id)
        return updated, True

    def unpost(self, team_id: str, actor_id: str) -> tuple[Team, bool]:
        """Withdraw a posted team back to draft. Returns (team, changed)."""
        team = require_team(self._repo, team_id)
        require_team_admin(self._repo, team, actor_id, "unpost this team")

        updated, changed = self._repo.unpost_team(team_id, self._clock())
        if updated is None:
            raise NotFoundError("Team not found", {"team_id": team_id})

        if not changed:
            POSTING_TRANSITIONS.labels(transition="unpost", outcome="noop").inc()
            return updated, False

        POSTING_TRANSITIONS.labels(transition="unpost", outcome="applied").inc()
        self._audit.record_event(
            "team_unposted",
            team_id,
            actor_id,
            {"unposted_at": updated.unposted_at.isoformat()},
        )
        logger.info("Team unposted: team=%s, actor=%s", team_id, actor_id)
        return updated, True
