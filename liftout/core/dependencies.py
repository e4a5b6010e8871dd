# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection - wire repositories and services.
"""

from typing import Optional

from fastapi import Header

from liftout.core.config import settings
from liftout.core.errors import UnauthenticatedError
from liftout.repositories.audit_repository import AuditRepository
from liftout.repositories.membership_repository import (
    InMemoryMembershipRepository,
    MembershipRepository,
)
from liftout.services.invitation_service import InvitationService
from liftout.services.membership_service import MembershipService
from liftout.services.notification_client import NotificationClient
from liftout.services.posting_service import PostingService


def _build_membership_repo() -> MembershipRepository:
    if not settings.DATABASE_URL:
        return InMemoryMembershipRepository()
    from liftout.core.database import build_engine
    from liftout.repositories.sql_membership_repository import SqlMembershipRepository

    return SqlMembershipRepository(build_engine())


# ── Singleton repository instances ──
_membership_repo = _build_membership_repo()
_audit_repo = AuditRepository()
_notification_client = NotificationClient()

# ── Service instances (with injected dependencies) ──
_membership_service = MembershipService(
    membership_repo=_membership_repo,
    audit_repo=_audit_repo,
)
_posting_service = PostingService(
    membership_repo=_membership_repo,
    audit_repo=_audit_repo,
)
_invitation_service = InvitationService(
    membership_repo=_membership_repo,
    audit_repo=_audit_repo,
    notification_client=_notification_client,
)


# ── FastAPI dependency functions ──
def get_membership_service() -> MembershipService:
    return _membership_service


def get_posting_service() -> PostingService:
    return _posting_service


def get_invitation_service() -> InvitationService:
    return _invitation_service


def get_membership_repo() -> MembershipRepository:
    return _membership_repo


def get_audit_repo() -> AuditRepository:
    return _audit_repo


def get_actor_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Authenticated caller, as forwarded by the API gateway."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthenticatedError("Not authenticated")
    return x_user_id.strip()
