# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints - health, readiness, metrics.
Pure HTTP layer - no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import Response

from liftout.core.config import settings
from liftout.core.dependencies import get_audit_repo, get_membership_repo

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check():
    """Liveness probe for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "teams_count": get_membership_repo().count_teams(),
        "audit_events": get_audit_repo().count(),
    }


@router.get("/health/ready")
def readiness_check():
    """Readiness probe - verifies the backing store can serve traffic."""
    repo = get_membership_repo()
    ping = getattr(repo, "ping", None)
    if ping is None:
        return {"status": "ready", "service": settings.SERVICE_NAME, "store": "memory"}
    try:
        ping()
    except SQLAlchemyError as exc:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unavailable",
                "service": settings.SERVICE_NAME,
                "store": "database",
                "detail": str(exc),
            },
        )
    return {"status": "ready", "service": settings.SERVICE_NAME, "store": "database"}


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
