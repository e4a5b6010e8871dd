# type: ignore
# pyright: reportGeneralTypeIssues=false
# pyright: reportOptionalMemberAccess=false
"""
Liftout Team Service
====================
Team lifecycle core of the Liftout marketplace: memberships, posting
readiness, the posting state machine and team invitations.

Posting state machine:
    draft ─► posted   (gated on the readiness checklist, idempotent)
    posted ─► draft   (unpost, sets unposted_at)

Invitation lifecycle:
    pending ─► active   (accept, token consumed)
    pending ─► pending  (resend, token rotated, expiry restarted)
    pending ─► removed  (decline / cancel)

Port: 8010
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from liftout.controllers import invitation_controller, system_controller, team_controller
from liftout.core.config import settings
from liftout.core.dependencies import get_membership_repo
from liftout.core.errors import LiftoutError
from liftout.core.logging import get_logger
from liftout.middleware import MetricsMiddleware, RequestIDMiddleware
from liftout.schemas.team import ErrorResponse

logger = get_logger(settings.SERVICE_NAME)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Ensure the schema exists when backed by a database."""
    repo = get_membership_repo()
    create_schema = getattr(repo, "create_schema", None)
    if create_schema is not None:
        try:
            create_schema()
        except SQLAlchemyError as exc:
            logger.error("Schema setup failed: %s", exc)
    logger.info(
        "%s v%s starting (store=%s)",
        settings.SERVICE_NAME,
        settings.SERVICE_VERSION,
        "database" if create_schema else "memory",
    )
    yield
    logger.info("%s shutting down", settings.SERVICE_NAME)


app = FastAPI(
    title="Liftout Team Service",
    description="Team memberships, posting readiness, posting and invitations.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    responses={
        422: {"description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(LiftoutError)
async def liftout_error_handler(request: Request, exc: LiftoutError):
    req_id = getattr(request.state, "request_id", None)
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.kind, exc.message, extra={"request_id": req_id})
    else:
        logger.info("%s: %s", exc.kind, exc.message, extra={"request_id": req_id})
    return JSONResponse(
        status_code=exc.status_code,
        content={**exc.to_dict(), "request_id": req_id},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "message": str(exc), "request_id": req_id},
    )


app.include_router(system_controller.router)
app.include_router(team_controller.router)
app.include_router(invitation_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.SERVICE_PORT)
