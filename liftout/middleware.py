# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP middleware: request correlation and Prometheus request metrics.

Metric labels use route templates, not raw paths: team ids, membership ids
and invitation tokens must never become label values (tokens are secrets,
ids are unbounded).
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from liftout.core.logging import bind_request_context, reset_request_context
from liftout.metrics.prometheus import HTTP_ERRORS, REQUEST_COUNT, REQUEST_LATENCY

# path segment -> name of the placeholder for the segment that follows it
PARAM_AFTER: dict[str, str] = {
    "teams": "{team_id}",
    "members": "{membership_id}",
    "invitations": "{membership_id}",
    "invites": "{token}",
}

UNMETERED_PATHS: frozenset[str] = frozenset({
    "/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc",
})


def route_template(path: str) -> str:
    """/api/v1/teams/abc/members/xyz -> /api/v1/teams/{team_id}/members/{membership_id}"""
    parts = [p for p in path.split("/") if p]
    templated: list[str] = []
    for i, part in enumerate(parts):
        previous = parts[i - 1] if i else None
        templated.append(PARAM_AFTER[previous] if previous in PARAM_AFTER else part)
    return "/" + "/".join(templated)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate X-Request-ID and bind it, with the caller id, to the log context."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = bind_request_context(
            request_id=request_id,
            actor_id=(request.headers.get("X-User-ID") or "").strip() or None,
        )
        try:
            response = await call_next(request)
        finally:
            reset_request_context(token)
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in UNMETERED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        endpoint = route_template(path)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(elapsed)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
        return response
