# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured JSON logging, one JSON line per record.

Each line carries the request correlation fields (`request_id`, `actor_id`)
bound by the HTTP middleware for the current request, so service and
repository log calls do not have to pass them around. Fields given through
`extra=` on the call win over the bound ones.
"""

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Optional

from liftout.core.config import settings

CORRELATION_FIELDS = ("request_id", "actor_id", "team_id")

_request_context: ContextVar[dict[str, str]] = ContextVar(
    "liftout_request_context", default={}
)


def bind_request_context(**fields: Optional[str]) -> Token:
    """Attach correlation fields to every record logged in this context."""
    current = dict(_request_context.get())
    current.update({k: v for k, v in fields.items() if v})
    return _request_context.set(current)


def reset_request_context(token: Token) -> None:
    _request_context.reset(token)


def current_request_context() -> dict[str, str]:
    return dict(_request_context.get())


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        bound = _request_context.get()
        for field in CORRELATION_FIELDS:
            value = getattr(record, field, None) or bound.get(field)
            if value:
                log_data[field] = value
        if record.exc_info and record.exc_info[1]:
            log_data["error"] = str(record.exc_info[1])
            log_data["error_type"] = type(record.exc_info[1]).__name__
            # domain errors carry their kind, e.g. "invalid_state"
            kind = getattr(record.exc_info[1], "kind", None)
            if kind:
                log_data["error_kind"] = kind
        return json.dumps(log_data, default=str)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger writing JSON lines to stdout at LOG_LEVEL."""
    logger = logging.getLogger(name or settings.SERVICE_NAME)
    if not logger.handlers:
        logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    return logger
