# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Audit trail of team lifecycle events.
Bounded append-only log; traceability only, never read for control flow.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from liftout.core.config import settings


class AuditRepository:
    """In-memory event log (bounded ring buffer)."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    # ── Read ──

    def get_all(
        self,
        team_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        effective_limit = limit or settings.DEFAULT_HISTORY_LIMIT
        with self._lock:
            result = list(self._events)
        if team_id:
            result = [e for e in result if e["team_id"] == team_id]
        if event_type:
            result = [e for e in result if e["event_type"] == event_type]
        return result[-effective_limit:]

    def count(self) -> int:
        return len(self._events)

    # ── Write ──

    def record_event(
        self,
        event_type: str,
        team_id: str,
        actor_id: Optional[str],
        details: dict[str, Any],
    ) -> dict[str, Any]:
        """Append an event, trimming the oldest entries when over max."""
        event: dict[str, Any] = {
            "event_id": str(uuid.uuid4()),
            "event_type": event_type,
            "team_id": team_id,
            "actor_id": actor_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details,
        }
        with self._lock:
            self._events.append(event)
            if len(self._events) > settings.MAX_HISTORY_SIZE:
                del self._events[: len(self._events) - settings.MAX_HISTORY_SIZE]
        return event

    # ── Bulk / internal ──

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
