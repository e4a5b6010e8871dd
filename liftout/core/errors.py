# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain errors - raised by services, rendered by the HTTP exception handler.
Every error carries a machine-readable kind plus structured details so the
caller can render actionable guidance.
"""

from typing import Any, Optional


class LiftoutError(Exception):
    """Base class for every expected failure of a public operation."""

    kind: str = "error"
    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.kind, "message": self.message}
        payload.update(self.details)
        return payload


class NotFoundError(LiftoutError):
    kind = "not_found"
    status_code = 404


class ForbiddenError(LiftoutError):
    kind = "forbidden"
    status_code = 403


class UnauthenticatedError(LiftoutError):
    kind = "unauthenticated"
    status_code = 401


class InvalidStateError(LiftoutError):
    kind = "invalid_state"
    status_code = 409


class ExpiredError(LiftoutError):
    kind = "expired"
    status_code = 410


class InvalidOperationError(LiftoutError):
    kind = "invalid_operation"
    status_code = 400


class PreconditionFailedError(LiftoutError):
    """Posting requirements unmet. Always carries the complete checklist."""

    kind = "precondition_failed"
    status_code = 400

    def __init__(self, message: str, requirements: list[dict[str, Any]]) -> None:
        super().__init__(
            message,
            {
                "requirements": requirements,
                "unmet_requirements": [r for r in requirements if not r["met"]],
            },
        )
        self.requirements = requirements

    @property
    def unmet_requirements(self) -> list[dict[str, Any]]:
        return self.details["unmet_requirements"]
