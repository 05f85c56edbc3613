from __future__ import annotations

from typing import Any


class ReviewError(Exception):
    code = "REVIEW_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class DecisionValidationError(ReviewError):
    """Decision input rejected before it reaches the scheduling service."""

    code = "VALIDATION_ERROR"


class StateConflictError(ReviewError):
    code = "STATE_CONFLICT"


class DecisionInProgressError(StateConflictError):
    code = "DECISION_IN_PROGRESS"


class NotFoundError(ReviewError):
    code = "NOT_FOUND"


class CollaboratorError(ReviewError):
    """The scheduling service failed; reads may be retried, writes must not be."""

    code = "COLLABORATOR_ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message, details=details)
        self.retryable = retryable
