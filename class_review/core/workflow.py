from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from class_review.core.config import ReviewSettings
from class_review.core.errors import (
    CollaboratorError,
    DecisionInProgressError,
    DecisionValidationError,
    NotFoundError,
    ReviewError,
    StateConflictError,
)
from class_review.core.models import (
    ClassReview,
    ClassSchedule,
    CollaboratorReply,
    DecisionOutcome,
    ReviewIssue,
    SessionsPayload,
)
from class_review.core.review import build_class_review
from class_review.core.scheduling_service import SchedulingService

REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 500

_Read = TypeVar("_Read")
logger = logging.getLogger(__name__)


def validate_rejection_reason(reason: str | None) -> str:
    """Return the trimmed reason, or raise DecisionValidationError."""
    text = (reason or "").strip()
    if not text:
        raise DecisionValidationError(
            "Rejection reason is required.",
            details={"field": "reason", "length": 0},
        )
    if len(text) < REASON_MIN_LENGTH:
        raise DecisionValidationError(
            f"Rejection reason is too short: at least {REASON_MIN_LENGTH} characters are required.",
            details={"field": "reason", "length": len(text), "min_length": REASON_MIN_LENGTH},
        )
    if len(text) > REASON_MAX_LENGTH:
        raise DecisionValidationError(
            f"Rejection reason is too long: at most {REASON_MAX_LENGTH} characters are allowed.",
            details={"field": "reason", "length": len(text), "max_length": REASON_MAX_LENGTH},
        )
    return text


class ApprovalWorkflow:
    """Review decisions for submitted classes.

    Approve and reject only run while the class is PENDING, and only one
    decision per class may be in flight. The scheduling service stays the
    single writer; nothing here caches class state between calls.
    """

    def __init__(
        self,
        service: SchedulingService,
        *,
        settings: ReviewSettings | None = None,
    ) -> None:
        self._service = service
        self._settings = settings or ReviewSettings()
        self._in_flight: set[int] = set()
        self._lock = threading.Lock()

    @property
    def service(self) -> SchedulingService:
        return self._service

    def is_in_flight(self, class_id: int) -> bool:
        with self._lock:
            return class_id in self._in_flight

    @contextmanager
    def _decision_slot(self, class_id: int) -> Iterator[None]:
        with self._lock:
            if class_id in self._in_flight:
                logger.warning("Refusing concurrent decision class_id=%s", class_id)
                raise DecisionInProgressError(
                    f"A decision for class '{class_id}' is already in progress.",
                    details={"class_id": class_id},
                )
            self._in_flight.add(class_id)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(class_id)

    def _require_pending(self, class_id: int) -> ClassSchedule:
        overview = self._service.get_class_overview(class_id)
        if overview.approval_status != "PENDING":
            logger.warning(
                "Decision refused class_id=%s approval_status=%s",
                class_id,
                overview.approval_status,
            )
            raise StateConflictError(
                f"Class '{class_id}' is not awaiting approval.",
                details={"class_id": class_id, "approval_status": overview.approval_status},
            )
        return overview

    def _write(self, class_id: int, action: str, call: Callable[[], CollaboratorReply]) -> CollaboratorReply:
        try:
            return call()
        except ReviewError as exc:
            logger.warning(
                "Scheduling service refused %s class_id=%s code=%s",
                action,
                class_id,
                exc.code,
            )
            raise
        except Exception as exc:
            logger.warning("Scheduling service failed during %s class_id=%s", action, class_id)
            raise CollaboratorError(
                f"Unable to {action} class '{class_id}'. Check its current status before retrying.",
                details={"class_id": class_id},
                retryable=False,
            ) from exc

    def approve(self, class_id: int) -> DecisionOutcome:
        with self._decision_slot(class_id):
            self._require_pending(class_id)
            reply = self._write(class_id, "approve", lambda: self._service.approve_class(class_id))

        logger.info("Approved class class_id=%s", class_id)
        return DecisionOutcome(
            class_id=class_id,
            decision="approved",
            message=reply.message or "Class approved.",
        )

    def reject(self, class_id: int, reason: str | None) -> DecisionOutcome:
        text = validate_rejection_reason(reason)

        with self._decision_slot(class_id):
            self._require_pending(class_id)
            reply = self._write(
                class_id,
                "reject",
                lambda: self._service.reject_class(class_id, text),
            )

        logger.info("Rejected class class_id=%s reason_length=%d", class_id, len(text))
        return DecisionOutcome(
            class_id=class_id,
            decision="rejected",
            message=reply.message or "Class returned to draft.",
        )

    def _read(
        self,
        source: str,
        call: Callable[[], _Read],
        issues: list[ReviewIssue],
    ) -> tuple[_Read | None, ReviewError | None]:
        try:
            return call(), None
        except (NotFoundError, CollaboratorError) as exc:
            logger.warning("Review read degraded source=%s code=%s", source, exc.code)
            issues.append(ReviewIssue(source=source, code=exc.code, message=exc.message))
            return None, exc
        except Exception as exc:
            logger.warning("Review read failed source=%s error=%s", source, type(exc).__name__)
            error = CollaboratorError(
                f"Unable to load {source} from the scheduling service.",
                details={"source": source},
                retryable=True,
            )
            issues.append(ReviewIssue(source=source, code=error.code, message=error.message))
            return None, error

    def load_review(self, class_id: int) -> ClassReview:
        issues: list[ReviewIssue] = []
        overview, overview_error = self._read(
            "overview",
            lambda: self._service.get_class_overview(class_id),
            issues,
        )
        sessions, sessions_error = self._read(
            "sessions",
            lambda: self._service.get_sessions(class_id),
            issues,
        )

        if isinstance(overview_error, NotFoundError) and isinstance(sessions_error, NotFoundError):
            raise overview_error

        return build_class_review(
            class_id,
            overview,
            sessions if isinstance(sessions, SessionsPayload) else None,
            issues=issues,
            decision_in_flight=self.is_in_flight(class_id),
            settings=self._settings,
        )
