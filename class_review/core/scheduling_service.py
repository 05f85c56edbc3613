from __future__ import annotations

import datetime as dt
import json
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from class_review.core.errors import (
    CollaboratorError,
    DecisionValidationError,
    NotFoundError,
    StateConflictError,
)
from class_review.core.models import (
    ApprovalStatus,
    ClassSchedule,
    CollaboratorReply,
    SchedulingStatus,
    SessionsPayload,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class SchedulingService(Protocol):
    """Single writer of class and session state.

    Implementations raise NotFoundError, StateConflictError,
    DecisionValidationError or CollaboratorError.
    """

    def get_class_overview(self, class_id: int) -> ClassSchedule: ...

    def get_sessions(self, class_id: int) -> SessionsPayload: ...

    def approve_class(self, class_id: int) -> CollaboratorReply: ...

    def reject_class(self, class_id: int, reason: str) -> CollaboratorReply: ...

    def list_classes(
        self,
        *,
        approval_status: ApprovalStatus | None = None,
        scheduling_status: SchedulingStatus | None = None,
        search: str | None = None,
    ) -> list[ClassSchedule]: ...


class InMemorySchedulingService:
    def __init__(
        self,
        classes: list[ClassSchedule] | None = None,
        sessions: dict[int, SessionsPayload] | None = None,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._classes: dict[int, ClassSchedule] = {
            item.class_id: item.model_copy(deep=True) for item in classes or []
        }
        self._sessions: dict[int, SessionsPayload] = {
            class_id: payload.model_copy(deep=True)
            for class_id, payload in (sessions or {}).items()
        }
        self._clock = clock
        self._lock = threading.Lock()

    def _require_class(self, class_id: int) -> ClassSchedule:
        overview = self._classes.get(class_id)
        if overview is None:
            raise NotFoundError(
                f"Class '{class_id}' does not exist.",
                details={"class_id": class_id},
            )
        return overview

    def _decision_time(self, overview: ClassSchedule) -> dt.datetime:
        now = self._clock()
        if overview.submitted_at is not None and now < overview.submitted_at:
            return overview.submitted_at
        return now

    def get_class_overview(self, class_id: int) -> ClassSchedule:
        with self._lock:
            return self._require_class(class_id).model_copy(deep=True)

    def get_sessions(self, class_id: int) -> SessionsPayload:
        with self._lock:
            self._require_class(class_id)
            payload = self._sessions.get(class_id)
            if payload is None:
                return SessionsPayload(class_id=class_id)
            return payload.model_copy(deep=True)

    def list_classes(
        self,
        *,
        approval_status: ApprovalStatus | None = None,
        scheduling_status: SchedulingStatus | None = None,
        search: str | None = None,
    ) -> list[ClassSchedule]:
        needle = (search or "").strip().lower()
        with self._lock:
            matches = [
                item.model_copy(deep=True)
                for item in self._classes.values()
                if (approval_status is None or item.approval_status == approval_status)
                and (scheduling_status is None or item.scheduling_status == scheduling_status)
                and (
                    not needle
                    or needle in (item.code or "").lower()
                    or needle in (item.name or "").lower()
                )
            ]

        floor = dt.datetime.min.replace(tzinfo=dt.timezone.utc)
        return sorted(matches, key=lambda item: item.submitted_at or floor, reverse=True)

    def approve_class(self, class_id: int) -> CollaboratorReply:
        with self._lock:
            overview = self._require_class(class_id)
            if overview.approval_status != "PENDING":
                raise StateConflictError(
                    f"Class '{class_id}' is not awaiting approval.",
                    details={"class_id": class_id, "approval_status": overview.approval_status},
                )
            self._classes[class_id] = overview.model_copy(
                update={
                    "approval_status": "APPROVED",
                    "scheduling_status": "SCHEDULED",
                    "decided_at": self._decision_time(overview),
                }
            )
        logger.info("Scheduling service approved class_id=%s", class_id)
        return CollaboratorReply(message=f"Class {overview.code or class_id} approved.")

    def reject_class(self, class_id: int, reason: str) -> CollaboratorReply:
        if not reason or not reason.strip():
            raise DecisionValidationError(
                "Rejection reason is required.",
                details={"class_id": class_id},
            )

        with self._lock:
            overview = self._require_class(class_id)
            if overview.approval_status != "PENDING":
                raise StateConflictError(
                    f"Class '{class_id}' is not awaiting approval.",
                    details={"class_id": class_id, "approval_status": overview.approval_status},
                )
            self._classes[class_id] = overview.model_copy(
                update={
                    "approval_status": "REJECTED",
                    "scheduling_status": "DRAFT",
                    "rejection_reason": reason,
                    "decided_at": self._decision_time(overview),
                }
            )
        logger.info("Scheduling service rejected class_id=%s", class_id)
        return CollaboratorReply(
            message=f"Class {overview.code or class_id} returned to draft."
        )

    def submit_class(self, class_id: int) -> CollaboratorReply:
        """Send a draft or rejected class back for review.

        The previous rejection reason is kept as a breadcrumb until the next
        decision replaces it.
        """
        with self._lock:
            overview = self._require_class(class_id)
            if overview.approval_status == "PENDING" or overview.approval_status == "APPROVED":
                raise StateConflictError(
                    f"Class '{class_id}' cannot be submitted from {overview.approval_status}.",
                    details={"class_id": class_id, "approval_status": overview.approval_status},
                )
            self._classes[class_id] = overview.model_copy(
                update={
                    "approval_status": "PENDING",
                    "scheduling_status": "SUBMITTED",
                    "submitted_at": self._clock(),
                    "decided_at": None,
                }
            )
        logger.info("Scheduling service received submission class_id=%s", class_id)
        return CollaboratorReply(message=f"Class {overview.code or class_id} submitted.")


def _parse_seed(raw: Any) -> tuple[list[ClassSchedule], dict[int, SessionsPayload]]:
    if not isinstance(raw, dict) or not isinstance(raw.get("classes"), list):
        raise CollaboratorError(
            "Seed data must be a JSON object with a 'classes' array.",
            retryable=False,
        )

    classes: list[ClassSchedule] = []
    sessions: dict[int, SessionsPayload] = {}
    for index, row in enumerate(raw["classes"]):
        try:
            overview = ClassSchedule.model_validate(row["overview"])
            payload = SessionsPayload.model_validate(
                {
                    "classId": overview.class_id,
                    "sessions": row.get("sessions", []),
                    "weeks": row.get("weeks", []),
                }
            )
        except (KeyError, TypeError, ValidationError) as exc:
            raise CollaboratorError(
                f"Invalid seed entry at index {index}: {exc}",
                details={"index": index},
                retryable=False,
            ) from exc
        classes.append(overview)
        sessions[overview.class_id] = payload
    return classes, sessions


def load_service_from_json(path: str | Path, *, clock: Clock = utc_now) -> InMemorySchedulingService:
    seed_path = Path(path)
    try:
        with seed_path.open("r", encoding="utf-8") as file:
            raw = json.load(file)
    except (OSError, json.JSONDecodeError) as exc:
        raise CollaboratorError(
            f"Unable to read seed data from '{seed_path}'.",
            retryable=False,
        ) from exc

    classes, sessions = _parse_seed(raw)
    logger.info("Loaded %d class(es) from %s", len(classes), seed_path)
    return InMemorySchedulingService(classes, sessions, clock=clock)
