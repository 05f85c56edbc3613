from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from class_review.core.errors import (
    CollaboratorError,
    DecisionInProgressError,
    DecisionValidationError,
    NotFoundError,
    StateConflictError,
)
from class_review.core.models import ClassSchedule, CollaboratorReply, SessionsPayload
from class_review.core.scheduling_service import InMemorySchedulingService, load_service_from_json
from class_review.core.workflow import ApprovalWorkflow, validate_rejection_reason

SAMPLE_PATH = Path(__file__).resolve().parents[1] / "data" / "sample_classes.json"
FIXED_NOW = dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.timezone.utc)


class RecordingService(InMemorySchedulingService):
    def __init__(self, *args: object, **kwargs: object) -> None:
        super().__init__(*args, **kwargs)
        self.calls: list[str] = []

    def get_class_overview(self, class_id: int) -> ClassSchedule:
        self.calls.append("get_class_overview")
        return super().get_class_overview(class_id)

    def approve_class(self, class_id: int) -> CollaboratorReply:
        self.calls.append("approve_class")
        return super().approve_class(class_id)

    def reject_class(self, class_id: int, reason: str) -> CollaboratorReply:
        self.calls.append("reject_class")
        return super().reject_class(class_id, reason)


def load_recording_service() -> RecordingService:
    seeded = load_service_from_json(SAMPLE_PATH)
    classes = seeded.list_classes()
    sessions = {item.class_id: seeded.get_sessions(item.class_id) for item in classes}
    return RecordingService(classes, sessions, clock=lambda: FIXED_NOW)


def test_reason_bounds_use_trimmed_length() -> None:
    with pytest.raises(DecisionValidationError, match="too short"):
        validate_rejection_reason("short")
    with pytest.raises(DecisionValidationError, match="too short"):
        validate_rejection_reason("   123456789   ")
    with pytest.raises(DecisionValidationError, match="too long"):
        validate_rejection_reason("x" * 501)
    with pytest.raises(DecisionValidationError, match="required"):
        validate_rejection_reason("   ")

    assert validate_rejection_reason("x" * 10) == "x" * 10
    assert validate_rejection_reason("x" * 500) == "x" * 500
    assert validate_rejection_reason(f"  {'y' * 500}  ") == "y" * 500


def test_invalid_reason_never_reaches_the_service() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)

    with pytest.raises(DecisionValidationError):
        workflow.reject(101, "short")
    with pytest.raises(DecisionValidationError):
        workflow.reject(101, "x" * 501)

    assert service.calls == []
    assert service.get_class_overview(101).approval_status == "PENDING"


def test_minimum_length_reason_passes_and_rejects_class() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)

    outcome = workflow.reject(101, "x" * 10)

    assert outcome.decision == "rejected"
    assert outcome.message == "Class ENG-B1-0301 returned to draft."
    overview = service.get_class_overview(101)
    assert overview.approval_status == "REJECTED"
    assert overview.scheduling_status == "DRAFT"
    assert overview.rejection_reason == "x" * 10
    assert overview.decided_at == FIXED_NOW


def test_approve_non_pending_class_is_a_state_conflict() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)
    before = service.get_class_overview(102)

    with pytest.raises(StateConflictError):
        workflow.approve(102)

    after = service.get_class_overview(102)
    assert after.decided_at == before.decided_at
    assert after.approval_status == "APPROVED"
    assert "approve_class" not in service.calls


def test_end_to_end_review_then_approve() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)

    review = workflow.load_review(101)
    assert review.readiness.total == 4
    assert review.readiness.with_time_slot == 3
    assert review.readiness.with_resource == 2
    assert review.readiness.with_teacher == 4
    assert review.overview is not None
    assert review.overview.approval_status == "PENDING"
    assert review.actions_enabled is True

    outcome = workflow.approve(101)
    assert outcome.decision == "approved"
    assert outcome.message == "Class ENG-B1-0301 approved."

    overview = service.get_class_overview(101)
    assert overview.approval_status == "APPROVED"
    assert overview.scheduling_status == "SCHEDULED"
    assert overview.decided_at == FIXED_NOW
    assert workflow.load_review(101).actions_enabled is False

    with pytest.raises(StateConflictError):
        workflow.approve(101)
    with pytest.raises(StateConflictError):
        workflow.reject(101, "Too late to reject this class")


def test_second_decision_while_one_is_in_flight_is_refused() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)
    nested: list[Exception] = []

    original_approve = service.approve_class

    def approve_and_retry(class_id: int) -> CollaboratorReply:
        assert workflow.is_in_flight(class_id)
        try:
            workflow.approve(class_id)
        except DecisionInProgressError as exc:
            nested.append(exc)
        return original_approve(class_id)

    service.approve_class = approve_and_retry  # type: ignore[method-assign]

    workflow.approve(101)

    assert len(nested) == 1
    assert isinstance(nested[0], StateConflictError)
    assert workflow.is_in_flight(101) is False


def test_unexpected_service_failure_is_not_retryable_and_releases_slot() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)

    def broken(class_id: int) -> CollaboratorReply:
        raise ConnectionError("socket closed")

    service.approve_class = broken  # type: ignore[method-assign]

    with pytest.raises(CollaboratorError) as excinfo:
        workflow.approve(101)

    assert excinfo.value.retryable is False
    assert workflow.is_in_flight(101) is False
    assert service.get_class_overview(101).approval_status == "PENDING"


def test_service_conflict_surfaces_unchanged() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)

    def lost_race(class_id: int) -> CollaboratorReply:
        raise StateConflictError("Another reviewer already decided this class.")

    service.approve_class = lost_race  # type: ignore[method-assign]

    with pytest.raises(StateConflictError, match="Another reviewer"):
        workflow.approve(101)


def test_empty_reply_message_gets_default() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)
    service.approve_class = lambda class_id: CollaboratorReply()  # type: ignore[method-assign]

    assert workflow.approve(101).message == "Class approved."


def test_review_degrades_when_sessions_read_fails() -> None:
    service = load_recording_service()

    def unavailable(class_id: int) -> SessionsPayload:
        raise CollaboratorError("Sessions service timed out.")

    service.get_sessions = unavailable  # type: ignore[method-assign]
    review = ApprovalWorkflow(service).load_review(101)

    assert review.readiness.total == 0
    assert review.teachers == []
    assert review.resources.label == "Unassigned"
    assert review.actions_enabled is True
    assert [(issue.source, issue.code) for issue in review.issues] == [
        ("sessions", "COLLABORATOR_ERROR")
    ]


def test_review_degrades_when_sessions_transport_fails() -> None:
    service = load_recording_service()

    def dropped(class_id: int) -> SessionsPayload:
        raise ConnectionError("socket closed")

    service.get_sessions = dropped  # type: ignore[method-assign]
    review = ApprovalWorkflow(service).load_review(101)

    assert review.readiness.total == 0
    assert review.overview is not None
    assert review.actions_enabled is True
    assert [(issue.source, issue.code) for issue in review.issues] == [
        ("sessions", "COLLABORATOR_ERROR")
    ]


def test_review_of_unknown_class_is_not_found() -> None:
    workflow = ApprovalWorkflow(load_recording_service())

    with pytest.raises(NotFoundError):
        workflow.load_review(999)
    with pytest.raises(NotFoundError):
        workflow.approve(999)


def test_review_summaries_for_degraded_and_empty_classes() -> None:
    workflow = ApprovalWorkflow(load_recording_service())

    rejected = workflow.load_review(103)
    assert rejected.schedule_days.source == "summary"
    assert rejected.schedule_days.text == "Tue, Thu"
    assert [teacher.id for teacher in rejected.teachers] == [
        "3001-0-Em Vo",
        "3001-1-Giang Ho",
        "3002-0-Em Vo",
    ]
    assert rejected.resources.names == ["Lab 1"]
    assert [week.week_range for week in rejected.weeks] == ["09/02/2026 - 15/02/2026"]
    assert rejected.overview is not None
    assert rejected.overview.rejection_reason is not None
    assert rejected.actions_enabled is False

    empty = workflow.load_review(104)
    assert empty.readiness.total == 0
    assert empty.schedule_days.text == "Unscheduled"
    assert empty.time_slot_summary == "Unassigned"
    assert empty.actions_enabled is True


def test_resubmission_keeps_rejection_reason_and_clears_decision_time() -> None:
    service = load_recording_service()
    workflow = ApprovalWorkflow(service)

    workflow.reject(101, "Please assign a room for every session.")
    service.submit_class(101)

    resubmitted = service.get_class_overview(101)
    assert resubmitted.approval_status == "PENDING"
    assert resubmitted.scheduling_status == "SUBMITTED"
    assert resubmitted.decided_at is None
    assert resubmitted.rejection_reason == "Please assign a room for every session."

    workflow.approve(101)
    approved = service.get_class_overview(101)
    assert approved.approval_status == "APPROVED"
    assert approved.rejection_reason == "Please assign a room for every session."
    assert approved.submitted_at is not None
    assert approved.decided_at is not None
    assert approved.submitted_at <= approved.decided_at
