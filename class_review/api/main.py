from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query

from class_review.core.config import load_settings
from class_review.core.errors import (
    CollaboratorError,
    DecisionValidationError,
    NotFoundError,
    ReviewError,
    StateConflictError,
)
from class_review.core.models import (
    ApprovalStatus,
    ClassListResponse,
    ClassReview,
    DecisionOutcome,
    RejectRequest,
    ReviewPreviewRequest,
    SchedulingStatus,
    SessionListResponse,
    SessionsPayload,
    SessionStatusFilter,
)
from class_review.core.review import build_class_review, summarize_approval_queue
from class_review.core.scheduling_service import (
    InMemorySchedulingService,
    load_service_from_json,
)
from class_review.core.weeks import build_week_views
from class_review.core.workflow import ApprovalWorkflow
from class_review.utils.logging import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Class Session Readiness & Approval",
    description=(
        "Readiness, teacher and resource summaries for submitted class schedules, "
        "and the approve/reject workflow that gates whether a class goes live."
    ),
    version="1.0.0",
)

_STATUS_BY_ERROR: tuple[tuple[type[ReviewError], int], ...] = (
    (DecisionValidationError, 422),
    (StateConflictError, 409),
    (NotFoundError, 404),
    (CollaboratorError, 502),
)


def _http_error(exc: ReviewError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.to_detail())
    return HTTPException(status_code=400, detail=exc.to_detail())


@lru_cache(maxsize=1)
def get_workflow() -> ApprovalWorkflow:
    settings = load_settings()
    if settings.seed_path:
        service = load_service_from_json(settings.seed_path)
    else:
        service = InMemorySchedulingService()
    return ApprovalWorkflow(service, settings=settings)


WorkflowDep = Annotated[ApprovalWorkflow, Depends(get_workflow)]


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/classes", response_model=ClassListResponse)
def list_classes(
    workflow: WorkflowDep,
    approval_status: Annotated[ApprovalStatus | None, Query()] = None,
    scheduling_status: Annotated[SchedulingStatus | None, Query()] = None,
    search: Annotated[str | None, Query(description="Matches class code or name")] = None,
) -> ClassListResponse:
    try:
        classes = workflow.service.list_classes(
            approval_status=approval_status,
            scheduling_status=scheduling_status,
            search=search,
        )
        everything = workflow.service.list_classes()
    except ReviewError as exc:
        raise _http_error(exc) from exc

    return ClassListResponse(classes=classes, metrics=summarize_approval_queue(everything))


@app.get("/classes/{class_id}/review", response_model=ClassReview)
def get_class_review(class_id: int, workflow: WorkflowDep) -> ClassReview:
    try:
        review = workflow.load_review(class_id)
    except ReviewError as exc:
        raise _http_error(exc) from exc

    logger.info(
        "Review built class_id=%s sessions=%d teachers=%d issues=%d",
        class_id,
        review.readiness.total,
        len(review.teachers),
        len(review.issues),
    )
    return review


@app.get("/classes/{class_id}/sessions", response_model=SessionListResponse)
def get_class_sessions(
    class_id: int,
    workflow: WorkflowDep,
    status: Annotated[SessionStatusFilter, Query(description="Session readiness filter")] = "all",
    week: Annotated[int | None, Query(ge=1)] = None,
) -> SessionListResponse:
    try:
        payload: SessionsPayload = workflow.service.get_sessions(class_id)
    except ReviewError as exc:
        raise _http_error(exc) from exc

    weeks = build_week_views(payload.weeks, payload.sessions, status=status, week_number=week)
    return SessionListResponse(
        class_id=class_id,
        status=status,
        week=week,
        session_count=sum(item.session_count for item in weeks),
        weeks=weeks,
    )


@app.post("/classes/{class_id}/approve", response_model=DecisionOutcome)
def approve_class(class_id: int, workflow: WorkflowDep) -> DecisionOutcome:
    try:
        return workflow.approve(class_id)
    except ReviewError as exc:
        raise _http_error(exc) from exc


@app.post("/classes/{class_id}/reject", response_model=DecisionOutcome)
def reject_class(class_id: int, payload: RejectRequest, workflow: WorkflowDep) -> DecisionOutcome:
    try:
        return workflow.reject(class_id, payload.reason)
    except ReviewError as exc:
        raise _http_error(exc) from exc


@app.post("/reviews/preview", response_model=ClassReview)
def preview_review(payload: ReviewPreviewRequest) -> ClassReview:
    class_id = payload.overview.class_id if payload.overview else payload.class_id
    review = build_class_review(
        class_id,
        payload.overview,
        SessionsPayload(class_id=class_id, sessions=payload.sessions, weeks=payload.weeks),
    )
    logger.info(
        "Preview built class_id=%s sessions=%d complete=%s",
        class_id,
        review.readiness.total,
        review.readiness.is_complete,
    )
    return review
