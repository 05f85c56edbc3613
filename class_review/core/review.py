from __future__ import annotations

from collections.abc import Iterable

from class_review.core.config import ReviewSettings
from class_review.core.models import (
    ApprovalQueueMetrics,
    ClassReview,
    ClassSchedule,
    ReviewIssue,
    SessionsPayload,
)
from class_review.core.readiness import compute_readiness
from class_review.core.resources import summarize_resources
from class_review.core.schedule_days import (
    approval_status_label,
    describe_schedule_days,
    scheduling_status_label,
    summarize_time_slots,
)
from class_review.core.teachers import aggregate_teachers
from class_review.core.weeks import build_week_views


def build_class_review(
    class_id: int,
    overview: ClassSchedule | None,
    sessions_payload: SessionsPayload | None,
    *,
    issues: list[ReviewIssue] | None = None,
    decision_in_flight: bool = False,
    settings: ReviewSettings | None = None,
) -> ClassReview:
    """Compose every reviewer-facing summary from one snapshot of the two reads.

    Either read may be missing; the summaries then fall back to their empty
    forms and approval actions stay disabled without an overview.
    """
    settings = settings or ReviewSettings()
    sessions = sessions_payload.sessions if sessions_payload is not None else []
    weeks = sessions_payload.weeks if sessions_payload is not None else []

    return ClassReview(
        class_id=class_id,
        overview=overview,
        scheduling_status_label=scheduling_status_label(
            overview.scheduling_status if overview else None
        ),
        approval_status_label=approval_status_label(
            overview.approval_status if overview else None
        ),
        schedule_days=describe_schedule_days(
            overview.schedule_days if overview else None,
            overview.schedule_summary if overview else None,
            settings,
        ),
        readiness=compute_readiness(sessions),
        teachers=aggregate_teachers(overview, sessions),
        resources=summarize_resources(overview, sessions, settings),
        time_slot_summary=summarize_time_slots(sessions, settings),
        weeks=build_week_views(weeks, sessions, settings=settings),
        actions_enabled=(
            overview is not None
            and overview.approval_status == "PENDING"
            and not decision_in_flight
        ),
        issues=list(issues or []),
    )


def summarize_approval_queue(classes: Iterable[ClassSchedule]) -> ApprovalQueueMetrics:
    metrics = ApprovalQueueMetrics()
    for item in classes:
        if item.approval_status == "PENDING":
            metrics.pending += 1
        elif item.approval_status == "APPROVED":
            metrics.approved += 1
        elif item.approval_status == "REJECTED":
            metrics.rejected += 1
    return metrics
