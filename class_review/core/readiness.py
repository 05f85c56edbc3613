from __future__ import annotations

from collections.abc import Iterable

from class_review.core.models import ReadinessSummary, Session, SessionStatusFilter
from class_review.core.resources import resolve_session_resource
from class_review.core.schedule_days import resolve_time_slot_label
from class_review.core.teachers import resolve_session_assignment


def has_time_slot(session: Session) -> bool:
    return resolve_time_slot_label(session) is not None


def has_resource(session: Session) -> bool:
    return resolve_session_resource(session) is not None


def has_teacher(session: Session) -> bool:
    return resolve_session_assignment(session) is not None


def compute_readiness(sessions: Iterable[Session]) -> ReadinessSummary:
    summary = ReadinessSummary()
    for session in sessions:
        summary.total += 1
        summary.with_time_slot += has_time_slot(session)
        summary.with_resource += has_resource(session)
        summary.with_teacher += has_teacher(session)
    return summary


def session_matches_status(session: Session, status: SessionStatusFilter) -> bool:
    if status == "missing_time_slot":
        return not has_time_slot(session)
    if status == "missing_resource":
        return not has_resource(session)
    if status == "missing_teacher":
        return not has_teacher(session)
    if status == "completed":
        return has_time_slot(session) and has_resource(session) and has_teacher(session)
    return True


def filter_sessions(
    sessions: Iterable[Session],
    status: SessionStatusFilter = "all",
) -> list[Session]:
    return [session for session in sessions if session_matches_status(session, status)]
