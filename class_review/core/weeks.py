"""Week grouping of a class's sessions for display.

Week buckets normally come from the scheduling service; they are re-exposed
here with their sessions resolved. When the service sends none, sessions are
bucketed into Monday-start calendar weeks locally.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Sequence

from class_review.core.config import ReviewSettings
from class_review.core.models import (
    EntityId,
    Session,
    SessionStatusFilter,
    SessionView,
    Week,
    WeekView,
)
from class_review.core.readiness import has_teacher, session_matches_status
from class_review.core.resources import resolve_session_resource
from class_review.core.schedule_days import resolve_time_slot_label
from class_review.core.teachers import session_teacher_names

WEEK_RANGE_DATE_FORMAT = "%d/%m/%Y"


def build_session_view(session: Session, settings: ReviewSettings | None = None) -> SessionView:
    settings = settings or ReviewSettings()
    time_slot = resolve_time_slot_label(session)
    resource = resolve_session_resource(session)
    teacher_names = session_teacher_names(session)
    return SessionView(
        session_id=session.session_id,
        sequence_number=session.sequence_number,
        date=session.date,
        day_of_week=session.day_of_week,
        time_slot_label=time_slot,
        resource_label=resource,
        teacher_label=settings.label_separator.join(teacher_names) or None,
        has_time_slot=time_slot is not None,
        has_resource=resource is not None,
        has_teacher=has_teacher(session),
    )


def _week_start(day: dt.date) -> dt.date:
    return day - dt.timedelta(days=day.weekday())


def group_sessions_by_week(sessions: Sequence[Session]) -> list[Week]:
    """Bucket dated sessions into Monday-start weeks, numbered from 1."""
    buckets: dict[dt.date, list[Session]] = {}
    for session in sorted(
        (session for session in sessions if session.date is not None),
        key=lambda item: (item.date, item.sequence_number or 0),
    ):
        buckets.setdefault(_week_start(session.date), []).append(session)

    weeks: list[Week] = []
    for number, start in enumerate(sorted(buckets), start=1):
        end = start + dt.timedelta(days=6)
        members = buckets[start]
        weeks.append(
            Week(
                week_number=number,
                week_range=(
                    f"{start.strftime(WEEK_RANGE_DATE_FORMAT)} - "
                    f"{end.strftime(WEEK_RANGE_DATE_FORMAT)}"
                ),
                session_count=len(members),
                session_ids=[session.session_id for session in members],
            )
        )
    return weeks


def build_week_views(
    weeks: Sequence[Week],
    sessions: Sequence[Session],
    *,
    status: SessionStatusFilter = "all",
    week_number: int | None = None,
    settings: ReviewSettings | None = None,
) -> list[WeekView]:
    if not weeks:
        weeks = group_sessions_by_week(sessions)

    session_by_id: dict[EntityId, Session] = {session.session_id: session for session in sessions}
    filtering = status != "all" or week_number is not None

    views: list[WeekView] = []
    for week in weeks:
        if week_number is not None and week.week_number != week_number:
            continue

        members = [
            session_by_id[session_id]
            for session_id in week.session_ids
            if session_id in session_by_id
        ]
        members = [session for session in members if session_matches_status(session, status)]
        if filtering and not members:
            continue

        views.append(
            WeekView(
                week_number=week.week_number,
                week_range=week.week_range,
                session_count=len(members),
                sessions=[build_session_view(session, settings) for session in members],
            )
        )
    return views
