from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from class_review.core.models import (
    ClassSchedule,
    EntityId,
    RosterTeacher,
    Session,
    SessionTeacher,
    TeacherSummary,
)

DEFAULT_TEACHER_NAME = "Teacher"


@dataclass(frozen=True)
class StructuredAssignment:
    session_id: EntityId
    teachers: tuple[SessionTeacher, ...]


@dataclass(frozen=True)
class NameListAssignment:
    session_id: EntityId
    names: tuple[str, ...]


SessionAssignment = StructuredAssignment | NameListAssignment


@dataclass(frozen=True)
class RosterSource:
    teachers: tuple[RosterTeacher, ...]


@dataclass(frozen=True)
class SessionSource:
    assignments: tuple[SessionAssignment, ...]


TeacherSource = RosterSource | SessionSource


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def split_teacher_names(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def resolve_session_assignment(session: Session) -> SessionAssignment | None:
    if session.teachers:
        return StructuredAssignment(session_id=session.session_id, teachers=tuple(session.teachers))

    names = split_teacher_names(session.teacher_names or session.teacher_name)
    if names:
        return NameListAssignment(session_id=session.session_id, names=names)
    return None


def session_teacher_names(session: Session) -> list[str]:
    assignment = resolve_session_assignment(session)
    if isinstance(assignment, StructuredAssignment):
        return [
            teacher.full_name or teacher.name or DEFAULT_TEACHER_NAME
            for teacher in assignment.teachers
        ]
    if isinstance(assignment, NameListAssignment):
        return list(assignment.names)
    return []


def resolve_teacher_source(
    overview: ClassSchedule | None,
    sessions: Iterable[Session],
) -> TeacherSource:
    if overview is not None and overview.teachers:
        return RosterSource(teachers=tuple(overview.teachers))

    assignments = []
    for session in sessions:
        assignment = resolve_session_assignment(session)
        if assignment is not None:
            assignments.append(assignment)
    return SessionSource(assignments=tuple(assignments))


def _summaries_from_roster(teachers: Sequence[RosterTeacher]) -> list[TeacherSummary]:
    summaries: list[TeacherSummary] = []
    for index, teacher in enumerate(teachers):
        identity = _first_present(teacher.id, teacher.teacher_id, teacher.email, teacher.full_name)
        summaries.append(
            TeacherSummary(
                id=identity if identity is not None else f"roster-{index}",
                full_name=teacher.full_name or DEFAULT_TEACHER_NAME,
                email=teacher.email,
                employee_code=teacher.employee_code,
                session_count=teacher.session_count,
            )
        )
    return summaries


def _summaries_from_sessions(assignments: Sequence[SessionAssignment]) -> list[TeacherSummary]:
    counts: dict[EntityId, TeacherSummary] = {}

    def record(key: EntityId, full_name: str, email: str | None = None) -> None:
        existing = counts.get(key)
        if existing is None:
            counts[key] = TeacherSummary(id=key, full_name=full_name, email=email, session_count=1)
        else:
            existing.session_count += 1

    for assignment in assignments:
        if isinstance(assignment, StructuredAssignment):
            for teacher in assignment.teachers:
                key = _first_present(
                    teacher.teacher_id,
                    teacher.full_name,
                    teacher.name,
                    assignment.session_id,
                )
                record(key, teacher.full_name or teacher.name or DEFAULT_TEACHER_NAME, teacher.email)
        else:
            # No identity survives in the comma-separated shape, so the key is
            # scoped to the session and the same name in two sessions stays two rows.
            for index, name in enumerate(assignment.names):
                record(f"{assignment.session_id}-{index}-{name}", name)

    return list(counts.values())


def aggregate_teachers(
    overview: ClassSchedule | None,
    sessions: Iterable[Session],
) -> list[TeacherSummary]:
    """Build the class teacher roster with per-teacher session counts.

    The class-level roster is used as-is when present. Otherwise every
    session-teacher pairing adds one to that teacher's count, in first-seen
    order.
    """
    source = resolve_teacher_source(overview, sessions)
    if isinstance(source, RosterSource):
        return _summaries_from_roster(source.teachers)
    return _summaries_from_sessions(source.assignments)
