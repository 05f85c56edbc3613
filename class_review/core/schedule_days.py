from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from class_review.core.config import ReviewSettings
from class_review.core.models import ScheduleDaysView, Session

DAY_LABELS: dict[int, str] = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}

SCHEDULING_STATUS_LABELS: dict[str, str] = {
    "DRAFT": "Draft",
    "SUBMITTED": "Submitted for review",
    "SCHEDULED": "Scheduled",
    "ONGOING": "Ongoing",
    "COMPLETED": "Completed",
    "CANCELLED": "Cancelled",
}

APPROVAL_STATUS_LABELS: dict[str, str] = {
    "PENDING": "Pending review",
    "APPROVED": "Approved",
    "REJECTED": "Returned for changes",
}

UNKNOWN_STATUS_LABEL = "Unknown"


def _as_weekday(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value % 7
    if isinstance(value, float) and value.is_integer():
        return int(value) % 7
    return None


def normalize_days(days: Iterable[Any] | None) -> list[int]:
    """Fold weekday integers into 0..6 (0 = Sunday), deduplicated and ascending.

    Integral floats such as ``4.0`` count as integers; other values are ignored.
    """
    if not days:
        return []
    folded = {day for day in map(_as_weekday, days) if day is not None}
    return sorted(folded)


def describe_schedule_days(
    days: Iterable[Any] | None,
    fallback: str | None = None,
    settings: ReviewSettings | None = None,
) -> ScheduleDaysView:
    settings = settings or ReviewSettings()
    normalized = normalize_days(days)
    if normalized:
        labels = [DAY_LABELS[day] for day in normalized]
        return ScheduleDaysView(
            source="days",
            days=normalized,
            labels=labels,
            text=settings.label_separator.join(labels),
        )

    if fallback and fallback.strip():
        return ScheduleDaysView(source="summary", text=fallback)

    return ScheduleDaysView(source="unscheduled", text=settings.unscheduled_label)


def resolve_time_slot_label(session: Session) -> str | None:
    if session.time_slot_name:
        return session.time_slot_name
    if session.time_slot_label:
        return session.time_slot_label

    info = session.time_slot_info
    if info is None:
        return None
    if info.display_name:
        return info.display_name
    if info.start_time and info.end_time:
        return f"{info.start_time} - {info.end_time}"
    return None


def summarize_time_slots(
    sessions: Iterable[Session],
    settings: ReviewSettings | None = None,
) -> str:
    settings = settings or ReviewSettings()
    labels: dict[str, None] = {}
    for session in sessions:
        label = resolve_time_slot_label(session)
        if label:
            labels.setdefault(label, None)

    if not labels:
        return settings.unassigned_label
    return settings.label_separator.join(labels)


def scheduling_status_label(status: str | None) -> str:
    if not status:
        return UNKNOWN_STATUS_LABEL
    return SCHEDULING_STATUS_LABELS.get(status, status)


def approval_status_label(status: str | None) -> str:
    if not status:
        return UNKNOWN_STATUS_LABEL
    return APPROVAL_STATUS_LABELS.get(status, status)
