from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from class_review.core.config import ReviewSettings
from class_review.core.models import ClassSchedule, ResourceSummary, ResourceUsage, Session


def resolve_session_resource(session: Session) -> str | None:
    return session.resource_name or session.resource_display_name or session.room or None


def summarize_resources(
    overview: ClassSchedule | None,
    sessions: Iterable[Session],
    settings: ReviewSettings | None = None,
) -> ResourceSummary:
    """Roll per-session resources up into names ordered by how often they are used.

    An assigned room on the class wins outright. Otherwise every distinct
    resource is kept, most used first; ties stay in first-seen order.
    """
    settings = settings or ReviewSettings()

    if overview is not None and overview.room:
        return ResourceSummary(source="assigned", names=[overview.room], label=overview.room)

    counts: Counter[str] = Counter()
    for session in sessions:
        resource = resolve_session_resource(session)
        if resource:
            counts[resource] += 1

    if not counts:
        return ResourceSummary(source="none", label=settings.unassigned_label)

    # sorted() is stable and Counter keeps insertion order, so ties stay first-seen.
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    names = [name for name, _ in ranked]
    return ResourceSummary(
        source="sessions",
        names=names,
        usage=[ResourceUsage(name=name, count=count) for name, count in ranked],
        label=settings.label_separator.join(names),
    )
