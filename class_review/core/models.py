from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

SchedulingStatus = Literal[
    "DRAFT",
    "SUBMITTED",
    "SCHEDULED",
    "ONGOING",
    "COMPLETED",
    "CANCELLED",
]
ApprovalStatus = Literal["PENDING", "APPROVED", "REJECTED"]
SessionStatusFilter = Literal[
    "all",
    "missing_time_slot",
    "missing_resource",
    "missing_teacher",
    "completed",
]
EntityId = int | str


class CollaboratorModel(BaseModel):
    """Shape of data owned by the scheduling service (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeSlotInfo(CollaboratorModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    display_name: str | None = None
    start_time: str | None = None
    end_time: str | None = None


class SessionTeacher(CollaboratorModel):
    teacher_id: EntityId | None = Field(
        default=None,
        validation_alias=AliasChoices("teacherId", "teacher_id", "id"),
    )
    full_name: str | None = None
    name: str | None = None
    email: str | None = None


class Session(CollaboratorModel):
    session_id: EntityId = Field(
        ...,
        validation_alias=AliasChoices("sessionId", "session_id", "id"),
    )
    sequence_number: int | None = None
    date: dt.date | None = None
    day_of_week: str | int | None = None
    course_session_name: str | None = None

    time_slot_name: str | None = None
    time_slot_label: str | None = None
    time_slot_info: TimeSlotInfo | None = None

    resource_name: str | None = None
    resource_display_name: str | None = None
    room: str | None = None

    teachers: list[SessionTeacher] | None = None
    teacher_names: str | None = Field(
        default=None,
        description="Degraded shape: comma-separated teacher names",
    )
    teacher_name: str | None = None

    # Derived from the assignment fields; incoming hasTimeSlot/hasResource/hasTeacher are ignored.
    @computed_field
    @property
    def has_time_slot(self) -> bool:
        from class_review.core.readiness import has_time_slot

        return has_time_slot(self)

    @computed_field
    @property
    def has_resource(self) -> bool:
        from class_review.core.readiness import has_resource

        return has_resource(self)

    @computed_field
    @property
    def has_teacher(self) -> bool:
        from class_review.core.readiness import has_teacher

        return has_teacher(self)


class RosterTeacher(CollaboratorModel):
    id: EntityId | None = None
    teacher_id: EntityId | None = Field(
        default=None,
        validation_alias=AliasChoices("teacherId", "teacher_id"),
    )
    email: str | None = None
    full_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("fullName", "full_name", "name"),
    )
    employee_code: str | None = None
    session_count: int = Field(default=0, ge=0)


class ClassSchedule(CollaboratorModel):
    class_id: int = Field(
        ...,
        validation_alias=AliasChoices("classId", "class_id", "id"),
    )
    code: str | None = None
    name: str | None = None
    scheduling_status: SchedulingStatus | None = Field(
        default=None,
        validation_alias=AliasChoices("schedulingStatus", "scheduling_status", "status"),
    )
    approval_status: ApprovalStatus | None = None
    schedule_days: list[int] | None = None
    schedule_summary: str | None = Field(
        default=None,
        description="Free-text fallback shown when schedule_days is absent",
    )
    submitted_at: dt.datetime | None = None
    decided_at: dt.datetime | None = None
    decided_by_name: str | None = None
    rejection_reason: str | None = None
    room: str | None = Field(
        default=None,
        description="Authoritative assigned resource, when the service provides one",
    )
    teachers: list[RosterTeacher] = Field(default_factory=list)

    @field_validator("submitted_at", "decided_at")
    @classmethod
    def _assume_utc(cls, value: dt.datetime | None) -> dt.datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value

    @model_validator(mode="after")
    def _decision_follows_submission(self) -> ClassSchedule:
        if (
            self.submitted_at is not None
            and self.decided_at is not None
            and self.submitted_at > self.decided_at
        ):
            raise ValueError("decided_at must not be earlier than submitted_at")
        return self


class Week(CollaboratorModel):
    week_number: int
    week_range: str = ""
    session_count: int | None = None
    session_ids: list[EntityId] = Field(default_factory=list)


class SessionsPayload(CollaboratorModel):
    class_id: int | None = None
    sessions: list[Session] = Field(default_factory=list)
    weeks: list[Week] = Field(
        default_factory=list,
        validation_alias=AliasChoices("weeks", "groupedByWeek", "grouped_by_week"),
    )


class CollaboratorReply(BaseModel):
    message: str = ""


class ReadinessSummary(BaseModel):
    total: int = 0
    with_time_slot: int = 0
    with_resource: int = 0
    with_teacher: int = 0

    @computed_field
    @property
    def pending_time_slot(self) -> int:
        return self.total - self.with_time_slot

    @computed_field
    @property
    def pending_resource(self) -> int:
        return self.total - self.with_resource

    @computed_field
    @property
    def pending_teacher(self) -> int:
        return self.total - self.with_teacher

    @computed_field
    @property
    def is_complete(self) -> bool:
        return (
            self.pending_time_slot == 0
            and self.pending_resource == 0
            and self.pending_teacher == 0
        )


class TeacherSummary(BaseModel):
    id: EntityId
    full_name: str
    email: str | None = None
    employee_code: str | None = None
    session_count: int = Field(default=0, ge=0)


class ResourceUsage(BaseModel):
    name: str
    count: int = Field(..., ge=1)


class ResourceSummary(BaseModel):
    source: Literal["assigned", "sessions", "none"]
    names: list[str] = Field(default_factory=list)
    usage: list[ResourceUsage] = Field(default_factory=list)
    label: str


class ScheduleDaysView(BaseModel):
    source: Literal["days", "summary", "unscheduled"]
    days: list[int] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    text: str


class SessionView(BaseModel):
    session_id: EntityId
    sequence_number: int | None = None
    date: dt.date | None = None
    day_of_week: str | int | None = None
    time_slot_label: str | None = None
    resource_label: str | None = None
    teacher_label: str | None = None
    has_time_slot: bool
    has_resource: bool
    has_teacher: bool


class WeekView(BaseModel):
    week_number: int
    week_range: str
    session_count: int
    sessions: list[SessionView] = Field(default_factory=list)


class ReviewIssue(BaseModel):
    source: Literal["overview", "sessions"]
    code: str
    message: str


class ClassReview(BaseModel):
    class_id: int
    overview: ClassSchedule | None = None
    scheduling_status_label: str
    approval_status_label: str
    schedule_days: ScheduleDaysView
    readiness: ReadinessSummary
    teachers: list[TeacherSummary] = Field(default_factory=list)
    resources: ResourceSummary
    time_slot_summary: str
    weeks: list[WeekView] = Field(default_factory=list)
    actions_enabled: bool = False
    issues: list[ReviewIssue] = Field(default_factory=list)


class DecisionOutcome(BaseModel):
    class_id: int
    decision: Literal["approved", "rejected"]
    message: str


class RejectRequest(BaseModel):
    reason: str


class ReviewPreviewRequest(CollaboratorModel):
    class_id: int = 0
    overview: ClassSchedule | None = None
    sessions: list[Session] = Field(default_factory=list)
    weeks: list[Week] = Field(
        default_factory=list,
        validation_alias=AliasChoices("weeks", "groupedByWeek", "grouped_by_week"),
    )


class ApprovalQueueMetrics(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class ClassListResponse(BaseModel):
    classes: list[ClassSchedule] = Field(default_factory=list)
    metrics: ApprovalQueueMetrics


class SessionListResponse(BaseModel):
    class_id: int
    status: SessionStatusFilter = "all"
    week: int | None = None
    session_count: int = 0
    weeks: list[WeekView] = Field(default_factory=list)
