"""Domain models for the academic scheduling service."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator


class TeacherStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ContractType(StrEnum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    HOURLY = "hourly"


class ClassroomType(StrEnum):
    CLASSROOM = "classroom"
    LAB = "lab"


class ConflictKind(StrEnum):
    """Kinds of findings, declared in report order."""

    TEACHER_DOUBLE_BOOKING = "teacher_double_booking"
    CLASSROOM_DOUBLE_BOOKING = "classroom_double_booking"
    GROUP_DOUBLE_BOOKING = "group_double_booking"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    TEACHER_UNAVAILABLE = "teacher_unavailable"
    TEACHER_OVERLOADED = "teacher_overloaded"
    SPECIALTY_MISMATCH = "specialty_mismatch"
    INACTIVE_TEACHER = "inactive_teacher"
    DANGLING_REFERENCE = "dangling_reference"
    INVALID_DATA = "invalid_data"


class Severity(StrEnum):
    HARD = "hard"
    SOFT = "soft"
    DATA = "data"


CONFLICT_SEVERITY: dict[ConflictKind, Severity] = {
    ConflictKind.TEACHER_DOUBLE_BOOKING: Severity.HARD,
    ConflictKind.CLASSROOM_DOUBLE_BOOKING: Severity.HARD,
    ConflictKind.GROUP_DOUBLE_BOOKING: Severity.HARD,
    ConflictKind.CAPACITY_EXCEEDED: Severity.HARD,
    ConflictKind.TEACHER_UNAVAILABLE: Severity.HARD,
    ConflictKind.TEACHER_OVERLOADED: Severity.SOFT,
    ConflictKind.SPECIALTY_MISMATCH: Severity.SOFT,
    ConflictKind.INACTIVE_TEACHER: Severity.SOFT,
    ConflictKind.DANGLING_REFERENCE: Severity.DATA,
    ConflictKind.INVALID_DATA: Severity.DATA,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Stored entities
#
# No range validation here: inverted ranges or zero capacities must reach
# the conflict detector, which reports them.
# ---------------------------------------------------------------------------


class Career(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str


class Group(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    career_id: str | None = None
    semester: int = 1
    student_count: int = 0


class Module(BaseModel):
    """A subject of the curriculum; courses teach it, teachers specialise in it."""

    id: str = Field(default_factory=_new_id)
    name: str
    description: str | None = None
    total_hours: float | None = None


class Course(BaseModel):
    """A module taught to one group during the term."""

    id: str = Field(default_factory=_new_id)
    name: str
    module_id: str | None = None
    group_id: str
    total_hours: float | None = None
    duration_weeks: int | None = None


class AvailabilityWindow(BaseModel):
    day: str
    start_time: time
    end_time: time


class Teacher(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    email: str | None = None
    contract_type: ContractType = ContractType.FULL_TIME
    max_weekly_hours: float | None = None
    specialties: list[str] = Field(default_factory=list)
    availability: list[AvailabilityWindow] = Field(default_factory=list)
    status: TeacherStatus = TeacherStatus.ACTIVE


class Classroom(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    capacity: int
    type: ClassroomType = ClassroomType.CLASSROOM


class ScheduleEvent(BaseModel):
    """One recurring weekly session spanning ``start_week..end_week``."""

    id: str = Field(default_factory=_new_id)
    course_id: str
    teacher_id: str
    classroom_id: str
    day: str
    start_time: time
    end_time: time
    start_week: int
    end_week: int


class CourseOffering(BaseModel):
    """A course joined with its group: what the detector sees as a group.

    ``student_count`` is ``None`` when the group record is missing.
    """

    id: str
    name: str | None = None
    group_id: str
    career_id: str | None = None
    semester: int | None = None
    student_count: int | None = None
    module_id: str | None = None


# ---------------------------------------------------------------------------
# Detection results
# ---------------------------------------------------------------------------


class Conflict(BaseModel):
    kind: ConflictKind
    severity: Severity
    event_ids: list[str] = Field(default_factory=list)
    resource_id: str | None = None
    message: str
    details: dict = Field(default_factory=dict)


class ConflictReport(BaseModel):
    conflicts: list[Conflict] = Field(default_factory=list)
    counts: dict[ConflictKind, int] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_valid(self) -> bool:
        return not self.conflicts

    @classmethod
    def from_conflicts(cls, conflicts: list[Conflict]) -> ConflictReport:
        counts: dict[ConflictKind, int] = {}
        for conflict in conflicts:
            counts[conflict.kind] = counts.get(conflict.kind, 0) + 1
        return cls(conflicts=conflicts, counts=counts)


class Snapshot(BaseModel):
    """Everything the detector needs for one evaluation."""

    events: list[ScheduleEvent] = Field(default_factory=list)
    teachers: list[Teacher] = Field(default_factory=list)
    classrooms: list[Classroom] = Field(default_factory=list)
    groups: list[CourseOffering] = Field(default_factory=list)
    # None skips the module reference checks
    modules: list[Module] | None = None


class Advisory(BaseModel):
    summary: str
    suggestions: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class ReportResponse(BaseModel):
    is_valid: bool
    conflicts: list[Conflict]
    counts: dict[ConflictKind, int]
    generated_at: datetime

    @classmethod
    def from_report(cls, report: ConflictReport) -> ReportResponse:
        return cls(
            is_valid=report.is_valid,
            conflicts=report.conflicts,
            counts=report.counts,
            generated_at=report.generated_at,
        )


class AnalysisRequest(BaseModel):
    """Optional priorities overriding the default severity of each kind."""

    constraint_priorities: dict[ConflictKind, Severity] = Field(default_factory=dict)


class AnalysisResponse(BaseModel):
    report: ReportResponse
    advisory: Advisory | None = None
    advisory_error: str | None = None


def _wall_clock(value: time) -> time:
    if value.tzinfo is not None:
        raise ValueError("times are local wall-clock times and must not carry a UTC offset")
    return value


class CareerRequest(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)


class ModuleRequest(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    description: str | None = None
    total_hours: float = Field(default=40, ge=1)


class CourseRequest(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    module_id: str | None = None
    group_id: str = Field(min_length=1)
    total_hours: float | None = Field(default=None, ge=0)
    duration_weeks: int | None = Field(default=None, ge=1)


class GroupRequest(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    career_id: str | None = None
    semester: int = Field(default=1, ge=1)
    student_count: int = Field(ge=1)


class ClassroomRequest(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    type: ClassroomType = ClassroomType.CLASSROOM


class TeacherRequest(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    email: str | None = None
    contract_type: ContractType = ContractType.FULL_TIME
    max_weekly_hours: float | None = Field(default=None, gt=0)
    specialties: list[str] = Field(default_factory=list)
    availability: list[AvailabilityWindow] = Field(default_factory=list)
    status: TeacherStatus = TeacherStatus.ACTIVE

    @model_validator(mode="after")
    def _windows_are_ordered(self) -> TeacherRequest:
        for window in self.availability:
            _wall_clock(window.start_time)
            _wall_clock(window.end_time)
            if window.end_time <= window.start_time:
                raise ValueError("availability end_time must be after start_time")
        return self


class EventRequest(BaseModel):
    """A session to store; weeks may be given directly or as term dates."""

    id: str | None = None
    course_id: str
    teacher_id: str
    classroom_id: str
    day: str
    start_time: time
    end_time: time
    start_week: int | None = Field(default=None, ge=1)
    end_week: int | None = Field(default=None, ge=1)
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _no_offset(cls, value: time) -> time:
        return _wall_clock(value)

    @model_validator(mode="after")
    def _check_ranges(self) -> EventRequest:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        has_weeks = self.start_week is not None and self.end_week is not None
        has_dates = self.start_date is not None and self.end_date is not None
        if not has_weeks and not has_dates:
            raise ValueError("either start_week/end_week or start_date/end_date is required")
        if has_weeks and self.end_week < self.start_week:
            raise ValueError("end_week must not precede start_week")
        if has_dates and self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self
