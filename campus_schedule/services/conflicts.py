"""Service for detecting scheduling conflicts in a schedule snapshot.

``detect_conflicts`` is a pure function: it never mutates its inputs, keeps
no state between calls and returns the same ordered list for the same
snapshot.

Overlap rule: two sessions overlap when they fall on the same day, their
week ranges intersect and ``start < other.end AND other.start < end``.
Exact boundary touches (end == start) are NOT considered conflicts.

Times are local wall-clock times; a time carrying a UTC offset is reported
as invalid data rather than compared.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import time
from itertools import combinations

from campus_schedule.core.exceptions import InvalidArgumentError
from campus_schedule.domain.models import (
    CONFLICT_SEVERITY,
    AvailabilityWindow,
    Classroom,
    Conflict,
    ConflictKind,
    CourseOffering,
    Module,
    ScheduleEvent,
    Snapshot,
    Teacher,
    TeacherStatus,
)
from campus_schedule.services.calendar import normalize_day, seconds_of_day, session_hours

logger = logging.getLogger(__name__)

DEFAULT_TERM_WEEKS = 20

_KIND_RANK = {kind: rank for rank, kind in enumerate(ConflictKind)}


@dataclass(frozen=True)
class _Slot:
    """Validated interval of one event: ``(day, weeks, seconds-of-day)``."""

    event: ScheduleEvent
    day: str
    start: int
    end: int

    @property
    def hours(self) -> float:
        return session_hours(self.event.start_time, self.event.end_time)

    def overlaps(self, other: _Slot) -> bool:
        return (
            self.day == other.day
            and max(self.event.start_week, other.event.start_week)
            <= min(self.event.end_week, other.event.end_week)
            and self.start < other.end
            and other.start < self.end
        )


def detect_conflicts(
    events: Iterable[ScheduleEvent],
    teachers: Mapping[str, Teacher],
    classrooms: Mapping[str, Classroom],
    groups: Mapping[str, CourseOffering],
    *,
    term_weeks: int = DEFAULT_TERM_WEEKS,
    modules: Mapping[str, Module] | None = None,
) -> list[Conflict]:
    """Return every conflict in the snapshot, in report order.

    Raises ``InvalidArgumentError`` only when a collection is ``None`` or
    *term_weeks* is not positive. Missing references and malformed records
    are reported as ``DANGLING_REFERENCE`` / ``INVALID_DATA`` findings.
    Module references (course modules, teacher specialties) are checked
    only when a *modules* table is given.
    """
    for name, value in (
        ("events", events),
        ("teachers", teachers),
        ("classrooms", classrooms),
        ("groups", groups),
    ):
        if value is None:
            raise InvalidArgumentError(
                f"{name} collection is required", details={"argument": name}
            )
    if term_weeks < 1:
        raise InvalidArgumentError(
            "term_weeks must be at least 1", details={"term_weeks": term_weeks}
        )

    unique = _dedupe(events)
    conflicts: list[Conflict] = []
    slots: list[_Slot] = []

    for event in unique:
        problems = _event_problems(event, term_weeks)
        conflicts.extend(problems)
        conflicts.extend(_dangling_references(event, teachers, classrooms, groups))
        if not problems:
            slots.append(
                _Slot(
                    event=event,
                    day=normalize_day(event.day),
                    start=seconds_of_day(event.start_time),
                    end=seconds_of_day(event.end_time),
                )
            )

    conflicts.extend(_resource_problems(teachers, classrooms, groups))
    conflicts.extend(_offering_references(unique, groups, modules))
    if modules is not None:
        conflicts.extend(_specialty_references(teachers, modules))

    # -- pairwise ---------------------------------------------------------
    conflicts.extend(
        _double_bookings(
            slots,
            ConflictKind.TEACHER_DOUBLE_BOOKING,
            "Teacher",
            lambda s: s.event.teacher_id,
        )
    )
    conflicts.extend(
        _double_bookings(
            slots,
            ConflictKind.CLASSROOM_DOUBLE_BOOKING,
            "Classroom",
            lambda s: s.event.classroom_id,
        )
    )
    conflicts.extend(
        _double_bookings(
            slots,
            ConflictKind.GROUP_DOUBLE_BOOKING,
            "Group",
            lambda s: _group_of(s.event, groups),
        )
    )

    # -- per event --------------------------------------------------------
    for slot in slots:
        event = slot.event
        teacher = teachers.get(event.teacher_id)
        classroom = classrooms.get(event.classroom_id)
        offering = groups.get(event.course_id)

        if classroom is not None and offering is not None and offering.student_count is not None:
            conflicts.extend(_capacity(slot, classroom, offering))
        if teacher is not None:
            conflicts.extend(_availability(slot, teacher))
            conflicts.extend(_specialty(slot, teacher, offering))
            if teacher.status == TeacherStatus.INACTIVE:
                conflicts.append(
                    _conflict(
                        ConflictKind.INACTIVE_TEACHER,
                        [event.id],
                        teacher.id,
                        f"Event {event.id} is assigned to inactive teacher {teacher.id}",
                    )
                )

    # -- per teacher ------------------------------------------------------
    by_teacher: dict[str, list[_Slot]] = defaultdict(list)
    for slot in slots:
        by_teacher[slot.event.teacher_id].append(slot)
    for teacher_id, teacher_slots in by_teacher.items():
        teacher = teachers.get(teacher_id)
        if teacher is not None:
            conflicts.extend(_overload(teacher, teacher_slots))

    conflicts.sort(key=_sort_key)
    logger.debug(
        "Checked %d events (%d valid): %d conflicts", len(unique), len(slots), len(conflicts)
    )
    return conflicts


def detect_in_snapshot(
    snapshot: Snapshot, *, term_weeks: int = DEFAULT_TERM_WEEKS
) -> list[Conflict]:
    """Run :func:`detect_conflicts` over the lists of a snapshot."""
    return detect_conflicts(
        snapshot.events,
        index_by_id(snapshot.teachers),
        index_by_id(snapshot.classrooms),
        index_by_id(snapshot.groups),
        term_weeks=term_weeks,
        modules=None if snapshot.modules is None else index_by_id(snapshot.modules),
    )


def index_by_id(items: Iterable) -> dict:
    """Build an id-keyed lookup table, keeping the first item per id."""
    table: dict = {}
    for item in items:
        table.setdefault(item.id, item)
    return table


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _conflict(
    kind: ConflictKind,
    event_ids: list[str],
    resource_id: str | None,
    message: str,
    **details,
) -> Conflict:
    return Conflict(
        kind=kind,
        severity=CONFLICT_SEVERITY[kind],
        event_ids=sorted(event_ids),
        resource_id=resource_id,
        message=message,
        details=details,
    )


def _sort_key(conflict: Conflict) -> tuple:
    return (
        _KIND_RANK[conflict.kind],
        tuple(conflict.event_ids),
        conflict.resource_id or "",
        conflict.message,
    )


def _fmt_time(seconds: int) -> str:
    return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"


def _fmt_hours(hours: float) -> str:
    return f"{round(hours, 2):g}"


def _dedupe(events: Iterable[ScheduleEvent]) -> list[ScheduleEvent]:
    seen: set[str] = set()
    unique: list[ScheduleEvent] = []
    for event in events:
        if event.id in seen:
            logger.debug("Ignoring duplicate event id %s", event.id)
            continue
        seen.add(event.id)
        unique.append(event)
    return unique


def _group_of(event: ScheduleEvent, groups: Mapping[str, CourseOffering]) -> str | None:
    offering = groups.get(event.course_id)
    return offering.group_id if offering is not None else None


def _has_offset(value: time) -> bool:
    return value.tzinfo is not None


def _usable_window(window: AvailabilityWindow) -> bool:
    return (
        normalize_day(window.day) is not None
        and not _has_offset(window.start_time)
        and not _has_offset(window.end_time)
        and seconds_of_day(window.start_time) < seconds_of_day(window.end_time)
    )


def _event_problems(event: ScheduleEvent, term_weeks: int) -> list[Conflict]:
    """Data-quality findings that make an event unusable for other checks."""
    problems: list[str] = []
    if normalize_day(event.day) is None:
        problems.append(f"unknown day {event.day!r}")
    offsets = [
        label
        for label, value in (("start", event.start_time), ("end", event.end_time))
        if _has_offset(value)
    ]
    if offsets:
        problems.append(
            f"{' and '.join(offsets)} time carries a UTC offset; "
            "session times must be local wall-clock times"
        )
    if seconds_of_day(event.end_time) <= seconds_of_day(event.start_time):
        problems.append(
            f"start time {event.start_time:%H:%M} is not before end time "
            f"{event.end_time:%H:%M}"
        )
    if event.start_week > event.end_week:
        problems.append(
            f"start week {event.start_week} is after end week {event.end_week}"
        )
    if event.start_week < 1 or event.end_week > term_weeks:
        problems.append(
            f"weeks {event.start_week}-{event.end_week} fall outside the "
            f"term (1-{term_weeks})"
        )
    return [
        _conflict(
            ConflictKind.INVALID_DATA,
            [event.id],
            event.id,
            f"Event {event.id}: {problem}",
        )
        for problem in problems
    ]


def _dangling_references(
    event: ScheduleEvent,
    teachers: Mapping[str, Teacher],
    classrooms: Mapping[str, Classroom],
    groups: Mapping[str, CourseOffering],
) -> list[Conflict]:
    found: list[Conflict] = []
    for label, ref, table in (
        ("teacher", event.teacher_id, teachers),
        ("classroom", event.classroom_id, classrooms),
        ("course", event.course_id, groups),
    ):
        if ref not in table:
            found.append(
                _conflict(
                    ConflictKind.DANGLING_REFERENCE,
                    [event.id],
                    ref,
                    f"Event {event.id} references missing {label} {ref}",
                    reference=label,
                )
            )
    return found


def _resource_problems(
    teachers: Mapping[str, Teacher],
    classrooms: Mapping[str, Classroom],
    groups: Mapping[str, CourseOffering],
) -> list[Conflict]:
    found: list[Conflict] = []
    for classroom in classrooms.values():
        if classroom.capacity <= 0:
            found.append(
                _conflict(
                    ConflictKind.INVALID_DATA,
                    [],
                    classroom.id,
                    f"Classroom {classroom.id} has non-positive capacity {classroom.capacity}",
                )
            )
    for offering in groups.values():
        if offering.student_count is not None and offering.student_count < 0:
            found.append(
                _conflict(
                    ConflictKind.INVALID_DATA,
                    [],
                    offering.id,
                    f"Course {offering.id} has negative student count {offering.student_count}",
                )
            )
    for teacher in teachers.values():
        if teacher.max_weekly_hours is not None and teacher.max_weekly_hours < 0:
            found.append(
                _conflict(
                    ConflictKind.INVALID_DATA,
                    [],
                    teacher.id,
                    f"Teacher {teacher.id} has negative weekly maximum "
                    f"{_fmt_hours(teacher.max_weekly_hours)}",
                )
            )
        for window in teacher.availability:
            if not _usable_window(window):
                found.append(
                    _conflict(
                        ConflictKind.INVALID_DATA,
                        [],
                        teacher.id,
                        f"Teacher {teacher.id} has an unusable availability window "
                        f"{window.day} {window.start_time:%H:%M}-{window.end_time:%H:%M}",
                    )
                )
    return found


def _offering_references(
    events: list[ScheduleEvent],
    groups: Mapping[str, CourseOffering],
    modules: Mapping[str, Module] | None,
) -> list[Conflict]:
    """Missing groups and modules behind the course offerings."""
    events_by_course: dict[str, list[str]] = defaultdict(list)
    for event in events:
        events_by_course[event.course_id].append(event.id)

    found: list[Conflict] = []
    for offering in groups.values():
        event_ids = events_by_course.get(offering.id, [])
        # A missing group record leaves the offering without a student count.
        if offering.student_count is None:
            found.append(
                _conflict(
                    ConflictKind.DANGLING_REFERENCE,
                    event_ids,
                    offering.group_id,
                    f"Course {offering.id} references missing group {offering.group_id}",
                    reference="group",
                    course_id=offering.id,
                )
            )
        if modules is not None and offering.module_id and offering.module_id not in modules:
            found.append(
                _conflict(
                    ConflictKind.DANGLING_REFERENCE,
                    event_ids,
                    offering.module_id,
                    f"Course {offering.id} references missing module {offering.module_id}",
                    reference="module",
                    course_id=offering.id,
                )
            )
    return found


def _specialty_references(
    teachers: Mapping[str, Teacher], modules: Mapping[str, Module]
) -> list[Conflict]:
    return [
        _conflict(
            ConflictKind.DANGLING_REFERENCE,
            [],
            module_id,
            f"Teacher {teacher.id} lists missing module {module_id} as a specialty",
            reference="specialty",
            teacher_id=teacher.id,
        )
        for teacher in teachers.values()
        for module_id in teacher.specialties
        if module_id not in modules
    ]


def _double_bookings(
    slots: list[_Slot],
    kind: ConflictKind,
    label: str,
    key: Callable[[_Slot], str | None],
) -> list[Conflict]:
    """Report each overlapping pair sharing a resource exactly once."""
    buckets: dict[tuple[str, str], list[_Slot]] = defaultdict(list)
    for slot in slots:
        resource_id = key(slot)
        if resource_id:
            buckets[(slot.day, resource_id)].append(slot)

    found: list[Conflict] = []
    for (day, resource_id), bucket in buckets.items():
        bucket.sort(key=lambda s: s.event.id)
        for a, b in combinations(bucket, 2):
            if not a.overlaps(b):
                continue
            first_week = max(a.event.start_week, b.event.start_week)
            last_week = min(a.event.end_week, b.event.end_week)
            start, end = max(a.start, b.start), min(a.end, b.end)
            found.append(
                _conflict(
                    kind,
                    [a.event.id, b.event.id],
                    resource_id,
                    f"{label} {resource_id} is double-booked on {day} "
                    f"{_fmt_time(start)}-{_fmt_time(end)}, weeks {first_week}-{last_week}: "
                    f"events {a.event.id} and {b.event.id}",
                    day=day,
                    start_time=_fmt_time(start),
                    end_time=_fmt_time(end),
                    start_week=first_week,
                    end_week=last_week,
                )
            )
    return found


def _capacity(slot: _Slot, classroom: Classroom, offering: CourseOffering) -> list[Conflict]:
    if offering.student_count <= classroom.capacity:
        return []
    return [
        _conflict(
            ConflictKind.CAPACITY_EXCEEDED,
            [slot.event.id],
            classroom.id,
            f"Classroom {classroom.id} capacity {classroom.capacity} exceeded by "
            f"group of {offering.student_count} "
            f"({offering.student_count} > {classroom.capacity})",
            capacity=classroom.capacity,
            student_count=offering.student_count,
            group_id=offering.group_id,
        )
    ]


def _availability(slot: _Slot, teacher: Teacher) -> list[Conflict]:
    # No declared availability means no constraint.
    if not teacher.availability:
        return []

    windows = [
        (seconds_of_day(w.start_time), seconds_of_day(w.end_time))
        for w in teacher.availability
        if _usable_window(w) and normalize_day(w.day) == slot.day
    ]
    if any(start <= slot.start and slot.end <= end for start, end in windows):
        return []

    if windows:
        declared = ", ".join(f"{_fmt_time(s)}-{_fmt_time(e)}" for s, e in sorted(windows))
        reason = f"declared {slot.day} availability: {declared}"
    else:
        reason = f"no availability declared for {slot.day}"
    return [
        _conflict(
            ConflictKind.TEACHER_UNAVAILABLE,
            [slot.event.id],
            teacher.id,
            f"Teacher {teacher.id} is not available on {slot.day} "
            f"{_fmt_time(slot.start)}-{_fmt_time(slot.end)} ({reason})",
            day=slot.day,
            start_time=_fmt_time(slot.start),
            end_time=_fmt_time(slot.end),
        )
    ]


def _specialty(
    slot: _Slot, teacher: Teacher, offering: CourseOffering | None
) -> list[Conflict]:
    if offering is None or not offering.module_id or not teacher.specialties:
        return []
    if offering.module_id in teacher.specialties:
        return []
    return [
        _conflict(
            ConflictKind.SPECIALTY_MISMATCH,
            [slot.event.id],
            teacher.id,
            f"Teacher {teacher.id} has no specialty in module {offering.module_id} "
            f"taught by event {slot.event.id}",
            module_id=offering.module_id,
        )
    ]


def _overload(teacher: Teacher, slots: list[_Slot]) -> list[Conflict]:
    """Peak single-week load against ``max_weekly_hours``, once per teacher.

    The load only changes where an event starts or stops, so the peak is
    found by sweeping those week boundaries in order.
    """
    if teacher.max_weekly_hours is None or teacher.max_weekly_hours < 0:
        return []

    # seconds of teaching added (or removed) from each week onwards
    changes: dict[int, int] = defaultdict(int)
    for slot in slots:
        changes[slot.event.start_week] += slot.end - slot.start
        changes[slot.event.end_week + 1] -= slot.end - slot.start

    load = peak_seconds = peak_week = 0
    for week in sorted(changes):
        load += changes[week]
        if load > peak_seconds:
            peak_seconds, peak_week = load, week

    peak = peak_seconds / 3600
    if round(peak, 6) <= round(teacher.max_weekly_hours, 6):
        return []

    term_total = sum(
        (s.event.end_week - s.event.start_week + 1) * s.hours for s in slots
    )
    active = [
        s.event.id for s in slots if s.event.start_week <= peak_week <= s.event.end_week
    ]
    return [
        _conflict(
            ConflictKind.TEACHER_OVERLOADED,
            active,
            teacher.id,
            f"Teacher {teacher.id} is scheduled for {_fmt_hours(peak)} h in week "
            f"{peak_week}, above the weekly maximum of "
            f"{_fmt_hours(teacher.max_weekly_hours)} h "
            f"(term total {_fmt_hours(term_total)} h)",
            peak_week=peak_week,
            peak_hours=round(peak, 2),
            max_weekly_hours=teacher.max_weekly_hours,
            term_total_hours=round(term_total, 2),
        )
    ]
