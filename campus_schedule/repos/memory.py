"""In-memory repositories for the academic entities and conflict reports."""

from __future__ import annotations

from datetime import time
from typing import Generic, TypeVar

from pydantic import BaseModel

from campus_schedule.domain.models import (
    AvailabilityWindow,
    Career,
    Classroom,
    ClassroomType,
    ConflictReport,
    ContractType,
    Course,
    CourseOffering,
    Group,
    Module,
    ScheduleEvent,
    Snapshot,
    Teacher,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class Repository(Generic[ModelT]):
    """Dict-backed store for one entity type, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, ModelT] = {}

    def add(self, item: ModelT) -> None:
        self._store[item.id] = item

    def get(self, item_id: str) -> ModelT | None:
        return self._store.get(item_id)

    def list_all(self) -> list[ModelT]:
        return list(self._store.values())

    def delete(self, item_id: str) -> bool:
        return self._store.pop(item_id, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._store

    def __len__(self) -> int:
        return len(self._store)


class ScheduleStore:
    """All entity repositories behind the administration screens."""

    def __init__(self) -> None:
        self.careers: Repository[Career] = Repository()
        self.modules: Repository[Module] = Repository()
        self.groups: Repository[Group] = Repository()
        self.courses: Repository[Course] = Repository()
        self.teachers: Repository[Teacher] = Repository()
        self.classrooms: Repository[Classroom] = Repository()
        self.events: Repository[ScheduleEvent] = Repository()

    def clear(self) -> None:
        for repo in (
            self.careers,
            self.modules,
            self.groups,
            self.courses,
            self.teachers,
            self.classrooms,
            self.events,
        ):
            repo.clear()

    def offerings(self) -> list[CourseOffering]:
        """Join each course with its group.

        A course whose group is missing still yields an offering, with
        ``student_count=None``, so the detector reports the missing group
        instead of the course.
        """
        offerings: list[CourseOffering] = []
        for course in self.courses.list_all():
            group = self.groups.get(course.group_id)
            offerings.append(
                CourseOffering(
                    id=course.id,
                    name=course.name,
                    group_id=course.group_id,
                    career_id=group.career_id if group else None,
                    semester=group.semester if group else None,
                    student_count=group.student_count if group else None,
                    module_id=course.module_id,
                )
            )
        return offerings

    def snapshot(self) -> Snapshot:
        return Snapshot(
            events=[e.model_copy(deep=True) for e in self.events.list_all()],
            teachers=[t.model_copy(deep=True) for t in self.teachers.list_all()],
            classrooms=[c.model_copy(deep=True) for c in self.classrooms.list_all()],
            groups=self.offerings(),
            modules=[m.model_copy(deep=True) for m in self.modules.list_all()],
        )


class ConflictReportRepository:
    """Holds the most recent report for the stored schedule."""

    def __init__(self) -> None:
        self._latest: ConflictReport | None = None

    def save(self, report: ConflictReport) -> None:
        self._latest = report

    def latest(self) -> ConflictReport | None:
        return self._latest


# ---------------------------------------------------------------------------
# Seed data – the sample term shipped with the administration tool
# ---------------------------------------------------------------------------


def _t(value: str) -> time:
    return time.fromisoformat(value)


def seed_sample_data(store: ScheduleStore) -> None:
    """Replace the store contents with a small conflict-free sample term."""
    store.clear()

    for career in (
        Career(id="CAR-BIO", name="Biology"),
        Career(id="CAR-MAT", name="Mathematics"),
        Career(id="CAR-PHI", name="Philosophy"),
    ):
        store.careers.add(career)

    for module in (
        Module(id="M001", name="Paleontology Fundamentals", total_hours=48),
        Module(id="M002", name="Plant Fossils", total_hours=96),
        Module(id="M003", name="Fossil Analysis Methods", total_hours=64),
        Module(id="M004", name="Nonlinear Dynamics", total_hours=120),
        Module(id="M005", name="Ethics in the Life Sciences", total_hours=20),
    ):
        store.modules.add(module)

    for group in (
        Group(id="G-BIO-1A", name="A", career_id="CAR-BIO", semester=1, student_count=28),
        Group(id="G-BIO-2B", name="B", career_id="CAR-BIO", semester=2, student_count=40),
        Group(id="G-MAT-3C", name="C", career_id="CAR-MAT", semester=3, student_count=120),
        Group(id="G-PHI-1A", name="A", career_id="CAR-PHI", semester=1, student_count=60),
    ):
        store.groups.add(group)

    for course in (
        Course(id="C001", name="Intro to Paleontology", module_id="M001", group_id="G-BIO-1A", total_hours=16, duration_weeks=8),
        Course(id="C002", name="Paleobotany", module_id="M002", group_id="G-BIO-1A", total_hours=32, duration_weeks=16),
        Course(id="C003", name="Advanced Fossil Analysis", module_id="M003", group_id="G-BIO-2B", total_hours=16, duration_weeks=8),
        Course(id="C004", name="Chaos Theory", module_id="M004", group_id="G-MAT-3C", total_hours=40, duration_weeks=20),
        Course(id="C005", name="Bio-Ethics", module_id="M005", group_id="G-PHI-1A", total_hours=8, duration_weeks=4),
    ):
        store.courses.add(course)

    for teacher in (
        Teacher(id="T001", name="Dr. Alan Grant", email="alan.grant@example.com", max_weekly_hours=20, specialties=["M001", "M003"]),
        Teacher(id="T002", name="Dr. Ellie Sattler", email="ellie.sattler@example.com", max_weekly_hours=18, specialties=["M002"]),
        Teacher(
            id="T003",
            name="Dr. Ian Malcolm",
            email="ian.malcolm@example.com",
            contract_type=ContractType.PART_TIME,
            max_weekly_hours=15,
            specialties=["M004"],
            availability=[AvailabilityWindow(day="Friday", start_time=_t("08:00"), end_time=_t("12:00"))],
        ),
        Teacher(id="T004", name="John Hammond", email="john.hammond@example.com", contract_type=ContractType.HOURLY, max_weekly_hours=25, specialties=["M005"]),
    ):
        store.teachers.add(teacher)

    for classroom in (
        Classroom(id="R001", name="Lecture Hall 101", capacity=150),
        Classroom(id="R002", name="Lab A", capacity=30, type=ClassroomType.LAB),
        Classroom(id="R003", name="Seminar Room 203", capacity=45),
        Classroom(id="R004", name="Auditorium B", capacity=300),
    ):
        store.classrooms.add(classroom)

    for event in (
        ScheduleEvent(id="E001", course_id="C001", teacher_id="T001", classroom_id="R001", day="Monday", start_time=_t("09:00"), end_time=_t("11:00"), start_week=1, end_week=8),
        ScheduleEvent(id="E002", course_id="C002", teacher_id="T002", classroom_id="R002", day="Tuesday", start_time=_t("10:00"), end_time=_t("12:00"), start_week=1, end_week=16),
        ScheduleEvent(id="E003", course_id="C003", teacher_id="T001", classroom_id="R003", day="Wednesday", start_time=_t("13:00"), end_time=_t("15:00"), start_week=9, end_week=16),
        ScheduleEvent(id="E004", course_id="C004", teacher_id="T003", classroom_id="R004", day="Friday", start_time=_t("08:00"), end_time=_t("10:00"), start_week=1, end_week=20),
        ScheduleEvent(id="E005", course_id="C005", teacher_id="T004", classroom_id="R001", day="Thursday", start_time=_t("16:00"), end_time=_t("18:00"), start_week=5, end_week=8),
    ):
        store.events.add(event)


def create_schedule_store(seed: bool = False) -> ScheduleStore:
    """Return a ScheduleStore, optionally pre-loaded with sample data."""
    store = ScheduleStore()
    if seed:
        seed_sample_data(store)
    return store
