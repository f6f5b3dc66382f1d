"""Tests for the schedule bus lifecycle — handlers and stored reports."""

from __future__ import annotations

from datetime import time

import pytest

from campus_schedule.domain.bus import EventBus
from campus_schedule.domain.events import ConflictsDetected, ScheduleChanged
from campus_schedule.domain.handlers import HandlerRegistry
from campus_schedule.domain.models import ConflictKind, ScheduleEvent
from campus_schedule.repos.memory import (
    ConflictReportRepository,
    ScheduleStore,
    create_schedule_store,
)


@pytest.fixture()
def env():
    """Fresh bus + seeded store + registry for each test."""
    bus = EventBus()
    store = create_schedule_store(seed=True)
    reports = ConflictReportRepository()
    registry = HandlerRegistry(bus=bus, store=store, report_repo=reports, term_weeks=20)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.store = store
    e.reports = reports
    e.registry = registry
    return e


def _clashing_event() -> ScheduleEvent:
    """Same teacher, classroom and group as sample event E001."""
    return ScheduleEvent(
        id="E100",
        course_id="C001",
        teacher_id="T001",
        classroom_id="R001",
        day="Monday",
        start_time=time(10, 0),
        end_time=time(12, 0),
        start_week=1,
        end_week=4,
    )


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------


def test_bus_runs_handlers_in_order_and_records_history():
    bus = EventBus()
    calls: list[str] = []
    bus.subscribe(ScheduleChanged, lambda e: calls.append("first"))
    bus.subscribe(ScheduleChanged, lambda e: calls.append("second"))

    event = ScheduleChanged(entity="Event", entity_id="E1", action="created")
    bus.publish(event)

    assert calls == ["first", "second"]
    assert bus.history == [event]


def test_bus_unsubscribe():
    bus = EventBus()
    calls: list[str] = []
    unsubscribe = bus.subscribe(ScheduleChanged, lambda e: calls.append("x"))
    unsubscribe()
    unsubscribe()

    bus.publish(ScheduleChanged(entity="Event", action="deleted"))
    assert calls == []


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def test_sample_term_is_conflict_free(env):
    report = env.registry.refresh()
    assert report.is_valid
    assert env.reports.latest() is report


def test_schedule_change_refreshes_report(env):
    env.store.events.add(_clashing_event())
    env.bus.publish(ScheduleChanged(entity="Event", entity_id="E100", action="created"))

    report = env.reports.latest()
    assert report is not None
    assert [c.kind for c in report.conflicts] == [
        ConflictKind.TEACHER_DOUBLE_BOOKING,
        ConflictKind.CLASSROOM_DOUBLE_BOOKING,
        ConflictKind.GROUP_DOUBLE_BOOKING,
    ]
    assert all(c.event_ids == ["E001", "E100"] for c in report.conflicts)


def test_conflicts_detected_published_only_when_conflicts(env):
    env.bus.publish(ScheduleChanged(entity="Event", action="updated"))
    assert not any(isinstance(e, ConflictsDetected) for e in env.bus.history)

    env.store.events.add(_clashing_event())
    env.bus.publish(ScheduleChanged(entity="Event", entity_id="E100", action="created"))

    detected = [e for e in env.bus.history if isinstance(e, ConflictsDetected)]
    assert len(detected) == 1
    assert detected[0].conflict_count == 3
    assert detected[0].counts[ConflictKind.GROUP_DOUBLE_BOOKING] == 1


def test_deleting_a_classroom_leaves_dangling_references(env):
    env.store.classrooms.delete("R001")
    env.bus.publish(ScheduleChanged(entity="Classroom", entity_id="R001", action="deleted"))

    report = env.reports.latest()
    assert [c.kind for c in report.conflicts] == [ConflictKind.DANGLING_REFERENCE] * 2
    assert [c.event_ids for c in report.conflicts] == [["E001"], ["E005"]]


def test_snapshot_is_detached_from_store():
    store: ScheduleStore = create_schedule_store(seed=True)
    snapshot = store.snapshot()
    snapshot.events[0].day = "Sunday"
    assert store.events.get(snapshot.events[0].id).day != "Sunday"


def test_offering_joins_course_and_group():
    store = create_schedule_store(seed=True)
    offerings = {o.id: o for o in store.offerings()}
    assert offerings["C002"].group_id == "G-BIO-1A"
    assert offerings["C002"].student_count == 28
    assert offerings["C004"].career_id == "CAR-MAT"


def test_offering_without_group_has_no_student_count(env):
    env.store.groups.delete("G-MAT-3C")
    offering = {o.id: o for o in env.store.offerings()}["C004"]
    assert offering.student_count is None

    report = env.registry.refresh()
    assert [(c.kind, c.resource_id, c.event_ids) for c in report.conflicts] == [
        (ConflictKind.DANGLING_REFERENCE, "G-MAT-3C", ["E004"]),
    ]
