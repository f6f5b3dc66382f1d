"""End-to-end tests for the administration and conflict endpoints."""

from __future__ import annotations

from datetime import date
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from campus_schedule.core.config import Settings
from campus_schedule.main import create_app


def _settings(**overrides) -> Settings:
    defaults = dict(
        term_weeks=20,
        term_start=date(2026, 2, 4),
        openai_api_key=None,
        seed_sample_data=False,
    )
    defaults.update(overrides)
    return Settings(**defaults)


@pytest.fixture()
def client():
    return TestClient(create_app(_settings()))


@pytest.fixture()
def seeded_client():
    return TestClient(create_app(_settings(seed_sample_data=True)))


def _event_payload(**overrides) -> dict:
    payload = {
        "id": "E100",
        "course_id": "C001",
        "teacher_id": "T001",
        "classroom_id": "R001",
        "day": "Monday",
        "start_time": "10:00",
        "end_time": "12:00",
        "start_week": 1,
        "end_week": 4,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def test_classroom_crud_round_trip(client):
    created = client.post("/classrooms", json={"name": "Lab B", "capacity": 25, "type": "lab"})
    assert created.status_code == 201
    classroom_id = created.json()["id"]

    assert client.get(f"/classrooms/{classroom_id}").json()["capacity"] == 25

    replaced = client.put(
        f"/classrooms/{classroom_id}", json={"name": "Lab B", "capacity": 40, "type": "lab"}
    )
    assert replaced.status_code == 200
    assert replaced.json()["capacity"] == 40
    assert [c["id"] for c in client.get("/classrooms").json()] == [classroom_id]

    assert client.delete(f"/classrooms/{classroom_id}").status_code == 204
    assert client.get("/classrooms").json() == []


def test_unknown_id_returns_404(client):
    response = client.get("/teachers/T404")
    assert response.status_code == 404
    assert response.json()["message"] == "Teacher with id T404 not found"


def test_duplicate_id_returns_409(client):
    assert client.post("/careers", json={"id": "CAR1", "name": "Biology"}).status_code == 201
    assert client.post("/careers", json={"id": "CAR1", "name": "Other"}).status_code == 409


def test_form_rules_are_validated(client):
    assert client.post("/classrooms", json={"name": "Closet", "capacity": 0}).status_code == 422
    assert client.post("/groups", json={"name": "A", "student_count": 0}).status_code == 422
    inverted = _event_payload(start_time="12:00", end_time="10:00")
    assert client.post("/events", json=inverted).status_code == 422
    assert client.post("/events", json=_event_payload(start_week=5, end_week=2)).status_code == 422


def test_event_weeks_from_dates(client):
    payload = _event_payload(start_week=None, end_week=None)
    payload.update(start_date="2026-02-04", end_date="2026-03-27")
    response = client.post("/events", json=payload)
    assert response.status_code == 201
    assert (response.json()["start_week"], response.json()["end_week"]) == (1, 8)


def test_event_dates_before_term_rejected(client):
    payload = _event_payload(start_week=None, end_week=None)
    payload.update(start_date="2026-01-05", end_date="2026-03-27")
    response = client.post("/events", json=payload)
    assert response.status_code == 422
    assert "term start" in response.json()["detail"]


def test_event_dates_need_term_start():
    client = TestClient(create_app(_settings(term_start=None)))
    payload = _event_payload(start_week=None, end_week=None)
    payload.update(start_date="2026-02-04", end_date="2026-03-27")
    assert client.post("/events", json=payload).status_code == 422


def test_event_sessions(seeded_client):
    response = seeded_client.get("/events/E005/sessions")
    assert response.status_code == 200
    assert response.json() == ["2026-03-05", "2026-03-12", "2026-03-19", "2026-03-26"]


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


def test_detect_posted_snapshot(client):
    snapshot = {
        "events": [
            _event_payload(id="E1", classroom_id="R002", start_time="09:00", end_time="11:00"),
        ],
        "teachers": [{"id": "T001", "name": "Dr. Grant"}],
        "classrooms": [{"id": "R002", "name": "Lab A", "capacity": 30}],
        "groups": [{"id": "C001", "group_id": "G1", "student_count": 35}],
    }
    response = client.post("/conflicts/detect", json=snapshot)
    assert response.status_code == 200
    body = response.json()
    assert body["is_valid"] is False
    assert [c["kind"] for c in body["conflicts"]] == ["capacity_exceeded"]
    assert body["counts"] == {"capacity_exceeded": 1}


def test_detect_posted_snapshot_with_term_length(client):
    snapshot = {
        "events": [_event_payload(id="E1", start_week=1, end_week=30)],
        "teachers": [{"id": "T001", "name": "Dr. Grant"}],
        "classrooms": [{"id": "R001", "name": "Hall", "capacity": 100}],
        "groups": [{"id": "C001", "group_id": "G1", "student_count": 10}],
    }
    assert client.post("/conflicts/detect", json=snapshot).json()["is_valid"] is False
    assert client.post("/conflicts/detect?term_weeks=30", json=snapshot).json()["is_valid"] is True


def test_stored_report_follows_writes(seeded_client):
    assert seeded_client.get("/conflicts").json()["is_valid"] is True

    assert seeded_client.post("/events", json=_event_payload()).status_code == 201
    report = seeded_client.get("/conflicts").json()
    assert [c["kind"] for c in report["conflicts"]] == [
        "teacher_double_booking",
        "classroom_double_booking",
        "group_double_booking",
    ]

    assert seeded_client.delete("/events/E100").status_code == 204
    assert seeded_client.get("/conflicts").json()["is_valid"] is True


def test_sample_data_endpoint(client):
    response = client.post("/sample-data")
    assert response.status_code == 201
    assert response.json()["events"] == 5
    assert response.json()["modules"] == 5
    assert client.get("/conflicts").json()["conflicts"] == []


def test_analyze_without_api_key_still_reports(seeded_client):
    response = seeded_client.post("/conflicts/analyze")
    assert response.status_code == 200
    body = response.json()
    assert body["advisory"] is None
    assert body["advisory_error"] == "No OpenAI API key configured"
    assert body["report"]["is_valid"] is True


def test_analyze_with_advisory():
    client = TestClient(
        create_app(_settings(seed_sample_data=True, openai_api_key="sk-test"))
    )
    with patch(
        "campus_schedule.services.advisor._advise_with_llm",
        return_value={"summary": "The schedule is valid.", "suggestions": []},
    ):
        response = client.post("/conflicts/analyze")

    body = response.json()
    assert body["advisory"] == {"summary": "The schedule is valid.", "suggestions": []}
    assert body["advisory_error"] is None


def test_detect_reports_offset_times_as_invalid_data(client):
    snapshot = {
        "events": [_event_payload(id="E1", start_time="09:00", end_time="11:00Z")],
        "teachers": [{"id": "T001", "name": "Dr. Grant"}],
        "classrooms": [{"id": "R001", "name": "Hall", "capacity": 100}],
        "groups": [{"id": "C001", "group_id": "G1", "student_count": 10}],
    }
    response = client.post("/conflicts/detect", json=snapshot)
    assert response.status_code == 200
    assert [c["kind"] for c in response.json()["conflicts"]] == ["invalid_data"]


def test_event_with_offset_time_rejected(client):
    response = client.post("/events", json=_event_payload(end_time="12:00+02:00"))
    assert response.status_code == 422


@pytest.mark.parametrize("term_weeks", [0, -3, 10_000_000])
def test_detect_rejects_out_of_range_term_length(client, term_weeks):
    response = client.post(f"/conflicts/detect?term_weeks={term_weeks}", json={})
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Modules and teachers
# ---------------------------------------------------------------------------


def test_module_crud(client):
    created = client.post(
        "/modules", json={"id": "M100", "name": "Bio-Ethics", "total_hours": 20}
    )
    assert created.status_code == 201
    assert created.json()["total_hours"] == 20
    assert client.post("/modules", json={"name": "Empty", "total_hours": 0}).status_code == 422
    assert client.delete("/modules/M100").status_code == 204
    assert client.get("/modules/M100").status_code == 404


def test_teacher_contract_type(client):
    created = client.post("/teachers", json={"name": "Dr. Grant", "contract_type": "part_time"})
    assert created.status_code == 201
    assert created.json()["contract_type"] == "part_time"
    assert client.post("/teachers", json={"name": "X", "contract_type": "weekly"}).status_code == 422


def test_deleting_a_module_leaves_dangling_references(seeded_client):
    assert seeded_client.delete("/modules/M005").status_code == 204
    conflicts = seeded_client.get("/conflicts").json()["conflicts"]
    assert [(c["kind"], c["details"]["reference"], c["event_ids"]) for c in conflicts] == [
        ("dangling_reference", "specialty", []),
        ("dangling_reference", "module", ["E005"]),
    ]


def test_deleting_a_group_reports_the_course(seeded_client):
    assert seeded_client.delete("/groups/G-PHI-1A").status_code == 204
    conflicts = seeded_client.get("/conflicts").json()["conflicts"]
    assert [(c["kind"], c["resource_id"], c["event_ids"]) for c in conflicts] == [
        ("dangling_reference", "G-PHI-1A", ["E005"]),
    ]


def test_analyze_passes_constraint_priorities():
    client = TestClient(
        create_app(_settings(seed_sample_data=True, openai_api_key="sk-test"))
    )
    with patch(
        "campus_schedule.services.advisor._advise_with_llm",
        return_value={"summary": "ok", "suggestions": []},
    ) as llm:
        response = client.post(
            "/conflicts/analyze",
            json={"constraint_priorities": {"teacher_overloaded": "hard"}},
        )

    assert response.status_code == 200
    priorities = llm.call_args.args[0]["constraint_priorities"]
    assert priorities["teacher_overloaded"] == "hard"
    assert priorities["specialty_mismatch"] == "soft"
    assert priorities["capacity_exceeded"] == "hard"
