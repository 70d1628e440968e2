"""HTTP surface: authentication, status codes, response shapes and cache headers."""

import runpy

import pytest
import uvicorn
from sqlalchemy.exc import OperationalError

from attendance.auth import create_access_token
from attendance.database import get_db
from attendance.main import app
from attendance.models.student import Student

NEW_STUDENT = {
    "id": 501,
    "name": "Mariam Hassan",
    "grade": "3rd secondary",
    "school": "Nasr Girls School",
    "phone": "01012345678",
    "parents_phone": "01198765432",
    "main_center": "Maadi",
    "age": 17,
}


@pytest.fixture
def registered(client, auth_headers):
    resp = client.post("/api/students", json=NEW_STUDENT, headers=auth_headers)
    assert resp.status_code == 200
    return resp.json()["id"]


def test_health_needs_no_token(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert "X-Request-ID" in resp.headers


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "Bearer not-a-jwt"},
    {"Authorization": "Basic dXNlcjpwYXNz"},
])
def test_requests_without_valid_token_are_unauthorized(client, headers):
    resp = client.get("/api/students", headers=headers)
    assert resp.status_code == 401
    body = resp.json()
    assert body["detail"] == body["error"]
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_expired_token_is_unauthorized(client):
    token = create_access_token("assistant-1", expires_minutes=-5)
    resp = client.get("/api/students", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_create_and_get_student(client, auth_headers, registered):
    assert registered == 501

    resp = client.get("/api/students/501", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Mariam Hassan"
    assert body["parents_phone"] == "01198765432"
    assert body["main_center"] == "Maadi"
    assert body["attended_the_session"] is False
    assert body["attendanceWeek"] == "week 01"
    assert body["hwDone"] == "No Homework"
    assert body["message_state"] is False
    assert len(body["weeks"]) == 20
    assert resp.headers["Cache-Control"] == "private, max-age=10"


def test_create_accepts_camel_case_fields(client, auth_headers):
    body = dict(NEW_STUDENT)
    body["parentsPhone"] = body.pop("parents_phone")
    body["mainCenter"] = body.pop("main_center")

    resp = client.post("/api/students", json=body, headers=auth_headers)

    assert resp.status_code == 200
    assert client.get("/api/students/501", headers=auth_headers).json()["main_center"] == "Maadi"


def test_create_sets_invalidation_header(client, auth_headers):
    resp = client.post("/api/students", json=NEW_STUDENT, headers=auth_headers)
    assert resp.headers["X-Invalidate"] == "students:detail:501, students:list, students:history"


def test_duplicate_create_is_conflict(client, auth_headers, registered):
    resp = client.post("/api/students", json=dict(NEW_STUDENT, name="Other"), headers=auth_headers)
    assert resp.status_code == 409

    listed = client.get("/api/students", headers=auth_headers).json()
    assert [s["id"] for s in listed] == [501]
    assert listed[0]["name"] == "Mariam Hassan"


@pytest.mark.parametrize("changes", [
    {"phone": "0101234"},
    {"parents_phone": "01012345678"},
    {"age": 300},
    {"name": ""},
])
def test_invalid_create_is_bad_request(client, auth_headers, changes):
    resp = client.post("/api/students", json=dict(NEW_STUDENT, **changes), headers=auth_headers)
    assert resp.status_code == 400
    assert client.get("/api/students", headers=auth_headers).json() == []


def test_unknown_student_is_not_found(client, auth_headers):
    assert client.get("/api/students/9999", headers=auth_headers).status_code == 404
    resp = client.post("/api/students/9999/hw", json={"hwDone": "Done"}, headers=auth_headers)
    assert resp.status_code == 404


def test_homework_then_projection(client, auth_headers, registered):
    resp = client.post("/api/students/501/hw", json={"hwDone": "Done"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["week"]["week"] == 1
    assert resp.headers["X-Invalidate"].startswith("students:detail:501")

    body = client.get("/api/students/501", headers=auth_headers).json()
    assert body["hwDone"] == "Done"
    assert body["attendanceWeek"] == "week 01"


def test_homework_rejects_boolean(client, auth_headers, registered):
    resp = client.post("/api/students/501/hw", json={"hwDone": True}, headers=auth_headers)
    assert resp.status_code == 400


def test_attendance_moves_current_week_to_lowest_attended(client, auth_headers, registered):
    client.post("/api/students/501/attend",
                json={"center": "CenterA", "timestamp": "2026-10-01T16:00:00Z", "week": 3},
                headers=auth_headers)
    body = client.get("/api/students/501", headers=auth_headers).json()
    assert body["attendanceWeek"] == "week 03"
    assert body["lastAttendanceCenter"] == "CenterA"

    client.post("/api/students/501/attend",
                json={"center": "CenterB", "timestamp": "2026-10-08T16:00:00Z", "week": 1},
                headers=auth_headers)
    body = client.get("/api/students/501", headers=auth_headers).json()
    assert body["attendanceWeek"] == "week 01"
    assert body["attended_the_session"] is True
    assert body["lastAttendanceCenter"] == "CenterB"
    assert body["lastAttendance"].startswith("2026-10-08T16:00:00")


def test_attendance_defaults_timestamp(client, auth_headers, registered):
    resp = client.post("/api/students/501/attend", json={"center": "Maadi"}, headers=auth_headers)
    assert resp.status_code == 200
    week = resp.json()["week"]
    assert week["attended"] is True
    assert week["lastAttendance"] is not None


def test_attendance_rejects_out_of_range_week(client, auth_headers, registered):
    resp = client.post("/api/students/501/attend", json={"center": "Maadi", "week": 21},
                       headers=auth_headers)
    assert resp.status_code == 400


def test_quiz_and_message_state(client, auth_headers, registered):
    resp = client.post("/api/students/501/quiz_degree", json={"quizDegree": "15/20", "week": 2},
                       headers=auth_headers)
    assert resp.json()["week"]["quizDegree"] == "15/20"

    resp = client.post("/api/students/501/message_state", json={"message_state": True, "week": 2},
                       headers=auth_headers)
    assert resp.json()["week"]["message_state"] is True

    weeks = client.get("/api/students/501", headers=auth_headers).json()["weeks"]
    assert weeks[1]["quizDegree"] == "15/20"
    assert weeks[1]["message_state"] is True


def test_update_profile(client, auth_headers, registered):
    resp = client.put("/api/students/501", json={"school": "Another School"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["school"] == "Another School"
    assert resp.json()["phone"] == "01012345678"

    resp = client.put("/api/students/501", json={"phone": "01198765432"}, headers=auth_headers)
    assert resp.status_code == 400


def test_delete_student(client, auth_headers, registered):
    resp = client.delete("/api/students/501", headers=auth_headers)
    assert resp.status_code == 200
    assert client.get("/api/students/501", headers=auth_headers).status_code == 404
    assert client.delete("/api/students/501", headers=auth_headers).status_code == 404


def test_history(client, auth_headers, registered):
    client.post("/api/students/501/attend",
                json={"center": "Maadi", "timestamp": "2026-10-01T16:00:00Z", "week": 1},
                headers=auth_headers)
    client.post("/api/students/501/attend",
                json={"center": "Maadi", "timestamp": "2026-10-08T16:00:00Z", "week": 2},
                headers=auth_headers)

    resp = client.get("/api/students/history", headers=auth_headers)
    assert resp.status_code == 200
    assert [e["attendanceWeek"] for e in resp.json()] == ["week 02", "week 01"]


def test_error_body_carries_detail_and_error(client, auth_headers, registered):
    resp = client.post("/api/students", json=NEW_STUDENT, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Student ID already exists", "error": "Student ID already exists"}


def test_store_failure_is_internal_server_error(client, auth_headers, session_factory):
    def broken_db():
        session = session_factory()

        def failing_query(*args, **kwargs):
            raise OperationalError("SELECT students", {}, Exception("disk I/O error"))

        session.query = failing_query
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = broken_db
    resp = client.get("/api/students", headers=auth_headers)

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error", "error": "Internal server error"}
    assert "disk I/O error" not in resp.text


def test_malformed_stored_weeks_do_not_break_reads(client, auth_headers, registered, session_factory):
    session = session_factory()
    student = session.get(Student, 501)
    weeks = [dict(w) for w in student.weeks]
    weeks[0].update({"attended": None, "message_state": None, "lastAttendance": "10/1/2026, 4:00:00 PM"})
    weeks[2].update({"attended": True, "lastAttendance": "2026-10-08T01:00:00+03:00"})
    student.weeks = weeks
    session.commit()
    session.close()

    resp = client.get("/api/students", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()[0]
    assert body["attendanceWeek"] == "week 03"
    assert body["lastAttendance"] == "2026-10-07T22:00:00Z"
    assert body["weeks"][0]["attended"] is False

    resp = client.get("/api/students/history", headers=auth_headers)
    assert resp.status_code == 200
    assert [e["attendanceWeek"] for e in resp.json()] == ["week 03"]


def test_attendance_offset_timestamp_is_returned_in_utc(client, auth_headers, registered):
    resp = client.post("/api/students/501/attend",
                       json={"center": "Maadi", "timestamp": "2026-10-08T01:00:00+03:00", "week": 1},
                       headers=auth_headers)
    assert resp.json()["week"]["lastAttendance"] == "2026-10-07T22:00:00Z"


def test_module_entry_point_serves_with_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))
    monkeypatch.setenv("PORT", "8123")

    runpy.run_module("attendance.main", run_name="__main__")

    assert calls == [{"host": "0.0.0.0", "port": 8123}]
