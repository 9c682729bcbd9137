from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from conftest import UNRECORDED_PERSON

from fmpa_portal.core.enums import RegistrationStatus, SessionStatus
from fmpa_portal.main import create_app
from fmpa_portal.registrations.model import Registration

FUTURE = "2099-05-10T09:00:00"


@pytest.fixture()
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container=container)


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, user_id, role, permissions=None):
    with client.session_transaction() as s:
        s["user_id"] = user_id
        s["role"] = role
        if permissions is not None:
            s["permissions"] = permissions


def session_payload(**overrides):
    payload = {
        "training_type_id": 1,
        "center_id": 1,
        "instructor_id": 100,
        "start_at": FUTURE,
        "end_at": "2099-05-10T12:00:00",
        "location": "Caserne Nord",
        "max_seats": 8,
    }
    payload.update(overrides)
    return payload


def test_requires_authentication(client):
    assert client.get("/api/fmpa/sessions").status_code == 401


def test_plain_user_cannot_create_sessions(client):
    login(client, UNRECORDED_PERSON, "USER")
    assert client.post("/api/fmpa/sessions", json=session_payload()).status_code == 403


def test_create_and_read_session(client):
    login(client, 1, "ADMIN")

    created = client.post("/api/fmpa/sessions", json=session_payload(hourly_rate="14.5"))
    assert created.status_code == 201
    body = created.get_json()
    assert body["success"] is True
    assert body["data"]["status"] == "PLANNED"
    assert body["data"]["hourly_rate"] == "14.5"
    assert body["data"]["start_at"] == FUTURE

    fetched = client.get(f"/api/fmpa/sessions/{body['data']['session_id']}").get_json()
    assert fetched["data"]["center"]["code"] == "C01"
    assert fetched["data"]["registrations"] == []


def test_validation_failure_shape(client):
    login(client, 1, "ADMIN")

    response = client.post("/api/fmpa/sessions", json=session_payload(max_seats=40))

    assert response.status_code == 400
    assert response.get_json() == {
        "success": False,
        "error": {
            "kind": "VALIDATION",
            "reason": "OUT_OF_BAND",
            "message": "max_seats must be between 5 and 15",
            "details": {"field": "max_seats", "minimum": 5, "maximum": 15},
        },
    }


def test_missing_field_is_reported(client):
    login(client, 1, "ADMIN")
    payload = session_payload()
    del payload["location"]

    error = client.post("/api/fmpa/sessions", json=payload).get_json()["error"]

    assert error["reason"] == "MISSING_FIELD"
    assert error["details"]["field"] == "location"


def test_unknown_session_is_404(client):
    login(client, 1, "ADMIN")
    response = client.get("/api/fmpa/sessions/999")
    assert response.status_code == 404
    assert response.get_json()["error"]["reason"] == "SESSION_NOT_FOUND"


def test_page_size_limit_is_reported(client):
    login(client, 1, "ADMIN")

    response = client.get("/api/fmpa/sessions?page_size=500")

    assert response.status_code == 400
    assert response.get_json()["error"]["details"]["max_page_size"] == 100


def test_list_returns_pagination(client, make_session):
    make_session(start_at=datetime(2099, 1, 5, 9))
    make_session(start_at=datetime(2099, 1, 6, 9))
    login(client, UNRECORDED_PERSON, "USER")

    body = client.get("/api/fmpa/sessions?month=2099-01&page_size=1").get_json()

    assert len(body["data"]) == 1
    assert body["data"][0]["start_at"] == "2099-01-06T09:00:00"
    assert body["pagination"]["total_pages"] == 2
    assert body["pagination"]["has_next_page"] is True


def test_self_registration_and_withdrawal(client, db, make_session):
    session = make_session(start_at=datetime(2099, 1, 5, 9))
    login(client, UNRECORDED_PERSON, "USER")

    created = client.post(f"/api/fmpa/sessions/{session.session_id}/registrations", json={})
    assert created.status_code == 201
    assert created.get_json()["data"]["person_id"] == UNRECORDED_PERSON

    other = client.post(f"/api/fmpa/sessions/{session.session_id}/registrations", json={"person_id": 100})
    assert other.status_code == 403

    again = client.post(f"/api/fmpa/sessions/{session.session_id}/registrations", json={})
    assert again.status_code == 422
    assert again.get_json()["error"]["reason"] == "ALREADY_REGISTERED"

    withdrawn = client.delete(f"/api/fmpa/sessions/{session.session_id}/registrations/{UNRECORDED_PERSON}")
    assert withdrawn.status_code == 200
    assert withdrawn.get_json()["data"]["occupied_seats"] == 0


def test_full_session_is_422(client, make_session):
    session = make_session(start_at=datetime(2099, 1, 5, 9), max_seats=5, occupied_seats=5)
    login(client, UNRECORDED_PERSON, "USER")

    response = client.post(f"/api/fmpa/sessions/{session.session_id}/registrations", json={})

    assert response.status_code == 422
    assert response.get_json()["error"]["reason"] == "SESSION_FULL"


def test_attendance_and_payroll_export(client, db, make_session):
    session = make_session(start_at=datetime(2025, 1, 10, 9), status=SessionStatus.COMPLETED)
    db.add_registration(
        Registration(
            registration_id=db.next_id("registration"),
            session_id=session.session_id,
            person_id=1,
            status=RegistrationStatus.REGISTERED,
            registered_at=datetime(2025, 1, 1, 8),
        )
    )
    login(client, 100, "INSTRUCTOR")

    marked = client.post(
        f"/api/fmpa/sessions/{session.session_id}/attendance",
        json={"person_id": 1, "status": "present", "validated_hours": 3},
    )
    assert marked.status_code == 200
    assert Decimal(marked.get_json()["data"]["payable_amount"]) == Decimal("37.5")

    assert client.get("/api/fmpa/export-tta?start=2025-01-01&end=2025-01-31").status_code == 403

    login(client, 100, "INSTRUCTOR", permissions=["payroll:export"])
    body = client.get("/api/fmpa/export-tta?start=2025-01-01&end=2025-01-31").get_json()
    assert body["summary"]["rows"] == 1
    assert body["summary"]["total_amount"] == "37.50"
    assert body["data"][0]["registration_number"] == "M00001"


def test_download_enforces_three_months(client, db, make_session):
    login(client, 1, "ADMIN")

    response = client.get("/api/fmpa/export-tta/download?start=2024-01-01&end=2024-04-02")

    assert response.status_code == 400
    assert response.get_json()["error"]["details"]["max_months"] == 3


def test_download_returns_a_file(client, db, make_session):
    session = make_session(start_at=datetime(2025, 1, 10, 9), status=SessionStatus.COMPLETED)
    db.add_registration(
        Registration(
            registration_id=db.next_id("registration"),
            session_id=session.session_id,
            person_id=1,
            status=RegistrationStatus.PRESENT,
            registered_at=datetime(2025, 1, 1, 8),
            validated_hours=Decimal("2"),
        )
    )
    login(client, 1, "ADMIN")

    response = client.get("/api/fmpa/export-tta/download?start=2025-01-01&end=2025-01-31&format=csv")

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert "export_tta_20250101_20250131.csv" in response.headers["Content-Disposition"]
    assert response.data.startswith(b"\xef\xbb\xbf")


def test_session_tta_sheet_download(client, make_session):
    session = make_session(start_at=datetime(2025, 1, 10, 9), status=SessionStatus.COMPLETED)

    login(client, UNRECORDED_PERSON, "USER")
    assert client.get(f"/api/fmpa/sessions/{session.session_id}/tta-sheet").status_code == 403

    login(client, 1, "ADMIN")
    response = client.get(f"/api/fmpa/sessions/{session.session_id}/tta-sheet?format=csv")
    assert response.status_code == 200
    assert f"tta_session_{session.session_id}.csv" in response.headers["Content-Disposition"]

    assert client.get("/api/fmpa/sessions/999/tta-sheet").status_code == 404


def test_monthly_report_download(client, make_session):
    make_session(start_at=datetime(2025, 1, 10, 9), status=SessionStatus.COMPLETED)
    login(client, 1, "ADMIN")

    response = client.get("/api/fmpa/reports/monthly?month=2025-01")
    assert response.status_code == 200
    assert response.mimetype.endswith("spreadsheetml.sheet")
    assert "rapport_mensuel_fmpa_202501.xlsx" in response.headers["Content-Disposition"]

    missing = client.get("/api/fmpa/reports/monthly")
    assert missing.status_code == 400
    assert missing.get_json()["error"]["reason"] == "MISSING_FIELD"
