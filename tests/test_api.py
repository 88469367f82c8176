import json

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeSlackClient, make_event, ts_at
from slack_attendance.api import create_app
from slack_attendance.models import CHECKIN, CHECKOUT
from slack_attendance.security import compute_slack_signature
from slack_attendance.service import AttendanceService

HEADERS = {"X-API-Key": "secret"}


@pytest.fixture
def client(settings, service):
    return TestClient(create_app(settings, service))


def test_healthcheck(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_attendance_requires_api_key(client):
    assert client.get("/api/attendance", headers={"X-API-Key": "wrong"}).status_code == 401


def test_attendance_summary(client, database):
    database.save_message(make_event(CHECKIN, "2024-01-01", "22:00"))
    database.save_message(make_event(CHECKOUT, "2024-01-02", "02:00"))

    response = client.get(
        "/api/attendance", params={"startDate": "2024-01-01", "endDate": "2024-01-01"}, headers=HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["total_users"] == 1
    assert body["total_half_days"] == 1
    record = body["users"][0]["records"][0]
    assert record["date"] == "2024-01-01"
    assert record["checkout_next_day"] is True
    assert record["check_out_time"] == "02:00"


@pytest.mark.parametrize(
    "params",
    [{"startDate": "01/02/2024"}, {"startDate": "2024-02-01", "endDate": "2024-01-01"}],
)
def test_attendance_rejects_bad_dates(client, params):
    assert client.get("/api/attendance", params=params, headers=HEADERS).status_code == 400


def test_user_attendance_not_found(client):
    assert client.get("/api/attendance/U404", headers=HEADERS).status_code == 404


def test_slack_url_verification(client):
    body = json.dumps({"type": "url_verification", "challenge": "xyz"})
    headers = {
        "X-Slack-Signature": compute_slack_signature(body, "1700000000", "signing-secret"),
        "X-Slack-Request-Timestamp": "1700000000",
        "Content-Type": "application/json",
    }

    response = client.post("/api/slack/events", content=body, headers=headers)

    assert response.json() == {"challenge": "xyz"}


def test_slack_event_with_bad_signature_is_rejected(client, database):
    body = json.dumps({"event": {"type": "message", "user": "U1", "text": "in", "ts": "1700000000.1", "channel": "C1"}})
    headers = {"X-Slack-Signature": "v0=deadbeef", "X-Slack-Request-Timestamp": "1700000000"}

    response = client.post("/api/slack/events", content=body, headers=headers)

    assert response.status_code == 401
    assert database.get_checkin_checkout_messages() == []


def test_slack_events_need_signing_secret(settings, service):
    settings.slack_signing_secret = None
    client = TestClient(create_app(settings, service))

    assert client.post("/api/slack/events", content="{}").status_code == 500


def test_manual_entry_round_trip(client):
    created = client.post(
        "/api/slack/manual-entry",
        json={"user_name": "Alice", "message_type": "checkin", "timestamp": ts_at("2024-01-01", "09:00")},
        headers=HEADERS,
    )
    assert created.status_code == 200
    assert created.json()["entry"]["message_type"] == "checkin"

    messages = client.get("/api/slack/messages", params={"type": "checkin"}, headers=HEADERS).json()
    assert messages["count"] == 1
    entry_id = messages["messages"][0]["id"]

    deleted = client.request("DELETE", "/api/slack/manual-entry", json={"id": entry_id}, headers=HEADERS)
    assert deleted.status_code == 200
    assert deleted.json()["entry"]["id"] == entry_id
    missing = client.request("DELETE", "/api/slack/manual-entry", json={"id": entry_id}, headers=HEADERS)
    assert missing.status_code == 404


def test_manual_entry_rejects_bad_type(client):
    response = client.post(
        "/api/slack/manual-entry",
        json={"user_name": "Alice", "message_type": "lunch", "timestamp": "1700000000"},
        headers=HEADERS,
    )

    assert response.status_code == 400


def test_users_listing(client, database):
    database.save_message(make_event(CHECKIN, "2024-01-01", "09:00"))

    body = client.get("/api/slack/users", headers=HEADERS).json()

    assert body["users"][0]["user_id"] == "U1"


def test_refresh_runs_sync(client):
    assert client.post("/api/refresh", headers=HEADERS).status_code == 204


class UnreachableSlackClient(FakeSlackClient):
    async def fetch_users(self):
        raise httpx.ConnectError("connection refused")


def test_refresh_reports_network_failure(settings, database):
    service = AttendanceService(settings, database, UnreachableSlackClient())
    client = TestClient(create_app(settings, service))

    response = client.post("/api/refresh", headers=HEADERS)

    assert response.status_code == 502
    assert response.json()["detail"] == "connection refused"


def test_startup_survives_network_failure(settings, database):
    service = AttendanceService(settings, database, UnreachableSlackClient())

    with TestClient(create_app(settings, service)) as client:
        assert client.get("/healthz").status_code == 200
