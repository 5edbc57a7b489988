from unittest.mock import MagicMock

import pytest
from fastapi import status
from sqlalchemy.exc import OperationalError

from moneybuddy.db import crud, models
from moneybuddy.main import app, db_session


@pytest.fixture
def api_key(db):
    return crud.issue_api_key(db, "ops")


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["database"]["status"] == "healthy"
    assert "uptime" in data
    assert "timestamp" in data


def test_health_head(client):
    assert client.head("/health").status_code == 200


def test_health_reports_database_outage(client):
    broken = MagicMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
    app.dependency_overrides[db_session] = lambda: broken

    response = client.get("/health")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["services"]["database"]["message"] == "Database connection failed"


def test_payload_too_large(client):
    response = client.post(
        "/webhooks/square",
        content=b"x" * (1024 * 1024 + 1),
        headers={"x-square-hmacsha256-signature": "sig"},
    )
    assert response.status_code == 413
    assert response.json() == {"detail": "Payload too large"}


def test_events_require_api_key(client):
    assert client.get("/events").status_code in (401, 403)
    response = client.get("/events", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid or missing API key"}


def test_list_events(client, db, api_key):
    crud.record_event(db, b'{"type":"x.y"}', "x.y", "evt_1")

    response = client.get("/events", headers={"Authorization": f"Bearer {api_key}"})

    assert response.status_code == 200
    [event] = response.json()
    assert event["provider_event_id"] == "evt_1"
    assert event["status"] == "received"
    assert "raw_body" not in event


def test_replay_success(client, db, api_key, celery_task_always_eager):
    event = crud.record_event(db, b'{"type":"x.y"}', "x.y", "evt_1")

    response = client.post(
        f"/events/{event.id}/replay", headers={"Authorization": f"Bearer {api_key}"}
    )

    assert response.status_code == status.HTTP_202_ACCEPTED
    assert response.json() == {"status": "queued", "event_id": event.id}
    celery_task_always_eager.assert_called_once()
    assert celery_task_always_eager.call_args.args[0] == (str(event.id),)


def test_replay_not_found(client, api_key):
    response = client.post("/events/999/replay", headers={"Authorization": f"Bearer {api_key}"})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"detail": "Event not found"}


def test_replay_unauthorized(client, db):
    event = crud.record_event(db, b"{}", "x.y", "evt_1")
    response = client.post(f"/events/{event.id}/replay", headers={"Authorization": "Bearer nope"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def _chunks(total: int, size: int = 64 * 1024):
    sent = 0
    while sent < total:
        chunk = b"x" * min(size, total - sent)
        sent += len(chunk)
        yield chunk


def test_chunked_payload_too_large(client, db, signed_headers):
    # No Content-Length: the body is counted as it streams in
    headers = signed_headers(b"")
    response = client.post("/webhooks/square", content=_chunks(2 * 1024 * 1024), headers=headers)

    assert response.status_code == 413
    assert response.json() == {"detail": "Payload too large"}
    assert db.query(models.ReceivedEvent).count() == 0


def test_chunked_payload_within_limit_is_processed(client, signed_headers):
    body = b'{"type":"future.thing","data":{"object":{}}}'

    def stream():
        yield body[:10]
        yield body[10:]

    response = client.post("/webhooks/square", content=stream(), headers=signed_headers(body))

    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_replay_reports_unavailable_queue(client, db, api_key, celery_task_always_eager):
    event = crud.record_event(db, b'{"type":"x.y"}', "x.y", "evt_1")
    celery_task_always_eager.side_effect = ConnectionError("connection refused")

    response = client.post(
        f"/events/{event.id}/replay", headers={"Authorization": f"Bearer {api_key}"}
    )

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {"detail": "Dispatch queue unavailable"}
