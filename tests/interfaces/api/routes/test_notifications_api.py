"""Tests for the notification and health HTTP endpoints."""

from __future__ import annotations

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from daonotify.domain.entities import AutoUserAction, NotificationType
from main import create_app

ADMIN = {"X-User-Id": "u-admin"}
LEAD = {"X-User-Id": "u-lead"}
BOB = {"X-User-Id": "u-bob"}


@pytest.fixture
def make_client(make_settings, users, daos):
    clients = []

    def factory(**overrides):
        values = {"app_env": "test", "admin_email": "admin@dao.test"}
        values.update(overrides)
        app = create_app(make_settings(**values), users=users, daos=daos)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


def _store(client):
    return client.app.state.notification_store


def test_requests_without_a_known_active_user_are_rejected(client):
    assert client.get("/notifications/").status_code == 401
    assert client.get("/notifications/", headers={"X-User-Id": "u-nobody"}).status_code == 401

    response = client.get("/notifications/", headers={"X-User-Id": "u-gone"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Utilisateur inactif"


def test_list_and_mark_notifications_read(client):
    """Each user only sees the notifications addressed to them."""

    store = _store(client)
    broadcast = store.broadcast(NotificationType.SYSTEM, "Info", "Corps")
    targeted = store.add(NotificationType.TASK_NOTIFICATION, "Tâche", "Corps", recipients=["u-lead"])

    listed = client.get("/notifications/", headers=LEAD).json()
    assert [item["id"] for item in listed] == [targeted.id, broadcast.id]
    assert listed[0]["type"] == "task_notification"
    assert listed[0]["read"] is False

    assert [item["id"] for item in client.get("/notifications/", headers=BOB).json()] == [
        broadcast.id
    ]

    response = client.put(f"/notifications/{targeted.id}/read", headers=LEAD)
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    assert client.put("/notifications/read-all", headers=LEAD).json() == {"ok": True, "count": 1}
    assert client.put("/notifications/read-all", headers=LEAD).json()["count"] == 0


def test_marking_an_unknown_or_foreign_notification_returns_404(client):
    targeted = _store(client).add(
        NotificationType.TASK_NOTIFICATION, "Tâche", "Corps", recipients=["u-lead"]
    )

    response = client.put(f"/notifications/{targeted.id}/read", headers=BOB)
    assert response.status_code == 404
    assert response.json()["detail"] == "Notification introuvable"
    assert client.put("/notifications/inconnue/read", headers=LEAD).status_code == 404


def test_only_admins_can_clear_notifications(client):
    _store(client).broadcast(NotificationType.SYSTEM, "Info", "Corps")

    response = client.delete("/notifications/", headers=BOB)
    assert response.status_code == 403
    assert response.json()["detail"] == "Non autorisé"

    assert client.delete("/notifications/", headers=ADMIN).json() == {"ok": True}
    assert client.get("/notifications/", headers=BOB).json() == []


def test_test_email_reports_the_delivery_summary(client):
    response = client.post("/notifications/test-email", headers=ADMIN)

    assert response.status_code == 200
    assert response.json() == {"ok": True, "attempted": 1, "sent": 1, "failed": 0}
    assert client.post("/notifications/test-email", headers=LEAD).status_code == 403


def test_test_email_failure_maps_to_bad_gateway(make_client):
    client = make_client(app_env="production", smtp_disable=True)

    response = client.post("/notifications/test-email", headers=ADMIN)

    assert response.status_code == 502
    assert response.json()["detail"]["code"] == "transport_unavailable"


def test_email_health_endpoints(client):
    client.post("/notifications/test-email", headers=ADMIN)

    diagnostics = client.get("/health/email", headers=ADMIN).json()
    assert diagnostics["config"]["dry_run"] is True
    assert diagnostics["stats"]["total_sent"] == 1
    assert diagnostics["recent"][0]["outcome"] == "dry_run"

    assert client.delete("/health/email", headers=ADMIN).json() == {"ok": True}
    assert client.get("/health/email", headers=ADMIN).json()["recent"] == []
    assert client.get("/health/email", headers=BOB).status_code == 403


def test_auto_user_audit_endpoints(client):
    audit = client.app.state.auto_user_audit
    for index in range(3):
        audit.record(AutoUserAction.CREATED, f"user{index}@dao.test", dao_id="dao-1")

    entries = client.get("/health/auto-users", params={"limit": 2}, headers=ADMIN).json()
    assert len(entries) == 2
    assert entries[0]["email_masked"] == "***@dao.test"
    assert entries[0]["action"] == "created"

    assert client.get("/health/auto-users", params={"limit": 0}, headers=ADMIN).status_code == 422
    assert client.get("/health/auto-users", params={"limit": 201}, headers=ADMIN).status_code == 422

    assert client.delete("/health/auto-users", headers=ADMIN).json() == {"ok": True}
    assert client.get("/health/auto-users", headers=ADMIN).json() == []


def test_websocket_sends_unread_notifications_and_handles_acks(client):
    store = _store(client)
    notification = store.broadcast(NotificationType.SYSTEM, "Info", "Corps")

    with client.websocket_connect("/notifications/ws?user_id=u-bob") as websocket:
        init = websocket.receive_json()
        assert init["type"] == "init"
        assert [item["id"] for item in init["data"]] == [notification.id]

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

        websocket.send_json({"type": "ack", "ids": [notification.id]})
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

    assert store.list_for_user("u-bob")[0].read is True


def test_websocket_rejects_unknown_users(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/notifications/ws?user_id=u-nobody") as websocket:
            websocket.receive_json()

    assert excinfo.value.code == 1008
