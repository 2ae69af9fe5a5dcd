import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from circle_friends.api.deps import get_db, get_sleep
from circle_friends.db.base import Base
import circle_friends.models  # noqa: F401
from circle_friends.main import app


@pytest.fixture()
def client(fake_sleep):
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sleep] = lambda: fake_sleep
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _signup(client, user_id, name):
    r = client.patch("/api/v1/users/me", json={"name": name}, headers={"X-User-Id": user_id})
    assert r.status_code == 200


def _status(client, me, other):
    r = client.get(f"/api/v1/friends/status/{other}", headers={"X-User-Id": me})
    assert r.status_code == 200
    return r.json()["status"]


def _send(client, sender, target):
    return client.post(
        "/api/v1/friends/requests", json={"user_id": target}, headers={"X-User-Id": sender}
    )


@pytest.fixture()
def users(client):
    _signup(client, "u1", "User One")
    _signup(client, "u2", "User Two")


def test_send_request_sets_pending_on_both_sides(client, users):
    r = _send(client, "u1", "u2")
    assert r.status_code == 201
    assert r.json()["ok"] is True

    assert _status(client, "u1", "u2") == "pending_sent"
    assert _status(client, "u2", "u1") == "pending_received"

    incoming = client.get("/api/v1/friends/requests", headers={"X-User-Id": "u2"}).json()
    assert len(incoming) == 1
    assert incoming[0]["counterpart_id"] == "u1"
    assert incoming[0]["name"] == "User One"

    sent = client.get("/api/v1/friends/requests/sent", headers={"X-User-Id": "u1"}).json()
    assert [s["counterpart_id"] for s in sent] == ["u2"]

    notes = client.get("/api/v1/notifications", headers={"X-User-Id": "u2"}).json()
    assert len(notes) == 1
    assert notes[0]["type"] == "friend_request"
    assert notes[0]["data"]["sender_id"] == "u1"
    assert notes[0]["data"]["sender_name"] == "User One"


def test_send_request_twice_is_idempotent(client, users):
    assert _send(client, "u1", "u2").status_code == 201
    assert _send(client, "u1", "u2").status_code == 201

    incoming = client.get("/api/v1/friends/requests", headers={"X-User-Id": "u2"}).json()
    assert len(incoming) == 1


def test_accept_request_makes_friends(client, users, fake_sleep):
    _send(client, "u1", "u2")

    a = client.post("/api/v1/friends/requests/u1/accept", headers={"X-User-Id": "u2"})
    assert a.status_code == 200
    assert a.json()["ok"] is True
    assert fake_sleep.calls == [1.0]

    assert _status(client, "u1", "u2") == "friends"
    assert _status(client, "u2", "u1") == "friends"

    f1 = client.get("/api/v1/friends", headers={"X-User-Id": "u1"}).json()
    f2 = client.get("/api/v1/friends", headers={"X-User-Id": "u2"}).json()
    assert [f["id"] for f in f1] == ["u2"]
    assert [f["id"] for f in f2] == ["u1"]

    assert client.get("/api/v1/friends/requests", headers={"X-User-Id": "u2"}).json() == []

    notes = client.get("/api/v1/notifications", headers={"X-User-Id": "u1"}).json()
    accepted = [n for n in notes if n["type"] == "friend_request_accepted"]
    assert len(accepted) == 1
    assert accepted[0]["data"] == {"accepter_id": "u2", "accepter_name": "User Two"}


def test_cancel_request(client, users):
    _send(client, "u1", "u2")

    c = client.delete("/api/v1/friends/requests/u2", headers={"X-User-Id": "u1"})
    assert c.status_code == 200

    assert _status(client, "u1", "u2") == "none"
    assert _status(client, "u2", "u1") == "none"


def test_reject_request_allows_resend(client, users):
    _send(client, "u1", "u2")

    r = client.post("/api/v1/friends/requests/u1/reject", headers={"X-User-Id": "u2"})
    assert r.status_code == 200
    assert _status(client, "u2", "u1") == "none"
    assert client.get("/api/v1/friends/requests", headers={"X-User-Id": "u2"}).json() == []

    assert _send(client, "u1", "u2").status_code == 201
    assert _status(client, "u1", "u2") == "pending_sent"


def test_accept_without_request_fails(client, users, fake_sleep):
    a = client.post("/api/v1/friends/requests/u1/accept", headers={"X-User-Id": "u2"})
    assert a.status_code == 400
    assert fake_sleep.calls == []
    assert _status(client, "u1", "u2") == "none"


def test_reject_and_cancel_without_request_fail(client, users):
    assert client.post("/api/v1/friends/requests/u1/reject", headers={"X-User-Id": "u2"}).status_code == 400
    assert client.delete("/api/v1/friends/requests/u2", headers={"X-User-Id": "u1"}).status_code == 400


def test_cannot_request_self_or_unknown_user(client, users):
    assert _send(client, "u1", "u1").status_code == 400
    assert _send(client, "u1", "ghost").status_code == 400


def test_second_accept_fails_without_new_notification(client, users, fake_sleep):
    _send(client, "u1", "u2")
    assert client.post("/api/v1/friends/requests/u1/accept", headers={"X-User-Id": "u2"}).status_code == 200
    fake_sleep.calls.clear()

    again = client.post("/api/v1/friends/requests/u1/accept", headers={"X-User-Id": "u2"})
    assert again.status_code == 400
    assert fake_sleep.calls == []
    assert _status(client, "u1", "u2") == "friends"

    notes = client.get("/api/v1/notifications", headers={"X-User-Id": "u1"}).json()
    assert len([n for n in notes if n["type"] == "friend_request_accepted"]) == 1
