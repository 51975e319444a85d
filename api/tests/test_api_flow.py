from contextlib import contextmanager

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import rishta.main as m
from conftest import ALICE, BOB, CAROL
from rishta import config, interest_store
from rishta.auth.deps import get_acting_user
from rishta.routes import admin as admin_routes
from rishta.services import notifications
from rishta.services.rate_limit import limiter


@pytest.fixture
def api(monkeypatch, store):
    monkeypatch.setattr(m, "wait_for_db", lambda *args, **kwargs: None)
    monkeypatch.setattr(m, "run_migrations", lambda *args, **kwargs: None)

    @contextmanager
    def fake_open_store():
        yield store

    monkeypatch.setattr(interest_store, "open_interest_store", fake_open_store)

    sent = []
    monkeypatch.setattr(notifications, "notify", lambda kind, user_id, payload: sent.append((kind, user_id)))

    actor = {"id": ALICE}
    m.app.dependency_overrides[get_acting_user] = lambda: {"id": actor["id"], "email": None, "is_admin_view": False}
    limiter.reset()

    class Api:
        client = TestClient(m.app)
        notified = sent

        def act_as(self, user_id):
            actor["id"] = user_id
            return self.client

    yield Api()
    m.app.dependency_overrides = {}
    limiter.reset()


def test_interest_lifecycle_over_http(api, store):
    client = api.act_as(ALICE)
    res = client.post("/interests", json={"receiver_id": BOB, "message": "Hi Bob"})
    assert res.status_code == 201
    body = res.json()
    interest_id = body["interest"]["id"]
    assert body["interest"]["status"] == "pending"
    assert body["mutual"] is False
    assert api.notified == [("new_interest", BOB)]

    res = client.post("/interests", json={"receiver_id": BOB})
    assert res.status_code == 409
    assert res.json() == {"detail": "Interest already sent", "reason": "already_sent"}

    res = api.act_as(CAROL).patch(f"/interests/{interest_id}", json={"action": "accept"})
    assert res.status_code == 403
    assert res.json()["reason"] == "not_receiver"

    client = api.act_as(BOB)
    res = client.patch(f"/interests/{interest_id}", json={"action": "reconsider"})
    assert res.status_code == 400
    assert res.json()["reason"] == "not_rejected"

    res = client.patch(f"/interests/{interest_id}", json={"action": "reject"})
    assert res.status_code == 200
    assert res.json()["interest"]["status"] == "rejected"
    assert len(api.notified) == 1

    res = client.patch(f"/interests/{interest_id}", json={"action": "reconsider"})
    assert res.status_code == 200
    assert res.json()["interest"]["status"] == "accepted"
    assert api.notified[-1] == ("interest_accepted", ALICE)

    res = client.post("/interests", json={"receiver_id": ALICE})
    assert res.status_code == 201
    back_id = res.json()["interest"]["id"]

    res = api.act_as(ALICE).patch(f"/interests/{back_id}", json={"action": "accept"})
    assert res.status_code == 200
    body = res.json()
    assert body["mutual"] is True
    assert body["contact_info"]["email"] == "bob@example.com"

    res = client.get("/interests/mutual", params={"user_id": BOB})
    assert res.json()["mutual"] is True
    assert res.json()["contact_info"]["phone"] == "555-0101"

    res = client.get("/interests", params={"type": "received"})
    assert [i["id"] for i in res.json()["interests"]] == [back_id]


def test_interest_request_validation(api):
    client = api.act_as(ALICE)
    assert client.post("/interests", json={"receiver_id": "not-a-uuid"}).status_code == 400
    res = client.post("/interests", json={"receiver_id": ALICE})
    assert res.status_code == 400
    assert res.json()["reason"] == "self_interest"
    assert client.get("/interests/00000000-0000-0000-0000-0000000000ff").status_code == 404
    assert client.get("/interests", params={"type": "everything"}).status_code == 400


def test_declined_routes(api, store):
    client = api.act_as(ALICE)
    res = client.post("/declined", json={"declined_user_id": CAROL})
    assert res.status_code == 201
    assert client.get("/declined").json()["declined"] == [{"declined_user_id": CAROL}]

    assert client.delete(f"/declined/{CAROL}").status_code == 200
    assert client.delete(f"/declined/{CAROL}").status_code == 404
    assert store.declined == set()


def test_admin_process_outbox_requires_token(api, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_TOKEN", "admin-secret")
    monkeypatch.setattr(admin_routes, "process_notifications_outbox", lambda limit: {"processed": 0, "limit": limit})

    res = api.client.post("/admin/notifications/process", json={"limit": 5})
    assert res.status_code == 401

    res = api.client.post("/admin/notifications/process", json={"limit": 5}, headers={"X-Admin-Token": "admin-secret"})
    assert res.status_code == 200
    assert res.json() == {"processed": 0, "limit": 5}


def test_scaffold_health_routes(api):
    for module in ("profile", "match", "interests", "declined", "notifications", "admin"):
        res = api.client.get(f"/_scaffold/{module}/health")
        assert res.json() == {"status": "ok", "module": module}
    assert api.client.get("/health").json() == {"status": "ok"}
