import pytest

pytest.importorskip("fastapi")
from fastapi import HTTPException
from fastapi.testclient import TestClient

import rishta.main as m
from rishta import repo
from rishta.auth.deps import get_acting_user
from rishta.http_helpers import sanitize_profile_payload

ME = "00000000-0000-0000-0000-00000000000a"
OTHER = "00000000-0000-0000-0000-00000000000b"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(m, "wait_for_db", lambda *args, **kwargs: None)
    monkeypatch.setattr(m, "run_migrations", lambda *args, **kwargs: None)
    m.app.dependency_overrides[get_acting_user] = lambda: {"id": ME, "email": "me@example.com", "is_admin_view": False}
    yield TestClient(m.app)
    m.app.dependency_overrides = {}


def test_sanitize_profile_payload_drops_unknown_and_joins_lists():
    fields = sanitize_profile_payload(
        {"approval_status": "approved", "pref_mother_tongue": ["Telugu", "Tamil"], "pref_age_min": "025", "diet": " "}
    )
    assert "approval_status" not in fields
    assert fields["pref_mother_tongue"] == "Telugu, Tamil"
    assert fields["pref_age_min"] == "25"
    assert fields["diet"] is None


@pytest.mark.parametrize(
    "payload",
    [
        {"gender": "other"},
        {"date_of_birth": "yesterday"},
        {"height": "very tall"},
        {"pref_age_min": "17"},
        {"pref_age_min": "40", "pref_age_max": "30"},
        {"about_me": "x" * 4001},
    ],
)
def test_sanitize_profile_payload_rejects_bad_values(payload):
    with pytest.raises(HTTPException) as exc:
        sanitize_profile_payload(payload)
    assert exc.value.status_code == 400


def test_sanitize_profile_payload_clears_range_preferences_marked_no_preference():
    fields = sanitize_profile_payload(
        {"pref_height_min": "doesnt_matter", "pref_height_max": "Any", "pref_age_max": "No preference", "height": "5'8\""}
    )
    assert fields["pref_height_min"] is None
    assert fields["pref_height_max"] is None
    assert fields["pref_age_max"] is None
    assert fields["height"] == "5'8\""


def test_update_profile_normalizes_before_writing(client, monkeypatch):
    stored = {"user_id": ME, "community": "Brahmin", "approval_status": "approved"}
    written = {}
    monkeypatch.setattr(repo, "get_profile", lambda user_id: dict(stored))

    def fake_upsert(user_id, fields):
        written.update(fields)
        return {**stored, **fields}

    monkeypatch.setattr(repo, "upsert_profile", fake_upsert)

    res = client.put("/profile/me", json={"diet": "Veg", "pref_community": "same_as_mine"})
    assert res.status_code == 200
    assert written["diet"] == "vegetarian"
    assert written["pref_community"] == "Brahmin"
    assert written["pref_community_is_dealbreaker"] is True
    assert "approval_status" not in written

    assert client.put("/profile/me", json={"approval_status": "approved"}).status_code == 400


def test_public_profile_hides_contact_and_unapproved(client, monkeypatch):
    profiles = {
        OTHER: {"user_id": OTHER, "approval_status": "approved", "phone": "555", "email": "b@example.com"},
        ME: {"user_id": ME, "approval_status": "pending", "phone": "556"},
    }
    monkeypatch.setattr(repo, "get_profile", lambda user_id: profiles.get(user_id))

    body = client.get(f"/profiles/{OTHER}").json()
    assert "phone" not in body and "email" not in body
    assert client.get(f"/profiles/{ME}").status_code == 200

    profiles[OTHER]["approval_status"] = "pending"
    assert client.get(f"/profiles/{OTHER}").status_code == 404


def test_match_score_route(client, monkeypatch):
    profiles = {
        ME: {"user_id": ME, "gender": "female", "pref_diet": "vegetarian"},
        OTHER: {"user_id": OTHER, "gender": "male", "diet": "non_vegetarian"},
    }
    monkeypatch.setattr(repo, "get_profile", lambda user_id: profiles.get(user_id))

    body = client.get(f"/matches/{OTHER}/score").json()
    assert body["acceptable"] is False
    assert body["score"]["percentage"] == 0
