import pytest

from rishta import repo
from rishta.services import candidates
from rishta.services.errors import NotFoundError

SEEKER = "00000000-0000-0000-0000-000000000001"


def _groom(n, **fields):
    return {"user_id": f"00000000-0000-0000-0000-0000000001{n:02d}", "gender": "male", "phone": "555", **fields}


def test_build_candidate_list_filters_and_ranks():
    seeker = {"user_id": SEEKER, "gender": "female", "pref_diet": "vegetarian", "pref_religion": "Hindu"}
    perfect = _groom(1, diet="vegetarian", religion="Hindu")
    partial = _groom(2, diet="vegan", religion="Christian")
    admirer = _groom(3, diet="vegan", religion="Sikh")
    meat_eater = _groom(4, diet="non_vegetarian")
    declined = _groom(5)
    declined_me = _groom(6)
    already_sent = _groom(7)
    connected = _groom(8)
    picky = _groom(9, pref_diet="vegan", pref_diet_is_dealbreaker=True)
    seeker["diet"] = "vegetarian"
    bride = {"user_id": "00000000-0000-0000-0000-000000000200", "gender": "female"}

    pool = [partial, perfect, admirer, meat_eater, declined, declined_me, already_sent, connected, picky, bride]
    sent = [
        {"sender_id": SEEKER, "receiver_id": already_sent["user_id"], "status": "pending"},
        {"sender_id": SEEKER, "receiver_id": connected["user_id"], "status": "accepted"},
    ]
    received = [
        {"sender_id": admirer["user_id"], "receiver_id": SEEKER, "status": "pending"},
        {"sender_id": connected["user_id"], "receiver_id": SEEKER, "status": "accepted"},
    ]

    out = candidates.build_candidate_list(
        seeker,
        pool,
        declined_ids={declined["user_id"]},
        declined_by_ids={declined_me["user_id"]},
        sent=sent,
        received=received,
    )

    assert [c["user_id"] for c in out] == [admirer["user_id"], perfect["user_id"], partial["user_id"]]
    assert out[0]["they_liked_me_first"] is True
    assert out[1]["match_score"]["percentage"] == 100
    assert out[2]["match_score"]["percentage"] == 50
    assert all("phone" not in c for c in out)
    assert "their_match_score" in out[0]


def test_opposite_gender():
    assert candidates.opposite_gender("Female") == "male"
    assert candidates.opposite_gender("groom") == "female"
    assert candidates.opposite_gender(None) is None


def test_list_candidates_requires_profile(monkeypatch):
    monkeypatch.setattr(repo, "get_profile", lambda user_id: None)
    with pytest.raises(NotFoundError):
        candidates.list_candidates(SEEKER)


def test_list_candidates_without_gender_is_empty(monkeypatch):
    monkeypatch.setattr(repo, "get_profile", lambda user_id: {"user_id": SEEKER})
    assert candidates.list_candidates(SEEKER) == []


def test_list_connections_attaches_contact(monkeypatch):
    partner = "00000000-0000-0000-0000-000000000101"
    monkeypatch.setattr(
        repo,
        "list_interest_edges",
        lambda user_id: (
            [{"sender_id": SEEKER, "receiver_id": partner, "status": "accepted"}],
            [{"sender_id": partner, "receiver_id": SEEKER, "status": "accepted"}],
        ),
    )
    monkeypatch.setattr(
        repo,
        "get_profiles_by_ids",
        lambda ids: [{"user_id": i, "first_name": "Ravi", "email": "ravi@example.com", "phone": "555"} for i in ids],
    )

    [connection] = candidates.list_connections(SEEKER)
    assert connection["user_id"] == partner
    assert "phone" not in connection
    assert connection["contact_info"]["email"] == "ravi@example.com"
    assert connection["contact_info"]["phone"] == "555"
