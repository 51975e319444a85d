import copy
import uuid
from contextlib import contextmanager
from typing import Any

import pytest

ALICE = "00000000-0000-0000-0000-00000000000a"
BOB = "00000000-0000-0000-0000-00000000000b"
CAROL = "00000000-0000-0000-0000-00000000000c"


class FakeInterestStore:
    """In-memory stand-in for SqlInterestStore with snapshot rollback."""

    def __init__(self) -> None:
        self.profiles: dict[str, dict[str, Any]] = {}
        self.edges: dict[str, dict[str, Any]] = {}
        self.declined: set[tuple[str, str]] = set()
        self.events: list[dict[str, Any]] = []
        self._depth = 0

    def add_profile(self, user_id: str, **fields: Any) -> dict[str, Any]:
        profile = {"user_id": user_id, "approval_status": "approved", **fields}
        self.profiles[user_id] = profile
        return profile

    def add_edge(self, sender_id: str, receiver_id: str, status: str = "pending") -> dict[str, Any]:
        edge = {
            "id": str(uuid.uuid4()),
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "status": status,
            "message": None,
        }
        self.edges[edge["id"]] = edge
        return dict(edge)

    @contextmanager
    def transaction(self):
        self._depth += 1
        snapshot = None
        if self._depth == 1:
            snapshot = copy.deepcopy((self.edges, self.declined, self.events))
        try:
            yield self
        except Exception:
            if snapshot is not None:
                self.edges, self.declined, self.events = snapshot
            raise
        finally:
            self._depth -= 1

    def get_profile(self, user_id: str) -> dict[str, Any] | None:
        profile = self.profiles.get(user_id)
        return dict(profile) if profile else None

    def get_display_name(self, user_id: str) -> str:
        profile = self.profiles.get(user_id) or {}
        return profile.get("first_name") or "Someone"

    def get_contact_info(self, user_id: str) -> dict[str, Any] | None:
        profile = self.profiles.get(user_id)
        if not profile:
            return None
        return {
            "name": profile.get("first_name"),
            "email": profile.get("email"),
            "phone": profile.get("phone"),
            "linkedin": profile.get("linkedin_profile"),
            "instagram": profile.get("instagram_handle"),
        }

    def get_edge(self, edge_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
        edge = self.edges.get(edge_id)
        return dict(edge) if edge else None

    def get_edge_by_pair(self, sender_id: str, receiver_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
        for edge in self.edges.values():
            if edge["sender_id"] == sender_id and edge["receiver_id"] == receiver_id:
                return dict(edge)
        return None

    def insert_edge(self, sender_id: str, receiver_id: str, message: str | None) -> dict[str, Any] | None:
        if self.get_edge_by_pair(sender_id, receiver_id) is not None:
            return None
        edge = self.add_edge(sender_id, receiver_id)
        self.edges[edge["id"]]["message"] = message
        return self.get_edge(edge["id"])

    def set_edge_status(self, edge_id: str, status: str) -> dict[str, Any]:
        self.edges[edge_id]["status"] = status
        return dict(self.edges[edge_id])

    def list_edges(self, user_id: str, direction: str) -> list[dict[str, Any]]:
        key = "receiver_id" if direction == "received" else "sender_id"
        return [dict(e) for e in self.edges.values() if e[key] == user_id]

    def count_pending_received(self, user_id: str) -> int:
        return sum(1 for e in self.edges.values() if e["receiver_id"] == user_id and e["status"] == "pending")

    def record_event(self, edge, actor_id, event_type, from_status, to_status, payload=None) -> None:
        self.events.append(
            {
                "interest_id": edge["id"],
                "actor_user_id": actor_id,
                "event_type": event_type,
                "from_status": from_status,
                "to_status": to_status,
                "payload": payload or {},
            }
        )

    def add_declined(self, user_id: str, declined_user_id: str) -> None:
        self.declined.add((user_id, declined_user_id))

    def remove_declined(self, user_id: str, declined_user_id: str) -> bool:
        if (user_id, declined_user_id) not in self.declined:
            return False
        self.declined.discard((user_id, declined_user_id))
        return True

    def list_declined(self, user_id: str) -> list[dict[str, Any]]:
        return [{"declined_user_id": d} for u, d in sorted(self.declined) if u == user_id]


@pytest.fixture
def store() -> FakeInterestStore:
    fake = FakeInterestStore()
    fake.add_profile(ALICE, first_name="Alice", gender="female", email="alice@example.com", phone="555-0100")
    fake.add_profile(BOB, first_name="Bob", gender="male", email="bob@example.com", phone="555-0101")
    fake.add_profile(CAROL, first_name="Carol", gender="female", email="carol@example.com")
    return fake
