import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import text

from . import repo
from .database import SessionLocal
from .services.events import log_interest_event, log_product_event

logger = logging.getLogger(__name__)

_EDGE_COLUMNS = "id, sender_id, receiver_id, status, message, created_at, updated_at"


def _edge_dict(row) -> dict[str, Any]:
    data = dict(row)
    for key in ("id", "sender_id", "receiver_id"):
        data[key] = str(data[key])
    return data


class SqlInterestStore:
    """Interest edges, declined rows and profile lookups over one database session.

    ``transaction()`` commits once on success and rolls back on any error, so a
    transition and all its side effects apply together.
    """

    def __init__(self, db) -> None:
        self.db = db
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator["SqlInterestStore"]:
        self._depth += 1
        try:
            yield self
            if self._depth == 1:
                self.db.commit()
        except Exception:
            if self._depth == 1:
                self.db.rollback()
            raise
        finally:
            self._depth -= 1

    # Profiles

    def get_profile(self, user_id: str) -> dict[str, Any] | None:
        row = self.db.execute(
            text(
                """
                SELECT p.*, u.email
                FROM profile p
                JOIN user_account u ON u.id = p.user_id
                WHERE p.user_id = CAST(:user_id AS uuid)
                """
            ),
            {"user_id": user_id},
        ).mappings().first()
        return dict(row) if row else None

    def get_display_name(self, user_id: str) -> str:
        return repo.display_name(self.get_profile(user_id))

    def get_contact_info(self, user_id: str) -> dict[str, Any] | None:
        profile = self.get_profile(user_id)
        return repo.contact_info_from_profile(profile) if profile else None

    # Edges

    def get_edge(self, edge_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
        try:
            edge_uuid = str(uuid.UUID(str(edge_id)))
        except ValueError:
            return None
        lock = " FOR UPDATE" if for_update else ""
        row = self.db.execute(
            text(f"SELECT {_EDGE_COLUMNS} FROM interest WHERE id = CAST(:id AS uuid){lock}"),
            {"id": edge_uuid},
        ).mappings().first()
        return _edge_dict(row) if row else None

    def get_edge_by_pair(self, sender_id: str, receiver_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
        lock = " FOR UPDATE" if for_update else ""
        row = self.db.execute(
            text(
                f"""
                SELECT {_EDGE_COLUMNS}
                FROM interest
                WHERE sender_id = CAST(:sender_id AS uuid)
                  AND receiver_id = CAST(:receiver_id AS uuid){lock}
                """
            ),
            {"sender_id": sender_id, "receiver_id": receiver_id},
        ).mappings().first()
        return _edge_dict(row) if row else None

    def insert_edge(self, sender_id: str, receiver_id: str, message: str | None) -> dict[str, Any] | None:
        row = self.db.execute(
            text(
                f"""
                INSERT INTO interest (id, sender_id, receiver_id, status, message, created_at, updated_at)
                VALUES (CAST(:id AS uuid), CAST(:sender_id AS uuid), CAST(:receiver_id AS uuid), 'pending', :message, NOW(), NOW())
                ON CONFLICT (sender_id, receiver_id) DO NOTHING
                RETURNING {_EDGE_COLUMNS}
                """
            ),
            {"id": str(uuid.uuid4()), "sender_id": sender_id, "receiver_id": receiver_id, "message": message},
        ).mappings().first()
        return _edge_dict(row) if row else None

    def set_edge_status(self, edge_id: str, status: str) -> dict[str, Any]:
        row = self.db.execute(
            text(
                f"""
                UPDATE interest
                SET status = :status, updated_at = NOW()
                WHERE id = CAST(:id AS uuid)
                RETURNING {_EDGE_COLUMNS}
                """
            ),
            {"id": edge_id, "status": status},
        ).mappings().first()
        return _edge_dict(row)

    def list_edges(self, user_id: str, direction: str) -> list[dict[str, Any]]:
        own_col, other_col = ("receiver_id", "sender_id") if direction == "received" else ("sender_id", "receiver_id")
        rows = self.db.execute(
            text(
                f"""
                SELECT i.id, i.sender_id, i.receiver_id, i.status, i.message, i.created_at, i.updated_at,
                       p.first_name AS other_first_name,
                       p.current_location AS other_location
                FROM interest i
                LEFT JOIN profile p ON p.user_id = i.{other_col}
                WHERE i.{own_col} = CAST(:user_id AS uuid)
                ORDER BY i.created_at DESC
                """
            ),
            {"user_id": user_id},
        ).mappings().all()
        return [_edge_dict(r) for r in rows]

    def count_pending_received(self, user_id: str) -> int:
        value = self.db.execute(
            text("SELECT COUNT(1) FROM interest WHERE receiver_id = CAST(:user_id AS uuid) AND status = 'pending'"),
            {"user_id": user_id},
        ).scalar()
        return int(value or 0)

    def record_event(
        self,
        edge: dict[str, Any],
        actor_id: str,
        event_type: str,
        from_status: str | None,
        to_status: str | None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        log_interest_event(
            self.db,
            interest_id=str(edge["id"]),
            actor_user_id=actor_id,
            event_type=event_type,
            from_status=from_status,
            to_status=to_status,
            payload=payload,
        )
        log_product_event(
            self.db,
            event_name=event_type,
            user_id=actor_id,
            properties={"interest_id": str(edge["id"]), "from_status": from_status, "to_status": to_status, **(payload or {})},
        )

    # Declined list

    def add_declined(self, user_id: str, declined_user_id: str) -> None:
        self.db.execute(
            text(
                """
                INSERT INTO declined_profile (id, user_id, declined_user_id, created_at)
                VALUES (CAST(:id AS uuid), CAST(:user_id AS uuid), CAST(:declined_user_id AS uuid), NOW())
                ON CONFLICT (user_id, declined_user_id) DO NOTHING
                """
            ),
            {"id": str(uuid.uuid4()), "user_id": user_id, "declined_user_id": declined_user_id},
        )

    def remove_declined(self, user_id: str, declined_user_id: str) -> bool:
        result = self.db.execute(
            text(
                """
                DELETE FROM declined_profile
                WHERE user_id = CAST(:user_id AS uuid)
                  AND declined_user_id = CAST(:declined_user_id AS uuid)
                """
            ),
            {"user_id": user_id, "declined_user_id": declined_user_id},
        )
        return bool(result.rowcount)

    def list_declined(self, user_id: str) -> list[dict[str, Any]]:
        rows = self.db.execute(
            text(
                """
                SELECT d.declined_user_id, d.created_at, p.first_name, p.current_location
                FROM declined_profile d
                LEFT JOIN profile p ON p.user_id = d.declined_user_id
                WHERE d.user_id = CAST(:user_id AS uuid)
                ORDER BY d.created_at DESC
                """
            ),
            {"user_id": user_id},
        ).mappings().all()
        return [{**dict(r), "declined_user_id": str(r["declined_user_id"])} for r in rows]


@contextmanager
def open_interest_store() -> Iterator[SqlInterestStore]:
    with SessionLocal() as db:
        yield SqlInterestStore(db)
