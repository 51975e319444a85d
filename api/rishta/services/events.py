import json
import uuid
from typing import Any

from sqlalchemy import text


def log_interest_event(
    db,
    *,
    interest_id: str,
    actor_user_id: str,
    event_type: str,
    from_status: str | None = None,
    to_status: str | None = None,
    payload: dict[str, Any] | None = None,
) -> None:
    payload = payload or {}
    db.execute(
        text(
            """
            INSERT INTO interest_event (id, interest_id, actor_user_id, event_type, from_status, to_status, payload)
            VALUES (
              :id,
              CAST(:interest_id AS uuid),
              CAST(:actor_user_id AS uuid),
              :event_type,
              :from_status,
              :to_status,
              CAST(:payload AS jsonb)
            )
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "interest_id": interest_id,
            "actor_user_id": actor_user_id,
            "event_type": event_type,
            "from_status": from_status,
            "to_status": to_status,
            "payload": json.dumps(payload),
        },
    )


def log_product_event(
    db,
    *,
    event_name: str,
    user_id: str | None = None,
    properties: dict[str, Any] | None = None,
) -> None:
    properties = properties or {}
    db.execute(
        text(
            """
            INSERT INTO product_event (id, user_id, event_name, properties)
            VALUES (
              :id,
              CAST(NULLIF(:user_id, '') AS uuid),
              :event_name,
              CAST(:properties AS jsonb)
            )
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "user_id": user_id or "",
            "event_name": event_name,
            "properties": json.dumps(properties),
        },
    )


def log_profile_event(
    db,
    user_id: str,
    event_type: str,
    payload: dict[str, Any] | None = None,
) -> None:
    payload = payload or {}
    db.execute(
        text(
            """
            INSERT INTO user_profile_event (id, user_id, event_type, payload)
            VALUES (:id, CAST(:user_id AS uuid), :event_type, CAST(:payload AS jsonb))
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "event_type": event_type,
            "payload": json.dumps(payload),
        },
    )
