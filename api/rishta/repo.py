import json
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import text

from .config import CANDIDATE_POOL_LIMIT, NOTIFY_DEFAULT_CHANNELS
from .database import SessionLocal
from .services.events import log_profile_event
from .services.normalization import PREFERENCE_FIELDS, dealbreaker_key

PROFILE_ATTRIBUTE_COLUMNS = (
    "first_name",
    "last_name",
    "gender",
    "date_of_birth",
    "height",
    "marital_status",
    "religion",
    "community",
    "sub_community",
    "caste",
    "gotra",
    "diet",
    "smoking",
    "drinking",
    "citizenship",
    "grew_up_in",
    "country",
    "relocation",
    "current_location",
    "qualification",
    "annual_income",
    "occupation",
    "family_values",
    "family_location",
    "mother_tongue",
    "pets",
    "about_me",
)
CONTACT_COLUMNS = ("phone", "linkedin_profile", "instagram_handle")
PREFERENCE_COLUMNS = tuple(key for keys in PREFERENCE_FIELDS.values() for key in keys)
DEALBREAKER_COLUMNS = tuple(dealbreaker_key(field) for field in PREFERENCE_FIELDS)
EDITABLE_PROFILE_COLUMNS = PROFILE_ATTRIBUTE_COLUMNS + CONTACT_COLUMNS + PREFERENCE_COLUMNS + DEALBREAKER_COLUMNS


def _profile_dict(row) -> dict[str, Any]:
    data = dict(row)
    data["user_id"] = str(data["user_id"])
    return data


def strip_contact_fields(profile: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in profile.items() if k not in CONTACT_COLUMNS and k != "email"}


def display_name(profile: dict[str, Any] | None) -> str:
    if not profile:
        return "Someone"
    first = str(profile.get("first_name") or "").strip()
    if first:
        return first
    email = str(profile.get("email") or "").strip()
    return email.split("@", 1)[0] if email else "Someone"


def get_user_by_id(user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(text("SELECT * FROM user_account WHERE id=CAST(:id AS uuid)"), {"id": user_id}).mappings().first()
    return dict(row) if row else None


def get_profile(user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
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
    return _profile_dict(row) if row else None


def upsert_profile(user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    columns = [c for c in EDITABLE_PROFILE_COLUMNS if c in fields]
    insert_cols = ", ".join(["user_id"] + columns)
    insert_vals = ", ".join(["CAST(:user_id AS uuid)"] + [f":{c}" for c in columns])
    updates = ", ".join([f"{c} = EXCLUDED.{c}" for c in columns] + ["updated_at = NOW()"])
    params = {"user_id": user_id, **{c: fields[c] for c in columns}}

    with SessionLocal() as db:
        db.execute(
            text(
                f"""
                INSERT INTO profile ({insert_cols})
                VALUES ({insert_vals})
                ON CONFLICT (user_id)
                DO UPDATE SET {updates}
                """
            ),
            params,
        )
        log_profile_event(db, user_id, "profile_updated", {"fields": columns})
        db.commit()
    return get_profile(user_id) or {"user_id": user_id, **{c: fields[c] for c in columns}}


def list_candidate_pool(seeker_id: str, gender: str, limit: int | None = None) -> list[dict[str, Any]]:
    """Approved, active profiles of ``gender`` other than the seeker."""
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT p.*
                FROM profile p
                JOIN user_account u ON u.id = p.user_id
                WHERE p.user_id <> CAST(:seeker_id AS uuid)
                  AND p.approval_status = 'approved'
                  AND p.is_active = true
                  AND u.disabled_at IS NULL
                  AND LOWER(p.gender) = :gender
                ORDER BY p.updated_at DESC
                LIMIT :limit
                """
            ),
            {"seeker_id": seeker_id, "gender": gender, "limit": max(1, int(limit or CANDIDATE_POOL_LIMIT))},
        ).mappings().all()
    return [_profile_dict(r) for r in rows]


def list_profiles(*, offset: int = 0, limit: int = 200) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text("SELECT * FROM profile ORDER BY created_at ASC, user_id ASC OFFSET :offset LIMIT :limit"),
            {"offset": max(0, int(offset)), "limit": max(1, min(1000, int(limit)))},
        ).mappings().all()
    return [_profile_dict(r) for r in rows]


def get_profiles_by_ids(user_ids: list[str]) -> list[dict[str, Any]]:
    if not user_ids:
        return []
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT p.*, u.email
                FROM profile p
                JOIN user_account u ON u.id = p.user_id
                WHERE p.user_id = ANY(CAST(:user_ids AS uuid[]))
                """
            ),
            {"user_ids": list(user_ids)},
        ).mappings().all()
    return [_profile_dict(r) for r in rows]


def list_declined_user_ids(user_id: str) -> set[str]:
    with SessionLocal() as db:
        rows = db.execute(
            text("SELECT declined_user_id FROM declined_profile WHERE user_id = CAST(:user_id AS uuid)"),
            {"user_id": user_id},
        ).mappings().all()
    return {str(r["declined_user_id"]) for r in rows}


def list_declined_by_user_ids(user_id: str) -> set[str]:
    with SessionLocal() as db:
        rows = db.execute(
            text("SELECT user_id FROM declined_profile WHERE declined_user_id = CAST(:user_id AS uuid)"),
            {"user_id": user_id},
        ).mappings().all()
    return {str(r["user_id"]) for r in rows}


def list_interest_edges(user_id: str) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """``(sent, received)`` interest edges touching ``user_id``."""
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, sender_id, receiver_id, status, message, created_at, updated_at
                FROM interest
                WHERE sender_id = CAST(:user_id AS uuid) OR receiver_id = CAST(:user_id AS uuid)
                """
            ),
            {"user_id": user_id},
        ).mappings().all()
    edges = [{**dict(r), "id": str(r["id"]), "sender_id": str(r["sender_id"]), "receiver_id": str(r["receiver_id"])} for r in rows]
    sent = [e for e in edges if e["sender_id"] == user_id]
    received = [e for e in edges if e["receiver_id"] == user_id]
    return sent, received


def contact_info_from_profile(profile: dict[str, Any]) -> dict[str, Any]:
    name = " ".join(p for p in [str(profile.get("first_name") or "").strip(), str(profile.get("last_name") or "").strip()] if p)
    return {
        "name": name or None,
        "email": profile.get("email"),
        "phone": profile.get("phone"),
        "linkedin": profile.get("linkedin_profile"),
        "instagram": profile.get("instagram_handle"),
    }


# Notifications


def get_notification_preferences(user_id: str) -> dict[str, Any]:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                INSERT INTO notification_preference (user_id, email_enabled, sms_enabled)
                VALUES (CAST(:user_id AS uuid), :email_enabled, :sms_enabled)
                ON CONFLICT (user_id) DO NOTHING
                """
            ),
            {
                "user_id": user_id,
                "email_enabled": "email" in NOTIFY_DEFAULT_CHANNELS,
                "sms_enabled": "sms" in NOTIFY_DEFAULT_CHANNELS,
            },
        )
        row = db.execute(
            text(
                """
                SELECT user_id, email_enabled, sms_enabled, in_app_enabled, interest_notifications, updated_at
                FROM notification_preference
                WHERE user_id = CAST(:user_id AS uuid)
                """
            ),
            {"user_id": user_id},
        ).mappings().first()
        db.commit()
    return dict(row) if row else {
        "user_id": user_id,
        "email_enabled": "email" in NOTIFY_DEFAULT_CHANNELS,
        "sms_enabled": "sms" in NOTIFY_DEFAULT_CHANNELS,
        "in_app_enabled": True,
        "interest_notifications": True,
        "updated_at": None,
    }


def update_notification_preferences(
    *,
    user_id: str,
    email_enabled: bool,
    sms_enabled: bool,
    in_app_enabled: bool,
    interest_notifications: bool,
) -> dict[str, Any]:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                INSERT INTO notification_preference (
                  user_id, email_enabled, sms_enabled, in_app_enabled, interest_notifications, updated_at
                )
                VALUES (
                  CAST(:user_id AS uuid),
                  :email_enabled,
                  :sms_enabled,
                  :in_app_enabled,
                  :interest_notifications,
                  NOW()
                )
                ON CONFLICT (user_id)
                DO UPDATE SET
                  email_enabled = EXCLUDED.email_enabled,
                  sms_enabled = EXCLUDED.sms_enabled,
                  in_app_enabled = EXCLUDED.in_app_enabled,
                  interest_notifications = EXCLUDED.interest_notifications,
                  updated_at = NOW()
                """
            ),
            {
                "user_id": user_id,
                "email_enabled": bool(email_enabled),
                "sms_enabled": bool(sms_enabled),
                "in_app_enabled": bool(in_app_enabled),
                "interest_notifications": bool(interest_notifications),
            },
        )
        db.commit()
    return get_notification_preferences(user_id)


def create_in_app_notification(
    *,
    user_id: str,
    notification_type: str,
    title: str,
    body: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    notification_id = str(uuid.uuid4())
    with SessionLocal() as db:
        db.execute(
            text(
                """
                INSERT INTO notification_in_app (id, user_id, notification_type, title, body, payload_json, created_at)
                VALUES (
                  CAST(:id AS uuid),
                  CAST(:user_id AS uuid),
                  :notification_type,
                  :title,
                  :body,
                  CAST(:payload_json AS jsonb),
                  NOW()
                )
                """
            ),
            {
                "id": notification_id,
                "user_id": user_id,
                "notification_type": notification_type,
                "title": title,
                "body": body,
                "payload_json": json.dumps(payload or {}),
            },
        )
        db.commit()
    return {"id": notification_id, "user_id": user_id, "notification_type": notification_type, "title": title, "body": body}


def list_in_app_notifications(user_id: str, *, unread_only: bool = False, limit: int = 50) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, notification_type, title, body, payload_json, read_at, created_at
                FROM notification_in_app
                WHERE user_id = CAST(:user_id AS uuid)
                  AND (:unread_only = false OR read_at IS NULL)
                ORDER BY created_at DESC
                LIMIT :limit
                """
            ),
            {"user_id": user_id, "unread_only": bool(unread_only), "limit": max(1, min(200, int(limit)))},
        ).mappings().all()
    return [{**dict(r), "id": str(r["id"])} for r in rows]


def mark_in_app_notification_read(user_id: str, notification_id: str) -> bool:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE notification_in_app
                SET read_at = COALESCE(read_at, NOW())
                WHERE id = CAST(:id AS uuid)
                  AND user_id = CAST(:user_id AS uuid)
                """
            ),
            {"id": notification_id, "user_id": user_id},
        )
        db.commit()
    return bool(result.rowcount)


def enqueue_outbox_notification(
    *,
    user_id: str,
    channel: str,
    notification_type: str,
    payload: dict[str, Any],
    scheduled_for: datetime,
    idempotency_key: str,
) -> dict[str, Any]:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                INSERT INTO notification_outbox (
                  id,
                  user_id,
                  channel,
                  notification_type,
                  payload_json,
                  status,
                  next_attempt_at,
                  idempotency_key,
                  created_at,
                  updated_at
                )
                VALUES (
                  CAST(:id AS uuid),
                  CAST(:user_id AS uuid),
                  :channel,
                  :notification_type,
                  CAST(:payload_json AS jsonb),
                  'pending',
                  :scheduled_for,
                  :idempotency_key,
                  NOW(),
                  NOW()
                )
                ON CONFLICT (idempotency_key)
                DO UPDATE SET
                  payload_json = EXCLUDED.payload_json,
                  next_attempt_at = LEAST(notification_outbox.next_attempt_at, EXCLUDED.next_attempt_at),
                  updated_at = NOW()
                RETURNING id, user_id, channel, notification_type, status, next_attempt_at, attempt_count, idempotency_key
                """
            ),
            {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "channel": channel,
                "notification_type": notification_type,
                "payload_json": json.dumps(payload or {}),
                "scheduled_for": scheduled_for,
                "idempotency_key": idempotency_key,
            },
        ).mappings().first()
        db.commit()
    return dict(row) if row else {
        "user_id": user_id,
        "channel": channel,
        "notification_type": notification_type,
        "status": "pending",
        "next_attempt_at": scheduled_for,
        "idempotency_key": idempotency_key,
    }


def list_due_outbox_notifications(*, limit: int = 100) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT o.id, o.user_id, o.channel, o.notification_type, o.payload_json, o.attempt_count,
                       u.email, p.phone
                FROM notification_outbox o
                JOIN user_account u ON u.id = o.user_id
                LEFT JOIN profile p ON p.user_id = o.user_id
                WHERE o.status = 'pending'
                  AND o.next_attempt_at <= NOW()
                ORDER BY o.next_attempt_at ASC, o.created_at ASC
                LIMIT :limit
                """
            ),
            {"limit": max(1, min(500, int(limit)))},
        ).mappings().all()
    return [dict(r) for r in rows]


def mark_outbox_sent(outbox_id: str) -> None:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                UPDATE notification_outbox
                SET status = 'sent',
                    attempt_count = attempt_count + 1,
                    last_error = NULL,
                    sent_at = NOW(),
                    updated_at = NOW()
                WHERE id = CAST(:id AS uuid)
                """
            ),
            {"id": outbox_id},
        )
        db.commit()


def mark_outbox_failed(outbox_id: str, *, error: str, give_up: bool, next_attempt_at: datetime) -> None:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                UPDATE notification_outbox
                SET attempt_count = attempt_count + 1,
                    status = CASE WHEN :give_up THEN 'failed' ELSE 'pending' END,
                    last_error = :last_error,
                    next_attempt_at = CASE WHEN :give_up THEN next_attempt_at ELSE :next_attempt_at END,
                    updated_at = NOW()
                WHERE id = CAST(:id AS uuid)
                """
            ),
            {"id": outbox_id, "give_up": bool(give_up), "last_error": error, "next_attempt_at": next_attempt_at},
        )
        db.commit()
