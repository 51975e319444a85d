import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from .. import repo
from ..config import NOTIFY_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

EXTERNAL_CHANNELS = ("email", "sms")


@dataclass
class NotificationEvent:
    kind: str
    user_id: str
    payload: dict[str, Any] = field(default_factory=dict)


NOTIFICATION_COPY: dict[str, tuple[str, str]] = {
    "new_interest": (
        "Someone is interested in you",
        "{sender_name} has expressed interest in your profile. You have {pending_count} pending interest(s).",
    ),
    "interest_accepted": (
        "Your interest was accepted",
        "{receiver_name} accepted your interest.",
    ),
}

MUTUAL_BODY = "{receiver_name} accepted your interest. You are now connected and can see each other's contact details."


class _Defaults(dict):
    def __missing__(self, key: str) -> str:
        return "Someone" if key.endswith("_name") else ""


def render_notification(kind: str, payload: dict[str, Any]) -> tuple[str, str]:
    title, body = NOTIFICATION_COPY.get(kind, ("Notification", ""))
    if kind == "interest_accepted" and payload.get("mutual"):
        body = MUTUAL_BODY
    values = _Defaults({k: v for k, v in payload.items() if v not in (None, "")})
    return title, body.format_map(values)


def enabled_channels(prefs: dict[str, Any]) -> list[str]:
    channels = []
    if prefs.get("email_enabled"):
        channels.append("email")
    if prefs.get("sms_enabled"):
        channels.append("sms")
    return channels


def notify(kind: str, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Store the in-app notification and queue one delivery per enabled channel."""
    prefs = repo.get_notification_preferences(user_id)
    if not prefs.get("interest_notifications", True):
        logger.info(f"[NOTIFY] skipped kind={kind} user_id={user_id} reason=interest_notifications_off")
        return {"in_app": False, "channels": []}

    title, body = render_notification(kind, payload)
    in_app = False
    if prefs.get("in_app_enabled", True):
        repo.create_in_app_notification(user_id=user_id, notification_type=kind, title=title, body=body, payload=payload)
        in_app = True

    channels = enabled_channels(prefs)
    now = datetime.now(timezone.utc)
    for channel in channels:
        repo.enqueue_outbox_notification(
            user_id=user_id,
            channel=channel,
            notification_type=kind,
            payload={**payload, "title": title, "body": body},
            scheduled_for=now,
            idempotency_key=f"{kind}:{user_id}:{payload.get('interest_id') or ''}:{channel}",
        )
    logger.info(f"[NOTIFY] queued kind={kind} user_id={user_id} in_app={in_app} channels={channels}")
    return {"in_app": in_app, "channels": channels}


def dispatch_transition_notifications(events: list[NotificationEvent]) -> None:
    """Deliver notifications for a committed transition; failures never propagate."""
    for event in events:
        try:
            notify(event.kind, event.user_id, event.payload)
        except Exception:
            logger.exception(f"[NOTIFY] delivery failed kind={event.kind} user_id={event.user_id}")


# Outbox delivery

ChannelSender = Callable[[dict[str, Any]], None]


def _log_only_sender(channel: str) -> ChannelSender:
    def _send(row: dict[str, Any]) -> None:
        logger.info(
            f"[NOTIFY] {channel} delivery user_id={row.get('user_id')} type={row.get('notification_type')} "
            "(no gateway configured)"
        )

    return _send


CHANNEL_SENDERS: dict[str, ChannelSender] = {channel: _log_only_sender(channel) for channel in EXTERNAL_CHANNELS}


def register_channel_sender(channel: str, sender: ChannelSender) -> None:
    CHANNEL_SENDERS[channel] = sender


def retry_delay(attempt_count: int) -> timedelta:
    if attempt_count < 1:
        return timedelta(minutes=2)
    if attempt_count < 2:
        return timedelta(minutes=5)
    if attempt_count < 3:
        return timedelta(minutes=15)
    return timedelta(minutes=30)


def process_notifications_outbox(*, limit: int = 100) -> dict[str, Any]:
    processed = 0
    sent = 0
    failed = 0
    now = datetime.now(timezone.utc)
    for row in repo.list_due_outbox_notifications(limit=limit):
        processed += 1
        attempts = int(row.get("attempt_count") or 0)
        sender = CHANNEL_SENDERS.get(str(row.get("channel") or ""))
        try:
            if sender is None:
                raise RuntimeError(f"no sender registered for channel {row.get('channel')!r}")
            sender(row)
        except Exception as exc:
            give_up = attempts + 1 >= NOTIFY_MAX_ATTEMPTS
            repo.mark_outbox_failed(
                str(row["id"]),
                error=str(exc)[:1000],
                give_up=give_up,
                next_attempt_at=now + retry_delay(attempts),
            )
            logger.warning(f"[NOTIFY] outbox delivery failed id={row['id']} attempts={attempts + 1} give_up={give_up}")
            failed += 1
            continue
        repo.mark_outbox_sent(str(row["id"]))
        sent += 1

    return {
        "processed": processed,
        "sent": sent,
        "failed": failed,
    }
