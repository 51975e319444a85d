from rishta import repo
from rishta.services import notifications
from rishta.services.notifications import NotificationEvent

USER = "00000000-0000-0000-0000-00000000000a"


def _capture_repo(monkeypatch, prefs):
    calls = {"in_app": [], "outbox": []}
    monkeypatch.setattr(repo, "get_notification_preferences", lambda user_id: prefs)
    monkeypatch.setattr(repo, "create_in_app_notification", lambda **kwargs: calls["in_app"].append(kwargs))
    monkeypatch.setattr(repo, "enqueue_outbox_notification", lambda **kwargs: calls["outbox"].append(kwargs))
    return calls


def test_render_notification_fills_missing_names():
    title, body = notifications.render_notification("new_interest", {"pending_count": 2})
    assert title == "Someone is interested in you"
    assert body.startswith("Someone has expressed interest")
    assert "2 pending" in body

    _, mutual_body = notifications.render_notification("interest_accepted", {"receiver_name": "Bob", "mutual": True})
    assert "now connected" in mutual_body


def test_notify_writes_in_app_and_one_outbox_row_per_channel(monkeypatch):
    prefs = {"email_enabled": True, "sms_enabled": True, "in_app_enabled": True, "interest_notifications": True}
    calls = _capture_repo(monkeypatch, prefs)

    result = notifications.notify("new_interest", USER, {"interest_id": "i-1", "sender_name": "Alice", "pending_count": 1})

    assert result == {"in_app": True, "channels": ["email", "sms"]}
    assert calls["in_app"][0]["notification_type"] == "new_interest"
    keys = [row["idempotency_key"] for row in calls["outbox"]]
    assert keys == [f"new_interest:{USER}:i-1:email", f"new_interest:{USER}:i-1:sms"]
    assert calls["outbox"][0]["payload"]["title"] == "Someone is interested in you"


def test_notify_respects_opt_out(monkeypatch):
    calls = _capture_repo(monkeypatch, {"email_enabled": True, "interest_notifications": False})
    assert notifications.notify("new_interest", USER, {}) == {"in_app": False, "channels": []}
    assert calls == {"in_app": [], "outbox": []}


def test_dispatch_swallows_delivery_failures(monkeypatch):
    delivered = []

    def fake_notify(kind, user_id, payload):
        if kind == "new_interest":
            raise RuntimeError("db down")
        delivered.append(kind)

    monkeypatch.setattr(notifications, "notify", fake_notify)
    notifications.dispatch_transition_notifications(
        [NotificationEvent("new_interest", USER), NotificationEvent("interest_accepted", USER)]
    )
    assert delivered == ["interest_accepted"]


def test_process_outbox_marks_sent_and_schedules_retries(monkeypatch):
    rows = [
        {"id": "1", "channel": "email", "user_id": USER, "attempt_count": 0},
        {"id": "2", "channel": "sms", "user_id": USER, "attempt_count": 0},
        {"id": "3", "channel": "sms", "user_id": USER, "attempt_count": 4},
        {"id": "4", "channel": "push", "user_id": USER, "attempt_count": 0},
    ]
    sent, failed = [], []

    def failing_sms(row):
        raise RuntimeError("gateway timeout")

    monkeypatch.setitem(notifications.CHANNEL_SENDERS, "sms", failing_sms)
    monkeypatch.setattr(repo, "list_due_outbox_notifications", lambda limit: rows[:limit])
    monkeypatch.setattr(repo, "mark_outbox_sent", lambda outbox_id: sent.append(outbox_id))
    monkeypatch.setattr(
        repo,
        "mark_outbox_failed",
        lambda outbox_id, *, error, give_up, next_attempt_at: failed.append((outbox_id, give_up, error)),
    )

    result = notifications.process_notifications_outbox(limit=10)

    assert result == {"processed": 4, "sent": 1, "failed": 3}
    assert sent == ["1"]
    assert [(f[0], f[1]) for f in failed] == [("2", False), ("3", True), ("4", False)]
    assert "gateway timeout" in failed[0][2]


def test_registered_channel_sender_drains_outbox(monkeypatch):
    monkeypatch.setattr(notifications, "CHANNEL_SENDERS", dict(notifications.CHANNEL_SENDERS))
    rows = [{"id": "o-push", "user_id": USER, "channel": "push", "attempt_count": 0, "notification_type": "new_interest"}]
    sent, failed, delivered = [], [], []
    monkeypatch.setattr(repo, "list_due_outbox_notifications", lambda limit: rows[:limit])
    monkeypatch.setattr(repo, "mark_outbox_sent", lambda outbox_id: sent.append(outbox_id))
    monkeypatch.setattr(
        repo,
        "mark_outbox_failed",
        lambda outbox_id, *, error, give_up, next_attempt_at: failed.append((outbox_id, error)),
    )

    result = notifications.process_notifications_outbox(limit=10)
    assert result == {"processed": 1, "sent": 0, "failed": 1}
    assert "no sender registered" in failed[0][1]

    notifications.register_channel_sender("push", lambda row: delivered.append(row["id"]))
    result = notifications.process_notifications_outbox(limit=10)

    assert result == {"processed": 1, "sent": 1, "failed": 0}
    assert delivered == ["o-push"]
    assert sent == ["o-push"]


def test_retry_delay_backs_off():
    assert notifications.retry_delay(0).total_seconds() == 120
    assert notifications.retry_delay(2).total_seconds() == 900
    assert notifications.retry_delay(9).total_seconds() == 1800
