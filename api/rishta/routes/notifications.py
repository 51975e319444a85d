from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import repo
from ..auth.deps import get_acting_user
from ..deps import parse_user_id
from ..schemas import NotificationPreferencesRequest

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def notifications_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "notifications"}


@router.get("/notifications")
def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: dict[str, Any] = Depends(get_acting_user),
) -> dict[str, Any]:
    items = repo.list_in_app_notifications(current_user["id"], unread_only=unread_only, limit=limit)
    return {"notifications": items, "unread_count": sum(1 for n in items if not n.get("read_at"))}


@router.post("/notifications/{notification_id}/read")
def mark_notification_read(notification_id: str, current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    if not repo.mark_in_app_notification_read(current_user["id"], parse_user_id(notification_id, "notification_id")):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"ok": True}


@router.get("/notifications/preferences")
def get_notification_preferences(current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    return repo.get_notification_preferences(current_user["id"])


@router.put("/notifications/preferences")
def update_notification_preferences(
    payload: NotificationPreferencesRequest,
    current_user: dict[str, Any] = Depends(get_acting_user),
) -> dict[str, Any]:
    return repo.update_notification_preferences(user_id=current_user["id"], **payload.model_dump())
