from typing import Any

from fastapi import APIRouter, Header

from .. import config
from ..deps import validate_admin_token
from ..schemas import ProcessOutboxRequest
from ..services.notifications import process_notifications_outbox

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def admin_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "admin"}


@router.post("/admin/notifications/process")
def admin_process_notifications(
    payload: ProcessOutboxRequest | None = None,
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
) -> dict[str, Any]:
    validate_admin_token(x_admin_token, config.ADMIN_TOKEN)
    limit = payload.limit if payload else 100
    return process_notifications_outbox(limit=limit)
