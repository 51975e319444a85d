import uuid

from fastapi import HTTPException


def validate_admin_token(token: str | None, admin_token: str | None) -> None:
    if not admin_token or not token or token != admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")


def parse_actor_user_id(raw_actor_user_id: str | None) -> str | None:
    if not raw_actor_user_id:
        return None
    value = raw_actor_user_id.strip()
    if not value:
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise HTTPException(status_code=400, detail="X-Actor-User-Id must be a valid UUID")


def parse_user_id(raw: str | None, field: str = "user_id") -> str:
    value = str(raw or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail=f"{field} is required")
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be a valid UUID")
