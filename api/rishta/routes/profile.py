import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import repo
from ..auth.deps import get_acting_user
from ..deps import parse_user_id
from ..http_helpers import sanitize_profile_payload
from ..services.normalization import normalize_profile

logger = logging.getLogger(__name__)

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def profile_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "profile"}


@router.get("/profile/me")
def get_my_profile(current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    profile = repo.get_profile(current_user["id"])
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("/profile/me")
def update_my_profile(payload: dict[str, Any], current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    fields = sanitize_profile_payload(payload)
    if not fields:
        raise HTTPException(status_code=400, detail="No editable profile fields in request")

    existing = repo.get_profile(current_user["id"]) or {}
    merged = normalize_profile({**existing, **fields}, fallback=existing)
    to_write = {k: merged.get(k) for k in repo.EDITABLE_PROFILE_COLUMNS if k in merged}
    logger.info(f"[MATCH] profile update user_id={current_user['id']} fields={sorted(fields)}")
    return repo.upsert_profile(current_user["id"], to_write)


@router.get("/profiles/{user_id}")
def get_public_profile(user_id: str, current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    profile = repo.get_profile(parse_user_id(user_id))
    if not profile or (profile.get("approval_status") != "approved" and profile["user_id"] != current_user["id"]):
        raise HTTPException(status_code=404, detail="Profile not found")
    return repo.strip_contact_fields(profile)
