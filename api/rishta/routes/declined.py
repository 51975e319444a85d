from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import interest_store
from ..auth.deps import get_acting_user
from ..config import RL_DECLINE_LIMIT, RL_WINDOW_SECONDS
from ..deps import parse_user_id
from ..schemas import DeclineRequest
from ..services import interests
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()
scaffold_router = APIRouter()

RL_DECLINE = rate_limit_dependency("decline", RL_DECLINE_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def declined_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "declined"}


@router.get("/declined")
def list_declined(current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    with interest_store.open_interest_store() as store:
        items = interests.list_declined(store, current_user["id"])
    return {"declined": items}


@router.post("/declined", status_code=201)
def decline_profile(
    payload: DeclineRequest,
    current_user: dict[str, Any] = Depends(get_acting_user),
    _: None = RL_DECLINE,
) -> dict[str, Any]:
    declined_user_id = parse_user_id(payload.declined_user_id, "declined_user_id")
    with interest_store.open_interest_store() as store:
        interests.decline_profile(store, current_user["id"], declined_user_id)
    return {"ok": True, "declined_user_id": declined_user_id}


@router.delete("/declined/{declined_user_id}")
def undecline_profile(
    declined_user_id: str,
    current_user: dict[str, Any] = Depends(get_acting_user),
    _: None = RL_DECLINE,
) -> dict[str, Any]:
    target = parse_user_id(declined_user_id, "declined_user_id")
    with interest_store.open_interest_store() as store:
        removed = interests.undecline_profile(store, current_user["id"], target)
    if not removed:
        raise HTTPException(status_code=404, detail="Profile is not on your declined list")
    return {"ok": True, "declined_user_id": target}
