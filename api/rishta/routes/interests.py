from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from .. import interest_store
from ..auth.deps import get_acting_user
from ..config import RL_INTEREST_CREATE_LIMIT, RL_INTEREST_RESPOND_LIMIT, RL_WINDOW_SECONDS
from ..deps import parse_user_id
from ..schemas import ExpressInterestRequest, InterestResponse, RespondInterestRequest
from ..services import interests
from ..services.notifications import dispatch_transition_notifications
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()
scaffold_router = APIRouter()

RL_INTEREST_CREATE = rate_limit_dependency("interest_create", RL_INTEREST_CREATE_LIMIT, RL_WINDOW_SECONDS)
RL_INTEREST_RESPOND = rate_limit_dependency("interest_respond", RL_INTEREST_RESPOND_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def interests_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "interests"}


@router.post("/interests", status_code=201, response_model=InterestResponse)
def express_interest(
    payload: ExpressInterestRequest,
    background_tasks: BackgroundTasks,
    current_user: dict[str, Any] = Depends(get_acting_user),
    _: None = RL_INTEREST_CREATE,
) -> dict[str, Any]:
    receiver_id = parse_user_id(payload.receiver_id, "receiver_id")
    with interest_store.open_interest_store() as store:
        outcome = interests.express_interest(store, current_user["id"], receiver_id, payload.message)
    background_tasks.add_task(dispatch_transition_notifications, outcome.notifications)
    return outcome.as_response()


@router.get("/interests")
def list_interests(
    type: str = Query(default="received"),
    current_user: dict[str, Any] = Depends(get_acting_user),
) -> dict[str, Any]:
    with interest_store.open_interest_store() as store:
        items = interests.list_interests(store, current_user["id"], type)
    return {"interests": items, "type": type}


@router.get("/interests/mutual")
def mutual_status(user_id: str = Query(...), current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    other_id = parse_user_id(user_id)
    with interest_store.open_interest_store() as store:
        return interests.mutual_status(store, current_user["id"], other_id)


@router.get("/interests/{interest_id}")
def get_interest(interest_id: str, current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    with interest_store.open_interest_store() as store:
        return interests.get_interest(store, interest_id, current_user["id"])


@router.patch("/interests/{interest_id}", response_model=InterestResponse)
def respond_to_interest(
    interest_id: str,
    payload: RespondInterestRequest,
    background_tasks: BackgroundTasks,
    current_user: dict[str, Any] = Depends(get_acting_user),
    _: None = RL_INTEREST_RESPOND,
) -> dict[str, Any]:
    with interest_store.open_interest_store() as store:
        outcome = interests.respond_to_interest(store, interest_id, current_user["id"], payload.action)
    if outcome.notifications:
        background_tasks.add_task(dispatch_transition_notifications, outcome.notifications)
    return outcome.as_response()
