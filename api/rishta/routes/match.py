from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import repo
from ..auth.deps import get_acting_user
from ..deps import parse_user_id
from ..services import candidates
from ..services.compatibility import is_candidate_acceptable, score_candidate

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def match_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "match"}


@router.get("/matches")
def list_matches(current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    items = candidates.list_candidates(current_user["id"])
    return {"matches": items, "count": len(items)}


@router.get("/matches/connections")
def list_connections(current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    items = candidates.list_connections(current_user["id"])
    return {"connections": items, "count": len(items)}


@router.get("/matches/{user_id}/score")
def match_score(user_id: str, current_user: dict[str, Any] = Depends(get_acting_user)) -> dict[str, Any]:
    seeker = repo.get_profile(current_user["id"])
    candidate = repo.get_profile(parse_user_id(user_id))
    if not seeker or not candidate:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {
        "user_id": candidate["user_id"],
        "acceptable": is_candidate_acceptable(seeker, candidate),
        "score": score_candidate(seeker, candidate),
    }
