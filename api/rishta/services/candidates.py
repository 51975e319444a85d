import logging
from datetime import date
from typing import Any

from .. import repo
from .compatibility import is_mutual_candidate, score_candidate
from .errors import NotFoundError
from .interests import mutual_partner_ids
from .normalization import Gender, InterestStatus, normalize_gender

logger = logging.getLogger(__name__)


def opposite_gender(gender: Any) -> str | None:
    value = normalize_gender(gender)
    if value is None:
        return None
    return Gender.FEMALE.value if value == Gender.MALE else Gender.MALE.value


def build_candidate_list(
    seeker: dict[str, Any],
    pool: list[dict[str, Any]],
    *,
    declined_ids: set[str],
    declined_by_ids: set[str],
    sent: list[dict[str, Any]],
    received: list[dict[str, Any]],
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Filter and rank a candidate pool for one seeker.

    Drops anyone who fails either side's dealbreakers, anyone on either
    side's declined list, anyone the seeker already sent interest to and
    anyone already connected. Candidates who already sent the seeker a
    pending interest come first, then higher scores.
    """
    seeker_id = str(seeker["user_id"])
    sent_to = {str(e["receiver_id"]) for e in sent}
    liked_me = {str(e["sender_id"]) for e in received if e.get("status") == InterestStatus.PENDING.value}
    connected = mutual_partner_ids(seeker_id, sent, received)
    excluded = declined_ids | declined_by_ids | sent_to | connected | {seeker_id}

    out = []
    for candidate in pool:
        candidate_id = str(candidate["user_id"])
        if candidate_id in excluded:
            continue
        if not is_mutual_candidate(seeker, candidate, today=today):
            continue
        out.append(
            {
                **repo.strip_contact_fields(candidate),
                "match_score": score_candidate(seeker, candidate, today=today),
                "their_match_score": score_candidate(candidate, seeker, today=today),
                "they_liked_me_first": candidate_id in liked_me,
            }
        )

    out.sort(key=lambda c: (not c["they_liked_me_first"], -c["match_score"]["percentage"]))
    return out


def list_candidates(seeker_id: str) -> list[dict[str, Any]]:
    seeker = repo.get_profile(seeker_id)
    if not seeker:
        raise NotFoundError("Profile not found", reason="profile_not_found")
    gender = opposite_gender(seeker.get("gender"))
    if gender is None:
        logger.info(f"[MATCH] no gender on profile user_id={seeker_id}, returning no candidates")
        return []

    pool = repo.list_candidate_pool(seeker_id, gender)
    sent, received = repo.list_interest_edges(seeker_id)
    candidates = build_candidate_list(
        seeker,
        pool,
        declined_ids=repo.list_declined_user_ids(seeker_id),
        declined_by_ids=repo.list_declined_by_user_ids(seeker_id),
        sent=sent,
        received=received,
    )
    logger.info(f"[MATCH] candidates user_id={seeker_id} pool={len(pool)} returned={len(candidates)}")
    return candidates


def list_connections(user_id: str) -> list[dict[str, Any]]:
    """Mutual matches for ``user_id``, with contact details attached."""
    sent, received = repo.list_interest_edges(user_id)
    partner_ids = mutual_partner_ids(user_id, sent, received)
    out = []
    for profile in repo.get_profiles_by_ids(sorted(partner_ids)):
        out.append(
            {
                **repo.strip_contact_fields(profile),
                "contact_info": repo.contact_info_from_profile(profile),
            }
        )
    return out
