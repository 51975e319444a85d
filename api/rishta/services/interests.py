"""
Interest workflow: the directed ``sender -> receiver`` edge and its transitions.

Every function takes the acting user id explicitly and works against an
interest store (``rishta.interest_store.SqlInterestStore`` in production).
Writes run inside ``store.transaction()`` so an edge update, the reciprocal
edge flip and the declined-list bookkeeping land together or not at all.

Notifications are not sent from here. Each outcome carries the events to
deliver, and the HTTP layer hands them to a background task once the
transaction has committed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .normalization import InterestStatus
from .notifications import NotificationEvent
from .state_machine import normalize_action, transition_status

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("name", "email", "phone", "linkedin", "instagram")

EVENT_NAMES = {
    "accept": "interest_accepted",
    "reject": "interest_rejected",
    "reconsider": "interest_reconsidered",
}


@dataclass
class InterestOutcome:
    edge: dict[str, Any]
    mutual: bool = False
    contact_info: dict[str, Any] | None = None
    notifications: list[NotificationEvent] = field(default_factory=list)

    def as_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"interest": self.edge, "mutual": self.mutual}
        if self.contact_info is not None:
            body["contact_info"] = self.contact_info
        return body


def _require_id(value: Any, name: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError(f"{name} is required", reason=f"missing_{name}")
    return text


# Mutuality


def is_mutual_edge(edge: dict[str, Any] | None, reciprocal: dict[str, Any] | None) -> bool:
    """``A -> B`` is mutual exactly when ``B -> A`` exists and is accepted."""
    if edge is None or reciprocal is None:
        return False
    return reciprocal.get("status") == InterestStatus.ACCEPTED.value


def find_reciprocal_edge(store, edge: dict[str, Any], *, for_update: bool = False) -> dict[str, Any] | None:
    return store.get_edge_by_pair(str(edge["receiver_id"]), str(edge["sender_id"]), for_update=for_update)


def is_mutual(store, edge: dict[str, Any]) -> bool:
    return is_mutual_edge(edge, find_reciprocal_edge(store, edge))


def mutual_partner_ids(user_id: str, sent: list[dict[str, Any]], received: list[dict[str, Any]]) -> set[str]:
    """Ids of users connected to ``user_id`` through a mutual pair of edges.

    Bulk form of ``is_mutual_edge`` for listing pages, applied in both
    directions of every pair.
    """
    sent_by_other = {str(e["receiver_id"]): e for e in sent if str(e["sender_id"]) == user_id}
    received_by_other = {str(e["sender_id"]): e for e in received if str(e["receiver_id"]) == user_id}
    partners: set[str] = set()
    for other_id, edge in sent_by_other.items():
        if is_mutual_edge(edge, received_by_other.get(other_id)):
            partners.add(other_id)
    for other_id, edge in received_by_other.items():
        if is_mutual_edge(edge, sent_by_other.get(other_id)):
            partners.add(other_id)
    return partners


# Transitions


def express_interest(store, sender_id: str, receiver_id: str, message: str | None = None) -> InterestOutcome:
    sender_id = _require_id(sender_id, "sender_id")
    receiver_id = _require_id(receiver_id, "receiver_id")
    if sender_id == receiver_id:
        raise ValidationError("You cannot express interest in yourself", reason="self_interest")

    with store.transaction():
        sender = store.get_profile(sender_id)
        if not sender:
            raise AuthorizationError("Create your profile before expressing interest", reason="profile_required")
        if str(sender.get("approval_status") or "") != "approved":
            raise AuthorizationError("Your profile must be approved to express interest", reason="profile_not_approved")
        if not store.get_profile(receiver_id):
            raise NotFoundError("Profile not found", reason="profile_not_found")

        if store.get_edge_by_pair(sender_id, receiver_id) is not None:
            raise ConflictError("Interest already sent")
        edge = store.insert_edge(sender_id, receiver_id, (message or "").strip() or None)
        if edge is None:
            # Lost a race against a concurrent insert of the same pair.
            raise ConflictError("Interest already sent")

        store.record_event(edge, sender_id, "interest_sent", None, edge["status"])
        mutual = is_mutual(store, edge)
        pending_count = store.count_pending_received(receiver_id)

    logger.info(f"[INTEREST] sent interest_id={edge['id']} sender={sender_id} receiver={receiver_id}")
    notice = NotificationEvent(
        kind="new_interest",
        user_id=receiver_id,
        payload={
            "interest_id": str(edge["id"]),
            "sender_id": sender_id,
            "sender_name": store.get_display_name(sender_id),
            "pending_count": pending_count,
        },
    )
    return InterestOutcome(edge=edge, mutual=mutual, notifications=[notice])


def respond_to_interest(store, edge_id: str, actor_id: str, action: str) -> InterestOutcome:
    edge_id = _require_id(edge_id, "interest_id")
    actor_id = _require_id(actor_id, "actor_id")
    action = normalize_action(action)

    with store.transaction():
        edge = store.get_edge(edge_id, for_update=True)
        if edge is None:
            raise NotFoundError("Interest not found", reason="interest_not_found")
        if str(edge["receiver_id"]) != actor_id:
            raise AuthorizationError("Only the receiver can respond to this interest", reason="not_receiver")

        sender_id = str(edge["sender_id"])
        receiver_id = str(edge["receiver_id"])
        previous = str(edge["status"])
        new_status = transition_status(previous, action)

        edge = store.set_edge_status(edge_id, new_status)
        store.record_event(edge, actor_id, EVENT_NAMES[action], previous, new_status)

        if new_status == InterestStatus.REJECTED.value:
            store.add_declined(receiver_id, sender_id)
            logger.info(f"[INTEREST] rejected interest_id={edge_id} by={actor_id}")
            return InterestOutcome(edge=edge, mutual=False)

        store.remove_declined(receiver_id, sender_id)
        reciprocal = find_reciprocal_edge(store, edge, for_update=True)
        mutual = False
        contact_info = None
        if reciprocal is not None:
            if reciprocal["status"] != InterestStatus.ACCEPTED.value:
                flipped = store.set_edge_status(str(reciprocal["id"]), InterestStatus.ACCEPTED.value)
                store.record_event(
                    flipped,
                    actor_id,
                    "interest_accepted",
                    str(reciprocal["status"]),
                    InterestStatus.ACCEPTED.value,
                    payload={"via": "reciprocal", "source_interest_id": edge_id},
                )
                store.remove_declined(sender_id, receiver_id)
            mutual = True
            contact_info = store.get_contact_info(sender_id)

    logger.info(f"[INTEREST] {action} interest_id={edge_id} by={actor_id} mutual={mutual}")
    notice = NotificationEvent(
        kind="interest_accepted",
        user_id=sender_id,
        payload={
            "interest_id": edge_id,
            "receiver_id": receiver_id,
            "receiver_name": store.get_display_name(receiver_id),
            "mutual": mutual,
        },
    )
    return InterestOutcome(edge=edge, mutual=mutual, contact_info=contact_info, notifications=[notice])


# Reads


def list_interests(store, user_id: str, direction: str = "received") -> list[dict[str, Any]]:
    user_id = _require_id(user_id, "user_id")
    if direction not in {"received", "sent"}:
        raise ValidationError("type must be 'received' or 'sent'", reason="invalid_direction")
    return store.list_edges(user_id, direction)


def get_interest(store, edge_id: str, actor_id: str) -> dict[str, Any]:
    edge_id = _require_id(edge_id, "interest_id")
    actor_id = _require_id(actor_id, "actor_id")
    edge = store.get_edge(edge_id)
    if edge is None:
        raise NotFoundError("Interest not found", reason="interest_not_found")
    if actor_id not in {str(edge["sender_id"]), str(edge["receiver_id"])}:
        raise AuthorizationError("Not a party to this interest", reason="not_participant")
    return {**edge, "mutual": is_mutual(store, edge)}


def mutual_status(store, actor_id: str, other_user_id: str) -> dict[str, Any]:
    actor_id = _require_id(actor_id, "actor_id")
    other_user_id = _require_id(other_user_id, "user_id")
    sent = store.get_edge_by_pair(actor_id, other_user_id)
    received = store.get_edge_by_pair(other_user_id, actor_id)
    mutual = is_mutual_edge(sent, received) or is_mutual_edge(received, sent)
    body: dict[str, Any] = {
        "user_id": other_user_id,
        "sent_status": sent["status"] if sent else None,
        "received_status": received["status"] if received else None,
        "mutual": mutual,
    }
    if mutual:
        body["contact_info"] = store.get_contact_info(other_user_id)
    return body


# Declined list


def decline_profile(store, user_id: str, declined_user_id: str) -> None:
    user_id = _require_id(user_id, "user_id")
    declined_user_id = _require_id(declined_user_id, "declined_user_id")
    if user_id == declined_user_id:
        raise ValidationError("You cannot decline yourself", reason="self_decline")
    with store.transaction():
        if not store.get_profile(declined_user_id):
            raise NotFoundError("Profile not found", reason="profile_not_found")
        store.add_declined(user_id, declined_user_id)
    logger.info(f"[INTEREST] declined user={user_id} declined_user={declined_user_id}")


def undecline_profile(store, user_id: str, declined_user_id: str) -> bool:
    user_id = _require_id(user_id, "user_id")
    declined_user_id = _require_id(declined_user_id, "declined_user_id")
    with store.transaction():
        removed = store.remove_declined(user_id, declined_user_id)
    return removed


def list_declined(store, user_id: str) -> list[dict[str, Any]]:
    return store.list_declined(_require_id(user_id, "user_id"))
