from .errors import InvalidTransitionError, ValidationError
from .normalization import InterestStatus

ACTIONS = {"accept", "reject", "reconsider"}


def normalize_action(action: str | None) -> str:
    value = str(action or "").strip().lower()
    if value not in ACTIONS:
        raise ValidationError(f"Unknown action: {action!r}", reason="invalid_action")
    return value


def transition_status(current: str, action: str) -> str:
    if current not in {s.value for s in InterestStatus}:
        raise InvalidTransitionError(f"Unknown interest status: {current!r}", reason="unknown_status")

    if action == "accept":
        return InterestStatus.ACCEPTED.value

    if action == "reject":
        return InterestStatus.REJECTED.value

    if action == "reconsider":
        if current == InterestStatus.REJECTED.value:
            return InterestStatus.ACCEPTED.value
        raise InvalidTransitionError(
            f"Only rejected interests can be reconsidered (current status: {current})",
            reason="not_rejected",
        )

    raise ValidationError(f"Unknown action: {action!r}", reason="invalid_action")
