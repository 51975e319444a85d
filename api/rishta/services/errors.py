class InterestError(Exception):
    """Base class for typed failures raised by the interest and matching core."""

    status_code = 400
    default_reason = "interest_error"

    def __init__(self, detail: str, reason: str | None = None):
        self.detail = detail
        self.reason = reason or self.default_reason
        super().__init__(detail)

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.detail, "reason": self.reason}


class ValidationError(InterestError):
    status_code = 400
    default_reason = "invalid_request"


class AuthorizationError(InterestError):
    status_code = 403
    default_reason = "not_allowed"


class NotFoundError(InterestError):
    status_code = 404
    default_reason = "not_found"


class ConflictError(InterestError):
    status_code = 409
    default_reason = "already_sent"


class InvalidTransitionError(InterestError):
    status_code = 400
    default_reason = "invalid_transition"
