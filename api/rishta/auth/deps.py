"""
Request-context dependencies for FastAPI.

Tokens are issued elsewhere; here they are only verified. Two sources are
accepted, in order:
1. Cookie session: httpOnly ``rishta_session`` cookie holding the access token
2. Bearer token: Authorization header, for API clients

An operator holding the admin token may act as another user by sending
``X-Admin-Token`` together with ``X-Actor-User-Id``. Either way, routes get a
plain dict whose ``id`` is the acting user and pass it explicitly to the core.
"""

import logging
import uuid
from typing import Any

from fastapi import Cookie, Header, HTTPException
from pydantic import BaseModel

from .. import config, repo
from ..deps import parse_actor_user_id, validate_admin_token
from .security import decode_access_token

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "rishta_session"


class AuthErrorDetail(BaseModel):
    message: str = "unauthorized"
    reason: str
    trace_id: str


class AuthError(Exception):
    """Raised when authentication fails with detailed reason."""

    def __init__(self, reason: str, detail: str = "unauthorized"):
        self.reason = reason
        self.detail = detail
        self.trace_id = str(uuid.uuid4())
        super().__init__(detail)


def _log_auth_failure(
    reason: str,
    trace_id: str,
    token_prefix: str | None = None,
    auth_source: str | None = None,
    payload: dict[str, Any] | None = None,
    user_id: str | None = None,
) -> None:
    log_data = {
        "trace_id": trace_id,
        "reason": reason,
        "auth_source": auth_source,
        "token_prefix": token_prefix,
        "token_user_id": payload.get("sub") if payload else None,
        "resolved_user_id": user_id,
    }
    logger.warning(f"[AUTH_FAILURE] {log_data}")


def _unauthorized(reason: str, trace_id: str, message: str = "unauthorized", status_code: int = 401) -> HTTPException:
    detail = (
        AuthErrorDetail(message=message, reason=reason, trace_id=trace_id).model_dump()
        if config.DEV_MODE
        else {"message": message, "trace_id": trace_id}
    )
    return HTTPException(status_code=status_code, detail=detail)


def _extract_bearer(authorization: str | None) -> str:
    if not authorization:
        raise AuthError(reason="missing_token", detail="Missing Authorization header")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise AuthError(reason="malformed_token", detail="Invalid Authorization header")
    return parts[1].strip()


def _user_context(user: dict[str, Any], *, is_admin_view: bool) -> dict[str, Any]:
    return {
        "id": str(user["id"]),
        "email": user.get("email"),
        "is_admin_view": is_admin_view,
    }


def _validate_token_and_get_user(token: str, trace_id: str, auth_source: str) -> dict[str, Any]:
    token_prefix = token[:8] + "..." if len(token) > 8 else token

    try:
        payload = decode_access_token(token)
    except HTTPException as e:
        reason = "token_expired" if "expired" in str(e.detail).lower() else "signature_invalid"
        _log_auth_failure(reason, trace_id, token_prefix, auth_source)
        raise _unauthorized(reason, trace_id)

    user_id = str(payload.get("sub", ""))
    if not user_id:
        _log_auth_failure("token_missing_subject", trace_id, token_prefix, auth_source, payload)
        raise _unauthorized("token_missing_subject", trace_id)

    user = repo.get_user_by_id(user_id)
    if not user:
        _log_auth_failure("token_user_not_found", trace_id, token_prefix, auth_source, payload, user_id)
        raise _unauthorized("token_user_not_found", trace_id)

    if user.get("disabled_at"):
        _log_auth_failure("account_disabled", trace_id, token_prefix, auth_source, payload, user_id)
        raise _unauthorized("account_disabled", trace_id, message="Account disabled", status_code=403)

    logger.debug(f"[auth] token valid user_id={user_id} source={auth_source}")
    return _user_context(user, is_admin_view=False)


def get_current_user(
    session_token: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    trace_id = str(uuid.uuid4())

    if session_token:
        return _validate_token_and_get_user(session_token, trace_id, "cookie")

    if authorization:
        try:
            token = _extract_bearer(authorization)
        except AuthError as e:
            _log_auth_failure(e.reason, e.trace_id, auth_source="bearer")
            raise _unauthorized(e.reason, e.trace_id, message=e.detail)
        return _validate_token_and_get_user(token, trace_id, "bearer")

    _log_auth_failure("missing_token", trace_id, auth_source="none")
    raise _unauthorized("missing_token", trace_id, message="Authentication required")


def get_acting_user(
    session_token: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
    x_actor_user_id: str | None = Header(default=None, alias="X-Actor-User-Id"),
) -> dict[str, Any]:
    """The user a request acts as: an impersonated user for admins, else the caller."""
    actor_id = parse_actor_user_id(x_actor_user_id)
    if actor_id and x_admin_token:
        validate_admin_token(x_admin_token, config.ADMIN_TOKEN)
        user = repo.get_user_by_id(actor_id)
        if not user:
            raise HTTPException(status_code=404, detail="Actor user not found")
        logger.info(f"[auth] admin acting as user_id={actor_id}")
        return _user_context(user, is_admin_view=True)
    return get_current_user(session_token=session_token, authorization=authorization)
