from typing import Any

from pydantic import BaseModel, Field


class ExpressInterestRequest(BaseModel):
    receiver_id: str
    message: str | None = Field(default=None, max_length=1000)


class RespondInterestRequest(BaseModel):
    action: str


class InterestResponse(BaseModel):
    interest: dict[str, Any]
    mutual: bool
    contact_info: dict[str, Any] | None = None


class DeclineRequest(BaseModel):
    declined_user_id: str


class NotificationPreferencesRequest(BaseModel):
    email_enabled: bool = True
    sms_enabled: bool = False
    in_app_enabled: bool = True
    interest_notifications: bool = True


class ProcessOutboxRequest(BaseModel):
    limit: int = Field(default=100, ge=1, le=500)
