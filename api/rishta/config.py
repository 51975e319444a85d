import json
import os
from typing import Any

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "60"))
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

CANDIDATE_POOL_LIMIT = int(os.getenv("CANDIDATE_POOL_LIMIT", "500"))

NOTIFY_DEFAULT_CHANNELS = [
    c.strip().lower() for c in os.getenv("NOTIFY_DEFAULT_CHANNELS", "email").split(",") if c.strip()
]
NOTIFY_MAX_ATTEMPTS = int(os.getenv("NOTIFY_MAX_ATTEMPTS", "5"))

# Fields whose dealbreaker flag counts as set when the profile never answered it.
DEALBREAKER_DEFAULTS: dict[str, bool] = {
    "age": True,
    "height": True,
    "marital_status": True,
    "community": True,
    "gotra": True,
    "diet": True,
}

DEFAULT_MATCHING_CONFIG: dict[str, Any] = {
    "DEALBREAKER_DEFAULTS": dict(DEALBREAKER_DEFAULTS),
    "MIN_SUPPORTED_HEIGHT_IN": int(os.getenv("MIN_SUPPORTED_HEIGHT_IN", "48")),
    "MAX_SUPPORTED_HEIGHT_IN": int(os.getenv("MAX_SUPPORTED_HEIGHT_IN", "95")),
}

if os.getenv("MATCHING_CONFIG_JSON"):
    try:
        DEFAULT_MATCHING_CONFIG.update(json.loads(os.getenv("MATCHING_CONFIG_JSON", "{}")))
    except json.JSONDecodeError:
        pass

RL_INTEREST_CREATE_LIMIT = int(os.getenv("RL_INTEREST_CREATE_LIMIT", "30"))
RL_INTEREST_RESPOND_LIMIT = int(os.getenv("RL_INTEREST_RESPOND_LIMIT", "60"))
RL_DECLINE_LIMIT = int(os.getenv("RL_DECLINE_LIMIT", "60"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))
