from typing import Any

from fastapi import HTTPException

from .repo import EDITABLE_PROFILE_COLUMNS
from .services.compatibility import parse_date_of_birth, parse_height
from .services.normalization import NO_PREFERENCE_VALUES, normalize_gender

MAX_TEXT_LENGTH = 200
RANGE_PREFERENCE_FIELDS = ("pref_height_min", "pref_height_max", "pref_age_min", "pref_age_max")
LONG_TEXT_FIELDS = {"about_me"}


def _clean_value(key: str, value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, list):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    text = str(value).strip()
    limit = 4000 if key in LONG_TEXT_FIELDS else MAX_TEXT_LENGTH
    if len(text) > limit:
        raise HTTPException(status_code=400, detail=f"{key} must be {limit} characters or fewer")
    return text or None


def sanitize_profile_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Keep editable profile columns only and reject values that can never be read back."""
    fields = {k: _clean_value(k, v) for k, v in payload.items() if k in EDITABLE_PROFILE_COLUMNS}
    for key in RANGE_PREFERENCE_FIELDS:
        if key in fields and str(fields[key] or "").lower() in NO_PREFERENCE_VALUES:
            fields[key] = None

    gender = fields.get("gender")
    if gender is not None and normalize_gender(gender) is None:
        raise HTTPException(status_code=400, detail="gender must be male or female")

    dob = fields.get("date_of_birth")
    if dob is not None and parse_date_of_birth(dob) is None:
        raise HTTPException(status_code=400, detail="date_of_birth is not a recognised date")

    for key in ("height", "pref_height_min", "pref_height_max"):
        value = fields.get(key)
        if value is not None and parse_height(value) is None:
            raise HTTPException(status_code=400, detail=f"{key} must look like 5'8\"")

    for key in ("pref_age_min", "pref_age_max"):
        value = fields.get(key)
        if value is None:
            continue
        if not str(value).isdigit() or not 18 <= int(value) <= 99:
            raise HTTPException(status_code=400, detail=f"{key} must be a whole number between 18 and 99")
        fields[key] = str(int(value))

    low, high = fields.get("pref_age_min"), fields.get("pref_age_max")
    if low is not None and high is not None and int(low) > int(high):
        raise HTTPException(status_code=400, detail="pref_age_min cannot exceed pref_age_max")

    return fields
