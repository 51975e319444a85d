"""
Write-time normalization for profile and preference records.

Profile data arrives with loose, historically inconsistent strings
("Vegetarian", "veg", "Non Vegetarian", "Never Married"...). Everything the
compatibility evaluator reads is mapped onto closed vocabularies here, once,
when a profile is written or migrated. The evaluator never has to special-case
casing or synonyms, and it never sees the literal ``same_as_mine`` token.
"""

import json
import logging
import re
from enum import Enum
from typing import Any

from .. import config

logger = logging.getLogger(__name__)


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class InterestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class MaritalStatus(str, Enum):
    NEVER_MARRIED = "never_married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"
    AWAITING_DIVORCE = "awaiting_divorce"
    ANNULLED = "annulled"


class Diet(str, Enum):
    VEGETARIAN = "vegetarian"
    EGGETARIAN = "eggetarian"
    NON_VEGETARIAN = "non_vegetarian"
    VEGAN = "vegan"
    JAIN = "jain"


class Habit(str, Enum):
    NO = "no"
    OCCASIONALLY = "occasionally"
    YES = "yes"


class FamilyValues(str, Enum):
    TRADITIONAL = "traditional"
    MODERATE = "moderate"
    LIBERAL = "liberal"


# Preference values that never constrain anything.
NO_PREFERENCE_VALUES = frozenset(
    {"", "doesnt_matter", "doesn't matter", "doesnt matter", "any", "no preference", "no_preference"}
)
SAME_AS_MINE_VALUES = frozenset({"same_as_mine", "same as mine"})

# Matchable field -> preference keys that carry its desired value.
PREFERENCE_FIELDS: dict[str, tuple[str, ...]] = {
    "age": ("pref_age_min", "pref_age_max", "pref_age_diff"),
    "height": ("pref_height_min", "pref_height_max"),
    "marital_status": ("pref_marital_status",),
    "religion": ("pref_religion",),
    "community": ("pref_community",),
    "sub_community": ("pref_sub_community",),
    "gotra": ("pref_gotra",),
    "diet": ("pref_diet",),
    "smoking": ("pref_smoking",),
    "drinking": ("pref_drinking",),
    "location": ("pref_location", "pref_location_list"),
    "citizenship": ("pref_citizenship",),
    "grew_up_in": ("pref_grew_up_in",),
    "relocation": ("pref_relocation",),
    "education": ("pref_qualification",),
    "income": ("pref_income",),
    "occupation": ("pref_occupation",),
    "family_values": ("pref_family_values",),
    "family_location": ("pref_family_location",),
    "mother_tongue": ("pref_mother_tongue",),
    "pets": ("pref_pets",),
}


def dealbreaker_key(field: str) -> str:
    return f"pref_{field}_is_dealbreaker"


def _key(value: Any) -> str:
    text = str(value or "").strip().lower().replace("'", "").replace("’", "")
    return re.sub(r"[\s\-/]+", "_", text)


_GENDER_SYNONYMS = {
    "male": Gender.MALE,
    "m": Gender.MALE,
    "man": Gender.MALE,
    "groom": Gender.MALE,
    "female": Gender.FEMALE,
    "f": Gender.FEMALE,
    "woman": Gender.FEMALE,
    "bride": Gender.FEMALE,
}

_MARITAL_SYNONYMS = {
    "never_married": MaritalStatus.NEVER_MARRIED,
    "nevermarried": MaritalStatus.NEVER_MARRIED,
    "single": MaritalStatus.NEVER_MARRIED,
    "unmarried": MaritalStatus.NEVER_MARRIED,
    "divorced": MaritalStatus.DIVORCED,
    "widowed": MaritalStatus.WIDOWED,
    "widow": MaritalStatus.WIDOWED,
    "widower": MaritalStatus.WIDOWED,
    "awaiting_divorce": MaritalStatus.AWAITING_DIVORCE,
    "separated": MaritalStatus.AWAITING_DIVORCE,
    "annulled": MaritalStatus.ANNULLED,
}

_DIET_SYNONYMS = {
    "vegetarian": Diet.VEGETARIAN,
    "veg": Diet.VEGETARIAN,
    "pure_veg": Diet.VEGETARIAN,
    "pure_vegetarian": Diet.VEGETARIAN,
    "eggetarian": Diet.EGGETARIAN,
    "egg": Diet.EGGETARIAN,
    "ovo_vegetarian": Diet.EGGETARIAN,
    "non_vegetarian": Diet.NON_VEGETARIAN,
    "nonvegetarian": Diet.NON_VEGETARIAN,
    "non_veg": Diet.NON_VEGETARIAN,
    "nonveg": Diet.NON_VEGETARIAN,
    "occasionally_non_veg": Diet.NON_VEGETARIAN,
    "vegan": Diet.VEGAN,
    "jain": Diet.JAIN,
}

_HABIT_SYNONYMS = {
    "no": Habit.NO,
    "never": Habit.NO,
    "non_smoker": Habit.NO,
    "non_drinker": Habit.NO,
    "teetotal": Habit.NO,
    "teetotaler": Habit.NO,
    "dont_smoke": Habit.NO,
    "dont_drink": Habit.NO,
    "occasionally": Habit.OCCASIONALLY,
    "occasional": Habit.OCCASIONALLY,
    "social": Habit.OCCASIONALLY,
    "socially": Habit.OCCASIONALLY,
    "sometimes": Habit.OCCASIONALLY,
    "yes": Habit.YES,
    "regularly": Habit.YES,
    "regular": Habit.YES,
    "daily": Habit.YES,
}

_FAMILY_VALUES_SYNONYMS = {
    "traditional": FamilyValues.TRADITIONAL,
    "orthodox": FamilyValues.TRADITIONAL,
    "conservative": FamilyValues.TRADITIONAL,
    "moderate": FamilyValues.MODERATE,
    "liberal": FamilyValues.LIBERAL,
    "modern": FamilyValues.LIBERAL,
}


def normalize_gender(value: Any) -> Gender | None:
    return _GENDER_SYNONYMS.get(_key(value))


def normalize_marital_status(value: Any) -> MaritalStatus | None:
    return _MARITAL_SYNONYMS.get(_key(value))


def normalize_diet(value: Any) -> Diet | None:
    return _DIET_SYNONYMS.get(_key(value))


def normalize_habit(value: Any) -> Habit | None:
    return _HABIT_SYNONYMS.get(_key(value))


def normalize_family_values(value: Any) -> FamilyValues | None:
    return _FAMILY_VALUES_SYNONYMS.get(_key(value))


def is_preference_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        return any(is_preference_set(v) for v in value)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return True
    return str(value).strip().lower() not in NO_PREFERENCE_VALUES


def is_same_as_mine(value: Any) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in SAME_AS_MINE_VALUES


def parse_string_list(value: Any) -> list[str]:
    """Accept a list, a JSON-encoded array or a comma separated string."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    if not isinstance(value, str):
        return []
    raw = value.strip()
    if not raw:
        return []
    if raw.startswith("[") and raw.endswith("]"):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item).strip() for item in parsed if str(item).strip()]
    return [item.strip() for item in raw.split(",") if item.strip()]


def dedupe_values(values: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        key = value.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(value)
    return out


_SAME_AS_MINE_LIST_FIELDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("pref_community", ("community", "caste")),
    ("pref_sub_community", ("sub_community",)),
    ("pref_mother_tongue", ("mother_tongue",)),
)

_SAME_AS_MINE_SINGLE_FIELDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("pref_family_values", ("family_values",)),
    ("pref_family_location", ("family_location",)),
    ("pref_citizenship", ("citizenship", "country")),
    ("pref_grew_up_in", ("grew_up_in", "country")),
)


def _resolve_own_value(
    payload: dict[str, Any], fallback: dict[str, Any] | None, keys: tuple[str, ...]
) -> str | None:
    sources = [payload] + ([fallback] if fallback else [])
    for key in keys:
        for source in sources:
            value = source.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def normalize_same_as_mine_preferences(
    payload: dict[str, Any], fallback: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Replace ``same_as_mine`` with the seeker's own attribute value.

    ``fallback`` is the stored profile, used when the payload is a partial
    update that does not carry the seeker's own attribute.
    """
    normalized = dict(payload)

    for pref_key, source_keys in _SAME_AS_MINE_LIST_FIELDS:
        if pref_key not in normalized:
            continue
        values = parse_string_list(normalized[pref_key])
        if not any(is_same_as_mine(v) for v in values):
            continue
        own = _resolve_own_value(normalized, fallback, source_keys)
        merged = dedupe_values([v for v in values if not is_same_as_mine(v)] + parse_string_list(own))
        normalized[pref_key] = ", ".join(merged)

    for pref_key, source_keys in _SAME_AS_MINE_SINGLE_FIELDS:
        value = normalized.get(pref_key)
        if not isinstance(value, str) or not is_same_as_mine(value):
            continue
        normalized[pref_key] = _resolve_own_value(normalized, fallback, source_keys) or ""

    return normalized


def _coerce_flag(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def reconcile_dealbreaker_flags(
    profile: dict[str, Any], defaults: dict[str, bool] | None = None
) -> dict[str, Any]:
    """Clear flags paired with an unset preference and fill undefined ones from policy."""
    if defaults is None:
        defaults = config.DEFAULT_MATCHING_CONFIG.get("DEALBREAKER_DEFAULTS", {})
    out = dict(profile)
    for field, pref_keys in PREFERENCE_FIELDS.items():
        flag_key = dealbreaker_key(field)
        if not any(is_preference_set(out.get(k)) for k in pref_keys):
            out[flag_key] = False
            continue
        flag = _coerce_flag(out.get(flag_key))
        out[flag_key] = bool(defaults.get(field, False)) if flag is None else flag
    return out


KNOWN_COMMUNITIES = (
    "Brahmin", "Kshatriya", "Vaishya", "Vysya", "Kapu", "Kamma", "Reddy", "Naidu",
    "Nair", "Mudaliar", "Naicker", "Pillai", "Chettiar", "Gowda", "Lingayat",
    "Vokkaliga", "Maratha", "Jat", "Rajput", "Kayastha", "Bania", "Agarwal",
)

BRAHMIN_MARKERS = ("brahmin", "iyer", "iyengar", "vadama", "havyaka", "madhwa", "smartha", "vaidiki", "niyogi")

_REGION_WORDS = re.compile(r"\b(tamil|telugu|kannada|brahmins?)\b", re.IGNORECASE)


def _title_words(text: str) -> str:
    parts = [p for p in re.split(r"[\s,/\-]+", text) if p]
    return " ".join(p[:1].upper() + p[1:].lower() for p in parts)


def split_caste(caste: Any) -> tuple[str | None, str | None]:
    """Split a legacy free-text caste into ``(community, sub_community)``.

    "Havyaka Brahmin" -> ("Brahmin", "Havyaka"); "Vysya chettiar" ->
    ("Vysya", "Chettiar"); "Kapu" -> ("Kapu", None).
    """
    if caste is None or not str(caste).strip():
        return None, None
    original = str(caste).strip()
    lower = original.lower()

    if any(marker in lower for marker in BRAHMIN_MARKERS):
        rest = _REGION_WORDS.sub(" ", original)
        chunks = [_title_words(c) for c in re.split(r"[/,]+", rest)]
        sub = ", ".join(c for c in chunks if c)
        return "Brahmin", sub or None

    for community in KNOWN_COMMUNITIES:
        match = re.search(rf"\b{re.escape(community)}\b", original, re.IGNORECASE)
        if not match:
            continue
        rest = (original[: match.start()] + " " + original[match.end():]).strip(" ,/-")
        return community, _title_words(rest) or None

    return _title_words(original), None


def _normalize_enum_field(out: dict[str, Any], key: str, normalizer) -> None:
    raw = out.get(key)
    if raw is None or not str(raw).strip():
        return
    value = normalizer(raw)
    if value is None:
        logger.debug(f"[NORMALIZE] unrecognized {key}={raw!r}, keeping as-is")
        out[key] = str(raw).strip()
        return
    out[key] = value.value


def _normalize_enum_pref(out: dict[str, Any], key: str, normalizer) -> None:
    raw = out.get(key)
    if raw is None or not is_preference_set(raw):
        return
    values: list[str] = []
    for item in parse_string_list(raw):
        if not is_preference_set(item):
            values = []
            break
        value = normalizer(item)
        values.append(value.value if value is not None else item.strip())
    out[key] = ", ".join(dedupe_values(values)) if values else "doesnt_matter"


def normalize_profile(record: dict[str, Any], fallback: dict[str, Any] | None = None) -> dict[str, Any]:
    """Run every write-time normalization step over one profile record."""
    out = dict(record)

    _normalize_enum_field(out, "gender", normalize_gender)
    _normalize_enum_field(out, "marital_status", normalize_marital_status)
    _normalize_enum_field(out, "diet", normalize_diet)
    _normalize_enum_field(out, "smoking", normalize_habit)
    _normalize_enum_field(out, "drinking", normalize_habit)
    _normalize_enum_field(out, "family_values", normalize_family_values)

    _normalize_enum_pref(out, "pref_marital_status", normalize_marital_status)
    _normalize_enum_pref(out, "pref_diet", normalize_diet)
    _normalize_enum_pref(out, "pref_smoking", normalize_habit)
    _normalize_enum_pref(out, "pref_drinking", normalize_habit)
    _normalize_enum_pref(out, "pref_family_values", normalize_family_values)

    if out.get("caste") and not out.get("community"):
        community, sub_community = split_caste(out.get("caste"))
        out["community"] = community
        if sub_community and not out.get("sub_community"):
            out["sub_community"] = sub_community

    out = normalize_same_as_mine_preferences(out, fallback)
    return reconcile_dealbreaker_flags(out)
