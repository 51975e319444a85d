"""
Compatibility evaluator.

Decides, from one seeker's point of view, whether a candidate profile passes
the seeker's preferences. Each matchable field is an independent gate and the
verdict is the AND of every active gate. A gate is active only when the
seeker's dealbreaker flag for that field is on (or defaulted on by policy) and
the paired preference holds a concrete value.

Missing or unparsable data never fails a gate: a candidate whose date of
birth, height or attribute cannot be read is treated as "cannot filter" and
passes. The evaluator never raises.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from ..config import DEFAULT_MATCHING_CONFIG
from .locations import is_location_match, is_us_location
from .normalization import (
    Diet,
    Habit,
    PREFERENCE_FIELDS,
    dealbreaker_key,
    is_preference_set,
    normalize_diet,
    normalize_family_values,
    normalize_gender,
    normalize_habit,
    normalize_marital_status,
    parse_string_list,
)

logger = logging.getLogger(__name__)

Profile = dict[str, Any]


# Age


_MDY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_MY = re.compile(r"^(\d{1,2})/(\d{4})$")
_DMY_DOTTED = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_of_birth(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None

    m = _MDY.match(raw)
    if m:
        return _safe_date(int(m.group(3)), int(m.group(1)), int(m.group(2)))
    m = _MY.match(raw)
    if m:
        year = int(m.group(2))
        if year <= 1900:
            return None
        # Month-only birthdays are pinned to mid-month.
        return _safe_date(year, int(m.group(1)), 15)
    m = _DMY_DOTTED.match(raw)
    if m:
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    m = _ISO.match(raw)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    return None


def calculate_age(dob: Any, today: date | None = None) -> int | None:
    born = parse_date_of_birth(dob)
    if born is None:
        return None
    today = today or date.today()
    if born > today:
        return None
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    m = re.match(r"^\s*(\d{1,3})\s*$", str(value))
    return int(m.group(1)) if m else None


def parse_age_preference(pref_age_diff: Any, seeker_age: int | None) -> tuple[int, int] | None:
    """Turn a legacy free-text age preference into an absolute ``(min, max)``.

    Accepts "25-35" (absolute), "< 5 years", "3-5 years older", "2 years
    younger", "same_age" and a bare number of years either side.
    """
    if not is_preference_set(pref_age_diff):
        return None
    pref = str(pref_age_diff).strip().lower().replace("_", " ")
    mentions_years = "year" in pref

    m = re.search(r"(\d{2,})\s*(?:-|–|to)\s*(\d{2,})", pref)
    if m and not mentions_years:
        low, high = int(m.group(1)), int(m.group(2))
        return (min(low, high), max(low, high))

    if seeker_age is None:
        return None

    if "same age" in pref:
        return (seeker_age - 1, seeker_age + 1)

    m = re.search(r"(\d+)\s*(?:-|–|to)\s*(\d+)\s*(?:years?)?\s*(younger|older)?", pref)
    if m:
        low, high = sorted((int(m.group(1)), int(m.group(2))))
        if m.group(3) == "younger":
            return (seeker_age - high, seeker_age - low)
        if m.group(3) == "older" or "older" in pref:
            return (seeker_age + low, seeker_age + high)
        return (seeker_age - high, seeker_age + high)

    m = re.search(r"(\d+)\s*\+\s*(?:years?)?\s*(younger|older)", pref)
    if m:
        diff = int(m.group(1))
        if m.group(2) == "younger":
            return (0, seeker_age - diff)
        return (seeker_age + diff, 200)

    m = re.search(r"(?:<|less\s*than|within|up\s*to)\s*(\d+)", pref)
    if m:
        diff = int(m.group(1))
        return (seeker_age - diff, seeker_age + diff)

    m = re.search(r"(\d+)\s*years?\s*(younger|older)", pref)
    if m:
        diff = int(m.group(1))
        if m.group(2) == "younger":
            return (seeker_age - diff, seeker_age)
        return (seeker_age, seeker_age + diff)

    m = re.match(r"^(\d+)$", pref)
    if m:
        diff = int(m.group(1))
        return (seeker_age - diff, seeker_age + diff)

    return None


def age_range(seeker: Profile, today: date | None = None) -> tuple[int | None, int | None]:
    low = _to_int(seeker.get("pref_age_min"))
    high = _to_int(seeker.get("pref_age_max"))
    if low is not None or high is not None:
        return low, high
    parsed = parse_age_preference(seeker.get("pref_age_diff"), calculate_age(seeker.get("date_of_birth"), today))
    if parsed is None:
        return None, None
    return parsed


def is_age_match(seeker: Profile, candidate: Profile, today: date | None = None) -> bool:
    low, high = age_range(seeker, today)
    if low is None and high is None:
        return True
    age = calculate_age(candidate.get("date_of_birth"), today)
    if age is None:
        return True
    if low is not None and age < low:
        return False
    if high is not None and age > high:
        return False
    return True


# Height


_HEIGHT_TOKEN = re.compile(
    r"^(\d)\s*(?:'|’|′|ft\.?|feet|foot)\s*(?:(\d{1,2})\s*(?:\"|”|″|''|’’|in\.?|inch|inches)?)?$",
    re.IGNORECASE,
)


def parse_height(token: Any) -> int | None:
    """Parse a height token like ``5'8"`` into inches; ``None`` when unreadable."""
    if token is None or isinstance(token, bool):
        return None
    low = DEFAULT_MATCHING_CONFIG["MIN_SUPPORTED_HEIGHT_IN"]
    high = DEFAULT_MATCHING_CONFIG["MAX_SUPPORTED_HEIGHT_IN"]
    if isinstance(token, (int, float)):
        inches = int(token)
        return inches if low <= inches <= high else None

    raw = str(token).strip()
    if not raw:
        return None
    if raw.isdigit():
        inches = int(raw)
        return inches if low <= inches <= high else None

    m = _HEIGHT_TOKEN.match(raw)
    if not m:
        return None
    feet = int(m.group(1))
    extra = int(m.group(2)) if m.group(2) else 0
    if extra >= 12:
        return None
    inches = feet * 12 + extra
    return inches if low <= inches <= high else None


def format_height(inches: int) -> str:
    return f"{inches // 12}'{inches % 12}\""


def is_height_match(seeker: Profile, candidate: Profile) -> bool:
    low = parse_height(seeker.get("pref_height_min"))
    high = parse_height(seeker.get("pref_height_max"))
    if low is None and high is None:
        return True
    height = parse_height(candidate.get("height"))
    if height is None:
        return True
    if low is not None and height < low:
        return False
    if high is not None and height > high:
        return False
    return True


# Field rules: (preference value, candidate value, seeker) -> passes


def _lower_set(values: list[str]) -> set[str]:
    return {v.strip().lower() for v in values if v.strip()}


def _has_wildcard(values: list[str]) -> bool:
    return any(not is_preference_set(v) for v in values)


def _in_preference_set(pref: Any, candidate_value: Any, _seeker: Profile | None = None) -> bool:
    values = parse_string_list(pref) or [str(pref)]
    if not values or _has_wildcard(values):
        return True
    return str(candidate_value).strip().lower() in _lower_set(values)


def _enum_rule(normalizer: Callable[[Any], Any], accepts: dict[Any, set[Any]] | None = None):
    def rule(pref: Any, candidate_value: Any, _seeker: Profile | None = None) -> bool:
        values = parse_string_list(pref)
        if not values or _has_wildcard(values):
            return True
        cand = normalizer(candidate_value)
        cand_key = cand if cand is not None else str(candidate_value).strip().lower()
        for value in values:
            wanted = normalizer(value)
            if wanted is None:
                if value.strip().lower() == str(candidate_value).strip().lower():
                    return True
                continue
            allowed = accepts.get(wanted, {wanted}) if accepts else {wanted}
            if cand_key in allowed:
                return True
        return False

    return rule


DIET_ACCEPTS: dict[Diet, set[Diet]] = {
    Diet.VEGAN: {Diet.VEGAN},
    Diet.JAIN: {Diet.JAIN},
    Diet.VEGETARIAN: {Diet.VEGETARIAN, Diet.VEGAN, Diet.JAIN},
    Diet.EGGETARIAN: {Diet.EGGETARIAN, Diet.VEGETARIAN, Diet.VEGAN, Diet.JAIN},
    Diet.NON_VEGETARIAN: set(Diet),
}

HABIT_ACCEPTS: dict[Habit, set[Habit]] = {
    Habit.NO: {Habit.NO},
    Habit.OCCASIONALLY: {Habit.NO, Habit.OCCASIONALLY},
    Habit.YES: set(Habit),
}

is_marital_status_match = _enum_rule(normalize_marital_status)
is_diet_match = _enum_rule(normalize_diet, DIET_ACCEPTS)
is_habit_match = _enum_rule(normalize_habit, HABIT_ACCEPTS)
is_family_values_match = _enum_rule(normalize_family_values)


BRAHMIN_SUB_CASTES = (
    "brahmin", "brahman", "bramin", "iyengar", "iyer", "aiyengar", "aiyer", "smartha", "smarta",
    "madhwa", "madhva", "vaishnava", "niyogi", "aruvela", "vaidiki", "namboodiri", "namboothiri",
    "deshastha", "chitpavan", "karhade", "saraswat", "gaud", "gaur", "havyaka", "hoysala",
    "shivalli", "sthanika", "kota", "velanadu", "mulukanadu", "veginadu", "kokanastha",
    "konkanastha", "maithil", "tyagi", "bhumihar", "mohyal", "kanyakubja", "saryuparin",
    "vadama", "sankethi", "pushkarna", "audichya",
)


def is_brahmin(value: Any) -> bool:
    lower = str(value or "").lower()
    return any(re.search(rf"\b{name}\b", lower) for name in BRAHMIN_SUB_CASTES)


def is_community_match(pref: Any, candidate_value: Any, _seeker: Profile | None = None) -> bool:
    values = parse_string_list(pref)
    if not values or _has_wildcard(values):
        return True
    cand = str(candidate_value).strip().lower()
    for value in values:
        wanted = value.strip().lower()
        if wanted == cand or wanted in cand or cand in wanted:
            return True
        if is_brahmin(wanted) and is_brahmin(cand):
            return True
    return False


def is_gotra_match(pref: Any, candidate_value: Any, seeker: Profile | None = None) -> bool:
    pref_lower = str(pref).strip().lower().replace("_", " ")
    own = str((seeker or {}).get("gotra") or "").strip().lower()
    cand = str(candidate_value).strip().lower()
    if "different" in pref_lower:
        # Nothing to compare against when the seeker has no gotra on file.
        return not own or own != cand
    if "same" in pref_lower:
        return not own or own == cand
    return _in_preference_set(pref, candidate_value)


EDUCATION_LEVELS: dict[str, int] = {
    "high_school": 1, "high school": 1, "diploma": 1, "12th": 1,
    "undergrad": 2, "undergrad_eng": 2, "undergrad_cs": 2, "bachelors": 2, "bachelors_eng": 2,
    "bachelors_cs": 2, "bachelor's": 2, "bachelor": 2, "undergraduate": 2, "be": 2, "btech": 2,
    "bsc": 2, "bcom": 2, "ba": 2, "bca": 2, "bba": 2, "mbbs": 2, "bds": 2, "llb": 2,
    "masters": 3, "masters_eng": 3, "masters_cs": 3, "master's": 3, "master": 3, "graduate": 3,
    "post graduate": 3, "postgraduate": 3, "post_graduate": 3, "mba": 3, "me": 3, "mtech": 3,
    "ms": 3, "msc": 3, "mcom": 3, "ma": 3, "mca": 3, "md": 3, "ms_medical": 3, "llm": 3,
    "ca_cpa": 3, "ca": 3, "cpa": 3,
    "phd": 4, "ph.d": 4, "doctorate": 4, "dm_mch": 4, "dm": 4, "mch": 4,
}

# Preference value -> ("level", minimum) or ("category", accepted qualifications)
PREF_EDUCATION_CONFIG: dict[str, tuple[str, Any]] = {
    "undergrad": ("level", 2),
    "bachelors": ("level", 2),
    "graduate": ("level", 2),
    "masters": ("level", 3),
    "post_graduate": ("level", 3),
    "doctorate": ("category", ("phd", "dm_mch", "doctorate")),
    "phd": ("category", ("phd",)),
    "eng_undergrad": ("category", ("undergrad_eng", "bachelors_eng", "be", "btech")),
    "eng_masters": ("category", ("masters_eng", "me", "mtech")),
    "engineering": ("category", ("undergrad_eng", "bachelors_eng", "masters_eng", "be", "btech", "me", "mtech")),
    "cs_undergrad": ("category", ("undergrad_cs", "bachelors_cs", "bca")),
    "cs_masters": ("category", ("masters_cs", "mca")),
    "medical_undergrad": ("category", ("mbbs", "bds")),
    "medical_masters": ("category", ("md", "ms_medical")),
    "medical": ("category", ("mbbs", "bds", "md", "ms_medical", "dm_mch")),
    "mba": ("category", ("mba",)),
    "ca_professional": ("category", ("ca_cpa", "ca", "cpa")),
    "law": ("category", ("llb", "llm")),
}


def _qualification_tokens(value: str) -> list[str]:
    lower = value.strip().lower()
    return [lower] + [t for t in re.split(r"[\s,/()\-]+", lower.replace(".", "")) if t]


def education_level(qualification: Any) -> int | None:
    if qualification is None or not str(qualification).strip():
        return None
    tokens = _qualification_tokens(str(qualification))
    levels = [EDUCATION_LEVELS[t] for t in tokens if t in EDUCATION_LEVELS]
    return max(levels) if levels else None


def is_education_match(pref: Any, candidate_value: Any, _seeker: Profile | None = None) -> bool:
    key = str(pref).strip().lower()
    config = PREF_EDUCATION_CONFIG.get(key)
    cand_tokens = set(_qualification_tokens(str(candidate_value)))
    if config is not None and config[0] == "category":
        return bool(cand_tokens & set(config[1]))

    minimum = config[1] if config is not None else education_level(key)
    cand_level = education_level(candidate_value)
    if minimum is None or cand_level is None:
        return True
    return cand_level >= minimum


INCOME_BRACKETS: dict[str, int] = {
    "<50k": 25,
    "50k-75k": 62,
    "75k-100k": 87,
    "100k-150k": 125,
    "150k-200k": 175,
    ">200k": 250,
}

INCOME_MINIMUMS: dict[str, int] = {
    "50k+": 50,
    "75k+": 75,
    "100k+": 100,
    "150k+": 150,
    "200k+": 200,
}


def _income_value(value: Any) -> int | None:
    raw = str(value).strip().lower().replace(" ", "").replace("$", "")
    if raw in INCOME_BRACKETS:
        return INCOME_BRACKETS[raw]
    m = re.match(r"^(\d+)k\+?$", raw)
    return int(m.group(1)) if m else None


def is_income_match(pref: Any, candidate_value: Any, _seeker: Profile | None = None) -> bool:
    raw = str(pref).strip().lower().replace(" ", "").replace("$", "")
    minimum = INCOME_MINIMUMS.get(raw)
    if minimum is None:
        m = re.match(r"^(\d+)k\+$", raw)
        minimum = int(m.group(1)) if m else None
    if minimum is None:
        return _in_preference_set(pref, candidate_value)
    value = _income_value(candidate_value)
    if value is None:
        return True
    return value >= minimum


def is_family_location_match(pref: Any, candidate_value: Any, _seeker: Profile | None = None) -> bool:
    values = parse_string_list(pref) or [str(pref)]
    if _has_wildcard(values):
        return True
    cand = str(candidate_value).strip().lower()
    for value in values:
        wanted = value.strip().lower()
        if wanted in {"usa", "us", "united states"}:
            if is_us_location(str(candidate_value)):
                return True
            continue
        if wanted in cand or cand in wanted:
            return True
    return False


def _location_rule(pref: Any, candidate_value: Any, _seeker: Profile | None = None) -> bool:
    return is_location_match(pref, candidate_value)


# Criteria


@dataclass(frozen=True)
class Criterion:
    field: str
    label: str
    candidate_key: str
    check: Callable[[Any, Any, Profile], bool]

    @property
    def pref_keys(self) -> tuple[str, ...]:
        return PREFERENCE_FIELDS[self.field]


CRITERIA: tuple[Criterion, ...] = (
    Criterion("marital_status", "Marital Status", "marital_status", is_marital_status_match),
    Criterion("religion", "Religion", "religion", _in_preference_set),
    Criterion("community", "Community", "community", is_community_match),
    Criterion("sub_community", "Sub-Community", "sub_community", is_community_match),
    Criterion("gotra", "Gotra", "gotra", is_gotra_match),
    Criterion("diet", "Diet", "diet", is_diet_match),
    Criterion("smoking", "Smoking", "smoking", is_habit_match),
    Criterion("drinking", "Drinking", "drinking", is_habit_match),
    Criterion("citizenship", "Citizenship", "citizenship", _in_preference_set),
    Criterion("grew_up_in", "Grew Up In", "grew_up_in", _in_preference_set),
    Criterion("relocation", "Open to Relocation", "relocation", _in_preference_set),
    Criterion("education", "Education", "qualification", is_education_match),
    Criterion("income", "Income", "annual_income", is_income_match),
    Criterion("occupation", "Occupation", "occupation", _in_preference_set),
    Criterion("family_values", "Family Values", "family_values", is_family_values_match),
    Criterion("family_location", "Family Location", "family_location", is_family_location_match),
    Criterion("mother_tongue", "Mother Tongue", "mother_tongue", _in_preference_set),
    Criterion("pets", "Pets", "pets", _in_preference_set),
)

_CRITERIA_BY_FIELD = {c.field: c for c in CRITERIA}


def _criterion_pref(seeker: Profile, criterion: Criterion) -> Any:
    for key in criterion.pref_keys:
        value = seeker.get(key)
        if is_preference_set(value):
            return value
    return None


def is_dealbreaker_active(seeker: Profile, field: str, config: dict[str, Any] | None = None) -> bool:
    """A flag only binds when its paired preference is concrete."""
    if not any(is_preference_set(seeker.get(k)) for k in PREFERENCE_FIELDS[field]):
        return False
    flag = seeker.get(dealbreaker_key(field))
    if flag is None:
        defaults = (config or DEFAULT_MATCHING_CONFIG).get("DEALBREAKER_DEFAULTS", {})
        return bool(defaults.get(field, False))
    if isinstance(flag, bool):
        return flag
    return str(flag).strip().lower() == "true"


def _check_field(seeker: Profile, candidate: Profile, field: str, today: date | None) -> bool:
    """Run one field's rule; an unreadable value means the field cannot filter."""
    try:
        if field == "age":
            return is_age_match(seeker, candidate, today)
        if field == "height":
            return is_height_match(seeker, candidate)
        if field == "location":
            candidate_location = candidate.get("current_location")
            prefs = [seeker.get("pref_location")] + parse_string_list(seeker.get("pref_location_list"))
            prefs = [p for p in prefs if is_preference_set(p)]
            if not prefs:
                return True
            return any(is_location_match(p, candidate_location) for p in prefs)

        criterion = _CRITERIA_BY_FIELD[field]
        pref = _criterion_pref(seeker, criterion)
        value = candidate.get(criterion.candidate_key)
        if pref is None or value is None or not str(value).strip():
            return True
        return criterion.check(pref, value, seeker)
    except (TypeError, ValueError, AttributeError, KeyError):
        logger.debug(f"[MATCH] could not evaluate field={field}, treating as pass", exc_info=True)
        return True


def failed_dealbreakers(
    seeker: Profile, candidate: Profile, *, today: date | None = None, config: dict[str, Any] | None = None
) -> list[str]:
    failed = []
    for field in PREFERENCE_FIELDS:
        if not is_dealbreaker_active(seeker, field, config):
            continue
        if not _check_field(seeker, candidate, field, today):
            failed.append(field)
    return failed


def is_candidate_acceptable(
    seeker: Profile, candidate: Profile, *, today: date | None = None, config: dict[str, Any] | None = None
) -> bool:
    return not failed_dealbreakers(seeker, candidate, today=today, config=config)


_SCORE_LABELS = {"age": "Age", "height": "Height", "location": "Location"}


def _display_pref(seeker: Profile, field: str) -> Any:
    if field == "age":
        low, high = seeker.get("pref_age_min"), seeker.get("pref_age_max")
        if is_preference_set(low) or is_preference_set(high):
            return f"{low or '?'}-{high or '?'}"
        return seeker.get("pref_age_diff")
    if field == "height":
        return f"{seeker.get('pref_height_min') or '?'} - {seeker.get('pref_height_max') or '?'}"
    if field == "location":
        return seeker.get("pref_location") or seeker.get("pref_location_list")
    return _criterion_pref(seeker, _CRITERIA_BY_FIELD[field])


def _display_candidate(candidate: Profile, field: str, today: date | None) -> Any:
    if field == "age":
        return calculate_age(candidate.get("date_of_birth"), today)
    if field == "height":
        return candidate.get("height")
    if field == "location":
        return candidate.get("current_location")
    return candidate.get(_CRITERIA_BY_FIELD[field].candidate_key)


def score_candidate(
    seeker: Profile, candidate: Profile, *, today: date | None = None, config: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Per-criterion breakdown of how well ``candidate`` fits ``seeker``'s preferences.

    Only criteria with a concrete preference count towards the total; a
    seeker with no preferences scores every candidate at 100.
    """
    criteria = []
    matched_count = 0
    total = 0
    for field in PREFERENCE_FIELDS:
        has_pref = any(is_preference_set(seeker.get(k)) for k in PREFERENCE_FIELDS[field])
        matched = _check_field(seeker, candidate, field, today) if has_pref else True
        if has_pref:
            total += 1
            if matched:
                matched_count += 1
        label = _SCORE_LABELS.get(field) or _CRITERIA_BY_FIELD[field].label
        criteria.append(
            {
                "name": label,
                "field": field,
                "matched": matched,
                "seeker_pref": _display_pref(seeker, field) if has_pref else None,
                "candidate_value": _display_candidate(candidate, field, today),
                "is_dealbreaker": is_dealbreaker_active(seeker, field, config),
            }
        )
    percentage = round(matched_count / total * 100) if total else 100
    return {
        "total_score": matched_count,
        "max_score": total,
        "percentage": percentage,
        "criteria": criteria,
    }


def is_opposite_gender(a: Profile, b: Profile) -> bool:
    ga = normalize_gender(a.get("gender"))
    gb = normalize_gender(b.get("gender"))
    return ga is not None and gb is not None and ga != gb


def is_mutual_candidate(
    a: Profile, b: Profile, *, today: date | None = None, config: dict[str, Any] | None = None
) -> bool:
    if not is_opposite_gender(a, b):
        return False
    return is_candidate_acceptable(a, b, today=today, config=config) and is_candidate_acceptable(
        b, a, today=today, config=config
    )
