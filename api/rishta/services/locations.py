import re

US_STATES: dict[str, str] = {
    "AL": "alabama", "AK": "alaska", "AZ": "arizona", "AR": "arkansas", "CA": "california",
    "CO": "colorado", "CT": "connecticut", "DE": "delaware", "FL": "florida", "GA": "georgia",
    "HI": "hawaii", "ID": "idaho", "IL": "illinois", "IN": "indiana", "IA": "iowa",
    "KS": "kansas", "KY": "kentucky", "LA": "louisiana", "ME": "maine", "MD": "maryland",
    "MA": "massachusetts", "MI": "michigan", "MN": "minnesota", "MS": "mississippi", "MO": "missouri",
    "MT": "montana", "NE": "nebraska", "NV": "nevada", "NH": "new hampshire", "NJ": "new jersey",
    "NM": "new mexico", "NY": "new york", "NC": "north carolina", "ND": "north dakota", "OH": "ohio",
    "OK": "oklahoma", "OR": "oregon", "PA": "pennsylvania", "RI": "rhode island", "SC": "south carolina",
    "SD": "south dakota", "TN": "tennessee", "TX": "texas", "UT": "utah", "VT": "vermont",
    "VA": "virginia", "WA": "washington", "WV": "west virginia", "WI": "wisconsin", "WY": "wyoming",
    "DC": "district of columbia",
}

_STATE_NAME_PATTERNS = [
    (name, re.compile(rf"\b{re.escape(name)}\b")) for name in set(US_STATES.values())
]

US_COUNTRY_TOKENS = frozenset({"usa", "us", "u.s.", "u.s.a.", "united states", "united states of america", "america"})
_COUNTRY_MARKERS = re.compile(r"(?<![a-z])(usa|u\.s\.(?:a\.?)?|united states)(?![a-z])")

# Dropdown values that never narrow the pool.
PASS_THROUGH_LOCATIONS = frozenset({"doesnt matter", "open to relocation", "other state", "anywhere"})

BAY_AREA_PLACES = (
    "bay area", "san francisco", "san jose", "oakland", "fremont", "sunnyvale", "santa clara",
    "hayward", "berkeley", "palo alto", "mountain view", "redwood city", "milpitas",
    "pleasanton", "livermore", "dublin", "union city", "newark", "cupertino",
    "san mateo", "daly city", "san leandro", "walnut creek", "concord", "alameda",
    "menlo park", "burlingame", "foster city", "san ramon", "santa rosa", "vallejo",
    "napa", "petaluma", "silicon valley",
)

SOUTHERN_CALIFORNIA_PLACES = (
    "southern california", "socal", "los angeles", "san diego", "orange county", "irvine",
    "anaheim", "long beach", "pasadena", "riverside", "san bernardino", "santa monica",
)

# Region alias -> (state it lies in, representative substrings).
REGION_ALIASES: dict[str, tuple[str, tuple[str, ...]]] = {
    "bay area": ("california", BAY_AREA_PLACES),
    "sf bay area": ("california", BAY_AREA_PLACES),
    "silicon valley": ("california", BAY_AREA_PLACES),
    "southern california": ("california", SOUTHERN_CALIFORNIA_PLACES),
    "socal": ("california", SOUTHERN_CALIFORNIA_PLACES),
}

_FILLER = re.compile(r"\b(would be ideal|is ideal|ideally|preferably|preferred|prefer|only|please)\b")


def clean_location_preference(preference: str) -> str:
    """Lower-case, unslug and strip the filler words people type around a place."""
    text = str(preference or "").lower().replace("_", " ")
    text = _FILLER.sub(" ", text)
    text = re.sub(r"[^\w\s,.]", " ", text)
    text = re.sub(r"\s+", " ", text).strip(" ,.")
    return text


def resolve_state(location: str) -> str | None:
    """Return the US state (full lower-case name) a location string names, if any.

    Full names win over abbreviations; when several are present the one written
    last wins ("Kansas City, Missouri" is Missouri). Two-letter abbreviations
    only count when written in capitals, after a comma, or as the whole string,
    so ordinary words like "in" or "me" are not read as states.
    """
    raw = str(location or "").strip()
    if not raw:
        return None
    lowered = raw.lower().replace("_", " ")

    best: tuple[int, int, str] | None = None
    for name, pattern in _STATE_NAME_PATTERNS:
        for m in pattern.finditer(lowered):
            candidate = (m.end(), len(name), name)
            if best is None or candidate > best:
                best = candidate
    if best is not None:
        return best[2]

    if raw.upper() in US_STATES and len(raw) == 2:
        return US_STATES[raw.upper()]

    found: str | None = None
    for m in re.finditer(r"(?<![A-Za-z])([A-Za-z]{2})(?![A-Za-z])", raw):
        token = m.group(1)
        abbr = token.upper()
        if abbr not in US_STATES:
            continue
        after_comma = raw[: m.start()].rstrip().endswith(",")
        if token.isupper() or after_comma:
            found = US_STATES[abbr]
    return found


def is_us_location(location: str) -> bool:
    lowered = str(location or "").lower()
    if not lowered.strip():
        return False
    if _COUNTRY_MARKERS.search(lowered):
        return True
    return resolve_state(location) is not None


def _matches_region(alias: str, candidate_location: str) -> bool:
    state, places = REGION_ALIASES[alias]
    lowered = candidate_location.lower()
    candidate_state = resolve_state(candidate_location)
    if alias in lowered and candidate_state in (None, state):
        return True
    # A bare state answer gets the benefit of the doubt.
    bare = lowered.strip(" .")
    if bare == state or US_STATES.get(bare.upper()) == state:
        return True
    # City names repeat across states (Dublin, Newark, Concord), so the state must agree.
    if candidate_state != state:
        return False
    return any(place in lowered for place in places)


def is_location_match(preference: str | None, candidate_location: str | None) -> bool:
    if preference is None or not str(preference).strip():
        return True
    if candidate_location is None or not str(candidate_location).strip():
        return True

    cleaned = clean_location_preference(preference)
    if not cleaned or cleaned in PASS_THROUGH_LOCATIONS or cleaned in {"any", "doesn't matter", "no preference"}:
        return True

    if cleaned in US_COUNTRY_TOKENS:
        return is_us_location(candidate_location)

    if cleaned in REGION_ALIASES:
        return _matches_region(cleaned, candidate_location)

    pref_state = resolve_state(cleaned)
    if pref_state is not None:
        return resolve_state(candidate_location) == pref_state

    for alias in REGION_ALIASES:
        if alias in cleaned:
            return _matches_region(alias, candidate_location)

    cand = str(candidate_location).strip().lower()
    return cleaned in cand or cand in cleaned
