from rishta import config
from rishta.services.normalization import (
    Diet,
    Gender,
    Habit,
    MaritalStatus,
    normalize_diet,
    normalize_gender,
    normalize_habit,
    normalize_marital_status,
    normalize_profile,
    normalize_same_as_mine_preferences,
    parse_string_list,
    reconcile_dealbreaker_flags,
    split_caste,
)


def test_enum_synonyms():
    assert normalize_diet("Non Vegetarian") == Diet.NON_VEGETARIAN
    assert normalize_diet("pescatarian") is None
    assert normalize_marital_status("Never Married") == MaritalStatus.NEVER_MARRIED
    assert normalize_gender("Bride") == Gender.FEMALE
    assert normalize_habit("Socially") == Habit.OCCASIONALLY


def test_parse_string_list():
    assert parse_string_list('["Telugu", "Tamil"]') == ["Telugu", "Tamil"]
    assert parse_string_list("Telugu, Tamil ,,") == ["Telugu", "Tamil"]
    assert parse_string_list(["Telugu", " "]) == ["Telugu"]
    assert parse_string_list(None) == []


def test_same_as_mine_list_field_merges_own_value():
    out = normalize_same_as_mine_preferences({"community": "Brahmin", "pref_community": "same_as_mine, Kapu"})
    assert out["pref_community"] == "Kapu, Brahmin"


def test_same_as_mine_uses_stored_profile_for_partial_updates():
    out = normalize_same_as_mine_preferences(
        {"pref_mother_tongue": "same as mine", "pref_citizenship": "same_as_mine"},
        fallback={"mother_tongue": "Telugu", "country": "India"},
    )
    assert out["pref_mother_tongue"] == "Telugu"
    assert out["pref_citizenship"] == "India"


def test_same_as_mine_without_own_value_clears_preference():
    out = normalize_same_as_mine_preferences({"pref_family_values": "same_as_mine"})
    assert out["pref_family_values"] == ""


def test_reconcile_dealbreaker_flags():
    out = reconcile_dealbreaker_flags(
        {
            "pref_diet": "vegetarian",
            "pref_religion": "Hindu",
            "pref_religion_is_dealbreaker": "true",
            "pref_pets_is_dealbreaker": True,
        }
    )
    assert out["pref_diet_is_dealbreaker"] is True
    assert out["pref_religion_is_dealbreaker"] is True
    assert out["pref_pets_is_dealbreaker"] is False
    assert out["pref_age_is_dealbreaker"] is False


def test_reconcile_dealbreaker_flags_follows_matching_config_override(monkeypatch):
    monkeypatch.setitem(config.DEFAULT_MATCHING_CONFIG, "DEALBREAKER_DEFAULTS", {"religion": True})
    out = reconcile_dealbreaker_flags({"pref_diet": "vegetarian", "pref_religion": "Hindu"})
    assert out["pref_religion_is_dealbreaker"] is True
    assert out["pref_diet_is_dealbreaker"] is False


def test_split_caste():
    assert split_caste("Havyaka Brahmin") == ("Brahmin", "Havyaka")
    assert split_caste("Iyer") == ("Brahmin", "Iyer")
    assert split_caste("Tamil Brahmin") == ("Brahmin", None)
    assert split_caste("Vysya chettiar") == ("Vysya", "Chettiar")
    assert split_caste("Kapu") == ("Kapu", None)
    assert split_caste("") == (None, None)


def test_normalize_profile_end_to_end():
    out = normalize_profile(
        {
            "diet": "Veg",
            "smoking": "Pescatarian",
            "pref_diet": "Veg, Vegan",
            "pref_drinking": "Never, doesnt_matter",
            "caste": "Havyaka Brahmin",
            "pref_community": "same_as_mine",
        }
    )
    assert out["diet"] == "vegetarian"
    assert out["smoking"] == "Pescatarian"
    assert out["pref_diet"] == "vegetarian, vegan"
    assert out["pref_drinking"] == "doesnt_matter"
    assert out["community"] == "Brahmin"
    assert out["sub_community"] == "Havyaka"
    assert out["pref_community"] == "Brahmin"
    assert out["pref_diet_is_dealbreaker"] is True
    assert out["pref_community_is_dealbreaker"] is True
    assert out["pref_drinking_is_dealbreaker"] is False
