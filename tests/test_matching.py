import pytest

from property_alerts.matching import MatchEngine, evaluate_match
from property_alerts.models import BuyerPreferences
from tests.conftest import make_listing


def prefs(**overrides) -> BuyerPreferences:
    row = {"user_id": "buyer-1", "property_alerts": True, "email_notifications": True}
    row.update(overrides)
    return BuyerPreferences.from_dict(row)


def test_austin_house_full_match():
    listing = make_listing()
    result = evaluate_match(listing, prefs(
        budget_range="400000-550000",
        preferred_areas=["Austin"],
        property_type_preferences=["House"],
    ))

    assert list(result.matched_criteria) == ["Price Range", "Preferred Area", "Property Type"]
    assert result.score == 1.0
    assert result.is_match is True


def test_price_only_mismatch_scores_zero():
    listing = make_listing()
    result = evaluate_match(listing, prefs(budget_range="100000-200000"))

    assert result.total_criteria == 1
    assert result.score == 0.0
    assert result.is_match is False
    assert list(result.matched_criteria) == []


def test_price_only_match_scores_one():
    result = evaluate_match(make_listing(), prefs(budget_range="480000-900000"))

    assert result.total_criteria == 1
    assert result.score == 1.0
    assert result.is_match is True


def test_unpriced_listing_always_passes_price():
    listing = make_listing(price=None, price_display="Contact Agent")
    result = evaluate_match(listing, prefs(budget_range="100000-200000"))

    assert list(result.matched_criteria) == ["Price Range"]
    assert result.is_match is True


@pytest.mark.parametrize("display", ["$500k+", "Offers over $500,000", "From $450k", "$450,000 ono"])
def test_worded_price_is_still_compared_to_budget(display):
    listing = make_listing(price=None, price_display=display)
    result = evaluate_match(listing, prefs(budget_range="100000-200000"))

    assert list(result.matched_criteria) == []
    assert result.is_match is False


def test_missing_budget_uses_default_range():
    result = evaluate_match(make_listing(price=2_500_000, price_display=None), prefs())
    assert result.is_match is True


def test_room_minimums_from_legacy_tokens():
    listing = make_listing(bedrooms=4, bathrooms=2)
    result = evaluate_match(listing, prefs(
        budget_range="400000-550000",
        preferred_areas=["bedrooms:3", "bathrooms:3"],
    ))

    # Price and bedrooms pass, bathrooms fail; no area left after decoding
    assert list(result.matched_criteria) == ["Price Range", "Bedrooms"]
    assert result.total_criteria == 3
    assert result.score == 2 / 3
    assert result.is_match is True


def test_criteria_labels_keep_evaluation_order():
    listing = make_listing(bedrooms=5, bathrooms=3)
    result = evaluate_match(listing, prefs(
        budget_range="400000-550000",
        preferred_areas=["property type first?", "bedrooms:2", "austin", "bathrooms:1"],
        property_type_preferences=["House"],
    ))

    assert list(result.matched_criteria) == [
        "Price Range", "Bedrooms", "Bathrooms", "Preferred Area", "Property Type",
    ]


def test_below_threshold_is_not_a_match():
    listing = make_listing(city="Dallas", property_type="Condo", bedrooms=1, bathrooms=1)
    result = evaluate_match(listing, prefs(
        budget_range="400000-550000",
        preferred_areas=["Austin", "bedrooms:3", "bathrooms:2"],
        property_type_preferences=["House"],
    ))

    # 1 of 5 criteria
    assert result.score == 0.2
    assert result.is_match is False


def test_threshold_boundary_two_of_five():
    listing = make_listing(city="Dallas", property_type="Condo", bedrooms=3, bathrooms=1)
    result = evaluate_match(listing, prefs(
        budget_range="400000-550000",
        preferred_areas=["Austin", "bedrooms:3", "bathrooms:2"],
        property_type_preferences=["House"],
    ))

    assert result.score == 0.4
    assert result.is_match is True


def test_location_matches_city_state_substring_case_insensitive():
    listing = make_listing(city="Round Rock", state="TX")
    engine = MatchEngine()

    assert "Preferred Area" in engine.evaluate(listing, prefs(preferred_areas=["round rock, tx"])).matched_criteria
    assert "Preferred Area" in engine.evaluate(listing, prefs(preferred_areas=["ROCK"])).matched_criteria
    assert "Preferred Area" not in engine.evaluate(listing, prefs(preferred_areas=["Austin"])).matched_criteria


def test_property_type_is_exact():
    listing = make_listing(property_type="House")
    result = evaluate_match(listing, prefs(property_type_preferences=["house", "Townhouse"]))
    assert "Property Type" not in result.matched_criteria


def test_missing_listing_rooms_fail_room_criteria():
    listing = make_listing(bedrooms=None, bathrooms=None)
    result = evaluate_match(listing, prefs(preferred_areas=["bedrooms:1", "bathrooms:1"]))
    assert list(result.matched_criteria) == ["Price Range"]


def test_evaluate_is_deterministic():
    listing = make_listing()
    preferences = prefs(preferred_areas=["Austin", "bedrooms:3"], property_type_preferences=["House"])
    engine = MatchEngine()

    assert engine.evaluate(listing, preferences) == engine.evaluate(listing, preferences)


def test_custom_threshold():
    listing = make_listing(city="Dallas")
    preferences = prefs(budget_range="400000-550000", preferred_areas=["Austin"])

    assert MatchEngine(threshold=0.5).evaluate(listing, preferences).is_match is True
    assert MatchEngine(threshold=0.6).evaluate(listing, preferences).is_match is False
