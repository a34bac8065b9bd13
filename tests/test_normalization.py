import pytest

from property_alerts.normalization import (
    DEFAULT_MAX_BUDGET,
    decode_preferred_areas,
    listing_price_range,
    parse_amount,
    parse_budget_range,
    parse_price_text,
    ranges_overlap,
)


@pytest.mark.parametrize("text,expected", [
    ("$500k", 500_000.0),
    ("1.2M", 1_200_000.0),
    ("750,000", 750_000.0),
    (" $ 650 K ", 650_000.0),
    ("Offers over $500,000", 500_000.0),
    ("POA", None),
    ("0", None),
    ("", None),
])
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


def test_parse_price_text_handles_ranges_and_single_values():
    assert parse_price_text("$450k-$500k") == (450_000.0, 500_000.0)
    assert parse_price_text("900,000 - 1,200,000") == (900_000.0, 1_200_000.0)
    assert parse_price_text("1.2M to 1.5M") == (1_200_000.0, 1_500_000.0)
    assert parse_price_text("$600k–$550k") == (550_000.0, 600_000.0)
    assert parse_price_text("$725,000") == (725_000.0, 725_000.0)


@pytest.mark.parametrize("text,expected", [
    ("$500k+", (500_000.0, 500_000.0)),
    ("Offers over $500,000", (500_000.0, 500_000.0)),
    ("From $450k", (450_000.0, 450_000.0)),
    ("$450,000 ono", (450_000.0, 450_000.0)),
    ("Between $1.1m and $1.2m", (1_100_000.0, 1_200_000.0)),
])
def test_parse_price_text_reads_amounts_inside_wording(text, expected):
    assert parse_price_text(text) == expected


def test_parse_price_text_returns_none_for_text_prices():
    assert parse_price_text("Contact Agent") is None
    assert parse_price_text("Best Offers") is None
    assert parse_price_text("   ") is None


def test_listing_price_prefers_display_text():
    assert listing_price_range(480_000, "$450k-$500k") == (450_000.0, 500_000.0)


def test_listing_price_falls_back_to_numeric_price():
    assert listing_price_range(480_000, "Contact Agent") == (480_000.0, 480_000.0)
    assert listing_price_range("480000", None) == (480_000.0, 480_000.0)


def test_listing_price_unpriced():
    assert listing_price_range(None, None) is None
    assert listing_price_range(0, None) is None
    assert listing_price_range("Contact Agent", "Price on Application") is None


def test_parse_budget_range():
    assert parse_budget_range("400000-550000") == (400_000.0, 550_000.0)
    assert parse_budget_range("0-300000") == (0.0, 300_000.0)
    assert parse_budget_range(None) == (0.0, DEFAULT_MAX_BUDGET)
    assert parse_budget_range("lots") == (0.0, DEFAULT_MAX_BUDGET)


def test_parse_budget_range_falls_back_per_side():
    assert parse_budget_range("abc-500000") == (0.0, 500_000.0)
    assert parse_budget_range("200000-") == (200_000.0, DEFAULT_MAX_BUDGET)
    assert parse_budget_range("900000-100000") == (100_000.0, 900_000.0)


def test_ranges_overlap_is_symmetric():
    listing = (450_000.0, 500_000.0)
    assert ranges_overlap(listing, (400_000.0, 460_000.0))
    assert ranges_overlap((400_000.0, 460_000.0), listing)
    assert ranges_overlap(listing, (500_000.0, 600_000.0))
    assert not ranges_overlap(listing, (100_000.0, 200_000.0))
    assert not ranges_overlap((100_000.0, 200_000.0), listing)


def test_decode_preferred_areas_extracts_room_tokens():
    decoded = decode_preferred_areas(["Austin", "bedrooms:3", "bathrooms:2", "garages:1", "Round Rock"])
    assert decoded.areas == ["Austin", "Round Rock"]
    assert decoded.bedrooms == 3
    assert decoded.bathrooms == 2


def test_decode_preferred_areas_ignores_bad_tokens():
    decoded = decode_preferred_areas(["bedrooms:many", "  ", "bathrooms:0", None])
    assert decoded.areas == []
    assert decoded.bedrooms is None
    assert decoded.bathrooms is None


def test_decode_preferred_areas_empty():
    decoded = decode_preferred_areas(None)
    assert decoded.areas == []
    assert decoded.bedrooms is None
