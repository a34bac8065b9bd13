"""
Match Engine for Property Alerts.

Scores a listing against one buyer's stored preferences. Each criterion the
buyer has expressed gets one vote; the score is the fraction of votes the
listing satisfies. Price is always voted on.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .models import AlertCandidate, BuyerPreferences, PropertyListing
from .normalization import (
    DEFAULT_MAX_BUDGET,
    DEFAULT_MIN_BUDGET,
    listing_price_range,
    parse_budget_range,
    ranges_overlap,
)

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.4

# Labels in evaluation order
PRICE_RANGE = "Price Range"
BEDROOMS = "Bedrooms"
BATHROOMS = "Bathrooms"
PREFERRED_AREA = "Preferred Area"
PROPERTY_TYPE = "Property Type"


# =============================================================================
# MATCH RESULT
# =============================================================================

@dataclass(frozen=True)
class MatchResult:
    """
    Result of matching a listing against one buyer's preferences.

    matched_criteria keeps evaluation order: Price Range, Bedrooms,
    Bathrooms, Preferred Area, Property Type.
    """
    is_match: bool
    score: float
    matched_criteria: tuple[str, ...] = ()
    total_criteria: int = 0


@dataclass
class AlertMatch:
    """A buyer who passed both the entitlement gate and the match engine."""
    candidate: AlertCandidate
    listing: PropertyListing
    result: MatchResult

    @property
    def buyer_id(self) -> str:
        return self.candidate.buyer_id

    @property
    def buyer_email(self) -> str:
        return self.candidate.profile.email

    @property
    def buyer_name(self) -> str:
        return self.candidate.profile.display_name


@dataclass
class _Tally:
    matches: int = 0
    total: int = 0
    labels: list[str] = field(default_factory=list)

    def vote(self, label: str, passed: bool) -> None:
        self.total += 1
        if passed:
            self.matches += 1
            self.labels.append(label)


# =============================================================================
# MATCH ENGINE
# =============================================================================

class MatchEngine:
    """
    Pure, deterministic listing/preference scorer.

    Usage:
        engine = MatchEngine()
        result = engine.evaluate(listing, preferences)
    """

    def __init__(
        self,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        default_min_budget: float = DEFAULT_MIN_BUDGET,
        default_max_budget: float = DEFAULT_MAX_BUDGET,
    ):
        self.threshold = threshold
        self.default_min_budget = default_min_budget
        self.default_max_budget = default_max_budget

    def evaluate(self, listing: PropertyListing, preferences: BuyerPreferences) -> MatchResult:
        """Score one listing against one buyer's preferences."""
        tally = _Tally()

        tally.vote(PRICE_RANGE, self._price_matches(listing, preferences))

        if preferences.preferred_bedrooms:
            tally.vote(BEDROOMS, _at_least(listing.bedrooms, preferences.preferred_bedrooms))

        if preferences.preferred_bathrooms:
            tally.vote(BATHROOMS, _at_least(listing.bathrooms, preferences.preferred_bathrooms))

        areas = [a for a in preferences.preferred_areas if a and a.strip()]
        if areas:
            tally.vote(PREFERRED_AREA, self._location_matches(listing, areas))

        if preferences.property_type_preferences:
            tally.vote(
                PROPERTY_TYPE,
                listing.property_type in preferences.property_type_preferences,
            )

        score = tally.matches / tally.total if tally.total else 0.0
        return MatchResult(
            is_match=score >= self.threshold,
            score=score,
            matched_criteria=tuple(tally.labels),
            total_criteria=tally.total,
        )

    def _price_matches(self, listing: PropertyListing, preferences: BuyerPreferences) -> bool:
        listing_range = listing_price_range(listing.price, listing.price_display)
        if listing_range is None:
            # Unpriced listings ("Contact Agent") are never excluded on price
            return True

        budget = parse_budget_range(
            preferences.budget_range,
            self.default_min_budget,
            self.default_max_budget,
        )
        return ranges_overlap(listing_range, budget)

    def _location_matches(self, listing: PropertyListing, areas: list[str]) -> bool:
        location = listing.location.lower()
        city = listing.city.lower()
        for area in areas:
            needle = area.strip().lower()
            if needle in location or needle in city:
                return True
        return False


def _at_least(actual: Optional[float], minimum: int) -> bool:
    if actual is None:
        return False
    try:
        return float(actual) >= minimum
    except (TypeError, ValueError):
        return False


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def evaluate_match(
    listing: PropertyListing,
    preferences: BuyerPreferences,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> MatchResult:
    """
    Convenience function to score a single listing/preference pair.

    Args:
        listing: The approved listing
        preferences: Decoded buyer preferences
        threshold: Minimum score for is_match

    Returns:
        MatchResult
    """
    return MatchEngine(threshold=threshold).evaluate(listing, preferences)
