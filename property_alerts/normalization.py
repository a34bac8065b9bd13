"""
Normalization module for Property Alerts.

Turns the loosely formatted values stored by the marketplace into numbers
the match engine can compare:
- Listing prices ("$450k-$500k", "1.2M", "Contact Agent", 750000)
- Buyer budgets ("400000-550000")
- Legacy preference tokens embedded in preferred_areas ("bedrooms:3")
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Optional, Union

logger = logging.getLogger(__name__)


# =============================================================================
# PRICES
# =============================================================================

DEFAULT_MIN_BUDGET = 0.0
DEFAULT_MAX_BUDGET = 10_000_000.0

# Amounts may sit inside wording ("Offers over $500,000", "$500k+", "From $450k").
# A k/m suffix only counts when it is not the start of a word.
_AMOUNT = re.compile(r"\$?\s*(\d[\d,]*(?:\.\d+)?)\s*(?:([km])(?![a-z]))?", re.IGNORECASE)

_SUFFIX_MULTIPLIERS = {
    "k": 1_000,
    "m": 1_000_000,
}

PriceRange = tuple[float, float]


def _extract_amounts(text: str) -> list[float]:
    amounts = []
    for match in _AMOUNT.finditer(text):
        value = float(match.group(1).replace(",", ""))
        suffix = match.group(2)
        if suffix:
            value *= _SUFFIX_MULTIPLIERS[suffix.lower()]
        amounts.append(value)
    return amounts


def parse_amount(text: Optional[str]) -> Optional[float]:
    """
    Parse the first money amount in a piece of text.

    Handles "$", commas, whitespace, k/m suffixes and surrounding words.
    Returns None for anything that is not a positive number.

    Examples:
        "$500k"                -> 500000.0
        "1.2M"                 -> 1200000.0
        "750,000"              -> 750000.0
        "Offers over $500,000" -> 500000.0
        "POA"                  -> None
    """
    if text is None:
        return None

    amounts = _extract_amounts(str(text))
    if not amounts or amounts[0] <= 0:
        return None
    return amounts[0]


def parse_price_text(text: Optional[str]) -> Optional[PriceRange]:
    """
    Parse a human-readable price into a (min, max) range.

    The first two positive amounts found are the ends of the range; a single
    amount becomes (v, v), so "$500k+" and "From $450k" are priced at their
    stated figure. Returns None only when the text has no usable number.
    """
    if text is None:
        return None

    amounts = [a for a in _extract_amounts(str(text)) if a > 0][:2]

    if not amounts:
        return None
    if len(amounts) == 1:
        return (amounts[0], amounts[0])

    low, high = amounts
    return (min(low, high), max(low, high))


def listing_price_range(
    price: Union[float, int, str, None],
    price_display: Optional[str] = None,
) -> Optional[PriceRange]:
    """
    Get the price interval of a listing.

    The display text wins when it contains a usable number, then the
    numeric price field. None means the listing is unpriced.
    """
    if price_display:
        parsed = parse_price_text(price_display)
        if parsed is not None:
            return parsed

    if price is None or isinstance(price, bool):
        return None

    if isinstance(price, (int, float)):
        value = float(price)
        return (value, value) if value > 0 else None

    return parse_price_text(str(price))


def parse_budget_range(
    budget_range: Optional[str],
    default_min: float = DEFAULT_MIN_BUDGET,
    default_max: float = DEFAULT_MAX_BUDGET,
) -> PriceRange:
    """
    Parse a buyer budget stored as "min-max".

    Each side falls back to its default independently, so "-500000"
    means (default_min, 500000). Reversed bounds are swapped.
    """
    if not budget_range or "-" not in budget_range:
        return (default_min, default_max)

    min_text, _, max_text = budget_range.partition("-")
    low = _parse_budget_side(min_text)
    high = _parse_budget_side(max_text)

    low = default_min if low is None else low
    high = default_max if high is None else high

    if low > high:
        low, high = high, low
    return (low, high)


def _parse_budget_side(text: str) -> Optional[float]:
    # "0" is a valid lower bound, parse_amount rejects it
    cleaned = re.sub(r"[,$\s]", "", text)
    if cleaned in ("0", "0.0"):
        return 0.0
    return parse_amount(cleaned)


def ranges_overlap(a: PriceRange, b: PriceRange) -> bool:
    """True if the closed intervals a and b share at least one point."""
    return a[0] <= b[1] and a[1] >= b[0]


# =============================================================================
# LEGACY PREFERENCE TOKENS
# =============================================================================

BEDROOMS_PREFIX = "bedrooms:"
BATHROOMS_PREFIX = "bathrooms:"
GARAGES_PREFIX = "garages:"

_TOKEN_PREFIXES = (BEDROOMS_PREFIX, BATHROOMS_PREFIX, GARAGES_PREFIX)


@dataclass
class DecodedAreas:
    """preferred_areas split into real locations and room minimums."""
    areas: list[str] = field(default_factory=list)
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None


def decode_preferred_areas(raw_areas: Optional[list]) -> DecodedAreas:
    """
    Split the legacy preferred_areas list.

    The buyer preferences screen stores room minimums as "bedrooms:3",
    "bathrooms:2" and "garages:1" entries alongside location names. The
    first bedrooms/bathrooms token wins; garages tokens are dropped since
    garages are not matched on. Unparsable tokens are ignored.
    """
    decoded = DecodedAreas()
    if not raw_areas:
        return decoded

    for entry in raw_areas:
        if not isinstance(entry, str):
            continue
        value = entry.strip()
        if not value:
            continue

        lowered = value.lower()
        if lowered.startswith(BEDROOMS_PREFIX):
            if decoded.bedrooms is None:
                decoded.bedrooms = _parse_count(value[len(BEDROOMS_PREFIX):])
        elif lowered.startswith(BATHROOMS_PREFIX):
            if decoded.bathrooms is None:
                decoded.bathrooms = _parse_count(value[len(BATHROOMS_PREFIX):])
        elif lowered.startswith(_TOKEN_PREFIXES):
            continue
        else:
            decoded.areas.append(value)

    return decoded


def _parse_count(text: str) -> Optional[int]:
    try:
        count = int(text.strip())
    except ValueError:
        logger.debug(f"Ignoring unparsable room preference: {text!r}")
        return None
    return count if count > 0 else None
