from __future__ import annotations

import math
from typing import Any, Callable, Iterable

from nursestay.core.availability import listing_matches_availability
from nursestay.core.models import Listing, MatchScore, ScoreBreakdown, ScoredListing, UserPreferences


SUB_SCORE_MAX = 25
NEUTRAL_SCORE = 15
PERFECT_MATCH_THRESHOLD = 90
MAX_REASONS = 3
NEAR_HOSPITAL_MINUTES = 10
HIGH_RATING = 4.8
POPULAR_REVIEW_COUNT = 10

PERFECT_MATCH_BANNER = "🎯 Perfect match for you!"

# (max price/budget ratio, points, reason); first matching tier wins.
PRICE_TIERS = (
    (0.70, 25, "Great value - ${savings} under budget"),
    (0.85, 20, "Affordable and within budget"),
    (1.00, 15, "Within your budget"),
    (1.15, 5, None),
)

VALUABLE_AMENITIES = ("wifi", "parking", "washer", "furnished", "gym", "pool")
VALUABLE_AMENITY_POINTS = 4
VALUABLE_AMENITY_CAP = 20

MATCH_LABELS = (
    (90, "Perfect Match", "#10B981"),
    (75, "Great Match", "#14B8A6"),
    (60, "Good Match", "#3B82F6"),
    (40, "Decent Match", "#F59E0B"),
)
FALLBACK_LABEL = "Consider"
FALLBACK_COLOR = "#6B7280"

# (listing, start_date, end_date) -> available; dates are passed through unparsed.
AvailabilityPredicate = Callable[[Listing, Any, Any], bool]


def calculate_match_score(
    listing: Listing,
    prefs: UserPreferences,
    is_available: AvailabilityPredicate = listing_matches_availability,
) -> MatchScore:
    reasons: list[str] = []

    location = _score_location(listing, prefs, reasons)
    price = _score_price(listing, prefs, reasons)
    amenities = _score_amenities(listing, prefs, reasons)
    availability = _score_availability(listing, prefs, reasons, is_available)

    if listing.rating and listing.rating >= HIGH_RATING:
        amenities = min(SUB_SCORE_MAX, amenities + 3)
        reasons.append(f"Highly rated ({listing.rating:.1f} ⭐)")
    if listing.rating and listing.review_count and listing.review_count > POPULAR_REVIEW_COUNT:
        reasons.append(f"Popular choice with {listing.review_count} reviews")

    breakdown = ScoreBreakdown(
        location=_clamp(location),
        price=_clamp(price),
        amenities=_clamp(amenities),
        availability=_clamp(availability),
    )
    overall = _round_half_up(breakdown.total())
    is_perfect = overall >= PERFECT_MATCH_THRESHOLD
    if is_perfect:
        reasons.insert(0, PERFECT_MATCH_BANNER)

    return MatchScore(
        overall=overall,
        breakdown=breakdown,
        reasons=tuple(reasons[:MAX_REASONS]),
        is_perfect_match=is_perfect,
    )


def sort_by_match_score(
    listings: Iterable[Listing],
    prefs: UserPreferences,
    is_available: AvailabilityPredicate = listing_matches_availability,
) -> list[ScoredListing]:
    scored = [
        ScoredListing(listing=listing, match_score=calculate_match_score(listing, prefs, is_available))
        for listing in listings
    ]
    # list.sort is stable, so equal scores keep their input order.
    scored.sort(key=lambda item: item.match_score.overall, reverse=True)
    return scored


def get_top_matches(
    listings: Iterable[Listing],
    prefs: UserPreferences,
    is_available: AvailabilityPredicate = listing_matches_availability,
) -> list[ScoredListing]:
    return [
        item
        for item in sort_by_match_score(listings, prefs, is_available)
        if item.match_score.overall >= PERFECT_MATCH_THRESHOLD
    ]


def get_match_label(score: float) -> str:
    for threshold, label, _ in MATCH_LABELS:
        if score >= threshold:
            return label
    return FALLBACK_LABEL


def get_match_color(score: float) -> str:
    for threshold, _, color in MATCH_LABELS:
        if score >= threshold:
            return color
    return FALLBACK_COLOR


def _score_location(listing: Listing, prefs: UserPreferences, reasons: list[str]) -> int:
    search = _normalize(prefs.location)
    if not search:
        score = NEUTRAL_SCORE
    else:
        city = _normalize(listing.city)
        hospital = _normalize(listing.hospital_name)
        state = _normalize(listing.state)
        if _either_contains(search, city) or _either_contains(search, hospital):
            score = 25
            reasons.append(f"Perfect location match near {listing.hospital_name}")
        elif state and search in state:
            score = 15
            reasons.append("Located in your search area")
        else:
            score = 5

    if listing.minutes_to_hospital <= NEAR_HOSPITAL_MINUTES:
        score = min(SUB_SCORE_MAX, score + 5)
        reasons.append(f"Only {listing.minutes_to_hospital} min to hospital")
    return score


def _score_price(listing: Listing, prefs: UserPreferences, reasons: list[str]) -> int:
    if prefs.max_budget is None:
        return NEUTRAL_SCORE
    budget = float(prefs.max_budget)
    if budget <= 0:
        return 0

    price = float(listing.price_per_month)
    ratio = price / budget
    for max_ratio, points, reason in PRICE_TIERS:
        if ratio <= max_ratio:
            if reason:
                reasons.append(reason.format(savings=_format_money(budget - price)))
            return points
    return 0


def _score_amenities(listing: Listing, prefs: UserPreferences, reasons: list[str]) -> int:
    tags = [tag.lower() for tag in listing.tags if tag]
    desired = [a.strip().lower() for a in (prefs.preferred_amenities or []) if a and a.strip()]

    if desired:
        matched = [amenity for amenity in desired if any(amenity in tag for tag in tags)]
        ratio = len(matched) / len(desired)
        score = _round_half_up(ratio * SUB_SCORE_MAX)
        if ratio >= 0.75:
            reasons.append(f"Has {len(matched)} of your preferred amenities")
    else:
        valuable = [tag for tag in tags if any(keyword in tag for keyword in VALUABLE_AMENITIES)]
        score = min(VALUABLE_AMENITY_CAP, len(valuable) * VALUABLE_AMENITY_POINTS)

    if prefs.room_type and listing.room_type == prefs.room_type:
        score = min(SUB_SCORE_MAX, score + 5)
        reasons.append("Perfect room type match")
    return score


def _score_availability(
    listing: Listing,
    prefs: UserPreferences,
    reasons: list[str],
    is_available: AvailabilityPredicate,
) -> int:
    if not prefs.start_date or not prefs.end_date:
        return NEUTRAL_SCORE
    if is_available(listing, prefs.start_date, prefs.end_date):
        reasons.append("Available for your dates")
        return 25
    return 0


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def _either_contains(search: str, value: str) -> bool:
    if not value:
        return False
    return value in search or search in value


def _clamp(value: float) -> int:
    return int(max(0, min(SUB_SCORE_MAX, value)))


def _format_money(amount: float) -> str:
    if float(amount).is_integer():
        return f"{amount:,.0f}"
    return f"{amount:,.2f}"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
