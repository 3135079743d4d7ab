from __future__ import annotations

import argparse
import logging
from typing import Any, Protocol

from nursestay.core.config import Settings
from nursestay.core.models import Listing, ScoredListing, UserPreferences
from nursestay.core.normalize import row_to_listing
from nursestay.core.scoring import get_match_label, get_top_matches, sort_by_match_score
from nursestay.core.supabase_repo import SupabaseRepo


LOGGER = logging.getLogger(__name__)


class ListingSource(Protocol):
    def get_listings(self, limit: int | None = None) -> list[dict[str, Any]]: ...


def run_match(
    prefs: UserPreferences,
    repo: ListingSource | None = None,
    limit: int | None = None,
    top_only: bool = False,
) -> list[ScoredListing]:
    source = repo or SupabaseRepo()
    rows = source.get_listings(limit=limit)

    listings: list[Listing] = []
    for row in rows:
        try:
            listings.append(row_to_listing(row))
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Skipping malformed listing id=%s: %s", row.get("id"), exc)

    scored = get_top_matches(listings, prefs) if top_only else sort_by_match_score(listings, prefs)
    for item in scored:
        score = item.match_score
        LOGGER.info(
            "listing=%s score=%s label=%s breakdown=%s/%s/%s/%s reasons=%s",
            item.listing.id,
            score.overall,
            get_match_label(score.overall),
            score.breakdown.location,
            score.breakdown.price,
            score.breakdown.amenities,
            score.breakdown.availability,
            " | ".join(score.reasons),
        )
    LOGGER.info(
        "Match run completed. listings=%s scored=%s perfect=%s",
        len(rows),
        len(scored),
        sum(1 for item in scored if item.match_score.is_perfect_match),
    )
    return scored


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rank listings against a nurse's search preferences.")
    parser.add_argument("--location", help="City, state or hospital name.")
    parser.add_argument("--max-budget", type=float, help="Maximum monthly budget.")
    parser.add_argument("--room-type", choices=["private-room", "entire-place", "shared"])
    parser.add_argument("--start-date", help="Contract start (YYYY-MM-DD).")
    parser.add_argument("--end-date", help="Contract end (YYYY-MM-DD).")
    parser.add_argument("--amenity", action="append", dest="amenities", help="Preferred amenity; repeatable.")
    parser.add_argument("--limit", type=int, help="Maximum listings to load.")
    parser.add_argument("--top", action="store_true", help="Only report perfect matches.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    args = _parse_args(argv)
    prefs = UserPreferences(
        location=args.location,
        max_budget=args.max_budget,
        room_type=args.room_type,
        start_date=args.start_date,
        end_date=args.end_date,
        preferred_amenities=args.amenities,
    )
    repo = SupabaseRepo(url=settings.supabase_url, service_role_key=settings.supabase_key)
    run_match(prefs, repo=repo, limit=args.limit, top_only=args.top)


if __name__ == "__main__":
    main()
