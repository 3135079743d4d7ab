from __future__ import annotations

import logging
from datetime import date
from typing import Any, Protocol

from nursestay.core.availability import (
    calendar_overview,
    day_availability,
    filter_blocks,
    find_conflicts,
    parse_date,
    require_range,
)
from nursestay.core.config import Settings
from nursestay.core.errors import (
    BlockNotFoundError,
    ImmutableBookedRangeError,
    InvalidRangeError,
    NotListingOwnerError,
    RangeConflictError,
)
from nursestay.core.models import (
    BLOCK_REASONS,
    STATUS_AVAILABLE,
    STATUS_BLOCKED,
    STATUS_BOOKED,
    AvailabilityBlock,
    CalendarOverview,
    DayAvailability,
)
from nursestay.core.normalize import block_to_record, flatten_joined, row_to_block, row_to_listing


LOGGER = logging.getLogger(__name__)


class CalendarRepo(Protocol):
    def get_listing(self, listing_id: int) -> dict[str, Any] | None: ...

    def get_listing_host_id(self, listing_id: int) -> str | None: ...

    def get_listing_blocks(self, listing_id: int) -> list[dict[str, Any]]: ...

    def get_block(self, block_id: str) -> dict[str, Any] | None: ...

    def insert_block(self, row: dict[str, Any]) -> dict[str, Any]: ...

    def update_block(self, block_id: str, updates: dict[str, Any]) -> dict[str, Any]: ...

    def delete_block(self, block_id: str) -> None: ...


class CalendarService:
    """
    Host calendar management and booking availability gate.

    Blocks are re-read from the repository on every call; nothing is cached
    between calls.
    """

    def __init__(self, repo: CalendarRepo, settings: Settings | None = None) -> None:
        self.repo = repo
        self.settings = settings or Settings.from_env()

    def get_blocks(self, listing_id: int) -> list[AvailabilityBlock]:
        blocks: list[AvailabilityBlock] = []
        for row in self.repo.get_listing_blocks(listing_id):
            try:
                blocks.append(row_to_block(row))
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.warning(
                    "Skipping malformed availability block id=%s listing=%s: %s", row.get("id"), listing_id, exc
                )
        return blocks

    def check_availability(
        self,
        listing_id: int,
        start_date: Any,
        end_date: Any,
        exclude_booking_id: str | None = None,
    ) -> bool:
        conflicts = find_conflicts(self.get_blocks(listing_id), start_date, end_date, exclude_booking_id)
        if conflicts:
            LOGGER.info(
                "Range unavailable listing=%s start=%s end=%s conflicts=%s",
                listing_id,
                start_date,
                end_date,
                [block.id for block in conflicts],
            )
        return not conflicts

    def block_dates(
        self,
        listing_id: int,
        start_date: Any,
        end_date: Any,
        block_reason: str = "other",
        notes: str | None = None,
        host_id: str | None = None,
    ) -> str:
        start, end = require_range(start_date, end_date)
        if block_reason not in BLOCK_REASONS:
            raise ValueError(f"Unknown block reason: {block_reason!r}")
        if host_id is not None:
            self._require_owner(listing_id, host_id)

        conflicts = find_conflicts(self.get_blocks(listing_id), start, end)
        if conflicts:
            LOGGER.warning(
                "Rejected block listing=%s start=%s end=%s conflicts=%s",
                listing_id,
                start,
                end,
                [block.id for block in conflicts],
            )
            raise RangeConflictError(
                f"Listing {listing_id} already has blocked or booked dates between {start} and {end}.",
                conflicts,
            )

        block = AvailabilityBlock(
            listing_id=listing_id,
            start_date=start,
            end_date=end,
            status=STATUS_BLOCKED,
            block_reason=block_reason,
            notes=notes,
        )
        block_id = self._insert_block(block)
        LOGGER.info("Blocked listing=%s start=%s end=%s block_id=%s", listing_id, start, end, block_id)
        return block_id

    def add_available_period(
        self,
        listing_id: int,
        start_date: Any,
        end_date: Any,
        min_stay_nights: int | None = None,
        price_per_month: float | None = None,
        notes: str | None = None,
        host_id: str | None = None,
    ) -> str:
        """
        Open a bookable period carrying its own minimum stay and monthly price.

        The period may not overlap blocked or booked dates. Unset overrides fall
        back to the listing price and the default minimum stay in the day view.
        """
        start, end = require_range(start_date, end_date)
        _validate_overrides(min_stay_nights, price_per_month)
        if host_id is not None:
            self._require_owner(listing_id, host_id)

        conflicts = find_conflicts(self.get_blocks(listing_id), start, end)
        if conflicts:
            LOGGER.warning(
                "Rejected available period listing=%s start=%s end=%s conflicts=%s",
                listing_id,
                start,
                end,
                [block.id for block in conflicts],
            )
            raise RangeConflictError(
                f"Listing {listing_id} has blocked or booked dates between {start} and {end}.",
                conflicts,
            )

        block = AvailabilityBlock(
            listing_id=listing_id,
            start_date=start,
            end_date=end,
            status=STATUS_AVAILABLE,
            min_stay_nights=min_stay_nights,
            price_per_month=price_per_month,
            notes=notes,
        )
        block_id = self._insert_block(block)
        LOGGER.info(
            "Opened available period listing=%s start=%s end=%s block_id=%s", listing_id, start, end, block_id
        )
        return block_id

    def unblock_dates(self, block_id: str, host_id: str | None = None) -> None:
        row = self.repo.get_block(block_id)
        if not row:
            raise BlockNotFoundError(f"Availability block {block_id} not found.")
        block = row_to_block(row)
        if host_id is not None:
            owner = flatten_joined(row.get("listings"))
            owner_id = owner.get("host_id") if owner else self.repo.get_listing_host_id(block.listing_id)
            if owner_id != host_id:
                raise NotListingOwnerError(f"User {host_id} does not own listing {block.listing_id}.")
        if block.status == STATUS_BOOKED:
            LOGGER.warning("Rejected unblock of booked block_id=%s booking_id=%s", block_id, block.booking_id)
            raise ImmutableBookedRangeError(
                f"Block {block_id} is booked; cancel booking {block.booking_id} to release it."
            )

        self.repo.delete_block(block_id)
        LOGGER.info("Unblocked listing=%s block_id=%s", block.listing_id, block_id)

    def update_block_overrides(
        self,
        block_id: str,
        min_stay_nights: int | None = None,
        price_per_month: float | None = None,
        notes: str | None = None,
    ) -> AvailabilityBlock:
        row = self.repo.get_block(block_id)
        if not row:
            raise BlockNotFoundError(f"Availability block {block_id} not found.")
        if row.get("status") == STATUS_BOOKED:
            raise ImmutableBookedRangeError(f"Block {block_id} is booked and cannot be edited.")

        _validate_overrides(min_stay_nights, price_per_month)
        updates: dict[str, Any] = {}
        if min_stay_nights is not None:
            updates["min_stay_nights"] = min_stay_nights
        if price_per_month is not None:
            updates["price_per_month"] = price_per_month
        if notes is not None:
            updates["notes"] = notes
        if not updates:
            return row_to_block(row)
        return row_to_block(self.repo.update_block(block_id, updates))

    def get_day_availability(
        self,
        listing_id: int,
        start_date: Any = None,
        months: int | None = None,
    ) -> list[DayAvailability]:
        listing_row = self.repo.get_listing(listing_id)
        if not listing_row:
            raise LookupError(f"Listing {listing_id} not found.")
        listing = row_to_listing(listing_row)
        start = parse_date(start_date) if start_date is not None else date.today()
        if start is None:
            raise InvalidRangeError(f"Unparsable start date: {start_date!r}")
        return day_availability(
            self.get_blocks(listing_id),
            fallback_price=listing.price_per_month,
            fallback_min_stay=self.settings.default_min_stay_nights,
            start_date=start,
            months_window=months if months is not None else self.settings.calendar_window_months,
        )

    def get_booked_dates(self, listing_id: int, start_date: Any = None, end_date: Any = None) -> list[AvailabilityBlock]:
        return filter_blocks(self.get_blocks(listing_id), STATUS_BOOKED, start_date, end_date)

    def get_blocked_dates(self, listing_id: int, start_date: Any = None, end_date: Any = None) -> list[AvailabilityBlock]:
        return filter_blocks(self.get_blocks(listing_id), STATUS_BLOCKED, start_date, end_date)

    def get_calendar_overview(self, listing_ids: list[int], today: date | None = None) -> list[CalendarOverview]:
        out: list[CalendarOverview] = []
        for listing_id in listing_ids:
            listing_row = self.repo.get_listing(listing_id)
            if not listing_row:
                LOGGER.warning("Skipping overview for missing listing=%s", listing_id)
                continue
            out.append(
                calendar_overview(listing_id, listing_row.get("title") or "", self.get_blocks(listing_id), today)
            )
        out.sort(key=lambda overview: overview.listing_title)
        return out

    def _require_owner(self, listing_id: int, host_id: str) -> None:
        owner_id = self.repo.get_listing_host_id(listing_id)
        if owner_id != host_id:
            raise NotListingOwnerError(f"User {host_id} does not own listing {listing_id}.")

    def _insert_block(self, block: AvailabilityBlock) -> str:
        row = self.repo.insert_block(block_to_record(block))
        block_id = row.get("id")
        if block_id is None:
            raise RuntimeError(f"Block insert for listing {block.listing_id} returned no id.")
        return str(block_id)


def _validate_overrides(min_stay_nights: int | None, price_per_month: float | None) -> None:
    if min_stay_nights is not None and min_stay_nights < 1:
        raise ValueError("min_stay_nights must be >= 1")
    if price_per_month is not None and price_per_month <= 0:
        raise ValueError("price_per_month must be positive")
