from __future__ import annotations

import itertools
from datetime import date
from typing import Any

import pytest

from nursestay.core.config import Settings
from nursestay.core.models import AvailabilityBlock, Listing


class FakeRepo:
    """In-memory stand-in for SupabaseRepo."""

    def __init__(self, listings: list[dict[str, Any]] | None = None) -> None:
        self.listings = {row["id"]: row for row in listings or []}
        self.blocks: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def get_listings(self, limit: int | None = None) -> list[dict[str, Any]]:
        rows = [self.listings[key] for key in sorted(self.listings)]
        return rows[:limit] if limit else rows

    def get_listing(self, listing_id: int) -> dict[str, Any] | None:
        return self.listings.get(listing_id)

    def get_listing_host_id(self, listing_id: int) -> str | None:
        row = self.listings.get(listing_id)
        return row.get("host_id") if row else None

    def get_listing_blocks(self, listing_id: int) -> list[dict[str, Any]]:
        rows = [dict(row) for row in self.blocks.values() if row["listing_id"] == listing_id]
        return sorted(rows, key=lambda row: row["start_date"])

    def get_block(self, block_id: str) -> dict[str, Any] | None:
        row = self.blocks.get(block_id)
        if row is None:
            return None
        listing = self.listings.get(row["listing_id"]) or {}
        # Mimic the embedded relation, which may come back as a list.
        return {**row, "listings": [{"host_id": listing.get("host_id"), "title": listing.get("title")}]}

    def insert_block(self, row: dict[str, Any]) -> dict[str, Any]:
        block_id = f"blk-{next(self._ids)}"
        stored = {**row, "id": block_id}
        self.blocks[block_id] = stored
        return dict(stored)

    def update_block(self, block_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        self.blocks[block_id].update(updates)
        return dict(self.blocks[block_id])

    def delete_block(self, block_id: str) -> None:
        self.blocks.pop(block_id, None)


def listing_row(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": 1,
        "title": "Sunny room near Mercy",
        "city": "Austin",
        "state": "TX",
        "hospital_name": "Dell Seton Medical Center",
        "hospital_city": "Austin",
        "hospital_state": "TX",
        "minutes_to_hospital": 15,
        "price_per_month": 2000,
        "room_type": "private-room",
        "tags": [],
        "rating": None,
        "review_count": None,
        "host_id": "host-1",
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_listing():
    def _make(**overrides: Any) -> Listing:
        fields: dict[str, Any] = {
            "id": 1,
            "title": "Sunny room",
            "city": "Austin",
            "state": "TX",
            "hospital_name": "Dell Seton Medical Center",
            "minutes_to_hospital": 15,
            "price_per_month": 2000.0,
            "room_type": "private-room",
        }
        fields.update(overrides)
        return Listing(**fields)

    return _make


@pytest.fixture
def make_block():
    def _make(start: str, end: str, status: str = "blocked", **overrides: Any) -> AvailabilityBlock:
        if status == "booked":
            overrides.setdefault("booking_id", "bk-1")
        return AvailabilityBlock(
            listing_id=overrides.pop("listing_id", 1),
            start_date=date.fromisoformat(start),
            end_date=date.fromisoformat(end),
            status=status,
            **overrides,
        )

    return _make


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url=None,
        supabase_key=None,
        calendar_window_months=1,
        default_min_stay_nights=30,
        log_level="INFO",
    )


@pytest.fixture
def repo() -> FakeRepo:
    return FakeRepo([listing_row(), listing_row(id=2, title="Loft downtown", host_id="host-2")])


@pytest.fixture
def make_repo():
    def _make(*overrides: dict[str, Any]) -> FakeRepo:
        return FakeRepo([listing_row(**row) for row in overrides])

    return _make
