from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


ROOM_TYPES = ("private-room", "entire-place", "shared")

STATUS_AVAILABLE = "available"
STATUS_BLOCKED = "blocked"
STATUS_BOOKED = "booked"
AVAILABILITY_STATUSES = (STATUS_AVAILABLE, STATUS_BLOCKED, STATUS_BOOKED)

BLOCK_REASONS = ("maintenance", "personal_use", "other")


@dataclass(slots=True)
class AvailabilityWindow:
    start: date
    end: date


@dataclass(slots=True)
class Listing:
    id: int
    title: str
    city: str
    state: str
    hospital_name: str
    minutes_to_hospital: int
    price_per_month: float
    room_type: str  # private-room | entire-place | shared
    hospital_city: str = ""
    hospital_state: str = ""
    tags: list[str] = field(default_factory=list)
    rating: float | None = None
    review_count: int | None = None
    availability: list[AvailabilityWindow] = field(default_factory=list)
    available_from: date | None = None
    available_to: date | None = None
    image_url: str | None = None
    perks: list[str] = field(default_factory=list)
    is_verified_host: bool = False
    ideal_contract_lengths: list[str] = field(default_factory=list)
    host_id: str | None = None

    def __post_init__(self) -> None:
        if self.price_per_month is None or float(self.price_per_month) <= 0:
            raise ValueError(f"Listing {self.id}: price_per_month must be positive.")
        if self.minutes_to_hospital is None or int(self.minutes_to_hospital) < 0:
            raise ValueError(f"Listing {self.id}: minutes_to_hospital must be >= 0.")


@dataclass(slots=True)
class UserPreferences:
    location: str | None = None
    max_budget: float | None = None
    room_type: str | None = None
    start_date: str | date | None = None
    end_date: str | date | None = None
    preferred_amenities: list[str] | None = None
    # Miles to hospital. Accepted from search forms but not used for scoring.
    max_distance: float | None = None


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    location: int
    price: int
    amenities: int
    availability: int

    def total(self) -> int:
        return self.location + self.price + self.amenities + self.availability


@dataclass(frozen=True, slots=True)
class MatchScore:
    overall: int
    breakdown: ScoreBreakdown
    reasons: tuple[str, ...]
    is_perfect_match: bool


@dataclass(frozen=True, slots=True)
class ScoredListing:
    listing: Listing
    match_score: MatchScore


@dataclass(slots=True)
class AvailabilityBlock:
    listing_id: int
    start_date: date
    end_date: date
    status: str  # available | blocked | booked
    id: str | None = None
    booking_id: str | None = None
    min_stay_nights: int | None = None
    price_per_month: float | None = None
    block_reason: str | None = None  # maintenance | personal_use | other
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.status not in AVAILABILITY_STATUSES:
            raise ValueError(f"Unknown availability status: {self.status!r}")
        if self.end_date < self.start_date:
            raise ValueError(f"Block {self.id}: end_date {self.end_date} is before start_date {self.start_date}.")
        if self.status == STATUS_BOOKED and not self.booking_id:
            raise ValueError(f"Block {self.id}: booked blocks require a booking_id.")
        if self.block_reason is not None and self.block_reason not in BLOCK_REASONS:
            raise ValueError(f"Unknown block reason: {self.block_reason!r}")

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(slots=True)
class DayAvailability:
    date: date
    status: str
    price_per_month: float
    min_stay_nights: int
    booking_id: str | None = None


@dataclass(slots=True)
class CalendarOverview:
    listing_id: int
    listing_title: str
    available_blocks: int
    booked_blocks: int
    blocked_blocks: int
    next_available_date: date | None = None
    last_available_date: date | None = None


@dataclass(slots=True)
class CalendarCell:
    date: date
    day_of_month: int
    is_current_month: bool
    state: str  # available | blocked | booked | disabled | past
    availability: DayAvailability | None = None


@dataclass(frozen=True, slots=True)
class RangeSelection:
    start: date | None = None
    end: date | None = None

    @property
    def is_complete(self) -> bool:
        return self.start is not None and self.end is not None

    def as_dict(self) -> dict[str, Any]:
        return {
            "start_date": self.start.isoformat() if self.start else None,
            "end_date": self.end.isoformat() if self.end else None,
        }
