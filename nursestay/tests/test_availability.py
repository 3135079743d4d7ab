from datetime import date

import pytest

from nursestay.core.availability import (
    add_months,
    calendar_overview,
    day_availability,
    filter_blocks,
    find_conflicts,
    is_range_available,
    listing_matches_availability,
    nights_between,
    parse_date,
)
from nursestay.core.errors import InvalidRangeError
from nursestay.core.models import AvailabilityWindow


def test_parse_date_accepts_iso_variants():
    assert parse_date("2024-06-01") == date(2024, 6, 1)
    assert parse_date("2024-06-01T12:30:00Z") == date(2024, 6, 1)
    assert parse_date(date(2024, 6, 1)) == date(2024, 6, 1)
    assert parse_date("") is None
    assert parse_date("not a date") is None


def test_range_overlapping_block_is_unavailable(make_block):
    blocks = [make_block("2024-06-01", "2024-06-10")]
    assert is_range_available(blocks, "2024-06-05", "2024-06-07") is False
    assert is_range_available(blocks, "2024-05-20", "2024-06-02") is False


def test_check_in_on_block_end_is_allowed(make_block):
    blocks = [make_block("2024-06-01", "2024-06-10")]
    assert is_range_available(blocks, "2024-06-10", "2024-06-15") is True
    assert is_range_available(blocks, "2024-05-25", "2024-06-01") is True


def test_booked_blocks_conflict_and_available_blocks_do_not(make_block):
    blocks = [
        make_block("2024-07-01", "2024-07-31", status="available"),
        make_block("2024-08-01", "2024-08-31", status="booked", booking_id="bk-9"),
    ]
    assert is_range_available(blocks, "2024-07-05", "2024-07-20") is True
    assert is_range_available(blocks, "2024-07-20", "2024-08-05") is False
    assert is_range_available(blocks, "2024-07-20", "2024-08-05", exclude_booking_id="bk-9") is True


def test_uncovered_range_is_available(make_block):
    assert is_range_available([], "2024-01-01", "2024-02-01") is True
    assert is_range_available([make_block("2024-06-01", "2024-06-10")], "2024-07-01", "2024-07-02") is True


def test_single_day_block_still_conflicts(make_block):
    blocks = [make_block("2024-06-05", "2024-06-05")]
    assert is_range_available(blocks, "2024-06-05", "2024-06-06") is False
    assert is_range_available(blocks, "2024-06-06", "2024-06-08") is True


def test_inverted_or_empty_range_is_rejected(make_block):
    with pytest.raises(InvalidRangeError):
        is_range_available([], "2024-06-10", "2024-06-01")
    with pytest.raises(InvalidRangeError):
        is_range_available([], "2024-06-10", "2024-06-10")
    with pytest.raises(InvalidRangeError):
        find_conflicts([make_block("2024-06-01", "2024-06-10")], "garbage", "2024-06-10")


def test_day_availability_marks_block_days_inclusive(make_block):
    blocks = [make_block("2024-06-05", "2024-06-10", price_per_month=2500.0)]
    days = day_availability(blocks, fallback_price=2000.0, fallback_min_stay=30, start_date="2024-06-01", months_window=1)

    assert len(days) == 30
    blocked = [d.date.day for d in days if d.status == "blocked"]
    assert blocked == [5, 6, 7, 8, 9, 10]
    assert all(d.status == "available" for d in days if d.date.day not in blocked)
    assert days[4].price_per_month == 2500.0
    assert days[0].price_per_month == 2000.0
    assert days[0].min_stay_nights == 30


def test_day_availability_most_restrictive_status_wins(make_block):
    blocks = [
        make_block("2024-06-01", "2024-06-30", status="available", min_stay_nights=7),
        make_block("2024-06-10", "2024-06-12", status="blocked"),
        make_block("2024-06-11", "2024-06-11", status="booked", booking_id="bk-2"),
    ]
    days = {d.date.day: d for d in day_availability(blocks, 1800.0, 30, date(2024, 6, 1), 1)}
    assert days[1].status == "available"
    assert days[1].min_stay_nights == 7
    assert days[10].status == "blocked"
    assert days[11].status == "booked"
    assert days[11].booking_id == "bk-2"
    assert days[12].status == "blocked"


def test_day_availability_is_restartable(make_block):
    blocks = [make_block("2024-06-05", "2024-06-10")]
    first = day_availability(blocks, 2000.0, 30, "2024-06-01", 2)
    assert first == day_availability(blocks, 2000.0, 30, "2024-06-01", 2)
    assert first[-1].date == date(2024, 7, 31)


def test_day_availability_rejects_empty_window():
    with pytest.raises(InvalidRangeError):
        day_availability([], 2000.0, 30, "2024-06-01", 0)


def test_add_months_clamps_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_nights_between():
    assert nights_between("2024-06-01", "2024-07-01") == 30
    assert nights_between(None, "2024-07-01") == 0


def test_listing_availability_prefers_window_list(make_listing):
    listing = make_listing(
        availability=[
            AvailabilityWindow(date(2024, 1, 1), date(2024, 3, 31)),
            AvailabilityWindow(date(2024, 6, 1), date(2024, 8, 31)),
        ],
        available_from=date(2024, 4, 1),
        available_to=date(2024, 5, 31),
    )
    assert listing_matches_availability(listing, "2024-06-01", "2024-08-31") is True
    assert listing_matches_availability(listing, "2024-03-01", "2024-06-15") is False
    assert listing_matches_availability(listing, "2024-04-10", "2024-05-10") is False


def test_listing_availability_falls_back_to_scalar_bounds(make_listing):
    listing = make_listing(available_from=date(2024, 4, 1), available_to=date(2024, 5, 31))
    assert listing_matches_availability(listing, "2024-04-10", "2024-05-10") is True
    assert listing_matches_availability(listing, "2024-05-10", "2024-06-10") is False


def test_listing_availability_is_open_without_data(make_listing):
    assert listing_matches_availability(make_listing(), "2024-04-10", "2024-05-10") is True
    assert listing_matches_availability(make_listing(), "", "2024-05-10") is True
    assert listing_matches_availability(make_listing(), "soon", "later") is True


def test_listing_availability_rejects_inverted_dates(make_listing):
    windowed = make_listing(availability=[AvailabilityWindow(date(2024, 6, 1), date(2024, 9, 30))])
    assert listing_matches_availability(windowed, "2024-08-01", "2024-06-15") is False
    assert listing_matches_availability(windowed, "2024-07-01", "2024-07-01") is False
    assert listing_matches_availability(make_listing(), "2024-08-01", "2024-06-15") is False


def test_filter_blocks_by_status_and_window(make_block):
    blocks = [
        make_block("2024-09-01", "2024-09-10", status="booked", booking_id="bk-3"),
        make_block("2024-06-01", "2024-06-10", status="booked", booking_id="bk-1"),
        make_block("2024-07-01", "2024-07-10"),
    ]
    booked = filter_blocks(blocks, "booked")
    assert [b.booking_id for b in booked] == ["bk-1", "bk-3"]
    assert [b.booking_id for b in filter_blocks(blocks, "booked", "2024-08-01")] == ["bk-3"]
    assert [b.start_date for b in filter_blocks(blocks, "blocked", end_date="2024-06-30")] == []


def test_calendar_overview_counts_blocks(make_block):
    blocks = [
        make_block("2024-06-01", "2024-06-30", status="available"),
        make_block("2024-08-01", "2024-09-30", status="available"),
        make_block("2024-07-01", "2024-07-10", status="booked", booking_id="bk-1"),
        make_block("2024-07-11", "2024-07-20"),
    ]
    overview = calendar_overview(1, "Sunny room", blocks, today=date(2024, 6, 15))
    assert (overview.available_blocks, overview.booked_blocks, overview.blocked_blocks) == (2, 1, 1)
    assert overview.next_available_date == date(2024, 6, 15)
    assert overview.last_available_date == date(2024, 9, 30)
