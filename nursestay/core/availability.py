from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from nursestay.core.errors import InvalidRangeError
from nursestay.core.models import (
    STATUS_AVAILABLE,
    STATUS_BLOCKED,
    STATUS_BOOKED,
    AvailabilityBlock,
    AvailabilityWindow,
    CalendarOverview,
    DayAvailability,
    Listing,
)


# Higher wins when blocks overlap on the same day.
STATUS_PRECEDENCE = {STATUS_AVAILABLE: 0, STATUS_BLOCKED: 1, STATUS_BOOKED: 2}
CONFLICTING_STATUSES = frozenset({STATUS_BLOCKED, STATUS_BOOKED})


def parse_date(value: Any) -> date | None:
    """
    Accepts date, datetime or ISO strings ("2024-06-01", "2024-06-01T00:00:00Z").
    Returns None for empty or unparsable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def require_range(start_date: Any, end_date: Any) -> tuple[date, date]:
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        raise InvalidRangeError(f"Unparsable date range: {start_date!r} -> {end_date!r}")
    if start >= end:
        raise InvalidRangeError(f"Range end {end.isoformat()} must be after start {start.isoformat()}.")
    return start, end


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def nights_between(start_date: Any, end_date: Any) -> int:
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return 0
    return (end - start).days


def _block_span(block: AvailabilityBlock) -> tuple[date, date]:
    # Block end dates act as check-out days; a single-day block still holds one night.
    end = max(block.end_date, block.start_date + timedelta(days=1))
    return block.start_date, end


def find_conflicts(
    blocks: Iterable[AvailabilityBlock],
    start_date: Any,
    end_date: Any,
    exclude_booking_id: str | None = None,
) -> list[AvailabilityBlock]:
    start, end = require_range(start_date, end_date)
    conflicts: list[AvailabilityBlock] = []
    for block in blocks:
        if block.status not in CONFLICTING_STATUSES:
            continue
        if exclude_booking_id is not None and block.booking_id == exclude_booking_id:
            continue
        block_start, block_end = _block_span(block)
        if block_start < end and start < block_end:
            conflicts.append(block)
    return conflicts


def is_range_available(
    blocks: Iterable[AvailabilityBlock],
    start_date: Any,
    end_date: Any,
    exclude_booking_id: str | None = None,
) -> bool:
    """
    True when no blocked/booked block overlaps [start_date, end_date).

    Checking in on the day another stay checks out is not a conflict.
    Raises InvalidRangeError when start_date >= end_date.
    """
    return not find_conflicts(blocks, start_date, end_date, exclude_booking_id)


def day_availability(
    blocks: Iterable[AvailabilityBlock],
    fallback_price: float,
    fallback_min_stay: int,
    start_date: Any,
    months_window: int,
) -> list[DayAvailability]:
    """
    Day-by-day status from start_date (inclusive) for months_window months.

    Every day a block covers takes that block's status; when blocks overlap the
    most restrictive one wins (booked > blocked > available). Price and
    minimum stay come from the winning block's overrides, else the fallbacks.
    """
    start = parse_date(start_date)
    if start is None:
        raise InvalidRangeError(f"Unparsable start date: {start_date!r}")
    if months_window < 1:
        raise InvalidRangeError(f"months_window must be >= 1, got {months_window}")
    stop = add_months(start, months_window)

    winners: dict[date, AvailabilityBlock] = {}
    for block in blocks:
        day = max(block.start_date, start)
        last = min(block.end_date, stop - timedelta(days=1))
        while day <= last:
            current = winners.get(day)
            if current is None or STATUS_PRECEDENCE[block.status] > STATUS_PRECEDENCE[current.status]:
                winners[day] = block
            day += timedelta(days=1)

    out: list[DayAvailability] = []
    day = start
    while day < stop:
        block = winners.get(day)
        if block is None:
            out.append(
                DayAvailability(
                    date=day,
                    status=STATUS_AVAILABLE,
                    price_per_month=fallback_price,
                    min_stay_nights=fallback_min_stay,
                )
            )
        else:
            out.append(
                DayAvailability(
                    date=day,
                    status=block.status,
                    price_per_month=block.price_per_month if block.price_per_month is not None else fallback_price,
                    min_stay_nights=block.min_stay_nights if block.min_stay_nights is not None else fallback_min_stay,
                    booking_id=block.booking_id,
                )
            )
        day += timedelta(days=1)
    return out


def listing_windows(listing: Listing) -> list[AvailabilityWindow]:
    """
    Window list is authoritative; scalar available_from/available_to bounds
    are only used as a single window when no list is present.
    """
    if listing.availability:
        return list(listing.availability)
    if listing.available_from and listing.available_to:
        return [AvailabilityWindow(start=listing.available_from, end=listing.available_to)]
    return []


def listing_matches_availability(listing: Listing, start_date: Any, end_date: Any) -> bool:
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return True
    if start >= end:
        return False
    windows = listing_windows(listing)
    if not windows:
        return True
    return any(window.start <= start and end <= window.end for window in windows)


def filter_blocks(
    blocks: Iterable[AvailabilityBlock],
    status: str,
    start_date: Any = None,
    end_date: Any = None,
) -> list[AvailabilityBlock]:
    start = parse_date(start_date)
    end = parse_date(end_date)
    out = []
    for block in blocks:
        if block.status != status:
            continue
        if status == STATUS_BOOKED and not block.booking_id:
            continue
        if start is not None and block.end_date < start:
            continue
        if end is not None and block.start_date > end:
            continue
        out.append(block)
    out.sort(key=lambda block: block.start_date)
    return out


def calendar_overview(
    listing_id: int,
    listing_title: str,
    blocks: Iterable[AvailabilityBlock],
    today: date | None = None,
) -> CalendarOverview:
    current = today or date.today()
    block_list = list(blocks)
    counts = {status: 0 for status in STATUS_PRECEDENCE}
    for block in block_list:
        counts[block.status] += 1

    upcoming = sorted(
        (b for b in block_list if b.status == STATUS_AVAILABLE and b.end_date >= current),
        key=lambda b: b.start_date,
    )
    next_available = max(upcoming[0].start_date, current) if upcoming else None
    last_available = max(b.end_date for b in upcoming) if upcoming else None

    return CalendarOverview(
        listing_id=listing_id,
        listing_title=listing_title,
        available_blocks=counts[STATUS_AVAILABLE],
        booked_blocks=counts[STATUS_BOOKED],
        blocked_blocks=counts[STATUS_BLOCKED],
        next_available_date=next_available,
        last_available_date=last_available,
    )
